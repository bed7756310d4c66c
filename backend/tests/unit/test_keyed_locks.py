"""
Unit tests for the keyed lock table.

WHAT: Blocking hold() and non-blocking try_hold() per key
WHY: The confirmation guard and per-seller channel creation rely on it
HOW: Concurrent tasks on one event loop
"""

import asyncio

import pytest

from consignment_bot.core.locks import KeyedLockTable


@pytest.mark.unit
class TestTryHold:

    @pytest.mark.asyncio
    async def test_second_holder_is_refused_while_first_holds(self):
        table = KeyedLockTable()

        async with table.try_hold("order-1") as first:
            assert first is True
            assert table.is_held("order-1")
            async with table.try_hold("order-1") as second:
                assert second is False

        assert not table.is_held("order-1")
        assert len(table) == 0

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        table = KeyedLockTable()

        async with table.try_hold("order-1") as a:
            async with table.try_hold("order-2") as b:
                assert a and b

    @pytest.mark.asyncio
    async def test_only_one_of_many_concurrent_tasks_acquires(self):
        table = KeyedLockTable()
        acquired = []

        async def attempt(i):
            async with table.try_hold("order-1") as ok:
                if ok:
                    acquired.append(i)
                    await asyncio.sleep(0.01)

        await asyncio.gather(*(attempt(i) for i in range(10)))

        assert len(acquired) == 1
        assert len(table) == 0

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        table = KeyedLockTable()

        with pytest.raises(RuntimeError):
            async with table.try_hold("order-1"):
                raise RuntimeError("boom")

        async with table.try_hold("order-1") as ok:
            assert ok


@pytest.mark.unit
class TestHold:

    @pytest.mark.asyncio
    async def test_serializes_same_key(self):
        table = KeyedLockTable()
        events = []

        async def worker(name):
            async with table.hold("seller"):
                events.append(f"{name}-in")
                await asyncio.sleep(0)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a-in", "a-out", "b-in", "b-out"]
        assert len(table) == 0
