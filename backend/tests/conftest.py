"""
Pytest configuration and shared fixtures for backend tests.

WHAT: Markers, in-memory fakes of Discord and Airtable, and a wired service context
WHY: Dispatch and click resolution can be tested without network access
HOW: Fakes implement the MessagingPlatform / RecordStore protocols and yield to
     the event loop on every call so concurrent clicks actually interleave
"""

import asyncio
from decimal import Decimal
from typing import Any, Optional

import pytest

from consignment_bot.core.config import Settings
from consignment_bot.core.context import ServiceContext
from consignment_bot.integrations.types import (
    Destination,
    DestinationKind,
    UpstreamResponseError,
)
from consignment_bot.models.domain import (
    InventoryUnit,
    Order,
    OutboundMessage,
    SaleRecord,
    SellerCandidate,
    VatRegime,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )


class FakeMessagingPlatform:
    """In-memory Discord guild."""

    def __init__(self):
        self.destinations: list[Destination] = []
        self.messages: dict[str, dict[str, Any]] = {}
        self.created: list[Destination] = []
        self.edits: list[tuple[str, str, dict]] = []
        self.fail_post_channels: set[str] = set()
        self.fail_edit_messages: set[str] = set()
        self.opened = False
        self._next_id = 1000

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.opened = False

    async def list_destinations(self, parent_id: str) -> list[Destination]:
        await asyncio.sleep(0)
        return list(self.destinations)

    async def create_destination(
        self,
        name: str,
        kind: DestinationKind,
        parent_id: str,
        group_id: Optional[str] = None
    ) -> Destination:
        await asyncio.sleep(0)
        destination = Destination(id=self._new_id(), name=name, kind=kind, parent_id=group_id)
        self.destinations.append(destination)
        self.created.append(destination)
        return destination

    async def post_message(self, channel_id: str, payload: dict[str, Any]) -> str:
        await asyncio.sleep(0)
        if channel_id in self.fail_post_channels:
            raise UpstreamResponseError("discord", f"POST /channels/{channel_id}/messages → 403", 403)
        message_id = self._new_id()
        self.messages[message_id] = {"channel_id": channel_id, **payload}
        return message_id

    async def edit_message(self, channel_id: str, message_id: str, payload: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if message_id in self.fail_edit_messages:
            raise UpstreamResponseError("discord", f"PATCH message {message_id} → 500", 500)
        self.edits.append((channel_id, message_id, payload))
        self.messages.setdefault(message_id, {"channel_id": channel_id}).update(payload)

    # ---------- inspection ----------

    def add_category(self, name: str) -> Destination:
        category = Destination(id=self._new_id(), name=name, kind=DestinationKind.GROUP)
        self.destinations.append(category)
        return category

    def add_channel(self, name: str, category: Destination) -> Destination:
        channel = Destination(
            id=self._new_id(), name=name, kind=DestinationKind.CHANNEL, parent_id=category.id
        )
        self.destinations.append(channel)
        return channel

    def buttons(self, message_id: str) -> list[dict]:
        rows = self.messages[message_id].get("components", [])
        return [button for row in rows for button in row["components"]]

    def is_active(self, message_id: str) -> bool:
        buttons = self.buttons(message_id)
        return bool(buttons) and not any(b.get("disabled") for b in buttons)

    def content(self, message_id: str) -> Optional[str]:
        return self.messages[message_id].get("content")


class FakeRecordStore:
    """In-memory Airtable base."""

    def __init__(self):
        self.inventory: dict[str, InventoryUnit] = {}
        self.sales: list[SaleRecord] = []
        self.offer_messages: list[OutboundMessage] = []
        self.matched_orders: dict[str, str] = {}
        self.quantity_writes: list[tuple[str, int]] = []
        self.fail_offer_message_writes: set[str] = set()
        self.fail_sale_create = False
        self.fail_quantity_write = False
        self.fail_offer_message_reads = False
        self.opened = False

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.opened = False

    def add_unit(self, unit_id: str, quantity: int = 1) -> InventoryUnit:
        unit = InventoryUnit(
            id=unit_id,
            quantity=quantity,
            product_name="Jordan 1 Retro High OG",
            size="42",
            brand="Nike",
            vat_label="Margin",
            sku_link_id="recSKU1",
            seller_link_id="recSELLER1",
        )
        self.inventory[unit_id] = unit
        return unit

    async def read_inventory_unit(self, unit_id: str) -> InventoryUnit:
        await asyncio.sleep(0)
        if unit_id not in self.inventory:
            raise UpstreamResponseError("airtable", f"GET Inventory/{unit_id} → 404", 404)
        return self.inventory[unit_id]

    async def create_sale(self, sale: SaleRecord, unit: InventoryUnit) -> SaleRecord:
        await asyncio.sleep(0)
        if self.fail_sale_create:
            raise UpstreamResponseError("airtable", "POST Sales → 422", 422)
        sale.record_id = f"recSALE{len(self.sales) + 1}"
        self.sales.append(sale)
        return sale

    async def set_inventory_quantity(self, unit_id: str, quantity: int) -> None:
        await asyncio.sleep(0)
        if self.fail_quantity_write:
            raise UpstreamResponseError("airtable", f"PATCH Inventory/{unit_id} → 500", 500)
        self.quantity_writes.append((unit_id, quantity))
        self.inventory[unit_id].quantity = quantity

    async def mark_order_matched(self, order_id: str, inventory_unit_id: str) -> None:
        await asyncio.sleep(0)
        self.matched_orders[order_id] = inventory_unit_id

    async def sale_exists_for_order(self, order_id: str) -> bool:
        await asyncio.sleep(0)
        return any(s.order_id == order_id for s in self.sales)

    async def create_offer_message(self, entry: OutboundMessage) -> None:
        await asyncio.sleep(0)
        if entry.seller_id in self.fail_offer_message_writes:
            raise UpstreamResponseError("airtable", "POST Offer Messages → 500", 500)
        self.offer_messages.append(entry)

    async def list_offer_messages(self, order_id: str) -> list[OutboundMessage]:
        await asyncio.sleep(0)
        if self.fail_offer_message_reads:
            raise UpstreamResponseError("airtable", "GET Offer Messages → 503", 503)
        return [m for m in self.offer_messages if m.order_id == order_id]


@pytest.fixture
def platform():
    """Fresh fake Discord guild."""
    return FakeMessagingPlatform()


@pytest.fixture
def store():
    """Fresh fake Airtable base."""
    return FakeRecordStore()


@pytest.fixture
def test_settings():
    """
    Settings isolated from .env files and the environment.

    WHAT: Guild mode with channel creation enabled
    WHY: Sellers' categories are created on demand by the fake platform
    HOW: Explicit values, _env_file=None
    """
    return Settings(
        _env_file=None,
        DISCORD_BOT_TOKEN="test-token",
        DISCORD_GUILD_ID="guild-1",
        DISCORD_CHANNEL_ID="",
        ALLOW_CHANNEL_CREATE=True,
        AIRTABLE_API_KEY="test-key",
        AIRTABLE_BASE_ID="appTEST",
        DISPATCH_CONCURRENCY=5,
        LOG_FILE="",
    )


@pytest.fixture
def context(platform, store, test_settings):
    """Service context wired to the fakes."""
    return ServiceContext(platform, store, test_settings)


@pytest.fixture
def order():
    """Order with a 100.00 ceiling, buyer in the Netherlands at 21%."""
    return Order(
        id="recORDER1",
        human_id="#1001",
        sku="DZ5485-612",
        size="42",
        max_ceiling=Decimal("100.00"),
        target_price=Decimal("95.00"),
        buyer_country="Netherlands",
        buyer_vat_rate=Decimal("0.21"),
    )


@pytest.fixture
def make_seller():
    """Factory for seller candidates; unit id and name derive from the seller id."""
    def _make(
        seller_id: str,
        ask: str = "90.00",
        regime: VatRegime = VatRegime.MARGIN,
        country: str = "Netherlands",
        name: Optional[str] = None
    ) -> SellerCandidate:
        return SellerCandidate(
            seller_id=seller_id,
            seller_name=name or f"Seller {seller_id}",
            inventory_unit_id=f"recINV-{seller_id}",
            product_name="Jordan 1 Retro High OG",
            ask_price=Decimal(ask),
            vat_regime=regime,
            seller_country=country,
        )
    return _make
