"""
Confirmation race resolver.

WHAT: Resolve seller clicks so that exactly one confirmation wins an order
WHY: Several sellers may hold the same item; only the first valid confirm may sell it
HOW: Per-order in-process guard, sale-exists check against the store, commit,
     then best-effort deactivation of every sibling message

States per order: Idle (no guard) -> Locked (guard held) -> Terminal.

The sale row is the durable fact of record and the commit point. Anything
failing before it aborts the click with no writes; anything failing after it
is logged and never rolls the sale back. Message edits are cleanup only.

The guard only covers this process. Across replicas the sale-exists check is
check-then-act: two replicas can both pass it before either writes the sale.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from .deactivation import BatchReport, MessageDeactivator
from .message_registry import MessageRegistry
from .offer_message import (
    NOTE_ALREADY_MATCHED,
    NOTE_ALREADY_PROCESSING,
    note_denied_by,
    note_matched_by,
)
from ..core.locks import KeyedLockTable
from ..integrations.protocols import RecordStore
from ..integrations.types import UpstreamError
from ..models.domain import (
    ClickAction,
    ClickEvent,
    ClickOutcome,
    MessageLocation,
    SaleRecord,
)
from ..utils.exceptions import BusinessException
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Orders won in this process (winner seller id), oldest evicted first
COMMITTED_MEMORY = 1024


@dataclass
class ClickResult:
    """Terminal state of one click."""
    outcome: ClickOutcome
    order_id: str
    seller_id: str
    deactivated: int = 0
    failed: int = 0
    sale_record_id: Optional[str] = None
    error: Optional[str] = None


class ConfirmationRaceResolver:
    """Consumes click events and enforces single-winner semantics per order."""

    def __init__(
        self,
        store: RecordStore,
        registry: MessageRegistry,
        deactivator: MessageDeactivator,
        guard: Optional[KeyedLockTable] = None
    ):
        self.store = store
        self.registry = registry
        self.deactivator = deactivator
        self.guard = guard if guard is not None else KeyedLockTable("confirmation-guard")
        self._committed: OrderedDict[str, str] = OrderedDict()

    async def handle(self, event: ClickEvent) -> ClickResult:
        """
        Resolve one click.

        Args:
            event: Decoded click token plus the clicked message's location

        Returns:
            ClickResult; processing errors are reported as FAILED, never raised
        """
        token = event.token
        logger.info(
            f"Click {token.action.value} on order {token.order_id} by seller {token.seller_id} "
            f"(unit {token.inventory_unit_id}, price {token.decided_price}, message {event.message_id})"
        )
        if token.action is ClickAction.DENY:
            return await self._deny(event)
        return await self._confirm(event)

    async def _deny(self, event: ClickEvent) -> ClickResult:
        """Deactivate only the clicked message; siblings stay live."""
        token = event.token
        try:
            await self.deactivator.deactivate(event.location, note_denied_by(token.seller_id))
        except UpstreamError as e:
            logger.error(f"Deny on order {token.order_id} could not be applied: {e}")
            return ClickResult(
                ClickOutcome.FAILED, token.order_id, token.seller_id, failed=1, error=str(e)
            )
        return ClickResult(ClickOutcome.DENIED, token.order_id, token.seller_id, deactivated=1)

    async def _confirm(self, event: ClickEvent) -> ClickResult:
        token = event.token
        async with self.guard.try_hold(token.order_id) as acquired:
            if not acquired:
                return await self._already_processing(event)
            return await self._confirm_locked(event)

    async def _already_processing(self, event: ClickEvent) -> ClickResult:
        """Same-process loser: annotate, keep the buttons in case the holder fails."""
        token = event.token
        winner = self._committed.get(token.order_id)
        if winner is not None:
            return await self._closed_by(event, winner)

        logger.info(f"Order {token.order_id} is already being confirmed; seller {token.seller_id} waits")
        try:
            await self.deactivator.annotate(event.location, NOTE_ALREADY_PROCESSING)
        except UpstreamError as e:
            logger.warning(f"Failed to annotate message {event.message_id}: {e}")
        return ClickResult(ClickOutcome.ALREADY_PROCESSING, token.order_id, token.seller_id)

    async def _closed_by(self, event: ClickEvent, winner: str) -> ClickResult:
        """
        Loser arriving after the winner committed while the guard is still held.

        The winner's broadcast may already have closed this message; re-apply
        the same edit rather than annotating over it.
        """
        token = event.token
        logger.info(f"Order {token.order_id} already won by {winner}; closing message {event.message_id}")
        try:
            await self.deactivator.deactivate(event.location, note_matched_by(winner))
        except UpstreamError as e:
            logger.warning(f"Failed to deactivate message {event.message_id}: {e}")
            return ClickResult(ClickOutcome.ALREADY_MATCHED, token.order_id, token.seller_id, failed=1)
        return ClickResult(ClickOutcome.ALREADY_MATCHED, token.order_id, token.seller_id, deactivated=1)

    def _remember_commit(self, order_id: str, seller_id: str) -> None:
        self._committed[order_id] = seller_id
        self._committed.move_to_end(order_id)
        while len(self._committed) > COMMITTED_MEMORY:
            self._committed.popitem(last=False)

    async def _confirm_locked(self, event: ClickEvent) -> ClickResult:
        token = event.token

        # ---- before commit: any failure aborts the click ----
        try:
            if await self.store.sale_exists_for_order(token.order_id):
                return await self._already_matched(event)

            unit = await self.store.read_inventory_unit(token.inventory_unit_id)
            sale = await self.store.create_sale(
                SaleRecord(
                    order_id=token.order_id,
                    inventory_unit_id=token.inventory_unit_id,
                    seller_id=token.seller_id,
                    final_price=token.decided_price,
                ),
                unit
            )
        except (UpstreamError, BusinessException) as e:
            logger.error(
                f"Confirmation for order {token.order_id} by seller {token.seller_id} aborted: {e}",
                exc_info=True
            )
            return ClickResult(
                ClickOutcome.FAILED, token.order_id, token.seller_id, error=str(e)
            )

        # ---- committed: from here on failures are logged only ----
        self._remember_commit(token.order_id, token.seller_id)
        logger.info(
            f"Order {token.order_id} won by seller {token.seller_id} "
            f"(sale {sale.record_id}, price {sale.final_price})"
        )

        new_quantity = max(0, unit.quantity - 1)
        try:
            await self.store.set_inventory_quantity(unit.id, new_quantity)
            logger.info(f"Inventory {unit.id} quantity {unit.quantity} -> {new_quantity}")
        except UpstreamError as e:
            logger.error(f"Sale {sale.record_id} recorded but quantity of {unit.id} not decremented: {e}")

        try:
            await self.store.mark_order_matched(token.order_id, unit.id)
        except UpstreamError as e:
            logger.error(f"Sale {sale.record_id} recorded but order {token.order_id} not marked matched: {e}")

        note = note_matched_by(token.seller_id)
        report = BatchReport(attempted=1)
        try:
            await self.deactivator.deactivate(event.location, note)
            report.succeeded.append(event.location)
        except UpstreamError as e:
            logger.warning(f"Failed to deactivate winning message {event.message_id}: {e}")
            report.failed.append(event.location)

        siblings = [loc for loc in await self._registered(token.order_id) if loc != event.location]
        report = report.merge(await self.deactivator.deactivate_many(siblings, note))

        return ClickResult(
            ClickOutcome.WON,
            token.order_id,
            token.seller_id,
            deactivated=report.deactivated,
            failed=len(report.failed),
            sale_record_id=sale.record_id,
        )

    async def _already_matched(self, event: ClickEvent) -> ClickResult:
        """A prior click (possibly on another replica) won: close everything."""
        token = event.token
        logger.info(f"Order {token.order_id} already matched; closing all offers (click by {token.seller_id})")

        locations = await self._registered(token.order_id)
        if event.location not in locations:
            locations.append(event.location)
        report = await self.deactivator.deactivate_many(locations, NOTE_ALREADY_MATCHED)

        return ClickResult(
            ClickOutcome.ALREADY_MATCHED,
            token.order_id,
            token.seller_id,
            deactivated=report.deactivated,
            failed=len(report.failed),
        )

    async def _registered(self, order_id: str) -> list[MessageLocation]:
        """Registry locations for an order; empty (logged) if the store read fails."""
        try:
            return await self.registry.locations(order_id)
        except UpstreamError as e:
            logger.error(f"Could not read offer messages for order {order_id}: {e}")
            return []

    async def close_order(self, order_id: str, reason: Optional[str]) -> BatchReport:
        """
        Force-close an order: deactivate every registered message with the reason.

        Idempotent: repeating it only re-applies the same edit.

        Raises:
            UpstreamError: Registry read failed
        """
        locations = await self.registry.locations(order_id)
        logger.info(f"Force-closing order {order_id}: {len(locations)} messages ({reason or 'no reason'})")
        return await self.deactivator.deactivate_many(locations, reason)
