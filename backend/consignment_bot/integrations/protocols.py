"""
Collaborator protocol definitions.

WHAT: Role-level interfaces for the messaging platform and the record store
WHY: Decouple services from Discord and Airtable specifics (and from tests' fakes)
HOW: typing.Protocol with async methods
"""

from typing import Any, Optional, Protocol

from .types import Destination, DestinationKind
from ..models.domain import InventoryUnit, OutboundMessage, SaleRecord


class MessagingPlatform(Protocol):
    """Operations the service needs from the chat platform."""

    async def open(self) -> None:
        """Acquire connections."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...

    async def list_destinations(self, parent_id: str) -> list[Destination]:
        """List channels and channel groups under a parent (guild)."""
        ...

    async def create_destination(
        self,
        name: str,
        kind: DestinationKind,
        parent_id: str,
        group_id: Optional[str] = None
    ) -> Destination:
        """Create a channel group, or a channel inside a group."""
        ...

    async def post_message(self, channel_id: str, payload: dict[str, Any]) -> str:
        """Post a message and return its id."""
        ...

    async def edit_message(self, channel_id: str, message_id: str, payload: dict[str, Any]) -> None:
        """Replace content and/or components of a posted message."""
        ...


class RecordStore(Protocol):
    """Operations the service needs from the external record store."""

    async def open(self) -> None:
        """Acquire connections."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...

    async def read_inventory_unit(self, unit_id: str) -> InventoryUnit:
        """Read one inventory unit."""
        ...

    async def create_sale(self, sale: SaleRecord, unit: InventoryUnit) -> SaleRecord:
        """Create the sale row; returns the sale with its record id."""
        ...

    async def set_inventory_quantity(self, unit_id: str, quantity: int) -> None:
        """Overwrite the unit's stock quantity."""
        ...

    async def mark_order_matched(self, order_id: str, inventory_unit_id: str) -> None:
        """Flag the order as matched in the source-of-truth table."""
        ...

    async def sale_exists_for_order(self, order_id: str) -> bool:
        """Idempotency predicate: has any sale been recorded for this order?"""
        ...

    async def create_offer_message(self, entry: OutboundMessage) -> None:
        """Append one row to the offer message registry."""
        ...

    async def list_offer_messages(self, order_id: str) -> list[OutboundMessage]:
        """Every registry row for an order."""
        ...
