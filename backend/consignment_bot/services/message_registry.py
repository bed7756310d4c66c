"""
Offer message registry.

WHAT: Append/query log of every offer message posted for an order
WHY: The only durable memory of which messages still need resolving
HOW: Thin layer over the record store; every query re-reads the store (no cache)
"""

from ..integrations.protocols import RecordStore
from ..models.domain import MessageLocation, OutboundMessage
from ..utils.logger import get_logger

logger = get_logger(__name__)


class MessageRegistry:
    """Registry of posted offer messages, backed by the record store."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def append(self, entry: OutboundMessage) -> None:
        """
        Record a posted message.

        Raises:
            UpstreamError: Store write failed
        """
        await self.store.create_offer_message(entry)
        logger.debug(
            f"Registered message {entry.message_id} (order={entry.order_id}, seller={entry.seller_id})"
        )

    async def query(self, order_id: str) -> list[OutboundMessage]:
        """
        Every registered message for an order, in store order.

        Raises:
            UpstreamError: Store read failed
        """
        entries = await self.store.list_offer_messages(order_id)
        logger.debug(f"Registry holds {len(entries)} messages for order {order_id}")
        return entries

    async def locations(self, order_id: str) -> list[MessageLocation]:
        """Distinct message locations for an order."""
        seen: dict[MessageLocation, None] = {}
        for entry in await self.query(order_id):
            seen.setdefault(entry.location, None)
        return list(seen)
