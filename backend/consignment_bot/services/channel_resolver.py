"""
Seller channel resolution.

WHAT: Map a seller identity and offer kind to the channel the offer is posted in
WHY: Each seller has a private category with one channel per kind of request
HOW: List guild channels, match category case-insensitively, create on miss when allowed
"""

from typing import Optional

from ..core.locks import KeyedLockTable
from ..integrations.protocols import MessagingPlatform
from ..integrations.types import Destination, DestinationKind
from ..models.domain import OfferAction
from ..utils.exceptions import DestinationNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)

CHANNEL_NAMES = {
    OfferAction.CONFIRM: "confirmation-requests",
    OfferAction.COUNTER_OFFER: "offer-requests",
}


def _fold(name: Optional[str]) -> str:
    return str(name or "").strip().casefold()


class ChannelResolver:
    """
    Idempotent get-or-create of seller destinations.

    Two-level hierarchy: guild -> seller category -> kind channel. Without a
    guild every offer goes to one fixed channel.
    """

    def __init__(
        self,
        platform: MessagingPlatform,
        guild_id: Optional[str],
        fallback_channel_id: Optional[str] = None,
        allow_create: bool = False,
        locks: Optional[KeyedLockTable] = None
    ):
        self.platform = platform
        self.guild_id = guild_id or None
        self.fallback_channel_id = fallback_channel_id or None
        self.allow_create = allow_create
        self._locks = locks if locks is not None else KeyedLockTable("channel-resolver")

    async def resolve(self, seller_identity: str, kind: OfferAction) -> str:
        """
        Return the channel id for a seller and kind.

        Args:
            seller_identity: Seller name (or id) naming the category
            kind: CONFIRM -> "confirmation-requests", COUNTER_OFFER -> "offer-requests"

        Raises:
            DestinationNotFoundError: Category or channel missing and creation disabled
            UpstreamError: Platform call failed
        """
        if not self.guild_id:
            if not self.fallback_channel_id:
                raise DestinationNotFoundError(seller_identity, "fixed channel (DISCORD_CHANNEL_ID)")
            return self.fallback_channel_id

        wanted = _fold(seller_identity)
        if not wanted:
            raise DestinationNotFoundError(seller_identity, "seller identity")
        channel_name = CHANNEL_NAMES[kind]

        # Serialized per seller so two dispatches cannot both create the category
        async with self._locks.hold(wanted):
            destinations = await self.platform.list_destinations(self.guild_id)

            category = next(
                (d for d in destinations if d.kind is DestinationKind.GROUP and _fold(d.name) == wanted),
                None
            )
            if category is None:
                category = await self._create(
                    seller_identity, seller_identity.strip(), DestinationKind.GROUP, None, "category"
                )

            channel = next(
                (
                    d for d in destinations
                    if d.kind is DestinationKind.CHANNEL
                    and d.parent_id == category.id
                    and d.name == channel_name
                ),
                None
            )
            if channel is None:
                channel = await self._create(
                    seller_identity, channel_name, DestinationKind.CHANNEL, category.id,
                    f"channel \"{channel_name}\""
                )

        logger.debug(f"Resolved seller=\"{seller_identity}\" kind={kind.value} -> {channel.id}")
        return channel.id

    async def _create(
        self,
        seller_identity: str,
        name: str,
        kind: DestinationKind,
        group_id: Optional[str],
        what: str
    ) -> Destination:
        if not self.allow_create:
            raise DestinationNotFoundError(seller_identity, what)
        logger.info(f"Creating {what} for seller \"{seller_identity}\"")
        return await self.platform.create_destination(name, kind, self.guild_id, group_id)
