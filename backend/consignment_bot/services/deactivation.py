"""
Message deactivation.

WHAT: Disable the buttons of posted offer messages, singly or as a batch
WHY: Once an order is resolved no seller may act on it any more
HOW: Message edits through the platform; batches run in parallel with per-item isolation
"""

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .offer_message import build_annotation, build_deactivated_message
from ..integrations.protocols import MessagingPlatform
from ..models.domain import MessageLocation
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BatchReport:
    """Outcome of a best-effort batch."""
    attempted: int = 0
    succeeded: list[MessageLocation] = field(default_factory=list)
    failed: list[MessageLocation] = field(default_factory=list)

    @property
    def deactivated(self) -> int:
        return len(self.succeeded)

    def merge(self, other: "BatchReport") -> "BatchReport":
        return BatchReport(
            attempted=self.attempted + other.attempted,
            succeeded=self.succeeded + other.succeeded,
            failed=self.failed + other.failed,
        )


class MessageDeactivator:
    """Edits offer messages on the platform."""

    def __init__(self, platform: MessagingPlatform):
        self.platform = platform

    async def deactivate(self, location: MessageLocation, note: Optional[str]) -> None:
        """
        Disable one message's buttons.

        Raises:
            UpstreamError: Edit failed
        """
        await self.platform.edit_message(
            location.channel_id, location.message_id, build_deactivated_message(note)
        )

    async def annotate(self, location: MessageLocation, note: str) -> None:
        """
        Replace one message's content, leaving its buttons live.

        Raises:
            UpstreamError: Edit failed
        """
        await self.platform.edit_message(
            location.channel_id, location.message_id, build_annotation(note)
        )

    async def deactivate_many(
        self,
        locations: Iterable[MessageLocation],
        note: Optional[str]
    ) -> BatchReport:
        """
        Best-effort parallel deactivation.

        Every item is attempted exactly once; failures are logged and counted,
        never raised and never retried.
        """
        targets = list(dict.fromkeys(locations))
        report = BatchReport(attempted=len(targets))
        if not targets:
            return report

        results = await asyncio.gather(
            *(self.deactivate(location, note) for location in targets),
            return_exceptions=True
        )
        for location, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(
                    f"Failed to deactivate message {location.message_id} "
                    f"in channel {location.channel_id}: {result}"
                )
                report.failed.append(location)
            else:
                report.succeeded.append(location)

        logger.info(f"Deactivated {report.deactivated}/{report.attempted} messages")
        return report
