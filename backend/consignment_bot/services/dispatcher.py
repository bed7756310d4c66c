"""
Offer fan-out dispatcher.

WHAT: Post one interactive offer message per seller candidate of an order
WHY: Every seller holding a matching unit gets a chance to confirm
HOW: Per seller: price decision, channel resolution, post, registry append;
     sellers run concurrently (bounded) and fail independently
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .channel_resolver import ChannelResolver
from .deactivation import MessageDeactivator
from .message_registry import MessageRegistry
from .offer_message import build_offer_message
from .pricing import decide_for_seller
from ..integrations.protocols import MessagingPlatform
from ..integrations.types import UpstreamError
from ..models.domain import (
    MessageLocation,
    OfferAction,
    Order,
    OutboundMessage,
    SellerCandidate,
)
from ..utils.exceptions import BusinessException, DispatchValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class SellerDispatchResult:
    """Outcome of dispatching to one seller."""
    seller_id: str
    ok: bool
    channel_id: Optional[str] = None
    message_id: Optional[str] = None
    action: Optional[OfferAction] = None
    decided_price: Optional[Decimal] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class DispatchReport:
    """Itemized result of one dispatch request."""
    order_id: str
    results: list[SellerDispatchResult] = field(default_factory=list)

    @property
    def sent(self) -> list[SellerDispatchResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[SellerDispatchResult]:
        return [r for r in self.results if not r.ok]


class OfferDispatcher:
    """Fans an order out to its seller candidates."""

    def __init__(
        self,
        platform: MessagingPlatform,
        resolver: ChannelResolver,
        registry: MessageRegistry,
        deactivator: MessageDeactivator,
        concurrency: int = 5,
        currency: str = "€",
        show_max_on_confirm: bool = False
    ):
        self.platform = platform
        self.resolver = resolver
        self.registry = registry
        self.deactivator = deactivator
        self.concurrency = max(1, concurrency)
        self.currency = currency
        self.show_max_on_confirm = show_max_on_confirm

    async def dispatch(self, order: Order, sellers: list[SellerCandidate]) -> DispatchReport:
        """
        Dispatch an order to all sellers.

        WHAT: Post and register one offer message per seller
        WHY: Entry point of the fan-out
        HOW: Independent per-seller tasks under a semaphore; results keep input order

        Raises:
            DispatchValidationError: Order without id or no sellers
        """
        if not order.id or not order.id.strip():
            raise DispatchValidationError(
                "Missing order or sellers in payload",
                field_errors=[{"field": "order.id", "error": "required"}]
            )
        if not sellers:
            raise DispatchValidationError(
                "Missing order or sellers in payload",
                field_errors=[{"field": "sellers", "error": "at least one seller required"}]
            )

        logger.info(f"Dispatching order {order.id} ({order.human_id or '-'}) to {len(sellers)} sellers")
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(seller: SellerCandidate) -> SellerDispatchResult:
            async with semaphore:
                return await self.dispatch_one(order, seller)

        results = await asyncio.gather(*(run(s) for s in sellers))
        report = DispatchReport(order_id=order.id, results=list(results))

        logger.info(
            f"Dispatch for order {order.id} complete: "
            f"{len(report.sent)} sent, {len(report.failed)} failed"
        )
        return report

    async def dispatch_one(self, order: Order, seller: SellerCandidate) -> SellerDispatchResult:
        """
        Dispatch to one seller; never raises.

        Failures (destination missing, upstream error, bad input, unexpected
        errors) are returned as a failed result so the other sellers are unaffected.
        """
        result = SellerDispatchResult(seller_id=seller.seller_id, ok=False)
        try:
            decision = decide_for_seller(order, seller)
            result.action = decision.action
            result.decided_price = decision.decided_price

            payload = build_offer_message(
                order, seller, decision,
                currency=self.currency,
                show_max_on_confirm=self.show_max_on_confirm
            )
            channel_id = await self.resolver.resolve(seller.identity, decision.action)
            result.channel_id = channel_id

            logger.info(
                f"Posting to seller=\"{seller.identity}\" kind={decision.action.value} "
                f"channelId={channel_id} product=\"{seller.product_name or '-'}\""
            )
            message_id = await self.platform.post_message(channel_id, payload)
            result.message_id = message_id

        except BusinessException as e:
            logger.warning(f"Dispatch to seller {seller.seller_id} failed: {e.code} - {e.message}")
            result.error, result.error_code = e.message, e.code
            return result
        except UpstreamError as e:
            logger.error(f"Dispatch to seller {seller.seller_id} failed: {e}")
            result.error, result.error_code = str(e), e.code
            return result
        except ValueError as e:
            logger.warning(f"Dispatch to seller {seller.seller_id} rejected: {e}")
            result.error, result.error_code = str(e), "VALIDATION_ERROR"
            return result
        except Exception as e:
            logger.error(f"Unexpected error dispatching to seller {seller.seller_id}: {e}", exc_info=True)
            result.error, result.error_code = str(e) or type(e).__name__, INTERNAL_ERROR
            return result

        entry = OutboundMessage(
            order_id=order.id,
            seller_id=seller.seller_id,
            inventory_unit_id=seller.inventory_unit_id,
            channel_id=channel_id,
            message_id=message_id,
            decided_price=decision.decided_price,
        )
        try:
            await self.registry.append(entry)
        except Exception as e:
            # An unregistered message could never be closed by a sibling's win
            logger.error(
                f"Registry append failed for message {message_id} (seller {seller.seller_id}): {e}; "
                f"withdrawing the message",
                exc_info=not isinstance(e, UpstreamError)
            )
            try:
                await self.deactivator.deactivate(
                    MessageLocation(channel_id, message_id),
                    "⚠️ This offer could not be registered and has been withdrawn."
                )
            except UpstreamError as withdraw_error:
                logger.error(f"Failed to withdraw unregistered message {message_id}: {withdraw_error}")
            result.error = str(e) or type(e).__name__
            result.error_code = getattr(e, "code", INTERNAL_ERROR)
            return result

        result.ok = True
        return result
