"""
Offer endpoints.

WHAT: Dispatch an order to its sellers, force-close an order's offers
WHY: Entry points used by the order-matching automation
HOW: FastAPI router delegating to the dispatcher and race resolver in the service context
"""

from fastapi import APIRouter, Depends

from ....core.context import ServiceContext, get_context
from ....models.api_schemas import (
    DispatchRequest,
    DispatchResponse,
    FailedOffer,
    ForceCloseRequest,
    ForceCloseResponse,
    SentOffer,
)
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/offers", response_model=DispatchResponse)
async def dispatch_offers(
    request: DispatchRequest,
    context: ServiceContext = Depends(get_context)
):
    """
    Fan an order out to its seller candidates.

    WHAT: Post one offer message per seller and register it
    WHY: Sellers confirm or accept the counter-offer from the message
    HOW: Dispatcher runs sellers independently; partial failure is reported, not raised

    Returns:
        DispatchResponse itemizing sent and failed sellers
    """
    order = request.order.to_domain(context.settings.DEFAULT_BUYER_VAT_RATE)
    sellers = [s.to_domain() for s in request.sellers]

    report = await context.dispatcher.dispatch(order, sellers)

    sent = [
        SentOffer(
            seller_id=r.seller_id,
            message_id=r.message_id,
            channel_id=r.channel_id,
            action=r.action.value,
            decided_price=float(r.decided_price),
        )
        for r in report.sent
    ]
    failed = [
        FailedOffer(seller_id=r.seller_id, error=r.error or "unknown error", code=r.error_code)
        for r in report.failed
    ]
    return DispatchResponse(
        ok=True,
        order_id=order.id,
        sent_count=len(sent),
        sent=sent,
        failed_count=len(failed),
        failed=failed,
    )


@router.post("/offers/close", response_model=ForceCloseResponse)
async def close_offers(
    request: ForceCloseRequest,
    context: ServiceContext = Depends(get_context)
):
    """
    Force-close every offer message of an order.

    Idempotent: a repeated call re-applies the same edit and changes nothing else.
    """
    order_id = request.order_id.strip()
    report = await context.race_resolver.close_order(order_id, request.reason)
    return ForceCloseResponse(
        ok=True,
        order_id=order_id,
        attempted=report.attempted,
        deactivated=report.deactivated,
        failed=len(report.failed),
    )
