"""
Discord interactions webhook.

WHAT: Receives button clicks on offer messages
WHY: Clicks drive the confirmation race; Discord expects an answer within 3 seconds
HOW: PING is answered with PONG; a button click is acknowledged immediately with a
     deferred update and resolved in a background task
"""

from fastapi import APIRouter, BackgroundTasks, Depends

from ....core.context import ServiceContext, get_context
from ....models.api_schemas import Interaction
from ....models.domain import ClickEvent
from ....services import click_token
from ....utils.exceptions import ClickTokenError
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Interaction types
PING = 1
MESSAGE_COMPONENT = 3

# Interaction callback types
PONG = 1
CHANNEL_MESSAGE = 4
DEFERRED_UPDATE_MESSAGE = 6

EPHEMERAL = 64


async def resolve_click(context: ServiceContext, event: ClickEvent):
    """
    Background task resolving one click.

    WHAT: Run the click through the race resolver
    WHY: The HTTP response has already acknowledged the click
    HOW: Log the terminal outcome; unexpected errors are logged, never raised
    """
    try:
        result = await context.race_resolver.handle(event)
        logger.info(
            f"Click on order {result.order_id} by {result.seller_id}: {result.outcome.value} "
            f"(deactivated={result.deactivated}, failed={result.failed})"
        )
    except Exception as e:
        logger.error(f"Error resolving click on message {event.message_id}: {e}", exc_info=True)


@router.post("/interactions")
async def discord_interaction(
    interaction: Interaction,
    background_tasks: BackgroundTasks,
    context: ServiceContext = Depends(get_context)
):
    """
    Handle one Discord interaction.

    Returns:
        Interaction callback JSON
    """
    if interaction.type == PING:
        return {"type": PONG}

    if interaction.type != MESSAGE_COMPONENT or interaction.data is None:
        logger.warning(f"Ignoring unsupported interaction type {interaction.type}")
        return {
            "type": CHANNEL_MESSAGE,
            "data": {"content": "Unsupported interaction.", "flags": EPHEMERAL},
        }

    ack = {"type": DEFERRED_UPDATE_MESSAGE}

    raw = interaction.data.custom_id or ""
    try:
        token = click_token.decode(raw)
    except ClickTokenError as e:
        logger.warning(f"Ignoring click with invalid token {raw!r}: {e.message}")
        return ack

    message = interaction.message
    channel_id = (message.channel_id if message else None) or interaction.channel_id
    if message is None or not channel_id:
        logger.warning(f"Ignoring click on order {token.order_id}: message location missing")
        return ack

    event = ClickEvent(token=token, channel_id=channel_id, message_id=message.id)
    background_tasks.add_task(resolve_click, context, event)
    return ack
