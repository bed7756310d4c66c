"""
Offer message rendering.

WHAT: Discord message payloads for offers and for resolved (deactivated) offers
WHY: Sellers see the product, both prices with their VAT tag, and two buttons
HOW: Plain dicts in Discord's message/embed/component JSON shape
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from . import click_token
from ..models.domain import ClickAction, Order, OfferDecision, SellerCandidate

# Discord component constants
ACTION_ROW = 1
BUTTON = 2
STYLE_SECONDARY = 2
STYLE_SUCCESS = 3
STYLE_DANGER = 4

COLOR_CONFIRM = 0x2ECC71
COLOR_OFFER = 0xF1C40F

DASH = "—"

# Resolution notes
NOTE_ALREADY_PROCESSING = "⏳ Another confirmation for this order is already being processed."
NOTE_ALREADY_MATCHED = "⛔ Already matched. Buttons disabled."


def note_matched_by(seller_id: str) -> str:
    return f"✅ Matched by {seller_id}. Offers closed."


def note_denied_by(seller_id: str) -> str:
    return f"❌ {seller_id} denied / not available."


def format_money(value: Optional[Decimal], currency: str = "€") -> str:
    if value is None or not value.is_finite():
        return DASH
    return f"{currency}{value:.2f}"


def build_offer_message(
    order: Order,
    seller: SellerCandidate,
    decision: OfferDecision,
    currency: str = "€",
    show_max_on_confirm: bool = False
) -> dict[str, Any]:
    """
    Render the interactive offer message for one seller.

    Both buttons carry a click token with the decided price, so the click can
    be resolved without any lookup of what was offered.

    Raises:
        ClickTokenError: If an id cannot be encoded into a button identifier
    """
    confirm_case = decision.is_confirm
    sku = order.sku or DASH
    size = order.size or DASH

    content = (
        f"📋 Match found for {sku} / {size}"
        if confirm_case
        else f"📑 Offer sent for {sku} / {size}"
    )
    title = (
        "🚀 Your Item Matched One Of Our Orders"
        if confirm_case
        else "💸 We Got An Offer For Your Item"
    )
    description = "\n".join([
        "If you still have this pair, click **Confirm** below. "
        "FCFS — other sellers might also have this listed.",
        "",
        "**Product Name**",
        seller.product_name or DASH,
        "",
        f"**SKU**\n{sku}",
        f"**Size**\n{size}",
        "",
        "**Order**",
        order.human_id or order.id,
    ])

    tag = decision.regime_label
    fields = [{
        "name": "Your Price",
        "value": f"{format_money(decision.display_ask_price, currency)} {tag}",
        "inline": True,
    }]
    if not confirm_case:
        fields.append({
            "name": "Our Offer",
            "value": f"{format_money(decision.decided_price, currency)} {tag}",
            "inline": True,
        })
    elif show_max_on_confirm:
        fields.append({
            "name": "Max We Buy",
            "value": f"{format_money(decision.display_ceiling, currency)} {tag}",
            "inline": True,
        })

    accept_label = (
        "Confirm"
        if confirm_case
        else f"Accept Offer {format_money(decision.decided_price, currency)}"
    )

    def token(action: ClickAction) -> str:
        return click_token.encode(
            action, order.id, seller.seller_id, seller.inventory_unit_id, decision.decided_price
        )

    components = [{
        "type": ACTION_ROW,
        "components": [
            {
                "type": BUTTON, "style": STYLE_SUCCESS,
                "label": accept_label,
                "custom_id": token(ClickAction.CONFIRM),
            },
            {
                "type": BUTTON, "style": STYLE_DANGER,
                "label": "Deny",
                "custom_id": token(ClickAction.DENY),
            },
        ],
    }]

    embed = {
        "title": title,
        "description": description,
        "color": COLOR_CONFIRM if confirm_case else COLOR_OFFER,
        "fields": fields,
        "footer": {"text": f"SellerID: {seller.seller_id}"},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    return {"content": content, "embeds": [embed], "components": components}


def build_deactivated_message(note: Optional[str]) -> dict[str, Any]:
    """Payload replacing the buttons with two disabled ones, plus the resolution note."""
    payload: dict[str, Any] = {
        "components": [{
            "type": ACTION_ROW,
            "components": [
                {
                    "type": BUTTON, "style": STYLE_SECONDARY, "label": "Confirmed",
                    "custom_id": "confirmed", "disabled": True,
                },
                {
                    "type": BUTTON, "style": STYLE_SECONDARY, "label": "Denied",
                    "custom_id": "denied", "disabled": True,
                },
            ],
        }],
    }
    if note:
        payload["content"] = note
    return payload


def build_annotation(note: str) -> dict[str, Any]:
    """Content-only edit; components are left untouched so the buttons stay live."""
    return {"content": note}
