"""
Click token codec.

WHAT: Encode/decode the full action context carried by a button identifier
WHY: A click must be actionable after a restart without any local state
HOW: Fixed field order joined by "|": action|orderId|sellerId|inventoryUnitId|decidedPrice
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..models.domain import ClickAction, ClickToken
from ..utils.exceptions import ClickTokenError

DELIMITER = "|"
FIELD_COUNT = 5
MAX_TOKEN_LENGTH = 100  # Discord custom_id limit


def encode(
    action: ClickAction,
    order_id: str,
    seller_id: str,
    inventory_unit_id: str,
    decided_price: Decimal
) -> str:
    """
    Encode a click token.

    Raises:
        ClickTokenError: If a field is empty or contains the delimiter, or the
            token would exceed the platform's identifier length
    """
    ids = {"order_id": order_id, "seller_id": seller_id, "inventory_unit_id": inventory_unit_id}
    for name, value in ids.items():
        value = str(value or "")
        if not value:
            raise ClickTokenError(f"{name} is empty")
        if DELIMITER in value:
            raise ClickTokenError(f"{name} contains the token delimiter: {value!r}")

    price = str(Decimal(str(decided_price)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    token = DELIMITER.join([ClickAction(action).value, order_id, seller_id, inventory_unit_id, price])
    if len(token) > MAX_TOKEN_LENGTH:
        raise ClickTokenError(f"token longer than {MAX_TOKEN_LENGTH} characters", token=token)
    return token


def decode(raw: str) -> ClickToken:
    """
    Decode a click token.

    Raises:
        ClickTokenError: Wrong field count, unknown action, empty id or bad price
    """
    parts = str(raw or "").split(DELIMITER)
    if len(parts) != FIELD_COUNT:
        raise ClickTokenError(f"expected {FIELD_COUNT} fields, got {len(parts)}", token=raw)

    action_raw, order_id, seller_id, inventory_unit_id, price_raw = parts
    try:
        action = ClickAction(action_raw)
    except ValueError as e:
        raise ClickTokenError(f"unknown action {action_raw!r}", token=raw) from e

    if not order_id or not seller_id or not inventory_unit_id:
        raise ClickTokenError("empty id field", token=raw)

    try:
        price = Decimal(price_raw)
    except InvalidOperation as e:
        raise ClickTokenError(f"price is not numeric: {price_raw!r}", token=raw) from e
    if not price.is_finite():
        raise ClickTokenError(f"price is not finite: {price_raw!r}", token=raw)

    return ClickToken(
        action=action,
        order_id=order_id,
        seller_id=seller_id,
        inventory_unit_id=inventory_unit_id,
        decided_price=price,
    )
