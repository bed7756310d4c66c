"""
Price decision engine.

WHAT: Normalize a seller's ask against the buyer's ceiling across VAT regimes
WHY: Decide per seller whether to ask for a confirmation or send a counter-offer
HOW: Decimal arithmetic on a common basis, half-up rounding only on the final figures

Normalization:
- Margin / Standard: ask and ceiling are already VAT-inclusive, compared as-is.
- ZeroRated, same jurisdiction: reclassified as domestic standard rate, so the
  ask is grossed up, ask × (1 + r). The grossed-up figure is also what the
  seller sees as "your price".
- ZeroRated, cross-border: the ask stays on the zero-rated basis and the
  ceiling is discounted instead, ceiling ÷ (1 + r).

Confirm iff normalized ask <= normalized ceiling (equality confirms).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ..models.domain import Order, OfferAction, OfferDecision, SellerCandidate, VatRegime
from ..utils.logger import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")
ONE = Decimal("1")

# ISO 3166-1 alpha-2 codes of EU member states (VAT jurisdictions)
_COUNTRY_CODES = {
    "at": "austria", "be": "belgium", "bg": "bulgaria", "hr": "croatia",
    "cy": "cyprus", "cz": "czechia", "dk": "denmark", "ee": "estonia",
    "fi": "finland", "fr": "france", "de": "germany", "gr": "greece",
    "el": "greece", "hu": "hungary", "ie": "ireland", "it": "italy",
    "lv": "latvia", "lt": "lithuania", "lu": "luxembourg", "mt": "malta",
    "nl": "netherlands", "pl": "poland", "pt": "portugal", "ro": "romania",
    "sk": "slovakia", "si": "slovenia", "es": "spain", "se": "sweden",
}
_COUNTRY_ALIASES = {
    "holland": "netherlands",
    "czech republic": "czechia",
    "deutschland": "germany",
    "nederland": "netherlands",
}


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half-up. Only applied to figures that get stored or shown."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_jurisdiction(country: Optional[str]) -> str:
    """
    Canonical form of a country name for jurisdiction comparison.

    Args:
        country: Free-text country name or ISO alpha-2 code

    Returns:
        Lowercase canonical name ("" when unknown/empty)
    """
    name = " ".join(str(country or "").split()).casefold()
    if name.startswith("the "):
        name = name[4:]
    name = _COUNTRY_CODES.get(name, name)
    return _COUNTRY_ALIASES.get(name, name)


def same_jurisdiction(seller_country: Optional[str], buyer_country: Optional[str]) -> bool:
    """True when both parties are known and in the same tax jurisdiction."""
    seller = normalize_jurisdiction(seller_country)
    buyer = normalize_jurisdiction(buyer_country)
    return bool(seller) and seller == buyer


def format_rate(rate: Decimal) -> str:
    """0.21 -> "21", 0.055 -> "5.5"."""
    return format((rate * 100).normalize(), "f")


def regime_label(regime: VatRegime, domestic: bool, buyer_vat_rate: Decimal) -> str:
    """Tag shown next to every price in the offer message."""
    if regime is VatRegime.MARGIN:
        return "(Margin)"
    if regime is VatRegime.ZERO_RATED and not domestic:
        return "(VAT 0%)"
    return f"(VAT {format_rate(buyer_vat_rate)}%)"


def decide_offer(
    ask: Decimal,
    regime: VatRegime,
    seller_country: Optional[str],
    buyer_country: Optional[str],
    ceiling: Decimal,
    buyer_vat_rate: Decimal
) -> OfferDecision:
    """
    Decide Confirm vs CounterOffer for one seller.

    Args:
        ask: Seller's asking price, on the seller's own regime basis
        regime: VAT regime of the inventory unit
        seller_country: Seller's jurisdiction
        buyer_country: Buyer's jurisdiction
        ceiling: Buyer's maximum buying price (VAT-inclusive)
        buyer_vat_rate: Buyer jurisdiction's standard rate as a fraction

    Returns:
        OfferDecision with rounded decided/display prices

    Raises:
        ValueError: Negative ask, non-positive ceiling or rate outside [0, 1)
    """
    if ask < 0:
        raise ValueError(f"ask must be >= 0, got {ask}")
    if ceiling <= 0:
        raise ValueError(f"ceiling must be > 0, got {ceiling}")
    if buyer_vat_rate < 0 or buyer_vat_rate >= 1:
        raise ValueError(f"buyer_vat_rate must be a fraction in [0, 1), got {buyer_vat_rate}")

    domestic = same_jurisdiction(seller_country, buyer_country)
    normalized_ask = ask
    normalized_ceiling = ceiling

    if regime is VatRegime.ZERO_RATED:
        if domestic:
            normalized_ask = ask * (ONE + buyer_vat_rate)
        else:
            normalized_ceiling = ceiling / (ONE + buyer_vat_rate)

    if normalized_ask <= normalized_ceiling:
        action = OfferAction.CONFIRM
        decided = normalized_ask
    else:
        action = OfferAction.COUNTER_OFFER
        decided = normalized_ceiling

    decision = OfferDecision(
        action=action,
        decided_price=round_money(decided),
        display_ask_price=round_money(normalized_ask),
        display_ceiling=round_money(normalized_ceiling),
        regime_label=regime_label(regime, domestic, buyer_vat_rate),
    )

    logger.debug(
        f"Price decision: ask={ask} regime={regime.value} domestic={domestic} "
        f"-> {normalized_ask} vs {normalized_ceiling}: {action.value} @ {decision.decided_price}"
    )
    return decision


def decide_for_seller(order: Order, seller: SellerCandidate) -> OfferDecision:
    """Decision for one seller candidate of an order."""
    return decide_offer(
        ask=seller.ask_price,
        regime=seller.vat_regime,
        seller_country=seller.seller_country,
        buyer_country=order.buyer_country,
        ceiling=order.max_ceiling,
        buyer_vat_rate=order.buyer_vat_rate,
    )
