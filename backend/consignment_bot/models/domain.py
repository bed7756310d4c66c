"""
Domain models for offer fan-out and click resolution.

WHAT: Orders, seller candidates, decisions, registry entries and click tokens
WHY: Type-safe in-memory state shared by the services, free of HTTP concerns
HOW: Enums and dataclasses; money is always Decimal
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class VatRegime(str, Enum):
    """Tax treatment attached to a priced inventory unit."""
    MARGIN = "Margin"
    ZERO_RATED = "ZeroRated"
    STANDARD = "Standard"

    @classmethod
    def parse(cls, value: "str | VatRegime") -> "VatRegime":
        """
        Parse a regime from its canonical name or the store's label.

        Accepts "Margin", "ZeroRated", "Standard" and the inventory labels
        "VAT0" / "VAT 0%" / "VAT21" / "VAT 21%" (any case, any spacing).

        Raises:
            ValueError: If the value names no known regime
        """
        if isinstance(value, VatRegime):
            return value
        label = "".join(str(value or "").upper().split())
        if label in ("MARGIN", "MARGINSCHEME"):
            return cls.MARGIN
        if label in ("ZERORATED", "VAT0", "VAT0%"):
            return cls.ZERO_RATED
        if label == "STANDARD" or (label.startswith("VAT") and label.rstrip("%")[3:].isdigit()):
            return cls.STANDARD
        raise ValueError(f"Unknown VAT regime: {value!r}")


class OfferAction(str, Enum):
    """What the offer message asks the seller to do."""
    CONFIRM = "confirm"
    COUNTER_OFFER = "counter_offer"


class ClickAction(str, Enum):
    """Button pressed by the seller."""
    CONFIRM = "confirm"
    DENY = "deny"


class ClickOutcome(str, Enum):
    """Terminal state of one click."""
    DENIED = "denied"
    ALREADY_PROCESSING = "already_processing"
    ALREADY_MATCHED = "already_matched"
    WON = "won"
    FAILED = "failed"


@dataclass
class Order:
    """Buyer order being matched; owned by the record store."""
    id: str
    human_id: Optional[str]
    sku: Optional[str]
    size: Optional[str]
    max_ceiling: Decimal
    target_price: Optional[Decimal]
    buyer_country: str
    buyer_vat_rate: Decimal


@dataclass
class SellerCandidate:
    """One seller holding an inventory unit that fits the order."""
    seller_id: str
    seller_name: Optional[str]
    inventory_unit_id: str
    product_name: Optional[str]
    ask_price: Decimal
    vat_regime: VatRegime
    seller_country: str
    quantity: int = 1

    @property
    def identity(self) -> str:
        """Name used to find the seller's category (name first, id as fallback)."""
        return (self.seller_name or "").strip() or self.seller_id


@dataclass(frozen=True)
class OfferDecision:
    """Price decision for one seller; amounts are rounded for display/storage."""
    action: OfferAction
    decided_price: Decimal
    display_ask_price: Decimal
    display_ceiling: Decimal
    regime_label: str

    @property
    def is_confirm(self) -> bool:
        return self.action is OfferAction.CONFIRM


@dataclass(frozen=True)
class MessageLocation:
    """Where a posted message lives on the platform."""
    channel_id: str
    message_id: str


@dataclass(frozen=True)
class OutboundMessage:
    """Registry entry for one posted offer message (append-only)."""
    order_id: str
    seller_id: Optional[str]
    inventory_unit_id: Optional[str]
    channel_id: str
    message_id: str
    decided_price: Optional[Decimal]

    @property
    def location(self) -> MessageLocation:
        return MessageLocation(self.channel_id, self.message_id)


@dataclass(frozen=True)
class ClickToken:
    """Complete action context carried by a button identifier."""
    action: ClickAction
    order_id: str
    seller_id: str
    inventory_unit_id: str
    decided_price: Decimal


@dataclass(frozen=True)
class ClickEvent:
    """Decoded click plus the platform-supplied message location."""
    token: ClickToken
    channel_id: str
    message_id: str

    @property
    def location(self) -> MessageLocation:
        return MessageLocation(self.channel_id, self.message_id)


@dataclass
class InventoryUnit:
    """Inventory record as needed to write a sale."""
    id: str
    quantity: int
    product_name: str
    size: str
    brand: str
    vat_label: str
    sku_link_id: Optional[str]
    seller_link_id: Optional[str]


@dataclass
class SaleRecord:
    """Sale row created once per order by the winning confirmation."""
    order_id: str
    inventory_unit_id: str
    seller_id: str
    final_price: Decimal
    record_id: Optional[str] = None
