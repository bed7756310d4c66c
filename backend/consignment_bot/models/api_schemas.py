"""
Pydantic API schemas.

WHAT: Request and response models for the HTTP endpoints
WHY: Type-safe validation and serialization of the camelCase JSON callers send
HOW: Pydantic v2 models with camelCase aliases, validators and constraints;
     conversion to the domain dataclasses lives next to each model
"""

from decimal import Decimal
from typing import Optional, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .domain import Order, SellerCandidate, VatRegime


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== Dispatch ==========

class OrderPayload(CamelModel):
    """Order being matched."""
    id: str = Field(..., min_length=1, description="Order record id in the store")
    human_id: Optional[str] = Field(default=None, description="Order number shown to sellers")
    sku: Optional[str] = None
    size: Optional[str] = None
    max_ceiling: Decimal = Field(..., gt=0, description="Most the buyer will pay")
    target_price: Optional[Decimal] = Field(default=None, ge=0, description="Carried, not used for pricing")
    buyer_country: str = Field(default="", description="Buyer's tax jurisdiction")
    buyer_vat_rate: Optional[Decimal] = Field(
        default=None, ge=0, lt=1, description="Fraction, e.g. 0.21; default from settings"
    )

    def to_domain(self, default_vat_rate: Decimal) -> Order:
        return Order(
            id=self.id.strip(),
            human_id=self.human_id,
            sku=self.sku,
            size=self.size,
            max_ceiling=self.max_ceiling,
            target_price=self.target_price,
            buyer_country=self.buyer_country,
            buyer_vat_rate=(
                self.buyer_vat_rate if self.buyer_vat_rate is not None else default_vat_rate
            ),
        )


class SellerPayload(CamelModel):
    """One seller candidate for the order."""
    seller_id: str = Field(..., min_length=1)
    seller_name: Optional[str] = None
    inventory_unit_id: str = Field(..., min_length=1)
    product_name: Optional[str] = None
    ask_price: Decimal = Field(..., ge=0)
    vat_regime: VatRegime
    seller_country: str = ""
    quantity: int = Field(default=1, ge=0)

    @field_validator("vat_regime", mode="before")
    @classmethod
    def parse_vat_regime(cls, v):
        """Accept canonical names and the store's labels (VAT0, VAT21, ...)."""
        return VatRegime.parse(v)

    def to_domain(self) -> SellerCandidate:
        return SellerCandidate(
            seller_id=self.seller_id,
            seller_name=self.seller_name,
            inventory_unit_id=self.inventory_unit_id,
            product_name=self.product_name,
            ask_price=self.ask_price,
            vat_regime=self.vat_regime,
            seller_country=self.seller_country,
            quantity=self.quantity,
        )


class DispatchRequest(CamelModel):
    """Request to fan an order out to its sellers."""
    order: OrderPayload
    sellers: List[SellerPayload] = Field(..., min_length=1)


class SentOffer(CamelModel):
    """Seller that received an offer message."""
    seller_id: str
    message_id: str
    channel_id: str
    action: Literal["confirm", "counter_offer"]
    decided_price: float


class FailedOffer(CamelModel):
    """Seller whose dispatch failed."""
    seller_id: str
    error: str
    code: Optional[str] = None


class DispatchResponse(CamelModel):
    """Itemized dispatch result; ok means the request itself was processed."""
    ok: bool
    order_id: str
    sent_count: int
    sent: List[SentOffer]
    failed_count: int
    failed: List[FailedOffer]


# ========== Force close ==========

class ForceCloseRequest(CamelModel):
    """Request to deactivate every offer message of an order."""
    order_id: str = Field(..., min_length=1)
    reason: Optional[str] = Field(default=None, max_length=2000)


class ForceCloseResponse(CamelModel):
    """Result of a force-close."""
    ok: bool
    order_id: str
    attempted: int
    deactivated: int
    failed: int


# ========== Discord interactions ==========

class InteractionData(BaseModel):
    """Component data of an interaction (snake_case, as Discord sends it)."""
    model_config = ConfigDict(extra="ignore")
    custom_id: Optional[str] = None
    component_type: Optional[int] = None


class InteractionMessage(BaseModel):
    """Message the component belongs to."""
    model_config = ConfigDict(extra="ignore")
    id: str
    channel_id: Optional[str] = None


class Interaction(BaseModel):
    """Incoming Discord interaction; only the fields needed to resolve a click."""
    model_config = ConfigDict(extra="ignore")
    type: int
    id: Optional[str] = None
    channel_id: Optional[str] = None
    data: Optional[InteractionData] = None
    message: Optional[InteractionMessage] = None
