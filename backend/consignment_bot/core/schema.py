"""
Record store schema mapping.

WHAT: The one explicit mapping from logical fields to store tables and columns
WHY: Field names are resolved once at startup instead of probed per request
HOW: Frozen dataclasses built from settings; required names are checked eagerly
"""

from dataclasses import dataclass
from typing import Optional

from .config import Settings
from ..models.fields import FieldKind
from ..utils.exceptions import ConfigurationError


@dataclass(frozen=True)
class FieldSpec:
    """A mapped store column and the kind of value it holds."""
    name: str
    kind: FieldKind


@dataclass(frozen=True)
class OrderFields:
    status: FieldSpec
    matched_inventory: Optional[FieldSpec]


@dataclass(frozen=True)
class InventoryFields:
    quantity: FieldSpec
    product_name: FieldSpec
    size: FieldSpec
    brand: Optional[FieldSpec]
    vat_type: FieldSpec
    sku_link: Optional[FieldSpec]
    seller_link: Optional[FieldSpec]


@dataclass(frozen=True)
class SaleFields:
    product_name: FieldSpec
    size: FieldSpec
    brand: Optional[FieldSpec]
    final_price: FieldSpec
    vat_type: FieldSpec
    sku_link: Optional[FieldSpec]
    seller_link: Optional[FieldSpec]
    order_link: Optional[FieldSpec]
    order_record_id: FieldSpec


@dataclass(frozen=True)
class OfferMessageFields:
    order_id: FieldSpec
    seller_id: FieldSpec
    inventory_id: FieldSpec
    channel_id: FieldSpec
    message_id: FieldSpec
    offer_price: FieldSpec


@dataclass(frozen=True)
class StoreSchema:
    """Tables and fields the service reads and writes."""
    orders_table: str
    inventory_table: str
    offer_messages_table: str
    sales_table: str
    order: OrderFields
    inventory: InventoryFields
    sale: SaleFields
    offer_message: OfferMessageFields
    order_matched_status: str

    @classmethod
    def from_settings(cls, s: Settings) -> "StoreSchema":
        """
        Resolve the schema from settings.

        Raises:
            ConfigurationError: If a required table or field name is blank
        """
        missing = [
            name for name in (
                "AIRTABLE_TABLE_ORDERS", "AIRTABLE_TABLE_INVENTORY",
                "AIRTABLE_TABLE_OFFER_MSGS", "AIRTABLE_TABLE_SALES",
                "FIELD_ORDER_STATUS", "ORDER_MATCHED_STATUS",
                "FIELD_INV_QTY", "FIELD_INV_PRODUCT_NAME", "FIELD_INV_SIZE", "FIELD_INV_VAT_TYPE",
                "FIELD_SALE_PRODUCT_NAME", "FIELD_SALE_SIZE", "FIELD_SALE_FINAL_PRICE",
                "FIELD_SALE_VAT_TYPE", "FIELD_SALE_ORDER_RECORD_ID",
                "FIELD_OFFERS_ORDER_ID", "FIELD_OFFERS_SELLER_ID", "FIELD_OFFERS_INV_ID",
                "FIELD_OFFERS_CHANNEL_ID", "FIELD_OFFERS_MESSAGE_ID", "FIELD_OFFERS_OFFER_PRICE",
            )
            if not str(getattr(s, name, "")).strip()
        ]
        if missing:
            raise ConfigurationError(
                f"Store schema incomplete: {', '.join(missing)} must be set",
                settings_names=missing
            )

        def req(name: str, kind: FieldKind) -> FieldSpec:
            return FieldSpec(name.strip(), kind)

        def opt(name: str, kind: FieldKind) -> Optional[FieldSpec]:
            return FieldSpec(name.strip(), kind) if name and name.strip() else None

        return cls(
            orders_table=s.AIRTABLE_TABLE_ORDERS,
            inventory_table=s.AIRTABLE_TABLE_INVENTORY,
            offer_messages_table=s.AIRTABLE_TABLE_OFFER_MSGS,
            sales_table=s.AIRTABLE_TABLE_SALES,
            order=OrderFields(
                status=req(s.FIELD_ORDER_STATUS, FieldKind.OPTION),
                matched_inventory=opt(s.FIELD_ORDER_MATCHED_INVENTORY, FieldKind.LINKS),
            ),
            inventory=InventoryFields(
                quantity=req(s.FIELD_INV_QTY, FieldKind.NUMBER),
                product_name=req(s.FIELD_INV_PRODUCT_NAME, FieldKind.LOOKUP),
                size=req(s.FIELD_INV_SIZE, FieldKind.LOOKUP),
                brand=opt(s.FIELD_INV_BRAND, FieldKind.LOOKUP),
                vat_type=req(s.FIELD_INV_VAT_TYPE, FieldKind.OPTION),
                sku_link=opt(s.FIELD_INV_SKU_MASTER, FieldKind.LINKS),
                seller_link=opt(s.FIELD_INV_LINKED_SELLER, FieldKind.LINKS),
            ),
            sale=SaleFields(
                product_name=req(s.FIELD_SALE_PRODUCT_NAME, FieldKind.TEXT),
                size=req(s.FIELD_SALE_SIZE, FieldKind.TEXT),
                brand=opt(s.FIELD_SALE_BRAND, FieldKind.TEXT),
                final_price=req(s.FIELD_SALE_FINAL_PRICE, FieldKind.NUMBER),
                vat_type=req(s.FIELD_SALE_VAT_TYPE, FieldKind.OPTION),
                sku_link=opt(s.FIELD_SALE_SKU_LINK, FieldKind.LINKS),
                seller_link=opt(s.FIELD_SALE_SELLER_LINK, FieldKind.LINKS),
                order_link=opt(s.FIELD_SALE_ORDER_LINK, FieldKind.LINKS),
                order_record_id=req(s.FIELD_SALE_ORDER_RECORD_ID, FieldKind.TEXT),
            ),
            offer_message=OfferMessageFields(
                order_id=req(s.FIELD_OFFERS_ORDER_ID, FieldKind.TEXT),
                seller_id=req(s.FIELD_OFFERS_SELLER_ID, FieldKind.TEXT),
                inventory_id=req(s.FIELD_OFFERS_INV_ID, FieldKind.TEXT),
                channel_id=req(s.FIELD_OFFERS_CHANNEL_ID, FieldKind.TEXT),
                message_id=req(s.FIELD_OFFERS_MESSAGE_ID, FieldKind.TEXT),
                offer_price=req(s.FIELD_OFFERS_OFFER_PRICE, FieldKind.NUMBER),
            ),
            order_matched_status=s.ORDER_MATCHED_STATUS.strip(),
        )

