"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from decimal import Decimal
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App metadata
    APP_NAME: str = "Consignment Offer Bot"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    PORT: int = 3000

    # Discord
    DISCORD_BOT_TOKEN: str = ""
    DISCORD_API_BASE: str = "https://discord.com/api/v10"
    DISCORD_GUILD_ID: str = ""
    DISCORD_CHANNEL_ID: str = ""  # Fixed destination when no guild is configured
    ALLOW_CHANNEL_CREATE: bool = False

    # Airtable
    AIRTABLE_API_KEY: str = ""
    AIRTABLE_BASE_ID: str = ""
    AIRTABLE_API_BASE: str = "https://api.airtable.com/v0"

    # Table names
    AIRTABLE_TABLE_ORDERS: str = "Unfulfilled Orders Log"
    AIRTABLE_TABLE_INVENTORY: str = "Inventory"
    AIRTABLE_TABLE_OFFER_MSGS: str = "Offer Messages"
    AIRTABLE_TABLE_SALES: str = "Sales"

    # Order fields
    FIELD_ORDER_STATUS: str = "Status"
    ORDER_MATCHED_STATUS: str = "Matched"
    FIELD_ORDER_MATCHED_INVENTORY: str = ""  # linked-record to Inventory, optional

    # Inventory fields
    FIELD_INV_QTY: str = "Quantity"
    FIELD_INV_PRODUCT_NAME: str = "Master Product Name"
    FIELD_INV_SIZE: str = "Size EU"
    FIELD_INV_BRAND: str = "Brand"
    FIELD_INV_VAT_TYPE: str = "VAT Type (Margin / VAT0 / VAT21)"
    FIELD_INV_SKU_MASTER: str = "SKU Master"  # linked-record to SKU Master
    FIELD_INV_LINKED_SELLER: str = "Linked Seller"  # linked-record to Sellers

    # Sales fields
    FIELD_SALE_PRODUCT_NAME: str = "Product Name"
    FIELD_SALE_SKU_LINK: str = "SKU"
    FIELD_SALE_SIZE: str = "Size"
    FIELD_SALE_BRAND: str = "Brand"
    FIELD_SALE_FINAL_PRICE: str = "Final Selling Price"
    FIELD_SALE_VAT_TYPE: str = "VAT Type"
    FIELD_SALE_SELLER_LINK: str = "Seller ID"
    FIELD_SALE_ORDER_LINK: str = "Order Number"
    FIELD_SALE_ORDER_RECORD_ID: str = "Order Record ID"  # plain text, used for the sale-exists check

    # Offer Messages fields (plain text / currency)
    FIELD_OFFERS_ORDER_ID: str = "Order Record ID"
    FIELD_OFFERS_SELLER_ID: str = "Seller ID"
    FIELD_OFFERS_INV_ID: str = "Inventory Record ID"
    FIELD_OFFERS_CHANNEL_ID: str = "Channel ID"
    FIELD_OFFERS_MESSAGE_ID: str = "Message ID"
    FIELD_OFFERS_OFFER_PRICE: str = "Offer Price"

    # HTTP
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Dispatch
    DISPATCH_CONCURRENCY: int = 5  # Max sellers posted to in parallel per order
    DEFAULT_BUYER_VAT_RATE: Decimal = Decimal("0.21")
    CURRENCY_SYMBOL: str = "€"
    SHOW_MAX_ON_CONFIRM: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/app.log"

    @field_validator("DEFAULT_BUYER_VAT_RATE")
    @classmethod
    def validate_vat_rate(cls, v: Decimal) -> Decimal:
        """VAT rates are fractions (0.21), not percentages."""
        if v < 0 or v >= 1:
            raise ValueError(f"DEFAULT_BUYER_VAT_RATE must be a fraction in [0, 1), got {v}")
        return v

    @field_validator("DISPATCH_CONCURRENCY")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """At least one seller must be dispatchable at a time."""
        if v < 1:
            raise ValueError("DISPATCH_CONCURRENCY must be >= 1")
        return v

    class Config:
        # Look for .env in repository root first, then backend/.env
        env_file = [
            str(Path(__file__).parent.parent.parent.parent / ".env"),
            str(Path(__file__).parent.parent.parent / ".env"),
        ]
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Singleton instance
settings = Settings()
