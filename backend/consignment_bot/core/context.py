"""
Service context.

WHAT: Owns the platform client, store client and every service built on them
WHY: One explicit object replaces module-level globals; tests swap in fakes
HOW: Built once per app (from settings or from injected adapters), opened by
     the FastAPI lifespan via startup() and closed via shutdown()
"""

from fastapi import Request

from .config import Settings
from .locks import KeyedLockTable
from .schema import StoreSchema
from ..integrations.airtable import AirtableRecordStore
from ..integrations.discord import DiscordClient
from ..integrations.protocols import MessagingPlatform, RecordStore
from ..services.channel_resolver import ChannelResolver
from ..services.deactivation import MessageDeactivator
from ..services.dispatcher import OfferDispatcher
from ..services.message_registry import MessageRegistry
from ..services.race_resolver import ConfirmationRaceResolver
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def validate_settings(s: Settings) -> None:
    """
    Fail fast on missing credentials or destination config.

    Raises:
        ConfigurationError: Listing every missing setting
    """
    missing = [
        name for name in ("DISCORD_BOT_TOKEN", "AIRTABLE_API_KEY", "AIRTABLE_BASE_ID")
        if not getattr(s, name, "").strip()
    ]
    if not s.DISCORD_GUILD_ID.strip() and not s.DISCORD_CHANNEL_ID.strip():
        missing.append("DISCORD_GUILD_ID or DISCORD_CHANNEL_ID")
    if missing:
        raise ConfigurationError(
            f"Missing required settings: {', '.join(missing)}",
            settings_names=missing
        )


class ServiceContext:
    """Per-process wiring of adapters and services."""

    def __init__(
        self,
        platform: MessagingPlatform,
        store: RecordStore,
        settings: Settings
    ):
        self.platform = platform
        self.store = store
        self.settings = settings

        # Per-order confirmation guard, shared by every click in this process
        self.confirmation_guard = KeyedLockTable("confirmation-guard")
        self.seller_locks = KeyedLockTable("seller-destinations")

        self.registry = MessageRegistry(store)
        self.deactivator = MessageDeactivator(platform)
        self.channel_resolver = ChannelResolver(
            platform,
            guild_id=settings.DISCORD_GUILD_ID,
            fallback_channel_id=settings.DISCORD_CHANNEL_ID,
            allow_create=settings.ALLOW_CHANNEL_CREATE,
            locks=self.seller_locks,
        )
        self.dispatcher = OfferDispatcher(
            platform,
            self.channel_resolver,
            self.registry,
            self.deactivator,
            concurrency=settings.DISPATCH_CONCURRENCY,
            currency=settings.CURRENCY_SYMBOL,
            show_max_on_confirm=settings.SHOW_MAX_ON_CONFIRM,
        )
        self.race_resolver = ConfirmationRaceResolver(
            store, self.registry, self.deactivator, guard=self.confirmation_guard
        )
        self.started = False

    @classmethod
    def from_settings(cls, s: Settings) -> "ServiceContext":
        """
        Build the production context: Discord REST client and Airtable store.

        Raises:
            ConfigurationError: Credentials, destination or store field names missing
        """
        validate_settings(s)
        schema = StoreSchema.from_settings(s)
        platform = DiscordClient(
            token=s.DISCORD_BOT_TOKEN,
            base_url=s.DISCORD_API_BASE,
            timeout=s.HTTP_TIMEOUT_SECONDS,
        )
        store = AirtableRecordStore(
            api_key=s.AIRTABLE_API_KEY,
            base_id=s.AIRTABLE_BASE_ID,
            schema=schema,
            base_url=s.AIRTABLE_API_BASE,
            timeout=s.HTTP_TIMEOUT_SECONDS,
        )
        return cls(platform, store, s)

    async def startup(self) -> None:
        """Validate configuration and open both clients."""
        validate_settings(self.settings)
        await self.platform.open()
        await self.store.open()
        self.started = True
        mode = (
            f"guild {self.settings.DISCORD_GUILD_ID}"
            if self.settings.DISCORD_GUILD_ID
            else f"fixed channel {self.settings.DISCORD_CHANNEL_ID}"
        )
        logger.info(
            f"Service context started ({mode}, channel creation "
            f"{'on' if self.settings.ALLOW_CHANNEL_CREATE else 'off'})"
        )

    async def shutdown(self) -> None:
        """Close both clients; safe to call more than once."""
        await self.platform.close()
        await self.store.close()
        self.started = False
        logger.info("Service context stopped")

    def summary(self) -> dict:
        """Non-secret configuration summary for the health endpoint."""
        s = self.settings
        return {
            "started": self.started,
            "guild_configured": bool(s.DISCORD_GUILD_ID),
            "fixed_channel_configured": bool(s.DISCORD_CHANNEL_ID),
            "allow_channel_create": s.ALLOW_CHANNEL_CREATE,
            "airtable_base_configured": bool(s.AIRTABLE_BASE_ID),
            "dispatch_concurrency": s.DISPATCH_CONCURRENCY,
            "confirmations_in_progress": len(self.confirmation_guard),
        }


def get_context(request: Request) -> ServiceContext:
    """FastAPI dependency returning the context created by the app lifespan."""
    return request.app.state.context
