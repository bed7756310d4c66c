"""Messaging platform and record store integrations."""

from .types import (
    Destination,
    DestinationKind,
    StoreRecord,
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    UpstreamResponseError,
)
from .protocols import MessagingPlatform, RecordStore
from .discord import DiscordClient
from .airtable import AirtableRecordStore

__all__ = [
    "Destination",
    "DestinationKind",
    "StoreRecord",
    "UpstreamError",
    "UpstreamTimeoutError",
    "UpstreamUnavailableError",
    "UpstreamResponseError",
    "MessagingPlatform",
    "RecordStore",
    "DiscordClient",
    "AirtableRecordStore",
]
