"""
Integration types, dataclasses, and exceptions.

WHAT: Shared contracts for the messaging platform and record store adapters
WHY: Services depend on these shapes, never on raw HTTP payloads
HOW: Enums and dataclasses for results, exception hierarchy for upstream failures
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class DestinationKind(str, Enum):
    """Kind of destination on the messaging platform."""
    GROUP = "group"  # Discord category
    CHANNEL = "channel"  # Discord text channel


@dataclass(frozen=True)
class Destination:
    """Channel or channel group listed by the platform."""
    id: str
    name: str
    kind: DestinationKind
    parent_id: Optional[str] = None


@dataclass
class StoreRecord:
    """Raw record returned by the record store (fields still undecoded)."""
    id: str
    fields: dict[str, Any] = field(default_factory=dict)


# Upstream exceptions
class UpstreamError(Exception):
    """Store or messaging platform call did not succeed."""

    code = "UPSTREAM_ERROR"

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"[{service}] {message}")
        self.service = service
        self.status_code = status_code


class UpstreamTimeoutError(UpstreamError):
    """Request to the upstream service timed out."""

    code = "UPSTREAM_TIMEOUT"


class UpstreamUnavailableError(UpstreamError):
    """Upstream service is not reachable."""

    code = "UPSTREAM_UNAVAILABLE"


class UpstreamResponseError(UpstreamError):
    """Upstream service answered with a non-success status or an invalid body."""

    code = "UPSTREAM_BAD_RESPONSE"
