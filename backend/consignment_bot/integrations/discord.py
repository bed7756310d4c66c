"""
Discord REST client.

WHAT: Messaging platform adapter over the Discord HTTP API (v10)
WHY: Post offer messages, manage seller categories/channels, edit messages on resolution
HOW: Bot-token authorized httpx.AsyncClient; httpx failures mapped to UpstreamError types
"""

from typing import Any, Optional

import httpx

from .types import (
    Destination,
    DestinationKind,
    UpstreamResponseError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

SERVICE = "discord"

# Discord channel types
GUILD_TEXT = 0
GUILD_CATEGORY = 4

_KIND_BY_TYPE = {
    GUILD_TEXT: DestinationKind.CHANNEL,
    GUILD_CATEGORY: DestinationKind.GROUP,
}
_TYPE_BY_KIND = {kind: channel_type for channel_type, kind in _KIND_BY_TYPE.items()}


def _id_of(body: Any, what: str) -> str:
    """Snowflake id of a returned object; a body without one is a bad response."""
    if isinstance(body, dict) and isinstance(body.get("id"), (str, int)) and str(body["id"]):
        return str(body["id"])
    raise UpstreamResponseError(SERVICE, f"{what}: response has no id")


class DiscordClient:
    """Discord bot client speaking plain REST (no gateway connection)."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://discord.com/api/v10",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client (connections are opened by open()).

        Args:
            token: Bot token
            base_url: API base URL
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        """Create the HTTP client."""
        if self.client is not None:
            return
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self._timeout),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            headers={
                "Authorization": f"Bot {self._token}",
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )
        logger.info(f"Discord client initialized (base_url: {self.base_url})")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        """
        Send one request and return the decoded JSON body.

        Raises:
            UpstreamTimeoutError: Request timed out
            UpstreamUnavailableError: Discord not reachable
            UpstreamResponseError: Non-success status or invalid body
        """
        if self.client is None:
            await self.open()
        try:
            response = await self.client.request(method, path, json=json)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(SERVICE, f"{method} {path} timed out") from e
        except httpx.ConnectError as e:
            raise UpstreamUnavailableError(SERVICE, f"{method} {path}: connection failed") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamResponseError(
                SERVICE,
                f"{method} {path} → {e.response.status_code} {e.response.text}",
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(SERVICE, f"{method} {path}: {e}") from e
        except ValueError as e:
            raise UpstreamResponseError(SERVICE, f"{method} {path}: invalid JSON body") from e

    async def list_destinations(self, parent_id: str) -> list[Destination]:
        """
        List the guild's categories and text channels.

        Other channel types (voice, forum, ...) are skipped.
        """
        data = await self._request("GET", f"/guilds/{parent_id}/channels")
        if not isinstance(data, list):
            raise UpstreamResponseError(SERVICE, "list channels: expected a JSON array")

        destinations = []
        for channel in data:
            if not isinstance(channel, dict):
                raise UpstreamResponseError(SERVICE, "list channels: entry is not an object")
            kind = _KIND_BY_TYPE.get(channel.get("type"))
            if kind is None:
                continue
            destinations.append(Destination(
                id=_id_of(channel, "list channels"),
                name=str(channel.get("name") or ""),
                kind=kind,
                parent_id=str(channel["parent_id"]) if channel.get("parent_id") else None,
            ))
        logger.debug(f"Listed {len(destinations)} destinations in guild {parent_id}")
        return destinations

    async def create_destination(
        self,
        name: str,
        kind: DestinationKind,
        parent_id: str,
        group_id: Optional[str] = None
    ) -> Destination:
        """Create a category, or a text channel under group_id."""
        body: dict[str, Any] = {"name": name, "type": _TYPE_BY_KIND[kind]}
        if group_id:
            body["parent_id"] = group_id
        created = await self._request("POST", f"/guilds/{parent_id}/channels", json=body)
        created_id = _id_of(created, "create channel")
        logger.info(f"Created Discord {kind.value} \"{name}\" ({created_id})")
        return Destination(
            id=created_id,
            name=str(created.get("name") or name),
            kind=kind,
            parent_id=group_id,
        )

    async def post_message(self, channel_id: str, payload: dict[str, Any]) -> str:
        """Post a message; returns its id."""
        msg = await self._request("POST", f"/channels/{channel_id}/messages", json=payload)
        return _id_of(msg, "send message")

    async def edit_message(self, channel_id: str, message_id: str, payload: dict[str, Any]) -> None:
        """Edit a posted message."""
        await self._request("PATCH", f"/channels/{channel_id}/messages/{message_id}", json=payload)
