"""Bridge client: request helper, pairing and access to resource services."""

from __future__ import annotations

import socket
import sys
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from .cache import BridgeCache
from .config import DiscoveryConfig
from .discovery import BridgeDiscovery
from .errors import APIError, PairingError, ResponseError
from .groups import GroupsService
from .lights import LightsService
from .models import BridgeIdentity, PairedBridge

DEFAULT_APP_LABEL = "huebridge"

# Limits the bridge imposes on the two halves of "devicetype".
APP_LABEL_LIMIT = 20
DEVICE_LABEL_LIMIT = 19


def device_label() -> str:
    """Name of this machine as shown in the bridge's whitelist."""
    return f"{socket.gethostname()}-{sys.platform}"


def device_type(app_label: str) -> str:
    """Build the ``devicetype`` sent when pairing, truncating each half."""
    return f"{app_label[:APP_LABEL_LIMIT]}#{device_label()[:DEVICE_LABEL_LIMIT]}"


def _issued_username(payload: Any) -> str:
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
        return ""
    success = payload[0].get("success")
    if not isinstance(success, dict):
        return ""
    username = success.get("username")
    return username if isinstance(username, str) else ""


class Bridge:
    """Client for a single bridge.

    Wraps a :class:`BridgeIdentity` (or :class:`PairedBridge` once paired)
    and an ``httpx.AsyncClient``. The client is created on first use and
    closed by :meth:`aclose` unless it was passed in.
    """

    def __init__(
        self,
        identity: BridgeIdentity,
        *,
        config: Optional[DiscoveryConfig] = None,
        cache: Optional[BridgeCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.identity = identity
        self.config = config or DiscoveryConfig()
        self.cache = cache if cache is not None else BridgeCache(
            self.config.cache_path, self.config.cache_filename
        )
        self._client = client
        self._owns_client = client is None

    def __repr__(self) -> str:
        return f"Bridge(id={self.id!r}, address={self.address!r}, paired={self.is_paired})"

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def address(self) -> str:
        return self.identity.address

    @property
    def username(self) -> str:
        return getattr(self.identity, "username", "")

    @property
    def is_paired(self) -> bool:
        return self.identity.is_paired

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.http_timeout)
        return self._client

    @property
    def lights(self) -> LightsService:
        return LightsService(self)

    @property
    def groups(self) -> GroupsService:
        return GroupsService(self)

    async def aclose(self) -> None:
        """Close the HTTP client if this bridge created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            logger.debug("HTTP client closed")
        self._client = None

    async def __aenter__(self) -> "Bridge":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def addr(self, *tokens: str) -> str:
        """Build an API URL from path tokens.

        ``addr()`` gives ``<address>api`` and ``addr("lights", "1")`` gives
        ``<address>api/<username>/lights/1``.
        """
        url = f"{self.address}api"
        if not tokens:
            return url
        return "/".join([url, self.username, *tokens])

    async def call(self, method: str, *tokens: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request to the API and return the decoded JSON reply.

        Raises:
            APIError: the bridge answered with an error payload
            ResponseError: the reply is not JSON
            httpx.HTTPError: the request itself failed
        """
        url = self.addr(*tokens)
        logger.debug(f"{method} {url} {body if body is not None else ''}")
        response = await self.client.request(method, url, json=body)

        try:
            payload = response.json()
        except ValueError as e:
            raise ResponseError(f"invalid JSON from bridge: {e}", response=response.text) from e

        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            error = payload[0].get("error")
            if isinstance(error, dict) and error.get("type"):
                raise APIError(
                    code=error["type"],
                    address=error.get("address", ""),
                    description=error.get("description", ""),
                    response=payload,
                )
        return payload

    async def pair(self) -> PairedBridge:
        """Pair using the default application label."""
        return await self.pair_as(DEFAULT_APP_LABEL)

    async def pair_as(self, app_label: str) -> PairedBridge:
        """Create a user on the bridge and cache the resulting credentials.

        The link button on the bridge must have been pressed shortly before;
        otherwise the bridge refuses with error 101 and :class:`PairingError`
        is raised carrying that code.
        """
        body = {"devicetype": device_type(app_label)}
        try:
            payload = await self.call("POST", body=body)
        except APIError as e:
            raise PairingError(
                f"pairing rejected ({e.code}): {e.description}",
                code=e.code,
                description=e.description,
                response=e.response,
            ) from e
        except ResponseError as e:
            raise PairingError(f"bad response: {e.response!r}", response=e.response) from e

        username = _issued_username(payload)
        if not username:
            raise PairingError(f"bad response: {payload!r}", response=payload)

        paired = PairedBridge(id=self.identity.id, address=self.identity.address, username=username)
        self.cache.save(paired)
        self.identity = paired
        logger.info(f"Paired with bridge {paired.id} as {body['devicetype']}")
        return paired


async def connect(
    config: Optional[DiscoveryConfig] = None,
    *,
    cache: Optional[BridgeCache] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Bridge:
    """Discover the bridge and return a client for it."""
    config = config or DiscoveryConfig()
    cache = cache if cache is not None else BridgeCache(config.cache_path, config.cache_filename)
    identity = await BridgeDiscovery(config, cache=cache, client=client).discover_async()
    return Bridge(identity, config=config, cache=cache, client=client)
