"""Bridge discovery: cached bridge, local SSDP search, remote lookup.

Discovery tries each method in turn and stops at the first bridge found:

1. the bridge stored by a previous pairing (:class:`~huebridge.cache.BridgeCache`)
2. an SSDP ``M-SEARCH`` on the local network (:class:`LocalDiscoverer`)
3. the vendor's lookup service (:class:`RemoteDiscoverer`)

Only when every method comes back empty is :class:`NotFoundError` raised.
"""

from __future__ import annotations

import asyncio
import re
import socket
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional, Union
from xml.etree import ElementTree

import httpx
from loguru import logger
from pydantic import ValidationError

from .cache import BridgeCache
from .config import DiscoveryConfig
from .errors import NotFoundError
from .models import BridgeIdentity

SEARCH_REQUEST = (
    b"M-SEARCH * HTTP/1.1\r\n"
    b"HOST: 239.255.255.250:1900\r\n"
    b"MAN: ssdp:discover\r\n"
    b"MX: 10\r\n"
    b"ST: ssdp:all\r\n"
)

_BLOCK_SEPARATOR = re.compile(r"\r?\n\r?\n")


@asynccontextmanager
async def _client_scope(
    client: Optional[httpx.AsyncClient], timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a short-lived one with ``timeout``."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as owned:
        yield owned


def parse_search_responses(data: bytes) -> List[Dict[str, str]]:
    """Split an SSDP datagram into header maps, one per response.

    A datagram may carry several responses back to back, each made of a
    status line and a header block ended by a blank line. Header names are
    lower-cased and the first occurrence of a name wins. Blocks without a
    status line, without headers, or with a malformed header line are
    dropped.
    """
    text = data.decode("utf-8", errors="replace")
    responses: List[Dict[str, str]] = []

    for block in _BLOCK_SEPARATOR.split(text):
        lines = [line for line in block.splitlines() if line.strip()]
        if not lines or not lines[0].startswith("HTTP/"):
            continue

        headers: Dict[str, str] = {}
        for line in lines[1:]:
            name, sep, value = line.partition(":")
            if not sep or not name.strip():
                headers = {}
                break
            headers.setdefault(name.strip().lower(), value.strip())

        if headers:
            responses.append(headers)

    return responses


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: Optional[ElementTree.Element], name: str) -> Optional[ElementTree.Element]:
    if element is None:
        return None
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _text(element: Optional[ElementTree.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def parse_description(body: Union[str, bytes], vendor_marker: str = "Philips hue") -> BridgeIdentity:
    """Validate a UPnP device description and extract the bridge identity.

    The description is accepted when it has a ``URLBase`` and either
    ``device/modelDescription`` or ``device/modelName`` mentions
    ``vendor_marker``. XML namespaces are ignored.

    Raises:
        NotFoundError: the document is malformed or describes another device
    """
    try:
        root = ElementTree.fromstring(body)
    except ElementTree.ParseError as e:
        raise NotFoundError(f"malformed device description: {e}") from e

    url_base = _text(_child(root, "URLBase"))
    device = _child(root, "device")
    description = _text(_child(device, "modelDescription"))
    model_name = _text(_child(device, "modelName"))

    if not url_base:
        raise NotFoundError("device description has no URLBase")
    if vendor_marker not in description and vendor_marker not in model_name:
        raise NotFoundError(f"not a bridge: {model_name or description or 'unknown model'}")

    try:
        return BridgeIdentity(id=_text(_child(device, "serialNumber")), address=url_base)
    except ValidationError as e:
        raise NotFoundError(f"unusable URLBase {url_base!r}") from e


class DiscoveryStrategy(ABC):
    """One way of locating a bridge."""

    name = "discovery"

    @abstractmethod
    async def attempt(self) -> BridgeIdentity:
        """Return the bridge found, or raise :class:`NotFoundError`."""


class _SearchProtocol(asyncio.DatagramProtocol):
    """Queues every datagram received on the search socket."""

    def __init__(self) -> None:
        self.responses: asyncio.Queue = asyncio.Queue()

    def datagram_received(self, data: bytes, addr) -> None:
        self.responses.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"Search socket error: {exc}")


class LocalDiscoverer(DiscoveryStrategy):
    """SSDP search on the local network.

    Sends one ``M-SEARCH`` datagram and reads replies until
    ``config.search_deadline`` seconds have passed since the send. Every
    reply carrying a ``Location`` header has its device description fetched
    and checked; the first bridge that passes is returned without waiting
    for the deadline.
    """

    name = "local"

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or DiscoveryConfig()
        self._client = client

    async def attempt(self) -> BridgeIdentity:
        loop = asyncio.get_running_loop()
        target = (self.config.multicast_host, self.config.multicast_port)

        try:
            transport, protocol = await loop.create_datagram_endpoint(
                _SearchProtocol, local_addr=("0.0.0.0", 0), family=socket.AF_INET
            )
        except OSError as e:
            raise NotFoundError(f"could not open search socket: {e}") from e

        try:
            transport.sendto(SEARCH_REQUEST, target)
            deadline = loop.time() + self.config.search_deadline
            logger.debug(f"Sent SSDP search to {target[0]}:{target[1]}")

            async with _client_scope(self._client, self.config.http_timeout) as client:
                while True:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    try:
                        data = await asyncio.wait_for(protocol.responses.get(), remaining)
                    except asyncio.TimeoutError:
                        break

                    for headers in parse_search_responses(data):
                        location = headers.get("location")
                        if not location:
                            continue
                        try:
                            return await asyncio.wait_for(
                                self.try_location(client, location), max(deadline - loop.time(), 0)
                            )
                        except asyncio.TimeoutError:
                            logger.debug(f"Search deadline passed while fetching {location}")
                            break
                        except (httpx.HTTPError, httpx.InvalidURL, NotFoundError) as e:
                            logger.debug(f"Skipping {location}: {e}")
        finally:
            transport.close()

        raise NotFoundError(
            f"no bridge answered the search within {self.config.search_deadline:g}s"
        )

    async def try_location(self, client: httpx.AsyncClient, url: str) -> BridgeIdentity:
        """Fetch the description at ``url`` and validate it."""
        response = await client.get(url)
        response.raise_for_status()
        return parse_description(response.content, self.config.vendor_marker)


class RemoteDiscoverer(DiscoveryStrategy):
    """Lookup through the vendor's discovery endpoint.

    The endpoint lists every bridge registered from the caller's network.
    Only the first entry is used: this client talks to a single bridge.
    """

    name = "remote"

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or DiscoveryConfig()
        self._client = client

    async def attempt(self) -> BridgeIdentity:
        try:
            async with _client_scope(self._client, self.config.http_timeout) as client:
                response = await client.get(self.config.remote_url)
                response.raise_for_status()
                entries = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NotFoundError(f"remote lookup failed: {e}") from e

        if not isinstance(entries, list) or not entries:
            raise NotFoundError("remote lookup returned no bridges")
        if len(entries) > 1:
            logger.info(f"Remote lookup listed {len(entries)} bridges, using the first")

        first = entries[0]
        ip = first.get("internalipaddress") if isinstance(first, dict) else None
        if not isinstance(ip, str) or not ip.strip():
            raise NotFoundError(f"remote lookup returned an unusable entry: {first!r}")
        try:
            return BridgeIdentity(id=first["id"], address=f"http://{ip.strip()}/")
        except (KeyError, TypeError, ValueError) as e:
            raise NotFoundError(f"remote lookup returned an unusable entry: {first!r}") from e


class BridgeDiscovery:
    """Finds the bridge to talk to, cheapest method first."""

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        *,
        cache: Optional[BridgeCache] = None,
        strategies: Optional[Iterable[DiscoveryStrategy]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or DiscoveryConfig()
        self.cache = cache if cache is not None else BridgeCache(
            self.config.cache_path, self.config.cache_filename
        )
        if strategies is None:
            strategies = [
                LocalDiscoverer(self.config, client=client),
                RemoteDiscoverer(self.config, client=client),
            ]
        self.strategies: List[DiscoveryStrategy] = list(strategies)

    async def discover_async(self) -> BridgeIdentity:
        """Return the cached bridge, or the first one a strategy finds.

        A cached bridge is returned as a :class:`~huebridge.models.PairedBridge`
        without touching the network; its address is not re-checked.
        """
        cached = self.cache.load()
        if cached is not None:
            logger.info(f"Using cached bridge {cached.id} at {cached.address}")
            return cached

        for strategy in self.strategies:
            try:
                identity = await strategy.attempt()
            except NotFoundError as e:
                logger.info(f"No bridge found via {strategy.name} discovery: {e}")
                continue

            logger.info(f"Discovered bridge {identity.id} at {identity.address} via {strategy.name}")
            return identity

        raise NotFoundError()

    def discover(self) -> BridgeIdentity:
        """Synchronous wrapper for bridge discovery."""
        return asyncio.run(self.discover_async())
