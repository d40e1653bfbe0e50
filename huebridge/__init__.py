"""Client for the Philips Hue bridge local API.

Typical use::

    bridge = await connect()
    if not bridge.is_paired:
        await bridge.pair()   # press the link button first
    light = await bridge.lights.get("Couch")
    await light.toggle()
"""

from .bridge import DEFAULT_APP_LABEL, Bridge, connect, device_type
from .cache import BridgeCache
from .config import DiscoveryConfig
from .discovery import (
    BridgeDiscovery,
    DiscoveryStrategy,
    LocalDiscoverer,
    RemoteDiscoverer,
    parse_description,
    parse_search_responses,
)
from .errors import APIError, HueError, NotExistError, NotFoundError, PairingError, ResponseError
from .groups import Group, GroupsService
from .lights import Light, LightsService
from .models import BridgeIdentity, CacheRecord, PairedBridge
from .state import COLOR_LOOP, NO_EFFECT, LightState, State

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "Bridge",
    "BridgeCache",
    "BridgeDiscovery",
    "BridgeIdentity",
    "CacheRecord",
    "COLOR_LOOP",
    "DEFAULT_APP_LABEL",
    "DiscoveryConfig",
    "DiscoveryStrategy",
    "Group",
    "GroupsService",
    "HueError",
    "Light",
    "LightState",
    "LightsService",
    "LocalDiscoverer",
    "NO_EFFECT",
    "NotExistError",
    "NotFoundError",
    "PairedBridge",
    "PairingError",
    "RemoteDiscoverer",
    "ResponseError",
    "State",
    "connect",
    "device_type",
    "parse_description",
    "parse_search_responses",
]
