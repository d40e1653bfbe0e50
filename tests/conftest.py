"""Pytest configuration and fixtures for huebridge tests."""

import json
import sys
from typing import Any, Dict, List, Tuple

import httpx
import pytest
from loguru import logger

from huebridge import Bridge, BridgeCache, PairedBridge


class FakeBridgeAPI:
    """Stand-in for the bridge HTTP API, served through ``httpx.MockTransport``.

    Replies are looked up by ``(method, path)``; unknown requests get
    ``default``. Every request is recorded.
    """

    def __init__(self) -> None:
        self.responses: Dict[Tuple[str, str], Any] = {}
        self.default: Any = [{"success": {}}]
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.responses.get((request.method, request.url.path), self.default)
        if isinstance(reply, httpx.Response):
            return reply
        if isinstance(reply, (str, bytes)):
            return httpx.Response(200, content=reply)
        return httpx.Response(200, json=reply)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def sent(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


@pytest.fixture
def fake_api():
    """A fresh fake bridge API."""
    return FakeBridgeAPI()


@pytest.fixture
def cache(tmp_path):
    """A bridge cache stored in a temporary directory."""
    return BridgeCache(tmp_path / ".hue-test")


@pytest.fixture
def paired_identity():
    return PairedBridge(id="bridge_id", address="http://bridge.test/", username="bridge_username")


@pytest.fixture
def bridge(fake_api, cache, paired_identity):
    """A paired bridge client talking to ``fake_api``."""
    return Bridge(paired_identity, cache=cache, client=fake_api.client())


@pytest.fixture
def loguru_messages():
    """Collect loguru records emitted during the test as ``(level, message)``."""
    messages: List[Tuple[str, str]] = []
    handler_id = logger.add(
        lambda m: messages.append((m.record["level"].name, m.record["message"])),
        level="DEBUG",
    )
    yield messages
    try:
        logger.remove(handler_id)
    except ValueError:
        # CLI tests reset every handler
        pass


@pytest.fixture(autouse=True)
def restore_logging():
    """Put back a plain stderr sink after tests that reconfigure loguru."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")


@pytest.fixture
def sample_lights():
    """Lights payload as returned by GET /api/<username>/lights."""
    return {
        "l1": {
            "uniqueid": "l1uid",
            "name": "l1name",
            "type": "Extended color light",
            "modelid": "LCT015",
            "manufacturername": "Signify Netherlands B.V.",
            "swversion": "1.50.2",
            "state": {
                "on": True,
                "bri": 144,
                "hue": 7676,
                "sat": 199,
                "xy": [0.5016, 0.4151],
                "ct": 443,
                "alert": "none",
                "effect": "none",
                "colormode": "ct",
                "reachable": True,
            },
        },
        "l2": {
            "uniqueid": "l2uid",
            "name": "l2name",
            "type": "Dimmable light",
            "state": {"on": False, "bri": 1, "alert": "none", "reachable": True},
        },
    }


@pytest.fixture
def sample_groups():
    """Groups payload as returned by GET /api/<username>/groups."""
    return {
        "g1": {
            "name": "g1name",
            "lights": ["l1", "l2"],
            "type": "Room",
            "action": {"on": True, "bri": 200, "alert": "none"},
        },
        "g2": {
            "name": "g2name",
            "lights": ["l2", "l9"],
            "type": "LightGroup",
            "action": {"on": False, "bri": 10, "alert": "none"},
        },
    }
