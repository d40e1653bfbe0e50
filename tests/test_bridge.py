"""Tests for the Bridge client: request helper, pairing and connect."""

from unittest.mock import patch

import httpx
import pytest

from huebridge import (
    APIError,
    Bridge,
    BridgeIdentity,
    PairedBridge,
    PairingError,
    ResponseError,
    connect,
    device_type,
)
from huebridge.bridge import DEFAULT_APP_LABEL


class TestAddr:
    """Test API URL construction."""

    def test_no_tokens(self, bridge):
        """Test that the bare API address has no username."""
        assert bridge.addr() == "http://bridge.test/api"

    def test_tokens(self, bridge):
        assert bridge.addr("lights", "1", "state") == "http://bridge.test/api/bridge_username/lights/1/state"

    def test_unpaired_tokens(self, fake_api, cache):
        """Test that an unpaired bridge leaves an empty username segment."""
        bridge = Bridge(BridgeIdentity(id="x", address="http://bridge.test"), cache=cache, client=fake_api.client())
        assert bridge.addr("lights") == "http://bridge.test/api//lights"


class TestCall:
    """Test sending requests and decoding replies."""

    @pytest.mark.asyncio
    async def test_returns_payload(self, bridge, fake_api, sample_lights):
        fake_api.responses[("GET", "/api/bridge_username/lights")] = sample_lights

        payload = await bridge.call("GET", "lights")

        assert payload == sample_lights
        request = fake_api.requests[0]
        assert request.method == "GET"
        assert request.content == b""

    @pytest.mark.asyncio
    async def test_sends_json_body(self, bridge, fake_api):
        """Test that the body is sent as JSON."""
        await bridge.call("PUT", "lights", "1", "state", body={"on": True, "bri": 100})

        request = fake_api.sent("PUT", "/api/bridge_username/lights/1/state")[0]
        assert fake_api.body(request) == {"on": True, "bri": 100}

    @pytest.mark.asyncio
    async def test_api_error(self, bridge, fake_api):
        """Test that an error payload is raised as APIError."""
        fake_api.default = [
            {"error": {"type": 3, "address": "/lights/9", "description": "resource, /lights/9, not available"}}
        ]

        with pytest.raises(APIError) as exc_info:
            await bridge.call("GET", "lights", "9")

        assert exc_info.value.code == 3
        assert exc_info.value.address == "/lights/9"
        assert str(exc_info.value) == "resource, /lights/9, not available"
        assert exc_info.value.response == fake_api.default

    @pytest.mark.asyncio
    async def test_error_without_type_is_not_raised(self, bridge, fake_api):
        fake_api.default = [{"error": {"type": 0, "description": ""}}]

        assert await bridge.call("GET", "config") == fake_api.default

    @pytest.mark.asyncio
    async def test_invalid_json(self, bridge, fake_api):
        """Test that a non-JSON body raises ResponseError carrying the text."""
        fake_api.default = "<html>not json</html>"

        with pytest.raises(ResponseError) as exc_info:
            await bridge.call("GET", "lights")

        assert exc_info.value.response == "<html>not json</html>"

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, cache, paired_identity):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        bridge = Bridge(paired_identity, cache=cache, client=client)

        with pytest.raises(httpx.ConnectError):
            await bridge.call("GET", "lights")


class TestDeviceType:
    """Test the devicetype sent when pairing."""

    def test_format(self):
        with patch("huebridge.bridge.socket.gethostname", return_value="host"), patch(
            "huebridge.bridge.sys.platform", "linux"
        ):
            assert device_type("myapp") == "myapp#host-linux"

    def test_truncation(self):
        """Test that each half is cut to the length the bridge accepts."""
        with patch("huebridge.bridge.socket.gethostname", return_value="a-very-long-hostname-indeed"), patch(
            "huebridge.bridge.sys.platform", "linux"
        ):
            result = device_type("an-application-name-too-long")

        app_part, device_part = result.split("#")
        assert app_part == "an-application-name-"
        assert len(app_part) == 20
        assert device_part == "a-very-long-hostnam"
        assert len(device_part) == 19


class TestPairing:
    """Test pairing with the bridge."""

    @pytest.fixture
    def unpaired(self, fake_api, cache):
        return Bridge(BridgeIdentity(id="bridge_id", address="http://bridge.test/"), cache=cache, client=fake_api.client())

    @pytest.mark.asyncio
    async def test_success(self, unpaired, fake_api, cache):
        """Test that a successful pairing is cached and applied to the bridge."""
        fake_api.responses[("POST", "/api")] = [{"success": {"username": "issued-user"}}]

        with patch("huebridge.bridge.socket.gethostname", return_value="host"), patch(
            "huebridge.bridge.sys.platform", "linux"
        ):
            paired = await unpaired.pair_as("tester")

        assert paired == PairedBridge(id="bridge_id", address="http://bridge.test/", username="issued-user")
        assert unpaired.is_paired
        assert unpaired.username == "issued-user"
        assert cache.load() == paired
        assert fake_api.body(fake_api.sent("POST", "/api")[0]) == {"devicetype": "tester#host-linux"}

    @pytest.mark.asyncio
    async def test_default_label(self, unpaired, fake_api):
        fake_api.responses[("POST", "/api")] = [{"success": {"username": "issued-user"}}]

        await unpaired.pair()

        devicetype = fake_api.body(fake_api.requests[0])["devicetype"]
        assert devicetype.startswith(f"{DEFAULT_APP_LABEL}#")

    @pytest.mark.asyncio
    async def test_link_button_not_pressed(self, unpaired, fake_api, cache):
        """Test that error 101 surfaces as PairingError with the bridge's code."""
        fake_api.responses[("POST", "/api")] = [
            {"error": {"type": 101, "address": "", "description": "link button not pressed"}}
        ]

        with pytest.raises(PairingError) as exc_info:
            await unpaired.pair_as("tester")

        assert exc_info.value.code == 101
        assert exc_info.value.description == "link button not pressed"
        assert "link button not pressed" in str(exc_info.value)
        assert not unpaired.is_paired
        assert cache.load() is None

    @pytest.mark.parametrize(
        "reply",
        [
            [],
            {"success": {"username": "x"}},
            [{"success": {}}],
            [{"success": {"username": ""}}],
            [{"something": "else"}],
            "not json at all",
        ],
        ids=["empty-list", "not-a-list", "no-username", "empty-username", "no-success", "not-json"],
    )
    @pytest.mark.asyncio
    async def test_malformed_reply(self, unpaired, fake_api, cache, reply):
        """Test that replies without a username are rejected."""
        fake_api.responses[("POST", "/api")] = reply

        with pytest.raises(PairingError, match="bad response"):
            await unpaired.pair_as("tester")

        assert cache.load() is None


class TestLifecycle:
    """Test client ownership and connect()."""

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, bridge):
        client = bridge.client
        await bridge.aclose()
        assert not client.is_closed

    @pytest.mark.asyncio
    async def test_owned_client_closed(self, paired_identity, cache):
        """Test that a client created by the bridge is closed on exit."""
        async with Bridge(paired_identity, cache=cache) as bridge:
            client = bridge.client
            assert bridge.client is client

        assert client.is_closed

    @pytest.mark.asyncio
    async def test_connect_uses_cache(self, cache, fake_api, paired_identity):
        """Test that connect() returns a paired client for a cached bridge."""
        cache.save(paired_identity)

        bridge = await connect(cache=cache, client=fake_api.client())

        assert bridge.is_paired
        assert bridge.id == "bridge_id"
        assert bridge.username == "bridge_username"
        assert fake_api.requests == []

    def test_repr(self, bridge):
        assert repr(bridge) == "Bridge(id='bridge_id', address='http://bridge.test/', paired=True)"
