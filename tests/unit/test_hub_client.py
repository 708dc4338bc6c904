"""
Unit Tests: Hub Client

Unit normalization, resource views, error mapping and serialization against
the fake bridge.
"""

import asyncio
import json

import httpx
import pytest

from conftest import BRIDGE_IP, USERNAME
from core.hue.client import (
    HubClient,
    brightness_from_fraction,
    clamp_color_temp,
    compose_state,
    hsl_to_native,
)
from core.hue.errors import (
    HubApiError,
    HubError,
    HubTimeoutError,
    HubUnreachableError,
    LinkButtonNotPressedError,
    ValidationError,
)
from core.hue.queue import RequestSerializer


# =============================================================================
# Normalization helpers
# =============================================================================

class TestNormalization:

    @pytest.mark.unit
    @pytest.mark.parametrize("fraction, expected", [(0, 1), (0.5, 127), (1, 254), (-1, 1), (3, 254)])
    def test_brightness_from_fraction(self, fraction, expected):
        assert brightness_from_fraction(fraction) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("mireds, expected", [(100, 153), (153, 153), (300, 300), (500, 500), (9000, 500)])
    def test_clamp_color_temp(self, mireds, expected):
        assert clamp_color_temp(mireds) == expected

    @pytest.mark.unit
    def test_hsl_to_native(self):
        assert hsl_to_native(0.5, 1.0, 0.0) == {"hue": 32768, "sat": 254, "bri": 1}
        assert hsl_to_native(1.0, 0.0, 1.0) == {"hue": 65535, "sat": 0, "bri": 254}

    @pytest.mark.unit
    def test_compose_state_leaves_out_unset_values(self):
        assert compose_state(on=False) == {"on": False}
        assert compose_state() == {}

    @pytest.mark.unit
    def test_compose_state_explicit_brightness_wins_over_color(self):
        state = compose_state(on=True, color="red", brightness=0)
        assert state["bri"] == 1
        assert len(state["xy"]) == 2

    @pytest.mark.unit
    def test_compose_state_full(self):
        state = compose_state(on=True, brightness=1, color_temp=50, transition_time=-5, hue=0.25, saturation=0.5)
        assert state == {"on": True, "hue": 16384, "sat": 127, "bri": 254, "ct": 153, "transitiontime": 0}

    @pytest.mark.unit
    def test_compose_state_rejects_bad_color(self):
        with pytest.raises(ValidationError, match='Invalid color: "mauve-ish"'):
            compose_state(color="mauve-ish")


# =============================================================================
# Reads
# =============================================================================

class TestReads:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_lights(self, hub_client, fake_hub):
        lights = await hub_client.get_lights()

        assert [light.id for light in lights] == ["1", "2", "3"]
        desk = lights[0]
        assert desk.name == "Desk"
        assert desk.on is True
        assert desk.brightness == 200
        assert desk.to_public()["colorMode"] == "xy"
        assert fake_hub.calls[0].method == "GET"
        assert fake_hub.calls[0].path == "/lights"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_light_public_view(self, hub_client):
        light = await hub_client.get_light("2")
        public = light.to_public()

        assert public["id"] == "2"
        assert public["colorTemp"] == 454
        assert "xy" not in public

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_rooms_skips_entertainment(self, hub_client):
        rooms = await hub_client.get_rooms()
        groups = await hub_client.get_all_groups()

        assert [room.id for room in rooms] == ["1", "2"]
        assert len(groups) == 3
        assert rooms[1].brightness == 0
        assert rooms[1].lights == ["2", "3"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ping_counts_lights(self, hub_client):
        assert await hub_client.ping() == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_requests_go_to_bridge_resource_root(self, hub_settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = HubClient.from_settings(hub_settings, RequestSerializer("url"), transport=httpx.MockTransport(handler))
        try:
            await client.get_scenes()
        finally:
            await client.close()

        assert str(seen[0].url) == f"https://{BRIDGE_IP}/api/{USERNAME}/scenes"


# =============================================================================
# Writes
# =============================================================================

class TestWrites:

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("fraction, bri", [(0, 1), (1, 254), (1.7, 254)])
    async def test_set_brightness(self, hub_client, fake_hub, fraction, bri):
        await hub_client.set_brightness("1", fraction)

        call = fake_hub.writes()[-1]
        assert (call.method, call.path) == ("PUT", "/lights/1/state")
        assert call.body == {"on": True, "bri": bri}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_color_temp_is_clamped(self, hub_client, fake_hub):
        await hub_client.set_color_temp("1", 100)
        await hub_client.set_room_color_temp("1", 600)

        assert fake_hub.writes()[0].body == {"on": True, "ct": 153}
        assert fake_hub.writes()[1].path == "/groups/1/action"
        assert fake_hub.writes()[1].body == {"on": True, "ct": 500}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_color(self, hub_client, fake_hub):
        await hub_client.set_color("1", "red")

        body = fake_hub.writes()[-1].body
        assert body["on"] is True
        assert body["bri"] == 254
        assert body["xy"][0] > body["xy"][1]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_color_never_reaches_hub(self, hub_client, fake_hub):
        with pytest.raises(ValidationError):
            await hub_client.set_room_color("1", "not-a-color")
        assert fake_hub.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_color_hsl(self, hub_client, fake_hub):
        await hub_client.set_color_hsl("3", 0.5, 1.0, 1.0)
        assert fake_hub.writes()[-1].body == {"on": True, "hue": 32768, "sat": 254, "bri": 254}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_light_state_drops_none(self, hub_client, fake_hub):
        await hub_client.set_light_state("1", {"on": True, "ct": None})
        assert fake_hub.writes()[-1].body == {"on": True}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_all_state_uses_group_zero(self, hub_client, fake_hub):
        await hub_client.set_all_state({"on": False})

        call = fake_hub.writes()[-1]
        assert call.path == "/groups/0/action"
        assert call.body == {"on": False}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_calls_never_overlap(self, hub_client, fake_hub):
        fake_hub.delay = 0.01

        await asyncio.gather(*(hub_client.turn_light_on(str(i % 3 + 1)) for i in range(6)))

        assert len(fake_hub.calls) == 6
        assert fake_hub.max_in_flight == 1
        for earlier, later in zip(fake_hub.calls, fake_hub.calls[1:]):
            assert later.started >= earlier.finished


# =============================================================================
# Scenes
# =============================================================================

class TestScenes:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_activate_scene_resolves_group(self, hub_client, fake_hub):
        group = await hub_client.activate_scene("abc")

        assert group == "1"
        put = fake_hub.writes()[-1]
        assert put.path == "/groups/1/action"
        assert put.body == {"scene": "abc"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_activate_scene_falls_back_to_all_lights(self, hub_client, fake_hub):
        assert await hub_client.activate_scene("def") == "0"
        assert await hub_client.activate_scene("unknown") == "0"
        assert {call.path for call in fake_hub.writes()} == {"/groups/0/action"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_activate_scene_with_explicit_group(self, hub_client, fake_hub):
        assert await hub_client.activate_scene("abc", "2") == "2"
        assert [call.method for call in fake_hub.calls] == ["PUT"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_scene_lookup_and_recall_are_not_interleaved(self, hub_client, fake_hub):
        fake_hub.delay = 0.005

        await asyncio.gather(hub_client.activate_scene("abc"), hub_client.turn_light_off("2"))

        assert [(c.method, c.path) for c in fake_hub.calls] == [
            ("GET", "/scenes"),
            ("PUT", "/groups/1/action"),
            ("PUT", "/lights/2/state"),
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_scene_for_room(self, hub_client, fake_hub):
        lights = await hub_client.resolve_scene_lights(room_id="2")
        scene_id = await hub_client.create_scene("Evening", lights, "2")

        assert lights == ["2", "3"]
        assert scene_id == "new-scene-1"
        body = fake_hub.writes()[-1].body
        assert body == {"name": "Evening", "recycle": False, "type": "GroupScene", "group": "2"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_scene_for_lights(self, hub_client, fake_hub):
        all_lights = await hub_client.resolve_scene_lights()
        explicit = await hub_client.resolve_scene_lights(light_ids=[1, 3])
        await hub_client.create_scene("Reading", explicit)

        assert all_lights == ["1", "2", "3"]
        body = fake_hub.writes()[-1].body
        assert body["type"] == "LightScene"
        assert body["lights"] == ["1", "3"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_scene(self, hub_client, fake_hub):
        await hub_client.delete_scene("def")

        assert "def" not in fake_hub.scenes
        assert fake_hub.calls[-1].method == "DELETE"


# =============================================================================
# Error mapping
# =============================================================================

class TestErrors:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bridge_domain_error(self, hub_client):
        with pytest.raises(HubApiError) as exc_info:
            await hub_client.get_light("99")

        assert exc_info.value.error_type == 3
        assert exc_info.value.status_code == 502
        assert "not available" in exc_info.value.message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_error_maps_to_unreachable(self, hub_client, fake_hub):
        fake_hub.fail("GET", "/lights", httpx.ConnectError("connection refused"))

        with pytest.raises(HubUnreachableError):
            await hub_client.get_lights()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_maps_to_hub_timeout(self, hub_client, fake_hub):
        fake_hub.fail("PUT", "/lights/1/state", httpx.ReadTimeout("too slow"))

        with pytest.raises(HubTimeoutError) as exc_info:
            await hub_client.turn_light_on("1")
        assert exc_info.value.status_code == 504

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_does_not_block_next_call(self, hub_client, fake_hub):
        fake_hub.fail("GET", "/lights", httpx.ConnectError("down"))

        results = await asyncio.gather(hub_client.get_lights(), hub_client.ping(), return_exceptions=True)

        assert isinstance(results[0], HubUnreachableError)
        assert results[1] == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error_status(self, hub_settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="oops"))
        client = HubClient.from_settings(hub_settings, RequestSerializer("status"), transport=transport)
        try:
            with pytest.raises(HubError, match="HTTP 500"):
                await client.get_lights()
        finally:
            await client.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_errors_are_retried(self, hub_settings):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("not yet")
            return httpx.Response(200, json={})

        settings = hub_settings.model_copy(update={"connect_retries": 2})
        client = HubClient.from_settings(settings, RequestSerializer("retry"), transport=httpx.MockTransport(handler))
        client._http.config.retry_min_wait = 0
        client._http.config.retry_max_wait = 0
        try:
            assert await client.get_lights() == []
        finally:
            await client.close()
        assert len(attempts) == 3


# =============================================================================
# Bridge Setup
# =============================================================================

class TestBridgeSetup:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_discover_bridges(self, bridge_setup):
        bridges = await bridge_setup.discover_bridges()
        assert bridges[0]["internalipaddress"] == BRIDGE_IP

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_discover_none(self, bridge_setup, fake_setup):
        fake_setup.bridges = []
        assert await bridge_setup.discover_bridges() == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_link_button_not_pressed(self, bridge_setup):
        with pytest.raises(LinkButtonNotPressedError) as exc_info:
            await bridge_setup.create_auth_token(BRIDGE_IP)
        assert exc_info.value.status_code == 428

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_token_issued(self, bridge_setup, fake_setup):
        fake_setup.link_pressed = True

        username = await bridge_setup.create_auth_token(BRIDGE_IP, "my-app", "laptop")

        assert username == "issued-username"
        request = fake_setup.requests[-1]
        assert str(request.url) == f"https://{BRIDGE_IP}/api"
        assert json.loads(request.content) == {"devicetype": "my-app#laptop"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_devicetype(self, bridge_setup, fake_setup):
        fake_setup.link_pressed = True
        await bridge_setup.create_auth_token(BRIDGE_IP)
        assert json.loads(fake_setup.requests[-1].content) == {"devicetype": "philips-hue-mcp#claude-agent"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("bridge_ip", ["", "   ", None])
    async def test_bridge_ip_required(self, bridge_setup, fake_setup, bridge_ip):
        with pytest.raises(ValidationError, match="bridgeIp is required"):
            await bridge_setup.create_auth_token(bridge_ip)
        assert fake_setup.requests == []
