"""
Unit Tests: Tool Catalogue

Tool registration, configuration gating, argument mapping and the setup
guide resource.
"""

import json
from unittest.mock import AsyncMock

import pytest
from mcp import types
from mcp.server.lowlevel import Server

from conftest import BRIDGE_IP
from config.settings import HubSettings
from core.hue.client import HubClient
from core.hue.errors import HubApiError, HubNotConfiguredError, ValidationError
from core.tools import SERVER_NAME, SETUP_GUIDE, SETUP_GUIDE_URI, ToolCatalog, create_tool_server

LIGHT_TOOLS = {
    "list_lights", "get_light", "turn_light_on", "turn_light_off",
    "set_light_brightness", "set_light_color", "set_light_color_temp", "set_light_state",
}
ROOM_TOOLS = {
    "list_rooms", "list_groups", "get_room", "turn_room_on", "turn_room_off",
    "set_room_brightness", "set_room_color", "set_room_color_temp", "set_room_state",
}
OTHER_TOOLS = {
    "list_scenes", "activate_scene", "turn_all_lights_on", "turn_all_lights_off",
    "discover_bridges", "create_auth_token", "test_connection",
}


@pytest.fixture
def catalog(hub_client, bridge_setup, hub_settings):
    return ToolCatalog(hub_client, bridge_setup, hub_settings)


@pytest.fixture
def unconfigured_catalog(bridge_setup):
    return ToolCatalog(None, bridge_setup, HubSettings())


# =============================================================================
# Registration
# =============================================================================

class TestRegistration:

    @pytest.mark.unit
    def test_all_tools_listed(self, catalog):
        assert set(catalog.names()) == LIGHT_TOOLS | ROOM_TOOLS | OTHER_TOOLS

    @pytest.mark.unit
    def test_tool_metadata(self, catalog):
        tools = {tool.name: tool for tool in catalog.list_tools()}

        brightness = tools["set_light_brightness"]
        assert isinstance(brightness, types.Tool)
        assert brightness.title == "Set Light Brightness"
        assert brightness.inputSchema["required"] == ["lightId", "brightness"]
        assert brightness.inputSchema["properties"]["brightness"]["maximum"] == 1

    @pytest.mark.unit
    def test_setup_tools_do_not_need_hub(self, catalog):
        assert not catalog.get("discover_bridges").requires_hub
        assert not catalog.get("test_connection").requires_hub
        assert catalog.get("list_lights").requires_hub

    @pytest.mark.unit
    def test_create_tool_server(self, catalog):
        server = create_tool_server(catalog, version="9.9.9")

        assert isinstance(server, Server)
        assert server.name == SERVER_NAME
        assert server.version == "9.9.9"


# =============================================================================
# Dispatch
# =============================================================================

class TestCall:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_tool(self, catalog):
        with pytest.raises(ValueError, match="Unknown tool: fly"):
            await catalog.call("fly", {})

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_lights_returns_json(self, catalog):
        lights = json.loads(await catalog.call("list_lights"))

        assert [light["id"] for light in lights] == ["1", "2", "3"]
        assert lights[0]["brightness"] == 200

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_turn_light_on(self, catalog, fake_hub):
        text = await catalog.call("turn_light_on", {"lightId": "2"})

        assert text == "Light 2 turned on"
        assert fake_hub.writes()[-1].body == {"on": True}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_light_color_from_css(self, catalog, fake_hub):
        await catalog.call("set_light_color", {"lightId": "1", "color": "blue", "brightness": 0.5})

        body = fake_hub.writes()[-1].body
        assert body["bri"] == 127
        assert "xy" in body

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_room_color_from_hsl(self, catalog, fake_hub):
        text = await catalog.call("set_room_color", {"roomId": "1", "hue": 0.5, "saturation": 1, "brightness": 1})

        assert text == "Room 1 color updated"
        assert fake_hub.writes()[-1].body == {"on": True, "hue": 32768, "sat": 254, "bri": 254}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_color_needs_color_or_hue(self, catalog, fake_hub):
        with pytest.raises(ValidationError, match="either color, or hue and saturation"):
            await catalog.call("set_light_color", {"lightId": "1", "hue": 0.3})
        assert fake_hub.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_light_state(self, catalog, fake_hub):
        await catalog.call("set_light_state", {"lightId": "1", "on": True, "colorTemp": 600, "transitionTime": 4})
        assert fake_hub.writes()[-1].body == {"on": True, "ct": 500, "transitiontime": 4}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_activate_scene_reports_group(self, catalog):
        assert await catalog.call("activate_scene", {"sceneId": "abc"}) == "Scene abc activated in group 1"
        assert await catalog.call("activate_scene", {"sceneId": "def"}) == "Scene def activated in group 0"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_turn_all_lights_off(self, catalog, fake_hub):
        assert await catalog.call("turn_all_lights_off") == "All lights turned off"
        assert fake_hub.writes()[-1].path == "/groups/0/action"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_hub_error_propagates(self, catalog):
        with pytest.raises(HubApiError):
            await catalog.call("get_light", {"lightId": "42"})


# =============================================================================
# Configuration gating
# =============================================================================

class TestUnconfigured:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_hub_never_called_without_credentials(self, bridge_setup):
        hub = AsyncMock(spec=HubClient)
        catalog = ToolCatalog(hub, bridge_setup, HubSettings(bridge_ip="10.0.0.2"))

        with pytest.raises(HubNotConfiguredError):
            await catalog.call("turn_all_lights_on")
        hub.set_all_state.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_hub_tool_refused(self, unconfigured_catalog):
        with pytest.raises(HubNotConfiguredError, match="HUE_BRIDGE_IP"):
            await unconfigured_catalog.call("list_lights")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_test_connection_lists_missing_variables(self, unconfigured_catalog):
        text = await unconfigured_catalog.call("test_connection")

        assert text.startswith("Not configured.")
        assert "- HUE_BRIDGE_IP" in text
        assert "- HUE_USERNAME" in text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_discovery_works_without_credentials(self, unconfigured_catalog):
        text = await unconfigured_catalog.call("discover_bridges")

        assert text.startswith("Found 1 Hue bridge(s)")
        assert BRIDGE_IP in text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_bridges_found(self, unconfigured_catalog, fake_setup):
        fake_setup.bridges = []
        assert (await unconfigured_catalog.call("discover_bridges")).startswith("No Hue bridges found")


# =============================================================================
# Setup tools
# =============================================================================

class TestSetupTools:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_link_button_guidance(self, unconfigured_catalog):
        text = await unconfigured_catalog.call("create_auth_token", {"bridgeIp": BRIDGE_IP})

        assert text.startswith("Link button not pressed.")
        assert "30 seconds" in text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_token_created(self, unconfigured_catalog, fake_setup):
        fake_setup.link_pressed = True

        text = await unconfigured_catalog.call("create_auth_token", {"bridgeIp": BRIDGE_IP})

        assert "Username: issued-username" in text
        assert f"HUE_BRIDGE_IP={BRIDGE_IP}" in text
        assert "HUE_USERNAME=issued-username" in text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_successful(self, catalog):
        text = await catalog.call("test_connection")

        assert text.startswith("Connection successful.")
        assert f"Bridge IP: {BRIDGE_IP}" in text
        assert "Found 3 lights." in text

    @pytest.mark.unit
    def test_setup_guide(self):
        assert SETUP_GUIDE_URI == "hue://setup-guide"
        assert "HUE_USERNAME" in SETUP_GUIDE
