"""
Tool Catalogue

The MCP tools offered by the gateway, as plain async handlers over
HubClient and BridgeSetup. Kept independent of the SDK so the handlers can
be exercised directly; core/tools/server.py wires them into an mcp Server.

@.architecture
Incoming: core/tools/server.py, tests --- {str tool name, Dict[str, Any] arguments}
Processing: call(), list_tools(), _require_hub(), per-tool handlers --- {4 jobs: tool_registration, configuration_gating, argument_mapping, result_formatting}
Outgoing: core/hue/client.py, core/hue/setup.py, core/tools/server.py --- {hub operations, str result text, HueGatewayError on failure}

A raised exception becomes an error result (isError) in the SDK, never a
protocol fault.
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp import types

from core.hue.client import HubClient, compose_state, hsl_to_native
from core.hue.errors import HubNotConfiguredError, LinkButtonNotPressedError, ValidationError
from core.hue.setup import BridgeSetup
from monitoring import counter, get_logger

logger = get_logger(__name__)

tool_calls = counter(
    "hue_mcp_tool_calls_total",
    "MCP tool invocations",
    labels=["tool", "status"],
)

Handler = Callable[[Dict[str, Any]], Awaitable[str]]


@dataclass
class ToolSpec:
    """One tool: metadata advertised to peers plus its handler."""
    name: str
    title: str
    description: str
    input_schema: Dict[str, Any]
    handler: Handler
    requires_hub: bool = True

    def to_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_schema,
        )


# =============================================================================
# Schema helpers
# =============================================================================

def _schema(properties: Optional[Dict[str, Any]] = None, required: Optional[List[str]] = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


def _fraction(description: str) -> Dict[str, Any]:
    return {"type": "number", "minimum": 0, "maximum": 1, "description": description}


LIGHT_ID = _string("The ID of the light")
ROOM_ID = _string("The ID of the room or group")
COLOR = _string("Any CSS colour: name, #hex, rgb()/rgba(), hsl()/hsla(). Alpha scales brightness.")
COLOR_TEMP = {
    "type": "number", "minimum": 153, "maximum": 500,
    "description": "Colour temperature in mireds (153 = cool daylight, 500 = warm candlelight)",
}
TRANSITION_TIME = {
    "type": "integer", "minimum": 0,
    "description": "Transition time in 100ms steps (10 = 1 second)",
}

COLOR_PROPERTIES = {
    "color": COLOR,
    "hue": _fraction("Hue around the colour wheel, 0..1 (used when color is absent)"),
    "saturation": _fraction("Saturation 0..1 (used with hue)"),
    "brightness": _fraction("Brightness 0..1"),
}

STATE_PROPERTIES = {
    "on": {"type": "boolean", "description": "Turn lights on or off"},
    "brightness": _fraction("Brightness 0..1"),
    "color": COLOR,
    "hue": _fraction("Hue 0..1"),
    "saturation": _fraction("Saturation 0..1"),
    "colorTemp": COLOR_TEMP,
    "transitionTime": TRANSITION_TIME,
}


def _dump(value: Any) -> str:
    if isinstance(value, list):
        value = [item.to_public() if hasattr(item, "to_public") else item for item in value]
    elif hasattr(value, "to_public"):
        value = value.to_public()
    return json.dumps(value, indent=2)


def _color_change(args: Dict[str, Any]) -> Dict[str, Any]:
    """Native body for a set_*_color call."""
    color = args.get("color")
    hue = args.get("hue")
    saturation = args.get("saturation")
    brightness = args.get("brightness")

    if color is not None:
        state = compose_state(on=True, color=color)
        if brightness is not None:
            state.update(compose_state(brightness=brightness))
        return state
    if hue is None or saturation is None:
        raise ValidationError("Provide either color, or hue and saturation")
    if brightness is not None:
        return {"on": True, **hsl_to_native(hue, saturation, brightness)}
    return compose_state(on=True, hue=hue, saturation=saturation)


def _state_change(args: Dict[str, Any]) -> Dict[str, Any]:
    return compose_state(
        on=args.get("on"),
        brightness=args.get("brightness"),
        color=args.get("color"),
        color_temp=args.get("colorTemp"),
        transition_time=args.get("transitionTime"),
        hue=args.get("hue"),
        saturation=args.get("saturation"),
    )


# =============================================================================
# Catalogue
# =============================================================================

class ToolCatalog:
    """
    Registry of gateway tools.

    Args:
        hub: Client for the configured bridge, or None when credentials are unset
        setup: Discovery / token issuance helper
        hub_settings: config.settings.HubSettings, for connection diagnostics
    """

    def __init__(self, hub: Optional[HubClient], setup: BridgeSetup, hub_settings):
        self.hub = hub
        self.setup = setup
        self.hub_settings = hub_settings
        self._tools: Dict[str, ToolSpec] = {}
        self._register_all()

    # =========================================================================
    # Dispatch
    # =========================================================================

    def list_tools(self) -> List[types.Tool]:
        return [spec.to_tool() for spec in self._tools.values()]

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """
        Run a tool.

        Returns:
            Result text

        Raises:
            ValueError: Unknown tool
            HubNotConfiguredError: Hub tool invoked without credentials
            HueGatewayError: Validation or downstream failure
        """
        spec = self._tools.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")

        try:
            if spec.requires_hub:
                self._require_hub()
            result = await spec.handler(arguments or {})
        except Exception as e:
            tool_calls.inc(tool=name, status="error")
            logger.warning(f"Tool {name} failed: {type(e).__name__}: {e}")
            raise
        tool_calls.inc(tool=name, status="ok")
        return result

    def _require_hub(self) -> HubClient:
        if self.hub is None or not self.hub_settings.configured:
            raise HubNotConfiguredError()
        return self.hub

    def _add(self, name: str, title: str, description: str, handler: Handler,
             schema: Optional[Dict[str, Any]] = None, requires_hub: bool = True) -> None:
        self._tools[name] = ToolSpec(name, title, description, schema or _schema(), handler, requires_hub)

    # =========================================================================
    # Registration
    # =========================================================================

    def _register_all(self) -> None:
        light = _schema({"lightId": LIGHT_ID}, ["lightId"])
        room = _schema({"roomId": ROOM_ID}, ["roomId"])

        # Lights
        self._add("list_lights", "List Lights",
                  "Get a list of all Philips Hue lights with their current state",
                  self._list_lights)
        self._add("get_light", "Get Light", "Get details of a specific light by its ID",
                  self._get_light, light)
        self._add("turn_light_on", "Turn Light On", "Turn on a specific light",
                  self._turn_light_on, light)
        self._add("turn_light_off", "Turn Light Off", "Turn off a specific light",
                  self._turn_light_off, light)
        self._add("set_light_brightness", "Set Light Brightness",
                  "Set the brightness of a light as a fraction (0 = dimmest, 1 = brightest)",
                  self._set_light_brightness,
                  _schema({"lightId": LIGHT_ID, "brightness": _fraction("Brightness 0..1")}, ["lightId", "brightness"]))
        self._add("set_light_color", "Set Light Color",
                  "Set the colour of a light from a CSS colour, or from hue and saturation fractions",
                  self._set_light_color,
                  _schema({"lightId": LIGHT_ID, **COLOR_PROPERTIES}, ["lightId"]))
        self._add("set_light_color_temp", "Set Light Color Temperature",
                  "Set the colour temperature of a light in mireds (153-500, lower = cooler, higher = warmer)",
                  self._set_light_color_temp,
                  _schema({"lightId": LIGHT_ID, "colorTemp": COLOR_TEMP}, ["lightId", "colorTemp"]))
        self._add("set_light_state", "Set Light State", "Set multiple properties of a light at once",
                  self._set_light_state,
                  _schema({"lightId": LIGHT_ID, **STATE_PROPERTIES}, ["lightId"]))

        # Rooms & groups
        self._add("list_rooms", "List Rooms", "Get a list of all rooms and zones", self._list_rooms)
        self._add("list_groups", "List All Groups",
                  "Get a list of all groups including rooms, zones and entertainment areas",
                  self._list_groups)
        self._add("get_room", "Get Room", "Get details of a specific room by its ID", self._get_room, room)
        self._add("turn_room_on", "Turn Room On", "Turn on all lights in a room", self._turn_room_on, room)
        self._add("turn_room_off", "Turn Room Off", "Turn off all lights in a room", self._turn_room_off, room)
        self._add("set_room_brightness", "Set Room Brightness",
                  "Set the brightness of all lights in a room as a fraction (0..1)",
                  self._set_room_brightness,
                  _schema({"roomId": ROOM_ID, "brightness": _fraction("Brightness 0..1")}, ["roomId", "brightness"]))
        self._add("set_room_color", "Set Room Color",
                  "Set the colour of all lights in a room from a CSS colour, or from hue and saturation fractions",
                  self._set_room_color,
                  _schema({"roomId": ROOM_ID, **COLOR_PROPERTIES}, ["roomId"]))
        self._add("set_room_color_temp", "Set Room Color Temperature",
                  "Set the colour temperature of all lights in a room in mireds",
                  self._set_room_color_temp,
                  _schema({"roomId": ROOM_ID, "colorTemp": COLOR_TEMP}, ["roomId", "colorTemp"]))
        self._add("set_room_state", "Set Room State",
                  "Set multiple properties of all lights in a room at once",
                  self._set_room_state,
                  _schema({"roomId": ROOM_ID, **STATE_PROPERTIES}, ["roomId"]))

        # Scenes
        self._add("list_scenes", "List Scenes", "Get a list of all available scenes", self._list_scenes)
        self._add("activate_scene", "Activate Scene", "Activate a specific scene",
                  self._activate_scene,
                  _schema({
                      "sceneId": _string("The ID of the scene to activate"),
                      "groupId": _string("Optional group ID to apply the scene to"),
                  }, ["sceneId"]))

        # House
        self._add("turn_all_lights_on", "Turn All Lights On", "Turn on all lights in the house",
                  self._turn_all_on)
        self._add("turn_all_lights_off", "Turn All Lights Off", "Turn off all lights in the house",
                  self._turn_all_off)

        # Setup
        self._add("discover_bridges", "Discover Bridges",
                  "Discover Philips Hue bridges on your local network using the Hue discovery service",
                  self._discover_bridges, requires_hub=False)
        self._add("create_auth_token", "Create Auth Token",
                  "Create a new auth token for the Hue bridge. Press the button on the bridge first, "
                  "then call this within 30 seconds.",
                  self._create_auth_token,
                  _schema({
                      "bridgeIp": _string("The IP address of the Hue bridge"),
                      "appName": _string("Application name (default: philips-hue-mcp)"),
                      "deviceName": _string("Device name (default: claude-agent)"),
                  }, ["bridgeIp"]),
                  requires_hub=False)
        self._add("test_connection", "Test Connection",
                  "Test the connection to the Hue bridge with the current credentials",
                  self._test_connection, requires_hub=False)

    # =========================================================================
    # Light handlers
    # =========================================================================

    async def _list_lights(self, args: Dict[str, Any]) -> str:
        return _dump(await self.hub.get_lights())

    async def _get_light(self, args: Dict[str, Any]) -> str:
        return _dump(await self.hub.get_light(args["lightId"]))

    async def _turn_light_on(self, args: Dict[str, Any]) -> str:
        await self.hub.turn_light_on(args["lightId"])
        return f"Light {args['lightId']} turned on"

    async def _turn_light_off(self, args: Dict[str, Any]) -> str:
        await self.hub.turn_light_off(args["lightId"])
        return f"Light {args['lightId']} turned off"

    async def _set_light_brightness(self, args: Dict[str, Any]) -> str:
        await self.hub.set_brightness(args["lightId"], args["brightness"])
        return f"Light {args['lightId']} brightness set to {args['brightness']}"

    async def _set_light_color(self, args: Dict[str, Any]) -> str:
        await self.hub.set_light_state(args["lightId"], _color_change(args))
        return f"Light {args['lightId']} color updated"

    async def _set_light_color_temp(self, args: Dict[str, Any]) -> str:
        await self.hub.set_color_temp(args["lightId"], args["colorTemp"])
        return f"Light {args['lightId']} color temperature set to {args['colorTemp']} mireds"

    async def _set_light_state(self, args: Dict[str, Any]) -> str:
        await self.hub.set_light_state(args["lightId"], _state_change(args))
        return f"Light {args['lightId']} state updated"

    # =========================================================================
    # Room handlers
    # =========================================================================

    async def _list_rooms(self, args: Dict[str, Any]) -> str:
        return _dump(await self.hub.get_rooms())

    async def _list_groups(self, args: Dict[str, Any]) -> str:
        return _dump(await self.hub.get_all_groups())

    async def _get_room(self, args: Dict[str, Any]) -> str:
        return _dump(await self.hub.get_room(args["roomId"]))

    async def _turn_room_on(self, args: Dict[str, Any]) -> str:
        await self.hub.turn_room_on(args["roomId"])
        return f"Room {args['roomId']} turned on"

    async def _turn_room_off(self, args: Dict[str, Any]) -> str:
        await self.hub.turn_room_off(args["roomId"])
        return f"Room {args['roomId']} turned off"

    async def _set_room_brightness(self, args: Dict[str, Any]) -> str:
        await self.hub.set_room_brightness(args["roomId"], args["brightness"])
        return f"Room {args['roomId']} brightness set to {args['brightness']}"

    async def _set_room_color(self, args: Dict[str, Any]) -> str:
        await self.hub.set_room_state(args["roomId"], _color_change(args))
        return f"Room {args['roomId']} color updated"

    async def _set_room_color_temp(self, args: Dict[str, Any]) -> str:
        await self.hub.set_room_color_temp(args["roomId"], args["colorTemp"])
        return f"Room {args['roomId']} color temperature set to {args['colorTemp']} mireds"

    async def _set_room_state(self, args: Dict[str, Any]) -> str:
        await self.hub.set_room_state(args["roomId"], _state_change(args))
        return f"Room {args['roomId']} state updated"

    # =========================================================================
    # Scene & house handlers
    # =========================================================================

    async def _list_scenes(self, args: Dict[str, Any]) -> str:
        return _dump(await self.hub.get_scenes())

    async def _activate_scene(self, args: Dict[str, Any]) -> str:
        group = await self.hub.activate_scene(args["sceneId"], args.get("groupId"))
        return f"Scene {args['sceneId']} activated in group {group}"

    async def _turn_all_on(self, args: Dict[str, Any]) -> str:
        await self.hub.set_all_state({"on": True})
        return "All lights turned on"

    async def _turn_all_off(self, args: Dict[str, Any]) -> str:
        await self.hub.set_all_state({"on": False})
        return "All lights turned off"

    # =========================================================================
    # Setup handlers
    # =========================================================================

    async def _discover_bridges(self, args: Dict[str, Any]) -> str:
        bridges = await self.setup.discover_bridges()
        if not bridges:
            return ("No Hue bridges found on the network. Make sure your bridge is powered on "
                    "and connected to the same network.")
        return (f"Found {len(bridges)} Hue bridge(s):\n\n{json.dumps(bridges, indent=2)}\n\n"
                "Use the bridge IP address with the create_auth_token tool to authenticate.")

    async def _create_auth_token(self, args: Dict[str, Any]) -> str:
        bridge_ip = args.get("bridgeIp", "")
        try:
            username = await self.setup.create_auth_token(bridge_ip, args.get("appName"), args.get("deviceName"))
        except LinkButtonNotPressedError:
            # Expected first step of the handshake, reported as guidance
            return ("Link button not pressed.\n\n"
                    "1. Press the button on top of your Hue bridge\n"
                    "2. Run this tool again within 30 seconds")
        return (f"Auth token created.\n\nUsername: {username}\n\n"
                f"Set these environment variables and restart the gateway:\n"
                f"HUE_BRIDGE_IP={bridge_ip}\nHUE_USERNAME={username}\n\n"
                "Keep this token secret: anyone holding it can control your lights.")

    async def _test_connection(self, args: Dict[str, Any]) -> str:
        missing = self.hub_settings.missing
        if missing or self.hub is None:
            return ("Not configured.\n\nMissing environment variables:\n"
                    + "".join(f"- {name}\n" for name in missing)
                    + "\nUse the discover_bridges and create_auth_token tools, "
                      "or read the hue://setup-guide resource.")
        count = await self.hub.ping()
        return f"Connection successful.\n\nBridge IP: {self.hub_settings.bridge_ip}\nFound {count} lights."
