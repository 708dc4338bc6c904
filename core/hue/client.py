"""
Hub Client

Resource model of the Hue bridge (lights, groups, scenes) on top of the
v1 REST API. Every downstream call, read or write, is funnelled through one
shared RequestSerializer so the bridge never sees two commands at once.

@.architecture
Incoming: api/rest/endpoints/*.py, core/tools/catalog.py, app.py --- {str resource ids, semantic values: brightness/hue/sat/lightness fractions, CSS colour text, mireds}
Processing: _call(), _queued(), compose_state(), brightness_from_fraction(), clamp_color_temp(), hsl_to_native(), activate_scene() --- {4 jobs: unit_normalization, request_serialization, error_mapping, scene_resolution}
Outgoing: utils/http.py -> Hue bridge https://{ip}/api/{username}, Callers --- {Light/Room/Scene views, hub success payloads, HubError family}

Normalization clamps out-of-range numbers instead of rejecting them; the
REST boundary is where range violations become 400s.
"""

import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from core.hue.color import MAX_BRIGHTNESS, MIN_BRIGHTNESS, round_half_up, translate
from core.hue.errors import (
    HubApiError,
    HubError,
    HubTimeoutError,
    HubUnreachableError,
    ValidationError,
)
from core.hue.models import Light, Room, Scene
from core.hue.queue import RequestSerializer
from monitoring import counter, get_logger, histogram
from utils.http import HTTPClient, HTTPClientConfig

logger = get_logger(__name__)

# Group 0 is the bridge's built-in "all lights" group
ALL_LIGHTS_GROUP = "0"

MIN_COLOR_TEMP = 153
MAX_COLOR_TEMP = 500
MAX_HUE = 65535
MAX_SATURATION = 254

hub_calls = counter(
    "hue_hub_calls_total",
    "Calls made to the bridge",
    labels=["method", "outcome"],
)
hub_latency = histogram(
    "hue_hub_call_duration_seconds",
    "Bridge round-trip time",
    labels=["method"],
)


# =============================================================================
# Unit Normalization
# =============================================================================

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def brightness_from_fraction(fraction: float) -> int:
    """0..1 brightness to native 1..254; 0 maps to the floor of 1, never off."""
    return int(_clamp(round_half_up(_clamp(fraction, 0.0, 1.0) * MAX_BRIGHTNESS), MIN_BRIGHTNESS, MAX_BRIGHTNESS))


def clamp_brightness(bri: float) -> int:
    return int(_clamp(round_half_up(bri), MIN_BRIGHTNESS, MAX_BRIGHTNESS))


def clamp_color_temp(mireds: float) -> int:
    return int(_clamp(round_half_up(mireds), MIN_COLOR_TEMP, MAX_COLOR_TEMP))


def hsl_to_native(hue: float, saturation: float, lightness: float) -> Dict[str, int]:
    """
    Convert HSL fractions to the bridge's hue/sat/bri triple.

    Args:
        hue: 0..1 around the colour wheel
        saturation: 0..1
        lightness: 0..1, mapped onto 1..254 so the lamp never switches off

    Returns:
        {"hue": 0..65535, "sat": 0..254, "bri": 1..254}
    """
    return {
        "hue": round_half_up(_clamp(hue, 0.0, 1.0) * MAX_HUE),
        "sat": round_half_up(_clamp(saturation, 0.0, 1.0) * MAX_SATURATION),
        "bri": round_half_up(_clamp(lightness, 0.0, 1.0) * (MAX_BRIGHTNESS - 1)) + 1,
    }


def compose_state(
    on: Optional[bool] = None,
    brightness: Optional[float] = None,
    color: Optional[str] = None,
    color_temp: Optional[float] = None,
    transition_time: Optional[int] = None,
    hue: Optional[float] = None,
    saturation: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Build a native state body from semantic values.

    Unset arguments are left out of the body. ``color`` wins over
    ``hue``/``saturation``; an explicit ``brightness`` wins over the
    brightness implied by ``color``.

    Raises:
        ValidationError: If ``color`` is not a CSS colour
    """
    state: Dict[str, Any] = {}
    if on is not None:
        state["on"] = on

    if color is not None:
        spec = translate(color)
        if spec is None:
            raise ValidationError(f'Invalid color: "{color}"')
        state.update(spec.to_state())
    elif hue is not None or saturation is not None:
        if hue is not None:
            state["hue"] = round_half_up(_clamp(hue, 0.0, 1.0) * MAX_HUE)
        if saturation is not None:
            state["sat"] = round_half_up(_clamp(saturation, 0.0, 1.0) * MAX_SATURATION)

    if brightness is not None:
        state["bri"] = brightness_from_fraction(brightness)
    if color_temp is not None:
        state["ct"] = clamp_color_temp(color_temp)
    if transition_time is not None:
        state["transitiontime"] = max(0, int(transition_time))
    return state


def _segment(resource_id: str) -> str:
    return quote(str(resource_id), safe="")


# =============================================================================
# Client
# =============================================================================

class HubClient:
    """
    Serialized access to one bridge.

    Writes return the bridge's success entries; reads return resource views
    in native units (bri 1..254, ct in mireds).
    """

    def __init__(self, http: HTTPClient, serializer: RequestSerializer, bridge_ip: Optional[str] = None):
        self._http = http
        self._serializer = serializer
        self.bridge_ip = bridge_ip

    @classmethod
    def from_settings(
        cls,
        hub_settings,
        serializer: RequestSerializer,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HubClient":
        """
        Build a client for the configured bridge.

        Args:
            hub_settings: config.settings.HubSettings
            serializer: Shared serializer instance
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        config = HTTPClientConfig.for_hub(
            hub_settings.bridge_ip or "unconfigured.invalid",
            hub_settings.username or "unconfigured",
            timeout=hub_settings.timeout_seconds,
            verify=hub_settings.verify_tls,
            connect_retries=hub_settings.connect_retries,
        )
        return cls(HTTPClient(config, transport=transport), serializer, bridge_ip=hub_settings.bridge_ip)

    @property
    def serializer(self) -> RequestSerializer:
        return self._serializer

    async def close(self) -> None:
        await self._serializer.close()
        await self._http.close()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _call(self, method: str, path: str, json: Any = None) -> Any:
        """
        Perform one bridge request. Must only run inside a serializer slot.

        Raises:
            HubTimeoutError: No answer within the configured timeout
            HubUnreachableError: Connection failed
            HubApiError: The bridge reported a domain error
            HubError: Unexpected status or body
        """
        started = time.monotonic()
        outcome = "error"
        try:
            try:
                response = await self._http.request(method, path, json=json)
            except httpx.TimeoutException as exc:
                outcome = "timeout"
                raise HubTimeoutError(
                    f"Bridge did not answer {method} {path} within {self._http.config.timeout}s"
                ) from exc
            except httpx.HTTPStatusError as exc:
                raise HubError(f"Bridge answered HTTP {exc.response.status_code} for {method} {path}") from exc
            except httpx.TransportError as exc:
                outcome = "unreachable"
                raise HubUnreachableError(f"Bridge unreachable at {self.bridge_ip}: {exc}") from exc

            try:
                payload = response.json()
            except ValueError as exc:
                raise HubError(f"Bridge returned a non-JSON body for {method} {path}") from exc

            error = HubApiError.from_payload(payload)
            if error is not None:
                outcome = "api_error"
                raise error

            outcome = "ok"
            return payload
        finally:
            hub_calls.inc(method=method, outcome=outcome)
            hub_latency.observe(time.monotonic() - started, method=method)

    async def _queued(self, method: str, path: str, json: Any = None) -> Any:
        label = f"{method} {path}"
        return await self._serializer.enqueue(lambda: self._call(method, path, json), label)

    # =========================================================================
    # Lights
    # =========================================================================

    async def get_lights(self) -> List[Light]:
        data = await self._queued("GET", "/lights")
        return [Light.from_hub(light_id, entry) for light_id, entry in (data or {}).items()]

    async def get_light(self, light_id: str) -> Light:
        data = await self._queued("GET", f"/lights/{_segment(light_id)}")
        return Light.from_hub(light_id, data or {})

    async def set_light_state(self, light_id: str, state: Dict[str, Any]) -> Any:
        """PUT a native state body; None values are dropped."""
        body = {key: value for key, value in state.items() if value is not None}
        return await self._queued("PUT", f"/lights/{_segment(light_id)}/state", body)

    async def turn_light_on(self, light_id: str) -> Any:
        return await self.set_light_state(light_id, {"on": True})

    async def turn_light_off(self, light_id: str) -> Any:
        return await self.set_light_state(light_id, {"on": False})

    async def set_brightness(self, light_id: str, fraction: float) -> Any:
        return await self.set_light_state(light_id, {"on": True, "bri": brightness_from_fraction(fraction)})

    async def set_color(self, light_id: str, color: str) -> Any:
        return await self.set_light_state(light_id, compose_state(on=True, color=color))

    async def set_color_hsl(self, light_id: str, hue: float, saturation: float, lightness: float) -> Any:
        return await self.set_light_state(light_id, {"on": True, **hsl_to_native(hue, saturation, lightness)})

    async def set_color_temp(self, light_id: str, mireds: float) -> Any:
        return await self.set_light_state(light_id, {"on": True, "ct": clamp_color_temp(mireds)})

    # =========================================================================
    # Rooms & Groups
    # =========================================================================

    async def get_all_groups(self) -> List[Room]:
        data = await self._queued("GET", "/groups")
        return [Room.from_hub(group_id, entry) for group_id, entry in (data or {}).items()]

    async def get_rooms(self) -> List[Room]:
        """Rooms and zones only; entertainment areas and light groups are skipped."""
        return [group for group in await self.get_all_groups() if group.is_room_or_zone]

    async def get_room(self, room_id: str) -> Room:
        data = await self._queued("GET", f"/groups/{_segment(room_id)}")
        return Room.from_hub(room_id, data or {})

    async def set_room_state(self, room_id: str, state: Dict[str, Any]) -> Any:
        body = {key: value for key, value in state.items() if value is not None}
        return await self._queued("PUT", f"/groups/{_segment(room_id)}/action", body)

    async def turn_room_on(self, room_id: str) -> Any:
        return await self.set_room_state(room_id, {"on": True})

    async def turn_room_off(self, room_id: str) -> Any:
        return await self.set_room_state(room_id, {"on": False})

    async def set_room_brightness(self, room_id: str, fraction: float) -> Any:
        return await self.set_room_state(room_id, {"on": True, "bri": brightness_from_fraction(fraction)})

    async def set_room_color(self, room_id: str, color: str) -> Any:
        return await self.set_room_state(room_id, compose_state(on=True, color=color))

    async def set_room_color_hsl(self, room_id: str, hue: float, saturation: float, lightness: float) -> Any:
        return await self.set_room_state(room_id, {"on": True, **hsl_to_native(hue, saturation, lightness)})

    async def set_room_color_temp(self, room_id: str, mireds: float) -> Any:
        return await self.set_room_state(room_id, {"on": True, "ct": clamp_color_temp(mireds)})

    async def set_all_state(self, state: Dict[str, Any]) -> Any:
        """Apply a state to every light via the built-in group 0."""
        return await self.set_room_state(ALL_LIGHTS_GROUP, state)

    # =========================================================================
    # Scenes
    # =========================================================================

    async def get_scenes(self) -> List[Scene]:
        data = await self._queued("GET", "/scenes")
        return [Scene.from_hub(scene_id, entry) for scene_id, entry in (data or {}).items()]

    async def activate_scene(self, scene_id: str, group_id: Optional[str] = None) -> str:
        """
        Recall a scene.

        Without ``group_id`` the scene's own group is looked up and used,
        falling back to group 0 when the scene is unknown or has no group.
        The lookup and the recall share one serializer slot.

        Returns:
            The group the scene was recalled on
        """
        if group_id:
            await self._queued("PUT", f"/groups/{_segment(group_id)}/action", {"scene": scene_id})
            return str(group_id)

        async def resolve_and_recall() -> str:
            scenes = await self._call("GET", "/scenes") or {}
            target = (scenes.get(scene_id) or {}).get("group") or ALL_LIGHTS_GROUP
            if target == ALL_LIGHTS_GROUP:
                logger.info(f"Scene {scene_id} has no resolvable group, recalling on all lights")
            await self._call("PUT", f"/groups/{_segment(target)}/action", {"scene": scene_id})
            return str(target)

        return await self._serializer.enqueue(resolve_and_recall, f"activate scene {scene_id}")

    async def resolve_scene_lights(self, room_id: Optional[str] = None, light_ids: Optional[List[str]] = None) -> List[str]:
        """Explicit lights win, then the room's lights, then every light."""
        if light_ids:
            return [str(light) for light in light_ids]
        if room_id:
            return (await self.get_room(room_id)).lights
        return [light.id for light in await self.get_lights()]

    async def create_scene(self, name: str, light_ids: List[str], group_id: Optional[str] = None) -> str:
        """
        Store the current state of ``light_ids`` as a new scene.

        Returns:
            The scene id assigned by the bridge
        """
        body: Dict[str, Any] = {"name": name, "recycle": False}
        if group_id:
            body.update({"type": "GroupScene", "group": str(group_id)})
        else:
            body.update({"type": "LightScene", "lights": [str(light) for light in light_ids]})

        result = await self._queued("POST", "/scenes", body)
        for entry in result or []:
            scene_id = (entry.get("success") or {}).get("id") if isinstance(entry, dict) else None
            if scene_id:
                return str(scene_id)
        raise HubError(f"Bridge did not return an id for new scene '{name}'")

    async def delete_scene(self, scene_id: str) -> Any:
        return await self._queued("DELETE", f"/scenes/{_segment(scene_id)}")

    # =========================================================================
    # Connection
    # =========================================================================

    async def ping(self) -> int:
        """Round-trip the light list; returns the number of lights seen."""
        return len(await self.get_lights())
