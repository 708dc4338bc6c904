"""
Hue Core

Everything between the front ends and the bridge:
- Colour translation (CSS colour -> CIE xy + brightness)
- Single-flight request serializer
- Hub client with unit normalization
- Bridge discovery and token issuance
- Error taxonomy shared by all layers
"""

from core.hue.color import ColorSpec, translate, parse_css_color
from core.hue.queue import RequestSerializer, QueuedOperation
from core.hue.client import (
    ALL_LIGHTS_GROUP,
    HubClient,
    brightness_from_fraction,
    clamp_color_temp,
    compose_state,
    hsl_to_native,
)
from core.hue.models import Light, Room, Scene
from core.hue.setup import BridgeSetup
from core.hue.errors import (
    HueGatewayError,
    ValidationError,
    HubNotConfiguredError,
    HubError,
    HubUnreachableError,
    HubTimeoutError,
    HubApiError,
    LinkButtonNotPressedError,
    SerializerClosedError,
)

__all__ = [
    # Colour
    "ColorSpec",
    "translate",
    "parse_css_color",
    # Serializer
    "RequestSerializer",
    "QueuedOperation",
    # Client
    "ALL_LIGHTS_GROUP",
    "HubClient",
    "brightness_from_fraction",
    "clamp_color_temp",
    "compose_state",
    "hsl_to_native",
    "Light",
    "Room",
    "Scene",
    # Setup
    "BridgeSetup",
    # Errors
    "HueGatewayError",
    "ValidationError",
    "HubNotConfiguredError",
    "HubError",
    "HubUnreachableError",
    "HubTimeoutError",
    "HubApiError",
    "LinkButtonNotPressedError",
    "SerializerClosedError",
]
