"""
Hue REST Schemas

Pydantic models for REST request bodies and responses. Field names on the
wire are camelCase; numeric ranges are checked in api/rest/validation.py so
every range error carries the same message regardless of route.

@.architecture
Incoming: api/rest/endpoints/*.py --- {JSON request bodies}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/rest/endpoints/*.py, OpenAPI document --- {BrightnessRequest, ColorRequest, ColorTempRequest, StateRequest, CreateSceneRequest, ActivateSceneRequest, AuthRequest, MessageResponse validated models}
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Accepts both camelCase aliases and field names."""
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Request Models
# =============================================================================

class BrightnessRequest(CamelModel):
    """Brightness as a fraction, 0 = dimmest, 1 = brightest."""
    brightness: float = Field(..., description="0..1")


class ColorRequest(CamelModel):
    """CSS colour."""
    color: str = Field(..., description="Name, #hex, rgb()/rgba() or hsl()/hsla()")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"color": "rgba(255, 120, 0, 0.5)"}},
    )


class ColorTempRequest(CamelModel):
    """Colour temperature in mireds."""
    color_temp: float = Field(..., alias="colorTemp", description="153 (cool) .. 500 (warm)")


class StateRequest(CamelModel):
    """Several properties at once; unset fields are left unchanged."""
    on: Optional[bool] = None
    brightness: Optional[float] = Field(default=None, description="0..1")
    color: Optional[str] = None
    color_temp: Optional[float] = Field(default=None, alias="colorTemp")
    transition_time: Optional[int] = Field(default=None, alias="transitionTime", description="100ms steps")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"on": True, "brightness": 0.6, "colorTemp": 370, "transitionTime": 10}},
    )


class CreateSceneRequest(CamelModel):
    """New scene from the current state of a room, a light list, or every light."""
    name: Optional[str] = None
    room_id: Optional[str] = Field(default=None, alias="roomId")
    light_ids: Optional[List[str]] = Field(default=None, alias="lightIds")


class ActivateSceneRequest(CamelModel):
    group_id: Optional[str] = Field(default=None, alias="groupId")


class AuthRequest(CamelModel):
    """Token issuance; the bridge's link button must be pressed first."""
    bridge_ip: Optional[str] = Field(default=None, alias="bridgeIp")
    app_name: Optional[str] = Field(default=None, alias="appName")
    device_name: Optional[str] = Field(default=None, alias="deviceName")


# =============================================================================
# Response Models
# =============================================================================

class MessageResponse(BaseModel):
    message: str


class SceneCreatedResponse(BaseModel):
    message: str
    id: str


class AuthResponse(BaseModel):
    username: str
    bridgeIp: str


class DiscoveryResponse(BaseModel):
    bridges: List[Dict[str, Any]]
    message: Optional[str] = None


class ConnectionResponse(BaseModel):
    status: str
    bridgeIp: Optional[str] = None
    lightCount: int
