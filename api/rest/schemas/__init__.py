"""
REST Schemas

Pydantic models for request/response validation.
"""

from .hue import (
    ActivateSceneRequest,
    AuthRequest,
    AuthResponse,
    BrightnessRequest,
    ColorRequest,
    ColorTempRequest,
    ConnectionResponse,
    CreateSceneRequest,
    DiscoveryResponse,
    MessageResponse,
    SceneCreatedResponse,
    StateRequest,
)

__all__ = [
    "ActivateSceneRequest",
    "AuthRequest",
    "AuthResponse",
    "BrightnessRequest",
    "ColorRequest",
    "ColorTempRequest",
    "ConnectionResponse",
    "CreateSceneRequest",
    "DiscoveryResponse",
    "MessageResponse",
    "SceneCreatedResponse",
    "StateRequest",
]
