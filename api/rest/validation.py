"""
REST input validation.

The REST surface rejects out-of-range values with 400, while HubClient clamps
them; these checks run before anything reaches the serializer.
"""

import math
from typing import Any, Dict, Optional

from api.rest.schemas import StateRequest
from core.hue.client import MAX_COLOR_TEMP, MIN_COLOR_TEMP, compose_state
from core.hue.color import ColorSpec, translate
from core.hue.errors import ValidationError


def validate_brightness(value: float) -> float:
    if value is None or math.isnan(value) or not 0 <= value <= 1:
        raise ValidationError("brightness must be a number between 0 and 1")
    return value


def validate_color_temp(value: float) -> float:
    if value is None or math.isnan(value) or not MIN_COLOR_TEMP <= value <= MAX_COLOR_TEMP:
        raise ValidationError(f"colorTemp must be between {MIN_COLOR_TEMP} and {MAX_COLOR_TEMP}")
    return value


def validate_transition_time(value: int) -> int:
    if value < 0:
        raise ValidationError("transitionTime must be a non-negative integer")
    return value


def validate_color(value: Any) -> ColorSpec:
    spec = translate(value)
    if spec is None:
        raise ValidationError(f'Invalid color: "{value}"')
    return spec


def validate_name(value: Optional[str]) -> str:
    if not value or not value.strip():
        raise ValidationError("name is required")
    return value.strip()


def state_from_request(body: StateRequest) -> Dict[str, Any]:
    """Validate a state body and convert it to the native state."""
    if body.brightness is not None:
        validate_brightness(body.brightness)
    if body.color_temp is not None:
        validate_color_temp(body.color_temp)
    if body.transition_time is not None:
        validate_transition_time(body.transition_time)
    if body.color is not None:
        validate_color(body.color)

    return compose_state(
        on=body.on,
        brightness=body.brightness,
        color=body.color,
        color_temp=body.color_temp,
        transition_time=body.transition_time,
    )
