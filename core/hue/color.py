"""
Colour Translation

Converts CSS colour text into the bridge's native colour model: CIE 1931
chromaticity coordinates plus a brightness level.

@.architecture
Incoming: api/rest/endpoints/*.py, core/tools/catalog.py, core/hue/client.py --- {str CSS colour: keyword, #hex, rgb()/rgba(), hsl()/hsla()}
Processing: translate(), parse_css_color(), _gamma_expand() --- {3 jobs: parsing, gamma_correction, chromaticity_projection}
Outgoing: core/hue/client.py --- {ColorSpec(x, y, brightness) or None}

The alpha channel is repurposed as a brightness multiplier, so
``rgba(255, 0, 0, 0.5)`` is a half-bright red.
"""

import colorsys
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import webcolors

# Neutral white point used when the colour carries no light at all.
FALLBACK_XY = (0.3127, 0.3290)

MIN_BRIGHTNESS = 1
MAX_BRIGHTNESS = 254

_FUNCTIONAL = re.compile(r"^(rgba?|hsla?)\(\s*(.*?)\s*\)$", re.IGNORECASE)

RGBA = Tuple[int, int, int, float]


@dataclass(frozen=True)
class ColorSpec:
    """Native colour for a light or group."""
    x: float
    y: float
    brightness: int

    @property
    def xy(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_state(self) -> Dict[str, Any]:
        """Hue API v1 state fragment."""
        return {"xy": [self.x, self.y], "bri": self.brightness}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# =============================================================================
# Parsing
# =============================================================================

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _parse_channel(token: str) -> int:
    if token.endswith("%"):
        value = float(token[:-1]) * 255 / 100
    else:
        value = float(token)
    return round_half_up(_clamp(value, 0, 255))


def _parse_alpha(token: Optional[str]) -> float:
    if token is None:
        return 1.0
    if token.endswith("%"):
        return _clamp(float(token[:-1]) / 100, 0.0, 1.0)
    return _clamp(float(token), 0.0, 1.0)


def _parse_hue(token: str) -> float:
    token = token.lower()
    if token.endswith("deg"):
        token = token[:-3]
    elif token.endswith("turn"):
        return (float(token[:-4]) * 360) % 360
    return float(token) % 360


def _parse_percent(token: str) -> float:
    return _clamp(float(token.rstrip("%")) / 100, 0.0, 1.0)


def _split_arguments(body: str) -> Optional[Tuple[list, Optional[str]]]:
    """Split ``r, g, b[, a]`` or ``r g b [/ a]`` into channels and alpha."""
    if "," in body:
        parts = [part.strip() for part in body.split(",")]
        if len(parts) not in (3, 4) or not all(parts):
            return None
        return parts[:3], (parts[3] if len(parts) == 4 else None)

    main, slash, alpha = body.partition("/")
    channels = main.split()
    if len(channels) != 3:
        return None
    alpha = alpha.strip()
    if slash and not alpha:
        return None
    return channels, (alpha or None)


def _parse_functional(name: str, body: str) -> Optional[RGBA]:
    split = _split_arguments(body)
    if split is None:
        return None
    channels, alpha_token = split

    if name.startswith("rgb"):
        red, green, blue = (_parse_channel(token) for token in channels)
        return red, green, blue, _parse_alpha(alpha_token)

    hue = _parse_hue(channels[0])
    saturation = _parse_percent(channels[1])
    lightness = _parse_percent(channels[2])
    r, g, b = colorsys.hls_to_rgb(hue / 360, lightness, saturation)
    return (
        round_half_up(r * 255),
        round_half_up(g * 255),
        round_half_up(b * 255),
        _parse_alpha(alpha_token),
    )


def _hex_alpha(pair: str) -> float:
    # Two decimal places, half up
    return round_half_up(int(pair, 16) / 255 * 100) / 100


def _parse_hex(text: str) -> Optional[RGBA]:
    digits = text[1:]
    alpha = 1.0
    if len(digits) == 4:
        alpha = _hex_alpha(digits[3] * 2)
        digits = digits[:3]
    elif len(digits) == 8:
        alpha = _hex_alpha(digits[6:])
        digits = digits[:6]
    rgb = webcolors.hex_to_rgb("#" + digits)
    return rgb.red, rgb.green, rgb.blue, alpha


def parse_css_color(text: Any) -> Optional[RGBA]:
    """
    Decode CSS colour text into 8-bit channels plus alpha.

    Args:
        text: Colour keyword, hex form, or rgb()/rgba()/hsl()/hsla() form

    Returns:
        (red, green, blue, alpha) or None if the text is not a colour
    """
    if not isinstance(text, str):
        return None
    text = text.strip().lower()
    if not text:
        return None

    try:
        if text == "transparent":
            return 0, 0, 0, 0.0
        if text.startswith("#"):
            return _parse_hex(text)
        match = _FUNCTIONAL.match(text)
        if match:
            return _parse_functional(match.group(1), match.group(2))
        rgb = webcolors.name_to_rgb(text)
        return rgb.red, rgb.green, rgb.blue, 1.0
    except ValueError:
        return None


# =============================================================================
# Translation
# =============================================================================

def _gamma_expand(channel: int) -> float:
    """sRGB transfer function inverse for one 8-bit channel."""
    value = channel / 255
    if value > 0.04045:
        return ((value + 0.055) / 1.055) ** 2.4
    return value / 12.92


def translate(color_text: Any) -> Optional[ColorSpec]:
    """
    Translate CSS colour text into chromaticity and brightness.

    Args:
        color_text: CSS colour expression

    Returns:
        ColorSpec, or None when the text does not parse as a colour
    """
    parsed = parse_css_color(color_text)
    if parsed is None:
        return None
    red, green, blue, alpha = parsed

    brightness = max(
        MIN_BRIGHTNESS,
        min(MAX_BRIGHTNESS, round_half_up(max(red, green, blue) / 255 * alpha * MAX_BRIGHTNESS)),
    )

    r = _gamma_expand(red)
    g = _gamma_expand(green)
    b = _gamma_expand(blue)

    # Wide gamut D65 conversion used by the bridge firmware
    big_x = r * 0.664511 + g * 0.154324 + b * 0.162028
    big_y = r * 0.283881 + g * 0.668433 + b * 0.047685
    big_z = r * 0.000088 + g * 0.072310 + b * 0.986039
    total = big_x + big_y + big_z

    if total == 0:
        x, y = FALLBACK_XY
    else:
        x, y = big_x / total, big_y / total

    return ColorSpec(x=x, y=y, brightness=brightness)
