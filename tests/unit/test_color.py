"""
Unit Tests: Colour Translation

CSS colour parsing and conversion to CIE xy + brightness.
"""

import pytest

from core.hue.color import FALLBACK_XY, ColorSpec, parse_css_color, round_half_up, translate


# =============================================================================
# Parsing
# =============================================================================

class TestParseCssColor:
    """Decoding to 8-bit channels plus alpha."""

    @pytest.mark.unit
    @pytest.mark.parametrize("text, expected", [
        ("red", (255, 0, 0, 1.0)),
        ("Orange", (255, 165, 0, 1.0)),
        ("#0f0", (0, 255, 0, 1.0)),
        ("#0000ff", (0, 0, 255, 1.0)),
        ("rgb(10, 20, 30)", (10, 20, 30, 1.0)),
        ("rgb(100%, 0%, 0%)", (255, 0, 0, 1.0)),
        ("rgb(10 20 30 / 0.5)", (10, 20, 30, 0.5)),
        ("hsl(120, 100%, 50%)", (0, 255, 0, 1.0)),
        ("hsla(240deg, 100%, 50%, 25%)", (0, 0, 255, 0.25)),
        ("transparent", (0, 0, 0, 0.0)),
    ])
    def test_valid_forms(self, text, expected):
        assert parse_css_color(text) == pytest.approx(expected)

    @pytest.mark.unit
    def test_hex_alpha(self):
        red, green, blue, alpha = parse_css_color("#ff000080")
        assert (red, green, blue) == (255, 0, 0)
        assert alpha == 0.5
        assert parse_css_color("#f008")[3] == 0.53

    @pytest.mark.unit
    @pytest.mark.parametrize("text", [
        "not-a-color", "", "   ", "#12", "#ggg", "rgb(1, 2)", "rgb(1 2 3 /)", None, 42,
    ])
    def test_invalid_forms(self, text):
        assert parse_css_color(text) is None

    @pytest.mark.unit
    def test_whitespace_and_case(self):
        assert parse_css_color("  RGB(255, 255, 255)  ") == (255, 255, 255, 1.0)


# =============================================================================
# Translation
# =============================================================================

class TestTranslate:
    """Gamma-corrected xy and brightness."""

    @pytest.mark.unit
    def test_black_falls_back_to_white_point(self):
        spec = translate("black")
        assert spec.xy == FALLBACK_XY
        assert spec.brightness == 1

    @pytest.mark.unit
    def test_unparseable_returns_none(self):
        assert translate("not-a-color") is None

    @pytest.mark.unit
    def test_opaque_red(self):
        spec = translate("rgba(255,0,0,1)")
        assert spec.brightness == 254
        assert spec.x > spec.y
        assert spec.x == pytest.approx(0.7006, abs=1e-3)
        assert spec.y == pytest.approx(0.2993, abs=1e-3)

    @pytest.mark.unit
    def test_white(self):
        spec = translate("white")
        assert spec.x == pytest.approx(0.3227, abs=1e-3)
        assert spec.y == pytest.approx(0.3290, abs=1e-3)
        assert spec.brightness == 254

    @pytest.mark.unit
    def test_alpha_scales_brightness(self):
        assert translate("rgba(255, 0, 0, 0.5)").brightness == 127
        assert translate("#ff000080").brightness == 127
        assert translate("#ff00001a").brightness == 25

    @pytest.mark.unit
    def test_brightness_never_below_one(self):
        assert translate("transparent").brightness == 1
        assert translate("rgba(255, 255, 255, 0)").brightness == 1

    @pytest.mark.unit
    def test_named_and_functional_forms_agree(self):
        assert translate("blue") == translate("#0000ff") == translate("hsl(240, 100%, 50%)")

    @pytest.mark.unit
    def test_to_state(self):
        spec = ColorSpec(x=0.5, y=0.4, brightness=100)
        assert spec.to_state() == {"xy": [0.5, 0.4], "bri": 100}


@pytest.mark.unit
@pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.4999, 2), (126.999, 127)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
