"""Unit tests for CSS color helpers"""

from __future__ import annotations

import math

import pytest

from tasktint.coloring.colors import (
    FALLBACK_RGB,
    RGB,
    color_to_rgba,
    is_transparent,
    normalize_opacity,
    parse_css_color,
    pick_contrasting_text,
)


class TestParseCssColor:
    def test_long_hex(self):
        assert parse_css_color("#ea4335") == RGB(234, 67, 53)

    def test_short_hex_expands(self):
        assert parse_css_color("#fff") == RGB(255, 255, 255)

    def test_rgb_and_rgba_strings(self):
        assert parse_css_color("rgb(10, 20, 30)") == RGB(10, 20, 30)
        assert parse_css_color("rgba(1,2,3,0.5)") == RGB(1, 2, 3)

    @pytest.mark.parametrize("value", [None, "", "not-a-color", "rgb(oops)"])
    def test_unparseable_falls_back(self, value):
        assert parse_css_color(value) == FALLBACK_RGB


class TestPickContrastingText:
    def test_light_background_gets_dark_text(self):
        assert pick_contrasting_text("#ffffff") == "#111"
        assert pick_contrasting_text("#fbbc04") == "#111"

    def test_dark_background_gets_white_text(self):
        assert pick_contrasting_text("#000000") == "#fff"
        assert pick_contrasting_text("#ea4335") == "#fff"


class TestNormalizeOpacity:
    def test_fraction_kept(self):
        assert normalize_opacity(0.5) == 0.5

    def test_percentages_converted(self):
        assert normalize_opacity(30) == pytest.approx(0.3)
        assert normalize_opacity(100) == 1.0

    def test_out_of_range_clamped(self):
        assert normalize_opacity(-1) == 0.0
        assert normalize_opacity(250) == 1.0

    @pytest.mark.parametrize("value", [None, "0.5", True, math.nan])
    def test_non_numeric_uses_fallback(self, value):
        assert normalize_opacity(value, 0.3) == 0.3


def test_color_to_rgba():
    assert color_to_rgba("#ff0000", 0.3) == "rgba(255, 0, 0, 0.3)"
    assert color_to_rgba("#00ff00") == "rgba(0, 255, 0, 1.0)"


def test_is_transparent():
    assert is_transparent("rgba(255, 255, 255, 0)")
    assert is_transparent("rgba(0,0,0,0)")
    assert is_transparent("transparent")
    assert is_transparent(None)
    assert not is_transparent("#ffffff")
