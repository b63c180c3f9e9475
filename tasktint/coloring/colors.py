"""
CSS color helpers used when building and rendering color bundles.

Colors arrive from persisted settings as hex strings (``#rgb`` / ``#rrggbb``)
or ``rgb()/rgba()`` strings captured from the host view.
"""

from __future__ import annotations

import re
from typing import Any, NamedTuple

_RGB_PATTERN = re.compile(r"rgba?\((\d+),\s*(\d+),\s*(\d+)", re.IGNORECASE)
_TRANSPARENT_VALUES = frozenset({"rgba(255,255,255,0)", "rgba(0,0,0,0)", "transparent"})


class RGB(NamedTuple):
    r: int
    g: int
    b: int


# Default task blue used when a color cannot be parsed
FALLBACK_RGB = RGB(66, 133, 244)


def parse_css_color(color: str | None) -> RGB:
    """Parse a hex or rgb()/rgba() string. Unparseable input yields FALLBACK_RGB."""
    if not color:
        return FALLBACK_RGB

    value = color.strip()
    if value.lower().startswith("rgb"):
        match = _RGB_PATTERN.match(value)
        if match:
            return RGB(*(min(int(part), 255) for part in match.groups()))
        return FALLBACK_RGB

    digits = value.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    try:
        n = int(digits[:6], 16)
    except ValueError:
        return FALLBACK_RGB
    return RGB((n >> 16) & 255, (n >> 8) & 255, n & 255)


def pick_contrasting_text(color: str | None) -> str:
    """Dark text on light backgrounds, white text otherwise (Rec. 709 luminance)."""
    r, g, b = parse_css_color(color)
    luminance = (0.2126 * r + 0.7152 * g + 0.0722 * b) / 255
    return "#111" if luminance > 0.6 else "#fff"


def normalize_opacity(value: Any, fallback: float = 1.0) -> float:
    """
    Normalize an opacity setting to [0, 1].

    Values above 1 are percentages (``30`` -> ``0.3``). Non-numeric input
    (including bools and NaN) returns ``fallback``.
    """
    if isinstance(value, bool) or not isinstance(value, int | float):
        return fallback
    if value != value:  # NaN
        return fallback
    if value > 1:
        return min(max(float(value), 0.0), 100.0) / 100
    return min(max(float(value), 0.0), 1.0)


def color_to_rgba(color: str | None, opacity: Any = 1.0) -> str:
    r, g, b = parse_css_color(color)
    return f"rgba({r}, {g}, {b}, {normalize_opacity(opacity, 1.0)})"


def is_transparent(color: str | None) -> bool:
    """Transparent colors signal "keep the host view's own color"."""
    if not color:
        return True
    return re.sub(r"\s", "", color.lower()) in _TRANSPARENT_VALUES
