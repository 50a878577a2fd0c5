"""Conversion of sixel HLS colour specifications to packed RGB.

Primary hues are rotated compared to the usual wheel:
blue at 0 degrees, red at 120 and green at 240.
"""

from __future__ import annotations

import math

__all__ = ["hls_to_rgb"]


def _pack(r: int, g: int, b: int) -> int:
    return (r << 16) + (g << 8) + b


def _cdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _clamp_percent(value: int) -> int:
    return min(max(value, 0), 100)


def hls_to_rgb(hue: int, lum: int, sat: int) -> int:
    """Convert hue (degrees), lightness and saturation (percent) to 0xRRGGBB."""
    hv = math.fmod(hue + 240, 360) / 360.0
    lv = lum / 100.0
    sv = sat / 100.0

    if sat == 0:
        level = _cdiv(lum * 255, 100)
        return _pack(level, level, level)

    c = (1.0 - abs(2.0 * lv - 1.0)) * sv
    hpi = int(hv * 6.0)
    x = c if hpi & 1 else 0.0
    m = lv - 0.5 * c

    sectors = {
        0: (c, x, 0.0),
        1: (x, c, 0.0),
        2: (0.0, c, x),
        3: (0.0, x, c),
        4: (x, 0.0, c),
        5: (c, 0.0, x),
    }
    if hpi not in sectors:
        return _pack(255, 255, 255)

    r, g, b = (_clamp_percent(int((v + m) * 100.0 + 0.5)) for v in sectors[hpi])
    return _pack(_cdiv(r * 255, 100), _cdiv(g * 255, 100), _cdiv(b * 255, 100))