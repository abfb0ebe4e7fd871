"""
Color conversion from HSL to what the Hue bridge consumes.

The bridge takes a CIE 1931 chromaticity pair (x, y) plus a brightness.
The path is HSL -> sRGB -> linear RGB -> XYZ (D65) -> xyY, where the
luminance Y becomes the brightness.
"""

from typing import NamedTuple
import colorsys

# D65 reference white, used as the chromaticity of black
WHITE_POINT = (0.3127, 0.3290)

# Bridge brightness range (v1 light state "bri")
BRI_MIN = 1
BRI_MAX = 254


class HSL(NamedTuple):
    """
    HSL color.

    - hue: degrees, any real value (taken modulo 360)
    - saturation: 0.0-1.0
    - lightness: 0.0-1.0
    """
    hue: float
    saturation: float
    lightness: float

    def rotate(self, degrees: float) -> "HSL":
        """Return a copy with the hue moved by ``degrees``."""
        return HSL(self.hue + degrees, self.saturation, self.lightness)


class DeviceColor(NamedTuple):
    """Chromaticity plus luminance (xyY), all in 0.0-1.0."""
    x: float
    y: float
    luminance: float

    @property
    def xy(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def brightness(self) -> int:
        """Luminance scaled to the bridge brightness range."""
        return max(BRI_MIN, min(BRI_MAX, round(self.luminance * BRI_MAX)))


HUE_DIGITS = 9


def normalize_hue(hue: float) -> float:
    """
    Wrap a hue in degrees into [0, 360).

    The result is rounded to HUE_DIGITS decimals, so ``h`` and ``h + 360``
    give the same value even when the modulo leaves different float noise.
    """
    return round(hue % 360.0, HUE_DIGITS) % 360.0


def _hsl_to_rgb(hue: float, saturation: float, lightness: float) -> tuple[float, float, float]:
    # colorsys takes (h, l, s) with h as a fraction of a turn
    return colorsys.hls_to_rgb(normalize_hue(hue) / 360.0, lightness, saturation)


def _linearize(c: float) -> float:
    """Undo the sRGB transfer curve."""
    if c <= 0.04045:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def _rgb_to_xyy(r: float, g: float, b: float) -> DeviceColor:
    r, g, b = _linearize(r), _linearize(g), _linearize(b)

    # sRGB primaries, D65 white
    big_x = 0.4124564 * r + 0.3575761 * g + 0.1804375 * b
    big_y = 0.2126729 * r + 0.7151522 * g + 0.0721750 * b
    big_z = 0.0193339 * r + 0.1191920 * g + 0.9503041 * b

    total = big_x + big_y + big_z
    if total <= 0.0:
        return DeviceColor(WHITE_POINT[0], WHITE_POINT[1], 0.0)
    return DeviceColor(big_x / total, big_y / total, min(1.0, big_y))


def _to_byte(c: float) -> int:
    return max(0, min(255, round(c * 255)))


def hsl_to_rgb8(hue: float, saturation: float, lightness: float) -> tuple[int, int, int]:
    """8-bit RGB preview of an HSL color (display only)."""
    r, g, b = _hsl_to_rgb(hue, saturation, lightness)
    return _to_byte(r), _to_byte(g), _to_byte(b)


def hsl_to_device(
    hue: float,
    saturation: float,
    lightness: float,
) -> tuple[DeviceColor, tuple[int, int, int]]:
    """
    Convert HSL to a bridge-ready color plus an RGB preview.

    Args:
        hue: Hue in degrees, wrapped modulo 360
        saturation: 0.0-1.0
        lightness: 0.0-1.0

    Returns:
        (DeviceColor, (r, g, b)) where the RGB triple is 0-255
    """
    r, g, b = _hsl_to_rgb(hue, saturation, lightness)
    return _rgb_to_xyy(r, g, b), (_to_byte(r), _to_byte(g), _to_byte(b))


def rgb_to_device(r: int, g: int, b: int) -> DeviceColor:
    """Convert an 8-bit RGB color to chromaticity and luminance."""
    return _rgb_to_xyy(r / 255.0, g / 255.0, b / 255.0)
