"""
Depth-based coloring of diagram boxes.

Colors are assigned by a pure function of the base color, the hue offset and
the nesting depth of a node, so every box at the same depth gets the same
fill. Outlines use a darker variant of the fill.
"""

import colorsys
from dataclasses import dataclass
from typing import Tuple

from PIL import ImageColor

from .config import DEFAULT_BASE_COLOR, Configuration


@dataclass(frozen=True)
class HSLColor:
    """
    A color in HSL space.

    Attributes:
        hue: Degrees, 0 <= hue < 360.
        saturation: 0 to 1.
        lightness: 0 to 1.
    """

    hue: float
    saturation: float
    lightness: float

    @classmethod
    def from_hex(cls, code: str) -> "HSLColor":
        """Build from a "#RRGGBB" code."""
        red, green, blue = ImageColor.getrgb(code)[:3]
        hue, lightness, saturation = colorsys.rgb_to_hls(
            red / 255, green / 255, blue / 255
        )
        return cls(hue * 360, saturation, lightness)

    @property
    def rgb(self) -> Tuple[int, int, int]:
        red, green, blue = colorsys.hls_to_rgb(
            (self.hue % 360) / 360, self.lightness, self.saturation
        )
        return round(red * 255), round(green * 255), round(blue * 255)

    def to_hex(self) -> str:
        return "#{:02X}{:02X}{:02X}".format(*self.rgb)

    def rotate(self, degrees: float) -> "HSLColor":
        return HSLColor((self.hue + degrees) % 360, self.saturation, self.lightness)

    def darker(self, amount: float = 0.35) -> "HSLColor":
        """Same hue and saturation, lightness reduced by `amount` (relative)."""
        return HSLColor(self.hue, self.saturation, self.lightness * (1 - amount))


class ColorScheme:
    """
    Maps nesting depth to fill and stroke colors.

    Example:
        >>> scheme = ColorScheme("#FFDB4D", hue_offset=40)
        >>> scheme.color_for(2).hue  # base hue + 80
    """

    def __init__(self, base_color: str = DEFAULT_BASE_COLOR, hue_offset: int = 0):
        self.base_color = base_color
        self.hue_offset = hue_offset
        self.base = HSLColor.from_hex(base_color)

    @classmethod
    def from_config(cls, config: Configuration) -> "ColorScheme":
        return cls(config.effective_base_color, config.hue_offset)

    def color_for(self, depth: int) -> HSLColor:
        """
        Color for boxes at the given depth.

        Args:
            depth: Nesting depth, 0 at the production root.

        Returns:
            The base color with its hue rotated by hue_offset * depth.
        """
        return self.base.rotate(self.hue_offset * depth)

    def fill(self, depth: int) -> str:
        return self.color_for(depth).to_hex()

    def stroke(self, depth: int) -> str:
        return self.color_for(depth).darker().to_hex()

    def palette(self, max_depth: int) -> Tuple[str, ...]:
        """Fill colors for depths 0..max_depth, for the debug trace."""
        return tuple(self.fill(depth) for depth in range(max_depth + 1))
