"""
Label width measurement.

Box widths in the layout come from TextMetrics. Without a font the width is
estimated from a fixed character pitch, which keeps layouts reproducible
across machines. With a TrueType font configured, Pillow measures the real
advance width of the text.
"""

from typing import Optional

from PIL import ImageFont

from .config import Configuration
from .errors import ConfigurationError

FONT_SIZE = 14
# Advance width of one character of a 14px monospace font
CHAR_WIDTH = 8.5


class TextMetrics:
    """Measures the rendered width of label text."""

    def __init__(self, font_path: Optional[str] = None, font_size: int = FONT_SIZE):
        self.font_path = font_path
        self.font_size = font_size
        self.font = None

        if font_path:
            try:
                self.font = ImageFont.truetype(font_path, font_size)
            except OSError as exc:
                raise ConfigurationError(
                    f"cannot load font {font_path!r}: {exc}"
                ) from exc

    @classmethod
    def from_config(cls, config: Configuration) -> "TextMetrics":
        return cls(config.font_path)

    def text_width(self, text: str) -> float:
        """
        Width of text in pixels.

        Args:
            text: Label as it will be drawn.

        Returns:
            Advance width of the text, 0 for an empty string.
        """
        if self.font is None:
            return len(text) * CHAR_WIDTH
        return float(self.font.getlength(text))
