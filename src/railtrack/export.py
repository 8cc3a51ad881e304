"""
File export functionality for railroad diagram documents.

This module handles writing generated documents to various formats:
- XHTML files - diagrams as inline SVG, the primary output
- Markdown files - SVG diagrams embedded as data URIs
- PNG images - one rasterized image per production

The DiagramExporter class provides the file I/O and the Pillow-based
rasterization of rendered primitives.
"""

import base64
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from PIL import Image, ImageDraw, ImageFont

from .renderer import Arc, Box, Document, Line, RenderedDiagram, Text

FONT_SIZE = 14


class DiagramExporter:
    """
    Exports railroad diagram documents to files.

    Attributes:
        font_path: TrueType font used for PNG text; system monospace fonts
            are tried when it is None.
    """

    def __init__(self, font_path: Optional[str] = None):
        """
        Initialize the exporter.

        Args:
            font_path: Font file for PNG export (e.g., "DejaVuSansMono.ttf").
        """
        self.font_path = font_path

    def save_xhtml(self, document: Document, filename: str) -> None:
        """
        Save the document as XHTML.

        Args:
            document: Rendered document.
            filename: Output filename (should end in .xhtml).
        """
        output_path = Path(filename)
        output_path.write_text(document.to_xhtml(), encoding="utf-8")

    def to_markdown(self, document: Document) -> str:
        """
        Convert the document to Markdown.

        Each production becomes a bold heading, its diagram as an image with a
        base64 SVG data URI, its EBNF in a fenced code block and the list of
        productions that reference it.
        """
        parts = []
        for section in document:
            svg = ET.tostring(section.svg, encoding="unicode")
            data = base64.b64encode(svg.encode("utf-8")).decode("ascii")
            parts.append(f'<a name="{section.name}"></a>**{section.name}:**')
            parts.append(f"![{section.name}](data:image/svg+xml;base64,{data})")
            if section.ebnf is not None:
                parts.append(f"```\n{section.ebnf}\n```")
            if section.referenced_by:
                references = "\n".join(
                    f"* [{name}](#{name})" for name in section.referenced_by
                )
                parts.append(f"referenced by:\n\n{references}")
            else:
                parts.append("no references")
        return "\n\n".join(parts) + "\n"

    def save_markdown(self, document: Document, filename: str) -> None:
        """Save the Markdown rendition of the document."""
        Path(filename).write_text(self.to_markdown(document), encoding="utf-8")

    def render_png(self, rendered: RenderedDiagram, scale: int = 2) -> Image.Image:
        """
        Rasterize one diagram.

        Args:
            rendered: Primitives of one production.
            scale: Resolution multiplier for crisp output (default 2 for retina).

        Returns:
            An RGB PIL image of size (width * scale, height * scale).
        """
        width = max(1, round(rendered.width * scale))
        height = max(1, round(rendered.height * scale))
        img = Image.new("RGB", (width, height), "#FFFFFF")
        draw = ImageDraw.Draw(img)
        font = self._load_font(FONT_SIZE * scale)
        line_width = max(1, rendered.stroke_width * scale)

        for primitive in rendered.primitives:
            if isinstance(primitive, Line):
                draw.line(
                    [
                        (primitive.x1 * scale, primitive.y1 * scale),
                        (primitive.x2 * scale, primitive.y2 * scale),
                    ],
                    fill=primitive.color,
                    width=line_width,
                )
            elif isinstance(primitive, Arc):
                r = primitive.radius * scale
                cx, cy = primitive.cx * scale, primitive.cy * scale
                draw.arc(
                    [cx - r, cy - r, cx + r, cy + r],
                    primitive.start,
                    primitive.end,
                    fill=primitive.color,
                    width=line_width,
                )
            elif isinstance(primitive, Box):
                x, y = primitive.x * scale, primitive.y * scale
                draw.rounded_rectangle(
                    [x, y, x + primitive.width * scale, y + primitive.height * scale],
                    radius=10 * scale if primitive.rounded else 0,
                    fill=primitive.fill,
                    outline=primitive.stroke,
                    width=line_width,
                )
            elif isinstance(primitive, Text):
                # Center horizontally on x, bottom of the glyphs on the baseline
                left, top, right, bottom = draw.textbbox(
                    (0, 0), primitive.text, font=font
                )
                draw.text(
                    (
                        primitive.x * scale - (right - left) / 2,
                        primitive.y * scale - bottom,
                    ),
                    primitive.text,
                    font=font,
                    fill="#000000",
                )

        return img

    def save_png(
        self, document: Document, directory: str, scale: int = 2
    ) -> List[Path]:
        """
        Save one PNG per production.

        Args:
            document: Rendered document.
            directory: Output directory, created if missing.
            scale: Resolution multiplier.

        Returns:
            Paths of the written files, in document order.

        Example:
            >>> exporter = DiagramExporter()
            >>> exporter.save_png(document, "diagrams")
            [PosixPath('diagrams/grammar.png'), ...]
        """
        output_dir = Path(directory)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = []
        for section in document:
            path = output_dir / f"{section.name}.png"
            self.render_png(section.diagram, scale).save(path, "PNG")
            paths.append(path)
        return paths

    def _load_font(self, font_size: int) -> ImageFont.ImageFont:
        """
        Load a font for PNG text.

        Tries the following in order:
        1. The configured font path
        2. Common system monospace fonts
        3. Pillow's default font
        """
        fonts_to_try = []
        if self.font_path:
            fonts_to_try.append(self.font_path)
        fonts_to_try.extend(
            [
                # Linux
                "DejaVuSansMono.ttf",
                "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
                "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
                # macOS
                "/System/Library/Fonts/Menlo.ttc",
                # Windows
                "C:/Windows/Fonts/consola.ttf",
            ]
        )

        for font in fonts_to_try:
            try:
                return ImageFont.truetype(font, font_size)
            except OSError:
                continue

        try:
            return ImageFont.load_default(size=font_size)
        except TypeError:
            # Older Pillow versions don't support the size parameter
            return ImageFont.load_default()
