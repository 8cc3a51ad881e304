"""
Renderer module for railtrack.

Walks positioned diagram trees and emits drawing primitives (lines, arcs,
boxes, text). The primitives are backend independent: they are serialized to
SVG here and rasterized by the exporter for PNG output.

Angles follow screen coordinates: 0 degrees points right and angles grow
clockwise, so 90 points down.
"""

import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from .colors import ColorScheme
from .config import Configuration
from .formatter import format_production
from .graph import GrammarGraph
from .layout import (
    AR,
    BOX_HEIGHT,
    LEAF_KINDS,
    MARKER_HEIGHT,
    MARKER_WIDTH,
    RAIL_STUB,
    VS,
    DiagramNode,
    Placement,
    ProductionLayout,
)
from .models import Grammar

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"

RAIL_COLOR = "#000000"
TEXT_BASELINE_SHIFT = 4
ANNOTATION_BASELINE = 12

DOCUMENT_CSS = """
svg.railroad-diagram { background-color: #FFFFFF; }
svg.railroad-diagram text { font: 14px monospace; text-anchor: middle; }
svg.railroad-diagram text.comment { font: italic 12px monospace; }
svg.railroad-diagram text.annotation { font: 12px monospace; }
svg.railroad-diagram a text { text-decoration: underline; }
p.production { font: bold 14px sans-serif; margin-top: 2em; }
div.ebnf code { white-space: pre; font: 12px monospace; }
p.referenced-by { font: 12px sans-serif; }
"""


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = RAIL_COLOR


@dataclass(frozen=True)
class Arc:
    """Circular arc drawn clockwise from `start` to `end` degrees."""

    cx: float
    cy: float
    radius: float
    start: float
    end: float
    color: str = RAIL_COLOR

    def point(self, angle: float) -> Tuple[float, float]:
        radians = math.radians(angle)
        return (
            self.cx + self.radius * math.cos(radians),
            self.cy + self.radius * math.sin(radians),
        )


@dataclass(frozen=True)
class Box:
    """Labeled box; terminals are drawn with rounded corners."""

    x: float
    y: float
    width: float
    height: float
    fill: str
    stroke: str
    rounded: bool = False


@dataclass(frozen=True)
class Text:
    """Text centered horizontally on x, with its baseline at y."""

    x: float
    y: float
    text: str
    css_class: Optional[str] = None
    href: Optional[str] = None


Primitive = Union[Line, Arc, Box, Text]


@dataclass(frozen=True)
class RenderedDiagram:
    """
    Drawing primitives of one production diagram.

    Attributes:
        name: Production name.
        width: Canvas width, padding included.
        height: Canvas height, padding included.
        primitives: Primitives in drawing order.
        stroke_width: Stroke width of rails and boxes.
    """

    name: str
    width: float
    height: float
    primitives: Tuple[Primitive, ...]
    stroke_width: int = 1

    def of_type(self, kind: type) -> List[Primitive]:
        return [p for p in self.primitives if isinstance(p, kind)]


@dataclass(frozen=True)
class DocumentSection:
    """
    One production in the output document.

    Attributes:
        name: Production name, also the anchor id.
        svg: The <svg> element of the diagram.
        ebnf: Textual EBNF of the production, None when hidden.
        referenced_by: Productions that reference this one.
        diagram: Primitives the SVG was built from.
    """

    name: str
    svg: ET.Element
    ebnf: Optional[str]
    referenced_by: Tuple[str, ...]
    diagram: RenderedDiagram


@dataclass(frozen=True)
class Document:
    """Diagrams of all productions, in grammar order."""

    sections: Tuple[DocumentSection, ...]
    title: str = "Railroad Diagrams"

    def __iter__(self):
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.sections]

    def get(self, name: str) -> Optional[DocumentSection]:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def to_element(self) -> ET.Element:
        """Build the XHTML <html> element."""
        html = ET.Element("html", xmlns=XHTML_NAMESPACE)
        head = ET.SubElement(html, "head")
        ET.SubElement(
            head,
            "meta",
            {
                "http-equiv": "Content-Type",
                "content": "application/xhtml+xml; charset=UTF-8",
            },
        )
        ET.SubElement(head, "title").text = self.title
        ET.SubElement(head, "style", type="text/css").text = DOCUMENT_CSS

        body = ET.SubElement(html, "body")
        for section in self.sections:
            heading = ET.SubElement(body, "p", {"class": "production"})
            ET.SubElement(heading, "a", id=section.name).text = f"{section.name}:"
            body.append(section.svg)

            if section.ebnf is not None:
                listing = ET.SubElement(body, "div", {"class": "ebnf"})
                ET.SubElement(listing, "code").text = section.ebnf

            if section.referenced_by:
                ET.SubElement(
                    body, "p", {"class": "referenced-by"}
                ).text = "referenced by:"
                items = ET.SubElement(body, "ul")
                for name in section.referenced_by:
                    item = ET.SubElement(items, "li")
                    ET.SubElement(item, "a", href=f"#{name}").text = name
            else:
                ET.SubElement(body, "p", {"class": "referenced-by"}).text = (
                    "no references"
                )
        return html

    def to_xhtml(self) -> str:
        """Serialize as an XHTML document string."""
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(
            self.to_element(), encoding="unicode"
        )


class DiagramRenderer:
    """
    Converts laid-out productions into primitives, SVG and documents.

    Example:
        >>> renderer = DiagramRenderer(config)
        >>> rendered = renderer.render_production(layouts[0], scheme)
        >>> ET.tostring(renderer.to_svg(rendered))
    """

    def __init__(self, config: Optional[Configuration] = None):
        self.config = config or Configuration()

    def render_production(
        self, layout: ProductionLayout, scheme: ColorScheme
    ) -> RenderedDiagram:
        """
        Produce the primitives of one production diagram.

        Args:
            layout: Laid-out production.
            scheme: Colors for boxes and rails by depth.

        Returns:
            RenderedDiagram with the padding applied around the layout.
        """
        padding = self.config.effective_padding
        out: List[Primitive] = []

        x = padding
        y = padding + layout.rail_y
        self._start_marker(x, y, out)
        self._draw(layout.node, x + MARKER_WIDTH, y, scheme, out)
        self._end_marker(
            x + MARKER_WIDTH + layout.node.width,
            padding + layout.exit_rail_y,
            out,
        )

        return RenderedDiagram(
            layout.name,
            layout.width + 2 * padding,
            layout.height + 2 * padding,
            tuple(out),
            self.config.effective_stroke_width,
        )

    def render_document(
        self,
        grammar: Grammar,
        layouts: List[ProductionLayout],
        scheme: ColorScheme,
        source: Optional[Grammar] = None,
    ) -> Document:
        """
        Compose the document of all productions.

        Args:
            grammar: Grammar the layouts were computed from.
            layouts: One layout per production of grammar.
            scheme: Color scheme.
            source: Grammar as written, used for the EBNF text and the
                cross-reference lists. Defaults to grammar.

        Returns:
            Document with one section per production, in grammar order.
        """
        source = source or grammar
        graph = GrammarGraph(source)
        by_name: Dict[str, ProductionLayout] = {pl.name: pl for pl in layouts}

        sections = []
        for production in grammar:
            rendered = self.render_production(by_name[production.name], scheme)
            ebnf = None
            if self.config.show_ebnf:
                written = source.get(production.name) or production
                ebnf = format_production(written)
            sections.append(
                DocumentSection(
                    production.name,
                    self.to_svg(rendered),
                    ebnf,
                    tuple(graph.referenced_by(production.name)),
                    rendered,
                )
            )
        return Document(tuple(sections))

    def to_svg(self, rendered: RenderedDiagram) -> ET.Element:
        """Serialize primitives into an <svg> element."""
        svg = ET.Element(
            "svg",
            {
                "xmlns": SVG_NAMESPACE,
                "class": "railroad-diagram",
                "width": _num(rendered.width),
                "height": _num(rendered.height),
                "viewBox": f"0 0 {_num(rendered.width)} {_num(rendered.height)}",
            },
        )
        group = ET.SubElement(
            svg,
            "g",
            {
                "stroke-width": str(rendered.stroke_width),
                "fill": "none",
                "stroke-linecap": "square",
                "font-family": "monospace",
                "font-size": "14",
                "text-anchor": "middle",
            },
        )

        for primitive in rendered.primitives:
            if isinstance(primitive, Line):
                ET.SubElement(
                    group,
                    "path",
                    d=(
                        f"M{_num(primitive.x1)} {_num(primitive.y1)} "
                        f"L{_num(primitive.x2)} {_num(primitive.y2)}"
                    ),
                    stroke=primitive.color,
                )
            elif isinstance(primitive, Arc):
                sx, sy = primitive.point(primitive.start)
                ex, ey = primitive.point(primitive.end)
                r = _num(primitive.radius)
                ET.SubElement(
                    group,
                    "path",
                    d=f"M{_num(sx)} {_num(sy)} A{r} {r} 0 0 1 {_num(ex)} {_num(ey)}",
                    stroke=primitive.color,
                )
            elif isinstance(primitive, Box):
                radius = "10" if primitive.rounded else "0"
                ET.SubElement(
                    group,
                    "rect",
                    x=_num(primitive.x),
                    y=_num(primitive.y),
                    width=_num(primitive.width),
                    height=_num(primitive.height),
                    rx=radius,
                    ry=radius,
                    fill=primitive.fill,
                    stroke=primitive.stroke,
                )
            elif isinstance(primitive, Text):
                parent = group
                if primitive.href is not None:
                    parent = ET.SubElement(group, "a", href=primitive.href)
                attrs = {
                    "x": _num(primitive.x),
                    "y": _num(primitive.y),
                    "stroke": "none",
                    "fill": "#000000",
                }
                if primitive.css_class:
                    attrs["class"] = primitive.css_class
                ET.SubElement(parent, "text", attrs).text = primitive.text
        return svg

    def _draw(
        self,
        node: DiagramNode,
        x: float,
        y: float,
        scheme: ColorScheme,
        out: List[Primitive],
    ) -> None:
        """Emit primitives for node with its entry rail at (x, y)."""
        if node.kind in LEAF_KINDS:
            self._draw_box(node, x, y, scheme, out)
        elif node.kind == "comment":
            out.append(Line(x, y, x + node.width, y))
            out.append(
                Text(x + node.width / 2, y - TEXT_BASELINE_SHIFT, node.label, "comment")
            )
        elif node.kind == "epsilon":
            out.append(Line(x, y, x + node.width, y))
        elif node.kind == "sequence":
            if node.rows == 1:
                for placement in node.children:
                    self._draw(placement.node, x + placement.x, y, scheme, out)
            else:
                self._draw_rows(node, x, y, scheme, out)
        elif node.kind == "choice":
            self._draw_choice(node, x, y, scheme, out)
        elif node.kind == "optional":
            color = scheme.stroke(node.depth)
            child = node.children[0]
            self._bypass(x, y, node.width, y + node.bypass_y, color, out)
            out.append(Line(x, y, x + child.x, y, color))
            self._draw(child.node, x + child.x, y, scheme, out)
            out.append(
                Line(x + child.x + child.node.width, y, x + node.width, y, color)
            )
        elif node.kind == "repetition":
            self._draw_repetition(node, x, y, scheme, out)
        else:
            raise ValueError(f"Unknown diagram node kind: {node.kind}")

    def _draw_box(
        self,
        node: DiagramNode,
        x: float,
        y: float,
        scheme: ColorScheme,
        out: List[Primitive],
    ) -> None:
        stroke = scheme.stroke(node.depth)
        box_x = x + RAIL_STUB
        box_width = node.width - 2 * RAIL_STUB
        out.append(Line(x, y, box_x, y, stroke))
        out.append(
            Box(
                box_x,
                y - BOX_HEIGHT / 2,
                box_width,
                BOX_HEIGHT,
                scheme.fill(node.depth),
                stroke,
                rounded=node.kind == "terminal",
            )
        )
        href = f"#{node.label}" if node.kind == "nonterminal" else None
        out.append(
            Text(box_x + box_width / 2, y + TEXT_BASELINE_SHIFT, node.label, href=href)
        )
        out.append(Line(box_x + box_width, y, x + node.width, y, stroke))

    def _draw_rows(
        self,
        node: DiagramNode,
        x: float,
        y: float,
        scheme: ColorScheme,
        out: List[Primitive],
    ) -> None:
        rows: List[List[Placement]] = []
        for placement in node.children:
            if placement.node.line_break or not rows:
                rows.append([])
            rows[-1].append(placement)

        right = x + node.width - AR
        out.append(Line(x, y, x + AR, y))

        for index, row in enumerate(rows):
            row_y = y + row[0].y
            for placement in row:
                self._draw(placement.node, x + placement.x, row_y, scheme, out)
            row_end = x + row[-1].x + row[-1].node.width

            if index == len(rows) - 1:
                out.append(Line(row_end, row_y, x + node.width, row_y))
                break

            # Continue on the right, run back left between rows, re-enter
            next_y = y + rows[index + 1][0].y
            mid_y = row_y + max(max(p.node.down for p in row) + VS, 2 * AR)
            out.append(Line(row_end, row_y, right, row_y))
            out.append(Arc(right, row_y + AR, AR, 270, 360))
            _vertical(right + AR, row_y + AR, mid_y - AR, RAIL_COLOR, out)
            out.append(Arc(right, mid_y - AR, AR, 0, 90))
            out.append(Line(right, mid_y, x + AR, mid_y))
            out.append(Arc(x + AR, mid_y + AR, AR, 180, 270))
            _vertical(x, mid_y + AR, next_y - AR, RAIL_COLOR, out)
            out.append(Arc(x + AR, next_y - AR, AR, 90, 180))

    def _draw_choice(
        self,
        node: DiagramNode,
        x: float,
        y: float,
        scheme: ColorScheme,
        out: List[Primitive],
    ) -> None:
        color = scheme.stroke(node.depth)
        right = x + node.width
        main, *branches = node.children

        out.append(Line(x, y, x + main.x, y, color))
        self._draw(main.node, x + main.x, y, scheme, out)
        out.append(Line(x + main.x + main.node.width, y, right, y, color))

        if not branches:
            return

        last_y = y + branches[-1].y
        out.append(Arc(x, y + AR, AR, 270, 360, color))
        _vertical(x + AR, y + AR, last_y - AR, color, out)
        out.append(Arc(right, y + AR, AR, 180, 270, color))
        _vertical(right - AR, y + AR, last_y - AR, color, out)

        for branch in branches:
            branch_y = y + branch.y
            out.append(Arc(x + 2 * AR, branch_y - AR, AR, 90, 180, color))
            self._draw(branch.node, x + branch.x, branch_y, scheme, out)
            out.append(
                Line(
                    x + branch.x + branch.node.width,
                    branch_y,
                    right - 2 * AR,
                    branch_y,
                    color,
                )
            )
            out.append(Arc(right - 2 * AR, branch_y - AR, AR, 0, 90, color))

    def _draw_repetition(
        self,
        node: DiagramNode,
        x: float,
        y: float,
        scheme: ColorScheme,
        out: List[Primitive],
    ) -> None:
        color = scheme.stroke(node.depth)
        child = node.children[0]
        offset = 2 * AR if node.skippable else 0
        left = x + offset
        right = x + node.width - offset

        if node.skippable:
            self._bypass(x, y, node.width, y + node.bypass_y, color, out)
            out.append(Line(x, y, left, y, color))
            out.append(Line(right, y, x + node.width, y, color))

        out.append(Line(left, y, x + child.x, y, color))
        self._draw(child.node, x + child.x, y, scheme, out)
        out.append(Line(x + child.x + child.node.width, y, right, y, color))

        bottom = y + child.node.down
        if node.loop_y > 0:
            loop_y = y + node.loop_y
            out.append(Arc(right - AR, y + AR, AR, 270, 360, color))
            _vertical(right, y + AR, loop_y - AR, color, out)
            out.append(Arc(right - AR, loop_y - AR, AR, 0, 90, color))
            out.append(Line(right - AR, loop_y, left + AR, loop_y, color))
            out.append(Arc(left + AR, loop_y - AR, AR, 90, 180, color))
            _vertical(left, loop_y - AR, y + AR, color, out)
            out.append(Arc(left + AR, y + AR, AR, 180, 270, color))
            bottom = loop_y

        if node.annotation is not None:
            out.append(
                Text(
                    (left + right) / 2,
                    bottom + ANNOTATION_BASELINE,
                    node.annotation,
                    "annotation",
                )
            )

    def _bypass(
        self,
        x: float,
        y: float,
        width: float,
        bypass_y: float,
        color: str,
        out: List[Primitive],
    ) -> None:
        """Rail that leaves (x, y), runs along bypass_y and rejoins at x+width."""
        right = x + width
        out.append(Arc(x, y - AR, AR, 0, 90, color))
        _vertical(x + AR, y - AR, bypass_y + AR, color, out)
        out.append(Arc(x + 2 * AR, bypass_y + AR, AR, 180, 270, color))
        out.append(Line(x + 2 * AR, bypass_y, right - 2 * AR, bypass_y, color))
        out.append(Arc(right - 2 * AR, bypass_y + AR, AR, 270, 360, color))
        _vertical(right - AR, bypass_y + AR, y - AR, color, out)
        out.append(Arc(right, y - AR, AR, 90, 180, color))

    def _start_marker(self, x: float, y: float, out: List[Primitive]) -> None:
        out.append(Line(x, y - MARKER_HEIGHT, x, y + MARKER_HEIGHT))
        out.append(Line(x + 10, y - MARKER_HEIGHT, x + 10, y + MARKER_HEIGHT))
        out.append(Line(x, y, x + MARKER_WIDTH, y))

    def _end_marker(self, x: float, y: float, out: List[Primitive]) -> None:
        out.append(Line(x, y, x + MARKER_WIDTH, y))
        out.append(Line(x + 10, y - MARKER_HEIGHT, x + 10, y + MARKER_HEIGHT))
        out.append(
            Line(
                x + MARKER_WIDTH,
                y - MARKER_HEIGHT,
                x + MARKER_WIDTH,
                y + MARKER_HEIGHT,
            )
        )


def _vertical(
    x: float, y1: float, y2: float, color: str, out: List[Primitive]
) -> None:
    if y1 != y2:
        out.append(Line(x, y1, x, y2, color))


def _num(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text
