"""
Diagram layout module for railtrack.

Turns expressions into immutable, positioned diagram trees. Every node is
measured around its entry rail:

    up      extent above the entry rail
    exit_y  vertical offset of the exit rail (non-zero only for wrapped rows)
    down    extent below the exit rail

Children are placed at offsets relative to their parent's entry point, so a
subtree can be moved without touching its contents. Shapes:
- sequence: children left to right on one rail
- choice: first alternative on the main rail, the others stacked below
- optional: the child on the main rail with a bypass above
- repetition: the child with a return loop below, plus a bypass above when
  it may be skipped
- terminal, nonterminal, character class, hex char: labeled boxes
- comment: free text on the rail
- epsilon: a bare rail segment

Only the top-level sequence of a production is wrapped into rows.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from .config import Configuration
from .metrics import TextMetrics
from .models import (
    CharClass,
    CharCode,
    Choice,
    Comment,
    Epsilon,
    Expression,
    Grammar,
    NonterminalRef,
    Repetition,
    Sequence,
    Terminal,
    strip_groups,
)
from .models import Optional as OptionalExpr

AR = 10  # arc radius
VS = 8  # minimum vertical separation between branches
BOX_HEIGHT = 22
LABEL_PADDING = 10
RAIL_STUB = 10  # rail drawn on each side of a box
MARKER_WIDTH = 20
MARKER_HEIGHT = 10  # extent above and below the rail
ANNOTATION_HEIGHT = 14
COMMENT_HEIGHT = 16  # comment text sits above the rail

LEAF_KINDS = ("terminal", "nonterminal", "charclass", "charcode")


@dataclass(frozen=True)
class Placement:
    """A child node at an offset from its parent's entry point."""

    node: "DiagramNode"
    x: float
    y: float


@dataclass(frozen=True)
class DiagramNode:
    """
    A positioned piece of a railroad diagram.

    Attributes:
        kind: Shape name ("sequence", "choice", "optional", "repetition",
            "terminal", "nonterminal", "charclass", "charcode", "comment",
            "epsilon").
        width: Horizontal extent, entry to exit.
        up: Extent above the entry rail.
        down: Extent below the exit rail.
        exit_y: Offset of the exit rail below the entry rail.
        label: Box or comment text.
        children: Child nodes with their relative offsets.
        line_break: True if this node starts a new row of a wrapped sequence.
        depth: Nesting depth used for coloring.
        skippable: True if a bypass rail is drawn above the node.
        annotation: Repetition bounds text, e.g. "{2,5}".
        bypass_y: Offset of the bypass rail (negative, above the entry rail).
        loop_y: Offset of the repetition return rail (positive, below).
    """

    kind: str
    width: float
    up: float
    down: float
    exit_y: float = 0
    label: Optional[str] = None
    children: Tuple[Placement, ...] = ()
    line_break: bool = False
    depth: int = 0
    skippable: bool = False
    annotation: Optional[str] = None
    bypass_y: float = 0
    loop_y: float = 0

    @property
    def height(self) -> float:
        return self.up + self.exit_y + self.down

    @property
    def rows(self) -> int:
        """Number of rows; 1 unless this is a wrapped sequence."""
        return 1 + sum(1 for p in self.children if p.node.line_break)


@dataclass(frozen=True)
class ProductionLayout:
    """
    Laid-out diagram of one production, including start and end markers.

    Attributes:
        name: Production name.
        node: Root diagram node, placed at (MARKER_WIDTH, rail_y).
        width: Total width including markers.
        height: Total height.
        rail_y: Offset of the entry rail from the top.
    """

    name: str
    node: DiagramNode
    width: float
    height: float
    rail_y: float

    @property
    def exit_rail_y(self) -> float:
        return self.rail_y + self.node.exit_y


def label_for(expr: Expression) -> str:
    """Text drawn for a leaf expression."""
    if isinstance(expr, Terminal):
        return expr.literal
    if isinstance(expr, NonterminalRef):
        return expr.name
    if isinstance(expr, CharClass):
        return f"[{expr.spec}]"
    if isinstance(expr, CharCode):
        return f"#x{expr.code:X}"
    if isinstance(expr, Comment):
        return expr.text
    raise TypeError(f"Not a leaf expression: {expr!r}")


def bounds_annotation(expr: Repetition) -> Optional[str]:
    if expr.maximum is None:
        return f"{{{expr.minimum},}}" if expr.minimum > 1 else None
    if expr.minimum == expr.maximum:
        return f"{{{expr.minimum}}}"
    return f"{{{expr.minimum},{expr.maximum}}}"


class DiagramLayout:
    """
    Computes diagram trees for the productions of a grammar.

    Example:
        >>> layout = DiagramLayout(Configuration(width_threshold=500))
        >>> for production in layout.layout(grammar):
        ...     print(production.name, production.width)
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        metrics: Optional[TextMetrics] = None,
    ):
        self.config = config or Configuration()
        self.metrics = metrics or TextMetrics.from_config(self.config)

    def layout(self, grammar: Grammar) -> List[ProductionLayout]:
        """
        Lay out every production, in grammar order.

        Args:
            grammar: Resolved (and usually simplified) grammar.

        Returns:
            One ProductionLayout per production.
        """
        return [
            self.layout_production(p.name, p.expression) for p in grammar
        ]

    def layout_production(self, name: str, expr: Expression) -> ProductionLayout:
        root = strip_groups(expr)
        if isinstance(root, Sequence):
            node = self._layout_sequence(
                root, depth=0, threshold=self.config.width_threshold
            )
        else:
            node = self._layout(root, depth=0, is_root=True)

        rail_y = max(node.up, MARKER_HEIGHT)
        height = rail_y + node.exit_y + max(node.down, MARKER_HEIGHT)
        width = node.width + 2 * MARKER_WIDTH
        return ProductionLayout(name, node, width, height, rail_y)

    def layout_expression(self, expr: Expression, depth: int = 0) -> DiagramNode:
        """Lay out a single expression without wrapping."""
        return self._layout(strip_groups(expr), depth, is_root=False)

    def _layout(self, expr: Expression, depth: int, is_root: bool) -> DiagramNode:
        expr = strip_groups(expr)

        if isinstance(expr, Terminal):
            return self._layout_box("terminal", label_for(expr), depth)
        if isinstance(expr, NonterminalRef):
            return self._layout_box("nonterminal", label_for(expr), depth)
        if isinstance(expr, CharClass):
            return self._layout_box("charclass", label_for(expr), depth)
        if isinstance(expr, CharCode):
            return self._layout_box("charcode", label_for(expr), depth)
        if isinstance(expr, Comment):
            return self._layout_comment(expr, depth)
        if isinstance(expr, Epsilon):
            return DiagramNode("epsilon", width=2 * AR, up=0, down=0, depth=depth)
        if isinstance(expr, Sequence):
            return self._layout_sequence(expr, depth, threshold=None)
        if isinstance(expr, Choice):
            return self._layout_choice(expr, depth if is_root else depth + 1)
        if isinstance(expr, OptionalExpr):
            return self._layout_optional(expr, depth + 1)
        if isinstance(expr, Repetition):
            return self._layout_repetition(expr, depth + 1)
        raise TypeError(f"Not an expression: {expr!r}")

    def _layout_box(self, kind: str, label: str, depth: int) -> DiagramNode:
        box_width = self.metrics.text_width(label) + 2 * LABEL_PADDING
        return DiagramNode(
            kind,
            width=box_width + 2 * RAIL_STUB,
            up=BOX_HEIGHT / 2,
            down=BOX_HEIGHT / 2,
            label=label,
            depth=depth,
        )

    def _layout_comment(self, expr: Comment, depth: int) -> DiagramNode:
        text_width = self.metrics.text_width(expr.text)
        return DiagramNode(
            "comment",
            width=text_width + 2 * RAIL_STUB,
            up=COMMENT_HEIGHT,
            down=0,
            label=expr.text,
            depth=depth,
        )

    def _layout_sequence(
        self, expr: Sequence, depth: int, threshold: Optional[int]
    ) -> DiagramNode:
        nodes = [self._layout(child, depth, is_root=False) for child in expr.children]

        # Greedy row filling; a row never starts empty
        rows: List[List[DiagramNode]] = [[]]
        running = 0.0
        for node in nodes:
            if threshold is not None and rows[-1] and running + node.width > threshold:
                rows.append([replace(node, line_break=True)])
                running = node.width
            else:
                rows[-1].append(node)
                running += node.width

        if len(rows) == 1:
            return self._single_row(nodes, depth)
        return self._wrapped_rows(rows, depth)

    def _single_row(self, nodes: List[DiagramNode], depth: int) -> DiagramNode:
        placements = []
        x = 0.0
        for node in nodes:
            placements.append(Placement(node, x, 0))
            x += node.width
        return DiagramNode(
            "sequence",
            width=x,
            up=max(n.up for n in nodes),
            down=max(n.down for n in nodes),
            children=tuple(placements),
            depth=depth,
        )

    def _wrapped_rows(
        self, rows: List[List[DiagramNode]], depth: int
    ) -> DiagramNode:
        """
        Stack rows vertically. Each row starts at x=AR; the rail leaves a
        row on the right, runs back left through the gap between rows and
        enters the next row from the left.
        """
        row_widths = [sum(n.width for n in row) for row in rows]
        inner_width = max(row_widths)
        placements = []
        y = 0.0

        for index, row in enumerate(rows):
            if index > 0:
                previous_down = max(n.down for n in rows[index - 1])
                up = max(n.up for n in row)
                y += max(previous_down + VS, 2 * AR) + max(up + VS, 2 * AR)
            x = float(AR)
            for node in row:
                placements.append(Placement(node, x, y))
                x += node.width

        return DiagramNode(
            "sequence",
            width=inner_width + 2 * AR,
            up=max(n.up for n in rows[0]),
            down=max(n.down for n in rows[-1]),
            exit_y=y,
            children=tuple(placements),
            depth=depth,
        )

    def _layout_choice(self, expr: Choice, depth: int) -> DiagramNode:
        nodes = [self._layout(alt, depth, is_root=False) for alt in expr.alternatives]
        placements = [Placement(nodes[0], 2 * AR, 0)]
        y = 0.0
        for previous, node in zip(nodes, nodes[1:]):
            y += max(2 * AR, previous.down + VS + node.up)
            placements.append(Placement(node, 2 * AR, y))

        return DiagramNode(
            "choice",
            width=max(n.width for n in nodes) + 4 * AR,
            up=nodes[0].up,
            down=y + nodes[-1].down,
            children=tuple(placements),
            depth=depth,
        )

    def _layout_optional(self, expr: OptionalExpr, depth: int) -> DiagramNode:
        child = self._layout(expr.child, depth, is_root=False)
        bypass = max(2 * AR, child.up + VS)
        return DiagramNode(
            "optional",
            width=child.width + 4 * AR,
            up=bypass,
            down=child.down,
            children=(Placement(child, 2 * AR, 0),),
            depth=depth,
            skippable=True,
            bypass_y=-bypass,
        )

    def _layout_repetition(self, expr: Repetition, depth: int) -> DiagramNode:
        child = self._layout(expr.child, depth, is_root=False)
        annotation = bounds_annotation(expr)
        skippable = expr.minimum == 0
        loops = expr.maximum is None or expr.maximum > 1

        # Forward path plus return loop, AR of rail on each side
        inner_width = child.width + 2 * AR if loops else child.width
        loop_y = max(2 * AR, child.down + VS) if loops else 0
        down = loop_y if loops else child.down
        if annotation is not None:
            down += ANNOTATION_HEIGHT

        offset = 2 * AR if skippable else 0
        child_x = offset + (AR if loops else 0)
        bypass = max(2 * AR, child.up + VS) if skippable else 0

        return DiagramNode(
            "repetition",
            width=inner_width + 2 * offset,
            up=bypass if skippable else child.up,
            down=down,
            children=(Placement(child, child_x, 0),),
            depth=depth,
            skippable=skippable,
            annotation=annotation,
            bypass_y=-bypass,
            loop_y=loop_y,
        )


def create_layout(
    grammar: Grammar, config: Optional[Configuration] = None
) -> List[ProductionLayout]:
    """
    Convenience function to lay out a grammar.

    Args:
        grammar: Resolved grammar.
        config: Run configuration; defaults apply when omitted.

    Returns:
        One ProductionLayout per production.
    """
    return DiagramLayout(config).layout(grammar)
