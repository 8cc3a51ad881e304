"""
Main railroad diagram generator module.

Combines parsing, reference resolution, grammar simplification, layout,
coloring and rendering to turn EBNF text into a document of railroad
diagrams.
"""

from pathlib import Path
from typing import List, Optional

from .colors import ColorScheme
from .config import Configuration
from .export import DiagramExporter
from .graph import resolve_references
from .layout import DiagramLayout, ProductionLayout
from .metrics import TextMetrics
from .models import Grammar
from .parser import Parser
from .renderer import DiagramRenderer, Document
from .tracer import PipelineTrace
from .transform import GrammarTransformer


class RailroadGenerator:
    """
    Generate railroad diagrams from W3C-style EBNF.

    Example:
        >>> generator = RailroadGenerator(width_threshold=600)
        >>> grammar_text = '''
        ...     list ::= item | list ',' item
        ...     item ::= [a-z]+
        ... '''
        >>> document = generator.generate(grammar_text)
        >>> generator.save_xhtml(grammar_text, "grammar.xhtml")
    """

    def __init__(self, config: Optional[Configuration] = None, **overrides):
        """
        Initialize the generator.

        Args:
            config: Run configuration; defaults apply when omitted.
            **overrides: Individual Configuration fields to replace, e.g.
                factoring=False or base_color="#A0C0FF".

        Raises:
            ConfigurationError: On unknown or invalid settings.
        """
        config = config or Configuration()
        if overrides:
            config = config.with_overrides(**overrides)
        self.config = config

        self.parser = Parser()
        self.transformer = GrammarTransformer(config)
        self.metrics = TextMetrics.from_config(config)
        self.layout_engine = DiagramLayout(config, self.metrics)
        self.renderer = DiagramRenderer(config)
        self.scheme = ColorScheme.from_config(config)
        self.exporter = DiagramExporter(config.font_path)

        self._trace: Optional[PipelineTrace] = None

    def parse(self, input_text: str) -> Grammar:
        """
        Parse grammar text and check that every reference is defined.

        Raises:
            GrammarSyntaxError: If the text is malformed.
            UnresolvedReferenceError: If any nonterminal is undefined.
        """
        grammar = self.parser.parse(input_text)
        resolve_references(grammar)
        return grammar

    def simplify(self, grammar: Grammar) -> Grammar:
        """Apply the enabled transformer passes."""
        return self.transformer.transform(grammar, self._trace)

    def generate(self, input_text: str, debug: bool = False) -> Document:
        """
        Generate the diagram document for a grammar.

        Args:
            input_text: EBNF grammar text.
            debug: Record a PipelineTrace, available from get_trace().

        Returns:
            Document with one section per production, in grammar order.

        Raises:
            GrammarSyntaxError: If the text is malformed.
            UnresolvedReferenceError: If any nonterminal is undefined.
        """
        self._trace = PipelineTrace(input_text=input_text) if debug else None
        trace = self._trace

        grammar = self.parser.parse(input_text)
        if trace is not None:
            trace.add_stage(
                "parse",
                {"productions": grammar.names, "count": len(grammar)},
            )

        graph = resolve_references(grammar)
        if trace is not None:
            trace.add_stage(
                "resolve",
                {
                    "edges": graph.graph.number_of_edges(),
                    "recursive_groups": graph.recursive_groups(),
                },
            )

        simplified = self.simplify(grammar)

        layouts = self.layout_engine.layout(simplified)
        if trace is not None:
            trace.add_stage(
                "layout",
                {
                    "width_threshold": self.config.width_threshold,
                    "sizes": {
                        pl.name: (pl.width, pl.height) for pl in layouts
                    },
                    "wrapped": [pl.name for pl in layouts if pl.node.rows > 1],
                },
            )
            trace.add_stage(
                "colors",
                {
                    "base_color": self.config.effective_base_color,
                    "hue_offset": self.config.hue_offset,
                    "palette": self.scheme.palette(_max_depth(layouts)),
                },
            )

        document = self.renderer.render_document(
            simplified, layouts, self.scheme, source=grammar
        )
        if trace is not None:
            for layout, section in zip(layouts, document):
                trace.add_production(
                    section.name,
                    section.diagram.width,
                    section.diagram.height,
                    layout.node.rows,
                    len(section.diagram.primitives),
                )
            trace.add_stage(
                "render",
                {"sections": document.names, "show_ebnf": self.config.show_ebnf},
            )

        return document

    def get_trace(self) -> Optional[PipelineTrace]:
        """Trace of the last generate() call made with debug=True."""
        return self._trace

    def save_xhtml(self, input_text: str, filename: str) -> None:
        """
        Generate diagrams and save them as an XHTML document.

        Args:
            input_text: EBNF grammar text.
            filename: Output filename (should end in .xhtml).
        """
        self.exporter.save_xhtml(self.generate(input_text), filename)

    def save_markdown(self, input_text: str, filename: str) -> None:
        """Generate diagrams and save them as Markdown with embedded SVG."""
        self.exporter.save_markdown(self.generate(input_text), filename)

    def save_png(
        self, input_text: str, directory: str, scale: int = 2
    ) -> List[Path]:
        """
        Generate diagrams and save one PNG per production.

        Args:
            input_text: EBNF grammar text.
            directory: Output directory, created if missing.
            scale: Resolution multiplier for crisp output (default 2 for retina).

        Returns:
            Paths of the written images, in grammar order.
        """
        return self.exporter.save_png(self.generate(input_text), directory, scale)


def _max_depth(layouts: List[ProductionLayout]) -> int:
    deepest = 0
    stack = [pl.node for pl in layouts]
    while stack:
        node = stack.pop()
        deepest = max(deepest, node.depth)
        stack.extend(p.node for p in node.children)
    return deepest
