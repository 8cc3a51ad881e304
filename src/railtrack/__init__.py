"""
railtrack - Railroad Diagrams from EBNF

A Python library that turns W3C-style EBNF grammars into railroad syntax
diagrams, rendered as SVG inside an XHTML document.

Example:
    >>> from railtrack import RailroadGenerator
    >>> generator = RailroadGenerator()
    >>> document = generator.generate('''
    ...     expr ::= term (('+' | '-') term)*
    ...     term ::= [0-9]+
    ... ''')
    >>> print(document.to_xhtml())

Debug Mode Example:
    >>> document = generator.generate("a ::= 'x' a | 'y'", debug=True)
    >>> trace = generator.get_trace()
    >>> print(trace.summary())
"""

from .colors import ColorScheme, HSLColor
from .config import Configuration
from .errors import (
    ConfigurationError,
    GrammarSyntaxError,
    RailtrackError,
    SourceLocation,
    UnresolvedReferenceError,
)
from .export import DiagramExporter
from .formatter import format_expression, format_grammar, format_production
from .generator import RailroadGenerator
from .graph import GrammarGraph, create_grammar_graph, resolve_references
from .layout import DiagramLayout, DiagramNode, Placement, ProductionLayout
from .metrics import TextMetrics
from .models import (
    CharClass,
    CharCode,
    Choice,
    Comment,
    Epsilon,
    Grammar,
    Group,
    NonterminalRef,
    Optional,
    Production,
    Repetition,
    Sequence,
    Terminal,
)
from .parser import Parser, parse_grammar
from .renderer import (
    Arc,
    Box,
    DiagramRenderer,
    Document,
    DocumentSection,
    Line,
    RenderedDiagram,
    Text,
)
from .tracer import PipelineStage, PipelineTrace, ProductionRecord
from .transform import GrammarTransformer

__version__ = "0.1.0"

__all__ = [
    # Main API
    "RailroadGenerator",
    "Configuration",
    # Errors
    "RailtrackError",
    "GrammarSyntaxError",
    "UnresolvedReferenceError",
    "ConfigurationError",
    "SourceLocation",
    # Grammar model
    "Grammar",
    "Production",
    "Terminal",
    "CharClass",
    "CharCode",
    "NonterminalRef",
    "Sequence",
    "Choice",
    "Optional",
    "Repetition",
    "Group",
    "Comment",
    "Epsilon",
    # Parser and formatter
    "Parser",
    "parse_grammar",
    "format_expression",
    "format_production",
    "format_grammar",
    # Reference graph
    "GrammarGraph",
    "create_grammar_graph",
    "resolve_references",
    # Transformer
    "GrammarTransformer",
    # Layout
    "DiagramLayout",
    "DiagramNode",
    "Placement",
    "ProductionLayout",
    "TextMetrics",
    # Colors
    "ColorScheme",
    "HSLColor",
    # Renderer and export
    "DiagramRenderer",
    "RenderedDiagram",
    "Document",
    "DocumentSection",
    "Line",
    "Arc",
    "Box",
    "Text",
    "DiagramExporter",
    # Debug/Tracing
    "PipelineTrace",
    "PipelineStage",
    "ProductionRecord",
]
