"""
Grammar data model.

This module contains the immutable tree that represents a parsed EBNF grammar.
Expressions are a closed set of frozen dataclasses (a tagged variant), so two
expressions are equal exactly when they have the same structure. Productions
refer to each other by name only; resolution is a lookup into the Grammar.

Classes:
    Terminal, CharClass, CharCode, NonterminalRef: leaf expressions.
    Sequence, Choice, Optional, Repetition, Group: composite expressions.
    Comment, Epsilon: expressions that match the empty string.
    Production: a named rule.
    Grammar: an ordered collection of productions with unique names.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Tuple, Union
from typing import Optional as Opt


@dataclass(frozen=True)
class Terminal:
    """Matches the exact literal text."""

    literal: str


@dataclass(frozen=True)
class CharClass:
    """
    Matches one character from a bracketed class.

    Attributes:
        spec: Text between the brackets, e.g. "a-zA-Z" or "^#x0A".
    """

    spec: str

    @property
    def negated(self) -> bool:
        return self.spec.startswith("^")


@dataclass(frozen=True)
class CharCode:
    """Matches the single character written as #xN."""

    code: int


@dataclass(frozen=True)
class NonterminalRef:
    """Reference to another production by name."""

    name: str


@dataclass(frozen=True)
class Sequence:
    """Concatenation of two or more expressions."""

    children: Tuple["Expression", ...]

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True)
class Choice:
    """Alternation; the first alternative is drawn on the main rail."""

    alternatives: Tuple["Expression", ...]

    def __post_init__(self):
        object.__setattr__(self, "alternatives", tuple(self.alternatives))


@dataclass(frozen=True)
class Optional:
    """Zero or one occurrence of the child."""

    child: "Expression"


@dataclass(frozen=True)
class Repetition:
    """
    Repeated occurrence of the child.

    Attributes:
        child: Repeated expression.
        minimum: Minimum number of occurrences.
        maximum: Maximum number of occurrences, None when unbounded.
    """

    child: "Expression"
    minimum: int = 0
    maximum: Opt[int] = None

    @property
    def bounded(self) -> bool:
        return self.maximum is not None


@dataclass(frozen=True)
class Group:
    """Explicit parenthesization; matches exactly what the child matches."""

    child: "Expression"


@dataclass(frozen=True)
class Comment:
    """Inline annotation; never changes what the grammar matches."""

    text: str


@dataclass(frozen=True)
class Epsilon:
    """The empty match."""


Expression = Union[
    Terminal,
    CharClass,
    CharCode,
    NonterminalRef,
    Sequence,
    Choice,
    Optional,
    Repetition,
    Group,
    Comment,
    Epsilon,
]

LITERAL_TYPES = (Terminal, CharClass, CharCode)


@dataclass(frozen=True)
class Production:
    """
    A named grammar rule.

    Attributes:
        name: Nonterminal being defined.
        expression: Right-hand side.
        comment: Text of the block comment(s) directly preceding the rule.
    """

    name: str
    expression: Expression
    comment: Opt[str] = None


@dataclass(frozen=True)
class Grammar:
    """Ordered, immutable collection of productions."""

    productions: Tuple[Production, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "productions", tuple(self.productions))

    def __iter__(self) -> Iterator[Production]:
        return iter(self.productions)

    def __len__(self) -> int:
        return len(self.productions)

    def __contains__(self, name: object) -> bool:
        return any(p.name == name for p in self.productions)

    def __getitem__(self, name: str) -> Production:
        production = self.get(name)
        if production is None:
            raise KeyError(name)
        return production

    @property
    def names(self) -> List[str]:
        """Production names in definition order."""
        return [p.name for p in self.productions]

    @property
    def start(self) -> Opt[Production]:
        """The first production, the default entry point for display."""
        return self.productions[0] if self.productions else None

    def get(self, name: str) -> Opt[Production]:
        for production in self.productions:
            if production.name == name:
                return production
        return None

    def as_dict(self) -> Dict[str, Expression]:
        return {p.name: p.expression for p in self.productions}

    def replace_expressions(self, mapping: Dict[str, Expression]) -> "Grammar":
        """
        Return a new grammar with the bodies of some productions replaced.

        Args:
            mapping: Production name to new right-hand side. Names that are
                not in the mapping keep their current expression.

        Returns:
            A new Grammar; self is left unchanged.
        """
        return Grammar(
            tuple(
                Production(p.name, mapping[p.name], p.comment)
                if p.name in mapping
                else p
                for p in self.productions
            )
        )

    def map_expressions(
        self, fn: Callable[[Production], Expression]
    ) -> "Grammar":
        """Return a new grammar whose bodies are fn(production)."""
        return self.replace_expressions({p.name: fn(p) for p in self.productions})


def children(expr: Expression) -> Tuple[Expression, ...]:
    """Direct sub-expressions of expr."""
    if isinstance(expr, Sequence):
        return expr.children
    if isinstance(expr, Choice):
        return expr.alternatives
    if isinstance(expr, (Optional, Repetition, Group)):
        return (expr.child,)
    return ()


def walk(expr: Expression) -> Iterator[Expression]:
    """Yield expr and all of its descendants in pre-order."""
    yield expr
    for child in children(expr):
        yield from walk(child)


def references(expr: Expression) -> List[str]:
    """Names referenced by expr, in order of first appearance."""
    seen: List[str] = []
    for node in walk(expr):
        if isinstance(node, NonterminalRef) and node.name not in seen:
            seen.append(node.name)
    return seen


def strip_groups(expr: Expression) -> Expression:
    """Remove any Group wrappers around expr."""
    while isinstance(expr, Group):
        expr = expr.child
    return expr
