"""Pytest configuration and shared fixtures for railtrack tests."""

from typing import Dict, FrozenSet, Tuple

import pytest

from railtrack import (
    ColorScheme,
    Configuration,
    DiagramLayout,
    DiagramRenderer,
    GrammarTransformer,
    Parser,
    RailroadGenerator,
    TextMetrics,
)
from railtrack.models import (
    CharClass,
    CharCode,
    Choice,
    Comment,
    Epsilon,
    Grammar,
    Group,
    NonterminalRef,
    Optional,
    Repetition,
    Sequence,
    Terminal,
)

Strings = FrozenSet[Tuple[str, ...]]


@pytest.fixture
def expression_grammar_text():
    """Arithmetic expressions with left recursion."""
    return """
    /* An arithmetic expression */
    expr   ::= expr '+' term | expr '-' term | term
    term   ::= term '*' factor | factor
    factor ::= number | '(' expr ')'
    number ::= [0-9]+
    """


@pytest.fixture
def json_grammar_text():
    """A small JSON grammar exercising most constructs."""
    return """
    value   ::= object | array | string | number | 'true' | 'false' | null
    object  ::= '{' (member (',' member)*)? '}'
    member  ::= string ':' value
    array   ::= '[' (value (',' value)*)? ']'
    string  ::= '"' [^"]* '"'
    number  ::= '-'? [0-9]+ ('.' [0-9]+)?
    null    ::= 'null'
    """


@pytest.fixture
def parser():
    """Default Parser instance."""
    return Parser()


@pytest.fixture
def default_config():
    """Default Configuration."""
    return Configuration()


@pytest.fixture
def no_transform_config():
    """Configuration with every transformer pass disabled."""
    return Configuration(
        recursion_elimination=False,
        factoring=False,
        inline_literals=False,
        keep_epsilon_refs=True,
    )


@pytest.fixture
def transformer():
    """Transformer with the default passes."""
    return GrammarTransformer(Configuration())


@pytest.fixture
def metrics():
    """Fixed-pitch text metrics."""
    return TextMetrics()


@pytest.fixture
def layout_engine(metrics):
    """Layout engine without wrapping."""
    return DiagramLayout(Configuration(width_threshold=None), metrics)


@pytest.fixture
def scheme():
    """Default color scheme."""
    return ColorScheme()


@pytest.fixture
def renderer():
    """Default DiagramRenderer."""
    return DiagramRenderer(Configuration())


@pytest.fixture
def generator():
    """Default RailroadGenerator instance."""
    return RailroadGenerator()


def _concat(left: Strings, right: Strings, limit: int) -> Strings:
    return frozenset(
        a + b for a in left for b in right if len(a) + len(b) <= limit
    )


def _strings(expr, env: Dict[str, Strings], limit: int) -> Strings:
    """Strings of at most `limit` tokens matched by expr."""
    if isinstance(expr, Terminal):
        return frozenset({(expr.literal,)}) if limit >= 1 else frozenset()
    if isinstance(expr, CharClass):
        return frozenset({(f"[{expr.spec}]",)}) if limit >= 1 else frozenset()
    if isinstance(expr, CharCode):
        return frozenset({(f"#x{expr.code:X}",)}) if limit >= 1 else frozenset()
    if isinstance(expr, (Epsilon, Comment)):
        return frozenset({()})
    if isinstance(expr, NonterminalRef):
        return env[expr.name]
    if isinstance(expr, Group):
        return _strings(expr.child, env, limit)
    if isinstance(expr, Sequence):
        result = frozenset({()})
        for child in expr.children:
            result = _concat(result, _strings(child, env, limit), limit)
        return result
    if isinstance(expr, Choice):
        result = frozenset()
        for alternative in expr.alternatives:
            result |= _strings(alternative, env, limit)
        return result
    if isinstance(expr, Optional):
        return frozenset({()}) | _strings(expr.child, env, limit)
    if isinstance(expr, Repetition):
        child = _strings(expr.child, env, limit)
        last = expr.minimum + limit
        if expr.maximum is not None:
            last = min(last, expr.maximum)
        result = frozenset()
        current = frozenset({()})
        for count in range(last + 1):
            if count >= expr.minimum:
                result |= current
            current = _concat(current, child, limit)
        return result
    raise TypeError(f"Not an expression: {expr!r}")


def bounded_language(grammar: Grammar, limit: int = 5) -> Dict[str, Strings]:
    """
    Every production's language restricted to strings of at most `limit`
    tokens, computed as a least fixpoint. Literal tokens are compared
    symbolically: a character class is one token, not a set of characters.
    """
    env: Dict[str, Strings] = {p.name: frozenset() for p in grammar}
    changed = True
    while changed:
        changed = False
        for production in grammar:
            strings = _strings(production.expression, env, limit)
            if strings != env[production.name]:
                env[production.name] = strings
                changed = True
    return env


@pytest.fixture
def language():
    """The bounded_language helper, for semantic preservation checks."""
    return bounded_language
