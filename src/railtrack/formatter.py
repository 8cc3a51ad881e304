"""
Textual EBNF rendering of grammars.

The output is accepted by the parser, and parsing the formatted text of a
parsed grammar yields an equal grammar. Parentheses are only added where the
tree could not be read back otherwise; explicit groups always keep theirs.
"""

from .models import (
    CharClass,
    CharCode,
    Choice,
    Comment,
    Epsilon,
    Expression,
    Grammar,
    Group,
    NonterminalRef,
    Optional,
    Production,
    Repetition,
    Sequence,
    Terminal,
)

CHOICE_PRECEDENCE = 2
SEQUENCE_PRECEDENCE = 1
ATOM_PRECEDENCE = 0


def precedence(expr: Expression) -> int:
    if isinstance(expr, Choice):
        return CHOICE_PRECEDENCE
    if isinstance(expr, Sequence):
        return SEQUENCE_PRECEDENCE
    return ATOM_PRECEDENCE


def quote(literal: str) -> str:
    """Quote a literal, using double quotes when it contains a single quote."""
    if "'" in literal:
        return f'"{literal}"'
    return f"'{literal}'"


def format_expression(expr: Expression) -> str:
    """Render an expression as EBNF text."""
    if isinstance(expr, Terminal):
        return quote(expr.literal)
    if isinstance(expr, CharClass):
        return f"[{expr.spec}]"
    if isinstance(expr, CharCode):
        return f"#x{expr.code:X}"
    if isinstance(expr, NonterminalRef):
        return expr.name
    if isinstance(expr, Epsilon):
        return "()"
    if isinstance(expr, Comment):
        return f"/* {expr.text} */"
    if isinstance(expr, Group):
        return f"({format_expression(expr.child)})"
    if isinstance(expr, Sequence):
        return " ".join(
            _operand(child, SEQUENCE_PRECEDENCE) for child in expr.children
        )
    if isinstance(expr, Choice):
        return " | ".join(
            _operand(alt, CHOICE_PRECEDENCE) for alt in expr.alternatives
        )
    if isinstance(expr, Optional):
        return f"{_postfix_operand(expr.child)}?"
    if isinstance(expr, Repetition):
        return f"{_postfix_operand(expr.child)}{_repetition_suffix(expr)}"
    raise TypeError(f"Not an expression: {expr!r}")


def _operand(child: Expression, parent_precedence: int) -> str:
    text = format_expression(child)
    if precedence(child) >= parent_precedence:
        return f"({text})"
    return text


def _postfix_operand(child: Expression) -> str:
    text = format_expression(child)
    if precedence(child) > ATOM_PRECEDENCE or isinstance(
        child, (Optional, Repetition, Comment)
    ):
        return f"({text})"
    return text


def _repetition_suffix(expr: Repetition) -> str:
    if expr.maximum is None:
        if expr.minimum == 0:
            return "*"
        if expr.minimum == 1:
            return "+"
        return f"{{{expr.minimum},}}"
    if expr.minimum == expr.maximum:
        return f"{{{expr.minimum}}}"
    return f"{{{expr.minimum},{expr.maximum}}}"


def format_production(production: Production) -> str:
    """Render a production, preceded by its comment if it has one."""
    text = f"{production.name} ::= {format_expression(production.expression)}"
    if production.comment is not None:
        return f"/* {production.comment} */\n{text}"
    return text


def format_grammar(grammar: Grammar) -> str:
    """Render a whole grammar, productions separated by blank lines."""
    return "\n\n".join(format_production(p) for p in grammar) + "\n"
