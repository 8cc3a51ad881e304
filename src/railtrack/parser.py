"""
Parser module for railtrack.

Turns W3C-style EBNF text into a Grammar. Tokenizing is driven by a single
regular expression with named groups; the token stream is then consumed by a
recursive-descent parser:

    Grammar     ::= (Comment* Production)* Comment*
    Production  ::= Name ('::=' | '=') Choice
    Choice      ::= Sequence ('|' Sequence)*
    Sequence    ::= (Postfix | Comment) ((',')? (Postfix | Comment))*
    Postfix     ::= Term ('?' | '*' | '+' | '{' n (',' m?)? '}')?
    Term        ::= Name | Literal | CharClass | '#x' Hex | '(' Choice? ')'

Names are never resolved here, so forward references are fine.
"""

import re
from dataclasses import dataclass
from typing import List, Tuple
from typing import Optional as Opt

from .errors import GrammarSyntaxError, SourceLocation
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

# Order matters: earlier patterns win when several match at one position.
TOKEN_PATTERNS: List[Tuple[str, str]] = [
    ("COMMENT", r"/\*.*?\*/"),
    ("OPEN_COMMENT", r"/\*"),
    ("DEFINE", r"::=|="),
    ("NAME", r"[A-Za-z_][A-Za-z0-9_]*"),
    ("HEX", r"#x[0-9A-Fa-f]+"),
    ("STRING", r"'[^'\n]*'|\"[^\"\n]*\""),
    ("CHARCLASS", r"\[[^\]\n]*\]"),
    ("BOUNDS", r"\{[ \t]*\d+[ \t]*(?:,[ \t]*\d*[ \t]*)?\}"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("ALT", r"\|"),
    ("COMMA", r","),
    ("OPT", r"\?"),
    ("STAR", r"\*"),
    ("PLUS", r"\+"),
    ("NEWLINE", r"\n"),
    ("WHITESPACE", r"[ \t\r\f]+"),
    ("MISMATCH", r"."),
]

TOKEN_REGEX = re.compile(
    "|".join(f"(?P<{name}>{pattern})" for name, pattern in TOKEN_PATTERNS),
    re.DOTALL,
)

POSTFIX_TOKENS = ("OPT", "STAR", "PLUS", "BOUNDS")


@dataclass(frozen=True)
class Token:
    """A lexical token with its position in the source text."""

    kind: str
    value: str
    line: int
    column: int

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column)

    def describe(self) -> str:
        if self.kind == "EOF":
            return "end of input"
        return f"'{self.value}'"


def tokenize(text: str) -> List[Token]:
    """
    Split grammar text into tokens, dropping whitespace.

    Args:
        text: Grammar source.

    Returns:
        Tokens in source order, terminated by an EOF token.

    Raises:
        GrammarSyntaxError: On characters that cannot start any token and on
            unterminated comments, literals and character classes.
    """
    tokens: List[Token] = []
    line = 1
    line_start = 0

    for match in TOKEN_REGEX.finditer(text):
        kind = match.lastgroup
        value = match.group()
        column = match.start() - line_start + 1

        if kind == "NEWLINE":
            line += 1
            line_start = match.end()
            continue
        if kind == "WHITESPACE":
            continue
        if kind == "OPEN_COMMENT":
            raise GrammarSyntaxError(
                "Unterminated comment", SourceLocation(line, column), value
            )
        if kind == "MISMATCH":
            raise GrammarSyntaxError(
                _mismatch_message(value), SourceLocation(line, column), value
            )

        tokens.append(Token(kind, value, line, column))

        # Comments may span lines
        newlines = value.count("\n")
        if newlines:
            line += newlines
            line_start = match.start() + value.rindex("\n") + 1

    tokens.append(Token("EOF", "", line, len(text) - line_start + 1))
    return tokens


def _mismatch_message(char: str) -> str:
    if char in ("'", '"'):
        return "Unterminated literal"
    if char == "[":
        return "Unterminated character class"
    if char == "-":
        return "Subtraction ('-') is not supported"
    if char == "{":
        return "Malformed repetition bounds"
    return f"Unexpected character '{char}'"


class Parser:
    """Parses W3C-style EBNF text into a Grammar."""

    def __init__(self):
        self.tokens: List[Token] = []
        self.pos = 0

    def parse(self, input_text: str) -> Grammar:
        """
        Parse grammar text.

        Args:
            input_text: EBNF source, one or more productions.

        Returns:
            Grammar with productions in source order.

        Raises:
            GrammarSyntaxError: If the text is malformed, defines a name twice
                or contains no productions.
        """
        self.tokens = tokenize(input_text)
        self.pos = 0

        productions: List[Production] = []
        defined = set()
        pending_comments: List[str] = []

        while self._peek().kind != "EOF":
            token = self._peek()
            if token.kind == "COMMENT":
                pending_comments.append(_comment_text(token.value))
                self._advance()
                continue

            if not self._at_production_start():
                raise GrammarSyntaxError(
                    f"Expected a production name followed by '::=', "
                    f"found {token.describe()}",
                    token.location,
                    token.value,
                )

            if token.value in defined:
                raise GrammarSyntaxError(
                    f"Duplicate production '{token.value}'",
                    token.location,
                    token.value,
                )
            defined.add(token.value)

            comment = "\n".join(pending_comments) if pending_comments else None
            pending_comments = []
            productions.append(self._parse_production(comment))

        if not productions:
            raise GrammarSyntaxError("No productions found in input")

        return Grammar(tuple(productions))

    def _parse_production(self, comment: Opt[str]) -> Production:
        name = self._advance().value
        self._advance()  # ::=
        expression = self._parse_choice()

        token = self._peek()
        if token.kind == "RPAREN":
            raise GrammarSyntaxError(
                "Unbalanced ')'", token.location, token.value
            )
        return Production(name, expression, comment)

    def _parse_choice(self) -> Expression:
        alternatives = [self._parse_sequence()]
        while self._peek().kind == "ALT":
            self._advance()
            alternatives.append(self._parse_sequence())

        if len(alternatives) == 1:
            return alternatives[0]
        return Choice(tuple(alternatives))

    def _parse_sequence(self) -> Expression:
        items: List[Expression] = []

        while True:
            token = self._peek()
            if token.kind in ("EOF", "ALT", "RPAREN"):
                break
            if self._at_production_start():
                break

            if token.kind == "COMMENT":
                if self._comments_lead_production():
                    break
                items.append(Comment(_comment_text(token.value)))
                self._advance()
                continue

            if token.kind == "COMMA":
                if not items:
                    raise GrammarSyntaxError(
                        "Unexpected ','", token.location, token.value
                    )
                self._advance()
                following = self._peek()
                if following.kind in ("EOF", "ALT", "RPAREN", "COMMA") or (
                    self._at_production_start()
                ):
                    raise GrammarSyntaxError(
                        f"Expected an expression after ',', "
                        f"found {following.describe()}",
                        following.location,
                        following.value,
                    )
                continue

            items.append(self._parse_postfix())

        if not items:
            return Epsilon()
        if len(items) == 1:
            return items[0]
        return Sequence(tuple(items))

    def _parse_postfix(self) -> Expression:
        term = self._parse_term()
        token = self._peek()

        if token.kind == "OPT":
            self._advance()
            return Optional(term)
        if token.kind == "STAR":
            self._advance()
            return Repetition(term, 0, None)
        if token.kind == "PLUS":
            self._advance()
            return Repetition(term, 1, None)
        if token.kind == "BOUNDS":
            self._advance()
            minimum, maximum = _parse_bounds(token)
            return Repetition(term, minimum, maximum)
        return term

    def _parse_term(self) -> Expression:
        token = self._advance()

        if token.kind == "NAME":
            return NonterminalRef(token.value)
        if token.kind == "STRING":
            literal = token.value[1:-1]
            return Terminal(literal) if literal else Epsilon()
        if token.kind == "CHARCLASS":
            spec = token.value[1:-1]
            if not spec or spec == "^":
                raise GrammarSyntaxError(
                    "Empty character class", token.location, token.value
                )
            return CharClass(spec)
        if token.kind == "HEX":
            return CharCode(int(token.value[2:], 16))
        if token.kind == "LPAREN":
            if self._peek().kind == "RPAREN":
                self._advance()
                return Epsilon()
            inner = self._parse_choice()
            closing = self._peek()
            if closing.kind != "RPAREN":
                raise GrammarSyntaxError(
                    f"Expected ')', found {closing.describe()}",
                    closing.location,
                    closing.value,
                )
            self._advance()
            return Group(inner)

        raise GrammarSyntaxError(
            f"Unexpected {token.describe()} when parsing expression",
            token.location,
            token.value,
        )

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        token = self._peek()
        if token.kind != "EOF":
            self.pos += 1
        return token

    def _at_production_start(self, offset: int = 0) -> bool:
        return (
            self._peek(offset).kind == "NAME"
            and self._peek(offset + 1).kind == "DEFINE"
        )

    def _comments_lead_production(self) -> bool:
        """True if the comment run at the cursor is followed by a new rule."""
        offset = 0
        while self._peek(offset).kind == "COMMENT":
            offset += 1
        return self._at_production_start(offset)


def _comment_text(raw: str) -> str:
    return raw[2:-2].strip()


def _parse_bounds(token: Token) -> Tuple[int, Opt[int]]:
    inner = token.value[1:-1].replace(" ", "").replace("\t", "")
    if "," not in inner:
        count = int(inner)
        return count, count

    low, high = inner.split(",", 1)
    minimum = int(low)
    maximum = int(high) if high else None
    if maximum is not None and minimum > maximum:
        raise GrammarSyntaxError(
            f"Repetition minimum {minimum} exceeds maximum {maximum}",
            token.location,
            token.value,
        )
    return minimum, maximum


def parse_grammar(input_text: str) -> Grammar:
    """
    Convenience function to parse grammar text.

    Args:
        input_text: EBNF source.

    Returns:
        Parsed Grammar (names not yet resolved).
    """
    parser = Parser()
    return parser.parse(input_text)
