"""
Error types for railtrack.

Every failure the pipeline reports is a RailtrackError carrying a kind, a
message and, where the error points into the grammar text, a source location.
Parser and resolution errors abort a run before any transformation or layout.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SourceLocation:
    """
    A position in the grammar text.

    Attributes:
        line: 1-based line number.
        column: 1-based column number.
    """

    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


class RailtrackError(Exception):
    """Base class for all errors raised by railtrack."""

    kind = "error"

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        self.message = message
        self.location = location
        if location is not None:
            super().__init__(f"{location}: {message}")
        else:
            super().__init__(message)

    def as_dict(self) -> Dict[str, Any]:
        """Return the error as a structured value."""
        result: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.location is not None:
            result["line"] = self.location.line
            result["column"] = self.location.column
        return result


class GrammarSyntaxError(RailtrackError):
    """Raised when the grammar text is not well-formed EBNF."""

    kind = "syntax"

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        token: Optional[str] = None,
    ):
        super().__init__(message, location)
        self.token = token

    def as_dict(self) -> Dict[str, Any]:
        result = super().as_dict()
        if self.token is not None:
            result["token"] = self.token
        return result


class UnresolvedReferenceError(RailtrackError):
    """Raised when nonterminals are referenced but never defined."""

    kind = "unresolved-reference"

    def __init__(self, names: List[str]):
        self.names = list(names)
        listed = ", ".join(f"'{name}'" for name in self.names)
        super().__init__(f"Undefined nonterminal(s): {listed}")

    def as_dict(self) -> Dict[str, Any]:
        result = super().as_dict()
        result["names"] = list(self.names)
        return result


class ConfigurationError(RailtrackError, ValueError):
    """Raised when configuration values are out of range or contradictory."""

    kind = "configuration"
