"""Unit tests for the errors module."""

from railtrack.errors import (
    ConfigurationError,
    GrammarSyntaxError,
    RailtrackError,
    SourceLocation,
    UnresolvedReferenceError,
)


class TestErrors:
    """Tests for the error hierarchy."""

    def test_hierarchy(self):
        """Test that every domain error is a RailtrackError."""
        for error_type in (
            GrammarSyntaxError,
            UnresolvedReferenceError,
            ConfigurationError,
        ):
            assert issubclass(error_type, RailtrackError)

    def test_location_in_message(self):
        """Test that the location prefixes the message."""
        error = GrammarSyntaxError("Bad token", SourceLocation(3, 7), "?")
        assert str(error) == "line 3, column 7: Bad token"
        assert error.message == "Bad token"

    def test_syntax_error_as_dict(self):
        """Test the structured value of a syntax error."""
        error = GrammarSyntaxError("Bad token", SourceLocation(3, 7), "?")
        assert error.as_dict() == {
            "kind": "syntax",
            "message": "Bad token",
            "line": 3,
            "column": 7,
            "token": "?",
        }

    def test_syntax_error_without_location(self):
        """Test an error that does not point into the text."""
        error = GrammarSyntaxError("No productions found in input")
        assert str(error) == "No productions found in input"
        assert error.as_dict() == {
            "kind": "syntax",
            "message": "No productions found in input",
        }

    def test_unresolved_reference_lists_names(self):
        """Test that all undefined names are reported together."""
        error = UnresolvedReferenceError(["b", "c"])
        assert error.names == ["b", "c"]
        assert str(error) == "Undefined nonterminal(s): 'b', 'c'"
        assert error.as_dict()["kind"] == "unresolved-reference"
        assert error.as_dict()["names"] == ["b", "c"]
