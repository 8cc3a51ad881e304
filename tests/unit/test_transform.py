"""Unit tests for the grammar transformer."""

import pytest

from railtrack.config import Configuration
from railtrack.models import (
    CharClass,
    Choice,
    Epsilon,
    NonterminalRef,
    Optional,
    Repetition,
    Sequence,
    Terminal,
)
from railtrack.parser import parse_grammar
from railtrack.tracer import PipelineTrace
from railtrack.transform import (
    GrammarTransformer,
    make_choice,
    make_optional,
    make_repetition,
    make_sequence,
)

X, Y, Z = Terminal("x"), Terminal("y"), Terminal("z")


def only(**enabled):
    """Transformer with every pass off except the named ones."""
    settings = dict(
        recursion_elimination=False,
        factoring=False,
        inline_literals=False,
        keep_epsilon_refs=True,
    )
    settings.update(enabled)
    return GrammarTransformer(Configuration(**settings))


class TestSmartConstructors:
    """Tests for the normalizing constructors."""

    def test_sequence_flattens_and_drops_epsilon(self):
        """Test that nested sequences merge and epsilons vanish."""
        result = make_sequence([Epsilon(), X, Sequence((Y, Z))])
        assert result == Sequence((X, Y, Z))

    def test_sequence_of_one_item(self):
        """Test that a single item is returned bare."""
        assert make_sequence([Epsilon(), X]) == X
        assert make_sequence([Epsilon()]) == Epsilon()

    def test_choice_flattens_and_deduplicates(self):
        """Test that nested choices merge and repeats are dropped."""
        assert make_choice([X, Choice((Y, X))]) == Choice((X, Y))

    def test_choice_with_epsilon_becomes_optional(self):
        """Test that an empty alternative makes the choice optional."""
        assert make_choice([X, Epsilon()]) == Optional(X)
        assert make_choice([Epsilon(), X, Y]) == Optional(Choice((X, Y)))

    def test_choice_of_only_epsilon(self):
        """Test that an emptied choice collapses to Epsilon."""
        assert make_choice([Epsilon(), Epsilon()]) == Epsilon()

    def test_optional_collapses(self):
        """Test Optional of Optional and of repetitions."""
        assert make_optional(Optional(X)) == Optional(X)
        assert make_optional(Repetition(X, 1, None)) == Repetition(X, 0, None)
        assert make_optional(Repetition(X, 0, None)) == Repetition(X, 0, None)
        assert make_optional(Repetition(X, 2, 5)) == Optional(Repetition(X, 2, 5))
        assert make_optional(Epsilon()) == Epsilon()

    def test_repetition_simplifies(self):
        """Test that a star of an optional is a plain star."""
        assert make_repetition(Optional(X), 0, None) == Repetition(X, 0, None)
        assert make_repetition(Repetition(X, 1, None), 0, None) == Repetition(
            X, 0, None
        )
        assert make_repetition(Epsilon(), 0, None) == Epsilon()

    def test_repetition_keeps_higher_minimum(self):
        """Test that a star around x{2,} is not flattened to x*."""
        inner = Repetition(X, 2, None)
        assert make_repetition(inner, 0, None) == Repetition(inner, 0, None)
        bounded = Repetition(X, 1, 3)
        assert make_repetition(bounded, 0, None) == Repetition(bounded, 0, None)


class TestRecursionElimination:
    """Tests for direct recursion elimination."""

    def test_right_recursion(self):
        """Test P ::= 'x' P | 'y' becomes 'x'* 'y'."""
        grammar = parse_grammar("P ::= 'x' P | 'y'")
        result = GrammarTransformer().transform(grammar)
        assert result["P"].expression == Sequence((Repetition(X, 0, None), Y))

    def test_left_recursion(self):
        """Test that left recursion becomes a trailing repetition."""
        grammar = parse_grammar("list ::= list ',' item | item\nitem ::= [a-z]")
        result = only(recursion_elimination=True).transform(grammar)
        assert result["list"].expression == Sequence(
            (
                NonterminalRef("item"),
                Repetition(Sequence((Terminal(","), NonterminalRef("item"))), 0, None),
            )
        )

    def test_left_and_right_recursion(self):
        """Test P ::= P a | c P | b becomes c* b a*."""
        grammar = parse_grammar("P ::= P 'a' | 'c' P | 'b'")
        result = only(recursion_elimination=True).transform(grammar)
        assert result["P"].expression == Sequence(
            (
                Repetition(Terminal("c"), 0, None),
                Terminal("b"),
                Repetition(Terminal("a"), 0, None),
            )
        )

    def test_recursive_tail_with_minimum(self):
        """Test that a tail repeated at least twice stays nested in the loop."""
        grammar = parse_grammar("R ::= R 'x'{2,} | 'y'")
        result = only(recursion_elimination=True).transform(grammar)
        assert result["R"].expression == Sequence(
            (Y, Repetition(Repetition(X, 2, None), 0, None))
        )

    def test_several_recursive_alternatives(self):
        """Test that recursive tails are combined into one choice."""
        grammar = parse_grammar("e ::= e '+' t | e '-' t | t\nt ::= 'n'")
        result = only(recursion_elimination=True).transform(grammar)
        assert result["e"].expression == Sequence(
            (
                NonterminalRef("t"),
                Repetition(
                    Choice(
                        (
                            Sequence((Terminal("+"), NonterminalRef("t"))),
                            Sequence((Terminal("-"), NonterminalRef("t"))),
                        )
                    ),
                    0,
                    None,
                ),
            )
        )

    def test_bare_self_reference_dropped(self):
        """Test that the alternative P alone is removed."""
        grammar = parse_grammar("P ::= P | 'x' P | 'y'")
        result = only(recursion_elimination=True).transform(grammar)
        assert result["P"].expression == Sequence((Repetition(X, 0, None), Y))

    def test_no_base_alternative_is_untouched(self):
        """Test that a production without a non-recursive alternative is kept."""
        grammar = parse_grammar("P ::= 'x' P")
        result = only(recursion_elimination=True).transform(grammar)
        assert result == grammar

    def test_indirect_recursion_is_untouched(self):
        """Test that mutual recursion is left alone."""
        grammar = parse_grammar("a ::= b 'x' | 'y'\nb ::= a 'z'")
        result = only(recursion_elimination=True).transform(grammar)
        assert result == grammar

    def test_empty_base_alternative(self):
        """Test that an empty base leaves only the loop."""
        grammar = parse_grammar("P ::= 'x' P | ()")
        result = only(recursion_elimination=True).transform(grammar)
        assert result["P"].expression == Repetition(X, 0, None)


class TestFactoring:
    """Tests for left and right factoring."""

    def test_left_factoring(self):
        """Test Choice(Sequence(A,B), Sequence(A,C)) -> Sequence(A, Choice(B,C))."""
        grammar = parse_grammar("a ::= b c | b d\nb ::= 'p'\nc ::= 'q'\nd ::= 'r'")
        result = only(factoring=True).transform(grammar)
        b, c, d = NonterminalRef("b"), NonterminalRef("c"), NonterminalRef("d")
        assert result["a"].expression == Sequence((b, Choice((c, d))))

    def test_longest_common_prefix(self):
        """Test that the whole shared prefix is hoisted."""
        grammar = parse_grammar("a ::= 'x' 'y' 'z' | 'x' 'y' 'w'")
        result = only(factoring=True).transform(grammar)
        assert result["a"].expression == Sequence(
            (X, Y, Choice((Z, Terminal("w"))))
        )

    def test_right_factoring(self):
        """Test that a shared trailing item is hoisted."""
        grammar = parse_grammar("a ::= 'x' 'z' | 'y' 'z'")
        result = only(factoring=True).transform(grammar)
        assert result["a"].expression == Sequence((Choice((X, Y)), Z))

    def test_prefix_alternative_becomes_optional(self):
        """Test that A | A B becomes A B?."""
        grammar = parse_grammar("a ::= 'x' | 'x' 'y'")
        result = only(factoring=True).transform(grammar)
        assert result["a"].expression == Sequence((X, Optional(Y)))

    def test_factored_alternative_keeps_position(self):
        """Test that the merged alternative replaces the first member."""
        grammar = parse_grammar("a ::= 'z' | 'x' 'y' | 'w' | 'x' 'z'")
        result = only(factoring=True).transform(grammar)
        assert result["a"].expression == Choice(
            (Z, Sequence((X, Choice((Y, Z)))), Terminal("w"))
        )

    def test_groups_are_unwrapped(self):
        """Test that factoring removes explicit groups."""
        grammar = parse_grammar("a ::= ('x' 'y') ('z')")
        result = only(factoring=True).transform(grammar)
        assert result["a"].expression == Sequence((X, Y, Z))

    def test_nested_choices_are_factored(self):
        """Test that factoring applies inside other constructs."""
        grammar = parse_grammar("a ::= ('x' 'y' | 'x' 'z')*")
        result = only(factoring=True).transform(grammar)
        assert result["a"].expression == Repetition(
            Sequence((X, Choice((Y, Z)))), 0, None
        )

    def test_unrelated_alternatives_untouched(self):
        """Test that alternatives without shared ends stay as they are."""
        grammar = parse_grammar("a ::= 'x' | 'y' 'z'")
        result = only(factoring=True).transform(grammar)
        assert result == grammar


class TestLiteralInlining:
    """Tests for literal inlining."""

    def test_inline_single_literals(self):
        """Test that references to literal productions are replaced."""
        grammar = parse_grammar("a ::= b c\nb ::= 'x'\nc ::= [0-9]")
        result = only(inline_literals=True).transform(grammar)
        assert result["a"].expression == Sequence((X, CharClass("0-9")))

    def test_inlined_productions_are_kept(self):
        """Test that the inlined production keeps its own definition."""
        grammar = parse_grammar("a ::= b\nb ::= 'x'")
        result = only(inline_literals=True).transform(grammar)
        assert result.names == ["a", "b"]
        assert result["b"].expression == X

    def test_non_literal_target_not_inlined(self):
        """Test that sequences are not inlined."""
        grammar = parse_grammar("a ::= b\nb ::= 'x' 'y'")
        result = only(inline_literals=True).transform(grammar)
        assert result == grammar

    def test_grouped_literal_is_inlined(self):
        """Test that a literal wrapped in parentheses still counts."""
        grammar = parse_grammar("a ::= b b\nb ::= ('x')")
        result = only(inline_literals=True).transform(grammar)
        assert result["a"].expression == Sequence((X, X))


class TestEpsilonRemoval:
    """Tests for epsilon-reference removal."""

    def test_removed_from_sequence(self):
        """Test P ::= Q R with Q epsilon-only becomes P ::= R."""
        grammar = parse_grammar("P ::= Q R\nQ ::= ()\nR ::= 'r'")
        result = only(keep_epsilon_refs=False).transform(grammar)
        assert result["P"].expression == NonterminalRef("R")

    def test_choice_becomes_optional(self):
        """Test that an epsilon alternative turns the choice optional."""
        grammar = parse_grammar("P ::= Q | 'x'\nQ ::= ()")
        result = only(keep_epsilon_refs=False).transform(grammar)
        assert result["P"].expression == Optional(X)

    def test_emptied_production(self):
        """Test that a body of only epsilon references becomes Epsilon."""
        grammar = parse_grammar("P ::= Q Q\nQ ::= /* empty */")
        result = only(keep_epsilon_refs=False).transform(grammar)
        assert result["P"].expression == Epsilon()

    def test_kept_by_default(self):
        """Test that epsilon references survive the default configuration."""
        grammar = parse_grammar("P ::= Q R\nQ ::= ()\nR ::= 'r' 's'")
        result = GrammarTransformer().transform(grammar)
        assert result["P"].expression == Sequence(
            (NonterminalRef("Q"), NonterminalRef("R"))
        )


class TestTransformer:
    """Tests for the whole transformer pipeline."""

    def test_all_passes_disabled_returns_input(self, no_transform_config):
        """Test that nothing changes when every pass is off."""
        grammar = parse_grammar("a ::= a 'x' | 'y'")
        transformer = GrammarTransformer(no_transform_config)
        assert transformer.enabled_passes() == []
        assert transformer.transform(grammar) is grammar

    def test_pass_order(self):
        """Test that enabled passes run in the fixed order."""
        transformer = GrammarTransformer(Configuration(keep_epsilon_refs=False))
        names = [name for name, _ in transformer.enabled_passes()]
        assert names == [
            "recursion_elimination",
            "factoring",
            "inline_literals",
            "epsilon_removal",
        ]

    def test_input_not_modified(self, expression_grammar_text):
        """Test that the input grammar is left unchanged."""
        grammar = parse_grammar(expression_grammar_text)
        before = parse_grammar(expression_grammar_text)
        GrammarTransformer().transform(grammar)
        assert grammar == before

    def test_comments_preserved(self, expression_grammar_text):
        """Test that production comments survive transformation."""
        result = GrammarTransformer().transform(parse_grammar(expression_grammar_text))
        assert result["expr"].comment == "An arithmetic expression"

    def test_expression_grammar(self, expression_grammar_text):
        """Test the combined passes on a left-recursive expression grammar."""
        result = GrammarTransformer().transform(parse_grammar(expression_grammar_text))
        term = NonterminalRef("term")
        assert result["expr"].expression == Sequence(
            (
                term,
                Repetition(
                    Sequence((Choice((Terminal("+"), Terminal("-"))), term)),
                    0,
                    None,
                ),
            )
        )

    def test_trace_records_passes(self):
        """Test that each pass of each round is traced."""
        trace = PipelineTrace()
        grammar = parse_grammar("P ::= 'x' P | 'y'")
        GrammarTransformer().transform(grammar, trace)
        first = trace.get_stage("transform:recursion_elimination")
        assert first.data == {"round": 1, "changed": ["P"]}
        rounds = {s.data["round"] for s in trace.get_stages("transform:")}
        assert rounds == {1, 2}

    @pytest.mark.parametrize(
        "settings",
        [
            {},
            {"keep_epsilon_refs": False},
            {"factoring": False},
            {"recursion_elimination": False, "inline_literals": False},
        ],
    )
    def test_idempotent(self, settings, expression_grammar_text, json_grammar_text):
        """Test transform(transform(g)) == transform(g)."""
        transformer = GrammarTransformer(Configuration(**settings))
        for text in (expression_grammar_text, json_grammar_text):
            once = transformer.transform(parse_grammar(text))
            assert transformer.transform(once) == once


class TestSemanticPreservation:
    """Compare bounded languages before and after transformation."""

    GRAMMARS = [
        "P ::= 'x' P | 'y'",
        "P ::= P 'a' | 'c' P | 'b' | P",
        "e ::= e '+' e | 'n'",
        "a ::= 'x' 'y' | 'x' 'z' | 'x' | 'w' 'z'",
        "a ::= (b | 'x' b)* c\nb ::= 'y'\nc ::= 'z' | ()",
        "P ::= Q R | Q\nQ ::= () | S\nS ::= ()\nR ::= 'r'+",
        "a ::= ('x' | 'x' 'y'){1,3} 'z'?",
        "a ::= ('x'{2,})*",
        "R ::= R ('x'){2,} | 'y'",
    ]

    @pytest.mark.parametrize("text", GRAMMARS)
    @pytest.mark.parametrize("keep_epsilon_refs", [True, False])
    def test_language_preserved(self, language, text, keep_epsilon_refs):
        """Test that every production derives the same bounded language."""
        grammar = parse_grammar(text)
        transformer = GrammarTransformer(
            Configuration(keep_epsilon_refs=keep_epsilon_refs)
        )
        assert language(transformer.transform(grammar)) == language(grammar)

    def test_fixture_grammars(
        self, language, expression_grammar_text, json_grammar_text
    ):
        """Test semantic preservation on the larger fixture grammars."""
        transformer = GrammarTransformer(Configuration(keep_epsilon_refs=False))
        for text in (expression_grammar_text, json_grammar_text):
            grammar = parse_grammar(text)
            assert language(transformer.transform(grammar), 4) == language(
                grammar, 4
            )
