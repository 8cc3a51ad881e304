"""
Grammar transformation module for railtrack.

Simplifies a resolved grammar so its diagrams are smaller and loops are drawn
as loops. Passes run in a fixed order, each one returning a new Grammar:

1. Direct recursion elimination
2. Left and right factoring of choices
3. Inlining of references to single-literal productions
4. Removal of references to productions that derive only the empty string

The ordered passes are repeated until the grammar stops changing, which makes
the transformer idempotent. Every rewrite preserves the language of each
production.
"""

from typing import Callable, List, Sequence as Seq, Tuple
from typing import Optional as Opt

from .config import Configuration
from .graph import GrammarGraph
from .models import (
    LITERAL_TYPES,
    Choice,
    Epsilon,
    Expression,
    Grammar,
    Group,
    NonterminalRef,
    Optional,
    Repetition,
    Sequence,
    children,
    strip_groups,
)
from .tracer import PipelineTrace

# Safety net; real grammars settle in two or three rounds.
MAX_ROUNDS = 16


def make_sequence(items: Seq[Expression]) -> Expression:
    """Concatenate items, flattening nested sequences and dropping epsilons."""
    flat: List[Expression] = []
    for item in items:
        if isinstance(item, Sequence):
            flat.extend(item.children)
        elif not isinstance(item, Epsilon):
            flat.append(item)

    if not flat:
        return Epsilon()
    if len(flat) == 1:
        return flat[0]
    return Sequence(tuple(flat))


def make_choice(alternatives: Seq[Expression]) -> Expression:
    """
    Build an alternation in normal form.

    Nested choices are flattened, duplicate alternatives dropped (first one
    wins) and an empty alternative turns the result into an Optional.
    """
    flat: List[Expression] = []
    has_empty = False
    for alternative in alternatives:
        parts = (
            alternative.alternatives
            if isinstance(alternative, Choice)
            else (alternative,)
        )
        for part in parts:
            if isinstance(part, Epsilon):
                has_empty = True
            elif part not in flat:
                flat.append(part)

    if not flat:
        return Epsilon()
    body = flat[0] if len(flat) == 1 else Choice(tuple(flat))
    return make_optional(body) if has_empty else body


def make_optional(child: Expression) -> Expression:
    if isinstance(child, (Epsilon, Optional)):
        return child
    if isinstance(child, Repetition) and child.minimum <= 1:
        return Repetition(child.child, 0, child.maximum)
    return Optional(child)


def make_repetition(
    child: Expression, minimum: int, maximum: Opt[int]
) -> Expression:
    if isinstance(child, Epsilon) or maximum == 0:
        return Epsilon()
    if minimum == 0 and maximum is None:
        if isinstance(child, Optional):
            child = child.child
        elif (
            isinstance(child, Repetition)
            and child.maximum is None
            and child.minimum <= 1
        ):
            child = child.child
    return Repetition(child, minimum, maximum)


def rebuild(expr: Expression, new_children: Tuple[Expression, ...]) -> Expression:
    """Rebuild a composite node around new children, normalizing the result."""
    if isinstance(expr, Sequence):
        return make_sequence(new_children)
    if isinstance(expr, Choice):
        return make_choice(new_children)
    if isinstance(expr, Optional):
        return make_optional(new_children[0])
    if isinstance(expr, Repetition):
        return make_repetition(new_children[0], expr.minimum, expr.maximum)
    if isinstance(expr, Group):
        child = new_children[0]
        return child if isinstance(child, Epsilon) else Group(child)
    raise TypeError(f"Not a composite expression: {expr!r}")


def rewrite(
    expr: Expression, fn: Callable[[Expression], Expression]
) -> Expression:
    """
    Apply fn bottom-up to every node of expr.

    fn must return its argument unchanged (the same object) when it has
    nothing to rewrite; untouched subtrees are then shared with the input.
    """
    old_children = children(expr)
    if old_children:
        new_children = tuple(rewrite(child, fn) for child in old_children)
        if any(new is not old for new, old in zip(new_children, old_children)):
            expr = rebuild(expr, new_children)
    return fn(expr)


def sequence_items(expr: Expression) -> List[Expression]:
    """The items of expr read as a sequence (an epsilon has none)."""
    expr = strip_groups(expr)
    if isinstance(expr, Sequence):
        return list(expr.children)
    if isinstance(expr, Epsilon):
        return []
    return [expr]


class GrammarTransformer:
    """
    Applies the enabled simplification passes to a grammar.

    Example:
        >>> transformer = GrammarTransformer(Configuration())
        >>> simplified = transformer.transform(grammar)
    """

    def __init__(self, config: Opt[Configuration] = None):
        self.config = config or Configuration()

    def enabled_passes(self) -> List[Tuple[str, Callable[[Grammar], Grammar]]]:
        """Enabled passes in the order they run."""
        passes = []
        if self.config.recursion_elimination:
            passes.append(("recursion_elimination", self.eliminate_recursion))
        if self.config.factoring:
            passes.append(("factoring", self.factor))
        if self.config.inline_literals:
            passes.append(("inline_literals", self.inline_literals))
        if not self.config.keep_epsilon_refs:
            passes.append(("epsilon_removal", self.remove_epsilon_references))
        return passes

    def transform(
        self, grammar: Grammar, trace: Opt[PipelineTrace] = None
    ) -> Grammar:
        """
        Run the enabled passes until the grammar no longer changes.

        Args:
            grammar: Grammar whose references have been resolved.
            trace: Optional trace that receives one stage per pass and round.

        Returns:
            The simplified grammar; the input is not modified.
        """
        passes = self.enabled_passes()
        if not passes:
            return grammar

        current = grammar
        for round_number in range(1, MAX_ROUNDS + 1):
            start_of_round = current
            for name, apply_pass in passes:
                before = current
                current = apply_pass(current)
                if trace is not None:
                    trace.add_stage(
                        f"transform:{name}",
                        {
                            "round": round_number,
                            "changed": _changed_names(before, current),
                        },
                    )
            if current == start_of_round:
                break

        return current

    def eliminate_recursion(self, grammar: Grammar) -> Grammar:
        """
        Rewrite direct left and right recursion as repetitions.

        P ::= P a | c P | b   becomes   P ::= c* b a*
        """
        mapping = {}
        for production in grammar:
            rewritten = _eliminate_direct_recursion(
                production.name, production.expression
            )
            if rewritten is not production.expression:
                mapping[production.name] = rewritten
        return grammar.replace_expressions(mapping) if mapping else grammar

    def factor(self, grammar: Grammar) -> Grammar:
        """Hoist common leading, then trailing, items out of every choice."""
        return grammar.map_expressions(
            lambda production: rewrite(production.expression, _factor_node)
        )

    def inline_literals(self, grammar: Grammar) -> Grammar:
        """Replace references to single-literal productions by the literal."""
        literals = {}
        for production in grammar:
            body = strip_groups(production.expression)
            if isinstance(body, LITERAL_TYPES):
                literals[production.name] = body
        if not literals:
            return grammar

        def inline(expr: Expression) -> Expression:
            if isinstance(expr, NonterminalRef) and expr.name in literals:
                return literals[expr.name]
            return expr

        return grammar.map_expressions(
            lambda production: rewrite(production.expression, inline)
        )

    def remove_epsilon_references(self, grammar: Grammar) -> Grammar:
        """Drop references to productions that derive only the empty string."""
        epsilon_only = GrammarGraph(grammar).epsilon_only()
        if not epsilon_only:
            return grammar

        def drop(expr: Expression) -> Expression:
            if isinstance(expr, NonterminalRef) and expr.name in epsilon_only:
                return Epsilon()
            return expr

        return grammar.map_expressions(
            lambda production: rewrite(production.expression, drop)
        )


def _changed_names(before: Grammar, after: Grammar) -> List[str]:
    return [
        p.name
        for p in after
        if before.get(p.name) is None or before[p.name].expression != p.expression
    ]


def _eliminate_direct_recursion(name: str, expr: Expression) -> Expression:
    body = strip_groups(expr)
    alternatives = body.alternatives if isinstance(body, Choice) else (body,)
    self_ref = NonterminalRef(name)

    heads: List[Expression] = []
    tails: List[Expression] = []
    bases: List[Expression] = []
    recursive = False

    for alternative in alternatives:
        items = sequence_items(alternative)
        first = strip_groups(items[0]) if items else None
        last = strip_groups(items[-1]) if items else None

        if len(items) == 1 and first == self_ref:
            # P ::= P adds nothing to the language
            recursive = True
        elif len(items) > 1 and first == self_ref:
            tails.append(make_sequence(items[1:]))
            recursive = True
        elif len(items) > 1 and last == self_ref:
            heads.append(make_sequence(items[:-1]))
            recursive = True
        else:
            bases.append(alternative)

    if not recursive or not bases:
        return expr

    parts: List[Expression] = []
    if heads:
        parts.append(make_repetition(make_choice(heads), 0, None))
    parts.append(make_choice(bases))
    if tails:
        parts.append(make_repetition(make_choice(tails), 0, None))
    return make_sequence(parts)


def _factor_node(expr: Expression) -> Expression:
    if isinstance(expr, Group):
        return expr.child
    if isinstance(expr, Choice):
        return _factor_choice(expr.alternatives)
    return expr


def _factor_choice(alternatives: Seq[Expression]) -> Expression:
    left_factored = _factor_side(list(alternatives), leading=True)
    right_factored = _factor_side(left_factored, leading=False)
    return make_choice(right_factored)


def _factor_side(alternatives: List[Expression], leading: bool) -> List[Expression]:
    """
    Merge alternatives that share their first (or last) item.

    Each set of alternatives with an equal first item is replaced, at the
    position of its first member, by common-prefix followed by the choice of
    the remaining suffixes. With leading=False the same is done for trailing
    items.
    """
    items = [sequence_items(alt) for alt in alternatives]
    edge = 0 if leading else -1
    used = set()
    result: List[Expression] = []

    for i, alternative in enumerate(alternatives):
        if i in used:
            continue
        used.add(i)
        if not items[i]:
            result.append(alternative)
            continue

        members = [i] + [
            j
            for j in range(i + 1, len(alternatives))
            if j not in used and items[j] and items[j][edge] == items[i][edge]
        ]
        if len(members) == 1:
            result.append(alternative)
            continue

        used.update(members)
        group = [items[j] for j in members]
        if leading:
            common = _common_prefix(group)
            rests = [make_sequence(g[len(common):]) for g in group]
            result.append(make_sequence(common + [_factor_choice(rests)]))
        else:
            common = _common_prefix([list(reversed(g)) for g in group])[::-1]
            rests = [make_sequence(g[: len(g) - len(common)]) for g in group]
            result.append(make_sequence([_factor_choice(rests)] + common))

    return result


def _common_prefix(sequences: List[List[Expression]]) -> List[Expression]:
    prefix: List[Expression] = []
    for column in zip(*sequences):
        if all(item == column[0] for item in column):
            prefix.append(column[0])
        else:
            break
    return prefix
