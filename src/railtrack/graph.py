"""
Reference graph module for railtrack.

Builds a networkx directed graph with one node per production and an edge for
every nonterminal reference, and answers the questions the rest of the
pipeline asks about it:
- Which referenced names are never defined (resolution)
- Who references whom (cross-reference lists in the document)
- Which productions are directly or mutually recursive
- Which productions derive only the empty string
"""

from typing import Callable, List, Set

import networkx as nx

from .errors import UnresolvedReferenceError
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
    Repetition,
    Sequence,
    Terminal,
    references,
)


class GrammarGraph:
    """Directed graph of references between productions."""

    def __init__(self, grammar: Grammar):
        self.grammar = grammar
        self.graph = nx.DiGraph()

        for production in grammar:
            self.graph.add_node(production.name, defined=True)

        for production in grammar:
            for name in references(production.expression):
                if name not in self.graph:
                    self.graph.add_node(name, defined=False)
                self.graph.add_edge(production.name, name)

    def undefined_names(self) -> List[str]:
        """Referenced but undefined names, in order of first appearance."""
        undefined: List[str] = []
        for production in self.grammar:
            for name in references(production.expression):
                if not self.graph.nodes[name]["defined"] and name not in undefined:
                    undefined.append(name)
        return undefined

    def references(self, name: str) -> List[str]:
        """Names referenced by production `name`, in order of appearance."""
        return references(self.grammar[name].expression)

    def referenced_by(self, name: str) -> List[str]:
        """Productions that reference `name`, in grammar order."""
        if name not in self.graph:
            return []
        return [
            p.name for p in self.grammar if self.graph.has_edge(p.name, name)
        ]

    def is_self_recursive(self, name: str) -> bool:
        return self.graph.has_edge(name, name)

    def recursive_groups(self) -> List[List[str]]:
        """
        Groups of mutually recursive productions.

        Returns:
            Strongly connected components with more than one production,
            each listed in grammar order.
        """
        order = {name: i for i, name in enumerate(self.grammar.names)}
        groups = [
            sorted(component, key=order.__getitem__)
            for component in nx.strongly_connected_components(self._defined_graph())
            if len(component) > 1
        ]
        return sorted(groups, key=lambda group: order[group[0]])

    def epsilon_only(self) -> Set[str]:
        """
        Productions whose language is exactly the empty string.

        A production qualifies when it can derive the empty string but no
        non-empty string. Productions with an empty language (e.g. P ::= P)
        do not qualify.
        """
        productive = self._least_fixpoint(_productive)
        nullable = self._least_fixpoint(_nullable)
        nonempty = self._least_fixpoint(
            lambda expr, known: _nonempty(expr, known, productive)
        )
        return {name for name in nullable if name not in nonempty}

    def _defined_graph(self) -> nx.DiGraph:
        defined = [n for n, data in self.graph.nodes(data=True) if data["defined"]]
        return self.graph.subgraph(defined)

    def _least_fixpoint(
        self, predicate: Callable[[Expression, Set[str]], bool]
    ) -> Set[str]:
        """
        Smallest set of productions closed under `predicate`.

        Components of the condensation are visited dependencies first, so
        each one only iterates until its own members stop changing.
        """
        condensed = nx.condensation(self._defined_graph())
        order = reversed(list(nx.topological_sort(condensed)))
        result: Set[str] = set()

        for component in order:
            members = condensed.nodes[component]["members"]
            changed = True
            while changed:
                changed = False
                for name in members:
                    if name in result:
                        continue
                    if predicate(self.grammar[name].expression, result):
                        result.add(name)
                        changed = True

        return result


def _nullable(expr: Expression, known: Set[str]) -> bool:
    if isinstance(expr, (Epsilon, Comment, Optional)):
        return True
    if isinstance(expr, (Terminal, CharClass, CharCode)):
        return False
    if isinstance(expr, NonterminalRef):
        return expr.name in known
    if isinstance(expr, Sequence):
        return all(_nullable(c, known) for c in expr.children)
    if isinstance(expr, Choice):
        return any(_nullable(a, known) for a in expr.alternatives)
    if isinstance(expr, Repetition):
        return expr.minimum == 0 or _nullable(expr.child, known)
    if isinstance(expr, Group):
        return _nullable(expr.child, known)
    raise TypeError(f"Not an expression: {expr!r}")


def _productive(expr: Expression, known: Set[str]) -> bool:
    if isinstance(expr, (Epsilon, Comment, Optional, Terminal, CharClass, CharCode)):
        return True
    if isinstance(expr, NonterminalRef):
        return expr.name in known
    if isinstance(expr, Sequence):
        return all(_productive(c, known) for c in expr.children)
    if isinstance(expr, Choice):
        return any(_productive(a, known) for a in expr.alternatives)
    if isinstance(expr, Repetition):
        return expr.minimum == 0 or _productive(expr.child, known)
    if isinstance(expr, Group):
        return _productive(expr.child, known)
    raise TypeError(f"Not an expression: {expr!r}")


def _nonempty(expr: Expression, known: Set[str], productive: Set[str]) -> bool:
    """True if expr derives at least one non-empty string."""
    if isinstance(expr, (Epsilon, Comment)):
        return False
    if isinstance(expr, (Terminal, CharClass, CharCode)):
        return True
    if isinstance(expr, NonterminalRef):
        return expr.name in known
    if isinstance(expr, Sequence):
        return all(_productive(c, productive) for c in expr.children) and any(
            _nonempty(c, known, productive) for c in expr.children
        )
    if isinstance(expr, Choice):
        return any(_nonempty(a, known, productive) for a in expr.alternatives)
    if isinstance(expr, Optional):
        return _nonempty(expr.child, known, productive)
    if isinstance(expr, Repetition):
        if expr.maximum == 0:
            return False
        return _nonempty(expr.child, known, productive)
    if isinstance(expr, Group):
        return _nonempty(expr.child, known, productive)
    raise TypeError(f"Not an expression: {expr!r}")


def create_grammar_graph(grammar: Grammar) -> GrammarGraph:
    """
    Create the reference graph of a grammar.

    Args:
        grammar: Parsed grammar.

    Returns:
        GrammarGraph over the grammar's productions.
    """
    return GrammarGraph(grammar)


def resolve_references(grammar: Grammar) -> GrammarGraph:
    """
    Check that every referenced nonterminal is defined.

    Args:
        grammar: Parsed grammar.

    Returns:
        The grammar's reference graph.

    Raises:
        UnresolvedReferenceError: Listing every undefined name at once.
    """
    graph = create_grammar_graph(grammar)
    undefined = graph.undefined_names()
    if undefined:
        raise UnresolvedReferenceError(undefined)
    return graph
