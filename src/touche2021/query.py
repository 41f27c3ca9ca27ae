"""
Weighted query tree.

Queries are immutable trees of three node kinds:

- TermGroup: disjunction of boosted single terms on one field, boosted as a whole
- ProximityGroup: disjunction of pairwise proximity clauses on one field, boosted as a whole
- Disjunction: OR of sibling nodes, each with its own weight

Nodes compare structurally, so composing the same topic twice yields equal trees.
render() produces Lucene classic query syntax, which is what gets logged.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Tuple, Union

from .errors import CompositionError


class Field(str, Enum):
    """Document fields a query node can target."""
    TITLE = "title"
    BODY = "body"


class PairingPolicy(str, Enum):
    """How proximity clauses pair up the query terms."""
    ALL_PAIRS = "all_pairs"
    ADJACENT_PAIRS = "adjacent_pairs"


# Characters escaped by Lucene's QueryParserBase.escape
_LUCENE_SPECIAL = set('\\+-!():^[]"{}~*?|&/')


def escape(term: str) -> str:
    """Escape Lucene query-syntax special characters in a term."""
    return "".join("\\" + ch if ch in _LUCENE_SPECIAL else ch for ch in term)


def _format_boost(boost: float) -> str:
    return f"{boost:g}"


def _check_boost(boost: float, what: str) -> None:
    if boost < 0:
        raise CompositionError(f"{what} boost must be non-negative, but got: {boost}")


@dataclass(frozen=True)
class TermGroup:
    """Boosted single terms (literal terms and synonyms) searched on one field."""
    field: Field
    terms: Tuple[Tuple[str, float], ...]
    boost: float = 1.0

    def __post_init__(self) -> None:
        _check_boost(self.boost, "Term group")
        for term, boost in self.terms:
            _check_boost(boost, f"Term '{term}'")

    def render(self) -> str:
        clauses = []
        for term, boost in self.terms:
            clause = f"{self.field.value}:{escape(term)}"
            if boost != 1.0:
                clause += f"^{_format_boost(boost)}"
            clauses.append(clause)
        return f"({' '.join(clauses)})^{_format_boost(self.boost)}"


@dataclass(frozen=True)
class ProximityGroup:
    """Pairwise proximity clauses on one field; the boost applies to the whole group."""
    field: Field
    pairs: Tuple[Tuple[str, str, int], ...]
    boost: float

    def __post_init__(self) -> None:
        _check_boost(self.boost, "Proximity group")
        for term_a, term_b, distance in self.pairs:
            if distance < 0:
                raise CompositionError(f"Proximity distance must be non-negative, but got: {distance}")

    def render(self) -> str:
        clauses = [
            f'{self.field.value}:"{escape(a)} {escape(b)}"~{distance}'
            for a, b, distance in self.pairs
        ]
        return f"({' '.join(clauses)})^{_format_boost(self.boost)}"


@dataclass(frozen=True)
class Disjunction:
    """OR of child nodes; weights[i] multiplies the score of children[i]."""
    children: Tuple["QueryNode", ...]
    weights: Tuple[float, ...] = ()

    def __post_init__(self) -> None:
        if not self.weights:
            object.__setattr__(self, "weights", tuple(1.0 for _ in self.children))
        if len(self.weights) != len(self.children):
            raise CompositionError(
                f"Disjunction has {len(self.children)} children but {len(self.weights)} weights"
            )
        for weight in self.weights:
            _check_boost(weight, "Disjunction child")

    def render(self) -> str:
        parts = []
        for child, weight in zip(self.children, self.weights):
            rendered = child.render()
            if isinstance(child, Disjunction):
                rendered = f"({rendered})"
            if weight != 1.0:
                rendered = f"({rendered})^{_format_boost(weight)}"
            parts.append(rendered)
        return " ".join(parts)


QueryNode = Union[TermGroup, ProximityGroup, Disjunction]


def iter_nodes(node: QueryNode) -> Iterator[QueryNode]:
    """Walk a query tree depth-first, parents before children."""
    yield node
    if isinstance(node, Disjunction):
        for child in node.children:
            yield from iter_nodes(child)
