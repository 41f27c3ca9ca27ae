"""
Query composition module.

Turns the analyzed title of a topic into the multi-field query issued to the index:

- FieldQueryBuilder: one field's query (terms + synonyms, plus a proximity group)
- QueryComposer: title-field and body-field queries joined by OR

The description terms are analyzed alongside the title but do not enter the query.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .data import AnalyzedTopic
from .errors import CompositionError, ConfigurationError, RetrievalError
from .proximity import ProximityQueryBuilder
from .query import Disjunction, Field, PairingPolicy, QueryNode, TermGroup
from .strategies import QueryProfile
from .synonyms import SynonymExpander


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComposeResult:
    """Either a composed query or the error that prevented composing it."""
    topic_id: str
    query: Optional[QueryNode] = None
    error: Optional[RetrievalError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> QueryNode:
        """Return the query, raising the stored error if composition failed."""
        if self.error is not None:
            raise self.error
        return self.query


class FieldQueryBuilder:
    """Builds the weighted query for a single field."""

    def __init__(
        self,
        expander: SynonymExpander,
        proximity_builder: Optional[ProximityQueryBuilder] = None,
        analyzer: Optional[Any] = None,
    ) -> None:
        """Initializes the builder.

        Args:
            expander: Synonym source
            proximity_builder: Builder of the proximity part, a default one if None
            analyzer: Analyzer applied to every synonym form so it lines up with indexed
                terms; synonyms are emitted as looked up when None
        """
        self.expander = expander
        self.proximity_builder = proximity_builder or ProximityQueryBuilder()
        self.analyzer = analyzer

    def synonym_terms(self, term: str) -> List[str]:
        """Index terms contributed by the synonyms of one query term.

        Each synonym form goes through the analyzer: a form such as "e-cigarette"
        contributes all of its tokens, a form made only of stopwords contributes nothing.
        """
        terms: List[str] = []
        for synonym in sorted(self.expander.lookup(term)):
            if self.analyzer is None:
                terms.append(synonym)
            else:
                terms.extend(self.analyzer.analyze(synonym))
        return terms

    def build(
        self,
        terms: Sequence[str],
        field: Field,
        synonym_boost: float,
        field_boost: float,
        proximity_boost: float,
        proximity_distance: int,
        proximity_policy: PairingPolicy = PairingPolicy.ALL_PAIRS,
    ) -> Optional[QueryNode]:
        """Build one field's query.

        Args:
            terms: Ordered, analyzed query terms (must not be empty)
            field: Target field
            synonym_boost: Boost of each synonym; 0 disables expansion
            field_boost: Boost of the whole term group; 0 omits it
            proximity_boost: Boost of the proximity group; 0 omits it
            proximity_distance: Maximum token distance of proximity clauses
            proximity_policy: Pairing policy of proximity clauses

        Returns:
            Optional[QueryNode]: A TermGroup, or a Disjunction of TermGroup and ProximityGroup;
                None when both the field boost and the proximity boost are 0

        Raises:
            ConfigurationError: When terms is empty
            CompositionError: When a term is empty or contains whitespace, or a boost is negative
        """
        if not terms:
            raise ConfigurationError(f"Cannot build a {field.value} query from an empty term list")

        for term in terms:
            if not term or any(ch.isspace() for ch in term):
                raise CompositionError(f"Malformed query term: {term!r}")

        if synonym_boost < 0:
            raise CompositionError(f"Synonym boost must be non-negative, but got: {synonym_boost}")

        weighted = []
        for term in terms:
            weighted.append((term, 1.0))
            if synonym_boost != 0:
                weighted.extend((synonym, synonym_boost) for synonym in self.synonym_terms(term))

        term_group = None
        if field_boost != 0:
            term_group = TermGroup(field=field, terms=tuple(weighted), boost=field_boost)

        proximity_group = None
        if proximity_boost != 0:
            proximity_group = self.proximity_builder.build(
                terms, field, proximity_distance, proximity_boost, proximity_policy
            )

        if proximity_group is None:
            return term_group
        if term_group is None:
            return proximity_group
        return Disjunction(children=(term_group, proximity_group))


class QueryComposer:
    """Combines the title-field and body-field queries of a topic."""

    def __init__(self, field_builder: FieldQueryBuilder) -> None:
        self.field_builder = field_builder

    def compose(self, topic: AnalyzedTopic, profile: QueryProfile) -> QueryNode:
        """Compose the query for a topic under a query profile.

        The title terms are searched on both fields: the title field with the
        profile's title boost, the body field with boost 1.0.

        Raises:
            CompositionError: When the topic has no title terms
        """
        if not topic.title_terms:
            raise CompositionError("Topic title is empty after analysis", topic_id=topic.topic_id)

        field_queries: List[QueryNode] = []
        for field, field_boost in ((Field.TITLE, profile.title_boost), (Field.BODY, 1.0)):
            field_query = self.field_builder.build(
                topic.title_terms,
                field,
                synonym_boost=profile.synonym_boost,
                field_boost=field_boost,
                proximity_boost=profile.proximity_boost,
                proximity_distance=profile.proximity_distance,
                proximity_policy=profile.proximity_policy,
            )
            if field_query is not None:
                field_queries.append(field_query)

        query = Disjunction(children=tuple(field_queries))
        logger.debug(f"Topic {topic.topic_id} [{profile.name}/{profile.proximity_policy.value}]: {query.render()}")
        return query

    def try_compose(self, topic: AnalyzedTopic, profile: QueryProfile) -> ComposeResult:
        """Like compose(), but returns the error instead of raising it."""
        try:
            return ComposeResult(topic_id=topic.topic_id, query=self.compose(topic, profile))
        except RetrievalError as e:
            if isinstance(e, CompositionError) and e.topic_id is None:
                e.topic_id = topic.topic_id
            return ComposeResult(topic_id=topic.topic_id, error=e)
