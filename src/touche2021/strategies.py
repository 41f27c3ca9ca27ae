"""
Retrieval strategy profiles.

A strategy is a fixed bundle of query-shaping constants plus the similarity used
for the primary pass and, for the two-phase strategies, the query and similarity
used to rescore the primary candidates. The constants were tuned separately per
profile on the Touché 2021 task 1 qrels.
"""
from dataclasses import dataclass, replace
from enum import Enum
import itertools
from typing import Dict, Iterator, Mapping, Optional, Sequence

from .errors import ConfigurationError
from .query import PairingPolicy


class SimilarityKind(str, Enum):
    """Scoring functions a strategy can ask the index for."""
    PROBABILISTIC = "bm25"
    LANGUAGE_MODEL = "lm_dirichlet"
    BLENDED = "bm25+lm_dirichlet"


@dataclass(frozen=True)
class QueryProfile:
    """Query-shaping constants shared by the title and body field queries."""
    name: str
    title_boost: float
    synonym_boost: float
    proximity_boost: float
    proximity_distance: int
    proximity_policy: PairingPolicy = PairingPolicy.ALL_PAIRS

    def with_policy(self, policy: PairingPolicy) -> "QueryProfile":
        return replace(self, proximity_policy=policy)


BASELINE = QueryProfile(
    name="baseline",
    title_boost=1.0,
    synonym_boost=0.0,
    proximity_boost=0.0,
    proximity_distance=0,
)

RECALL_MAXIMIZER = QueryProfile(
    name="recall",
    title_boost=0.3,
    synonym_boost=0.20,
    proximity_boost=0.75,
    proximity_distance=12,
)

NDCG_MAXIMIZER = QueryProfile(
    name="ndcg",
    title_boost=0.15,
    synonym_boost=0.05,
    proximity_boost=0.75,
    proximity_distance=17,
)


@dataclass(frozen=True)
class StrategyProfile:
    """A named retrieval strategy.

    Attributes:
        strategy_id: Numeric id used on the command line and in run ids
        name: Human readable name
        query: Profile of the query issued in the primary pass
        primary_similarity: Similarity active during the primary pass
        rescore_query: Profile of the query every candidate is rescored against, if any
        rescore_similarity: Similarity active during the rescore pass, if any
    """
    strategy_id: int
    name: str
    query: QueryProfile
    primary_similarity: SimilarityKind
    rescore_query: Optional[QueryProfile] = None
    rescore_similarity: Optional[SimilarityKind] = None

    def __post_init__(self) -> None:
        if (self.rescore_query is None) != (self.rescore_similarity is None):
            raise ConfigurationError(
                f"Strategy {self.strategy_id} must set both rescore_query and rescore_similarity, or neither"
            )

    @property
    def has_rescore(self) -> bool:
        return self.rescore_query is not None

    @property
    def title_boost(self) -> float:
        return self.query.title_boost

    @property
    def synonym_boost(self) -> float:
        return self.query.synonym_boost

    @property
    def proximity_boost(self) -> float:
        return self.query.proximity_boost

    @property
    def proximity_distance(self) -> int:
        return self.query.proximity_distance

    @property
    def proximity_policy(self) -> PairingPolicy:
        return self.query.proximity_policy


STRATEGIES: Dict[int, StrategyProfile] = {
    0: StrategyProfile(
        strategy_id=0,
        name="baseline",
        query=BASELINE,
        primary_similarity=SimilarityKind.PROBABILISTIC,
    ),
    1: StrategyProfile(
        strategy_id=1,
        name="hybrid-rerank",
        query=RECALL_MAXIMIZER,
        primary_similarity=SimilarityKind.BLENDED,
        rescore_query=NDCG_MAXIMIZER,
        rescore_similarity=SimilarityKind.LANGUAGE_MODEL,
    ),
    2: StrategyProfile(
        strategy_id=2,
        name="hybrid-rerank-adjacent",
        query=RECALL_MAXIMIZER.with_policy(PairingPolicy.ADJACENT_PAIRS),
        primary_similarity=SimilarityKind.BLENDED,
        rescore_query=NDCG_MAXIMIZER.with_policy(PairingPolicy.ADJACENT_PAIRS),
        rescore_similarity=SimilarityKind.LANGUAGE_MODEL,
    ),
    3: StrategyProfile(
        strategy_id=3,
        name="ndcg-lm",
        query=NDCG_MAXIMIZER,
        primary_similarity=SimilarityKind.LANGUAGE_MODEL,
    ),
    4: StrategyProfile(
        strategy_id=4,
        name="ndcg-blended",
        query=NDCG_MAXIMIZER,
        primary_similarity=SimilarityKind.BLENDED,
    ),
    5: StrategyProfile(
        strategy_id=5,
        name="recall-blended",
        query=RECALL_MAXIMIZER,
        primary_similarity=SimilarityKind.BLENDED,
    ),
}


def get_strategy(strategy_id: int) -> StrategyProfile:
    """Look up a strategy by id.

    Raises:
        ConfigurationError: When the id is not one of the known strategies
    """
    try:
        return STRATEGIES[int(strategy_id)]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Unknown strategy id: {strategy_id!r}; expected one of {sorted(STRATEGIES)}"
        ) from e


SWEEP_GRID: Dict[str, Sequence[float]] = {
    "title_boost": (0.0, 0.15, 0.3, 3.5, 5.0),
    "synonym_boost": (0.0, 0.05, 0.1, 0.15, 0.20, 0.25),
    "proximity_boost": (0.75, 1.0, 1.25, 1.75),
    "proximity_distance": (12, 15, 17),
}

_SIMILARITY_TAGS = {
    SimilarityKind.PROBABILISTIC: "BM25",
    SimilarityKind.LANGUAGE_MODEL: "LMD",
    SimilarityKind.BLENDED: "MULTI",
}


def sweep_run_id(profile: QueryProfile, similarity: SimilarityKind) -> str:
    """Run id of one sweep point, e.g. shanks-MULTI-BT(0.30)-EXP-BS(0.20)-BP(0.75)-DP(12).

    Parameters left at their neutral value (title boost 1, synonym or proximity
    boost 0) are omitted.
    """
    run_id = f"shanks-{_SIMILARITY_TAGS[SimilarityKind(similarity)]}"
    if profile.title_boost != 1:
        run_id += f"-BT({profile.title_boost:.2f})"
    if profile.synonym_boost != 0:
        run_id += f"-EXP-BS({profile.synonym_boost:.2f})"
    if profile.proximity_boost != 0:
        run_id += f"-BP({profile.proximity_boost:.2f})-DP({profile.proximity_distance:d})"
    return run_id


def sweep_profiles(grid: Optional[Mapping[str, Sequence[float]]] = None) -> Iterator[QueryProfile]:
    """Yield one ad-hoc QueryProfile per point of a parameter grid.

    Args:
        grid: Values per QueryProfile field (title_boost, synonym_boost, proximity_boost,
            proximity_distance); SWEEP_GRID when None. A missing key falls back to the
            SWEEP_GRID values.

    Raises:
        ConfigurationError: On an unknown key or an empty value list
    """
    grid = dict(grid or {})
    unknown = set(grid) - set(SWEEP_GRID)
    if unknown:
        raise ConfigurationError(f"Unknown sweep parameters: {sorted(unknown)}")
    axes = [tuple(grid.get(key, SWEEP_GRID[key])) for key in SWEEP_GRID]
    for key, values in zip(SWEEP_GRID, axes):
        if not values:
            raise ConfigurationError(f"Sweep parameter {key} has no values")

    seen = set()
    for title_boost, synonym_boost, proximity_boost, distance in itertools.product(*axes):
        # The distance is irrelevant without proximity clauses
        if proximity_boost == 0:
            distance = 0
        key = (title_boost, synonym_boost, proximity_boost, distance)
        if key in seen:
            continue
        seen.add(key)
        yield QueryProfile(
            name="sweep",
            title_boost=float(title_boost),
            synonym_boost=float(synonym_boost),
            proximity_boost=float(proximity_boost),
            proximity_distance=int(distance),
        )


def sweep_strategy(profile: QueryProfile, similarity: SimilarityKind = SimilarityKind.BLENDED) -> StrategyProfile:
    """Single-phase strategy searching with one sweep profile."""
    return StrategyProfile(
        strategy_id=-1,
        name=sweep_run_id(profile, similarity),
        query=profile,
        primary_similarity=SimilarityKind(similarity),
    )
