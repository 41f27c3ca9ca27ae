"""
Retrieval orchestration module.

Runs one strategy over a set of topics:

1. compose the primary query and retrieve the top K candidates under the primary similarity
2. for two-phase strategies, switch the index to the rescore similarity and replace every
   candidate's score with its score under the rescore query, then re-sort
3. truncate to K, assign ranks and hand the ranking to the run writer

Exposed:
- ScoredDocument, RankedList: per-topic result types
- RetrievalOrchestrator: the driver
"""
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from tqdm import tqdm

from .compose import QueryComposer
from .config import ERROR_POLICIES
from .data import AnalyzedTopic, Topic
from .errors import CollaboratorIOError, ConfigurationError, RetrievalError
from .strategies import SimilarityKind, StrategyProfile, get_strategy


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredDocument:
    """One line of a ranking."""
    doc_id: str
    score: float
    rank: int


@dataclass
class RankedList:
    """Ranking produced for a single topic.

    Attributes:
        topic_id: Topic identifier
        documents: Documents in non-increasing score order, unique ids
    """
    topic_id: str
    documents: List[ScoredDocument] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen = set()
        previous = None
        for doc in self.documents:
            if doc.doc_id in seen:
                raise ValueError(f"Duplicate document {doc.doc_id} in ranking of topic {self.topic_id}")
            seen.add(doc.doc_id)
            if previous is not None and doc.score > previous:
                raise ValueError(f"Ranking of topic {self.topic_id} is not sorted by descending score")
            previous = doc.score

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self):
        return iter(self.documents)

    def as_pairs(self) -> List[Tuple[str, float]]:
        """(doc_id, score) pairs, as expected by evaluate_runs."""
        return [(doc.doc_id, doc.score) for doc in self.documents]


class RetrievalOrchestrator:
    """Drives retrieval (and optional rescoring) of topics against an index.

    Attributes:
        index: A SearchIndex implementation
        composer: QueryComposer turning analyzed topics into query trees
        analyzer: Analyzer applied to raw topics
        similarities: Mapping from SimilarityKind to a similarity instance
        max_docs: Number of documents retrieved and emitted per topic (K)
        rank_start: Rank of the first document of each ranking
        error_policy: "abort" or "skip" for topics whose query cannot be built
        topics_searched: Topics that produced a ranking in the last run()
        topics_failed: Topics skipped in the last run()
        elapsed_seconds: Wall time of the last run()
    """

    def __init__(
        self,
        index: Any,
        composer: QueryComposer,
        analyzer: Any,
        similarities: Mapping[SimilarityKind, Any],
        max_docs: int,
        rank_start: int = 0,
        error_policy: str = "abort",
    ) -> None:
        if max_docs <= 0:
            raise ConfigurationError(f"max_docs must be a positive number, but got: {max_docs}")
        if error_policy not in ERROR_POLICIES:
            raise ConfigurationError(f"error_policy must be one of {ERROR_POLICIES}, but got: {error_policy}")

        self.index = index
        self.composer = composer
        self.analyzer = analyzer
        self.similarities = dict(similarities)
        self.max_docs = max_docs
        self.rank_start = rank_start
        self.error_policy = error_policy

        self.topics_searched = 0
        self.topics_failed = 0
        self.elapsed_seconds = 0.0

    def _similarity(self, kind: SimilarityKind) -> Any:
        try:
            return self.similarities[kind]
        except KeyError as e:
            raise ConfigurationError(f"No similarity configured for {kind.value}") from e

    def _analyze(self, topic: Union[Topic, AnalyzedTopic]) -> AnalyzedTopic:
        if isinstance(topic, AnalyzedTopic):
            return topic
        return self.analyzer.analyze_topic(topic)

    def run_topic(self, topic: Union[Topic, AnalyzedTopic], strategy: Union[int, StrategyProfile]) -> RankedList:
        """Retrieve the ranking of one topic.

        Args:
            topic: Raw or already analyzed topic
            strategy: Strategy id or profile

        Returns:
            RankedList: At most max_docs documents, best first

        Raises:
            ConfigurationError: Unknown strategy or missing similarity
            CompositionError: When the query of the topic cannot be built
            CollaboratorIOError: When the index fails
        """
        profile = strategy if isinstance(strategy, StrategyProfile) else get_strategy(strategy)
        analyzed = self._analyze(topic)

        primary_query = self.composer.try_compose(analyzed, profile.query).unwrap()
        rescore_query = None
        if profile.has_rescore:
            rescore_query = self.composer.try_compose(analyzed, profile.rescore_query).unwrap()

        self.index.set_similarity(self._similarity(profile.primary_similarity))
        hits = self.index.search(primary_query, self.max_docs)
        logger.debug(f"Topic {analyzed.topic_id}: {len(hits)} candidates from primary pass")

        if rescore_query is not None:
            self.index.set_similarity(self._similarity(profile.rescore_similarity))
            rescored = [(doc, self.index.rescore(rescore_query, doc)) for doc, _ in hits]
            # Stable sort: equal scores keep their primary order
            hits = sorted(rescored, key=lambda hit: hit[1], reverse=True)

        hits = hits[:self.max_docs]
        documents = [
            ScoredDocument(doc_id=self.index.fetch_stored_id(doc), score=float(score), rank=self.rank_start + i)
            for i, (doc, score) in enumerate(hits)
        ]
        return RankedList(topic_id=analyzed.topic_id, documents=documents)

    def run(
        self,
        topics: Iterable[Union[Topic, AnalyzedTopic]],
        strategy: Union[int, StrategyProfile],
        writer: Optional[Any] = None,
    ) -> Dict[str, RankedList]:
        """Run a strategy over all topics, in order.

        Each ranking is written as soon as it is produced. Under the "skip" policy a
        topic whose query cannot be built is logged and left out of the output.

        Args:
            topics: Topics to search
            strategy: Strategy id or profile
            writer: Optional TrecRunWriter

        Returns:
            Dict[str, RankedList]: Rankings by topic id
        """
        profile = strategy if isinstance(strategy, StrategyProfile) else get_strategy(strategy)
        topics = list(topics)
        logger.info(f"Searching {len(topics)} topics with strategy {profile.strategy_id} ({profile.name})")

        self.topics_searched = 0
        self.topics_failed = 0
        start_time = time.time()
        runs: Dict[str, RankedList] = {}

        for topic in tqdm(topics, desc=f"Strategy {profile.name}"):
            try:
                ranking = self.run_topic(topic, profile)
            except CollaboratorIOError:
                raise
            except RetrievalError as e:
                if self.error_policy == "abort":
                    logger.error(f"Topic {topic.topic_id} failed: {e}")
                    raise
                logger.warning(f"Skipping topic {topic.topic_id}: {e}")
                self.topics_failed += 1
                continue

            if writer is not None:
                writer.write(ranking)
            runs[ranking.topic_id] = ranking
            self.topics_searched += 1

        self.elapsed_seconds = time.time() - start_time
        logger.info(
            f"Searched {self.topics_searched} topics ({self.topics_failed} failed) "
            f"in {self.elapsed_seconds:.2f} seconds"
        )
        return runs
