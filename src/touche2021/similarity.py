"""
Similarity functions.

Python renditions of the three scoring functions the strategies use, following
the Lucene formulas so the memory index ranks the way a Lucene index does:

- BM25Similarity: probabilistic relevance (Lucene's BM25, without the (k1 + 1) factor)
- LMDirichletSimilarity: query likelihood with Dirichlet smoothing, clamped at 0
- BlendedSimilarity: sum of its components (Lucene's MultiSimilarity)

Each similarity also knows how to build its Lucene counterpart through pyserini's
JVM bridge, which is what the Lucene index installs on its searcher.
"""
import math
import logging
from dataclasses import dataclass
from typing import Any, Sequence

from .config import Config
from .errors import ConfigurationError
from .strategies import SimilarityKind


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TermStatistics:
    """Statistics needed to score one term (or proximity clause) in one document.

    Attributes:
        freq: Within-document frequency; fractional for sloppy proximity matches
        doc_length: Number of tokens of the field in the document
        avg_doc_length: Average field length over the collection
        doc_count: Number of documents with the field
        doc_freq: Number of documents containing the term
        total_term_freq: Occurrences of the term in the whole collection
        sum_total_term_freq: Total number of tokens of the field in the collection
    """
    freq: float
    doc_length: int
    avg_doc_length: float
    doc_count: int
    doc_freq: int
    total_term_freq: int
    sum_total_term_freq: int


class BM25Similarity:
    """BM25 with Lucene's idf and length normalization."""

    kind = SimilarityKind.PROBABILISTIC

    def __init__(self, k1: float = 1.2, b: float = 0.75) -> None:
        if k1 < 0:
            raise ConfigurationError(f"BM25 k1 must be non-negative, but got: {k1}")
        if not 0 <= b <= 1:
            raise ConfigurationError(f"BM25 b must be in [0, 1], but got: {b}")
        self.k1 = k1
        self.b = b

    def idf(self, doc_freq: int, doc_count: int) -> float:
        return math.log(1 + (doc_count - doc_freq + 0.5) / (doc_freq + 0.5))

    def score(self, stats: TermStatistics) -> float:
        if stats.freq <= 0:
            return 0.0
        avgdl = stats.avg_doc_length or 1.0
        norm = self.k1 * (1 - self.b + self.b * stats.doc_length / avgdl)
        return self.idf(stats.doc_freq, stats.doc_count) * stats.freq / (stats.freq + norm)

    def to_lucene(self) -> Any:
        from pyserini.pyclass import autoclass

        JBM25Similarity = autoclass("org.apache.lucene.search.similarities.BM25Similarity")
        return JBM25Similarity(float(self.k1), float(self.b))

    def __repr__(self) -> str:
        return f"BM25Similarity(k1={self.k1}, b={self.b})"


class LMDirichletSimilarity:
    """Dirichlet-smoothed language model, as scored by Lucene."""

    kind = SimilarityKind.LANGUAGE_MODEL

    def __init__(self, mu: float = 2000.0) -> None:
        if mu <= 0:
            raise ConfigurationError(f"Dirichlet mu must be positive, but got: {mu}")
        self.mu = mu

    def score(self, stats: TermStatistics) -> float:
        if stats.freq <= 0:
            return 0.0
        # Add-one smoothed collection probability
        p_collection = (stats.total_term_freq + 1) / (stats.sum_total_term_freq + 1)
        value = (
            math.log(1 + stats.freq / (self.mu * p_collection))
            + math.log(self.mu / (stats.doc_length + self.mu))
        )
        return max(0.0, value)

    def to_lucene(self) -> Any:
        from pyserini.pyclass import autoclass

        JLMDirichletSimilarity = autoclass("org.apache.lucene.search.similarities.LMDirichletSimilarity")
        return JLMDirichletSimilarity(float(self.mu))

    def __repr__(self) -> str:
        return f"LMDirichletSimilarity(mu={self.mu})"


class BlendedSimilarity:
    """Sum of several similarities."""

    kind = SimilarityKind.BLENDED

    def __init__(self, components: Sequence[Any]) -> None:
        if not components:
            raise ConfigurationError("A blended similarity needs at least one component")
        self.components = tuple(components)

    def score(self, stats: TermStatistics) -> float:
        return sum(component.score(stats) for component in self.components)

    def to_lucene(self) -> Any:
        from pyserini.pyclass import autoclass

        JMultiSimilarity = autoclass("org.apache.lucene.search.similarities.MultiSimilarity")
        return JMultiSimilarity([component.to_lucene() for component in self.components])

    def __repr__(self) -> str:
        return f"BlendedSimilarity({', '.join(repr(c) for c in self.components)})"


def build_similarity(kind: SimilarityKind, cfg: Config) -> Any:
    """Instantiate a similarity with the parameters from the config.

    Args:
        kind: Which scoring function
        cfg: Config object with bm25_k1, bm25_b and lmd_mu

    Returns:
        The similarity object

    Raises:
        ConfigurationError: When the kind is unknown or a parameter is out of range
    """
    if kind == SimilarityKind.PROBABILISTIC:
        return BM25Similarity(cfg.bm25_k1, cfg.bm25_b)
    if kind == SimilarityKind.LANGUAGE_MODEL:
        return LMDirichletSimilarity(cfg.lmd_mu)
    if kind == SimilarityKind.BLENDED:
        return BlendedSimilarity([
            BM25Similarity(cfg.bm25_k1, cfg.bm25_b),
            LMDirichletSimilarity(cfg.lmd_mu),
        ])
    raise ConfigurationError(f"Unknown similarity kind: {kind!r}")
