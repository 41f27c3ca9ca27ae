"""
Touché 2021 argument retrieval module.

This package provides:
- Query composition over title and body fields (WordNet synonyms, proximity clauses)
- Five retrieval strategies plus a BM25 baseline, with optional rescoring
- A title/synonym/proximity boost sweep
- Lucene (Pyserini) and in-memory index backends
- TREC run output and standard IR evaluation metrics (nDCG, MAP, Recall, Precision)

Main components:
- Config: configuration management
- QueryComposer: topic to query tree
- RetrievalOrchestrator: retrieve, rescore, truncate, emit
- LuceneIndex / MemoryIndex: index backends
- TrecRunWriter: run file output
- Evaluation: evaluate_runs
"""

from .analysis import Analyzer, LuceneAnalyzer
from .compose import ComposeResult, FieldQueryBuilder, QueryComposer
from .config import Config
from .data import AnalyzedTopic, Topic, load_dataset, load_qrels, load_topics, read_topics_xml, iter_documents
from .errors import CollaboratorIOError, CompositionError, ConfigurationError, RetrievalError
from .evaluate import evaluate_runs
from .index import LuceneIndex, MemoryIndex, SearchIndex, open_index
from .proximity import ProximityQueryBuilder
from .query import Disjunction, Field, PairingPolicy, ProximityGroup, TermGroup
from .search import RankedList, RetrievalOrchestrator, ScoredDocument
from .similarity import BlendedSimilarity, BM25Similarity, LMDirichletSimilarity, build_similarity
from .strategies import (
    STRATEGIES,
    SWEEP_GRID,
    QueryProfile,
    SimilarityKind,
    StrategyProfile,
    get_strategy,
    sweep_profiles,
    sweep_run_id,
    sweep_strategy,
)
from .synonyms import SynonymExpander, WordNetDatabase
from .trec_io import TrecRunWriter, read_trec_run

__version__ = "0.1.0"

# Public API
__all__ = [
    # configuration
    "Config",

    # errors
    "RetrievalError",
    "ConfigurationError",
    "CompositionError",
    "CollaboratorIOError",

    # data loading
    "Topic",
    "AnalyzedTopic",
    "load_dataset",
    "load_topics",
    "read_topics_xml",
    "load_qrels",
    "iter_documents",

    # query composition
    "Analyzer",
    "LuceneAnalyzer",
    "SynonymExpander",
    "WordNetDatabase",
    "ProximityQueryBuilder",
    "FieldQueryBuilder",
    "QueryComposer",
    "ComposeResult",
    "Field",
    "PairingPolicy",
    "TermGroup",
    "ProximityGroup",
    "Disjunction",

    # strategies and similarities
    "SimilarityKind",
    "QueryProfile",
    "StrategyProfile",
    "STRATEGIES",
    "get_strategy",
    "SWEEP_GRID",
    "sweep_profiles",
    "sweep_run_id",
    "sweep_strategy",
    "BM25Similarity",
    "LMDirichletSimilarity",
    "BlendedSimilarity",
    "build_similarity",

    # index and retrieval
    "SearchIndex",
    "LuceneIndex",
    "MemoryIndex",
    "open_index",
    "RetrievalOrchestrator",
    "RankedList",
    "ScoredDocument",

    # output and evaluation
    "TrecRunWriter",
    "read_trec_run",
    "evaluate_runs",
]
