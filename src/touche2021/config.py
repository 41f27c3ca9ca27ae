"""
Configuration management module.

Provides all configuration parameters for Touché 2021 retrieval runs, with support for
environment variable overrides and parameter validation.
"""
import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Dict, Any

from .errors import ConfigurationError
from .strategies import STRATEGIES


logger = logging.getLogger(__name__)


INDEX_BACKENDS = ("lucene", "memory")
ERROR_POLICIES = ("abort", "skip")


@dataclass
class Config:
    """Configuration class for Touché 2021 retrieval runs.

    Manages all run parameters, including dataset, index location, strategy and output.
    Supports loading configurations from environment variables for easy experiment tuning.

    Attributes:
        dataset_id: IR Datasets dataset ID (topics, qrels and, for the memory backend, documents)
        topics_file: Optional Touché topics XML file; takes precedence over dataset_id topics
        index_backend: "lucene" (pyserini/Anserini index on disk) or "memory" (built at startup)
        index_dir: Lucene index directory
        title_field: Indexed field holding the argument conclusion
        body_field: Indexed field holding the argument premises
        id_field: Stored field holding the external document identifier
        run_dir: Directory where the run file is written
        run_id: Run identifier, also the run file name; derived from the strategy if None
        strategy: Retrieval strategy id (0 = baseline, 1-5 = named strategies)
        max_docs: Maximum number of documents retrieved and emitted per topic (K)
        rank_start: First rank position written to the run (0 in the reference runs)
        expected_topics: Number of topics expected; a mismatch is only logged
        bm25_k1: BM25 k1 parameter
        bm25_b: BM25 b parameter
        lmd_mu: Dirichlet smoothing parameter of the language-model similarity
        use_stopwords: Whether the analyzer removes English stopwords
        nltk_download: Whether missing NLTK corpora (wordnet, stopwords) are downloaded
        error_policy: "abort" stops the run on the first failed topic, "skip" moves on
        evaluate: Whether to evaluate the run against the dataset qrels
        eval_at: List of ranking positions to evaluate at
        max_corpus_docs: Maximum number of documents loaded into the memory backend
    """
    # Dataset configuration
    dataset_id: str = "argsme/2020-04-01/touche-2021-task-1"
    topics_file: Optional[str] = None

    # Index configuration
    index_backend: str = "lucene"
    index_dir: str = "./experiment/index"
    title_field: str = "title"
    body_field: str = "body"
    id_field: str = "id"

    # Run output configuration
    run_dir: str = "./experiment/runs"
    run_id: Optional[str] = None

    # Retrieval parameters
    strategy: int = 1
    max_docs: int = 1000
    rank_start: int = 0
    expected_topics: int = 50

    # Similarity parameters
    bm25_k1: float = 1.2
    bm25_b: float = 0.75
    lmd_mu: float = 2000.0

    # Analysis and lexical database
    use_stopwords: bool = True
    nltk_download: bool = True

    # Failure handling
    error_policy: str = "abort"

    # Evaluation
    evaluate: bool = False
    eval_at: List[int] = field(default_factory=lambda: [5, 10])

    # Memory backend
    max_corpus_docs: Optional[int] = None  # 1000 / None

    def __post_init__(self) -> None:
        """Post-initialization validation and processing."""
        self._validate_config()
        if self.run_id is None:
            self.run_id = f"shanks-run-{self.strategy}"

    def _validate_config(self) -> None:
        """Validate the reasonableness of configuration parameters."""
        if self.max_docs <= 0:
            raise ConfigurationError(f"max_docs must be positive, but got: {self.max_docs}")

        if self.strategy not in STRATEGIES:
            raise ConfigurationError(f"strategy must be one of {sorted(STRATEGIES)}, but got: {self.strategy}")

        if self.rank_start not in (0, 1):
            raise ConfigurationError(f"rank_start must be 0 or 1, but got: {self.rank_start}")

        if self.expected_topics <= 0:
            raise ConfigurationError(f"expected_topics must be positive, but got: {self.expected_topics}")

        if self.index_backend not in INDEX_BACKENDS:
            raise ConfigurationError(
                f"index_backend must be one of {INDEX_BACKENDS}, but got: {self.index_backend}"
            )

        if self.error_policy not in ERROR_POLICIES:
            raise ConfigurationError(
                f"error_policy must be one of {ERROR_POLICIES}, but got: {self.error_policy}"
            )

        if self.max_corpus_docs is not None and self.max_corpus_docs <= 0:
            raise ConfigurationError(f"max_corpus_docs must be positive, but got: {self.max_corpus_docs}")

        if self.run_id is not None and not self.run_id.strip():
            raise ConfigurationError("run_id cannot be empty")

        for name in ("title_field", "body_field", "id_field"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} cannot be empty")

        # Validate similarity parameters
        if self.lmd_mu <= 0:
            raise ConfigurationError(f"lmd_mu must be positive, but got: {self.lmd_mu}")

        if not (0.0 <= self.bm25_k1 <= 3.0):
            logger.warning(f"BM25 k1 parameter is usually between 0-3, but current value is: {self.bm25_k1}")

        if not (0.0 <= self.bm25_b <= 1.0):
            logger.warning(f"BM25 b parameter should be between 0-1, but current value is: {self.bm25_b}")

        # Validate evaluation positions
        if not self.eval_at:
            raise ConfigurationError("eval_at cannot be an empty list")

        for k in self.eval_at:
            if k <= 0:
                raise ConfigurationError(f"Values in eval_at must be positive, but got: {k}")

        max_eval_at = max(self.eval_at)
        if self.evaluate and self.max_docs < max_eval_at:
            raise ConfigurationError(
                f"max_docs must be at least as large as max(eval_at) to enable proper evaluation, "
                f"but got: max_docs={self.max_docs}, max(eval_at)={max_eval_at}"
            )

    @property
    def run_path(self) -> Path:
        """Path of the run file inside run_dir."""
        return Path(self.run_dir) / f"{self.run_id}.txt"

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Load configuration from environment variables.

        Args:
            **overrides: Values that take precedence over both the environment and the defaults
                (used by the CLI for command-line flags)

        Returns:
            Config: A config instance with environment variables loaded

        Raises:
            ConfigurationError: When an environment variable value cannot be parsed
        """
        def get_env_int(key: str, default: Optional[int], allow_none: bool = False) -> Optional[int]:
            """Safely get an integer value from an environment variable."""
            value = os.getenv(key)
            if value is None:
                return default
            if allow_none and value.lower() in ('none', 'null', ''):
                return None
            try:
                return int(value)
            except ValueError as e:
                error_msg = f"Environment variable {key} must be an integer"
                if allow_none:
                    error_msg += " or None"
                error_msg += f", but got: {value}"
                raise ConfigurationError(error_msg) from e

        def get_env_float(key: str, default: float) -> float:
            """Safely get a float value from an environment variable."""
            value = os.getenv(key)
            if value is None:
                return default
            try:
                return float(value)
            except ValueError as e:
                raise ConfigurationError(f"Environment variable {key} must be a number, but got: {value}") from e

        def get_env_bool(key: str, default: bool) -> bool:
            """Safely get a boolean value from an environment variable."""
            value = os.getenv(key)
            if value is None:
                return default
            return value.lower() in ("1", "true", "yes", "on")

        def get_env_int_list(key: str, default: List[int]) -> List[int]:
            """Safely get a list of integers from an environment variable."""
            value = os.getenv(key)
            if value is None:
                return list(default)
            try:
                return [int(x.strip()) for x in value.split(",") if x.strip()]
            except ValueError as e:
                raise ConfigurationError(
                    f"Environment variable {key} must be a comma-separated list of integers, but got: {value}"
                ) from e

        logger.debug("Loading configuration from environment variables...")

        params: Dict[str, Any] = dict(
            dataset_id=os.getenv("DATASET_ID", cls.dataset_id),
            topics_file=os.getenv("TOPICS_FILE", cls.topics_file),
            index_backend=os.getenv("INDEX_BACKEND", cls.index_backend),
            index_dir=os.getenv("INDEX_DIR", cls.index_dir),
            title_field=os.getenv("TITLE_FIELD", cls.title_field),
            body_field=os.getenv("BODY_FIELD", cls.body_field),
            id_field=os.getenv("ID_FIELD", cls.id_field),
            run_dir=os.getenv("RUN_DIR", cls.run_dir),
            run_id=os.getenv("RUN_ID", cls.run_id),
            strategy=get_env_int("STRATEGY", cls.strategy),
            max_docs=get_env_int("MAX_DOCS", cls.max_docs),
            rank_start=get_env_int("RANK_START", cls.rank_start),
            expected_topics=get_env_int("EXPECTED_TOPICS", cls.expected_topics),
            bm25_k1=get_env_float("BM25_K1", cls.bm25_k1),
            bm25_b=get_env_float("BM25_B", cls.bm25_b),
            lmd_mu=get_env_float("LMD_MU", cls.lmd_mu),
            use_stopwords=get_env_bool("USE_STOPWORDS", cls.use_stopwords),
            nltk_download=get_env_bool("NLTK_DOWNLOAD", cls.nltk_download),
            error_policy=os.getenv("ERROR_POLICY", cls.error_policy),
            evaluate=get_env_bool("EVALUATE", cls.evaluate),
            eval_at=get_env_int_list("EVAL_AT", [5, 10]),
            max_corpus_docs=get_env_int("MAX_CORPUS_DOCS", cls.max_corpus_docs, allow_none=True),
        )
        params.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**params)

        logger.debug("Configuration loaded from environment variables")
        return config

    def to_dict(self) -> dict:
        """Convert the configuration to a dictionary format."""
        return {
            "dataset_id": self.dataset_id,
            "topics_file": self.topics_file,
            "index_backend": self.index_backend,
            "index_dir": self.index_dir,
            "title_field": self.title_field,
            "body_field": self.body_field,
            "id_field": self.id_field,
            "run_dir": self.run_dir,
            "run_id": self.run_id,
            "strategy": self.strategy,
            "max_docs": self.max_docs,
            "rank_start": self.rank_start,
            "expected_topics": self.expected_topics,
            "bm25_k1": self.bm25_k1,
            "bm25_b": self.bm25_b,
            "lmd_mu": self.lmd_mu,
            "use_stopwords": self.use_stopwords,
            "nltk_download": self.nltk_download,
            "error_policy": self.error_policy,
            "evaluate": self.evaluate,
            "eval_at": self.eval_at,
            "max_corpus_docs": self.max_corpus_docs,
        }
