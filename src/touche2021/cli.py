"""
CLI main program module.

Provides a command-line interface for Touché 2021 argument retrieval runs, wiring
topic loading, query composition, retrieval, run writing and evaluation together.
"""
import sys
import time
import logging
import argparse

import pandas as pd

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .analysis import Analyzer
from .compose import FieldQueryBuilder, QueryComposer
from .config import Config
from .data import Topic, iter_documents, load_dataset, load_qrels, load_topics, read_topics_xml
from .errors import CollaboratorIOError
from .evaluate import evaluate_runs
from .index import open_index
from .proximity import ProximityQueryBuilder
from .search import RankedList, RetrievalOrchestrator
from .similarity import build_similarity
from .strategies import SimilarityKind, get_strategy, sweep_profiles, sweep_strategy
from .synonyms import SynonymExpander, WordNetDatabase
from .trec_io import TrecRunWriter


logger = logging.getLogger(__name__)


def configure_logging(log_dir: Optional[Path] = None, verbose: bool = False, quiet: bool = False) -> None:
    """Configure the logging system.

    Args:
        log_dir: Directory to save log files, outputs to console only if None
        verbose: Whether to enable detailed logging (DEBUG level)
        quiet: Whether to only show warnings and above (WARNING level)
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"touche2021_{timestamp}.log"
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )

    logging.getLogger("touche2021").setLevel(logging.DEBUG)


def log_experiment_info(cfg: Config) -> None:
    """Log run configuration information.

    Args:
        cfg: Run configuration
    """
    strategy = get_strategy(cfg.strategy)
    logger.info("=" * 80)
    logger.info("Touché 2021 Run Start")
    logger.info("=" * 80)
    logger.info(f"Config:")
    logger.info(f"Strategy: {strategy.strategy_id} ({strategy.name})")
    logger.info(f"Run ID: {cfg.run_id}")
    logger.info(f"Topics: {cfg.topics_file or cfg.dataset_id}")
    logger.info(f"Index: {cfg.index_backend} ({cfg.index_dir if cfg.index_backend == 'lucene' else cfg.dataset_id})")
    logger.info(f"Max docs per topic: {cfg.max_docs}")
    logger.info(f"BM25: k1={cfg.bm25_k1}, b={cfg.bm25_b}; LM-Dirichlet: mu={cfg.lmd_mu}")
    logger.info(f"Error policy: {cfg.error_policy}")
    logger.info(f"Run file: {cfg.run_path}")
    if cfg.evaluate:
        logger.info(f"Evaluate at: {cfg.eval_at}")
    logger.info("=" * 80)


def load_run_topics(cfg: Config) -> Tuple[Any, List[Topic]]:
    """Load the topics of a run, from the topics file or the dataset.

    Returns:
        Tuple[Any, List[Topic]]: The ir_datasets dataset (None when a topics file was read) and the topics
    """
    ds = None
    if cfg.topics_file:
        logger.info(f"Reading topics file: {cfg.topics_file}")
        topics = read_topics_xml(cfg.topics_file)
    else:
        logger.info(f"Loading dataset: {cfg.dataset_id}")
        ds = load_dataset(cfg)
        topics = load_topics(ds)
    logger.info(f"Number of topics: {len(topics)}")
    if len(topics) != cfg.expected_topics:
        logger.warning(f"Expected {cfg.expected_topics} topics, but got {len(topics)}")
    return ds, topics


def run_all(cfg: Config) -> Dict[str, RankedList]:
    """Execute a complete retrieval run.

    Loads topics, opens the index and the run file, searches every topic with the
    configured strategy and optionally evaluates the run against the qrels.

    Args:
        cfg: Run configuration

    Returns:
        Dict[str, RankedList]: Rankings by topic id

    Raises:
        Exception: When an error occurs during the run
    """
    start_time = time.time()

    try:
        log_experiment_info(cfg)

        ds, topics = load_run_topics(cfg)

        # Query composition
        logger.info("Preparing analyzer and WordNet synonym expander...")
        analyzer = Analyzer.from_config(cfg)
        expander = SynonymExpander(WordNetDatabase(download=cfg.nltk_download))
        composer = QueryComposer(FieldQueryBuilder(expander, ProximityQueryBuilder(), analyzer=analyzer))
        similarities = {kind: build_similarity(kind, cfg) for kind in SimilarityKind}

        documents = None
        if cfg.index_backend == "memory":
            if ds is None:
                ds = load_dataset(cfg)
            logger.info("Building memory index from the dataset corpus...")
            documents = iter_documents(ds, cfg)

        with open_index(cfg, analyzer=analyzer, documents=documents) as index, \
                TrecRunWriter(cfg.run_path, cfg.run_id) as writer:
            orchestrator = RetrievalOrchestrator(
                index,
                composer,
                analyzer,
                similarities,
                max_docs=cfg.max_docs,
                rank_start=cfg.rank_start,
                error_policy=cfg.error_policy,
            )
            runs = orchestrator.run(topics, cfg.strategy, writer=writer)

        cache = expander.cache_info()
        logger.info(f"Synonym lookups: {cache['hits']} cached, {cache['misses']} WordNet queries")

        if cfg.evaluate:
            if ds is None:
                ds = load_dataset(cfg)
            qrels = load_qrels(ds)
            logger.info(f"Number of relevance judgments: {len(qrels)}")

            logger.info("Evaluating retrieval results...")
            results = {cfg.run_id: evaluate_runs(runs, qrels, eval_at=cfg.eval_at)}
            results_df = pd.DataFrame(results)
            logger.info("\nResults:\n" + results_df.to_string())

        elapsed_time = time.time() - start_time
        logger.info(f"\nRun completed, total time: {elapsed_time:.2f} seconds")
        logger.info("=" * 80)
        return runs

    except KeyboardInterrupt:
        logger.warning("\nUser interrupted the run")
        raise
    except Exception as e:
        logger.exception(f"An error occurred during the run: {e}")
        raise


def sweep_runs(
    orchestrator: RetrievalOrchestrator,
    topics: Sequence[Topic],
    profiles,
    run_dir,
    similarity: SimilarityKind = SimilarityKind.BLENDED,
) -> Dict[str, Dict[str, RankedList]]:
    """Search all topics once per sweep profile, writing one run file per profile.

    Args:
        orchestrator: Orchestrator bound to an open index
        topics: Topics to search
        profiles: QueryProfiles to try (see sweep_profiles)
        run_dir: Directory receiving <run id>.txt files
        similarity: Similarity of every sweep run; sweep runs are single phase

    Returns:
        Dict[str, Dict[str, RankedList]]: Rankings by topic id, by run id
    """
    topics = list(topics)
    results = {}
    for profile in profiles:
        strategy = sweep_strategy(profile, similarity)
        run_id = strategy.name
        with TrecRunWriter(Path(run_dir) / f"{run_id}.txt", run_id) as writer:
            results[run_id] = orchestrator.run(topics, strategy, writer=writer)
    return results


def run_sweep(
    cfg: Config,
    grid: Optional[Mapping[str, Sequence[float]]] = None,
    similarity: SimilarityKind = SimilarityKind.BLENDED,
) -> Dict[str, Dict[str, RankedList]]:
    """Execute a parameter sweep over title, synonym and proximity boosts.

    Every point of the grid becomes an ad-hoc single-phase strategy; topics, the
    index and the synonym cache are shared by all runs. With evaluation on, one
    results row per run id is logged.

    Args:
        cfg: Run configuration (strategy and run_id are ignored)
        grid: Parameter grid; SWEEP_GRID when None
        similarity: Similarity used by every run

    Returns:
        Dict[str, Dict[str, RankedList]]: Rankings by topic id, by run id
    """
    start_time = time.time()

    try:
        profiles = list(sweep_profiles(grid))
        logger.info("=" * 80)
        logger.info(f"Touché 2021 Parameter Sweep: {len(profiles)} runs, similarity {SimilarityKind(similarity).value}")
        logger.info("=" * 80)

        ds, topics = load_run_topics(cfg)

        analyzer = Analyzer.from_config(cfg)
        expander = SynonymExpander(WordNetDatabase(download=cfg.nltk_download))
        composer = QueryComposer(FieldQueryBuilder(expander, ProximityQueryBuilder(), analyzer=analyzer))
        similarities = {kind: build_similarity(kind, cfg) for kind in SimilarityKind}

        documents = None
        if cfg.index_backend == "memory":
            if ds is None:
                ds = load_dataset(cfg)
            documents = iter_documents(ds, cfg)

        with open_index(cfg, analyzer=analyzer, documents=documents) as index:
            orchestrator = RetrievalOrchestrator(
                index,
                composer,
                analyzer,
                similarities,
                max_docs=cfg.max_docs,
                rank_start=cfg.rank_start,
                error_policy=cfg.error_policy,
            )
            results = sweep_runs(orchestrator, topics, profiles, cfg.run_dir, similarity=similarity)

        if cfg.evaluate:
            if ds is None:
                ds = load_dataset(cfg)
            qrels = load_qrels(ds)
            scores = {run_id: evaluate_runs(runs, qrels, eval_at=cfg.eval_at) for run_id, runs in results.items()}
            results_df = pd.DataFrame(scores).T
            logger.info("\nSweep results:\n" + results_df.to_string())

        elapsed_time = time.time() - start_time
        logger.info(f"\nSweep completed, total time: {elapsed_time:.2f} seconds")
        return results

    except KeyboardInterrupt:
        logger.warning("\nUser interrupted the sweep")
        raise
    except Exception as e:
        logger.exception(f"An error occurred during the sweep: {e}")
        raise


def main() -> None:
    """CLI main entry point.

    Sets up logging, loads configuration, and runs the retrieval.
    """
    parser = argparse.ArgumentParser(description="Run Touché 2021 argument retrieval")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable detailed log output (DEBUG level)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only show warning and error logs (WARNING level)"
    )
    parser.add_argument(
        "-s", "--strategy",
        type=int,
        default=None,
        help="Retrieval strategy id (0 = baseline, 1-5); overrides STRATEGY"
    )
    parser.add_argument(
        "--run-id",
        default=None,
        help="Run identifier; defaults to shanks-run-<strategy>"
    )
    parser.add_argument(
        "--evaluate",
        action="store_true",
        help="Evaluate the run against the dataset qrels"
    )
    parser.add_argument(
        "--sweep",
        action="store_true",
        help="Run the title/synonym/proximity boost sweep instead of a single strategy"
    )
    args = parser.parse_args()

    if args.verbose and args.quiet:
        print("Error: --verbose and --quiet cannot be used simultaneously", file=sys.stderr)
        sys.exit(1)

    try:
        log_dir = Path("./logs") if args.verbose else None
        configure_logging(log_dir, verbose=args.verbose, quiet=args.quiet)

        logger.info("Loading run configuration...")
        cfg = Config.from_env(
            strategy=args.strategy,
            run_id=args.run_id,
            evaluate=True if args.evaluate else None,
        )

        if args.sweep:
            run_sweep(cfg)
        else:
            run_all(cfg)

    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except CollaboratorIOError as e:
        logger.error(f"I/O error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("\nProgram interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
