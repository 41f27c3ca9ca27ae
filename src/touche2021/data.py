"""
Data loading module.

Provides functionality to load Touché 2021 task 1 topics, relevance judgments and
args.me documents, either from IR-Datasets or from the official topics XML file.
"""
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Tuple

import ir_datasets

from .config import Config
from .errors import CollaboratorIOError, ConfigurationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Topic:
    """A search topic as distributed by the task organisers."""
    topic_id: str
    title: str
    description: str = ""
    narrative: str = ""


@dataclass(frozen=True)
class AnalyzedTopic:
    """A topic after analysis: identifier plus ordered title and description terms."""
    topic_id: str
    title_terms: Tuple[str, ...]
    description_terms: Tuple[str, ...] = ()


def _topic_sort_key(topic: Topic) -> Tuple[int, Any]:
    return (0, int(topic.topic_id)) if topic.topic_id.isdigit() else (1, topic.topic_id)


def _single_line(text: str) -> str:
    return (text or "").replace("\n", "").replace("\r", "").strip()


def load_dataset(cfg: Config) -> Any:  # ir_datasets.Dataset
    """Load an IR-Datasets dataset.

    Args:
        cfg: Config object containing the dataset ID

    Returns:
        ir_datasets.Dataset: The dataset object

    Raises:
        ConfigurationError: When the dataset ID is invalid
    """
    try:
        logger.debug(f"Loading dataset: {cfg.dataset_id}")
        ds = ir_datasets.load(cfg.dataset_id)
        return ds
    except KeyError as e:
        logger.error(f"Failed to load dataset {cfg.dataset_id}: {e}")
        raise ConfigurationError(f"Invalid dataset ID: {cfg.dataset_id}") from e


def load_topics(ds: Any) -> List[Topic]:  # ds: ir_datasets.Dataset
    """Load topics from a dataset.

    Args:
        ds: The dataset object

    Returns:
        List[Topic]: Topics sorted by identifier
    """
    topics: List[Topic] = []

    logger.debug("Loading topics...")
    for q in ds.queries_iter():
        topics.append(Topic(
            topic_id=str(q.query_id),
            title=getattr(q, "title", "") or "",
            description=_single_line(getattr(q, "description", "")),
            narrative=_single_line(getattr(q, "narrative", "")),
        ))

    topics.sort(key=_topic_sort_key)
    logger.debug(f"Loaded {len(topics)} topics")
    return topics


def read_topics_xml(path: str) -> List[Topic]:
    """Read a Touché topics file.

    The file is a <topics> root holding <topic> elements with <number>, <title>,
    <description> and <narrative> children. Line breaks inside description and
    narrative are removed.

    Args:
        path: Path of the XML file

    Returns:
        List[Topic]: Topics sorted by identifier

    Raises:
        CollaboratorIOError: When the file cannot be read or parsed
    """
    topics_path = Path(path)
    try:
        root = ET.parse(topics_path).getroot()
    except (OSError, ET.ParseError) as e:
        raise CollaboratorIOError(f"Unable to process topic file {topics_path}: {e}") from e

    topics: List[Topic] = []
    for element in root.iter("topic"):
        number = (element.findtext("number") or "").strip()
        if not number:
            logger.warning("Skipping topic without a number")
            continue
        topics.append(Topic(
            topic_id=number,
            title=(element.findtext("title") or "").strip(),
            description=_single_line(element.findtext("description")),
            narrative=_single_line(element.findtext("narrative")),
        ))

    topics.sort(key=_topic_sort_key)
    logger.debug(f"Read {len(topics)} topics from {topics_path}")
    return topics


def load_qrels(ds: Any) -> List[Any]:  # List[ir_datasets.Qrel]
    """Load relevance judgment data.

    Args:
        ds: The dataset object

    Returns:
        List[Qrel]: A list of relevance judgments
    """
    logger.debug("Loading relevance judgments...")
    qrels = list(ds.qrels_iter())
    logger.debug(f"Loaded {len(qrels)} relevance judgments")
    return qrels


def iter_documents(ds: Any, cfg: Config) -> Iterable[Tuple[str, str, str]]:  # ds: ir_datasets.Dataset
    """Iterate over args.me documents.

    The argument conclusion becomes the title and the premise texts the body.

    Args:
        ds: The dataset object
        cfg: Config object with the max_corpus_docs setting

    Yields:
        Tuple[str, str, str]: A (doc_id, title, body) triple
    """
    doc_count = 0
    empty_count = 0

    for d in ds.docs_iter():
        if cfg.max_corpus_docs and doc_count >= cfg.max_corpus_docs:
            logger.debug(f"Reached max docs limit: {cfg.max_corpus_docs}")
            break

        title = (getattr(d, "conclusion", "") or "").strip()
        premises = getattr(d, "premises_texts", None)
        if premises is None:
            premises = " ".join(getattr(p, "text", "") for p in getattr(d, "premises", ()) or ())
        body = (premises or "").strip()

        if title or body:
            yield d.doc_id, title, body
            doc_count += 1
        else:
            empty_count += 1
            logger.debug(f"Empty document: {d.doc_id}")

    if empty_count > 0:
        logger.warning(f"Skipped {empty_count} empty documents")
