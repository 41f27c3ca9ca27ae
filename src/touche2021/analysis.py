"""
Text analysis module.

Turns topic text into the normalized terms used to build queries: tokenization,
lower-casing, English possessive stripping and (optionally) stopword removal.
The same chain must have been used when the index was built, otherwise query
terms will not line up with indexed terms.
"""
import re
import logging
from typing import Iterable, List, Optional, FrozenSet

import nltk

from .data import AnalyzedTopic, Topic
from .errors import CollaboratorIOError


logger = logging.getLogger(__name__)


_TOKEN_RE = re.compile(r"\w+(?:['’]\w+)*")
_POSSESSIVE_RE = re.compile(r"['’]s$")


def ensure_nltk_resource(resource: str, package: str, download: bool = True) -> None:
    """Make sure an NLTK data package is available.

    Args:
        resource: Resource path as understood by nltk.data.find (e.g. "corpora/wordnet")
        package: Package name passed to nltk.download (e.g. "wordnet")
        download: Whether to try downloading the package when it is missing

    Raises:
        CollaboratorIOError: When the resource is missing and cannot be downloaded
    """
    try:
        nltk.data.find(resource)
        return
    except LookupError:
        if not download:
            raise CollaboratorIOError(
                f"NLTK resource '{package}' is not installed and downloads are disabled"
            )

    logger.info(f"Downloading NLTK resource: {package}")
    if not nltk.download(package, quiet=True):
        raise CollaboratorIOError(f"Unable to download NLTK resource '{package}'")

    try:
        nltk.data.find(resource)
    except LookupError as e:
        raise CollaboratorIOError(f"NLTK resource '{package}' is still unavailable after download") from e


def load_stopwords(download: bool = True) -> FrozenSet[str]:
    """Load the NLTK English stopword list."""
    ensure_nltk_resource("corpora/stopwords", "stopwords", download=download)
    from nltk.corpus import stopwords

    return frozenset(stopwords.words("english"))


class Analyzer:
    """Tokenizer + filters applied to topic titles and descriptions.

    Attributes:
        stopwords: Terms dropped from the token stream (empty when stopword removal is off)
    """

    def __init__(self, stopwords: Optional[Iterable[str]] = None) -> None:
        self.stopwords: FrozenSet[str] = frozenset(w.lower() for w in stopwords) if stopwords else frozenset()

    @classmethod
    def from_config(cls, cfg) -> "Analyzer":
        """Build the analyzer described by a Config.

        A Lucene index is queried with the Lucene English analyzer it was built with;
        the memory index uses this analyzer with the NLTK stopword list.
        """
        if cfg.index_backend == "lucene":
            return LuceneAnalyzer(use_stopwords=cfg.use_stopwords)
        if cfg.use_stopwords:
            return cls(load_stopwords(download=cfg.nltk_download))
        return cls()

    def tokenize(self, text: str) -> List[str]:
        """Split text into lower-cased word tokens."""
        return _TOKEN_RE.findall(text.lower())

    def analyze(self, text: Optional[str]) -> List[str]:
        """Run the full analysis chain.

        Args:
            text: Raw text, may be None or empty

        Returns:
            List[str]: Normalized terms in their original order (repeats kept)
        """
        if not text:
            return []

        terms = []
        for token in self.tokenize(text):
            token = _POSSESSIVE_RE.sub("", token).replace("’", "'")
            if not token or token in self.stopwords:
                continue
            terms.append(token)
        return terms

    def analyze_topic(self, topic: Topic) -> AnalyzedTopic:
        """Analyze the title and description of a topic."""
        return AnalyzedTopic(
            topic_id=topic.topic_id,
            title_terms=tuple(self.analyze(topic.title)),
            description_terms=tuple(self.analyze(topic.description)),
        )


def _load_lucene_analyzer(use_stopwords: bool):
    from pyserini.analysis import Analyzer as PyseriniAnalyzer, get_lucene_analyzer

    return PyseriniAnalyzer(get_lucene_analyzer(stemming=False, stopwords=use_stopwords))


class LuceneAnalyzer(Analyzer):
    """Analyzer backed by Lucene's non-stemming English chain through pyserini.

    StandardTokenizer, English possessive filter, lower-casing and (optionally) the
    Lucene English stopword set; the same chain a Lucene-built index applies to its
    documents, so "e-cigarette" yields ["e", "cigarette"] and "don't" stays whole.
    """

    def __init__(self, use_stopwords: bool = True) -> None:
        super().__init__()
        self.use_stopwords = use_stopwords
        self._analyzer = _load_lucene_analyzer(use_stopwords)

    def tokenize(self, text: str) -> List[str]:
        return list(self._analyzer.analyze(text))

    def analyze(self, text: Optional[str]) -> List[str]:
        if not text:
            return []
        return [token for token in self.tokenize(text) if token]
