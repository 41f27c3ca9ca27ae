"""Shared fixtures: a dictionary-backed lexical database and a small argument corpus."""
from typing import Dict, List

import pytest

from touche2021.analysis import Analyzer
from touche2021.compose import FieldQueryBuilder, QueryComposer
from touche2021.config import Config
from touche2021.index import MemoryIndex
from touche2021.proximity import ProximityQueryBuilder
from touche2021.similarity import build_similarity
from touche2021.strategies import SimilarityKind
from touche2021.synonyms import ADJECTIVE, NOUN, SynonymExpander


STOPWORDS = ["a", "an", "and", "are", "for", "in", "is", "it", "not", "of", "or", "should", "the", "to", "we"]

DOCUMENTS = [
    ("d0", "Vaping is safe", "Studies show vaping is safe compared to smoking cigarettes."),
    ("d1", "Smoking kills", "Smoking cigarettes is harmful and vaping is not safe either."),
    ("d2", "School uniforms", "Uniforms improve discipline in school."),
    ("d3", "Vaping risks", "The risks of vaping are poorly understood, secure alternatives exist."),
    ("d4", "Safe streets", "Safe streets need better lighting for vaping shops."),
]


class FakeLexicalDatabase:
    """LexicalDatabase backed by a dict; records every lookup."""

    def __init__(self, entries: Dict[str, Dict[str, List[str]]]) -> None:
        self.entries = entries
        self.calls = []

    def lookup_synonyms(self, term: str, part_of_speech: str) -> List[str]:
        self.calls.append((term, part_of_speech))
        return list(self.entries.get(term, {}).get(part_of_speech, []))


@pytest.fixture
def lexical_db():
    return FakeLexicalDatabase({
        "safe": {
            NOUN: ["safe", "condom", "rubber", "prophylactic device"],
            ADJECTIVE: ["safe", "good", "Secure", "secure", "dependable"],
        },
        "school": {
            NOUN: ["schoolhouse", "school", "shoal"],
        },
        "vaping": {},
    })


@pytest.fixture
def expander(lexical_db):
    return SynonymExpander(lexical_db)


@pytest.fixture
def analyzer():
    return Analyzer(stopwords=STOPWORDS)


@pytest.fixture
def composer(expander, analyzer):
    return QueryComposer(FieldQueryBuilder(expander, ProximityQueryBuilder(), analyzer=analyzer))


@pytest.fixture
def config(tmp_path):
    return Config(index_backend="memory", run_dir=str(tmp_path / "runs"), nltk_download=False)


@pytest.fixture
def similarities(config):
    return {kind: build_similarity(kind, config) for kind in SimilarityKind}


@pytest.fixture
def memory_index(analyzer):
    return MemoryIndex.from_documents(DOCUMENTS, analyzer)


class RecordingIndex:
    """SearchIndex returning canned hits and rescores; records similarity switches."""

    def __init__(self, hits, rescores=None) -> None:
        self.hits = list(hits)
        self.rescores = dict(rescores or {})
        self.similarities = []
        self.searches = []
        self.closed = False

    def set_similarity(self, similarity) -> None:
        self.similarities.append(similarity.kind)

    def search(self, query, k):
        self.searches.append((query, k))
        return self.hits[:k]

    def rescore(self, query, doc):
        return self.rescores[doc]

    def fetch_stored_id(self, doc):
        return f"doc-{doc}"

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_index():
    """Factory for RecordingIndex instances."""
    return RecordingIndex
