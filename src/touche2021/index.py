"""
Index access module.

Responsibilities:
- Define the small surface the orchestrator needs from an index (SearchIndex)
- LuceneIndex: an on-disk Lucene index opened through pyserini's JVM bridge; query
  trees are translated into Lucene BooleanQuery/PhraseQuery/BoostQuery objects
- MemoryIndex: a positional in-memory index scored with the Python similarities,
  used for small corpora and for tests (no JVM required)

Documents are addressed by an internal integer id during a run; the external
document identifier is fetched from the stored id field only when writing results.
"""
import os
import logging
from collections import Counter, defaultdict
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from .errors import CollaboratorIOError, ConfigurationError, RetrievalError
from .query import Disjunction, Field, ProximityGroup, QueryNode, TermGroup
from .similarity import TermStatistics


logger = logging.getLogger(__name__)


class SearchIndex(Protocol):
    """What the retrieval orchestrator needs from an index."""

    def set_similarity(self, similarity: Any) -> None:
        ...

    def search(self, query: QueryNode, k: int) -> List[Tuple[int, float]]:
        ...

    def rescore(self, query: QueryNode, doc: int) -> float:
        ...

    def fetch_stored_id(self, doc: int) -> str:
        ...

    def close(self) -> None:
        ...


class LuceneIndex:
    """Lucene index searched through pyserini.

    Attributes:
        index_dir: Index directory
        field_names: Mapping from query fields to indexed field names
        id_field: Stored field with the external document identifier
    """

    def __init__(self, index_dir: str, title_field: str = "title", body_field: str = "body",
                 id_field: str = "id") -> None:
        """Opens the index.

        Args:
            index_dir: Lucene index directory
            title_field: Indexed field holding the argument conclusion
            body_field: Indexed field holding the argument premises
            id_field: Stored field holding the external document identifier

        Raises:
            CollaboratorIOError: When the directory is missing, empty or not a Lucene index
        """
        if not os.path.isdir(index_dir):
            raise CollaboratorIOError(f"Lucene index directory does not exist: {index_dir}")
        if not os.listdir(index_dir):
            raise CollaboratorIOError(f"Lucene index directory is empty: {index_dir}")

        self.index_dir = index_dir
        self.field_names = {Field.TITLE: title_field, Field.BODY: body_field}
        self.id_field = id_field

        from pyserini.pyclass import autoclass

        self._JTerm = autoclass("org.apache.lucene.index.Term")
        self._JTermQuery = autoclass("org.apache.lucene.search.TermQuery")
        self._JPhraseQueryBuilder = autoclass("org.apache.lucene.search.PhraseQuery$Builder")
        self._JBooleanQueryBuilder = autoclass("org.apache.lucene.search.BooleanQuery$Builder")
        self._JOccur = autoclass("org.apache.lucene.search.BooleanClause$Occur")
        self._JBoostQuery = autoclass("org.apache.lucene.search.BoostQuery")

        JFile = autoclass("java.io.File")
        JFSDirectory = autoclass("org.apache.lucene.store.FSDirectory")
        JDirectoryReader = autoclass("org.apache.lucene.index.DirectoryReader")
        JIndexSearcher = autoclass("org.apache.lucene.search.IndexSearcher")

        logger.debug(f"Opening Lucene index: {index_dir}")
        try:
            self._reader = JDirectoryReader.open(JFSDirectory.open(JFile(index_dir).toPath()))
        except Exception as e:
            raise CollaboratorIOError(f"Unable to open Lucene index {index_dir}: {e}") from e
        self._searcher = JIndexSearcher(self._reader)
        logger.info(f"Lucene index opened: {self._reader.numDocs()} documents")

    def __enter__(self) -> "LuceneIndex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def to_lucene_query(self, node: QueryNode) -> Any:
        """Translate a query tree into a Lucene Query object."""
        if isinstance(node, TermGroup):
            field = self.field_names[node.field]
            builder = self._JBooleanQueryBuilder()
            for term, boost in node.terms:
                clause = self._JTermQuery(self._JTerm(field, term))
                if boost != 1.0:
                    clause = self._JBoostQuery(clause, float(boost))
                builder.add(clause, self._JOccur.SHOULD)
            return self._JBoostQuery(builder.build(), float(node.boost))

        if isinstance(node, ProximityGroup):
            field = self.field_names[node.field]
            builder = self._JBooleanQueryBuilder()
            for term_a, term_b, distance in node.pairs:
                phrase = self._JPhraseQueryBuilder()
                phrase.add(self._JTerm(field, term_a), 0)
                phrase.add(self._JTerm(field, term_b), 1)
                phrase.setSlop(int(distance))
                builder.add(phrase.build(), self._JOccur.SHOULD)
            return self._JBoostQuery(builder.build(), float(node.boost))

        if isinstance(node, Disjunction):
            builder = self._JBooleanQueryBuilder()
            for child, weight in zip(node.children, node.weights):
                clause = self.to_lucene_query(child)
                if weight != 1.0:
                    clause = self._JBoostQuery(clause, float(weight))
                builder.add(clause, self._JOccur.SHOULD)
            return builder.build()

        raise ConfigurationError(f"Unsupported query node: {type(node).__name__}")

    def set_similarity(self, similarity: Any) -> None:
        self._searcher.setSimilarity(similarity.to_lucene())
        logger.debug(f"Similarity set: {similarity!r}")

    def search(self, query: QueryNode, k: int) -> List[Tuple[int, float]]:
        """Top-k (internal id, score) pairs, best first."""
        try:
            top_docs = self._searcher.search(self.to_lucene_query(query), int(k))
            return [(sd.doc, float(sd.score)) for sd in top_docs.scoreDocs]
        except RetrievalError:
            raise
        except Exception as e:
            raise CollaboratorIOError(f"Lucene search failed: {e}") from e

    def rescore(self, query: QueryNode, doc: int) -> float:
        """Score of one document under a query and the current similarity."""
        try:
            explanation = self._searcher.explain(self.to_lucene_query(query), int(doc))
            return float(explanation.getValue().floatValue())
        except RetrievalError:
            raise
        except Exception as e:
            raise CollaboratorIOError(f"Lucene explain failed for document {doc}: {e}") from e

    def fetch_stored_id(self, doc: int) -> str:
        try:
            doc_id = self._searcher.storedFields().document(int(doc)).get(self.id_field)
        except Exception as e:
            raise CollaboratorIOError(f"Unable to read stored fields of document {doc}: {e}") from e
        if doc_id is None:
            raise CollaboratorIOError(f"Document {doc} has no stored '{self.id_field}' field")
        return str(doc_id)

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
            logger.debug(f"Lucene index closed: {self.index_dir}")


class _FieldPostings:
    """Positional postings and collection statistics of one field."""

    def __init__(self) -> None:
        self.positions: Dict[str, Dict[int, List[int]]] = defaultdict(dict)
        self.lengths: Dict[int, int] = {}
        self.total_term_freq: Counter = Counter()
        self.sum_total_term_freq = 0

    def add(self, doc: int, terms: Sequence[str]) -> None:
        if not terms:
            return
        for position, term in enumerate(terms):
            self.positions[term].setdefault(doc, []).append(position)
        self.lengths[doc] = len(terms)
        self.total_term_freq.update(terms)
        self.sum_total_term_freq += len(terms)

    @property
    def doc_count(self) -> int:
        return len(self.lengths)

    @property
    def avg_doc_length(self) -> float:
        return self.sum_total_term_freq / self.doc_count if self.doc_count else 0.0

    def doc_freq(self, term: str) -> int:
        return len(self.positions.get(term, ()))

    def stats(self, term: str, doc: int, freq: float) -> TermStatistics:
        return TermStatistics(
            freq=freq,
            doc_length=self.lengths.get(doc, 0),
            avg_doc_length=self.avg_doc_length,
            doc_count=self.doc_count,
            doc_freq=self.doc_freq(term),
            total_term_freq=self.total_term_freq[term],
            sum_total_term_freq=self.sum_total_term_freq,
        )

    def sloppy_freq(self, term_a: str, term_b: str, doc: int, slop: int) -> float:
        """Lucene-style sloppy phrase frequency of "term_a term_b"~slop.

        Each occurrence of term_a contributes 1 / (d + 1) for its closest term_b,
        where d is the number of moves needed to bring term_b right after it.
        """
        positions_a = self.positions.get(term_a, {}).get(doc)
        positions_b = self.positions.get(term_b, {}).get(doc)
        if not positions_a or not positions_b:
            return 0.0

        freq = 0.0
        for pa in positions_a:
            best = min(abs(pb - 1 - pa) for pb in positions_b)
            if best <= slop:
                freq += 1.0 / (best + 1)
        return freq


class MemoryIndex:
    """In-memory positional index over (doc_id, title, body) documents.

    Attributes:
        analyzer: Analyzer applied to document text (must match the query analyzer)
        similarity: Similarity currently used for scoring
    """

    def __init__(self, analyzer: Any, similarity: Optional[Any] = None) -> None:
        self.analyzer = analyzer
        self.similarity = similarity
        self._doc_ids: List[str] = []
        self._fields: Dict[Field, _FieldPostings] = {f: _FieldPostings() for f in Field}

    @classmethod
    def from_documents(cls, documents: Iterable[Tuple[str, str, str]], analyzer: Any,
                       similarity: Optional[Any] = None) -> "MemoryIndex":
        """Build an index from (doc_id, title, body) triples."""
        index = cls(analyzer, similarity)
        for doc_id, title, body in documents:
            index.add_document(doc_id, title, body)
        logger.info(f"Memory index built: {len(index)} documents")
        return index

    def __len__(self) -> int:
        return len(self._doc_ids)

    def __enter__(self) -> "MemoryIndex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def add_document(self, doc_id: str, title: str, body: str) -> int:
        """Index one document and return its internal id."""
        doc = len(self._doc_ids)
        self._doc_ids.append(doc_id)
        self._fields[Field.TITLE].add(doc, self.analyzer.analyze(title))
        self._fields[Field.BODY].add(doc, self.analyzer.analyze(body))
        return doc

    def set_similarity(self, similarity: Any) -> None:
        self.similarity = similarity
        logger.debug(f"Similarity set: {similarity!r}")

    def _candidates(self, node: QueryNode) -> set:
        if isinstance(node, TermGroup):
            postings = self._fields[node.field].positions
            docs = set()
            for term, _ in node.terms:
                docs.update(postings.get(term, {}))
            return docs
        if isinstance(node, ProximityGroup):
            postings = self._fields[node.field].positions
            docs = set()
            for term_a, term_b, _ in node.pairs:
                docs.update(set(postings.get(term_a, {})) & set(postings.get(term_b, {})))
            return docs
        docs = set()
        for child in node.children:
            docs.update(self._candidates(child))
        return docs

    def _score(self, node: QueryNode, doc: int) -> Tuple[bool, float]:
        """(matched, score) of a document under a query node."""
        if isinstance(node, TermGroup):
            field = self._fields[node.field]
            matched, total = False, 0.0
            for term, boost in node.terms:
                positions = field.positions.get(term, {}).get(doc)
                if positions:
                    matched = True
                    total += boost * self.similarity.score(field.stats(term, doc, float(len(positions))))
            return matched, node.boost * total

        if isinstance(node, ProximityGroup):
            field = self._fields[node.field]
            matched, total = False, 0.0
            for term_a, term_b, distance in node.pairs:
                freq = field.sloppy_freq(term_a, term_b, doc, distance)
                if freq > 0:
                    matched = True
                    # The rarer of the two terms stands in for the pair
                    rarer = min((term_a, term_b), key=lambda t: (field.doc_freq(t), t))
                    total += self.similarity.score(field.stats(rarer, doc, freq))
            return matched, node.boost * total

        if isinstance(node, Disjunction):
            matched, total = False, 0.0
            for child, weight in zip(node.children, node.weights):
                child_matched, child_score = self._score(child, doc)
                if child_matched:
                    matched = True
                    total += weight * child_score
            return matched, total

        raise ConfigurationError(f"Unsupported query node: {type(node).__name__}")

    def _require_similarity(self) -> None:
        if self.similarity is None:
            raise ConfigurationError("No similarity set on the memory index")

    def search(self, query: QueryNode, k: int) -> List[Tuple[int, float]]:
        """Top-k (internal id, score) pairs; ties go to the lower internal id."""
        self._require_similarity()
        hits = []
        for doc in self._candidates(query):
            matched, score = self._score(query, doc)
            if matched:
                hits.append((doc, score))
        hits.sort(key=lambda hit: (-hit[1], hit[0]))
        return hits[:k]

    def rescore(self, query: QueryNode, doc: int) -> float:
        self._require_similarity()
        if not 0 <= doc < len(self._doc_ids):
            raise CollaboratorIOError(f"Unknown internal document id: {doc}")
        return self._score(query, doc)[1]

    def fetch_stored_id(self, doc: int) -> str:
        if not 0 <= doc < len(self._doc_ids):
            raise CollaboratorIOError(f"Unknown internal document id: {doc}")
        return self._doc_ids[doc]

    def close(self) -> None:
        logger.debug("Memory index closed")


def open_index(cfg: Any, analyzer: Any = None, documents: Optional[Iterable[Tuple[str, str, str]]] = None) -> Any:
    """Open the index backend selected in the config.

    Args:
        cfg: Config object (index_backend, index_dir and field names)
        analyzer: Analyzer for the memory backend
        documents: (doc_id, title, body) triples for the memory backend

    Returns:
        A LuceneIndex or MemoryIndex

    Raises:
        ConfigurationError: When the memory backend is chosen without documents or analyzer
        CollaboratorIOError: When the Lucene index cannot be opened
    """
    if cfg.index_backend == "lucene":
        return LuceneIndex(cfg.index_dir, cfg.title_field, cfg.body_field, cfg.id_field)
    if analyzer is None or documents is None:
        raise ConfigurationError("The memory index backend needs an analyzer and a document source")
    return MemoryIndex.from_documents(documents, analyzer)
