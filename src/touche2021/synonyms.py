"""
Synonym expansion module.

Looks up single-word synonym candidates for query terms in a lexical database.
The default database is WordNet through NLTK; any object with a
lookup_synonyms(term, part_of_speech) method can stand in for it.
"""
import logging
from typing import Dict, FrozenSet, List, Protocol, Tuple

from .analysis import ensure_nltk_resource


logger = logging.getLogger(__name__)


NOUN = "noun"
ADJECTIVE = "adjective"

# Senses consulted for every term, in lookup order
PARTS_OF_SPEECH: Tuple[str, ...] = (NOUN, ADJECTIVE)


class LexicalDatabase(Protocol):
    """External lexical knowledge base."""

    def lookup_synonyms(self, term: str, part_of_speech: str) -> List[str]:
        """Return every word form of every sense of term for the given part of speech."""
        ...


class WordNetDatabase:
    """WordNet senses through nltk.corpus.wordnet.

    Multi-word lemmas come back with spaces (WordNet stores them with underscores),
    so callers can recognise and drop them.
    """

    def __init__(self, download: bool = True) -> None:
        """Open the WordNet corpus.

        Args:
            download: Whether to download the corpus when it is not installed

        Raises:
            CollaboratorIOError: When the corpus is unavailable
        """
        ensure_nltk_resource("corpora/wordnet", "wordnet", download=download)
        from nltk.corpus import wordnet

        self._wn = wordnet
        self._pos = {NOUN: wordnet.NOUN, ADJECTIVE: wordnet.ADJ}
        logger.debug("WordNet database loaded")

    def lookup_synonyms(self, term: str, part_of_speech: str) -> List[str]:
        pos = self._pos[part_of_speech]
        forms = []
        for synset in self._wn.synsets(term, pos=pos):
            forms.extend(name.replace("_", " ") for name in synset.lemma_names())
        return forms


class SynonymExpander:
    """Single-word synonym lookup with per-instance memoisation.

    Attributes:
        database: The lexical database consulted on cache misses
    """

    def __init__(self, database: LexicalDatabase) -> None:
        self.database = database
        self._cache: Dict[str, FrozenSet[str]] = {}
        self._hits = 0
        self._misses = 0

    def lookup(self, term: str) -> FrozenSet[str]:
        """Return the single-word synonyms of term.

        Noun and adjective senses are flattened, lower-cased and deduplicated;
        multi-word forms and the term itself are dropped. A term unknown to the
        database yields an empty set.

        Args:
            term: Normalized (lower-cased) query term

        Returns:
            FrozenSet[str]: The synonym set, possibly empty
        """
        cached = self._cache.get(term)
        if cached is not None:
            self._hits += 1
            return cached

        self._misses += 1
        synonyms = set()
        for pos in PARTS_OF_SPEECH:
            for form in self.database.lookup_synonyms(term, pos) or ():
                form = form.lower()
                if any(ch.isspace() for ch in form) or form == term:
                    continue
                synonyms.add(form)

        result = frozenset(synonyms)
        self._cache[term] = result
        logger.debug(f"Synonyms for '{term}': {sorted(result)}")
        return result

    def cache_info(self) -> Dict[str, int]:
        """Cache counters, used for progress reporting."""
        return {"hits": self._hits, "misses": self._misses, "size": len(self._cache)}
