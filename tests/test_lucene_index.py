"""Translation of query trees into Lucene queries, checked against recording stand-ins of the JVM classes."""
from collections import namedtuple
from types import SimpleNamespace

import pytest

from touche2021.errors import ConfigurationError
from touche2021.index import LuceneIndex
from touche2021.query import Disjunction, Field, ProximityGroup, TermGroup


Term = namedtuple("Term", "field text")
TermQuery = namedtuple("TermQuery", "term")
BoostQuery = namedtuple("BoostQuery", "query boost")
BooleanQuery = namedtuple("BooleanQuery", "clauses")
PhraseQuery = namedtuple("PhraseQuery", "positions slop")


class BooleanQueryBuilder:
    def __init__(self):
        self.clauses = []

    def add(self, query, occur):
        self.clauses.append((query, occur))

    def build(self):
        return BooleanQuery(tuple(self.clauses))


class PhraseQueryBuilder:
    def __init__(self):
        self.positions = []
        self.slop = 0

    def add(self, term, position):
        self.positions.append((term, position))

    def setSlop(self, slop):
        self.slop = slop

    def build(self):
        return PhraseQuery(tuple(self.positions), self.slop)


@pytest.fixture
def lucene_index():
    index = LuceneIndex.__new__(LuceneIndex)
    index.field_names = {Field.TITLE: "conclusion", Field.BODY: "premises"}
    index._JTerm = Term
    index._JTermQuery = TermQuery
    index._JBoostQuery = BoostQuery
    index._JBooleanQueryBuilder = BooleanQueryBuilder
    index._JPhraseQueryBuilder = PhraseQueryBuilder
    index._JOccur = SimpleNamespace(SHOULD="SHOULD")
    return index


def test_term_group_boosts(lucene_index):
    group = TermGroup(field=Field.TITLE, terms=(("vaping", 1.0), ("good", 0.2)), boost=0.3)

    query = lucene_index.to_lucene_query(group)

    assert query == BoostQuery(
        BooleanQuery((
            (TermQuery(Term("conclusion", "vaping")), "SHOULD"),
            (BoostQuery(TermQuery(Term("conclusion", "good")), 0.2), "SHOULD"),
        )),
        0.3,
    )


def test_proximity_slop_is_the_distance(lucene_index):
    group = ProximityGroup(field=Field.BODY, pairs=(("vaping", "safe", 12), ("safe", "good", 12)), boost=0.75)

    query = lucene_index.to_lucene_query(group)

    assert isinstance(query, BoostQuery)
    assert query.boost == 0.75
    phrases = [clause for clause, _ in query.query.clauses]
    assert phrases == [
        PhraseQuery(((Term("premises", "vaping"), 0), (Term("premises", "safe"), 1)), 12),
        PhraseQuery(((Term("premises", "safe"), 0), (Term("premises", "good"), 1)), 12),
    ]


def test_disjunction_wraps_only_weighted_children(lucene_index):
    title = TermGroup(field=Field.TITLE, terms=(("vaping", 1.0),), boost=0.3)
    body = TermGroup(field=Field.BODY, terms=(("vaping", 1.0),), boost=1.0)

    query = lucene_index.to_lucene_query(Disjunction(children=(title, body), weights=(2.0, 1.0)))

    (first, occur_a), (second, occur_b) = query.clauses
    assert occur_a == occur_b == "SHOULD"
    assert first == BoostQuery(lucene_index.to_lucene_query(title), 2.0)
    assert second == lucene_index.to_lucene_query(body)


def test_unknown_node_is_rejected(lucene_index):
    with pytest.raises(ConfigurationError):
        lucene_index.to_lucene_query("title:vaping")
