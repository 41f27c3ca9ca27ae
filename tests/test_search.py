import pytest

from touche2021.analysis import Analyzer
from touche2021.compose import FieldQueryBuilder, QueryComposer
from touche2021.data import AnalyzedTopic, Topic
from touche2021.errors import CompositionError, ConfigurationError
from touche2021.index import MemoryIndex
from touche2021.search import RankedList, RetrievalOrchestrator, ScoredDocument
from touche2021.strategies import NDCG_MAXIMIZER, SimilarityKind
from touche2021.synonyms import NOUN, SynonymExpander
from touche2021.trec_io import TrecRunWriter

from conftest import FakeLexicalDatabase


TOPICS = [
    Topic(topic_id="1", title="Is vaping safe?", description="Vaping and health."),
    Topic(topic_id="2", title="Should schools have uniforms?", description=""),
]


def make_orchestrator(index, composer, analyzer, similarities, **kwargs):
    kwargs.setdefault("max_docs", 1000)
    return RetrievalOrchestrator(index, composer, analyzer, similarities, **kwargs)


@pytest.mark.parametrize("strategy", [0, 1, 2, 3, 4, 5])
def test_rankings_are_bounded_unique_and_sorted(memory_index, composer, analyzer, similarities, strategy):
    orchestrator = make_orchestrator(memory_index, composer, analyzer, similarities, max_docs=3)
    ranking = orchestrator.run_topic(TOPICS[0], strategy)

    assert 0 < len(ranking) <= 3
    doc_ids = [doc.doc_id for doc in ranking]
    assert len(doc_ids) == len(set(doc_ids))
    scores = [doc.score for doc in ranking]
    assert scores == sorted(scores, reverse=True)


def test_ranks_start_at_zero_by_default(memory_index, composer, analyzer, similarities):
    ranking = make_orchestrator(memory_index, composer, analyzer, similarities).run_topic(TOPICS[0], 5)
    assert [doc.rank for doc in ranking] == list(range(len(ranking)))


def test_rank_start_is_configurable(memory_index, composer, analyzer, similarities):
    orchestrator = make_orchestrator(memory_index, composer, analyzer, similarities, rank_start=1)
    ranking = orchestrator.run_topic(TOPICS[0], 5)
    assert ranking.documents[0].rank == 1


def test_rescore_replaces_primary_scores(memory_index, composer, analyzer, similarities):
    orchestrator = make_orchestrator(memory_index, composer, analyzer, similarities)
    ranking = orchestrator.run_topic(TOPICS[0], 1)

    topic = analyzer.analyze_topic(TOPICS[0])
    rescore_query = composer.compose(topic, NDCG_MAXIMIZER)
    memory_index.set_similarity(similarities[SimilarityKind.LANGUAGE_MODEL])
    for doc in ranking:
        internal_id = int(doc.doc_id[1:])
        assert doc.score == pytest.approx(memory_index.rescore(rescore_query, internal_id))


def test_two_phase_switches_similarity(recording_index, composer, analyzer, similarities):
    index = recording_index([(0, 3.0), (1, 2.0), (2, 1.0)], {0: 0.1, 1: 0.9, 2: 0.5})
    ranking = make_orchestrator(index, composer, analyzer, similarities).run_topic(TOPICS[0], 1)

    assert index.similarities == [SimilarityKind.BLENDED, SimilarityKind.LANGUAGE_MODEL]
    assert [doc.doc_id for doc in ranking] == ["doc-1", "doc-2", "doc-0"]
    assert [doc.score for doc in ranking] == [0.9, 0.5, 0.1]


def test_equal_rescores_keep_primary_order(recording_index, composer, analyzer, similarities):
    index = recording_index([(4, 3.0), (2, 2.0), (7, 1.0)], {4: 0.5, 2: 0.5, 7: 0.5})
    ranking = make_orchestrator(index, composer, analyzer, similarities).run_topic(TOPICS[0], 1)
    assert [doc.doc_id for doc in ranking] == ["doc-4", "doc-2", "doc-7"]


def test_single_phase_keeps_primary_scores(recording_index, composer, analyzer, similarities):
    index = recording_index([(0, 3.0), (1, 2.0)])
    ranking = make_orchestrator(index, composer, analyzer, similarities).run_topic(TOPICS[0], 4)

    assert index.similarities == [SimilarityKind.BLENDED]
    assert [doc.score for doc in ranking] == [3.0, 2.0]


def test_primary_search_asks_for_k(recording_index, composer, analyzer, similarities):
    index = recording_index([(i, 10.0 - i) for i in range(5)])
    ranking = make_orchestrator(index, composer, analyzer, similarities, max_docs=2).run_topic(TOPICS[0], 3)

    assert index.searches[0][1] == 2
    assert len(ranking) == 2


def test_analyzed_topics_are_accepted(recording_index, composer, analyzer, similarities):
    index = recording_index([(0, 1.0)])
    topic = AnalyzedTopic(topic_id="x", title_terms=("vaping",))
    ranking = make_orchestrator(index, composer, analyzer, similarities).run_topic(topic, 5)
    assert ranking.topic_id == "x"


def test_non_positive_k_is_rejected(memory_index, composer, analyzer, similarities):
    with pytest.raises(ConfigurationError):
        make_orchestrator(memory_index, composer, analyzer, similarities, max_docs=0)


def test_unknown_error_policy_is_rejected(memory_index, composer, analyzer, similarities):
    with pytest.raises(ConfigurationError):
        make_orchestrator(memory_index, composer, analyzer, similarities, error_policy="retry")


def test_run_writes_every_topic(memory_index, composer, analyzer, similarities, tmp_path):
    orchestrator = make_orchestrator(memory_index, composer, analyzer, similarities, max_docs=2)
    path = tmp_path / "run.txt"
    with TrecRunWriter(path, "shanks-run-5") as writer:
        runs = orchestrator.run(TOPICS, 5, writer=writer)

    assert list(runs) == ["1", "2"]
    assert orchestrator.topics_searched == 2
    assert orchestrator.topics_failed == 0
    assert orchestrator.elapsed_seconds >= 0
    lines = path.read_text().splitlines()
    assert len(lines) == sum(len(r) for r in runs.values())


def test_abort_policy_stops_on_empty_title(memory_index, composer, analyzer, similarities):
    topics = [TOPICS[0], Topic(topic_id="3", title="Is it the?")]
    orchestrator = make_orchestrator(memory_index, composer, analyzer, similarities)

    with pytest.raises(CompositionError):
        orchestrator.run(topics, 5)


def test_skip_policy_leaves_failed_topic_out(memory_index, composer, analyzer, similarities, tmp_path):
    topics = [Topic(topic_id="3", title="Is it the?"), TOPICS[0]]
    orchestrator = make_orchestrator(memory_index, composer, analyzer, similarities, error_policy="skip")
    path = tmp_path / "run.txt"
    with TrecRunWriter(path, "r") as writer:
        runs = orchestrator.run(topics, 5, writer=writer)

    assert list(runs) == ["1"]
    assert orchestrator.topics_failed == 1
    assert all(line.startswith("1\t") for line in path.read_text().splitlines())


def test_ranked_list_validation():
    with pytest.raises(ValueError):
        RankedList("1", [ScoredDocument("a", 1.0, 0), ScoredDocument("a", 0.5, 1)])
    with pytest.raises(ValueError):
        RankedList("1", [ScoredDocument("a", 0.5, 0), ScoredDocument("b", 1.0, 1)])
    assert RankedList("1", [ScoredDocument("a", 1.0, 0)]).as_pairs() == [("a", 1.0)]


def test_hyphenated_synonym_matches_indexed_tokens(similarities):
    analyzer = Analyzer()
    index = MemoryIndex.from_documents(
        [("hit", "", "an e-cigarette study"), ("miss", "", "a smoking study")],
        analyzer,
    )
    expander = SynonymExpander(FakeLexicalDatabase({"vaping": {NOUN: ["e-cigarette"]}}))
    composer = QueryComposer(FieldQueryBuilder(expander, analyzer=analyzer))
    orchestrator = make_orchestrator(index, composer, analyzer, similarities)

    ranking = orchestrator.run_topic(Topic("1", "vaping"), 5)

    assert [doc.doc_id for doc in ranking] == ["hit"]
