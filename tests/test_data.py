from types import SimpleNamespace

import pytest

from touche2021.config import Config
from touche2021.data import Topic, iter_documents, load_qrels, load_topics, read_topics_xml
from touche2021.errors import CollaboratorIOError


TOPICS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<topics>
  <topic>
    <number>10</number>
    <title>Should suicide be a criminal offense?</title>
    <description>A user is wondering
      whether suicide should be punished.</description>
    <narrative>Highly relevant arguments
discuss the question.</narrative>
  </topic>
  <topic>
    <number>2</number>
    <title>Is vaping with e-cigarettes safe?</title>
    <description>Vaping.</description>
    <narrative></narrative>
  </topic>
</topics>
"""


class FakeDataset:
    def __init__(self, queries=(), docs=(), qrels=()):
        self._queries, self._docs, self._qrels = list(queries), list(docs), list(qrels)

    def queries_iter(self):
        return iter(self._queries)

    def docs_iter(self):
        return iter(self._docs)

    def qrels_iter(self):
        return iter(self._qrels)


def test_read_topics_xml(tmp_path):
    path = tmp_path / "topics.xml"
    path.write_text(TOPICS_XML, encoding="utf-8")

    topics = read_topics_xml(str(path))

    assert [t.topic_id for t in topics] == ["2", "10"]
    assert topics[0] == Topic(topic_id="2", title="Is vaping with e-cigarettes safe?", description="Vaping.")
    assert "\n" not in topics[1].description
    assert topics[1].narrative == "Highly relevant argumentsdiscuss the question."


def test_read_topics_xml_missing_file(tmp_path):
    with pytest.raises(CollaboratorIOError):
        read_topics_xml(str(tmp_path / "missing.xml"))


def test_read_topics_xml_malformed(tmp_path):
    path = tmp_path / "topics.xml"
    path.write_text("<topics><topic>", encoding="utf-8")
    with pytest.raises(CollaboratorIOError):
        read_topics_xml(str(path))


def test_load_topics_sorts_numerically():
    ds = FakeDataset(queries=[
        SimpleNamespace(query_id="11", title="b", description="d\n", narrative="n"),
        SimpleNamespace(query_id="3", title="a", description="d", narrative="n"),
    ])
    assert [t.topic_id for t in load_topics(ds)] == ["3", "11"]


def test_iter_documents_maps_conclusion_and_premises():
    ds = FakeDataset(docs=[
        SimpleNamespace(doc_id="a", conclusion="Vaping is safe", premises_texts="It is safer than smoking."),
        SimpleNamespace(doc_id="b", conclusion="", premises_texts=""),
        SimpleNamespace(doc_id="c", conclusion="Uniforms", premises_texts="They help."),
    ])
    assert list(iter_documents(ds, Config())) == [
        ("a", "Vaping is safe", "It is safer than smoking."),
        ("c", "Uniforms", "They help."),
    ]


def test_iter_documents_respects_limit():
    ds = FakeDataset(docs=[
        SimpleNamespace(doc_id=str(i), conclusion="c", premises_texts="p") for i in range(5)
    ])
    assert len(list(iter_documents(ds, Config(max_corpus_docs=2)))) == 2


def test_load_qrels():
    qrels = [SimpleNamespace(query_id="1", doc_id="a", relevance=2)]
    assert load_qrels(FakeDataset(qrels=qrels)) == qrels
