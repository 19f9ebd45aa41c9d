"""Tests for concurrent best-match retrieval."""
import threading
from unittest.mock import patch

import pytest
from langchain_core.documents import Document
from pydantic import ValidationError

from ragdb.errors import RetrievalCancelled, RetrievalTimeoutError
from ragdb.query.retriever import (
    NO_MATCH,
    BestMatch,
    KeywordRetriever,
    SearchResult,
    get_retriever,
    retrieve,
    select_best,
)
from ragdb.query.score import ScoringWeights
from ragdb.query.synonyms import EMPTY_TABLE, SynonymTable


class TestRetrieve:
    def test_weather_scenario(self, weather_corpus, cold_table) -> None:
        best = retrieve(weather_corpus, "天气冷不冷", cold_table)
        assert best.document is weather_corpus[0]
        assert best.score == 5.0
        assert best.matched
        assert best.context == "今天天气很冷，建议穿外套"

    def test_exact_document_query_with_empty_table(self, weather_corpus) -> None:
        best = retrieve(weather_corpus, "Go是一种编程语言", EMPTY_TABLE)
        assert best.document is weather_corpus[1]
        assert best.score == 10.0

    def test_empty_corpus(self, cold_table) -> None:
        best = retrieve([], "冷", cold_table)
        assert best.document is None
        assert best.score == 0.0
        assert best == NO_MATCH

    def test_no_match(self, weather_corpus, cold_table) -> None:
        best = retrieve(weather_corpus, "下雨", cold_table)
        assert best.document is None
        assert best.score == 0.0
        assert not best.matched
        assert best.context == ""

    def test_empty_query_picks_first_document(self, weather_corpus) -> None:
        best = retrieve(weather_corpus, "", EMPTY_TABLE)
        assert best.document is weather_corpus[0]
        assert best.score == 10.0

    def test_highest_score_wins(self, make_corpus, cold_table) -> None:
        corpus = make_corpus("天气冷", "很冷很冷", "编程")
        best = retrieve(corpus, "很冷", cold_table)
        assert best.document is corpus[1]
        assert best.score == 15.0

    def test_ties_go_to_lowest_index_across_batches(self, make_corpus) -> None:
        corpus = make_corpus(*[f"doc {i} 冷" for i in range(200)])
        for _ in range(10):
            best = retrieve(corpus, "冷", EMPTY_TABLE, max_workers=8, batch_size=7)
            assert best.document is corpus[0]

    def test_same_result_regardless_of_pool_shape(self, make_corpus, cold_table) -> None:
        corpus = make_corpus(*(["无关"] * 50 + ["很冷", "天气很冷"] + ["无关"] * 50))
        expected = retrieve(corpus, "很冷", cold_table, max_workers=1, batch_size=1000)
        for workers, batch in [(1, 1), (4, 3), (16, 10), (32, 1)]:
            assert retrieve(corpus, "很冷", cold_table, max_workers=workers, batch_size=batch) == expected
        assert expected.document is corpus[50]

    def test_rejects_bad_pool_arguments(self, weather_corpus) -> None:
        with pytest.raises(ValueError):
            retrieve(weather_corpus, "冷", EMPTY_TABLE, max_workers=0)
        with pytest.raises(ValueError):
            retrieve(weather_corpus, "冷", EMPTY_TABLE, batch_size=0)

    def test_scoring_error_propagates(self, weather_corpus) -> None:
        with patch("ragdb.query.retriever.score_document", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError, match="boom"):
                retrieve(weather_corpus, "冷", EMPTY_TABLE)

    def test_pre_set_cancel_event_raises(self, weather_corpus) -> None:
        event = threading.Event()
        event.set()
        with pytest.raises(RetrievalCancelled):
            retrieve(weather_corpus, "冷", EMPTY_TABLE, cancel_event=event)

    def test_cancel_during_scoring_stops_early(self, make_corpus) -> None:
        corpus = make_corpus(*[f"doc {i}" for i in range(10)])
        event = threading.Event()
        calls: list[int] = []

        def scoring(*args, **kwargs):
            calls.append(1)
            if len(calls) == 3:
                event.set()
            return 1.0

        with patch("ragdb.query.retriever.score_document", side_effect=scoring):
            with pytest.raises(RetrievalCancelled):
                retrieve(
                    corpus, "doc", EMPTY_TABLE,
                    max_workers=1, batch_size=100, cancel_event=event,
                )
        assert len(calls) == 3

    def test_scores_on_pool_threads(self, make_corpus) -> None:
        corpus = make_corpus(*[f"doc {i}" for i in range(20)])
        names: set[str] = set()

        def scoring(*args, **kwargs):
            names.add(threading.current_thread().name)
            return 1.0

        with patch("ragdb.query.retriever.score_document", side_effect=scoring):
            best = retrieve(corpus, "doc", EMPTY_TABLE, max_workers=4, batch_size=5)
        assert best.document is corpus[0]
        assert names
        assert all(n.startswith("ragdb-score") for n in names)
        assert threading.current_thread().name not in names

    def test_timeout_raises_and_sets_event(self, weather_corpus) -> None:
        release = threading.Event()

        def slow_score(*args, **kwargs):
            release.wait(5)
            return 0.0

        event = threading.Event()
        with patch("ragdb.query.retriever.score_document", side_effect=slow_score):
            with pytest.raises(RetrievalTimeoutError):
                retrieve(weather_corpus, "冷", EMPTY_TABLE, timeout=0.05, cancel_event=event)
        release.set()
        assert event.is_set()

    def test_timeout_error_is_a_timeout(self) -> None:
        assert issubclass(RetrievalTimeoutError, TimeoutError)


class TestSelectBest:
    def test_ignores_arrival_order(self) -> None:
        a = Document(page_content="a")
        b = Document(page_content="b")
        results = [SearchResult(b, 5.0, 3), SearchResult(a, 5.0, 1)]
        assert select_best(results) == BestMatch(document=a, score=5.0)
        assert select_best(list(reversed(results))) == BestMatch(document=a, score=5.0)

    def test_strictly_greater_score_wins(self) -> None:
        a = Document(page_content="a")
        b = Document(page_content="b")
        results = [SearchResult(a, 5.0, 0), SearchResult(b, 15.0, 9)]
        assert select_best(results).document is b

    def test_zero_scores_are_not_matches(self) -> None:
        assert select_best([SearchResult(Document(page_content="a"), 0.0, 0)]) == NO_MATCH
        assert select_best([]) == NO_MATCH


class TestKeywordRetriever:
    def test_invoke_returns_best_with_score(self, weather_corpus, cold_table) -> None:
        retriever = KeywordRetriever(corpus=weather_corpus, synonyms=cold_table)
        docs = retriever.invoke("天气冷不冷")
        assert len(docs) == 1
        assert docs[0].page_content == "今天天气很冷，建议穿外套"
        assert docs[0].metadata["score"] == 5.0
        assert docs[0].metadata["index"] == 0
        assert "score" not in weather_corpus[0].metadata

    def test_invoke_returns_empty_on_no_match(self, weather_corpus, cold_table) -> None:
        retriever = KeywordRetriever(corpus=weather_corpus, synonyms=cold_table)
        assert retriever.invoke("下雨") == []

    def test_keeps_table_and_weights_instances(self, weather_corpus, cold_table) -> None:
        weights = ScoringWeights(literal=1.0, topic=1.0)
        retriever = KeywordRetriever(corpus=weather_corpus, synonyms=cold_table, weights=weights)
        assert retriever.synonyms is cold_table
        assert retriever.weights is weights

    def test_rejects_untyped_synonyms_and_weights(self, weather_corpus, cold_table) -> None:
        with pytest.raises(ValidationError):
            KeywordRetriever(corpus=weather_corpus, synonyms={"冷": ["寒冷"]})
        with pytest.raises(ValidationError):
            KeywordRetriever(corpus=weather_corpus, synonyms=cold_table, weights=(10.0, 5.0, 0.0))

    def test_best_match(self, weather_corpus, cold_table) -> None:
        retriever = KeywordRetriever(
            corpus=weather_corpus, synonyms=cold_table, max_workers=2, batch_size=1
        )
        best = retriever.best_match("编程")
        assert best.context == "Go是一种编程语言"
        assert best.score == 10.0


def test_get_retriever_loads_configured_paths(tmp_path) -> None:
    corpus_dir = tmp_path / "corpus"
    corpus_dir.mkdir()
    (corpus_dir / "data.txt").write_text("今天天气很冷\n\nGo是一种编程语言\n", encoding="utf-8")
    synonyms_path = tmp_path / "synonyms.json"
    synonyms_path.write_text('{"synonyms": {"冷": ["寒冷"]}}', encoding="utf-8")

    with patch("ragdb.query.retriever.CORPUS_DIR", corpus_dir), patch(
        "ragdb.query.retriever.SYNONYMS_PATH", synonyms_path
    ):
        retriever = get_retriever()

    assert [d.page_content for d in retriever.corpus] == ["今天天气很冷", "Go是一种编程语言"]
    assert retriever.synonyms.get("冷") == ("寒冷",)
    assert retriever.best_match("寒冷吗").context == "今天天气很冷"


def test_get_retriever_uses_given_data(weather_corpus) -> None:
    table = SynonymTable.from_mapping({})
    retriever = get_retriever(corpus=weather_corpus, synonyms=table, timeout=None)
    assert retriever.corpus == weather_corpus
    assert retriever.timeout is None
