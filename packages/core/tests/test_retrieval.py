"""Tests for rule retrieval and adaptive threshold relaxation."""

from unittest.mock import MagicMock

import pytest

from rulegate_core.config import ReviewSettings
from rulegate_core.errors import RetrievalError
from rulegate_core.providers.base import EmbeddingResult
from rulegate_core.retrieval import RuleRetriever, filter_hits, relaxed_threshold
from rulegate_core.vectorstore.base import SearchHit


def _hit(score, title="Rule", **payload):
    return SearchHit(id=f"{title}:{score}", score=score, payload={"text": f"{title} text", "title": title, **payload})


def _retriever(hits, settings=None):
    embedder = MagicMock()
    embedder.embed.return_value = EmbeddingResult(vector=[0.1, 0.2])
    index = MagicMock()
    index.search.return_value = hits
    return RuleRetriever(embedder, index, settings or ReviewSettings()), embedder, index


class TestRelaxedThreshold:
    def test_below_floor_gives_none(self):
        assert relaxed_threshold(0.2, floor=0.25, margin=0.05) is None

    def test_never_below_floor(self):
        assert relaxed_threshold(0.28, floor=0.25, margin=0.05) == 0.25

    def test_best_minus_margin(self):
        assert relaxed_threshold(0.45, floor=0.25, margin=0.05) == pytest.approx(0.40)


class TestFilterHits:
    def test_keeps_hits_at_or_above_min_score(self):
        hits = [_hit(0.4), _hit(0.6), _hit(0.5)]
        kept = filter_hits(hits, min_score=0.5, floor=0.25, margin=0.05)
        assert [h.score for h in kept] == [0.6, 0.5]

    def test_relaxes_once_when_nothing_passes(self):
        hits = [_hit(0.3, "A"), _hit(0.27, "B"), _hit(0.22, "C")]
        kept = filter_hits(hits, min_score=0.5, floor=0.25, margin=0.05)
        # threshold = max(0.25, 0.3 - 0.05) = 0.25
        assert [h.payload["title"] for h in kept] == ["A", "B"]

    def test_no_relaxation_when_best_below_floor(self):
        assert filter_hits([_hit(0.2), _hit(0.1)], min_score=0.5, floor=0.25, margin=0.05) == []

    def test_no_hits(self):
        assert filter_hits([], min_score=0.5, floor=0.25, margin=0.05) == []

    def test_relaxed_results_never_include_scores_below_floor(self):
        kept = filter_hits([_hit(0.26), _hit(0.24)], min_score=0.5, floor=0.25, margin=0.05)
        assert [h.score for h in kept] == [0.26]


class TestRuleRetriever:
    def test_returns_chunks_ordered_by_score(self):
        retriever, _, _ = _retriever([_hit(0.55, "B", source_url="u"), _hit(0.9, "A")])
        chunks = retriever.retrieve("query")
        assert [c.title for c in chunks] == ["A", "B"]
        assert chunks[1].source_url == "u"
        assert chunks[0].similarity_score == 0.9

    def test_best_score_03_relaxes(self):
        retriever, _, _ = _retriever([_hit(0.3)])
        assert len(retriever.retrieve("query")) == 1

    def test_best_score_02_returns_empty(self):
        retriever, _, _ = _retriever([_hit(0.2)])
        assert retriever.retrieve("query") == []

    def test_explicit_min_score_overrides_default(self):
        retriever, _, _ = _retriever([_hit(0.4)])
        assert len(retriever.retrieve("query", min_score=0.35)) == 1

    def test_tag_becomes_where_filter(self):
        retriever, embedder, index = _retriever([])
        retriever.retrieve("query", tag="rules")
        embedder.embed.assert_called_once_with("query")
        index.search.assert_called_once_with("coding_rules", [0.1, 0.2], 10, where={"tag": "rules"})

    def test_no_tag_searches_everything(self):
        retriever, _, index = _retriever([])
        retriever.retrieve("query")
        assert index.search.call_args.kwargs["where"] is None

    def test_missing_title_defaults_to_unknown(self):
        retriever, _, _ = _retriever([SearchHit(id="1", score=0.8, payload={"text": "t"})])
        chunk = retriever.retrieve("q")[0]
        assert chunk.title == "Unknown"
        assert chunk.source_url == ""

    def test_embedding_failure_raises_retrieval_error(self):
        retriever, embedder, _ = _retriever([])
        embedder.embed.side_effect = RuntimeError("timeout")
        with pytest.raises(RetrievalError, match="Embedding failed"):
            retriever.retrieve("q")

    def test_search_failure_raises_retrieval_error(self):
        retriever, _, index = _retriever([])
        index.search.side_effect = RuntimeError("index down")
        with pytest.raises(RetrievalError, match="Vector search failed"):
            retriever.retrieve("q")
