"""Tests for chunk-and-embed rule ingestion."""

from unittest.mock import MagicMock

from rulegate_core.config import ReviewSettings
from rulegate_core.indexer import RuleIndexer, document_title
from rulegate_core.providers.base import EmbeddingResult


def _indexer(settings=None):
    embedder = MagicMock()
    embedder.embed.return_value = EmbeddingResult(vector=[0.5, 0.5])
    index = MagicMock()
    index.delete_by_tag.return_value = 0
    return RuleIndexer(embedder, index, settings or ReviewSettings(chunk_size=10, chunk_overlap=2)), embedder, index


def test_document_title_from_heading(tmp_path):
    assert document_title(tmp_path / "x.md", "intro\n# Security Rules\n## Sub") == "Security Rules"


def test_document_title_falls_back_to_stem(tmp_path):
    assert document_title(tmp_path / "naming-rules.md", "no heading here") == "naming-rules"


def test_index_document_replaces_previous_chunks():
    indexer, embedder, index = _indexer()

    created = indexer.index_document("docs/a.md", "A", "x" * 25, source_url="https://wiki/a")

    assert created == 3
    index.delete_by_tag.assert_called_once_with("coding_rules", "docs/a.md", key="doc_id")
    assert embedder.embed.call_count == 3
    collection, points = index.upsert.call_args.args
    assert collection == "coding_rules"
    assert [p.id for p in points] == ["docs/a.md:0", "docs/a.md:1", "docs/a.md:2"]
    assert points[1].payload == {
        "text": "x" * 10,
        "title": "A",
        "source_url": "https://wiki/a",
        "doc_id": "docs/a.md",
        "tag": "rules",
        "chunk_index": 1,
        "total_chunks": 3,
    }


def test_custom_tag():
    indexer, _, index = _indexer()
    indexer.index_document("d", "D", "text", tag="design")
    _, points = index.upsert.call_args.args
    assert points[0].payload["tag"] == "design"


def test_empty_document_still_clears_old_chunks():
    indexer, embedder, index = _indexer()
    assert indexer.index_document("d", "D", "   \n") == 0
    index.delete_by_tag.assert_called_once()
    embedder.embed.assert_not_called()
    index.upsert.assert_not_called()


def test_index_paths_reports_failures_and_continues(tmp_path):
    good = tmp_path / "good.md"
    good.write_text("# Good\nrule")
    bad = tmp_path / "bad.md"
    bad.write_text("# Bad\nrule")
    indexer, embedder, _ = _indexer(ReviewSettings())

    def embed(text):
        if "Bad" in text:
            raise RuntimeError("rate limited")
        return EmbeddingResult(vector=[1.0])

    embedder.embed.side_effect = embed

    report = indexer.index_paths([bad, good])

    assert report.documents_indexed == 1
    assert report.chunks_created == 1
    assert list(report.failed) == [bad.as_posix()]
    assert "rate limited" in report.failed[bad.as_posix()]


def test_remove_document():
    indexer, _, index = _indexer()
    index.delete_by_tag.return_value = 4
    assert indexer.remove_document("docs/a.md") == 4
