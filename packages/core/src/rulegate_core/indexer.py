"""Chunk-and-embed ingestion of rule documents into the vector index."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from rulegate_core.chunker import split_into_chunks
from rulegate_core.config import ReviewSettings
from rulegate_core.providers.base import BaseEmbedder
from rulegate_core.vectorstore.base import BaseVectorIndex, VectorPoint

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.MULTILINE)


@dataclass
class IndexReport:
    documents_indexed: int = 0
    chunks_created: int = 0
    failed: dict[str, str] = field(default_factory=dict)


def document_title(path: Path, text: str) -> str:
    """The first top-level Markdown heading, else the file stem."""
    match = _HEADING_RE.search(text)
    return match.group(1) if match else path.stem


class RuleIndexer:
    def __init__(self, embedder: BaseEmbedder, index: BaseVectorIndex, settings: ReviewSettings):
        self.embedder = embedder
        self.index = index
        self.settings = settings

    def index_document(
        self,
        doc_id: str,
        title: str,
        text: str,
        source_url: str = "",
        tag: str | None = None,
    ) -> int:
        """Replace every chunk of ``doc_id`` with fresh ones; return how many were created.

        Re-indexing a document never leaves stale chunks behind: its previous
        points are deleted first, even when the new text is empty.
        """
        s = self.settings
        removed = self.index.delete_by_tag(s.rules_collection, doc_id, key="doc_id")
        if removed:
            logger.debug("Removed %d old chunk(s) of %s", removed, doc_id)

        if not text.strip():
            logger.info("Skipping %s: empty document", doc_id)
            return 0

        chunks = split_into_chunks(text, s.chunk_size, s.chunk_overlap)
        points = []
        for i, chunk in enumerate(chunks):
            points.append(
                VectorPoint(
                    id=f"{doc_id}:{i}",
                    vector=self.embedder.embed(chunk).vector,
                    payload={
                        "text": chunk,
                        "title": title,
                        "source_url": source_url,
                        "doc_id": doc_id,
                        "tag": tag or s.rules_tag,
                        "chunk_index": i,
                        "total_chunks": len(chunks),
                    },
                )
            )
        self.index.upsert(s.rules_collection, points)
        logger.info("Indexed %s: %d chunk(s)", title, len(points))
        return len(points)

    def index_paths(self, paths: list[Path]) -> IndexReport:
        """Index Markdown/text files, keyed by their path.

        A document that fails is logged and recorded in the report; the rest
        of the batch still runs.
        """
        report = IndexReport()
        for path in paths:
            doc_id = path.as_posix()
            try:
                text = path.read_text(encoding="utf-8")
                report.chunks_created += self.index_document(doc_id, document_title(path, text), text)
                report.documents_indexed += 1
            except Exception as e:
                logger.error("Failed to index %s: %s", doc_id, e)
                report.failed[doc_id] = str(e)
        return report

    def remove_document(self, doc_id: str) -> int:
        return self.index.delete_by_tag(self.settings.rules_collection, doc_id, key="doc_id")
