"""Similarity retrieval of rule chunks with adaptive threshold relaxation."""

from __future__ import annotations

import logging

from rulegate_core.config import ReviewSettings
from rulegate_core.errors import RetrievalError
from rulegate_core.models import RuleChunk
from rulegate_core.providers.base import BaseEmbedder
from rulegate_core.vectorstore.base import BaseVectorIndex, SearchHit

logger = logging.getLogger(__name__)


def relaxed_threshold(best_score: float, floor: float, margin: float) -> float | None:
    """Return the one-off relaxed threshold, or None when the best hit is below the floor."""
    if best_score < floor:
        return None
    return max(floor, best_score - margin)


def filter_hits(hits: list[SearchHit], min_score: float, floor: float, margin: float) -> list[SearchHit]:
    """Keep hits with ``score >= min_score``, relaxing the bar once if nothing passes.

    The relaxed bar is ``max(floor, best - margin)``. It only applies when the
    best score reaches ``floor``; otherwise the result is empty.
    """
    ranked = sorted(hits, key=lambda h: h.score, reverse=True)
    kept = [h for h in ranked if h.score >= min_score]
    if kept or not ranked:
        return kept

    threshold = relaxed_threshold(ranked[0].score, floor, margin)
    if threshold is None:
        return []
    logger.info(
        "No hit reached %.2f; relaxing threshold to %.2f (best score %.3f)",
        min_score,
        threshold,
        ranked[0].score,
    )
    return [h for h in ranked if h.score >= threshold]


def _to_chunk(hit: SearchHit) -> RuleChunk:
    payload = hit.payload
    return RuleChunk(
        text=payload.get("text", ""),
        title=payload.get("title") or "Unknown",
        source_url=payload.get("source_url", ""),
        similarity_score=hit.score,
    )


class RuleRetriever:
    """Embed a query and return the rule chunks that clear the similarity bar.

    An empty result means "insufficient evidence", never an error.
    """

    def __init__(self, embedder: BaseEmbedder, index: BaseVectorIndex, settings: ReviewSettings):
        self.embedder = embedder
        self.index = index
        self.settings = settings

    def retrieve(self, query: str, tag: str | None = None, min_score: float | None = None) -> list[RuleChunk]:
        """Return rule chunks ranked by descending similarity.

        Args:
            query: free text to embed.
            tag: restrict the search to points whose ``tag`` payload matches.
            min_score: primary bar; defaults to ``settings.rule_min_score``.

        Raises:
            RetrievalError: if the embedding or the search call fails.
        """
        s = self.settings
        bar = s.rule_min_score if min_score is None else min_score

        try:
            vector = self.embedder.embed(query).vector
        except Exception as e:
            raise RetrievalError(f"Embedding failed: {e}") from e

        try:
            hits = self.index.search(s.rules_collection, vector, s.top_k, where={"tag": tag} if tag else None)
        except Exception as e:
            raise RetrievalError(f"Vector search failed: {e}") from e

        kept = filter_hits(hits, bar, s.relax_floor, s.relax_margin)
        if not kept:
            logger.info("No rule chunks with sufficient similarity (min score: %.2f)", bar)
            return []

        logger.debug(
            "Retrieved %d chunk(s) (avg score: %.3f)",
            len(kept),
            sum(h.score for h in kept) / len(kept),
        )
        return [_to_chunk(h) for h in kept]
