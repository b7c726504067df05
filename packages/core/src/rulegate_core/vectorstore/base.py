"""Abstract vector index interface.

The retriever and indexer depend on BaseVectorIndex, not on a concrete
backend, so the index can be swapped (Chroma locally, a hosted service in
production) without touching pipeline code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class VectorPoint:
    id: str
    vector: list[float]
    payload: dict = field(default_factory=dict)


@dataclass
class SearchHit:
    """One search result. ``score`` is a cosine similarity in [0, 1]."""

    id: str
    score: float
    payload: dict = field(default_factory=dict)


class BaseVectorIndex(ABC):
    @abstractmethod
    def upsert(self, collection: str, points: list[VectorPoint]) -> None:
        """Insert or replace points by id."""

    @abstractmethod
    def search(self, collection: str, vector: list[float], limit: int, where: dict | None = None) -> list[SearchHit]:
        """Return up to ``limit`` hits by descending cosine similarity.

        ``where`` is an equality filter on payload keys, e.g. ``{"tag": "rules"}``.
        """

    @abstractmethod
    def delete_by_tag(self, collection: str, value: str, key: str = "tag") -> int:
        """Delete every point whose payload ``key`` equals ``value``; return the count."""

    def close(self) -> None:
        """Release any resources held by the index. Default is a no-op."""
