"""ChromaVectorIndex — local persistent vector index backed by ChromaDB.

Collections are created with the cosine space, so Chroma's distance is
``1 - cosine_similarity`` and the score reported to callers is
``1 - distance``, clamped to [0, 1].
"""

from __future__ import annotations

import logging

import chromadb

from rulegate_core.vectorstore.base import BaseVectorIndex, SearchHit, VectorPoint

logger = logging.getLogger(__name__)


class ChromaVectorIndex(BaseVectorIndex):
    """Stores rule chunks in a ChromaDB persistent client.

    The database directory defaults to `.rulegate-index` in the current
    working directory. Configure via .rulegate.yml: `vector_store_path`.
    Pass ``client`` to share an existing Chroma client (tests, in-process use).
    """

    def __init__(self, path: str = ".rulegate-index", client=None):
        self._client = client or chromadb.PersistentClient(
            path=path,
            settings=chromadb.Settings(anonymized_telemetry=False),
        )
        self._collections: dict = {}

    def _collection(self, name: str):
        if name not in self._collections:
            self._collections[name] = self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
            )
        return self._collections[name]

    def upsert(self, collection: str, points: list[VectorPoint]) -> None:
        if not points:
            return
        self._collection(collection).upsert(
            ids=[p.id for p in points],
            embeddings=[p.vector for p in points],
            # Chroma metadata values must be str/int/float/bool; drop None.
            metadatas=[{k: v for k, v in p.payload.items() if v is not None} for p in points],
            documents=[p.payload.get("text", "") for p in points],
        )

    def search(self, collection: str, vector: list[float], limit: int, where: dict | None = None) -> list[SearchHit]:
        coll = self._collection(collection)
        count = coll.count()
        if count == 0:
            return []

        result = coll.query(
            query_embeddings=[vector],
            n_results=min(limit, count),
            where=where or None,
            include=["metadatas", "distances"],
        )

        ids = result["ids"][0]
        metadatas = result["metadatas"][0]
        distances = result["distances"][0]
        hits = [
            SearchHit(id=point_id, score=max(0.0, min(1.0, 1.0 - distance)), payload=dict(metadata or {}))
            for point_id, metadata, distance in zip(ids, metadatas, distances)
        ]
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits

    def delete_by_tag(self, collection: str, value: str, key: str = "tag") -> int:
        coll = self._collection(collection)
        existing = coll.get(where={key: value}, include=[])
        ids = existing["ids"]
        if ids:
            coll.delete(ids=ids)
        logger.debug("Deleted %d point(s) from %s where %s=%s", len(ids), collection, key, value)
        return len(ids)
