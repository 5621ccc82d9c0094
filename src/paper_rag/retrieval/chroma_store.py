"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import chromadb

from paper_rag.config import settings
from paper_rag.exceptions import StoreError
from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.models import CHUNK_TEXT_FIELD, ScrollPage, StoredPoint

if TYPE_CHECKING:
    from collections.abc import Sequence

    from paper_rag.retrieval.models import ChunkPoint

logger = logging.getLogger(__name__)

# Chroma's names for the supported distance functions.
_SPACES = {"cosine": "cosine", "dot": "ip", "euclid": "l2"}


def _collection_names(client: Any) -> set[str]:
    # chromadb < 0.6 returns Collection objects, later versions plain names.
    return {c if isinstance(c, str) else c.name for c in client.list_collections()}


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    The chunk payload is stored as Chroma metadata, and the chunk text is
    also kept as the Chroma document.  Chroma filters on metadata without
    a separate index, and its pagination cursor is a plain row offset.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    client:
        Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        collection_name: str = settings.chunk_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        client: Any = None,
    ) -> None:
        super().__init__(collection_name)
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._collection: Any = None

    def _get_collection(self) -> Any:
        if self._collection is None:
            try:
                self._collection = self._client.get_or_create_collection(self.collection_name)
            except Exception as exc:
                raise StoreError(f"Failed to open Chroma collection {self.collection_name!r}: {exc}") from exc
        return self._collection

    # -- VectorStoreBase overrides --------------------------------------------

    def recreate_collection(self, vector_size: int, distance: str = "cosine") -> None:
        space = _SPACES.get(distance.lower())
        if space is None:
            raise ValueError(f"Unsupported distance metric: {distance!r}")
        name = self.collection_name

        try:
            if name in _collection_names(self._client):
                logger.info("Chroma collection %r already exists. Deleting...", name)
                self._client.delete_collection(name)
            self._collection = self._client.create_collection(
                name=name,
                metadata={"hnsw:space": space, "vector_size": vector_size},
            )
        except Exception as exc:
            self._collection = None
            raise StoreError(f"Failed to recreate Chroma collection {name!r}: {exc}") from exc
        logger.info("Created Chroma collection: %s (space=%s)", name, space)

    def upsert(self, points: Sequence[ChunkPoint], *, batch_size: int = 100) -> int:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        collection = self._get_collection()
        written = 0
        for start in range(0, len(points), batch_size):
            batch = points[start : start + batch_size]
            try:
                collection.upsert(
                    ids=[p.id for p in batch],
                    embeddings=[p.vector for p in batch],
                    documents=[p.payload.get(CHUNK_TEXT_FIELD, "") for p in batch],
                    metadatas=[dict(p.payload) for p in batch],
                )
            except Exception as exc:
                raise StoreError(
                    f"Failed to upsert {len(batch)} points into {self.collection_name!r}: {exc}"
                ) from exc
            written += len(batch)
        return written

    def scroll_by_filter(
        self,
        field: str,
        value: Any,
        *,
        limit: int = 500,
        cursor: Any = None,
    ) -> ScrollPage:
        offset = int(cursor or 0)
        try:
            result = self._get_collection().get(
                where={field: {"$eq": value}},
                limit=limit,
                offset=offset,
                include=["metadatas"],
            )
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Failed to read {self.collection_name!r}: {exc}") from exc

        ids = result.get("ids") or []
        metas = result.get("metadatas") or [None] * len(ids)
        points = [StoredPoint(id=str(i), payload=dict(m or {})) for i, m in zip(ids, metas)]
        next_cursor = offset + len(points) if len(points) == limit else None
        return ScrollPage(points=points, next_cursor=next_cursor)

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
