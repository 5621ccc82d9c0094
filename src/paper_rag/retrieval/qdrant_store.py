"""Qdrant implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from paper_rag.config import settings
from paper_rag.exceptions import StoreError
from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.models import DOCUMENT_ID_FIELD, ScrollPage, StoredPoint

if TYPE_CHECKING:
    from collections.abc import Sequence

    from paper_rag.retrieval.models import ChunkPoint

logger = logging.getLogger(__name__)

_DISTANCES = {
    "cosine": Distance.COSINE,
    "dot": Distance.DOT,
    "euclid": Distance.EUCLID,
}


def _to_distance(name: str) -> Distance:
    try:
        return _DISTANCES[name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported distance metric: {name!r}") from None


def _match_filter(field: str, value: Any) -> Filter:
    return Filter(must=[FieldCondition(key=field, match=MatchValue(value=value))])


class QdrantVectorStore(VectorStoreBase):
    """Qdrant-backed vector store.

    Parameters
    ----------
    collection_name:
        Name of the Qdrant collection.
    url:
        Qdrant endpoint, e.g. ``http://localhost:6333``.
    api_key:
        Qdrant Cloud API key; empty for an unauthenticated local server.
    timeout:
        Seconds before any single request is abandoned.
    client:
        Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        collection_name: str = settings.chunk_collection,
        *,
        url: str = settings.qdrant_url,
        api_key: str = settings.qdrant_api_key,
        timeout: int = settings.qdrant_timeout,
        client: QdrantClient | None = None,
    ) -> None:
        super().__init__(collection_name)
        if client is None:
            logger.info(
                "Initializing QdrantClient: url=%s, api_key=%s", url, "***" if api_key else "<none>"
            )
            client = QdrantClient(url=url, api_key=api_key or None, timeout=timeout)
        self._client = client

    # -- VectorStoreBase overrides --------------------------------------------

    def recreate_collection(self, vector_size: int, distance: str = "cosine") -> None:
        dist = _to_distance(distance)
        name = self.collection_name

        try:
            if self._client.collection_exists(collection_name=name):
                logger.info("Qdrant collection %r already exists. Deleting...", name)
                self._client.delete_collection(collection_name=name)
        except UnexpectedResponse as exc:
            if exc.status_code != 404:
                raise StoreError(f"Failed to delete Qdrant collection {name!r}: {exc}") from exc
            logger.info("Qdrant collection %r does not exist.", name)
        except Exception as exc:
            raise StoreError(f"Failed to delete Qdrant collection {name!r}: {exc}") from exc

        try:
            self._client.create_collection(
                collection_name=name,
                vectors_config=VectorParams(size=vector_size, distance=dist),
            )
            self._client.create_payload_index(
                collection_name=name,
                field_name=DOCUMENT_ID_FIELD,
                field_schema=PayloadSchemaType.KEYWORD,
                wait=True,
            )
        except Exception as exc:
            raise StoreError(f"Failed to create Qdrant collection {name!r}: {exc}") from exc
        logger.info("Created Qdrant collection: %s (size=%d, distance=%s)", name, vector_size, distance)

    def upsert(self, points: Sequence[ChunkPoint], *, batch_size: int = 100) -> int:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        written = 0
        for start in range(0, len(points), batch_size):
            batch = [
                PointStruct(id=p.id, vector=p.vector, payload=p.payload)
                for p in points[start : start + batch_size]
            ]
            try:
                self._client.upsert(collection_name=self.collection_name, points=batch, wait=True)
            except Exception as exc:
                raise StoreError(
                    f"Failed to upsert {len(batch)} points into {self.collection_name!r}: {exc}"
                ) from exc
            written += len(batch)
            logger.debug("  upserted points %d-%d", start, start + len(batch))
        return written

    def scroll_by_filter(
        self,
        field: str,
        value: Any,
        *,
        limit: int = 500,
        cursor: Any = None,
    ) -> ScrollPage:
        try:
            records, next_offset = self._client.scroll(
                collection_name=self.collection_name,
                scroll_filter=_match_filter(field, value),
                limit=limit,
                offset=cursor,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as exc:
            raise StoreError(f"Failed to scroll {self.collection_name!r}: {exc}") from exc

        points = [StoredPoint(id=str(r.id), payload=r.payload or {}) for r in records]
        return ScrollPage(points=points, next_cursor=next_offset)

    def health_check(self) -> bool:
        try:
            self._client.get_collections()
            return True
        except Exception:
            logger.warning("Qdrant health-check failed", exc_info=True)
            return False
