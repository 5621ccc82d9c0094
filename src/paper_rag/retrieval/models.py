"""Domain models for stored chunks and paginated retrieval."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field

# Payload keys of the stored chunk points.
DOCUMENT_ID_FIELD = "documentId"
CHUNK_TEXT_FIELD = "chunkText"
CHUNK_INDEX_FIELD = "chunkIndex"

# Fixed namespace so point ids stay identical across ingestion runs.
POINT_ID_NAMESPACE = uuid.UUID("1b671a64-40d5-491e-99b0-da01ff1f3341")


def chunk_point_id(document_id: str, chunk_index: int) -> str:
    """Return the UUID of the point holding chunk *chunk_index* of *document_id*.

    Re-ingesting a document with the same chunking produces the same ids,
    so upserts overwrite earlier points instead of adding duplicates.
    """
    return str(uuid.uuid5(POINT_ID_NAMESPACE, f"{document_id}_{chunk_index}"))


class ChunkPoint(BaseModel):
    """A chunk ready to be written to the vector store.

    Attributes
    ----------
    id:
        Deterministic point id, see :func:`chunk_point_id`.
    vector:
        Embedding of the chunk text.
    payload:
        ``documentId``, ``chunkText`` and ``chunkIndex``.
    """

    id: str
    vector: list[float]
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_chunk(
        cls, document_id: str, chunk_index: int, text: str, vector: list[float]
    ) -> ChunkPoint:
        return cls(
            id=chunk_point_id(document_id, chunk_index),
            vector=vector,
            payload={
                DOCUMENT_ID_FIELD: document_id,
                CHUNK_TEXT_FIELD: text,
                CHUNK_INDEX_FIELD: chunk_index,
            },
        )

    @property
    def document_id(self) -> str | None:
        return self.payload.get(DOCUMENT_ID_FIELD)


class StoredPoint(BaseModel):
    """A point read back from the store.

    The payload is kept as returned; points written by other tools may
    lack some keys.
    """

    id: str
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def chunk_index(self) -> int | None:
        value = self.payload.get(CHUNK_INDEX_FIELD)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    @property
    def chunk_text(self) -> str:
        value = self.payload.get(CHUNK_TEXT_FIELD)
        return value if isinstance(value, str) else ""


class ScrollPage(BaseModel):
    """One page of a filtered scan.  ``next_cursor`` is ``None`` at the end."""

    points: list[StoredPoint] = Field(default_factory=list)
    next_cursor: Any = None
