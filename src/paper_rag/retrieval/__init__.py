"""
Retrieval: vector-store backends and whole-paper context assembly.

This module wraps the vector store behind a clean interface so that
ingestion and the query path never need to know which DB is backing
storage.

Public surface
--------------
- :class:`VectorStoreBase`: abstract backend.
- :class:`QdrantVectorStore`: default backend.
- :class:`ChromaVectorStore`: Chroma backend.
- :class:`ContextAssembler`: exhaustive, ordered retrieval of one paper.
- :func:`get_vector_store`: backend factory driven by settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.context import NO_DATA_SENTINEL, ContextAssembler, assemble_context
from paper_rag.retrieval.models import ChunkPoint, ScrollPage, StoredPoint, chunk_point_id

if TYPE_CHECKING:
    from paper_rag.config import Settings

__all__ = [
    "NO_DATA_SENTINEL",
    "ChromaVectorStore",
    "ChunkPoint",
    "ContextAssembler",
    "QdrantVectorStore",
    "ScrollPage",
    "StoredPoint",
    "VectorStoreBase",
    "assemble_context",
    "chunk_point_id",
    "get_vector_store",
]


def get_vector_store(config: Settings | None = None) -> VectorStoreBase:
    """Build the backend named by ``settings.vector_backend``."""
    if config is None:
        from paper_rag.config import settings as config

    backend = config.vector_backend.lower()
    if backend == "qdrant":
        from paper_rag.retrieval.qdrant_store import QdrantVectorStore

        return QdrantVectorStore(
            config.chunk_collection,
            url=config.qdrant_url,
            api_key=config.qdrant_api_key,
            timeout=config.qdrant_timeout,
        )
    if backend == "chroma":
        from paper_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore(config.chunk_collection, host=config.chroma_host, port=config.chroma_port)
    raise ValueError(f"Unsupported vector_backend={config.vector_backend!r}")


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import backends to avoid pulling in their clients at import time."""
    if name == "QdrantVectorStore":
        from paper_rag.retrieval.qdrant_store import QdrantVectorStore

        return QdrantVectorStore
    if name == "ChromaVectorStore":
        from paper_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
