"""Unit tests for point identity, retrieval models, and context assembly."""

from __future__ import annotations

import uuid
from typing import Any
from unittest.mock import patch

import pytest

from paper_rag.config import Settings
from paper_rag.retrieval import get_vector_store
from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.context import NO_DATA_SENTINEL, ContextAssembler, assemble_context
from paper_rag.retrieval.models import (
    POINT_ID_NAMESPACE,
    ChunkPoint,
    ScrollPage,
    StoredPoint,
    chunk_point_id,
)


# ── Scripted store for pagination tests ─────────────────────────────────


class ScriptedStore(VectorStoreBase):
    """Returns pre-built pages in order and records every scroll call."""

    def __init__(self, pages: list[ScrollPage]) -> None:
        super().__init__("scripted")
        self._pages = list(pages)
        self.calls: list[dict[str, Any]] = []

    def recreate_collection(self, vector_size: int, distance: str = "cosine") -> None:
        raise NotImplementedError

    def upsert(self, points, *, batch_size: int = 100) -> int:
        raise NotImplementedError

    def scroll_by_filter(self, field: str, value: Any, *, limit: int = 500, cursor: Any = None) -> ScrollPage:
        self.calls.append({"field": field, "value": value, "limit": limit, "cursor": cursor})
        return self._pages.pop(0)

    def health_check(self) -> bool:
        return True


def _point(index: Any, text: str, doc: str = "paper-1") -> StoredPoint:
    payload: dict[str, Any] = {"documentId": doc, "chunkText": text}
    if index is not None:
        payload["chunkIndex"] = index
    return StoredPoint(id=str(uuid.uuid4()), payload=payload)


# ── Deterministic ids ───────────────────────────────────────────────────


class TestChunkPointId:
    def test_same_inputs_same_id(self) -> None:
        assert chunk_point_id("paper-1", 3) == chunk_point_id("paper-1", 3)

    def test_is_uuid5_of_document_and_index(self) -> None:
        expected = uuid.uuid5(POINT_ID_NAMESPACE, "paper-1_3")
        assert chunk_point_id("paper-1", 3) == str(expected)
        assert uuid.UUID(chunk_point_id("paper-1", 3)).version == 5

    def test_distinct_for_other_index_or_document(self) -> None:
        ids = {chunk_point_id("paper-1", 0), chunk_point_id("paper-1", 1), chunk_point_id("paper-2", 0)}
        assert len(ids) == 3


class TestModels:
    def test_from_chunk_builds_payload(self) -> None:
        point = ChunkPoint.from_chunk("paper-1", 2, "some text", [0.1, 0.2])
        assert point.id == chunk_point_id("paper-1", 2)
        assert point.payload == {"documentId": "paper-1", "chunkText": "some text", "chunkIndex": 2}
        assert point.document_id == "paper-1"

    @pytest.mark.parametrize("raw", [None, "3", 2.5, True])
    def test_unusable_chunk_index_is_none(self, raw: Any) -> None:
        assert _point(raw, "t").chunk_index is None

    def test_missing_text_is_empty(self) -> None:
        assert StoredPoint(id="x", payload={}).chunk_text == ""


# ── Context assembly ────────────────────────────────────────────────────


class TestContextAssembler:
    def test_chunks_across_pages_are_ordered(self) -> None:
        store = ScriptedStore(
            [
                ScrollPage(points=[_point(2, "text2"), _point(0, "text0")], next_cursor="cursor-a"),
                ScrollPage(points=[_point(1, "text1")], next_cursor=None),
            ]
        )
        assert ContextAssembler(store, page_size=2).assemble("paper-1") == "text0\ntext1\ntext2"
        assert [c["cursor"] for c in store.calls] == [None, "cursor-a"]

    def test_filters_on_document_id(self) -> None:
        store = ScriptedStore([ScrollPage(points=[_point(0, "a")], next_cursor=None)])
        ContextAssembler(store, page_size=7).assemble("paper-1")
        assert store.calls == [{"field": "documentId", "value": "paper-1", "limit": 7, "cursor": None}]

    def test_empty_page_with_cursor_stops(self) -> None:
        store = ScriptedStore(
            [
                ScrollPage(points=[_point(0, "a")], next_cursor=5),
                ScrollPage(points=[], next_cursor=10),
                ScrollPage(points=[_point(1, "never read")], next_cursor=None),
            ]
        )
        assert ContextAssembler(store).assemble("paper-1") == "a"
        assert len(store.calls) == 2

    def test_no_points_returns_sentinel(self) -> None:
        store = ScriptedStore([ScrollPage(points=[], next_cursor=None)])
        context = ContextAssembler(store).assemble("unknown")
        assert context == NO_DATA_SENTINEL
        assert context != ""

    def test_points_without_index_go_last(self) -> None:
        store = ScriptedStore(
            [
                ScrollPage(
                    points=[_point(None, "orphan"), _point(1, "b"), _point("x", "bad"), _point(0, "a")],
                    next_cursor=None,
                )
            ]
        )
        assert ContextAssembler(store).assemble("paper-1") == "a\nb\norphan\nbad"

    def test_retrieves_every_chunk_without_cap(self, memory_store) -> None:
        points = [ChunkPoint.from_chunk("paper-1", i, f"t{i}", [0.0]) for i in reversed(range(23))]
        points.append(ChunkPoint.from_chunk("paper-2", 0, "other", [0.0]))
        memory_store.upsert(points)

        assembler = ContextAssembler(memory_store, page_size=5)
        fetched = assembler.fetch_all("paper-1")
        assert len(fetched) == 23
        assert assembler.assemble("paper-1") == "\n".join(f"t{i}" for i in range(23))

    def test_assemble_context_shortcut(self, memory_store) -> None:
        memory_store.upsert([ChunkPoint.from_chunk("p", 0, "only", [0.0])])
        assert assemble_context(memory_store, "p", page_size=1) == "only"

    def test_invalid_page_size(self, memory_store) -> None:
        with pytest.raises(ValueError):
            ContextAssembler(memory_store, page_size=0)


# ── Backend factory ─────────────────────────────────────────────────────


class TestGetVectorStore:
    def test_qdrant_backend(self) -> None:
        from paper_rag.retrieval.qdrant_store import QdrantVectorStore

        config = Settings(vector_backend="qdrant", qdrant_url="http://qdrant:6333", chunk_collection="c")
        with patch("paper_rag.retrieval.qdrant_store.QdrantClient") as client_cls:
            store = get_vector_store(config)
        assert isinstance(store, QdrantVectorStore)
        assert store.collection_name == "c"
        assert client_cls.call_args.kwargs["url"] == "http://qdrant:6333"
        assert client_cls.call_args.kwargs["api_key"] is None

    def test_chroma_backend(self) -> None:
        from paper_rag.retrieval.chroma_store import ChromaVectorStore

        config = Settings(vector_backend="chroma", chroma_host="chroma", chroma_port=9000)
        with patch("paper_rag.retrieval.chroma_store.chromadb.HttpClient") as client_cls:
            store = get_vector_store(config)
        assert isinstance(store, ChromaVectorStore)
        client_cls.assert_called_once_with(host="chroma", port=9000)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unsupported vector_backend"):
            get_vector_store(Settings(vector_backend="pinecone"))
