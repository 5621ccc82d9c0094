"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from paper_rag.exceptions import StoreError
from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.models import ChunkPoint, ScrollPage, StoredPoint


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


class InMemoryVectorStore(VectorStoreBase):
    """Dict-backed store with an integer-offset cursor.

    ``fail_upserts`` makes the next *n* upsert calls raise ``StoreError``.
    """

    def __init__(self) -> None:
        super().__init__("test-collection")
        self.points: dict[str, ChunkPoint] = {}
        self.recreated: list[tuple[int, str]] = []
        self.upsert_calls: list[int] = []
        self.fail_upserts = 0
        self.fail_recreate = False

    def recreate_collection(self, vector_size: int, distance: str = "cosine") -> None:
        if self.fail_recreate:
            raise StoreError("collection setup failed")
        self.points.clear()
        self.recreated.append((vector_size, distance))

    def upsert(self, points, *, batch_size: int = 100) -> int:
        self.upsert_calls.append(len(points))
        if self.fail_upserts:
            self.fail_upserts -= 1
            raise StoreError("write failed")
        for point in points:
            self.points[point.id] = point
        return len(points)

    def scroll_by_filter(self, field: str, value: Any, *, limit: int = 500, cursor: Any = None) -> ScrollPage:
        matching = [p for p in self.points.values() if p.payload.get(field) == value]
        offset = cursor or 0
        page = matching[offset : offset + limit]
        next_cursor = offset + limit if offset + limit < len(matching) else None
        return ScrollPage(
            points=[StoredPoint(id=p.id, payload=dict(p.payload)) for p in page],
            next_cursor=next_cursor,
        )

    def health_check(self) -> bool:
        return True


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()
