"""Abstract base class for vector-store backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the abstract methods.  Ingestion and context assembly
are backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from paper_rag.retrieval.models import ChunkPoint, ScrollPage


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Every method raises :class:`~paper_rag.exceptions.StoreError` when the
    backend call fails.

    Parameters
    ----------
    collection_name:
        Logical name of the collection holding the chunk points.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def recreate_collection(self, vector_size: int, distance: str = "cosine") -> None:
        """Drop the collection if it exists and create it empty.

        A missing collection is not an error.  The fresh collection has
        an equality-filterable ``documentId`` payload field.
        """
        ...

    @abstractmethod
    def upsert(self, points: Sequence[ChunkPoint], *, batch_size: int = 100) -> int:
        """Write *points* in batches of *batch_size* and return how many were written.

        Each call waits until the write is visible to subsequent reads.
        Points with an existing id replace the stored point.
        """
        ...

    @abstractmethod
    def scroll_by_filter(
        self,
        field: str,
        value: Any,
        *,
        limit: int = 500,
        cursor: Any = None,
    ) -> ScrollPage:
        """Return one page of points whose payload *field* equals *value*.

        Pass the returned ``next_cursor`` back as *cursor* to read the
        next page.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...
