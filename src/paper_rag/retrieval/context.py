"""Context assembly: every chunk of one paper, in document order.

Retrieval here is exhaustive rather than top-k: the model is given the
whole paper, so all points matching the paper id are read page by page
until the store reports no more.

Usage::

    from paper_rag.retrieval.context import ContextAssembler

    assembler = ContextAssembler(store)
    context = assembler.assemble("2401.01234")
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from paper_rag.config import settings
from paper_rag.retrieval.models import DOCUMENT_ID_FIELD

if TYPE_CHECKING:
    from paper_rag.retrieval.base import VectorStoreBase
    from paper_rag.retrieval.models import StoredPoint

logger = logging.getLogger(__name__)

NO_DATA_SENTINEL = "No text data was retrieved for the paper."


def _order_key(point: StoredPoint) -> float:
    index = point.chunk_index
    return math.inf if index is None else index


class ContextAssembler:
    """Reassembles a paper's text from its stored chunks.

    Parameters
    ----------
    store:
        Vector-store backend holding the chunk points.
    page_size:
        Points requested per scroll call.
    """

    def __init__(self, store: VectorStoreBase, *, page_size: int = settings.scroll_page_size) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self._store = store
        self.page_size = page_size

    def fetch_all(self, document_id: str) -> list[StoredPoint]:
        """Return every stored point of *document_id*, in store order."""
        points: list[StoredPoint] = []
        cursor = None
        pages = 0
        while True:
            page = self._store.scroll_by_filter(
                DOCUMENT_ID_FIELD, document_id, limit=self.page_size, cursor=cursor
            )
            pages += 1
            points.extend(page.points)
            cursor = page.next_cursor
            # An empty page ends the scan even when a cursor came back with it.
            if cursor is None or not page.points:
                break

        logger.info("Retrieved %d chunks for paper %s in %d page(s)", len(points), document_id, pages)
        return points

    def assemble(self, document_id: str) -> str:
        """Return the paper's chunk texts joined by newlines, ordered by chunk index.

        Points without a usable ``chunkIndex`` go last.  When nothing is
        stored for *document_id* the :data:`NO_DATA_SENTINEL` is returned.
        """
        points = self.fetch_all(document_id)
        if not points:
            return NO_DATA_SENTINEL

        ordered = sorted(points, key=_order_key)
        return "\n".join(point.chunk_text for point in ordered)


def assemble_context(
    store: VectorStoreBase, document_id: str, page_size: int = settings.scroll_page_size
) -> str:
    """Shortcut for ``ContextAssembler(store, page_size=page_size).assemble(document_id)``."""
    return ContextAssembler(store, page_size=page_size).assemble(document_id)
