"""Sentence-transformer embeddings with a lazily loaded, shared model."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from langchain_huggingface import HuggingFaceEmbeddings

from paper_rag.config import settings
from paper_rag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Batched text → vector conversion.

    The HuggingFace model is loaded on the first call to :meth:`embed`
    and reused afterwards.  Loading happens under a lock, so threads that
    arrive while the first load is running wait for it instead of
    starting their own.

    Parameters
    ----------
    model_name:
        HuggingFace sentence-transformer model id.  The default model
        mean-pools token embeddings into 384-dimensional vectors.
    batch_size:
        Number of texts sent to the model per forward pass.
    normalize:
        L2-normalise vectors, as required for cosine distance.
    dimension:
        Expected vector length.  When set, vectors of any other length
        raise :class:`EmbeddingError`.
    """

    def __init__(
        self,
        model_name: str = settings.embedding_model,
        *,
        batch_size: int = settings.embedding_batch_size,
        normalize: bool = True,
        dimension: int | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.model_name = model_name
        self.batch_size = batch_size
        self.normalize = normalize
        self.dimension = dimension
        self._lock = threading.Lock()
        self._embeddings: HuggingFaceEmbeddings | None = None

    @property
    def is_loaded(self) -> bool:
        return self._embeddings is not None

    def _model(self) -> HuggingFaceEmbeddings:
        if self._embeddings is not None:
            return self._embeddings

        with self._lock:
            if self._embeddings is None:
                logger.info("Loading embedding model: %s", self.model_name)
                try:
                    self._embeddings = HuggingFaceEmbeddings(
                        model_name=self.model_name,
                        encode_kwargs={
                            "normalize_embeddings": self.normalize,
                            "batch_size": self.batch_size,
                        },
                    )
                except Exception as exc:
                    raise EmbeddingError(
                        f"Failed to load embedding model {self.model_name!r}: {exc}"
                    ) from exc
                logger.info("Embedding model loaded.")
        return self._embeddings

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts* in sequential sub-batches of ``batch_size``."""
        if not texts:
            return []

        model = self._model()
        total = (len(texts) + self.batch_size - 1) // self.batch_size
        vectors: list[list[float]] = []
        for number, start in enumerate(range(0, len(texts), self.batch_size), 1):
            batch = list(texts[start : start + self.batch_size])
            try:
                vectors.extend(model.embed_documents(batch))
            except Exception as exc:
                raise EmbeddingError(f"Embedding batch {number}/{total} failed: {exc}") from exc
            logger.info("  embedded chunk batch %d/%d", number, total)

        if self.dimension is not None:
            for vector in vectors:
                if len(vector) != self.dimension:
                    raise EmbeddingError(
                        f"Model {self.model_name!r} produced {len(vector)}-dim vectors, "
                        f"expected {self.dimension}"
                    )
        return vectors


_default_model: EmbeddingModel | None = None
_default_lock = threading.Lock()


def get_embedding_model() -> EmbeddingModel:
    """Return the process-wide embedding model configured from settings."""
    global _default_model
    with _default_lock:
        if _default_model is None:
            _default_model = EmbeddingModel(
                settings.embedding_model,
                batch_size=settings.embedding_batch_size,
                dimension=settings.vector_size,
            )
        return _default_model
