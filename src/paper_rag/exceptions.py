"""Error taxonomy shared by ingestion, retrieval and completion.

Ingestion errors are caught per document by the pipeline; provider errors
are turned into tagged outcomes by :mod:`paper_rag.completion.providers`.
A paper without stored chunks is not an error at all: the context
assembler returns a sentinel string instead.
"""

from __future__ import annotations


class PaperRAGError(Exception):
    """Base class for every error raised by this package."""


class ExtractionError(PaperRAGError):
    """A source document could not be read or yielded no text."""


class EmbeddingError(PaperRAGError):
    """The embedding model failed to load or to embed a batch."""


class StoreError(PaperRAGError):
    """A vector-store or metadata-catalog operation failed."""


class RateLimited(PaperRAGError):
    """A provider answered HTTP 429; the next provider may be tried."""

    def __init__(self, model_name: str, message: str | None = None) -> None:
        self.model_name = model_name
        super().__init__(message or f"Rate limit hit on {model_name}.")


class ProviderFailure(PaperRAGError):
    """A provider failed in a way that ends the fallback sequence."""

    def __init__(self, model_name: str, message: str, status_code: int | None = None) -> None:
        self.model_name = model_name
        self.status_code = status_code
        super().__init__(message)
