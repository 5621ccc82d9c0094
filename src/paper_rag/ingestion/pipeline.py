"""Full-rebuild ingestion: PDFs in a directory → metadata catalog + chunk vectors.

Stages per paper::

    DISCOVERED → METADATA_INDEXED → TEXT_EXTRACTED → CHUNKED → EMBEDDED → PERSISTED

A failure at any stage is recorded on that paper's :class:`DocumentOutcome`
and the run continues with the next paper.  Only a failure to set up the
catalog or the vector collection aborts the run.

Usage::

    from paper_rag.ingestion.pipeline import build_pipeline

    report = build_pipeline().run("public/pdfs")
    print(report.summary())
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel, Field

from paper_rag.exceptions import EmbeddingError, ExtractionError, StoreError
from paper_rag.ingestion.chunker import chunk_text
from paper_rag.ingestion.loader import document_id_for, extract_text, list_documents
from paper_rag.ingestion.metadata import placeholder_metadata
from paper_rag.retrieval.models import ChunkPoint

if TYPE_CHECKING:
    from paper_rag.config import Settings
    from paper_rag.ingestion.embedder import EmbeddingModel
    from paper_rag.ingestion.metadata import MetadataIndexBase
    from paper_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class DocumentStage(str, Enum):
    DISCOVERED = "discovered"
    METADATA_INDEXED = "metadata_indexed"
    TEXT_EXTRACTED = "text_extracted"
    CHUNKED = "chunked"
    EMBEDDED = "embedded"
    PERSISTED = "persisted"


class DocumentOutcome(BaseModel):
    """Where one paper got to during a run.

    Attributes
    ----------
    stage:
        Last stage the paper completed.
    failed_at:
        Stage the paper failed to reach, ``None`` when it did not fail.
    """

    document_id: str
    path: str
    stage: DocumentStage = DocumentStage.DISCOVERED
    failed_at: DocumentStage | None = None
    error: str | None = None
    chunk_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.failed_at is None and self.stage is DocumentStage.PERSISTED

    def fail(self, stage: DocumentStage, error: str) -> None:
        self.failed_at = stage
        self.error = error


class IngestionReport(BaseModel):
    """Summary of one ingestion run."""

    outcomes: list[DocumentOutcome] = Field(default_factory=list)
    points_written: int = 0
    failed_flushes: int = 0
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> list[DocumentOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[DocumentOutcome]:
        return [o for o in self.outcomes if o.failed_at is not None]

    @property
    def ok(self) -> bool:
        return bool(self.outcomes) and not self.failed

    def summary(self) -> str:
        msg = (
            f"Ingested {len(self.succeeded)}/{len(self.outcomes)} papers, "
            f"{self.points_written} points written in {self.elapsed_seconds:.1f}s"
        )
        if self.failed:
            failures = ", ".join(f"{o.document_id}@{o.failed_at.value}" for o in self.failed)
            msg += f"; failed: {failures}"
        if self.failed_flushes:
            msg += f"; {self.failed_flushes} failed flush(es)"
        return msg


class IngestionPipeline:
    """Drives extract → chunk → embed → upsert for every paper in a directory.

    Parameters
    ----------
    store:
        Vector-store backend receiving the chunk points.
    metadata_index:
        Catalog receiving one metadata record per paper.
    embedder:
        Object with an ``embed(texts) -> vectors`` method.
    chunk_size / chunk_overlap:
        Forwarded to :func:`~paper_rag.ingestion.chunker.chunk_text`.
    upsert_batch_size:
        Buffered points are flushed to the store once this many accumulate.
    vector_size / distance:
        Collection parameters; must match the embedder's output.
    extension:
        Only files with this suffix are ingested.
    pdf_url_prefix:
        Prefix of the ``pdf_url`` recorded in the metadata.
    extractor:
        Path → text function, :func:`~paper_rag.ingestion.loader.extract_text` by default.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        metadata_index: MetadataIndexBase,
        embedder: EmbeddingModel,
        *,
        chunk_size: int = 500,
        chunk_overlap: int = 50,
        upsert_batch_size: int = 100,
        vector_size: int = 384,
        distance: str = "cosine",
        extension: str = ".pdf",
        pdf_url_prefix: str = "/pdfs",
        extractor: Callable[[Path], str] = extract_text,
    ) -> None:
        if upsert_batch_size < 1:
            raise ValueError(f"upsert_batch_size must be >= 1, got {upsert_batch_size}")
        self.store = store
        self.metadata_index = metadata_index
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.upsert_batch_size = upsert_batch_size
        self.vector_size = vector_size
        self.distance = distance
        self.extension = extension
        self.pdf_url_prefix = pdf_url_prefix
        self.extractor = extractor
        self._flush_at = upsert_batch_size

    # -- public API -----------------------------------------------------------

    def run(self, source_dir: str | Path) -> IngestionReport:
        """Rebuild the catalog and the chunk collection from *source_dir*.

        Raises
        ------
        StoreError
            If the catalog or the vector collection cannot be recreated.
        FileNotFoundError
            If *source_dir* does not exist.
        """
        logger.info("Starting ingestion process...")
        t0 = time.monotonic()

        self._setup()

        files = list_documents(source_dir, self.extension)
        report = IngestionReport()
        if not files:
            logger.error("No %s files found in %s.", self.extension, source_dir)
            return report
        logger.info("Found %d %s files.", len(files), self.extension)

        buffer: list[ChunkPoint] = []
        self._flush_at = self.upsert_batch_size
        for path in files:
            outcome = self._ingest_document(path, buffer, report)
            report.outcomes.append(outcome)

        if buffer:
            logger.info("Sending final batch of %d points...", len(buffer))
            self._flush(buffer, report)

        unwritten = {p.document_id for p in buffer}
        for outcome in report.outcomes:
            if outcome.failed_at is not None or outcome.stage is not DocumentStage.EMBEDDED:
                continue
            if outcome.document_id in unwritten:
                outcome.fail(DocumentStage.PERSISTED, "points could not be written to the vector store")
            else:
                outcome.stage = DocumentStage.PERSISTED

        report.elapsed_seconds = round(time.monotonic() - t0, 2)
        if report.failed or report.failed_flushes:
            logger.warning("Ingestion finished with errors: %s", report.summary())
        else:
            logger.info("Ingestion completed: %s", report.summary())
        return report

    # -- internals ------------------------------------------------------------

    def _setup(self) -> None:
        logger.info("Setting up metadata catalog...")
        self.metadata_index.recreate()
        logger.info("Setting up vector collection %r...", self.store.collection_name)
        self.store.recreate_collection(self.vector_size, self.distance)

    def _ingest_document(
        self, path: Path, buffer: list[ChunkPoint], report: IngestionReport
    ) -> DocumentOutcome:
        document_id = document_id_for(path)
        outcome = DocumentOutcome(document_id=document_id, path=str(path))
        logger.info("Processing: %s...", path.name)

        try:
            self.metadata_index.upsert(placeholder_metadata(path, self.pdf_url_prefix))
        except StoreError as exc:
            return self._failed(outcome, DocumentStage.METADATA_INDEXED, exc)
        outcome.stage = DocumentStage.METADATA_INDEXED

        try:
            text = self.extractor(path)
        except ExtractionError as exc:
            return self._failed(outcome, DocumentStage.TEXT_EXTRACTED, exc)
        outcome.stage = DocumentStage.TEXT_EXTRACTED

        chunks = chunk_text(text, self.chunk_size, self.chunk_overlap)
        if not chunks:
            return self._failed(outcome, DocumentStage.CHUNKED, "no text chunks generated")
        outcome.stage = DocumentStage.CHUNKED
        outcome.chunk_count = len(chunks)
        logger.info(" -> Extracted text, created %d chunks.", len(chunks))

        try:
            vectors = self.embedder.embed(chunks)
        except EmbeddingError as exc:
            return self._failed(outcome, DocumentStage.EMBEDDED, exc)
        if len(vectors) != len(chunks):
            return self._failed(
                outcome,
                DocumentStage.EMBEDDED,
                f"got {len(vectors)} embeddings for {len(chunks)} chunks",
            )
        outcome.stage = DocumentStage.EMBEDDED

        for index, (chunk, vector) in enumerate(zip(chunks, vectors)):
            buffer.append(ChunkPoint.from_chunk(document_id, index, chunk, vector))
            if len(buffer) >= self._flush_at:
                self._flush(buffer, report)
        return outcome

    def _flush(self, buffer: list[ChunkPoint], report: IngestionReport) -> bool:
        """Write *buffer* to the store; it is emptied only if the write succeeds.

        After a failure the next attempt waits for another full batch.
        """
        logger.info(" -> Sending batch of %d points...", len(buffer))
        try:
            written = self.store.upsert(buffer, batch_size=self.upsert_batch_size)
        except StoreError as exc:
            report.failed_flushes += 1
            self._flush_at = len(buffer) + self.upsert_batch_size
            logger.error(" -> Error sending batch (%d points kept for retry): %s", len(buffer), exc)
            return False
        report.points_written += written
        buffer.clear()
        self._flush_at = self.upsert_batch_size
        return True

    @staticmethod
    def _failed(
        outcome: DocumentOutcome, stage: DocumentStage, error: Exception | str
    ) -> DocumentOutcome:
        outcome.fail(stage, str(error))
        logger.error(" -> Skipping %s: failed at %s: %s", outcome.document_id, stage.value, error)
        return outcome


def build_pipeline(config: Settings | None = None) -> IngestionPipeline:
    """Wire an :class:`IngestionPipeline` from settings."""
    from paper_rag.ingestion.embedder import EmbeddingModel, get_embedding_model
    from paper_rag.ingestion.metadata import JsonlMetadataIndex
    from paper_rag.retrieval import get_vector_store

    if config is None:
        from paper_rag.config import settings as config

        embedder = get_embedding_model()
    else:
        embedder = EmbeddingModel(
            config.embedding_model,
            batch_size=config.embedding_batch_size,
            dimension=config.vector_size,
        )

    return IngestionPipeline(
        get_vector_store(config),
        JsonlMetadataIndex(config.metadata_catalog_path),
        embedder,
        chunk_size=config.chunk_size,
        chunk_overlap=config.chunk_overlap,
        upsert_batch_size=config.upsert_batch_size,
        vector_size=config.vector_size,
        distance=config.distance,
        extension=config.document_extension,
        pdf_url_prefix=config.pdf_url_prefix,
    )
