"""Paper metadata records and the local metadata catalog.

The catalog is a JSON-Lines file with one paper per line.  Ingestion
rebuilds it on every run; the query surface reads it to describe a paper.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from paper_rag.exceptions import StoreError

logger = logging.getLogger(__name__)


class DocumentMetadata(BaseModel):
    """Descriptive record of one ingested paper."""

    id: str
    title: str
    abstract: str = ""
    authors: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    year: int
    pdf_url: str
    source: str = "upload"


def placeholder_metadata(path: str | Path, pdf_url_prefix: str = "/pdfs") -> DocumentMetadata:
    """Build metadata from the file alone.

    The title is the file stem with ``_``/``-`` turned into spaces and the
    year is taken from the file's modification time.
    """
    path = Path(path)
    stem = path.stem
    try:
        year = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).year
    except OSError:
        year = datetime.now(timezone.utc).year
    return DocumentMetadata(
        id=stem,
        title=stem.replace("_", " ").replace("-", " ").strip() or stem,
        year=year,
        pdf_url=f"{pdf_url_prefix.rstrip('/')}/{path.name}",
    )


class MetadataIndexBase(ABC):
    """Where ingestion records paper metadata."""

    @abstractmethod
    def recreate(self) -> None:
        """Discard every record."""
        ...

    @abstractmethod
    def upsert(self, metadata: DocumentMetadata) -> None:
        """Insert *metadata*, replacing a record with the same id."""
        ...

    @abstractmethod
    def get(self, document_id: str) -> DocumentMetadata | None:
        """Return the record for *document_id*, or ``None``."""
        ...


class JsonlMetadataIndex(MetadataIndexBase):
    """JSON-Lines file catalog.

    Parameters
    ----------
    path:
        Catalog file; parent directories are created on :meth:`recreate`.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, DocumentMetadata]:
        records: dict[str, DocumentMetadata] = {}
        if not self.path.exists():
            return records
        with open(self.path, encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = DocumentMetadata.model_validate(json.loads(line))
                except (json.JSONDecodeError, ValidationError) as exc:
                    logger.warning("Skipping malformed catalog line %d: %s", lineno, exc)
                    continue
                records[record.id] = record
        return records

    def _write(self, records: dict[str, DocumentMetadata]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            for record in records.values():
                fh.write(record.model_dump_json() + "\n")
        tmp.replace(self.path)

    def recreate(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                self.path.write_text("", encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Failed to recreate metadata catalog {self.path}: {exc}") from exc
        logger.info("Recreated metadata catalog: %s", self.path)

    def upsert(self, metadata: DocumentMetadata) -> None:
        try:
            with self._lock:
                records = self._read()
                records[metadata.id] = metadata
                self._write(records)
        except OSError as exc:
            raise StoreError(f"Failed to write metadata for {metadata.id}: {exc}") from exc

    def get(self, document_id: str) -> DocumentMetadata | None:
        try:
            with self._lock:
                return self._read().get(document_id)
        except OSError as exc:
            raise StoreError(f"Failed to read metadata catalog {self.path}: {exc}") from exc
