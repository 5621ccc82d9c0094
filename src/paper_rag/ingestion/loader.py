"""Document discovery and PDF text extraction."""

from __future__ import annotations

import logging
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader

from paper_rag.exceptions import ExtractionError

logger = logging.getLogger(__name__)


def list_documents(directory: str | Path, extension: str = ".pdf") -> list[Path]:
    """Return the files directly inside *directory* with the given *extension*.

    The suffix comparison is case-insensitive and the result is sorted by
    file name so that runs process papers in a stable order.

    Raises
    ------
    FileNotFoundError
        If *directory* does not exist or is not a directory.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Source directory not found: {root}")

    wanted = extension.lower()
    return sorted(
        (p for p in root.iterdir() if p.is_file() and p.suffix.lower() == wanted),
        key=lambda p: p.name,
    )


def document_id_for(path: str | Path) -> str:
    """A paper's id is its file name without the extension."""
    return Path(path).stem


def extract_text(path: str | Path) -> str:
    """Extract the full text of a PDF as a single string.

    Page texts are joined with a single space.

    Raises
    ------
    ExtractionError
        If the file cannot be parsed or contains no extractable text.
    """
    try:
        pages = PyPDFLoader(str(path)).load()
    except Exception as exc:
        raise ExtractionError(f"Could not read {path}: {exc}") from exc

    text = " ".join(page.page_content for page in pages if page.page_content)
    if not text.strip():
        raise ExtractionError(f"No extractable text in {path}")

    logger.debug("Extracted %d characters from %d pages of %s", len(text), len(pages), path)
    return text
