"""Fixed-size sliding-window chunking."""

from __future__ import annotations


def chunk_text(text: str, chunk_size: int = 500, chunk_overlap: int = 50) -> list[str]:
    """Split *text* into overlapping windows of at most *chunk_size* characters.

    Parameters
    ----------
    text:
        Extracted document text.
    chunk_size:
        Window length in characters.
    chunk_overlap:
        Number of characters each window shares with the previous one.
        When it is not smaller than *chunk_size* the windows are laid
        end to end instead.

    Returns
    -------
    list[str]
        Non-blank windows in document order.  A window's position in this
        list is its chunk index.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    if chunk_overlap < 0:
        raise ValueError(f"chunk_overlap must be >= 0, got {chunk_overlap}")

    step = chunk_size - chunk_overlap
    if step <= 0:
        step = chunk_size

    windows = (text[start : start + chunk_size] for start in range(0, len(text), step))
    return [window for window in windows if window.strip()]
