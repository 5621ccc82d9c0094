"""paper_rag: whole-paper question answering over a vector store."""

__version__ = "0.1.0"
