"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Vector store
    vector_backend: str = Field(default="qdrant", description="Vector-store backend: 'qdrant' or 'chroma'")
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str = ""
    qdrant_timeout: int = Field(default=30, ge=1, description="Seconds before a Qdrant call is abandoned")
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chunk_collection: str = "paper_chunks"
    vector_size: int = Field(default=384, ge=1)
    distance: str = "cosine"
    upsert_batch_size: int = Field(default=100, ge=1, description="Points per store write")
    scroll_page_size: int = Field(default=500, ge=1, description="Points per retrieval page")

    # Embedding
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_batch_size: int = Field(default=32, ge=1)

    # Ingestion
    documents_dir: str = "public/pdfs"
    document_extension: str = ".pdf"
    pdf_url_prefix: str = "/pdfs"
    metadata_catalog_path: str = "data/papers.jsonl"
    chunk_size: int = Field(default=500, ge=1, description="Characters per chunk")
    chunk_overlap: int = Field(default=50, ge=0, description="Characters shared by neighbouring chunks")

    # LLM
    openrouter_api_key: str = Field(default="", description="API key for the OpenAI-compatible router")
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model_names: list[str] = Field(
        default_factory=lambda: [
            "openai/gpt-4o-mini",
            "google/gemini-2.0-flash",
            "mistralai/mistral-7b-instruct",
        ],
        description="Models tried in order; a rate-limited model falls through to the next one.",
    )
    llm_temperature: float = 0.1
    llm_request_timeout: float = Field(default=45.0, gt=0)
    llm_wall_clock_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Hard ceiling for one provider call, sync or async.",
    )
    app_referer: str = "http://localhost:3000"
    app_title: str = "Social ArXiv"
    cors_origins: list[str] = ["*"]

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton: import `settings` wherever needed.
settings = Settings()
