"""Command-line entry point: ``paper-rag ingest`` and ``paper-rag ask``."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from paper_rag.config import settings
from paper_rag.exceptions import StoreError

app = typer.Typer(help="Ingest research papers and ask questions about them.")


@app.callback()
def main(log_level: str = typer.Option(settings.log_level, help="Logging level")) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def ingest(
    source_dir: Optional[str] = typer.Argument(None, help="Directory of PDFs (default: DOCUMENTS_DIR)"),
    chunk_size: int = typer.Option(settings.chunk_size, min=1, help="Characters per chunk"),
    chunk_overlap: int = typer.Option(settings.chunk_overlap, min=0, help="Characters shared by neighbouring chunks"),
) -> None:
    """Rebuild the metadata catalog and chunk collection from a directory of PDFs."""
    from paper_rag.ingestion.pipeline import build_pipeline

    source = source_dir or settings.documents_dir
    pipeline = build_pipeline()
    pipeline.chunk_size = chunk_size
    pipeline.chunk_overlap = chunk_overlap

    try:
        report = pipeline.run(source)
    except FileNotFoundError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    except StoreError as exc:
        typer.echo(f"Error setting up stores: {exc}", err=True)
        raise typer.Exit(1) from exc

    typer.echo(report.summary())
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def ask(paper_id: str, question: str) -> None:
    """Answer QUESTION using the full text of paper PAPER_ID."""
    from paper_rag.service import build_service

    result = build_service().answer(paper_id, question)
    typer.echo(result.response)
    if result.usage is not None:
        typer.echo(
            f"\n[tokens] prompt={result.usage.prompt_tokens} "
            f"completion={result.usage.completion_tokens} total={result.usage.total_tokens}"
        )
    if not result.ok:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
