"""Unit tests for the Typer CLI."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from paper_rag.cli import app
from paper_rag.completion.gateway import CompletionGateway
from paper_rag.completion.providers import TokenUsage
from paper_rag.exceptions import StoreError
from paper_rag.ingestion.pipeline import DocumentOutcome, DocumentStage, IngestionReport
from paper_rag.retrieval.context import ContextAssembler
from paper_rag.service import AnswerResponse, PaperQAService

runner = CliRunner()


def _report(ok: bool) -> IngestionReport:
    outcome = DocumentOutcome(document_id="p1", path="p1.pdf", stage=DocumentStage.PERSISTED)
    if not ok:
        outcome.fail(DocumentStage.TEXT_EXTRACTED, "corrupt")
    return IngestionReport(outcomes=[outcome], points_written=3 if ok else 0)


def test_ingest_prints_summary() -> None:
    pipeline = MagicMock()
    pipeline.run.return_value = _report(ok=True)
    with patch("paper_rag.ingestion.pipeline.build_pipeline", return_value=pipeline):
        result = runner.invoke(app, ["ingest", "some/dir", "--chunk-size", "200", "--chunk-overlap", "20"])

    assert result.exit_code == 0, result.output
    assert "Ingested 1/1 papers" in result.output
    pipeline.run.assert_called_once_with("some/dir")
    assert pipeline.chunk_size == 200
    assert pipeline.chunk_overlap == 20


def test_ingest_with_failures_exits_nonzero() -> None:
    pipeline = MagicMock()
    pipeline.run.return_value = _report(ok=False)
    with patch("paper_rag.ingestion.pipeline.build_pipeline", return_value=pipeline):
        result = runner.invoke(app, ["ingest", "some/dir"])
    assert result.exit_code == 1
    assert "p1@text_extracted" in result.output


def test_ingest_setup_failure() -> None:
    pipeline = MagicMock()
    pipeline.run.side_effect = StoreError("qdrant unreachable")
    with patch("paper_rag.ingestion.pipeline.build_pipeline", return_value=pipeline):
        result = runner.invoke(app, ["ingest", "some/dir"])
    assert result.exit_code == 1


def test_ask_prints_answer_and_usage() -> None:
    service = MagicMock()
    service.answer.return_value = AnswerResponse(response="42.", usage=TokenUsage(prompt_tokens=9, total_tokens=11))
    with patch("paper_rag.service.build_service", return_value=service):
        result = runner.invoke(app, ["ask", "paper-1", "What is the answer?"])

    assert result.exit_code == 0, result.output
    assert "42." in result.output
    assert "prompt=9" in result.output
    service.answer.assert_called_once_with("paper-1", "What is the answer?")


def test_ask_store_outage_prints_system_error(memory_store) -> None:
    memory_store.scroll_by_filter = MagicMock(side_effect=StoreError("qdrant down"))
    service = PaperQAService(ContextAssembler(memory_store, page_size=10), CompletionGateway([]))
    with patch("paper_rag.service.build_service", return_value=service):
        result = runner.invoke(app, ["ask", "paper-1", "What?"])

    assert result.exit_code == 1
    assert "System Error: qdrant down" in result.output
