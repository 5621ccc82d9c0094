"""Question answering over one paper: exhaustive context + provider fallback.

Callers always get an :class:`AnswerResponse`; a failed retrieval or
completion is reported as a ``"System Error: ..."`` answer rather than an
exception.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from paper_rag.completion.gateway import CompletionFailure
from paper_rag.completion.providers import TokenUsage
from paper_rag.exceptions import StoreError

if TYPE_CHECKING:
    from paper_rag.completion.gateway import CompletionGateway, CompletionResult
    from paper_rag.config import Settings
    from paper_rag.ingestion.metadata import DocumentMetadata, MetadataIndexBase
    from paper_rag.retrieval.context import ContextAssembler

logger = logging.getLogger(__name__)

SYSTEM_ERROR_PREFIX = "System Error: "


class AnswerResponse(BaseModel):
    """Answer text plus token usage when the provider reported it."""

    response: str
    usage: TokenUsage | None = None
    model: str | None = None
    ok: bool = True


def _to_response(result: CompletionResult | CompletionFailure) -> AnswerResponse:
    if isinstance(result, CompletionFailure):
        return AnswerResponse(response=f"{SYSTEM_ERROR_PREFIX}{result.reason}", ok=False)
    return AnswerResponse(response=result.answer, usage=result.usage, model=result.model)


def _retrieval_failed(document_id: str, exc: StoreError) -> AnswerResponse:
    logger.error("Could not retrieve chunks for paper %s: %s", document_id, exc)
    return AnswerResponse(response=f"{SYSTEM_ERROR_PREFIX}{exc}", ok=False)


class PaperQAService:
    """Retrieval query surface consumed by the web front end.

    Parameters
    ----------
    assembler:
        Builds the full-paper context.
    gateway:
        Sends the prompt to the provider list.
    metadata_index:
        Optional catalog used by :meth:`describe`.
    """

    def __init__(
        self,
        assembler: ContextAssembler,
        gateway: CompletionGateway,
        metadata_index: MetadataIndexBase | None = None,
    ) -> None:
        self.assembler = assembler
        self.gateway = gateway
        self.metadata_index = metadata_index

    def answer(self, document_id: str, question: str) -> AnswerResponse:
        logger.info("Retrieving ALL chunks for paper %s...", document_id)
        try:
            context = self.assembler.assemble(document_id)
        except StoreError as exc:
            return _retrieval_failed(document_id, exc)
        return _to_response(self.gateway.complete(context, question))

    async def aanswer(self, document_id: str, question: str) -> AnswerResponse:
        """Async variant: retrieval runs in a worker thread, completion is awaited."""
        logger.info("Retrieving ALL chunks for paper %s...", document_id)
        try:
            context = await asyncio.to_thread(self.assembler.assemble, document_id)
        except StoreError as exc:
            return _retrieval_failed(document_id, exc)
        return _to_response(await self.gateway.acomplete(context, question))

    def describe(self, document_id: str) -> DocumentMetadata | None:
        if self.metadata_index is None:
            return None
        return self.metadata_index.get(document_id)


def build_service(config: Settings | None = None) -> PaperQAService:
    """Wire a :class:`PaperQAService` from settings."""
    if config is None:
        from paper_rag.config import settings as config

    from paper_rag.completion.gateway import build_gateway
    from paper_rag.ingestion.metadata import JsonlMetadataIndex
    from paper_rag.retrieval import get_vector_store
    from paper_rag.retrieval.context import ContextAssembler

    return PaperQAService(
        ContextAssembler(get_vector_store(config), page_size=config.scroll_page_size),
        build_gateway(config),
        JsonlMetadataIndex(config.metadata_catalog_path),
    )
