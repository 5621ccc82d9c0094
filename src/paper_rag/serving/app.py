"""FastAPI application exposing paper question answering as a REST API."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from paper_rag.config import settings
from paper_rag.exceptions import StoreError
from paper_rag.service import PaperQAService, build_service

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Paper RAG API",
    version="0.1.0",
    description="Ask questions about one ingested research paper.",
)

# Browser front end calls the API cross-origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@lru_cache(maxsize=1)
def get_service() -> PaperQAService:
    """Process-wide service; override with ``app.dependency_overrides`` in tests."""
    return build_service()


# ── Request / Response schemas ────────────────────────────────────────
class AskRequest(BaseModel):
    """Incoming question about a paper."""

    paperId: str = ""  # noqa: N815
    message: str = ""


class AskResponse(BaseModel):
    """Answer returned to the front end."""

    response: str
    usage: dict[str, Any] | None = None


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/chat/ask", response_model=AskResponse)
async def ask(request: AskRequest, service: PaperQAService = Depends(get_service)) -> Any:
    """Answer *message* using the full text of paper *paperId*."""
    if not request.paperId.strip() or not request.message.strip():
        return JSONResponse(status_code=400, content={"message": "Missing paperId or message"})

    result = await service.aanswer(request.paperId, request.message)
    usage = result.usage.model_dump() if result.usage else None
    body = AskResponse(response=result.response, usage=usage)
    if not result.ok:
        return JSONResponse(status_code=500, content=body.model_dump())
    return body


@app.get("/papers/{paper_id}")
async def paper(paper_id: str, service: PaperQAService = Depends(get_service)) -> Any:
    """Return the catalog record of *paper_id*."""
    try:
        metadata = service.describe(paper_id)
    except StoreError as exc:
        logger.error("Error reading paper %s: %s", paper_id, exc)
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})
    if metadata is None:
        return JSONResponse(status_code=404, content={"message": "Paper not found"})
    return metadata.model_dump()
