"""
Completion: prompt construction and multi-provider answering.

A question about a paper is sent to an ordered list of chat models.  A
rate-limited model hands over to the next one; any other failure ends the
attempt.  See :class:`~paper_rag.completion.gateway.CompletionGateway`.
"""

from paper_rag.completion.gateway import CompletionFailure, CompletionGateway, CompletionResult
from paper_rag.completion.providers import (
    CompletionProvider,
    HardFail,
    SoftFail,
    Success,
    TokenUsage,
)

__all__ = [
    "CompletionFailure",
    "CompletionGateway",
    "CompletionProvider",
    "CompletionResult",
    "HardFail",
    "SoftFail",
    "Success",
    "TokenUsage",
]
