"""Completion gateway: ordered provider fallback.

Providers are tried in order::

    Trying[i] --Success--> return the answer
    Trying[i] --SoftFail--> Trying[i+1]
    Trying[i] --HardFail--> stop

A model is never retried within one request.  A hard failure stops the
sequence even when later providers remain.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from paper_rag.completion.prompts import build_paper_prompt
from paper_rag.completion.providers import (
    ChatModelProvider,
    HardFail,
    ProviderOutcome,
    SoftFail,
    Success,
    TokenUsage,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from paper_rag.completion.providers import CompletionProvider
    from paper_rag.config import Settings

logger = logging.getLogger(__name__)

NO_PROVIDERS_REASON = "No completion providers configured."
ALL_FAILED_REASON = "All LLM models failed to return a valid response."


class Step(str, Enum):
    RETURN = "return"
    NEXT = "next"
    STOP = "stop"


def next_step(outcome: ProviderOutcome) -> Step:
    """Decide what the fallback loop does after *outcome*."""
    if isinstance(outcome, Success):
        return Step.RETURN
    if isinstance(outcome, SoftFail):
        return Step.NEXT
    return Step.STOP


class CompletionResult(BaseModel):
    answer: str
    model: str
    usage: TokenUsage | None = None
    attempts: list[ProviderOutcome] = Field(default_factory=list)


class CompletionFailure(BaseModel):
    reason: str
    attempts: list[ProviderOutcome] = Field(default_factory=list)


class CompletionGateway:
    """Answers a question about a paper with the first provider that succeeds.

    Parameters
    ----------
    providers:
        Capability-equivalent providers in order of preference.
    """

    def __init__(self, providers: Sequence[CompletionProvider]) -> None:
        self.providers = list(providers)

    # -- public API -----------------------------------------------------------

    def complete(self, context: str, question: str) -> CompletionResult | CompletionFailure:
        return self.complete_prompt(build_paper_prompt(context, question))

    async def acomplete(self, context: str, question: str) -> CompletionResult | CompletionFailure:
        return await self.acomplete_prompt(build_paper_prompt(context, question))

    def complete_prompt(self, prompt: str) -> CompletionResult | CompletionFailure:
        attempts: list[ProviderOutcome] = []
        for provider in self.providers:
            logger.info("Attempting LLM call with model: %s", provider.model_name)
            outcome = provider.complete(prompt)
            attempts.append(outcome)
            if self._record(outcome) is not Step.NEXT:
                break
        return self._settle(attempts)

    async def acomplete_prompt(self, prompt: str) -> CompletionResult | CompletionFailure:
        """Async variant; cancelling the caller cancels the in-flight provider call."""
        attempts: list[ProviderOutcome] = []
        for provider in self.providers:
            logger.info("Attempting LLM call with model: %s", provider.model_name)
            outcome = await provider.acomplete(prompt)
            attempts.append(outcome)
            if self._record(outcome) is not Step.NEXT:
                break
        return self._settle(attempts)

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _record(outcome: ProviderOutcome) -> Step:
        step = next_step(outcome)
        if isinstance(outcome, SoftFail):
            logger.warning("[FALLBACK] %s Trying next model...", outcome.reason)
        elif isinstance(outcome, HardFail):
            logger.error("[FATAL] %s", outcome.reason)
        else:
            logger.info("Model %s answered; token usage: %s", outcome.model, outcome.usage)
        return step

    @staticmethod
    def _settle(attempts: list[ProviderOutcome]) -> CompletionResult | CompletionFailure:
        if not attempts:
            logger.error("Final LLM Failure: %s", NO_PROVIDERS_REASON)
            return CompletionFailure(reason=NO_PROVIDERS_REASON)

        last = attempts[-1]
        if isinstance(last, Success):
            return CompletionResult(answer=last.answer, model=last.model, usage=last.usage, attempts=attempts)

        reason = last.reason or ALL_FAILED_REASON
        logger.error("Final LLM Failure: %s", reason)
        return CompletionFailure(reason=reason, attempts=attempts)


def build_gateway(config: Settings | None = None) -> CompletionGateway:
    """One :class:`ChatModelProvider` per configured model name, in order."""
    if config is None:
        from paper_rag.config import settings as config

    headers = {"HTTP-Referer": config.app_referer, "X-Title": config.app_title}
    return CompletionGateway(
        [
            ChatModelProvider(
                name,
                api_key=config.openrouter_api_key,
                base_url=config.llm_base_url,
                temperature=config.llm_temperature,
                request_timeout=config.llm_request_timeout,
                wall_clock_timeout=config.llm_wall_clock_timeout,
                headers=headers,
            )
            for name in config.llm_model_names
        ]
    )
