"""Completion providers and the tagged outcome of one attempt.

Each provider wraps one model.  :meth:`CompletionProvider.complete` never
raises for provider-side failures; it returns one of

* :class:`Success`: an answer was produced,
* :class:`SoftFail`: the model is rate-limited, another model may be tried,
* :class:`HardFail`: anything else; the fallback sequence should stop.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from contextlib import contextmanager
from typing import Any, Literal, Union

import openai
from langchain_core.messages import AIMessage, HumanMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from paper_rag.exceptions import ProviderFailure, RateLimited

logger = logging.getLogger(__name__)

NO_ANSWER_SENTINEL = "I couldn't find the comprehensive answer in the full document text."


class TokenUsage(BaseModel):
    """Token counters reported by the provider, when it reports any."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class Success(BaseModel):
    kind: Literal["success"] = "success"
    model: str
    answer: str
    usage: TokenUsage | None = None


class SoftFail(BaseModel):
    kind: Literal["soft_fail"] = "soft_fail"
    model: str
    reason: str


class HardFail(BaseModel):
    kind: Literal["hard_fail"] = "hard_fail"
    model: str
    reason: str
    status_code: int | None = None


ProviderOutcome = Union[Success, SoftFail, HardFail]


class CompletionProvider(ABC):
    """One model that can answer a prompt.

    Subclasses implement :meth:`_call` / :meth:`_acall`, returning a
    :class:`Success` or raising :class:`~paper_rag.exceptions.RateLimited`
    or :class:`~paper_rag.exceptions.ProviderFailure`.
    """

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name

    @abstractmethod
    def _call(self, prompt: str) -> Success: ...

    @abstractmethod
    async def _acall(self, prompt: str) -> Success: ...

    def complete(self, prompt: str) -> ProviderOutcome:
        try:
            return self._call(prompt)
        except RateLimited as exc:
            return SoftFail(model=self.model_name, reason=str(exc))
        except ProviderFailure as exc:
            return HardFail(model=self.model_name, reason=str(exc), status_code=exc.status_code)
        except Exception as exc:
            return self._unexpected(exc)

    async def acomplete(self, prompt: str) -> ProviderOutcome:
        # CancelledError is a BaseException and passes through untouched.
        try:
            return await self._acall(prompt)
        except RateLimited as exc:
            return SoftFail(model=self.model_name, reason=str(exc))
        except ProviderFailure as exc:
            return HardFail(model=self.model_name, reason=str(exc), status_code=exc.status_code)
        except Exception as exc:
            return self._unexpected(exc)

    def _unexpected(self, exc: Exception) -> HardFail:
        logger.exception("Unexpected error from model %s", self.model_name)
        return HardFail(model=self.model_name, reason=f"Model {self.model_name} failed: {exc}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.model_name!r})"


def _message_text(message: AIMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def _message_usage(message: AIMessage) -> TokenUsage | None:
    usage = getattr(message, "usage_metadata", None)
    if usage:
        return TokenUsage(
            prompt_tokens=usage.get("input_tokens"),
            completion_tokens=usage.get("output_tokens"),
            total_tokens=usage.get("total_tokens"),
        )
    raw: dict[str, Any] | None = (message.response_metadata or {}).get("token_usage")
    if raw:
        return TokenUsage(
            prompt_tokens=raw.get("prompt_tokens"),
            completion_tokens=raw.get("completion_tokens"),
            total_tokens=raw.get("total_tokens"),
        )
    return None


class ChatModelProvider(CompletionProvider):
    """A model behind an OpenAI-compatible chat-completions endpoint.

    The client never retries on its own: a 429 must reach the gateway so
    it can move to the next model.

    Parameters
    ----------
    model_name:
        Router model id, e.g. ``"openai/gpt-4o-mini"``.
    api_key / base_url:
        Router credentials and endpoint.
    temperature:
        Sampling temperature; kept low for faithful answers.
    request_timeout:
        Per-request HTTP timeout in seconds.
    wall_clock_timeout:
        Upper bound in seconds for a whole call, on both paths.
    headers:
        Extra headers sent with every request (e.g. ``HTTP-Referer``).
    llm:
        Pre-built chat model, mainly for tests.
    """

    def __init__(
        self,
        model_name: str,
        *,
        api_key: str = "",
        base_url: str = "",
        temperature: float = 0.1,
        request_timeout: float = 45.0,
        wall_clock_timeout: float = 60.0,
        headers: dict[str, str] | None = None,
        llm: Any = None,
    ) -> None:
        super().__init__(model_name)
        self.wall_clock_timeout = wall_clock_timeout
        if llm is None:
            kwargs: dict = {
                "model": model_name,
                "temperature": temperature,
                "timeout": request_timeout,
                "max_retries": 0,
                "streaming": False,
                # LangChain requires a non-empty key even when the endpoint ignores it.
                "api_key": api_key or "EMPTY",
            }
            if base_url:
                kwargs["base_url"] = base_url
            if headers:
                kwargs["default_headers"] = headers
            llm = ChatOpenAI(**kwargs)
        self._llm = llm

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        name = self.model_name
        try:
            yield
        except openai.RateLimitError as exc:
            raise RateLimited(name) from exc
        except openai.APIStatusError as exc:
            raise ProviderFailure(
                name, f"Model {name} failed with status {exc.status_code}.", exc.status_code
            ) from exc
        except openai.APITimeoutError as exc:
            raise ProviderFailure(name, f"Model {name} timed out.") from exc
        except openai.APIConnectionError as exc:
            raise ProviderFailure(name, f"Model {name} could not be reached: {exc}") from exc
        except openai.APIError as exc:
            raise ProviderFailure(name, f"Model {name} returned an invalid response: {exc}") from exc

    def _to_success(self, message: AIMessage) -> Success:
        answer = _message_text(message).strip() or NO_ANSWER_SENTINEL
        return Success(model=self.model_name, answer=answer, usage=_message_usage(message))

    def _too_slow(self) -> ProviderFailure:
        return ProviderFailure(
            self.model_name,
            f"Model {self.model_name} did not answer within {self.wall_clock_timeout:g}s.",
        )

    def _call(self, prompt: str) -> Success:
        # The worker is abandoned on timeout; the HTTP timeout ends it later.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="llm-call")
        try:
            future = executor.submit(self._llm.invoke, [HumanMessage(content=prompt)])
            with self._translate_errors():
                try:
                    message = future.result(timeout=self.wall_clock_timeout)
                except FuturesTimeoutError as exc:
                    future.cancel()
                    raise self._too_slow() from exc
        finally:
            executor.shutdown(wait=False)
        return self._to_success(message)

    async def _acall(self, prompt: str) -> Success:
        with self._translate_errors():
            try:
                message = await asyncio.wait_for(
                    self._llm.ainvoke([HumanMessage(content=prompt)]),
                    timeout=self.wall_clock_timeout,
                )
            except asyncio.TimeoutError as exc:
                raise self._too_slow() from exc
        return self._to_success(message)
