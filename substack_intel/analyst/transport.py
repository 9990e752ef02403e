"""
LLM transport boundary.

The extractor depends only on LLMTransport.complete(): request in, text and
coarse token counts out, or an error from errors.py. AnthropicTransport is
the adapter that maps the Anthropic SDK onto that contract; the SDK's own
retries are turned off because the extractor runs its own classified retry
loop.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Protocol, runtime_checkable

import httpx
from anthropic import (
    AsyncAnthropic,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
)

from .errors import (
    ClientNotInitializedError,
    ExtractionError,
    ParseError,
    RequestTimeoutError,
    TransportError,
    error_from_status,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    max_tokens: int
    temperature: float
    system: str
    messages: List[Dict[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class CompletionResponse:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@runtime_checkable
class LLMTransport(Protocol):
    async def complete(self, request: CompletionRequest, timeout_s: float) -> CompletionResponse:
        """Issue one call. Raise an ExtractionError subclass on failure."""
        ...


def translate_exception(exc: BaseException) -> ExtractionError:
    """Map any transport-side exception onto the extraction error taxonomy.

    Handles Anthropic SDK errors, raw httpx/socket errors and anything that
    carries an HTTP-like ``status_code`` / ``status``. Provider payloads are
    reduced to a short message; nothing from request headers (credentials)
    is carried over. Unrecognized exceptions map to the non-retryable base
    ExtractionError.
    """
    if isinstance(exc, ExtractionError):
        return exc
    # SDK and httpx timeouts subclass the connection errors below, so check them first
    if isinstance(exc, (APITimeoutError, httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return RequestTimeoutError("Claude API request timed out")
    if isinstance(exc, (APIConnectionError, httpx.TransportError, ConnectionError)):
        cause = exc.__cause__ or exc
        return TransportError(f"Claude API connection error: {type(cause).__name__}")
    if isinstance(exc, APIStatusError):
        return error_from_status(exc.status_code, f"Claude API error {exc.status_code}: {exc.message}")

    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if isinstance(status, int):
        return error_from_status(status, f"Claude API error {status}: {exc}")

    return ExtractionError(f"Unexpected error: {type(exc).__name__}: {exc}")


def validate_api_key(api_key: str) -> None:
    """Fail fast on a missing or obviously malformed credential."""
    if not api_key or not api_key.strip():
        raise ClientNotInitializedError("ANTHROPIC_API_KEY not configured")
    if not api_key.startswith("sk-"):
        raise ClientNotInitializedError("ANTHROPIC_API_KEY is malformed (expected 'sk-' prefix)")


class AnthropicTransport:
    """LLMTransport backed by the Anthropic Messages API."""

    def __init__(self, api_key: str, connect_timeout_s: float = 10.0, default_timeout_s: float = 12.0):
        validate_api_key(api_key)
        self._connect_timeout_s = connect_timeout_s
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=httpx.Timeout(default_timeout_s, connect=connect_timeout_s),
            max_retries=0,
        )

    async def complete(self, request: CompletionRequest, timeout_s: float) -> CompletionResponse:
        try:
            message = await self._client.messages.create(
                model=request.model,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                system=request.system,
                messages=request.messages,
                timeout=httpx.Timeout(timeout_s, connect=min(self._connect_timeout_s, timeout_s)),
            )
        except (APIStatusError, APIConnectionError) as e:
            raise translate_exception(e) from e

        text = "".join(
            getattr(block, "text", "") for block in (message.content or [])
            if getattr(block, "type", None) == "text"
        )
        if not text:
            raise ParseError("No response from Claude")

        usage = getattr(message, "usage", None)
        return CompletionResponse(
            text=text,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
        )

    async def close(self) -> None:
        await self._client.close()
