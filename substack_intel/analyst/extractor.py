"""
Company Extractor - the Claude call orchestrator.

Turns newsletter text into a validated list of company mentions:

    rate limit -> cache lookup -> prompt -> Claude call (timeout + classified
    retry) -> parse -> schema validation -> metadata -> cache write

Contract: extract_companies() never raises for transport, quota, parsing or
validation failures. Those come back as an ExtractionResult with empty
companies and metadata.error/error_type/error_status populated, so a batch
of newsletters can never be aborted by one bad item. Only precondition
failures (empty input, missing credential) raise.

The cache and rate limiter are optional and fail open: the first backend
error disables that collaborator for the rest of the process.
"""

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from ..common.cache import InMemoryResponseCache, NullResponseCache, ResponseCache
from ..common.failopen import FailOpen
from ..common.hashing import EXTRACTION_KEY_PREFIX, extraction_cache_key
from ..common.rate_limiter import (
    EXTRACTION_BUCKET,
    NullRateLimiter,
    RateLimiter,
    SlidingWindowRateLimiter,
)
from .config import ExtractorConfig
from .errors import (
    RATE_LIMIT_EXCEEDED,
    ClientNotInitializedError,
    ExtractionError,
    PreconditionError,
    RequestTimeoutError,
)
from .fallback import FallbackExtractor
from .parser import parse_response, validate_companies
from .prompts import build_prompt
from .retry import RetryAttempt, classify, compute_delay_ms
from .schemas import ExtractionMetadata, ExtractionRequest, ExtractionResult, ExtractionStats
from .transport import (
    AnthropicTransport,
    CompletionRequest,
    CompletionResponse,
    LLMTransport,
    translate_exception,
)

logger = logging.getLogger(__name__)

# Claude 3.5 Sonnet pricing, used only for cost logging
# See: https://www.anthropic.com/pricing
SONNET_INPUT_COST_PER_MILLION = 3.00
SONNET_OUTPUT_COST_PER_MILLION = 15.00


def _calculate_cost(input_tokens: int, output_tokens: int) -> float:
    """Calculate estimated cost in USD for token usage."""
    cost = (
        (input_tokens * SONNET_INPUT_COST_PER_MILLION / 1_000_000) +
        (output_tokens * SONNET_OUTPUT_COST_PER_MILLION / 1_000_000)
    )
    return round(cost, 6)


def _preview(text: str, length: int = 80) -> str:
    return text[:length].replace("\n", " ")


class ClaudeExtractor:
    """Extracts company mentions from newsletter content with Claude.

    Args:
        config: Frozen configuration (default: snapshot of settings)
        transport: LLM transport (default: AnthropicTransport from config.api_key)
        cache: Cache backend (default: in-process TTL cache when enabled)
        rate_limiter: Limiter backend (default: in-process sliding window when enabled)
        fallback: Pattern extractor used on failure paths, only if config.fallback_enabled
        sleep: Awaitable sleep used for retry backoff (injectable for tests)
        rng: Random source for backoff jitter
        clock: Monotonic clock in seconds, for processing time
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        *,
        transport: Optional[LLMTransport] = None,
        cache: Optional[ResponseCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        fallback: Optional[FallbackExtractor] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ExtractorConfig.from_settings()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._clock = clock
        self._init_error: Optional[ClientNotInitializedError] = None

        if transport is None:
            try:
                transport = AnthropicTransport(
                    api_key=self.config.api_key,
                    connect_timeout_s=self.config.connect_timeout_s,
                    default_timeout_s=self.config.timeout_seconds,
                )
            except ClientNotInitializedError as e:
                # Surfaced on every extract call rather than at import/startup
                logger.error(f"Claude client failed to initialize: {e}")
                self._init_error = e
        self._transport = transport

        if self.config.cache_enabled and cache is None:
            cache = InMemoryResponseCache()
        self._cache: FailOpen[ResponseCache] = FailOpen(
            "cache", cache if self.config.cache_enabled else None, NullResponseCache()
        )

        if self.config.rate_limit_enabled and rate_limiter is None:
            rate_limiter = SlidingWindowRateLimiter(
                max_requests=self.config.rate_limit_requests,
                window_seconds=self.config.rate_limit_window_seconds,
            )
        self._rate_limiter: FailOpen[RateLimiter] = FailOpen(
            "rate limiter", rate_limiter if self.config.rate_limit_enabled else None, NullRateLimiter()
        )

        self._fallback: Optional[FallbackExtractor] = None
        if self.config.fallback_enabled:
            self._fallback = fallback or FallbackExtractor()

        self._cache_hits = 0
        self._cache_misses = 0
        # Attempts recorded by the most recent Claude call (diagnostics only)
        self.last_attempts: List[RetryAttempt] = []

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._init_error is None and self._transport is not None

    @property
    def cache_enabled(self) -> bool:
        return self._cache.enabled

    @property
    def rate_limit_enabled(self) -> bool:
        return self._rate_limiter.enabled

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate_request(self, content: str, source_label: str) -> ExtractionRequest:
        """Check preconditions. Raises PreconditionError; never touches the network."""
        if self._init_error is not None:
            raise self._init_error
        if self._transport is None:
            raise ClientNotInitializedError("No LLM transport configured")
        try:
            return ExtractionRequest(content=content, source_label=source_label)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise PreconditionError(f"Invalid extraction request: {fields} must be a non-empty string") from e

    async def extract_companies(self, content: str, source_label: str) -> ExtractionResult:
        """
        Extract company mentions from newsletter content.

        Args:
            content: Newsletter body text
            source_label: Newsletter name (prompt framing only, not part of the cache key)

        Returns:
            ExtractionResult - on failure, empty companies with error metadata

        Raises:
            PreconditionError: empty content/source_label
            ClientNotInitializedError: missing or malformed Anthropic credential
        """
        request = self.validate_request(content, source_label)
        start = self._clock()

        try:
            return await self._extract(request, start)
        except ExtractionError as e:
            return self._failure_result(request, e.error_type, str(e), e.status, start)
        except Exception as e:
            logger.error(
                f"Unexpected error during extraction for '{request.source_label}': {type(e).__name__}: {e}",
                exc_info=True,
            )
            return self._failure_result(request, "UnexpectedError", f"{type(e).__name__}: {e}", None, start)

    async def get_stats(self) -> Optional[ExtractionStats]:
        """Cache statistics, or None when caching is disabled or unavailable."""
        if not self._cache.enabled:
            return None

        try:
            keys = await self._cache.active.keys(f"{EXTRACTION_KEY_PREFIX}*")
        except Exception as e:
            # Diagnostics only - a failing key listing does not disable the cache
            logger.warning(f"Failed to get extraction stats: {e}")
            return None

        lookups = self._cache_hits + self._cache_misses
        return ExtractionStats(
            cached_extractions=len(keys),
            cache_hits=self._cache_hits,
            cache_misses=self._cache_misses,
            cache_hit_rate=round(self._cache_hits / lookups, 4) if lookups else None,
            cache_enabled=self._cache.enabled,
            rate_limit_enabled=self._rate_limiter.enabled,
        )

    async def close(self) -> None:
        """Close the underlying transport, if it holds connections."""
        close = getattr(self._transport, "close", None)
        if close is not None:
            await close()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _extract(self, request: ExtractionRequest, start: float) -> ExtractionResult:
        if not await self._acquire_permit():
            logger.warning(f"[RATE LIMIT] Extraction denied for '{request.source_label}'")
            return self._failure_result(
                request,
                RATE_LIMIT_EXCEEDED,
                "Rate limit exceeded",
                None,
                start,
            )

        cache_key = None
        if self._cache.enabled:
            cache_key = extraction_cache_key(request.content)
            cached = await self._cache_get(cache_key)
            if cached is not None:
                logger.info(f"[CACHE] Hit for '{request.source_label}' ({len(cached.companies)} companies)")
                return cached

        prompt = build_prompt(request.content, request.source_label, self.config.max_content_chars)
        response = await self._call_with_retries(
            CompletionRequest(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=prompt.system,
                messages=[{"role": "user", "content": prompt.user}],
            ),
            request,
        )

        # Malformed output is a data defect: parse/schema errors are never retried
        payload = parse_response(response.text)
        companies = validate_companies(payload)

        result = ExtractionResult(
            companies=companies,
            metadata=ExtractionMetadata(
                processing_time_ms=self._elapsed_ms(start),
                token_count=response.total_tokens,
                input_tokens=response.input_tokens,
                output_tokens=response.output_tokens,
                model_version=self.config.model,
            ),
        )

        logger.info(
            f"[EXTRACT] '{request.source_label}': {len(companies)} companies in "
            f"{result.metadata.processing_time_ms}ms "
            f"(tokens in={response.input_tokens}, out={response.output_tokens}, "
            f"cost=${_calculate_cost(response.input_tokens, response.output_tokens):.4f})"
        )

        if cache_key is not None:
            await self._cache_set(cache_key, result)
        return result

    async def _call_with_retries(
        self,
        completion_request: CompletionRequest,
        request: ExtractionRequest,
    ) -> CompletionResponse:
        """Call Claude under a hard timeout, retrying classified transient failures."""
        policy = self.config.retry
        timeout_s = self.config.timeout_seconds
        attempts: List[RetryAttempt] = []
        self.last_attempts = attempts
        previous_delay_ms = 0

        for attempt in range(1, policy.max_retries + 1):
            try:
                # wait_for cancels the in-flight call when the deadline passes
                return await asyncio.wait_for(
                    self._transport.complete(completion_request, timeout_s),
                    timeout=timeout_s,
                )
            except asyncio.TimeoutError:
                error = RequestTimeoutError(f"Claude API call exceeded {self.config.timeout_ms}ms")
            except Exception as e:
                error = translate_exception(e)

            decision = classify(error, policy)
            if not decision.retryable:
                attempts.append(RetryAttempt(attempt, error, classified_retryable=False))
                logger.error(
                    f"Claude API non-retryable {error.error_type} "
                    f"(attempt {attempt}/{policy.max_retries}) for '{request.source_label}': {error}"
                )
                raise error

            if attempt >= policy.max_retries:
                attempts.append(RetryAttempt(attempt, error, classified_retryable=True))
                logger.error(
                    f"Extraction failed after {policy.max_retries} attempts for '{request.source_label}' "
                    f"(content_len={len(request.content)}): {error.error_type}: {error}"
                )
                raise error

            delay_ms = compute_delay_ms(attempt, decision, policy, self._rng, previous_delay_ms)
            previous_delay_ms = delay_ms
            attempts.append(RetryAttempt(attempt, error, classified_retryable=True, delay_ms=delay_ms))
            logger.warning(
                f"Claude API {error.error_type} (attempt {attempt}/{policy.max_retries}, "
                f"backoff={delay_ms / 1000:.1f}s): {error}"
            )
            await self._sleep(delay_ms / 1000)

        # max_retries >= 1, so the loop always returns or raises
        raise ExtractionError("Retry loop exited without a result")

    # ------------------------------------------------------------------
    # Fail-open collaborators
    # ------------------------------------------------------------------

    async def _acquire_permit(self) -> bool:
        if not self._rate_limiter.enabled:
            return True
        try:
            decision = await self._rate_limiter.active.limit(EXTRACTION_BUCKET)
        except Exception as e:
            self._rate_limiter.disable(e)
            return True
        return decision.success

    async def _cache_get(self, key: str) -> Optional[ExtractionResult]:
        if not self._cache.enabled:
            return None
        try:
            value = await self._cache.active.get(key)
        except Exception as e:
            self._cache.disable(e)
            return None

        if value is None:
            self._cache_misses += 1
            return None

        try:
            result = ExtractionResult.model_validate(value)
        except ValidationError as e:
            logger.warning(f"[CACHE] Ignoring malformed entry {key[:24]}...: {e.error_count()} errors")
            self._cache_misses += 1
            return None

        self._cache_hits += 1
        return result

    async def _cache_set(self, key: str, result: ExtractionResult) -> None:
        if not self._cache.enabled:
            return
        try:
            await self._cache.active.set(key, result.model_dump(mode="json"), self.config.cache_ttl_seconds)
        except Exception as e:
            self._cache.disable(e)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _elapsed_ms(self, start: float) -> int:
        return int((self._clock() - start) * 1000)

    def _failure_result(
        self,
        request: ExtractionRequest,
        error_type: str,
        message: str,
        status: Optional[int],
        start: float,
    ) -> ExtractionResult:
        """Empty (or fallback) result carrying the error. Never cached."""
        companies = []
        fallback_used = False
        if self._fallback is not None:
            companies = self._fallback.extract(request.content)
            fallback_used = True
            logger.warning(
                f"[FALLBACK] Pattern extraction used for '{request.source_label}' after {error_type}: "
                f"{len(companies)} low-confidence companies"
            )

        logger.debug(f"Extraction failed for '{_preview(request.source_label)}': {error_type}: {message}")
        return ExtractionResult(
            companies=companies,
            metadata=ExtractionMetadata(
                processing_time_ms=self._elapsed_ms(start),
                token_count=0,
                model_version=self.config.model,
                error=message,
                error_type=error_type,
                error_status=status,
                fallback_used=fallback_used,
            ),
        )
