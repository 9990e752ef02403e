"""
Retry classification and backoff math for Claude calls.

classify() is a pure function over the extraction error taxonomy; the
transport adapter is responsible for turning SDK exceptions into that
taxonomy first. The retry loop in extractor.py only ever asks two
questions: "may I retry this?" and "how long do I wait?".

Backoff: base * 2^(attempt-1), plus 0-25% jitter, capped at 30s.
Provider throttling (HTTP 429) waits at least 10s and at most 60s.
"""

import random
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ProviderThrottled, ServerError, TransportError


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=5, ge=1)  # Total attempts, including the first
    base_delay_ms: int = 2000
    max_delay_ms: int = 30000
    throttle_min_delay_ms: int = 10000
    throttle_max_delay_ms: int = 60000
    jitter_ratio: float = Field(default=0.25, ge=0.0)


@dataclass(frozen=True)
class RetryDecision:
    retryable: bool
    wait_floor_ms: int = 0
    wait_cap_ms: int = 0


@dataclass(frozen=True)
class RetryAttempt:
    """One failed attempt, kept for logging and diagnostics."""
    attempt_number: int
    error: BaseException
    classified_retryable: bool
    delay_ms: Optional[int] = None


NOT_RETRYABLE = RetryDecision(retryable=False)


def classify(error: BaseException, policy: RetryPolicy) -> RetryDecision:
    """Decide whether a failed call may be retried and the wait bounds."""
    if isinstance(error, ProviderThrottled):
        return RetryDecision(True, policy.throttle_min_delay_ms, policy.throttle_max_delay_ms)
    if isinstance(error, (TransportError, ServerError)):
        # Timeouts are TransportErrors
        return RetryDecision(True, 0, policy.max_delay_ms)
    # 401, other 4xx, parse/schema failures and anything unrecognized are final
    return NOT_RETRYABLE


def compute_delay_ms(
    attempt: int,
    decision: RetryDecision,
    policy: RetryPolicy,
    rng: Optional[random.Random] = None,
    previous_delay_ms: int = 0,
) -> int:
    """Delay to sleep after failed attempt number ``attempt`` (1-based).

    Floors (the decision's and ``previous_delay_ms``) are applied after
    jitter, so a call's delays never shrink from one attempt to the next,
    even when a 429 is followed by a 5xx. The decision's cap always wins.
    """
    rng = rng or random
    exponential = policy.base_delay_ms * (2 ** (attempt - 1))
    jittered = exponential * (1 + rng.uniform(0, policy.jitter_ratio))
    floor = max(decision.wait_floor_ms, previous_delay_ms)
    return int(min(decision.wait_cap_ms, max(floor, jittered)))
