"""
Admission control for Claude calls.

Sliding-window log limiter: a bucket allows at most ``max_requests`` permits
in any ``window_seconds`` span. Permits are acquire-only - there is no
release, and a denied call consumes nothing.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Single shared bucket for every extraction call (not per caller)
EXTRACTION_BUCKET = "claude-extraction"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a permit request."""
    success: bool
    remaining: int = 0
    reset_after_seconds: float = 0.0


@runtime_checkable
class RateLimiter(Protocol):
    async def limit(self, bucket_key: str) -> RateLimitDecision:
        ...


class SlidingWindowRateLimiter:
    """In-process sliding window limiter (100 permits / 60s by default)."""

    def __init__(self, max_requests: int = 100, window_seconds: float = 60, clock=time.monotonic):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()

    async def limit(self, bucket_key: str) -> RateLimitDecision:
        async with self._lock:
            now = self._clock()
            window = self._buckets.setdefault(bucket_key, deque())

            # Drop permits that have slid out of the window
            cutoff = now - self.window_seconds
            while window and window[0] <= cutoff:
                window.popleft()

            if len(window) >= self.max_requests:
                reset_after = window[0] + self.window_seconds - now
                logger.debug(f"[RATE LIMIT] Bucket '{bucket_key}' full ({len(window)}/{self.max_requests})")
                return RateLimitDecision(success=False, remaining=0, reset_after_seconds=reset_after)

            window.append(now)
            return RateLimitDecision(
                success=True,
                remaining=self.max_requests - len(window),
                reset_after_seconds=window[0] + self.window_seconds - now,
            )


class NullRateLimiter:
    """Limiter that admits everything."""

    async def limit(self, bucket_key: str) -> RateLimitDecision:
        return RateLimitDecision(success=True)
