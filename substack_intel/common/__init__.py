"""
Common utilities and shared modules.
"""

from .cache import (
    ResponseCache,
    InMemoryResponseCache,
    NullResponseCache,
)

from .failopen import FailOpen

from .hashing import (
    hash_content,
    extraction_cache_key,
    EXTRACTION_KEY_PREFIX,
)

from .rate_limiter import (
    RateLimiter,
    RateLimitDecision,
    SlidingWindowRateLimiter,
    NullRateLimiter,
    EXTRACTION_BUCKET,
)

__all__ = [
    # Cache
    "ResponseCache",
    "InMemoryResponseCache",
    "NullResponseCache",
    # Collaborator switch
    "FailOpen",
    # Hashing
    "hash_content",
    "extraction_cache_key",
    "EXTRACTION_KEY_PREFIX",
    # Rate limiting
    "RateLimiter",
    "RateLimitDecision",
    "SlidingWindowRateLimiter",
    "NullRateLimiter",
    "EXTRACTION_BUCKET",
]
