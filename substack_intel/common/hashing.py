"""
Content fingerprints for extraction caching.

The cache is content-addressed: the key depends only on the newsletter body,
never on which newsletter it came from.
"""

import hashlib

EXTRACTION_KEY_PREFIX = "extraction:"


def hash_content(content: str) -> str:
    """SHA-256 hex digest of the raw content (256-bit, no normalization).

    Lone surrogates (valid in JSON, not in UTF-8) are encoded as-is.
    """
    return hashlib.sha256(content.encode("utf-8", errors="surrogatepass")).hexdigest()


def extraction_cache_key(content: str) -> str:
    """Build the cache key for an extraction of this content."""
    return f"{EXTRACTION_KEY_PREFIX}{hash_content(content)}"
