"""
Pytest fixtures for test infrastructure.

This module is automatically loaded by pytest and provides shared fixtures.
Nothing here talks to the real Claude API: every extractor is built with a
scripted transport and a sleep that only records its argument.
"""

import random

import pytest

from substack_intel.analyst.config import ExtractorConfig
from substack_intel.analyst.extractor import ClaudeExtractor
from tests.test_helpers import SleepRecorder


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def base_config():
    """Config with optional collaborators off; tests opt in explicitly."""
    return ExtractorConfig(
        api_key="sk-test",
        cache_enabled=False,
        rate_limit_enabled=False,
        fallback_enabled=False,
    )


@pytest.fixture
def make_extractor(base_config, sleeper):
    """Factory: make_extractor(transport, cache=..., rate_limiter=..., **config_overrides)."""

    def _make(transport, cache=None, rate_limiter=None, fallback=None, **overrides):
        config = base_config.model_copy(update=overrides) if overrides else base_config
        return ClaudeExtractor(
            config,
            transport=transport,
            cache=cache,
            rate_limiter=rate_limiter,
            fallback=fallback,
            sleep=sleeper,
            rng=random.Random(1234),
        )

    return _make


@pytest.fixture
def sample_newsletter():
    """Sample newsletter text for testing extraction."""
    return (
        "Good morning! Glossier just raised $80M in Series E funding, and the beauty "
        "world is paying attention.\n\n"
        "Elsewhere, Liquid Death launched a new sparkling flavor this week. "
        "Jane Doe, CEO of Rare Beauty, said the category is heating up."
    )
