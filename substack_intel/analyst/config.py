"""
Immutable extractor configuration.

Built once from Settings when a ClaudeExtractor is constructed. The
extractor reads it but never mutates it.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config.settings import MIN_LLM_TIMEOUT_MS, Settings, settings as default_settings
from .retry import RetryPolicy


class ExtractorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 4000
    temperature: float = 0.2
    timeout_ms: int = 12000
    connect_timeout_s: float = 10.0
    max_content_chars: int = 8000
    cache_ttl_seconds: int = 604800
    cache_enabled: bool = True
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    batch_delay_ms: int = 2000
    fallback_enabled: bool = False
    retry: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("timeout_ms")
    @classmethod
    def clamp_timeout(cls, v: int) -> int:
        return max(v, MIN_LLM_TIMEOUT_MS)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "ExtractorConfig":
        """Snapshot the relevant settings into a frozen config."""
        s = source or default_settings
        return cls(
            api_key=s.anthropic_api_key,
            model=s.llm_model,
            max_tokens=s.llm_max_tokens,
            temperature=s.llm_temperature,
            timeout_ms=s.llm_timeout_ms,
            connect_timeout_s=s.llm_connect_timeout,
            max_content_chars=s.max_content_chars,
            cache_ttl_seconds=s.extraction_cache_ttl_seconds,
            cache_enabled=s.extraction_cache_enabled,
            rate_limit_enabled=s.rate_limit_enabled,
            rate_limit_requests=s.rate_limit_requests,
            rate_limit_window_seconds=s.rate_limit_window_seconds,
            batch_delay_ms=s.batch_delay_ms,
            fallback_enabled=s.fallback_extraction_enabled,
            retry=RetryPolicy(
                max_retries=s.llm_max_retries,
                base_delay_ms=s.retry_base_delay_ms,
                max_delay_ms=s.retry_max_delay_ms,
                throttle_min_delay_ms=s.throttle_min_delay_ms,
                throttle_max_delay_ms=s.throttle_max_delay_ms,
            ),
        )
