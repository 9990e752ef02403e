"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

# Hard lower bound for the per-call LLM timeout. Anything shorter times out
# legitimate extractions of long newsletters.
MIN_LLM_TIMEOUT_MS = 5000


class Settings(BaseSettings):
    """Application configuration from environment."""

    # API Keys
    anthropic_api_key: str = ""
    api_keys: str = "dev-key"  # Comma-separated valid API keys for the HTTP surface

    @property
    def valid_api_keys(self) -> list[str]:
        """Get list of valid API keys."""
        return [k.strip() for k in self.api_keys.split(",") if k.strip()]

    # LLM Settings
    llm_model: str = "claude-3-5-sonnet-20241022"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 4000
    llm_timeout_ms: int = 12000  # Hard timeout per Claude call (floor 5000ms)
    llm_connect_timeout: int = 10  # Connection timeout for Claude API (seconds)
    llm_max_retries: int = 5  # Total attempts per extraction

    @field_validator("llm_timeout_ms")
    @classmethod
    def clamp_timeout(cls, v: int) -> int:
        """Never allow a timeout below the floor."""
        return max(v, MIN_LLM_TIMEOUT_MS)

    # Retry backoff (milliseconds)
    retry_base_delay_ms: int = 2000
    retry_max_delay_ms: int = 30000
    throttle_min_delay_ms: int = 10000  # Provider 429s wait at least this long
    throttle_max_delay_ms: int = 60000

    # Extraction cache
    extraction_cache_enabled: bool = True
    extraction_cache_ttl_seconds: int = 604800  # 7 days

    # Rate limiting (sliding window, shared bucket)
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60

    # Batch processing
    batch_delay_ms: int = 2000  # Spacing between sequential batch items
    max_content_chars: int = 8000  # Content excerpt sent to Claude

    # Regex fallback is low quality - opt-in only
    fallback_extraction_enabled: bool = False

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create settings instance at import time (singleton pattern)
# All code should import: from ..config.settings import settings
settings = Settings()
