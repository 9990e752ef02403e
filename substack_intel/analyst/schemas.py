"""
Pydantic schemas for company extraction.

These schemas are the contract with Claude: the model's JSON output is
validated against CompanyMention, and ExtractionResult is both what callers
receive and what the cache stores.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from enum import Enum


class Sentiment(str, Enum):
    """Tone of a company mention."""
    POSITIVE = "positive"    # Praised, recommended, mentioned favorably
    NEGATIVE = "negative"    # Criticized or mentioned unfavorably
    NEUTRAL = "neutral"      # Factual mention


def _require_text(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field_name} must not be empty")
    return value


class ExtractionRequest(BaseModel):
    """One extraction call's input. Immutable."""
    model_config = ConfigDict(frozen=True)

    content: str
    source_label: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _require_text(v, "content")

    @field_validator("source_label")
    @classmethod
    def validate_source_label(cls, v: str) -> str:
        return _require_text(v, "source_label")


class CompanyMention(BaseModel):
    """A single company mentioned in a newsletter."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, description="Company name as it appears in the text")
    description: str = Field(default="", description="Brief description of what the company does")
    context: str = Field(description="Sentence or paragraph where the company is mentioned")
    sentiment: Sentiment = Field(description="Tone of the mention")
    confidence: float = Field(ge=0.0, le=1.0, description="Extraction confidence in [0, 1]")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, v):
        """Claude sometimes returns null when it has nothing to say."""
        return "" if v is None else v


class CompanyList(BaseModel):
    """Shape of the JSON object Claude must return."""
    model_config = ConfigDict(extra="ignore")

    companies: List[CompanyMention]


class ExtractionMetadata(BaseModel):
    """What happened during an extraction. Present on every result."""
    processing_time_ms: int = 0
    token_count: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    model_version: str
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_status: Optional[int] = None
    fallback_used: bool = False


class ExtractionResult(BaseModel):
    """Companies found in one piece of content, plus call metadata."""
    companies: List[CompanyMention] = Field(default_factory=list)
    metadata: ExtractionMetadata

    @property
    def ok(self) -> bool:
        """True if no error was recorded."""
        return self.metadata.error_type is None


class BatchItem(BaseModel):
    """One entry of a batch extraction request."""
    id: Optional[str] = None
    content: str
    source_label: str


class BatchItemResult(ExtractionResult):
    """ExtractionResult tagged with the batch item it came from."""
    id: Optional[str] = None
    source_label: str


class BatchFailure(BaseModel):
    """Diagnostic record for a batch item that did not succeed."""
    id: Optional[str] = None
    source_label: str
    error_type: str
    error: str


class BatchResult(BaseModel):
    successful: List[BatchItemResult] = Field(default_factory=list)
    failed: int = 0
    total: int = 0
    failures: List[BatchFailure] = Field(default_factory=list)


class ExtractionStats(BaseModel):
    """Cache and collaborator status for diagnostics."""
    cached_extractions: int
    cache_hits: int
    cache_misses: int
    cache_hit_rate: Optional[float] = None
    cache_enabled: bool
    rate_limit_enabled: bool
