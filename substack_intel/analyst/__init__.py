from .schemas import (
    Sentiment,
    CompanyMention,
    ExtractionRequest,
    ExtractionMetadata,
    ExtractionResult,
    BatchItem,
    BatchItemResult,
    BatchResult,
    ExtractionStats,
)
from .errors import (
    ExtractionError,
    PreconditionError,
    ClientNotInitializedError,
    AuthenticationError,
    ProviderThrottled,
    ServerError,
    InvalidRequestError,
    TransportError,
    RequestTimeoutError,
    ParseError,
    SchemaValidationError,
    RATE_LIMIT_EXCEEDED,
)
from .config import ExtractorConfig
from .extractor import ClaudeExtractor
from .batch import BatchCoordinator
from .fallback import FallbackExtractor

__all__ = [
    "Sentiment",
    "CompanyMention",
    "ExtractionRequest",
    "ExtractionMetadata",
    "ExtractionResult",
    "BatchItem",
    "BatchItemResult",
    "BatchResult",
    "ExtractionStats",
    "ExtractionError",
    "PreconditionError",
    "ClientNotInitializedError",
    "AuthenticationError",
    "ProviderThrottled",
    "ServerError",
    "InvalidRequestError",
    "TransportError",
    "RequestTimeoutError",
    "ParseError",
    "SchemaValidationError",
    "RATE_LIMIT_EXCEEDED",
    "ExtractorConfig",
    "ClaudeExtractor",
    "BatchCoordinator",
    "FallbackExtractor",
]
