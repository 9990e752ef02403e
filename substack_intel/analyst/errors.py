"""
Extraction error taxonomy.

Only PreconditionError (and ClientNotInitializedError) ever reaches callers
of ClaudeExtractor.extract_companies as an exception. Every other class here
is caught inside the extractor and reported through ExtractionMetadata via
its ``error_type`` name.
"""

from typing import Optional

# Name recorded in metadata when the local limiter denies a permit.
# Not an exception: denial is reported as a normal (empty) result.
RATE_LIMIT_EXCEEDED = "RateLimitExceeded"


class ExtractionError(Exception):
    """Base class for extraction failures."""
    error_type = "ExtractionError"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PreconditionError(ExtractionError, ValueError):
    """Empty content or source label. Raised synchronously."""
    error_type = "PreconditionError"


class ClientNotInitializedError(PreconditionError):
    """Missing or malformed Anthropic credential."""
    error_type = "ClientNotInitializedError"


class AuthenticationError(ExtractionError):
    """HTTP 401 from the provider."""
    error_type = "AuthenticationError"


class ProviderThrottled(ExtractionError):
    """HTTP 429 from the provider."""
    error_type = "ProviderThrottled"


class ServerError(ExtractionError):
    """HTTP 5xx from the provider."""
    error_type = "ServerError"


class InvalidRequestError(ExtractionError):
    """HTTP 4xx other than 401/429 - the request itself is bad."""
    error_type = "InvalidRequestError"


class TransportError(ExtractionError):
    """Network failure before a response arrived."""
    error_type = "TransportError"


class RequestTimeoutError(TransportError):
    """The call exceeded its hard timeout."""
    error_type = "TimeoutError"


class ParseError(ExtractionError):
    """Claude's response could not be turned into a JSON object."""
    error_type = "ParseError"


class SchemaValidationError(ExtractionError):
    """Claude's JSON did not match the extraction schema."""
    error_type = "SchemaValidationError"


def error_from_status(status: int, message: str) -> ExtractionError:
    """Map an HTTP-like status code onto the taxonomy."""
    if status == 401:
        return AuthenticationError(message, status=status)
    if status == 429:
        return ProviderThrottled(message, status=status)
    if status >= 500:
        return ServerError(message, status=status)
    return InvalidRequestError(message, status=status)
