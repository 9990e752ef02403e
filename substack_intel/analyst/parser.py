"""
Recover and validate Claude's JSON output.
"""

import json
import logging
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from .errors import ParseError, SchemaValidationError
from .schemas import CompanyList, CompanyMention

logger = logging.getLogger(__name__)

# ```json ... ``` or bare ``` ... ```
FENCED_BLOCK_PATTERN = re.compile(r'```(?:json)?\s*([\s\S]*?)\s*```', re.IGNORECASE)


def parse_response(text: str) -> Dict[str, Any]:
    """Turn raw response text into a JSON object.

    Tries the whole text first, then the first fenced code block.
    Raises ParseError if neither yields a JSON object.
    """
    if not text or not text.strip():
        raise ParseError("No response from Claude")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        match = FENCED_BLOCK_PATTERN.search(text)
        if not match:
            raise ParseError("Failed to parse Claude response as JSON")
        try:
            parsed = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse fenced JSON block: {e.msg}") from e
        logger.debug("Recovered JSON from markdown code block")

    if not isinstance(parsed, dict):
        raise ParseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _summarize_validation_error(error: ValidationError, limit: int = 3) -> str:
    parts = []
    for detail in error.errors()[:limit]:
        location = ".".join(str(p) for p in detail.get("loc", ()))
        parts.append(f"{location}: {detail.get('msg')}")
    remaining = error.error_count() - limit
    if remaining > 0:
        parts.append(f"(+{remaining} more)")
    return "; ".join(parts)


def validate_companies(payload: Dict[str, Any]) -> List[CompanyMention]:
    """Validate the parsed object against the extraction schema.

    Any model-supplied metadata is ignored; metadata is always ours.
    """
    try:
        return CompanyList.model_validate(payload).companies
    except ValidationError as e:
        raise SchemaValidationError(
            f"Response failed schema validation: {_summarize_validation_error(e)}"
        ) from e
