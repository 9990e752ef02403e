"""
Prompt construction for company extraction.

build_prompt() is pure: identical (content, source_label) always renders an
identical prompt. The cache is keyed on content alone, so the prompt must
not depend on anything else (clock, config drift, randomness).
"""

import re
from typing import NamedTuple

MAX_CONTENT_CHARS = 8000
TRUNCATION_MARKER = "...[truncated]"

SYSTEM_PROMPT = """You are a venture capital analyst who tracks consumer brands and startups.
Your job is to find every company mentioned in a newsletter and describe each mention precisely.

OUTPUT FORMAT
Return ONLY a JSON object, with no prose before or after it:

{
  "companies": [
    {
      "name": "Company Name",
      "description": "One line on what the company does",
      "context": "The sentence where the company is mentioned",
      "sentiment": "positive",
      "confidence": 0.85
    }
  ]
}

FIELD RULES
- name: the company name exactly as written. If several variants appear, use the most complete one.
- description: what the company does, in one short line.
- context: the full sentence containing the mention, at most 200 characters.
- sentiment: exactly one of "positive", "negative", "neutral".
  - positive: praised, recommended or mentioned favorably
  - negative: criticized or mentioned unfavorably
  - neutral: factual mention with no clear tone
- confidence: a number from 0.0 to 1.0.
  - 0.9-1.0: unambiguous mention with specific details
  - 0.7-0.8: clear mention with some ambiguity
  - 0.5-0.6: indirect or unclear mention
  - below 0.5: very uncertain

INCLUDE
- Private companies and startups
- Consumer brands (beauty, fashion, food, beverage, lifestyle)
- New ventures, spin-offs and product launches from established companies
- Companies mentioned in a funding or acquisition context

EXCLUDE
- Large public companies, unless they are launching a new venture
- Personal brands that are not incorporated businesses
- Generic product categories or industries
- Investment firms and VCs themselves
- Media companies and publications

Prefer precision over recall. When unsure, include the company with a lower confidence
rather than inventing details. If no companies are mentioned, return {"companies": []}."""


class Prompt(NamedTuple):
    system: str
    user: str


def sanitize_label(value: str, max_length: int = 200) -> str:
    """Sanitize a source label for inclusion in a prompt.

    Strips control characters, breaks up code fences and role markers so a
    hostile newsletter name cannot rewrite the instructions, and caps length.
    """
    if not value:
        return ""

    # Labels are single-line: newlines and other control chars become spaces
    sanitized = re.sub(r'[\x00-\x1f\x7f]', ' ', value)
    sanitized = sanitized.replace('```', '`\u200b`\u200b`')
    sanitized = re.sub(r'(?i)(SYSTEM|USER|ASSISTANT):', '\\1\u200b:', sanitized)

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized.strip()


def truncate_content(content: str, max_chars: int = MAX_CONTENT_CHARS) -> str:
    """Cap content at max_chars, appending an explicit marker when cut."""
    if len(content) <= max_chars:
        return content
    return content[:max_chars] + TRUNCATION_MARKER


def build_prompt(content: str, source_label: str, max_chars: int = MAX_CONTENT_CHARS) -> Prompt:
    """Render the system prompt and user message for one extraction."""
    user = (
        f"Newsletter: {sanitize_label(source_label)}\n"
        f"Content:\n"
        f"---\n"
        f"{truncate_content(content, max_chars)}\n"
        f"---\n\n"
        f"Extract all company mentions following the schema provided.\n"
        f"Focus on: consumer brands, startups, venture-backed companies.\n"
        f"Exclude: public companies unless they're launching new ventures."
    )
    return Prompt(system=SYSTEM_PROMPT, user=user)
