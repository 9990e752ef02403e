"""
Pattern-based company extraction - last resort only.

Scans for phrases like "Acme raised $5M", "Acme launched", "CEO of Acme" and
returns whatever capitalized names it finds. Quality is far below Claude's,
so it is never used unless explicitly enabled, every mention is capped at
0.5 confidence, and results are flagged with fallback_used=True.
"""

import logging
import re
from typing import List, Optional, Tuple

from .schemas import CompanyMention, Sentiment

logger = logging.getLogger(__name__)

MAX_FALLBACK_CONFIDENCE = 0.5
MAX_CONTEXT_CHARS = 200

# One to four capitalized tokens: "Glossier", "Liquid Death", "Rare Beauty Co."
_NAME = r"\b([A-Z][\w&'.\-]*(?:\s+(?:&\s+)?[A-Z][\w&'.\-]*){0,3})"
_AMOUNT = r"\$\s?\d[\d,.]*\s*(?:[KMB]\b|k\b|thousand|million|billion|mn|bn)?"

# (pattern, confidence, description) - name is always group 1
FALLBACK_PATTERNS: List[Tuple[re.Pattern, float, str]] = [
    (
        re.compile(_NAME + r"\s+(?:(?:has|have|just|recently)\s+)*(?:raised|raises|secured|secures|closed|closes)\s+" + _AMOUNT),
        0.5,
        "Raised funding",
    ),
    (
        re.compile(_NAME + r"\s+(?:(?:has|have|just|recently)\s+)*(?:launched|launches|unveiled|unveils|debuted|debuts)\b"),
        0.4,
        "Launched a product",
    ),
    (
        re.compile(r"\b(?:CEO|CTO|COO|founder|co-founder|cofounder)\s+(?:of|at)\s+" + _NAME),
        0.4,
        "Company referenced through its leadership",
    ),
    (
        re.compile(r"\b(?:acquired|bought)\s+by\s+" + _NAME),
        0.3,
        "Acquirer",
    ),
]

# Capitalized words that start sentences or name people/roles, not companies
STOP_WORDS = frozenset({
    "The", "This", "That", "These", "Those", "It", "Its", "They", "We", "Our",
    "He", "She", "His", "Her", "Today", "Yesterday", "Meanwhile", "Also", "And",
    "But", "Then", "Now", "Last", "Next", "Earlier", "Later", "Plus", "Why",
    "What", "How", "When", "Who", "CEO", "CTO", "COO", "Founder", "Co-founder",
    "Series", "Seed", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday",
    "Saturday", "Sunday",
})

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+|\n+")


def _clean_name(raw: str) -> Optional[str]:
    """Drop leading stop words and trailing punctuation; None if nothing left."""
    tokens = raw.strip().split()
    while tokens and tokens[0] in STOP_WORDS:
        tokens.pop(0)
    while tokens and tokens[-1] in STOP_WORDS:
        tokens.pop()
    name = " ".join(tokens).rstrip(".,;:'")
    if name.endswith("'s"):
        name = name[:-2]
    if len(name) < 2:
        return None
    return name


def _sentence_around(text: str, start: int, end: int) -> str:
    """Return the sentence containing [start, end), capped in length."""
    sentence_start = 0
    for boundary in _SENTENCE_BOUNDARY.finditer(text):
        if boundary.end() <= start:
            sentence_start = boundary.end()
        elif boundary.start() >= end:
            sentence = text[sentence_start:boundary.start()]
            break
    else:
        sentence = text[sentence_start:]
    sentence = " ".join(sentence.split())
    if len(sentence) > MAX_CONTEXT_CHARS:
        sentence = sentence[:MAX_CONTEXT_CHARS - 3] + "..."
    return sentence


class FallbackExtractor:
    """Regex heuristics for when Claude cannot be used at all."""

    def __init__(self, max_confidence: float = MAX_FALLBACK_CONFIDENCE):
        self.max_confidence = min(max_confidence, MAX_FALLBACK_CONFIDENCE)

    def extract(self, content: str) -> List[CompanyMention]:
        found: dict[str, CompanyMention] = {}
        for pattern, confidence, description in FALLBACK_PATTERNS:
            for match in pattern.finditer(content):
                name = _clean_name(match.group(1))
                if not name:
                    continue
                key = name.lower()
                if key in found:
                    continue
                found[key] = CompanyMention(
                    name=name,
                    description=description,
                    context=_sentence_around(content, match.start(), match.end()),
                    sentiment=Sentiment.NEUTRAL,
                    confidence=min(confidence, self.max_confidence),
                )

        logger.debug(f"[FALLBACK] Pattern extraction found {len(found)} companies")
        return list(found.values())
