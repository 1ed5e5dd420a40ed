"""
Query normalization and request-type detection.

Turns raw chat text into a compact search string by dropping punctuation,
stop words and the phrases that only say *what kind* of answer the user
wants ("photos of", "how much is", "show me"). What remains is the part
that names a vehicle.

Usage:
    extract_photo_query("Show me pictures of the Xpander!")  # -> "xpander"
    is_quote_request("how much is the montero")              # -> True
"""

import re
from typing import Iterable

STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "of", "for", "in", "on", "at", "to", "from", "by", "with", "about",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
    "my", "your", "his", "its", "our", "their",
    "this", "that", "these", "those", "here", "there",
    "what", "which", "who", "when", "where", "why", "how",
    "all", "any", "both", "each", "few", "more", "most", "other", "some", "such",
    "no", "nor", "not", "only", "own", "same", "so", "than", "too", "very",
    "just", "now", "then", "also", "get", "got", "give", "gave", "show",
    "tell", "know", "see", "look", "want", "would", "could", "should", "may", "might",
    "can", "will", "shall", "please", "thanks", "thank", "yes", "yeah", "yep", "ok", "okay",
})

PHOTO_INDICATORS: tuple[str, ...] = (
    "photo", "photos", "picture", "pictures", "image", "images", "pic", "pics",
    "snapshot", "snapshots", "gallery", "shot", "shots", "visual", "view",
)

SPEC_INDICATORS: tuple[str, ...] = (
    "spec", "specs", "specification", "specifications", "feature", "features",
    "detail", "details", "info", "information", "stats", "stat", "technical",
)

QUOTE_INDICATORS: tuple[str, ...] = (
    "quote", "quotes", "quotation", "price", "pricing", "cost", "amount", "fee",
    "payment", "pay", "how much", "how much is", "what is the price", "worth",
    "estimate", "budget", "financing", "installment", "monthly", "down payment",
)

FILLER_PHRASES: tuple[str, ...] = (
    "show me", "tell me about", "tell me", "how much is", "how much are",
    "what does", "look like", "looks like", "can i see", "i want", "i would like",
    "i'd like", "give me", "send me", "let me see", "interested in",
)

_PUNCTUATION = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def _indicator_pattern(indicators: Iterable[str]) -> re.Pattern[str]:
    """Alternation of phrases, longest first, anchored on word boundaries."""
    ordered = sorted(set(indicators), key=len, reverse=True)
    body = "|".join(re.escape(phrase) for phrase in ordered)
    return re.compile(rf"\b(?:{body})\b")


_PHOTO_PATTERN = _indicator_pattern(PHOTO_INDICATORS + FILLER_PHRASES)
_SPEC_PATTERN = _indicator_pattern(SPEC_INDICATORS + FILLER_PHRASES)
_QUOTE_PATTERN = _indicator_pattern(QUOTE_INDICATORS + FILLER_PHRASES)
_ALL_PATTERN = _indicator_pattern(
    PHOTO_INDICATORS + SPEC_INDICATORS + QUOTE_INDICATORS + FILLER_PHRASES
)


def clean_query(query: str) -> str:
    """Lower-case, turn punctuation into spaces and drop stop words."""
    if not query:
        return ""
    lowered = _PUNCTUATION.sub(" ", query.lower().strip())
    words = [word for word in _WHITESPACE.split(lowered) if word and word not in STOP_WORDS]
    return " ".join(words)


def strip_indicators(message: str, pattern: re.Pattern[str]) -> str:
    """Remove every indicator phrase matched by ``pattern``."""
    return pattern.sub(" ", message.lower())


def extract_photo_query(message: str) -> str:
    """'show me pictures of the Xpander' -> 'xpander'."""
    return clean_query(strip_indicators(message, _PHOTO_PATTERN))


def extract_spec_query(message: str) -> str:
    """'what are the specs of Montero Sport' -> 'montero sport'."""
    return clean_query(strip_indicators(message, _SPEC_PATTERN))


def extract_quote_query(message: str) -> str:
    """'how much is the Xpander GLS' -> 'xpander gls'."""
    return clean_query(strip_indicators(message, _QUOTE_PATTERN))


def normalize_query(message: str) -> str:
    """Strip every indicator category and filler, then clean."""
    return clean_query(strip_indicators(message, _ALL_PATTERN))


def _contains_any(message: str, indicators: Iterable[str]) -> bool:
    lowered = message.lower()
    return any(indicator in lowered for indicator in indicators)


def is_photo_request(message: str) -> bool:
    return _contains_any(message, PHOTO_INDICATORS)


def is_spec_request(message: str) -> bool:
    return _contains_any(message, SPEC_INDICATORS)


def is_quote_request(message: str) -> bool:
    return _contains_any(message, QUOTE_INDICATORS)
