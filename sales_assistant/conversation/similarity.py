"""Edit-distance string similarity and best-match selection."""

from typing import Iterable, Optional

from rapidfuzz.distance import Levenshtein

DEFAULT_THRESHOLD = 0.6


def similarity(a: str, b: str) -> float:
    """Return ``1 - levenshtein(a, b) / max(len(a), len(b))``.

    Two empty strings are identical (1.0); one empty string against a
    non-empty one scores 0.0.

    Examples:
        >>> similarity("xpander", "xpander")
        1.0
        >>> similarity("", "x")
        0.0
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def best_match(
    query: str,
    candidates: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[str]:
    """Return the candidate most similar to ``query`` at or above ``threshold``.

    Comparison is case-insensitive; the candidate is returned as given.
    On a tie the first-seen candidate wins.
    """
    needle = query.lower().strip()
    if not needle:
        return None

    best: Optional[str] = None
    best_score = -1.0
    for candidate in candidates:
        score = similarity(needle, candidate.lower())
        if score >= threshold and score > best_score:
            best, best_score = candidate, score
    return best


def closest_matches(
    query: str,
    candidates: Iterable[str],
    threshold: float,
    limit: int = 3,
) -> list[str]:
    """Candidates scoring strictly above ``threshold``, best first.

    Used for "did you mean" suggestions, so equal scores keep their
    original order.
    """
    needle = query.lower().strip()
    if not needle:
        return []
    scored = [(similarity(needle, c.lower()), c) for c in candidates]
    ranked = sorted((item for item in scored if item[0] > threshold),
                    key=lambda item: item[0], reverse=True)
    return [candidate for _, candidate in ranked[:limit]]
