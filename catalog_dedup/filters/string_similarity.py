# catalog_dedup/filters/string_similarity.py

"""Edit-distance similarity between normalised catalog strings."""

import logging
from typing import Any

from rapidfuzz.distance import Levenshtein

from catalog_dedup.filters.text_normalizer import normalize

logger = logging.getLogger("catalog_dedup.similarity")


def distance(a: str, b: str) -> int:
    """Unit-cost Levenshtein distance over code points.

    Python strings are sequences of code points, so CJK text is
    compared character by character, never byte by byte.
    """
    return int(Levenshtein.distance(a or "", b or ""))


def similarity(a: Any, b: Any) -> float:
    """Similarity in ``[0, 1]`` between two raw strings.

    Empty raw input on both sides counts as identical, on one side as
    completely different.  Otherwise both sides are normalised and the
    edit distance is scaled by the longer normalised length.
    """
    raw_a = a if isinstance(a, str) else ""
    raw_b = b if isinstance(b, str) else ""
    if not raw_a and not raw_b:
        return 1.0
    if not raw_a or not raw_b:
        return 0.0

    norm_a = normalize(raw_a)
    norm_b = normalize(raw_b)
    if norm_a == norm_b:
        return 1.0

    longest = max(len(norm_a), len(norm_b))
    score = 1.0 - distance(norm_a, norm_b) / longest
    return max(0.0, score)


def containment(a: Any, b: Any) -> bool:
    """Loose overlap test used for diagnostics only.

    True when one normalised string contains the other, or when they
    share a substring of at least ``max(2, floor(0.6 * shorter))``
    characters.  Strings shorter than two characters never match.
    """
    norm_a = normalize(a)
    norm_b = normalize(b)
    if len(norm_a) < 2 or len(norm_b) < 2:
        return False

    if norm_a in norm_b or norm_b in norm_a:
        return True

    window = max(2, int(min(len(norm_a), len(norm_b)) * 0.6))
    for start in range(len(norm_a) - window + 1):
        if norm_a[start:start + window] in norm_b:
            return True
    return False


def similarity_details(
    a: Any, b: Any, kind: str = "general",
) -> dict[str, Any]:
    """Collect every intermediate of a string comparison for debugging."""
    norm_a = normalize(a)
    norm_b = normalize(b)
    details: dict[str, Any] = {
        "original_a": a,
        "original_b": b,
        "normalized_a": norm_a,
        "normalized_b": norm_b,
        "similarity": similarity(a, b),
        "containment": containment(a, b),
        "edit_distance": distance(norm_a, norm_b),
        "kind": kind,
    }
    logger.debug(
        "Similarity [%s]: %r vs %r = %.3f (distance=%d, contained=%s)",
        kind,
        a,
        b,
        details["similarity"],
        details["edit_distance"],
        details["containment"],
    )
    return details
