"""Fuzzy field comparison for regression cases.

Scraped text drifts in case, punctuation and spacing between runs and
between a site's pages, so expected and actual values are compared by a
normalized edit-distance similarity instead of equality.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rapidfuzz.distance import Levenshtein

from propwright.common.text import fold

# Pass mark for every compared field, in every jurisdiction
SIMILARITY_THRESHOLD = 0.8


def similarity(expected: str | None, actual: str | None) -> float:
    """Similarity of two strings in [0, 1] after folding.

    Folded-equal strings (including two empty ones) score 1.0; otherwise
    the score is ``1 - distance / max(len(a), len(b))`` where distance is
    the Levenshtein edit distance of the folded strings.

    Examples:
        >>> similarity("123 MAIN ST", "123 main st.")
        1.0
        >>> similarity("JOHN DOE", "JANE DOE") < SIMILARITY_THRESHOLD
        True
    """
    a = fold(expected)
    b = fold(actual)
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    distance = Levenshtein.distance(a, b)
    return 1.0 - distance / longest


@dataclass(frozen=True)
class Assertion:
    """One compared field of a regression case."""

    field: str
    expected: str
    actual: str
    passed: bool
    similarity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "expected": self.expected,
            "actual": self.actual,
            "passed": self.passed,
            "similarity": round(self.similarity, 4),
        }


def assert_field(
    field: str,
    expected: str,
    actual: str,
    threshold: float = SIMILARITY_THRESHOLD,
) -> Assertion:
    """Compare one field; it passes when similarity >= ``threshold``."""
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")
    score = similarity(expected, actual)
    return Assertion(
        field=field,
        expected=expected,
        actual=actual,
        passed=score >= threshold,
        similarity=score,
    )
