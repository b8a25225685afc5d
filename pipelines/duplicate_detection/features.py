"""
Feature Extraction for Duplicate Detection.

Responsibilities:
- Compute per-field similarities in [0, 1] between two case records.
- Normalize and compare fields (name, missing date, province, age).

Non-Responsibilities:
- No weighting logic.
- No threshold logic.
- No persistence.

Invariant:
Missing data must never be treated as a mismatch. Every comparator
returns None when either input is missing so the factor is left out.
"""

from datetime import datetime
from typing import Any, Optional

from casededup.normalize import coerce_datetime, normalize_name

DATE_WINDOW_DAYS = 30.0
AGE_WINDOW_YEARS = 5.0

SECONDS_PER_DAY = 86400.0


def levenshtein(a: str, b: str) -> int:
    """
    Edit distance between two strings (insert, delete, substitute; cost 1).

    Uses a single rolling row sized to the shorter string.
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def text_similarity(a: Optional[str], b: Optional[str]) -> Optional[float]:
    """Normalized edit similarity of two names, compared lower-cased."""
    if a is None or b is None:
        return None
    a = normalize_name(a)
    b = normalize_name(b)
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein(a, b)) / max_len


def date_similarity(
    a: Any,
    b: Any,
    window_days: float = DATE_WINDOW_DAYS,
) -> Optional[float]:
    """Linear decay from 1.0 (same instant) to 0.0 at window_days apart."""
    first: Optional[datetime] = coerce_datetime(a)
    second: Optional[datetime] = coerce_datetime(b)
    if first is None or second is None:
        return None
    diff_days = abs((first - second).total_seconds()) / SECONDS_PER_DAY
    return max(0.0, 1.0 - diff_days / window_days)


def categorical_similarity(a: Optional[str], b: Optional[str]) -> Optional[float]:
    # Exact, case-sensitive, as stored.
    if a is None or b is None:
        return None
    return 1.0 if a == b else 0.0


def numeric_similarity(
    a: Optional[float],
    b: Optional[float],
    window: float = AGE_WINDOW_YEARS,
) -> Optional[float]:
    """Linear decay from 1.0 (equal) to 0.0 at `window` units apart."""
    if a is None or b is None:
        return None
    return max(0.0, 1.0 - abs(a - b) / window)
