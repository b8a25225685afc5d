"""
Candidate Selection Logic.

Responsibilities:
- Enumerate every unordered combination of two distinct eligible cases,
  in the fixed order of the input listing.
- Optionally canonicalize the order of each pair.

Non-Responsibilities:
- No scoring.
- No similarity computation.
- No persistence.

Invariant:
Candidate selection must never exclude a valid match. There is no
pruning: n records always yield n*(n-1)/2 pairs.
"""

from itertools import combinations
from typing import Callable, Iterator, Optional, Sequence, Tuple

from casededup.errors import DetectionCancelled

from .models import CaseProfile


def iter_case_pairs(
    profiles: Sequence[CaseProfile],
    should_stop: Optional[Callable[[], bool]] = None,
) -> Iterator[Tuple[CaseProfile, CaseProfile]]:
    """
    Yield (earlier, later) pairs by position in `profiles`.

    Raises:
        DetectionCancelled: if should_stop() turns true mid-iteration
    """
    for first, second in combinations(profiles, 2):
        if should_stop is not None and should_stop():
            raise DetectionCancelled("Detection pass cancelled before completion")
        yield first, second


def order_pair(first_id: str, second_id: str, canonical: bool = False) -> Tuple[str, str]:
    """Keep iteration order, or put the lexicographically smaller id first."""
    if canonical and second_id < first_id:
        return second_id, first_id
    return first_id, second_id


def pair_count(n: int) -> int:
    return n * (n - 1) // 2 if n > 1 else 0
