"""
Scoring Logic for Duplicate Detection.

Responsibilities:
- Compute a deterministic weighted score between two case profiles.
- Emit a score breakdown and explanation.

Non-Responsibilities:
- No database access.
- No candidate selection.
- No threshold decisions.

Invariant:
Given identical inputs, this module must always return
the same score and explanation. Factors missing on either side are
excluded from both the numerator and the applicable weight.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .features import (
    categorical_similarity,
    date_similarity,
    numeric_similarity,
    text_similarity,
)
from .models import CaseProfile


@dataclass(frozen=True)
class FactorWeights:
    """Fixed weights of the four scoring factors."""

    name: float = 0.4
    missing_date: float = 0.2
    province: float = 0.2
    age: float = 0.2

    def __post_init__(self):
        for factor, weight in self.items():
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise ValueError(f"Weight for '{factor}' must be a number")
            if not 0.0 <= weight <= 1.0:
                raise ValueError(f"Weight for '{factor}' must be within [0, 1], got {weight}")
        total = sum(weight for _, weight in self.items())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Factor weights must sum to 1.0, got {total:.4f}")

    def items(self) -> List[Tuple[str, float]]:
        return [
            ("name", self.name),
            ("missing_date", self.missing_date),
            ("province", self.province),
            ("age", self.age),
        ]


DEFAULT_WEIGHTS = FactorWeights()

_COMPARATORS: Dict[str, Callable[[CaseProfile, CaseProfile], Optional[float]]] = {
    "name": lambda a, b: text_similarity(a.full_name, b.full_name),
    "missing_date": lambda a, b: date_similarity(a.missing_date, b.missing_date),
    "province": lambda a, b: categorical_similarity(a.province, b.province),
    "age": lambda a, b: numeric_similarity(a.age, b.age),
}


@dataclass
class ScoreBreakdown:
    score: float
    applicable_weight: float
    factors: Dict[str, float] = field(default_factory=dict)

    @property
    def comparable(self) -> bool:
        """True when at least one factor was present on both sides."""
        return self.applicable_weight > 0

    def explain(self) -> str:
        if not self.factors:
            return "no comparable fields"
        parts = [f"{name}={value:.3f}" for name, value in self.factors.items()]
        return f"score={self.score:.3f} over weight {self.applicable_weight:.2f} ({', '.join(parts)})"


def score_pair(
    first: CaseProfile,
    second: CaseProfile,
    weights: FactorWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    """
    Weighted average of the factors both profiles share.

    Returns:
        ScoreBreakdown with score in [0, 1]; score is 0 when no factor
        is comparable.
    """
    numerator = 0.0
    applicable = 0.0
    factors: Dict[str, float] = {}

    for factor, weight in weights.items():
        similarity = _COMPARATORS[factor](first, second)
        if similarity is None or weight == 0:
            continue
        factors[factor] = similarity
        numerator += weight * similarity
        applicable += weight

    score = numerator / applicable if applicable > 0 else 0.0
    # Guard against float drift past the bounds
    score = min(1.0, max(0.0, score))
    return ScoreBreakdown(score=score, applicable_weight=applicable, factors=factors)
