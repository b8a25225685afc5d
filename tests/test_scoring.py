"""
Tests for the weighted pair scorer.
"""

import pytest
from datetime import datetime

from pipelines.duplicate_detection.models import CaseProfile
from pipelines.duplicate_detection.scoring import (
    DEFAULT_WEIGHTS,
    FactorWeights,
    score_pair,
)


def profile(case_id="x", **fields):
    return CaseProfile(id=case_id, **fields)


class TestFactorWeights:
    """Test weight configuration."""

    def test_defaults(self):
        """Default weights are 0.4/0.2/0.2/0.2."""
        assert DEFAULT_WEIGHTS.items() == [
            ("name", 0.4),
            ("missing_date", 0.2),
            ("province", 0.2),
            ("age", 0.2),
        ]

    def test_weights_must_sum_to_one(self):
        """Weights not summing to 1 are refused."""
        with pytest.raises(ValueError, match="sum to 1.0"):
            FactorWeights(name=0.5, missing_date=0.5, province=0.5, age=0.5)

    def test_negative_weight_rejected(self):
        """Negative weights are refused."""
        with pytest.raises(ValueError, match="province"):
            FactorWeights(name=0.8, missing_date=0.2, province=-0.2, age=0.2)

    def test_non_numeric_weight_rejected(self):
        """Non-numeric weights are refused."""
        with pytest.raises(ValueError):
            FactorWeights(name="0.4")

    def test_custom_weights_allowed(self):
        """Any valid weighting is accepted."""
        weights = FactorWeights(name=0.7, missing_date=0.1, province=0.1, age=0.1)
        assert weights.name == 0.7


class TestScorePair:
    """Test the combined score."""

    def test_reference_scenario(self, maria_fields, maria_variant_fields):
        """Name 1.0, date 0.7, province 1.0, age 0.8 -> 0.90."""
        result = score_pair(profile("a", **maria_fields), profile("b", **maria_variant_fields))

        assert result.score == pytest.approx(0.90)
        assert result.applicable_weight == pytest.approx(1.0)
        assert result.factors["name"] == 1.0
        assert result.factors["missing_date"] == pytest.approx(0.7)
        assert result.factors["province"] == 1.0
        assert result.factors["age"] == pytest.approx(0.8)

    def test_missing_age_renormalizes(self, maria_fields, maria_variant_fields):
        """Without age: 0.74 over weight 0.8 -> 0.925."""
        maria_variant_fields["age"] = None
        result = score_pair(profile("a", **maria_fields), profile("b", **maria_variant_fields))

        assert result.applicable_weight == pytest.approx(0.8)
        assert result.score == pytest.approx(0.925)
        assert "age" not in result.factors

    def test_single_factor_equals_its_similarity(self):
        """With one shared factor the score is its similarity."""
        result = score_pair(profile("a", full_name="kitten"), profile("b", full_name="sitting"))
        assert result.score == pytest.approx(4 / 7)
        assert result.applicable_weight == pytest.approx(0.4)

    def test_single_non_name_factor(self):
        """Renormalization works for non-name factors too."""
        result = score_pair(profile("a", age=40), profile("b", age=42))
        assert result.score == pytest.approx(0.6)

    def test_no_comparable_fields_scores_zero(self):
        """No shared factor gives score 0 and zero weight."""
        result = score_pair(profile("a", full_name="Ana"), profile("b", age=20))
        assert result.score == 0.0
        assert result.applicable_weight == 0.0
        assert not result.comparable
        assert result.explain() == "no comparable fields"

    def test_empty_names_are_identical(self):
        """Two empty names score 1."""
        result = score_pair(profile("a", full_name=""), profile("b", full_name=""))
        assert result.score == 1.0

    def test_symmetric(self, maria_fields):
        """score_pair does not depend on argument order."""
        other = profile("b", full_name="Mariana Silva", missing_date=datetime(2024, 1, 20), province="Huambo", age=27)
        first = profile("a", **maria_fields)
        assert score_pair(first, other).score == pytest.approx(score_pair(other, first).score)

    def test_zero_weight_factor_is_ignored(self):
        """Factors weighted 0 are left out of the breakdown."""
        weights = FactorWeights(name=0.6, missing_date=0.2, province=0.2, age=0.0)
        result = score_pair(
            profile("a", full_name="Ana", age=10),
            profile("b", full_name="Ana", age=70),
            weights,
        )
        assert result.score == 1.0
        assert "age" not in result.factors

    def test_score_stays_in_unit_interval(self):
        """Scores stay within [0, 1]."""
        result = score_pair(
            profile("a", full_name="Ana", missing_date=datetime(2020, 1, 1), province="A", age=1),
            profile("b", full_name="Zeferino", missing_date=datetime(2024, 1, 1), province="B", age=90),
        )
        assert 0.0 <= result.score <= 1.0

    def test_explain_lists_factors(self, maria_fields, maria_variant_fields):
        """explain names the score and each factor."""
        text = score_pair(profile("a", **maria_fields), profile("b", **maria_variant_fields)).explain()
        assert text.startswith("score=0.900")
        assert "province=1.000" in text
