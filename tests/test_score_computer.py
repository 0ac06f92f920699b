"""Tests for realty_scores.services.score_computer."""
import pytest
from pydantic import ValidationError

from realty_scores.errors import ScoreValidationError
from realty_scores.schemas.score import Factor
from realty_scores.services.score_computer import ScoreComputer, compute_score


def _factors(*pairs):
    return [Factor(name=f"f{i}", weight=w, value=v) for i, (w, v) in enumerate(pairs)]


class TestCompute:

    def test_weighted_average(self):
        factors = _factors((0.3, 80), (0.2, 70), (0.3, 90), (0.2, 60))
        assert ScoreComputer.compute(factors, fallback_score=10) == 77

    def test_weights_need_not_sum_to_one(self):
        assert compute_score(_factors((0.1, 40), (0.1, 60))) == 50
        assert compute_score(_factors((1, 90), (0.5, 30))) == 70  # 105 / 1.5

    def test_empty_factors_use_fallback(self):
        assert ScoreComputer.compute([], fallback_score=55) == 55

    def test_all_zero_weights_use_fallback(self):
        assert ScoreComputer.compute(_factors((0, 90), (0, 10)), fallback_score=42) == 42

    def test_zero_weight_factor_is_ignored(self):
        assert compute_score(_factors((0, 100), (0.4, 20))) == 20

    def test_rounds_half_up(self):
        assert compute_score(_factors((1, 50), (1, 51))) == 51  # 50.5
        assert compute_score(_factors((1, 50), (1, 50), (1, 51))) == 50  # 50.33

    def test_fallback_is_clamped_and_rounded(self):
        assert ScoreComputer.compute([], fallback_score=150) == 100
        assert ScoreComputer.compute([], fallback_score=-5) == 0
        assert ScoreComputer.compute([], fallback_score=64.5) == 65

    def test_missing_fallback_is_zero(self):
        assert ScoreComputer.compute([], fallback_score=None) == 0

    def test_result_stays_in_range(self):
        assert compute_score(_factors((1, 100), (1, 100))) == 100
        assert compute_score(_factors((1, 0), (0.3, 0))) == 0

    def test_idempotent(self):
        factors = _factors((0.25, 33), (0.25, 67), (0.5, 81))
        assert compute_score(factors) == compute_score(factors)


class TestFactorValidation:

    def test_weight_out_of_range_rejected_by_model(self):
        with pytest.raises(ValidationError):
            Factor(name="Budget", weight=1.5, value=50)

    def test_value_out_of_range_rejected_by_model(self):
        with pytest.raises(ValidationError):
            Factor(name="Budget", weight=0.5, value=101)

    def test_unvalidated_factor_rejected_by_computer(self):
        bad = Factor.model_construct(name="Budget", weight=-0.1, value=50)
        with pytest.raises(ScoreValidationError):
            ScoreComputer.compute([bad], fallback_score=0)

    def test_unvalidated_value_rejected_by_computer(self):
        bad = Factor.model_construct(name="Budget", weight=0.5, value=250)
        with pytest.raises(ScoreValidationError):
            ScoreComputer.compute([bad], fallback_score=0)
