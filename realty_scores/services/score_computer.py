from typing import Iterable, Optional
import math

from realty_scores.errors import ScoreValidationError
from realty_scores.schemas.score import Factor


class ScoreComputer:
    """
        Derives the canonical 0-100 score of a record from its weighted factors.

        Rules:
        - score = round(sum(value * weight) / sum(weight)), rounding half up.
        - Weights need not sum to 1; the weighted sum is normalized by the total weight.
        - When the total weight is zero (no factors, or all weights 0) the caller's
          fallback score is used instead.
        - The result is always clamped to [0, 100].

        Usage:
        - Called explicitly on every write (create and update) before the record
          is handed to the repository. Nothing in the storage layer recomputes it.
    """

    MIN_SCORE = 0
    MAX_SCORE = 100

    @classmethod
    def clamp(cls, value: float) -> int:
        return max(cls.MIN_SCORE, min(cls.MAX_SCORE, math.floor(value + 0.5)))

    @classmethod
    def compute(cls, factors: Iterable[Factor], fallback_score: Optional[float] = 0) -> int:
        weighted_sum = 0.0
        total_weight = 0.0

        for factor in factors:
            # Factor models are validated on construction, but model_construct()
            # and plain objects can still slip through
            if not 0 <= factor.weight <= 1:
                raise ScoreValidationError(f"Factor '{factor.name}' weight must be between 0 and 1")
            if not 0 <= factor.value <= 100:
                raise ScoreValidationError(f"Factor '{factor.name}' value must be between 0 and 100")
            weighted_sum += factor.value * factor.weight
            total_weight += factor.weight

        if total_weight > 0:
            return cls.clamp(weighted_sum / total_weight)

        return cls.clamp(fallback_score or 0)


def compute_score(factors: Iterable[Factor], fallback_score: Optional[float] = 0) -> int:
    return ScoreComputer.compute(factors, fallback_score)
