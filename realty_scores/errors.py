# realty_scores/errors.py
#
# Domain errors. They subclass ValueError / LookupError so routers can map
# them to 400 / 404 the same way as any other bad-input or missing-row error.


class ScoreError(Exception):
    """Base class for score service errors."""


class ScoreValidationError(ScoreError, ValueError):
    """Invalid factors, detail payload, or update request."""


class ScoreNotFoundError(ScoreError, LookupError):
    """No score record with the requested id."""

    def __init__(self, score_id):
        self.score_id = score_id
        super().__init__(f"Score {score_id} not found")
