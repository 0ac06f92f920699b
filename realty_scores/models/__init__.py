from .score import ScoreRow

__all__ = ["ScoreRow"]
