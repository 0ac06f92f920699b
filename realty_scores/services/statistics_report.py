from typing import List, Optional
from datetime import datetime, timezone

from realty_scores.schemas.score import AgentScore, ScoreType
from realty_scores.schemas.analytics import AgentLeaderboardEntry, StatisticsSummary
from realty_scores.services.analytics import AnalyticsAggregator, as_utc, split_by_type


def _leaderboard_key(record):
    # score desc, then earlier created_at, then id
    return (-record.score, as_utc(record.created_at), str(record.id))


def _of_type(records, score_type: Optional[ScoreType]):
    if score_type is None:
        return list(records)
    return [r for r in records if r.type == score_type]


class StatisticsReportBuilder:
    """
        Assembles analytics into dashboard-ready summaries.

        - build(): one summary object with every aggregator section.
        - leaderboard(): top-N by score, ties broken by earlier created_at then id.
        - recent(): newest-first by created_at.
        - agent_leaderboard(): agent rows for the performance leaderboard.
    """

    @staticmethod
    def build(records, now: Optional[datetime] = None) -> StatisticsSummary:
        records = list(records)
        now = now or datetime.now(timezone.utc)
        return StatisticsSummary(
            total=len(records),
            average_scores=AnalyticsAggregator.average_scores_by_type(records),
            score_distribution=AnalyticsAggregator.score_distribution(records),
            score_trend=AnalyticsAggregator.score_trend(records, now=now),
            lead_conversion=AnalyticsAggregator.lead_conversion(records, order="count_desc", now=now),
            property_analytics=AnalyticsAggregator.property_analytics(records),
            agent_stats=AnalyticsAggregator.agent_stats(records),
        )

    @staticmethod
    def leaderboard(records, score_type: Optional[ScoreType] = None, n: int = 5) -> List:
        if n <= 0:
            return []
        return sorted(_of_type(records, score_type), key=_leaderboard_key)[:n]

    @staticmethod
    def recent(records, score_type: Optional[ScoreType] = None, n: int = 10) -> List:
        if n <= 0:
            return []
        # two stable passes: id as the secondary key, created_at desc as the primary
        ordered = sorted(_of_type(records, score_type), key=lambda r: str(r.id))
        ordered.sort(key=lambda r: as_utc(r.created_at), reverse=True)
        return ordered[:n]

    @staticmethod
    def agent_leaderboard(records, n: int = 10) -> List[AgentLeaderboardEntry]:
        _, _, agents = split_by_type(records)
        top: List[AgentScore] = StatisticsReportBuilder.leaderboard(agents, n=n)
        return [
            AgentLeaderboardEntry(
                id=record.id,
                user=record.detail.user,
                score=record.score,
                performance=record.detail.performance,
                period=record.detail.period,
            )
            for record in top
        ]
