from typing import List, Optional, Literal
from pydantic import BaseModel
from uuid import UUID

from realty_scores.schemas.score import AgentPerformance


# Caller-requested group ordering; None keeps first-seen key order
GroupOrder = Literal["score_desc", "count_desc"]


# --- Averages / distribution ---
class TypeScoreSummary(BaseModel):
    type: str
    count: int
    average_score: float
    high_count: int    # score >= 80
    medium_count: int  # 50 <= score < 80
    low_count: int     # score < 50


class DistributionBucket(BaseModel):
    range: str
    type: str
    count: int


class GroupSummary(BaseModel):
    key: Optional[str]
    count: int
    average_score: float


# --- Trend ---
class TrendPoint(BaseModel):
    type: str
    average_score: float
    count: int


class TrendMonth(BaseModel):
    year: int
    month: int
    label: str  # YYYY-MM
    points: List[TrendPoint]


# --- Lead conversion ---
class StatusGroup(BaseModel):
    status: str
    count: int
    average_score: float


class SourceConversion(BaseModel):
    source: str
    count: int
    average_score: float
    converted_count: int
    conversion_rate: float


class StatusCount(BaseModel):
    status: str
    count: int


class ConversionTrendMonth(BaseModel):
    year: int
    month: int
    label: str
    statuses: List[StatusCount]


class LeadConversionReport(BaseModel):
    by_status: List[StatusGroup]
    by_source: List[SourceConversion]
    trend: List[ConversionTrendMonth]


# --- Property analytics ---
class PropertyGroup(BaseModel):
    key: Optional[str]
    count: int
    average_score: float
    average_price: float


class PriceBucket(BaseModel):
    bucket: str
    count: int
    average_score: float


class PropertyAnalyticsReport(BaseModel):
    by_type: List[PropertyGroup]
    by_area: List[PropertyGroup]
    by_status: List[PropertyGroup]
    by_price: List[PriceBucket]


# --- Dashboard summary ---
class StatisticsSummary(BaseModel):
    total: int
    average_scores: List[TypeScoreSummary]
    score_distribution: List[DistributionBucket]
    score_trend: List[TrendMonth]
    lead_conversion: LeadConversionReport
    property_analytics: PropertyAnalyticsReport
    agent_stats: List[GroupSummary]


# --- Leaderboards ---
class AgentLeaderboardEntry(BaseModel):
    id: UUID
    user: UUID
    score: int
    performance: AgentPerformance
    period: str


class AgentPerformanceReport(BaseModel):
    leaderboard: List[AgentLeaderboardEntry]
    by_period: List[GroupSummary]
