from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, assert_never
from datetime import datetime, timezone

from realty_scores.schemas.score import (
    AgentScore,
    CONVERTED_STATUSES,
    LeadScore,
    PropertyScore,
    SCORE_TYPES,
)
from realty_scores.schemas.analytics import (
    ConversionTrendMonth,
    DistributionBucket,
    GroupOrder,
    GroupSummary,
    LeadConversionReport,
    PriceBucket,
    PropertyAnalyticsReport,
    PropertyGroup,
    SourceConversion,
    StatusCount,
    StatusGroup,
    TrendMonth,
    TrendPoint,
    TypeScoreSummary,
)

T = TypeVar("T")

HIGH_SCORE = 80
MEDIUM_SCORE = 50
TREND_MONTHS = 6

# (label, exclusive upper bound); the last bucket takes everything else
SCORE_RANGES: Tuple[Tuple[str, Optional[int]], ...] = (
    ("0-20", 20),
    ("21-40", 40),
    ("41-60", 60),
    ("61-80", 80),
    ("81-100", None),
)

PRICE_BUCKETS: Tuple[Tuple[str, Optional[int]], ...] = (
    ("Under 20L", 2_000_000),
    ("20L-50L", 5_000_000),
    ("50L-1Cr", 10_000_000),
    ("1Cr-2Cr", 20_000_000),
    ("Above 2Cr", None),
)


class _Group:
    """Running totals for one group key."""

    __slots__ = ("count", "score_total", "price_total", "price_count")

    def __init__(self):
        self.count = 0
        self.score_total = 0
        self.price_total = 0.0
        self.price_count = 0

    def add(self, score: int, price: Optional[float] = None) -> None:
        self.count += 1
        self.score_total += score
        if price is not None:
            self.price_total += price
            self.price_count += 1

    @property
    def average_score(self) -> float:
        return _mean(self.score_total, self.count)

    @property
    def average_price(self) -> float:
        return _mean(self.price_total, self.price_count)


def _mean(total: float, count: int) -> float:
    return total / count if count else 0.0


def _group(items: Iterable[T], key: Callable[[T], object]) -> Dict[object, List[T]]:
    # dicts keep insertion order, so groups come out in first-seen order
    groups: Dict[object, List[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def _ordered(rows: List[T], order: Optional[GroupOrder]) -> List[T]:
    if order is None:
        return rows
    if order == "score_desc":
        return sorted(rows, key=lambda r: -r.average_score)
    if order == "count_desc":
        return sorted(rows, key=lambda r: -r.count)
    raise ValueError(f"Unknown group order: {order}")


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_window(now: datetime, months: int = TREND_MONTHS) -> List[Tuple[int, int]]:
    """(year, month) pairs for the `months` calendar months ending at `now`, oldest first."""
    now = as_utc(now)
    year, month = now.year, now.month
    window = []
    for _ in range(months):
        window.append((year, month))
        month -= 1
        if month == 0:
            month, year = 12, year - 1
    window.reverse()
    return window


def _month_key(value: datetime) -> Tuple[int, int]:
    value = as_utc(value)
    return value.year, value.month


def _label(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _bucket(value: float, buckets: Sequence[Tuple[str, Optional[int]]]) -> str:
    for label, upper in buckets:
        if upper is None or value < upper:
            return label
    return buckets[-1][0]


def split_by_type(records) -> Tuple[List[LeadScore], List[PropertyScore], List[AgentScore]]:
    leads: List[LeadScore] = []
    properties: List[PropertyScore] = []
    agents: List[AgentScore] = []
    for record in records:
        match record:
            case LeadScore():
                leads.append(record)
            case PropertyScore():
                properties.append(record)
            case AgentScore():
                agents.append(record)
            case _:
                assert_never(record)
    return leads, properties, agents


class AnalyticsAggregator:
    """
        Side-effect-free analytics over a snapshot of score records.

        Every operation accepts any iterable of records (possibly empty) and
        returns a well-formed result; empty groups yield zero averages and zero
        rates, never an exception. Group order is first-seen key order unless
        an explicit `order` ("score_desc" / "count_desc") is requested. Trend
        output is always chronological.
    """

    @staticmethod
    def average_scores_by_type(records, order: Optional[GroupOrder] = None) -> List[TypeScoreSummary]:
        rows = []
        for score_type, members in _group(records, lambda r: r.type).items():
            scores = [r.score for r in members]
            rows.append(TypeScoreSummary(
                type=score_type,
                count=len(scores),
                average_score=_mean(sum(scores), len(scores)),
                high_count=sum(1 for s in scores if s >= HIGH_SCORE),
                medium_count=sum(1 for s in scores if MEDIUM_SCORE <= s < HIGH_SCORE),
                low_count=sum(1 for s in scores if s < MEDIUM_SCORE),
            ))
        return _ordered(rows, order)

    @staticmethod
    def score_distribution(records) -> List[DistributionBucket]:
        counts = {(t, label): 0 for t in SCORE_TYPES for label, _ in SCORE_RANGES}
        for record in records:
            counts[(record.type, _bucket(record.score, SCORE_RANGES))] += 1

        return [
            DistributionBucket(range=label, type=score_type, count=counts[(score_type, label)])
            for score_type in SCORE_TYPES
            for label, _ in SCORE_RANGES
        ]

    @staticmethod
    def score_trend(records, now: Optional[datetime] = None) -> List[TrendMonth]:
        window = month_window(now or datetime.now(timezone.utc))
        groups = {(ym, t): _Group() for ym in window for t in SCORE_TYPES}

        for record in records:
            key = (_month_key(record.created_at), record.type)
            if key in groups:
                groups[key].add(record.score)

        return [
            TrendMonth(
                year=year,
                month=month,
                label=_label(year, month),
                points=[
                    TrendPoint(
                        type=score_type,
                        average_score=groups[((year, month), score_type)].average_score,
                        count=groups[((year, month), score_type)].count,
                    )
                    for score_type in SCORE_TYPES
                ],
            )
            for year, month in window
        ]

    @staticmethod
    def lead_conversion(
        records,
        order: Optional[GroupOrder] = None,
        now: Optional[datetime] = None,
    ) -> LeadConversionReport:
        leads, _, _ = split_by_type(records)

        by_status = []
        for status, members in _group(leads, lambda r: r.detail.status).items():
            by_status.append(StatusGroup(
                status=status,
                count=len(members),
                average_score=_mean(sum(r.score for r in members), len(members)),
            ))

        by_source = []
        for source, members in _group(leads, lambda r: r.detail.source).items():
            by_source.append(source_conversion(
                source,
                count=len(members),
                score_total=sum(r.score for r in members),
                converted_count=sum(1 for r in members if r.detail.status in CONVERTED_STATUSES),
            ))

        window = month_window(now or datetime.now(timezone.utc))
        per_month: Dict[Tuple[int, int], Dict[str, int]] = {ym: {} for ym in window}
        for lead in leads:
            statuses = per_month.get(_month_key(lead.created_at))
            if statuses is not None:
                statuses[lead.detail.status] = statuses.get(lead.detail.status, 0) + 1

        trend = [
            ConversionTrendMonth(
                year=year,
                month=month,
                label=_label(year, month),
                statuses=[StatusCount(status=s, count=c) for s, c in per_month[(year, month)].items()],
            )
            for year, month in window
        ]

        return LeadConversionReport(
            by_status=_ordered(by_status, order),
            # requested order applies to status groups; sources stay first-seen
            by_source=by_source,
            trend=trend,
        )

    @staticmethod
    def property_analytics(records, order: Optional[GroupOrder] = None) -> PropertyAnalyticsReport:
        _, properties, _ = split_by_type(records)

        def grouped(key) -> List[PropertyGroup]:
            totals: Dict[object, _Group] = {}
            for record in properties:
                totals.setdefault(key(record), _Group()).add(record.score, record.detail.price)
            return _ordered([
                PropertyGroup(
                    key=k,
                    count=g.count,
                    average_score=g.average_score,
                    average_price=g.average_price,
                )
                for k, g in totals.items()
            ], order)

        price_groups = {label: _Group() for label, _ in PRICE_BUCKETS}
        for record in properties:
            if record.detail.price is not None:
                price_groups[_bucket(record.detail.price, PRICE_BUCKETS)].add(record.score)

        return PropertyAnalyticsReport(
            by_type=grouped(lambda r: r.detail.property_type),
            by_area=grouped(lambda r: r.detail.location.area),
            by_status=grouped(lambda r: r.detail.status),
            by_price=[
                PriceBucket(bucket=label, count=g.count, average_score=g.average_score)
                for label, g in price_groups.items()
            ],
        )

    @staticmethod
    def agent_stats(records, order: Optional[GroupOrder] = None) -> List[GroupSummary]:
        _, _, agents = split_by_type(records)
        rows = [
            GroupSummary(
                key=period,
                count=len(members),
                average_score=_mean(sum(r.score for r in members), len(members)),
            )
            for period, members in _group(agents, lambda r: r.detail.period).items()
        ]
        return _ordered(rows, order)


def source_conversion(source: str, count: int, score_total: float, converted_count: int) -> SourceConversion:
    """Build a source row; a zero-count group has a 0% rate rather than a division error."""
    rate = converted_count / count * 100 if count else 0.0
    return SourceConversion(
        source=source,
        count=count,
        average_score=_mean(score_total, count),
        converted_count=converted_count,
        conversion_rate=max(0.0, min(100.0, rate)),
    )
