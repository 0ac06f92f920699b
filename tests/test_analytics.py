"""Tests for realty_scores.services.analytics: grouping, buckets, trends, conversion."""
from datetime import datetime, timezone

import pytest

from realty_scores.services.analytics import (
    AnalyticsAggregator,
    PRICE_BUCKETS,
    SCORE_RANGES,
    month_window,
    source_conversion,
    split_by_type,
)

from conftest import NOW


# ---------------------------------------------------------------------------
# average_scores_by_type
# ---------------------------------------------------------------------------

class TestAverageScoresByType:

    def test_empty_input(self):
        assert AnalyticsAggregator.average_scores_by_type([]) == []

    def test_counts_and_bands(self, make_lead, make_property):
        records = [make_lead(90), make_lead(80), make_lead(79), make_lead(50), make_lead(49), make_property(60)]
        rows = AnalyticsAggregator.average_scores_by_type(records)

        assert [r.type for r in rows] == ["lead", "property"]
        lead = rows[0]
        assert lead.count == 5
        assert lead.average_score == pytest.approx((90 + 80 + 79 + 50 + 49) / 5)
        assert (lead.high_count, lead.medium_count, lead.low_count) == (2, 2, 1)
        assert rows[1].count == 1
        assert rows[1].average_score == 60.0

    def test_first_seen_order(self, make_lead, make_property, make_agent):
        records = [make_agent(10), make_lead(90), make_property(50), make_agent(20)]
        rows = AnalyticsAggregator.average_scores_by_type(records)
        assert [r.type for r in rows] == ["agent", "lead", "property"]

    def test_requested_orders(self, make_lead, make_property, make_agent):
        records = [make_agent(10), make_lead(90), make_property(50), make_property(60)]
        by_score = AnalyticsAggregator.average_scores_by_type(records, order="score_desc")
        by_count = AnalyticsAggregator.average_scores_by_type(records, order="count_desc")
        assert [r.type for r in by_score] == ["lead", "property", "agent"]
        assert [r.type for r in by_count] == ["property", "agent", "lead"]

    def test_accepts_generator(self, make_lead):
        rows = AnalyticsAggregator.average_scores_by_type(make_lead(s) for s in (40, 60))
        assert rows[0].count == 2
        assert rows[0].average_score == 50.0


# ---------------------------------------------------------------------------
# score_distribution
# ---------------------------------------------------------------------------

class TestScoreDistribution:

    def test_empty_input_is_zero_filled(self):
        rows = AnalyticsAggregator.score_distribution([])
        assert len(rows) == 15
        assert all(r.count == 0 for r in rows)
        assert [r.range for r in rows[:5]] == [label for label, _ in SCORE_RANGES]

    @pytest.mark.parametrize("score,expected", [
        (0, "0-20"),
        (19, "0-20"),
        (20, "21-40"),
        (40, "41-60"),
        (79, "61-80"),
        (80, "81-100"),
        (100, "81-100"),
    ])
    def test_bucket_boundaries(self, make_lead, score, expected):
        rows = AnalyticsAggregator.score_distribution([make_lead(score)])
        hits = [r for r in rows if r.count]
        assert len(hits) == 1
        assert (hits[0].type, hits[0].range) == ("lead", expected)

    def test_counts_per_type_sum_to_type_total(self, make_lead, make_property, make_agent):
        records = (
            [make_lead(s) for s in (5, 25, 45, 65, 85, 95, 100)]
            + [make_property(s) for s in (10, 10, 70)]
            + [make_agent(55)]
        )
        rows = AnalyticsAggregator.score_distribution(records)
        totals = {}
        for row in rows:
            totals[row.type] = totals.get(row.type, 0) + row.count
        assert totals == {"lead": 7, "property": 3, "agent": 1}


# ---------------------------------------------------------------------------
# score_trend
# ---------------------------------------------------------------------------

class TestScoreTrend:

    def test_month_window_crosses_year(self):
        now = datetime(2026, 2, 10, tzinfo=timezone.utc)
        assert month_window(now) == [(2025, 9), (2025, 10), (2025, 11), (2025, 12), (2026, 1), (2026, 2)]

    def test_always_six_zero_filled_months(self):
        trend = AnalyticsAggregator.score_trend([], now=NOW)
        assert [m.label for m in trend] == ["2026-05", "2026-06", "2026-07", "2026-08", "2026-09", "2026-10"]
        for month in trend:
            assert [p.type for p in month.points] == ["lead", "property", "agent"]
            assert all(p.count == 0 and p.average_score == 0.0 for p in month.points)

    def test_groups_by_month_and_type(self, make_lead, make_property):
        records = [
            make_lead(60, created_at=datetime(2026, 10, 1, tzinfo=timezone.utc)),
            make_lead(80, created_at=datetime(2026, 10, 17, tzinfo=timezone.utc)),
            make_property(40, created_at=datetime(2026, 7, 3, tzinfo=timezone.utc)),
            # outside the window
            make_lead(10, created_at=datetime(2026, 4, 30, tzinfo=timezone.utc)),
        ]
        trend = AnalyticsAggregator.score_trend(records, now=NOW)

        october = {p.type: p for p in trend[-1].points}
        assert october["lead"].count == 2
        assert october["lead"].average_score == 70.0
        july = {p.type: p for p in trend[2].points}
        assert july["property"].count == 1
        assert sum(p.count for m in trend for p in m.points) == 3

    def test_naive_datetimes_are_treated_as_utc(self, make_lead):
        record = make_lead(50, created_at=datetime(2026, 9, 30, 23, 30))
        trend = AnalyticsAggregator.score_trend([record], now=NOW)
        september = {p.type: p for p in trend[4].points}
        assert september["lead"].count == 1


# ---------------------------------------------------------------------------
# lead_conversion
# ---------------------------------------------------------------------------

class TestLeadConversion:

    def test_status_groups(self, make_lead, make_property):
        records = (
            [make_lead(40, status="new") for _ in range(5)]
            + [make_lead(60, status="contacted") for _ in range(3)]
            + [make_lead(90, status="qualified"), make_lead(70, status="qualified")]
            + [make_property(99)]
        )
        report = AnalyticsAggregator.lead_conversion(records, now=NOW)

        counts = {g.status: g.count for g in report.by_status}
        assert counts == {"new": 5, "contacted": 3, "qualified": 2}
        averages = {g.status: g.average_score for g in report.by_status}
        assert averages == {"new": 40.0, "contacted": 60.0, "qualified": 80.0}

    def test_source_conversion_rates(self, make_lead):
        records = [
            make_lead(50, status="closed", source="referral"),
            make_lead(50, status="negotiation", source="referral"),
            make_lead(50, status="lost", source="referral"),
            make_lead(50, status="new", source="referral"),
            make_lead(70, status="new", source="social"),
        ]
        report = AnalyticsAggregator.lead_conversion(records, now=NOW)
        by_source = {s.source: s for s in report.by_source}

        assert by_source["referral"].count == 4
        assert by_source["referral"].converted_count == 2
        assert by_source["referral"].conversion_rate == 50.0
        assert by_source["social"].conversion_rate == 0.0
        for row in report.by_source:
            assert 0 <= row.conversion_rate <= 100
            assert row.converted_count <= row.count

    def test_zero_count_source_has_zero_rate(self):
        row = source_conversion("website", count=0, score_total=0, converted_count=0)
        assert row.conversion_rate == 0.0
        assert row.average_score == 0.0

    def test_count_desc_order(self, make_lead):
        records = [make_lead(status="new"), make_lead(status="lost"), make_lead(status="lost")]
        report = AnalyticsAggregator.lead_conversion(records, order="count_desc", now=NOW)
        assert [g.status for g in report.by_status] == ["lost", "new"]

    def test_count_desc_leaves_sources_first_seen(self, make_lead):
        records = [make_lead(source="direct"), make_lead(source="social"), make_lead(source="social")]
        report = AnalyticsAggregator.lead_conversion(records, order="count_desc", now=NOW)
        assert [s.source for s in report.by_source] == ["direct", "social"]

    def test_trend_counts_statuses_per_month(self, make_lead):
        records = [
            make_lead(status="new", created_at=datetime(2026, 9, 2, tzinfo=timezone.utc)),
            make_lead(status="new", created_at=datetime(2026, 9, 20, tzinfo=timezone.utc)),
            make_lead(status="closed", created_at=datetime(2026, 10, 1, tzinfo=timezone.utc)),
        ]
        trend = AnalyticsAggregator.lead_conversion(records, now=NOW).trend
        assert len(trend) == 6
        assert [(s.status, s.count) for s in trend[4].statuses] == [("new", 2)]
        assert [(s.status, s.count) for s in trend[5].statuses] == [("closed", 1)]
        assert trend[0].statuses == []

    def test_empty_input(self):
        report = AnalyticsAggregator.lead_conversion([], now=NOW)
        assert report.by_status == []
        assert report.by_source == []
        assert len(report.trend) == 6


# ---------------------------------------------------------------------------
# property_analytics
# ---------------------------------------------------------------------------

class TestPropertyAnalytics:

    def test_groups_with_average_price(self, make_property, make_lead):
        records = [
            make_property(80, property_type="residential", area="Kokapet", status="available", price=4_000_000),
            make_property(60, property_type="residential", area="Narsingi", status="sold", price=6_000_000),
            make_property(30, property_type="land", area="Kokapet", status="available", price=1_000_000),
            make_lead(99),
        ]
        report = AnalyticsAggregator.property_analytics(records)

        by_type = {g.key: g for g in report.by_type}
        assert by_type["residential"].count == 2
        assert by_type["residential"].average_score == 70.0
        assert by_type["residential"].average_price == 5_000_000
        assert [g.key for g in report.by_area] == ["Kokapet", "Narsingi"]
        assert {g.key: g.count for g in report.by_status} == {"available": 2, "sold": 1}

    def test_price_buckets(self, make_property):
        records = [
            make_property(10, price=1_999_999),
            make_property(20, price=2_000_000),
            make_property(30, price=4_999_999),
            make_property(40, price=10_000_000),
            make_property(50, price=25_000_000),
            make_property(90, price=None),
        ]
        report = AnalyticsAggregator.property_analytics(records)

        assert [b.bucket for b in report.by_price] == [label for label, _ in PRICE_BUCKETS]
        counts = {b.bucket: b.count for b in report.by_price}
        assert counts == {"Under 20L": 1, "20L-50L": 2, "50L-1Cr": 0, "1Cr-2Cr": 1, "Above 2Cr": 1}
        averages = {b.bucket: b.average_score for b in report.by_price}
        assert averages["20L-50L"] == 25.0
        assert averages["50L-1Cr"] == 0.0

    def test_missing_price_does_not_skew_average_price(self, make_property):
        records = [make_property(50, price=3_000_000), make_property(70, price=None)]
        group = AnalyticsAggregator.property_analytics(records).by_type[0]
        assert group.count == 2
        assert group.average_price == 3_000_000

    def test_score_desc_order(self, make_property):
        records = [make_property(40, area="Kollur"), make_property(90, area="Tellapur")]
        report = AnalyticsAggregator.property_analytics(records, order="score_desc")
        assert [g.key for g in report.by_area] == ["Tellapur", "Kollur"]

    def test_empty_input(self):
        report = AnalyticsAggregator.property_analytics([])
        assert report.by_type == report.by_area == report.by_status == []
        assert all(b.count == 0 for b in report.by_price)


# ---------------------------------------------------------------------------
# agent_stats / split_by_type
# ---------------------------------------------------------------------------

class TestAgentStats:

    def test_groups_by_period(self, make_agent):
        records = [make_agent(60, period="monthly"), make_agent(80, period="monthly"), make_agent(30, period="weekly")]
        rows = AnalyticsAggregator.agent_stats(records)
        assert [(r.key, r.count, r.average_score) for r in rows] == [("monthly", 2, 70.0), ("weekly", 1, 30.0)]

    def test_split_by_type(self, make_lead, make_property, make_agent):
        leads, properties, agents = split_by_type([make_agent(), make_lead(), make_property(), make_lead()])
        assert (len(leads), len(properties), len(agents)) == (2, 1, 1)
