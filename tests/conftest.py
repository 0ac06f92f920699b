"""
Shared test fixtures.

  • make_lead / make_property / make_agent: record factories
  • repo       : in-memory ScoreRepository
  • fake_redis : dict-backed async Redis stand-in
  • unavailable_redis : Redis stand-in whose every call raises
  • client     : FastAPI TestClient wired to repo + fake_redis
"""
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from realty_scores.schemas.analytics import GroupSummary
from realty_scores.schemas.score import (
    AgentDetail,
    AgentPerformance,
    AgentScore,
    LeadDetail,
    LeadScore,
    Location,
    PropertyDetail,
    PropertyScore,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

def _lead(score=50, status="new", source="website", created_at=NOW, **kwargs):
    return LeadScore(
        score=score,
        created_at=created_at,
        updated_at=created_at,
        detail=LeadDetail(name=kwargs.pop("name", "Test Lead"), status=status, source=source, **kwargs),
    )


def _property(score=50, property_type="residential", area="Kokapet", status="available",
              price=3_000_000, created_at=NOW):
    return PropertyScore(
        score=score,
        created_at=created_at,
        updated_at=created_at,
        detail=PropertyDetail(
            name=f"{area} {property_type}",
            location=Location(area=area, city="Hyderabad"),
            property_type=property_type,
            price=price,
            status=status,
        ),
    )


def _agent(score=50, period="monthly", user=None, created_at=NOW):
    return AgentScore(
        score=score,
        created_at=created_at,
        updated_at=created_at,
        detail=AgentDetail(
            user=user or uuid4(),
            performance=AgentPerformance(leads_handled=20, conversion_rate=25),
            period=period,
        ),
    )


@pytest.fixture
def make_lead():
    return _lead


@pytest.fixture
def make_property():
    return _property


@pytest.fixture
def make_agent():
    return _agent


# ---------------------------------------------------------------------------
# In-memory repository / fake Redis
# ---------------------------------------------------------------------------

_AGGREGATE_KEYS = {
    "type": (None, lambda r: r.type),
    "lead_status": ("lead", lambda r: r.detail.status),
    "lead_source": ("lead", lambda r: r.detail.source),
    "property_type": ("property", lambda r: r.detail.property_type),
    "property_area": ("property", lambda r: r.detail.location.area),
    "property_status": ("property", lambda r: r.detail.status),
    "agent_period": ("agent", lambda r: r.detail.period),
}


class InMemoryScoreRepository:
    def __init__(self, records=()):
        self.records = {r.id: r for r in records}

    async def create(self, record):
        self.records[record.id] = record
        return record

    async def find_by_id(self, score_id):
        return self.records.get(score_id)

    async def find_by_query(self, query, sort, skip=0, limit=None):
        matches = [r for r in self.records.values() if query.type is None or r.type == query.type]
        matches.sort(key=lambda r: str(r.id))
        matches.sort(key=lambda r: getattr(r, sort.field), reverse=sort.descending)
        end = None if limit is None else skip + limit
        return matches[skip:end], len(matches)

    async def update_by_id(self, score_id, changes):
        record = self.records.get(score_id)
        if record is None:
            return None
        updated = record.model_copy(update=changes)
        self.records[score_id] = updated
        return updated

    async def delete_by_id(self, score_id):
        return self.records.pop(score_id, None) is not None

    async def delete_all(self):
        count = len(self.records)
        self.records.clear()
        return count

    async def aggregate(self, group_by, score_type=None):
        implied_type, key = _AGGREGATE_KEYS[group_by]
        score_type = score_type or implied_type
        groups = {}
        for record in sorted(self.records.values(), key=lambda r: r.created_at):
            if score_type and record.type != score_type:
                continue
            groups.setdefault(key(record), []).append(record.score)
        return [
            GroupSummary(key=k, count=len(scores), average_score=sum(scores) / len(scores))
            for k, scores in groups.items()
        ]


class FakeRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


class UnavailableRedis:
    """Every call fails the way a dropped Redis connection does."""

    async def get(self, key):
        raise RedisConnectionError("Connection refused")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("Connection refused")

    async def delete(self, *keys):
        raise RedisConnectionError("Connection refused")


@pytest.fixture
def repo():
    return InMemoryScoreRepository()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def unavailable_redis():
    return UnavailableRedis()


@pytest.fixture
def client(repo, fake_redis):
    from fastapi.testclient import TestClient

    from realty_scores.crud.score import get_score_repository
    from realty_scores.db.redis_client import get_redis
    from realty_scores.main import app

    async def _repo():
        return repo

    async def _redis():
        yield fake_redis

    app.dependency_overrides[get_score_repository] = _repo
    app.dependency_overrides[get_redis] = _redis
    # not used as a context manager, so the lifespan (table creation) never runs
    yield TestClient(app)
    app.dependency_overrides.clear()
