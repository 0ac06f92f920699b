from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Type, TypeVar, Union, assert_never
from uuid import UUID
from datetime import datetime
import logging
import math

from pydantic import BaseModel, ValidationError as PydanticValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from realty_scores import config
from realty_scores.errors import ScoreNotFoundError, ScoreValidationError
from realty_scores.schemas.analytics import (
    AgentPerformanceReport,
    LeadConversionReport,
    PropertyAnalyticsReport,
    StatisticsSummary,
)
from realty_scores.schemas.score import (
    AgentScore,
    AgentScoreCreate,
    DETAIL_MODELS,
    LeadScore,
    LeadScoreCreate,
    Pagination,
    PropertyScore,
    PropertyScoreCreate,
    ScoreListResult,
    ScoreRecord,
    ScoreType,
    ScoreUpdateRequest,
    score_create_adapter,
    utcnow,
)
from realty_scores.services.analytics import AnalyticsAggregator
from realty_scores.services.repository import ScoreQuery, ScoreRepository, SortSpec, load_snapshot
from realty_scores.services.sample_data import generate_sample_scores
from realty_scores.services.score_computer import ScoreComputer
from realty_scores.services.statistics_report import StatisticsReportBuilder

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

STATS_CACHE_KEY = "score_stats:summary"
LEAD_CONVERSION_CACHE_KEY = "score_stats:lead_conversion"
PROPERTY_ANALYTICS_CACHE_KEY = "score_stats:property_analytics"
REPORT_CACHE_KEYS = (STATS_CACHE_KEY, LEAD_CONVERSION_CACHE_KEY, PROPERTY_ANALYTICS_CACHE_KEY)

ScoreCreate = Union[LeadScoreCreate, PropertyScoreCreate, AgentScoreCreate]


def _describe(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


def build_score_record(
    payload: Union[ScoreCreate, Dict[str, Any]],
    created_by: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> ScoreRecord:
    """
    Validate a create payload and turn it into a scored record.

    The score is computed here from the factors; the caller-supplied score is
    only the fallback for records without (positively weighted) factors.

    Raises:
        ScoreValidationError: bad factors, missing or mismatched detail, or no
        score and no factors.
    """
    if isinstance(payload, dict):
        try:
            payload = score_create_adapter.validate_python(payload)
        except PydanticValidationError as e:
            raise ScoreValidationError(_describe(e)) from e

    if not payload.factors and payload.score is None:
        raise ScoreValidationError("score is required when no factors are given")

    match payload:
        case LeadScoreCreate():
            record_cls = LeadScore
        case PropertyScoreCreate():
            record_cls = PropertyScore
        case AgentScoreCreate():
            record_cls = AgentScore
        case _:
            assert_never(payload)

    now = now or utcnow()
    return record_cls(
        score=ScoreComputer.compute(payload.factors, payload.score),
        notes=payload.notes,
        factors=payload.factors,
        detail=payload.detail,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )


def build_score_changes(
    record: ScoreRecord,
    patch: Union[ScoreUpdateRequest, Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Merge an update request into field changes for `record`.

    - `detail` keys are merged over the stored detail (top-level keys only)
      and the result is revalidated against the record's detail type.
    - The score is always recomputed from the resulting factor list, falling
      back to the patched (or stored) score when there is no factor weight.
    """
    if isinstance(patch, dict):
        try:
            patch = ScoreUpdateRequest.model_validate(patch)
        except PydanticValidationError as e:
            raise ScoreValidationError(_describe(e)) from e

    if patch.type is not None and patch.type != record.type:
        raise ScoreValidationError(f"Score type cannot change from '{record.type}' to '{patch.type}'")

    changes: Dict[str, Any] = {}
    if patch.notes is not None:
        changes["notes"] = patch.notes

    factors = record.factors
    if patch.factors is not None:
        factors = changes["factors"] = patch.factors

    if patch.detail is not None:
        merged = {**record.detail.model_dump(), **patch.detail}
        try:
            changes["detail"] = DETAIL_MODELS[record.type].model_validate(merged)
        except PydanticValidationError as e:
            raise ScoreValidationError(_describe(e)) from e

    fallback = patch.score if patch.score is not None else record.score
    changes["score"] = ScoreComputer.compute(factors, fallback)
    changes["updated_at"] = now or utcnow()
    return changes


def _check_limit(limit: int) -> None:
    if not 1 <= limit <= config.MAX_PAGE_LIMIT:
        raise ScoreValidationError(f"limit must be between 1 and {config.MAX_PAGE_LIMIT}")


async def _invalidate_reports(redis: Redis) -> None:
    try:
        await redis.delete(*REPORT_CACHE_KEYS)
    except RedisError as e:
        logger.warning("Could not invalidate cached reports: %s", e)


async def _cached(redis: Redis, key: str, model: Type[M], build: Callable[[], Awaitable[M]]) -> M:
    try:
        cached = await redis.get(key)
    except RedisError as e:
        logger.warning("Report cache unavailable (%s); computing %s directly", e, key)
        return await build()

    if cached:
        try:
            return model.model_validate_json(cached)
        except PydanticValidationError as e:
            logger.warning("Discarding unreadable cached %s (%d validation errors)", key, e.error_count())
            try:
                await redis.delete(key)
            except RedisError as redis_error:
                logger.warning("Could not drop cached %s: %s", key, redis_error)

    logger.debug("Report cache miss for %s", key)
    result = await build()
    try:
        await redis.set(key, result.model_dump_json(), ex=config.STATS_CACHE_TTL_SECONDS)
    except RedisError as e:
        logger.warning("Could not cache %s: %s", key, e)
    return result


class ScoreServices:
    """
        Read and write workflows for score records.

        Writes (create, update, delete):
        - Validate the request and compute the score explicitly with ScoreComputer.
        - Persist through the ScoreRepository.
        - Drop cached reports so the next read sees the change.

        Reads:
        - Single records and paginated listings straight from the repository.
        - Statistics, lead-conversion and property-analytics reports computed by
          AnalyticsAggregator / StatisticsReportBuilder over a repository snapshot
          and cached in Redis for STATS_CACHE_TTL_SECONDS.
        - Leaderboard, recent and agent-performance views.
    """

    # --- Writes ---

    @staticmethod
    async def create_score(
        payload: Union[ScoreCreate, Dict[str, Any]],
        repo: ScoreRepository,
        redis: Redis,
        created_by: Optional[UUID] = None,
    ) -> ScoreRecord:
        # 1. --- Validate + score ---
        record = build_score_record(payload, created_by=created_by)

        # 2. --- Persist ---
        saved = await repo.create(record)
        logger.info("Created %s score %s (score=%d)", saved.type, saved.id, saved.score)

        # 3. --- Invalidate cached reports ---
        await _invalidate_reports(redis)
        return saved

    @staticmethod
    async def update_score(
        score_id: UUID,
        patch: Union[ScoreUpdateRequest, Dict[str, Any]],
        repo: ScoreRepository,
        redis: Redis,
    ) -> ScoreRecord:
        # 1. --- Fetch ---
        record = await repo.find_by_id(score_id)
        if not record:
            raise ScoreNotFoundError(score_id)

        # 2. --- Merge + recompute ---
        changes = build_score_changes(record, patch)

        # 3. --- Persist (last write wins) ---
        updated = await repo.update_by_id(score_id, changes)
        if not updated:
            raise ScoreNotFoundError(score_id)
        logger.info("Updated score %s (score=%d)", score_id, updated.score)

        await _invalidate_reports(redis)
        return updated

    @staticmethod
    async def delete_score(score_id: UUID, repo: ScoreRepository, redis: Redis) -> None:
        if not await repo.delete_by_id(score_id):
            raise ScoreNotFoundError(score_id)
        logger.info("Deleted score %s", score_id)
        await _invalidate_reports(redis)

    @staticmethod
    async def seed_sample_scores(
        repo: ScoreRepository,
        redis: Redis,
        users: Optional[List[UUID]] = None,
        seed: Optional[int] = None,
    ) -> Dict[str, int]:
        """Replace every record with generated sample data. Development only."""
        if config.APP_ENV != "development":
            raise PermissionError("Sample data can only be created in the development environment")

        records = [
            build_score_record(sample.payload, created_by=sample.created_by, now=sample.created_at)
            for sample in generate_sample_scores(users=users, seed=seed)
        ]

        removed = await repo.delete_all()
        for record in records:
            await repo.create(record)
        await _invalidate_reports(redis)

        counts = {"lead": 0, "property": 0, "agent": 0}
        for record in records:
            counts[record.type] += 1
        logger.info("Replaced %d score records with %d sample records", removed, len(records))
        return counts

    # --- Record reads ---

    @staticmethod
    async def get_score(score_id: UUID, repo: ScoreRepository) -> ScoreRecord:
        record = await repo.find_by_id(score_id)
        if not record:
            raise ScoreNotFoundError(score_id)
        return record

    @staticmethod
    async def list_scores(
        repo: ScoreRepository,
        score_type: Optional[ScoreType] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[Literal["asc", "desc"]] = None,
        page: int = 1,
        limit: int = config.DEFAULT_PAGE_LIMIT,
    ) -> ScoreListResult:
        """
        One page of records. Without `sort_by`, newest first, or highest score
        first when filtering by type.
        """
        if page < 1:
            raise ScoreValidationError("page must be 1 or greater")
        _check_limit(limit)

        try:
            if sort_by:
                sort = SortSpec(sort_by, descending=sort_order == "desc")
            elif score_type:
                sort = SortSpec("score", descending=True)
            else:
                sort = SortSpec("created_at", descending=True)
        except ValueError as e:
            raise ScoreValidationError(str(e)) from e

        records, total = await repo.find_by_query(
            ScoreQuery(type=score_type), sort, skip=(page - 1) * limit, limit=limit
        )
        return ScoreListResult(
            scores=records,
            pagination=Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
        )

    # --- Reports ---

    @staticmethod
    async def get_statistics(repo: ScoreRepository, redis: Redis, now: Optional[datetime] = None) -> StatisticsSummary:
        async def build():
            return StatisticsReportBuilder.build(await load_snapshot(repo), now=now)

        return await _cached(redis, STATS_CACHE_KEY, StatisticsSummary, build)

    @staticmethod
    async def get_lead_conversion_report(
        repo: ScoreRepository,
        redis: Redis,
        now: Optional[datetime] = None,
    ) -> LeadConversionReport:
        async def build():
            leads = await load_snapshot(repo, "lead")
            return AnalyticsAggregator.lead_conversion(leads, order="count_desc", now=now)

        return await _cached(redis, LEAD_CONVERSION_CACHE_KEY, LeadConversionReport, build)

    @staticmethod
    async def get_property_analytics_report(repo: ScoreRepository, redis: Redis) -> PropertyAnalyticsReport:
        async def build():
            properties = await load_snapshot(repo, "property")
            report = AnalyticsAggregator.property_analytics(properties)
            # locations are ranked best-first on the dashboard
            report.by_area = sorted(report.by_area, key=lambda g: -g.average_score)
            return report

        return await _cached(redis, PROPERTY_ANALYTICS_CACHE_KEY, PropertyAnalyticsReport, build)

    @staticmethod
    async def get_leaderboard(
        repo: ScoreRepository,
        score_type: Optional[ScoreType] = None,
        limit: int = 5,
    ) -> List[ScoreRecord]:
        _check_limit(limit)
        return StatisticsReportBuilder.leaderboard(await load_snapshot(repo, score_type), n=limit)

    @staticmethod
    async def get_recent(
        repo: ScoreRepository,
        score_type: Optional[ScoreType] = None,
        limit: int = 10,
    ) -> List[ScoreRecord]:
        _check_limit(limit)
        return StatisticsReportBuilder.recent(await load_snapshot(repo, score_type), n=limit)

    @staticmethod
    async def get_agent_performance(repo: ScoreRepository, limit: int = 10) -> AgentPerformanceReport:
        _check_limit(limit)
        agents = await load_snapshot(repo, "agent")
        return AgentPerformanceReport(
            leaderboard=StatisticsReportBuilder.agent_leaderboard(agents, n=limit),
            by_period=await repo.aggregate("agent_period"),
        )
