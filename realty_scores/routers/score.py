from typing import Any, Awaitable, Dict, List, Literal, Optional
from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Response
from redis.asyncio import Redis
from uuid import UUID
import logging
import traceback

from realty_scores import config
from realty_scores.crud.score import get_score_repository
from realty_scores.db.redis_client import get_redis
from realty_scores.schemas.analytics import (
    AgentPerformanceReport,
    LeadConversionReport,
    PropertyAnalyticsReport,
    StatisticsSummary,
)
from realty_scores.schemas.common import ApiResponse, PaginatedResponse, SampleDataRequest
from realty_scores.schemas.score import ScoreRecord, ScoreType
from realty_scores.services.repository import ScoreRepository
from realty_scores.services.score_services import ScoreServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/scores", tags=["Scores"])


async def _handle(action: str, awaitable: Awaitable):
    try:
        return await awaitable
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Error in %s: %s\n%s", action, e, traceback.format_exc())
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get(
    "",
    response_model=PaginatedResponse[List[ScoreRecord]],
    summary="List scores",
    description="Lists score records, optionally filtered by type, sorted and paginated.",
)
async def list_scores(
    score_type: Optional[ScoreType] = Query(None, alias="type"),
    sort_by: Optional[str] = Query(None, description="score, created_at, updated_at or type"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1),
    limit: int = Query(config.DEFAULT_PAGE_LIMIT),
    repo: ScoreRepository = Depends(get_score_repository),
):
    result = await _handle("list_scores", ScoreServices.list_scores(
        repo, score_type=score_type, sort_by=sort_by, sort_order=sort_order, page=page, limit=limit
    ))
    return PaginatedResponse(results=len(result.scores), pagination=result.pagination, data=result.scores)


@router.post(
    "",
    response_model=ApiResponse[ScoreRecord],
    status_code=201,
    summary="Create a score",
    description="Creates a lead, property or agent score. The score is computed from the weighted factors when any are given.",
)
async def create_score(
    payload: Dict[str, Any] = Body(...),
    x_user_id: Optional[UUID] = Header(None),
    repo: ScoreRepository = Depends(get_score_repository),
    redis: Redis = Depends(get_redis),
):
    record = await _handle("create_score", ScoreServices.create_score(payload, repo, redis, created_by=x_user_id))
    return ApiResponse(data=record)


@router.get("/stats", response_model=ApiResponse[StatisticsSummary], summary="Score statistics for the dashboard")
async def get_statistics(
    repo: ScoreRepository = Depends(get_score_repository),
    redis: Redis = Depends(get_redis),
):
    return ApiResponse(data=await _handle("get_statistics", ScoreServices.get_statistics(repo, redis)))


@router.get("/top", response_model=ApiResponse[List[ScoreRecord]], summary="Highest scores")
async def get_top_scores(
    score_type: Optional[ScoreType] = Query(None, alias="type"),
    limit: int = Query(5),
    repo: ScoreRepository = Depends(get_score_repository),
):
    return ApiResponse(data=await _handle("get_top_scores", ScoreServices.get_leaderboard(repo, score_type, limit)))


@router.get("/recent", response_model=ApiResponse[List[ScoreRecord]], summary="Most recently created scores")
async def get_recent_scores(
    score_type: Optional[ScoreType] = Query(None, alias="type"),
    limit: int = Query(10),
    repo: ScoreRepository = Depends(get_score_repository),
):
    return ApiResponse(data=await _handle("get_recent_scores", ScoreServices.get_recent(repo, score_type, limit)))


@router.get("/agent-performance", response_model=ApiResponse[AgentPerformanceReport], summary="Agent leaderboard")
async def get_agent_performance(
    limit: int = Query(10),
    repo: ScoreRepository = Depends(get_score_repository),
):
    return ApiResponse(data=await _handle("get_agent_performance", ScoreServices.get_agent_performance(repo, limit)))


@router.get("/lead-conversions", response_model=ApiResponse[LeadConversionReport], summary="Lead conversion report")
async def get_lead_conversions(
    repo: ScoreRepository = Depends(get_score_repository),
    redis: Redis = Depends(get_redis),
):
    return ApiResponse(data=await _handle(
        "get_lead_conversions", ScoreServices.get_lead_conversion_report(repo, redis)
    ))


@router.get("/property-analytics", response_model=ApiResponse[PropertyAnalyticsReport], summary="Property analytics report")
async def get_property_analytics(
    repo: ScoreRepository = Depends(get_score_repository),
    redis: Redis = Depends(get_redis),
):
    return ApiResponse(data=await _handle(
        "get_property_analytics", ScoreServices.get_property_analytics_report(repo, redis)
    ))


@router.post(
    "/test-data",
    response_model=ApiResponse[Dict[str, int]],
    status_code=201,
    summary="Replace all scores with sample data",
    description="Development only. Deletes every score and inserts generated leads, properties and agents.",
)
async def create_test_scores(
    request: Optional[SampleDataRequest] = Body(None),
    repo: ScoreRepository = Depends(get_score_repository),
    redis: Redis = Depends(get_redis),
):
    request = request or SampleDataRequest()
    counts = await _handle("create_test_scores", ScoreServices.seed_sample_scores(
        repo, redis, users=request.users, seed=request.seed
    ))
    return ApiResponse(data=counts)


@router.get("/{score_id}", response_model=ApiResponse[ScoreRecord], summary="Get a score")
async def get_score(
    score_id: UUID,
    repo: ScoreRepository = Depends(get_score_repository),
):
    return ApiResponse(data=await _handle("get_score", ScoreServices.get_score(score_id, repo)))


@router.patch(
    "/{score_id}",
    response_model=ApiResponse[ScoreRecord],
    summary="Update a score",
    description="Updates notes, score, factors or detail fields. The score is recomputed from the resulting factors.",
)
async def update_score(
    score_id: UUID,
    patch: Dict[str, Any] = Body(...),
    repo: ScoreRepository = Depends(get_score_repository),
    redis: Redis = Depends(get_redis),
):
    record = await _handle("update_score", ScoreServices.update_score(score_id, patch, repo, redis))
    return ApiResponse(data=record)


@router.delete("/{score_id}", status_code=204, response_class=Response, summary="Delete a score")
async def delete_score(
    score_id: UUID,
    repo: ScoreRepository = Depends(get_score_repository),
    redis: Redis = Depends(get_redis),
):
    await _handle("delete_score", ScoreServices.delete_score(score_id, repo, redis))
    return Response(status_code=204)
