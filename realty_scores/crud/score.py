# realty_scores/crud/score.py
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete, func
from fastapi import Depends
import logging

from realty_scores.db.session import get_db
from realty_scores.models import ScoreRow
from realty_scores.schemas.analytics import GroupSummary
from realty_scores.schemas.score import ScoreRecord, ScoreType, score_record_adapter
from realty_scores.services.repository import GroupKey, ScoreQuery, SortSpec

logger = logging.getLogger(__name__)


# group key -> (SQL expression, type the key belongs to)
_GROUP_COLUMNS = {
    "type": (ScoreRow.type, None),
    "lead_status": (ScoreRow.detail["status"].astext, "lead"),
    "lead_source": (ScoreRow.detail["source"].astext, "lead"),
    "property_type": (ScoreRow.detail["property_type"].astext, "property"),
    "property_area": (ScoreRow.detail["location"]["area"].astext, "property"),
    "property_status": (ScoreRow.detail["status"].astext, "property"),
    "agent_period": (ScoreRow.detail["period"].astext, "agent"),
}


# --- Row <-> record mapping ---
def row_to_record(row: ScoreRow) -> ScoreRecord:
    return score_record_adapter.validate_python({
        "id": row.id,
        "type": row.type,
        "score": row.score,
        "notes": row.notes,
        "factors": row.factors or [],
        "detail": row.detail or {},
        "created_by": row.created_by,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    })


def _column_values(changes: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-ready column values for already-validated record fields."""
    values = dict(changes)
    if "factors" in values:
        values["factors"] = [f.model_dump(mode="json") for f in values["factors"]]
    if "detail" in values:
        values["detail"] = values["detail"].model_dump(mode="json")
    return values


def _where(query: ScoreQuery) -> list:
    filters = []
    if query.type:
        filters.append(ScoreRow.type == query.type)
    return filters


# --- Insert ---
async def create_score(db: AsyncSession, record: ScoreRecord) -> ScoreRecord:
    row = ScoreRow(**_column_values({
        "id": record.id,
        "type": record.type,
        "score": record.score,
        "notes": record.notes,
        "factors": record.factors,
        "detail": record.detail,
        "created_by": record.created_by,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }))
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row_to_record(row)


# --- Fetch by ID ---
async def get_score_by_id(db: AsyncSession, score_id: UUID) -> Optional[ScoreRecord]:
    result = await db.execute(select(ScoreRow).where(ScoreRow.id == score_id))
    row = result.scalar_one_or_none()
    return row_to_record(row) if row else None


# --- Filtered, sorted, paginated listing ---
async def find_scores(
    db: AsyncSession,
    query: ScoreQuery,
    sort: SortSpec,
    skip: int = 0,
    limit: Optional[int] = None,
) -> Tuple[List[ScoreRecord], int]:
    filters = _where(query)

    sort_column = getattr(ScoreRow, sort.field)
    stmt = (
        select(ScoreRow)
        .where(*filters)
        .order_by(sort_column.desc() if sort.descending else sort_column.asc(), ScoreRow.id.asc())
        .offset(skip)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    rows = (await db.execute(stmt)).scalars().all()
    total = (await db.execute(select(func.count()).select_from(ScoreRow).where(*filters))).scalar_one()
    return [row_to_record(row) for row in rows], total


# --- Update ---
async def update_score(db: AsyncSession, score_id: UUID, changes: Dict[str, Any]) -> Optional[ScoreRecord]:
    result = await db.execute(select(ScoreRow).where(ScoreRow.id == score_id))
    row = result.scalar_one_or_none()
    if not row:
        return None

    for field, value in _column_values(changes).items():
        setattr(row, field, value)

    await db.commit()
    await db.refresh(row)
    return row_to_record(row)


# --- Delete ---
async def delete_score(db: AsyncSession, score_id: UUID) -> bool:
    result = await db.execute(delete(ScoreRow).where(ScoreRow.id == score_id))
    await db.commit()
    return result.rowcount > 0


async def delete_all_scores(db: AsyncSession) -> int:
    result = await db.execute(delete(ScoreRow))
    await db.commit()
    logger.warning("Deleted all %d score records", result.rowcount)
    return result.rowcount


# --- Grouped count / average ---
async def aggregate_scores(
    db: AsyncSession,
    group_by: GroupKey,
    score_type: Optional[ScoreType] = None,
) -> List[GroupSummary]:
    column, implied_type = _GROUP_COLUMNS[group_by]
    score_type = score_type or implied_type

    stmt = (
        select(
            column.label("key"),
            func.count().label("count"),
            func.coalesce(func.avg(ScoreRow.score), 0).label("average_score"),
        )
        .group_by(column)
        # earliest record first, like an in-memory first-seen grouping
        .order_by(func.min(ScoreRow.created_at))
    )
    if score_type:
        stmt = stmt.where(ScoreRow.type == score_type)

    rows = (await db.execute(stmt)).mappings().all()
    return [
        GroupSummary(key=row["key"], count=row["count"], average_score=float(row["average_score"]))
        for row in rows
    ]


class SqlScoreRepository:
    """ScoreRepository backed by the PostgreSQL `scores` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, record: ScoreRecord) -> ScoreRecord:
        return await create_score(self.db, record)

    async def find_by_id(self, score_id: UUID) -> Optional[ScoreRecord]:
        return await get_score_by_id(self.db, score_id)

    async def find_by_query(self, query, sort, skip=0, limit=None):
        return await find_scores(self.db, query, sort, skip, limit)

    async def update_by_id(self, score_id: UUID, changes: Dict[str, Any]) -> Optional[ScoreRecord]:
        return await update_score(self.db, score_id, changes)

    async def delete_by_id(self, score_id: UUID) -> bool:
        return await delete_score(self.db, score_id)

    async def delete_all(self) -> int:
        return await delete_all_scores(self.db)

    async def aggregate(self, group_by: GroupKey, score_type: Optional[ScoreType] = None) -> List[GroupSummary]:
        return await aggregate_scores(self.db, group_by, score_type)


# Dependency for FastAPI
async def get_score_repository(db: AsyncSession = Depends(get_db)) -> SqlScoreRepository:
    return SqlScoreRepository(db)
