# realty_scores/services/repository.py
#
# Persistence interface consumed by the score services. The SQL implementation
# lives in realty_scores/crud/score.py; services only depend on this protocol.
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Protocol, Tuple
from uuid import UUID

from realty_scores.schemas.analytics import GroupSummary
from realty_scores.schemas.score import ScoreRecord, ScoreType


SORTABLE_FIELDS = ("score", "created_at", "updated_at", "type")

GroupKey = Literal[
    "type",
    "lead_status",
    "lead_source",
    "property_type",
    "property_area",
    "property_status",
    "agent_period",
]


@dataclass(frozen=True)
class ScoreQuery:
    type: Optional[ScoreType] = None


@dataclass(frozen=True)
class SortSpec:
    field: str = "created_at"
    descending: bool = True

    def __post_init__(self):
        if self.field not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by '{self.field}'")


class ScoreRepository(Protocol):

    async def create(self, record: ScoreRecord) -> ScoreRecord:
        ...

    async def find_by_id(self, score_id: UUID) -> Optional[ScoreRecord]:
        ...

    async def find_by_query(
        self,
        query: ScoreQuery,
        sort: SortSpec,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[ScoreRecord], int]:
        """Return one page of matching records plus the total match count."""
        ...

    async def update_by_id(self, score_id: UUID, changes: Dict[str, Any]) -> Optional[ScoreRecord]:
        """Apply already-validated field values (score, notes, factors, detail, updated_at)."""
        ...

    async def delete_by_id(self, score_id: UUID) -> bool:
        ...

    async def delete_all(self) -> int:
        ...

    async def aggregate(self, group_by: GroupKey, score_type: Optional[ScoreType] = None) -> List[GroupSummary]:
        """Count and average score per group key, computed by the store."""
        ...


async def load_snapshot(repo: ScoreRepository, score_type: Optional[ScoreType] = None) -> List[ScoreRecord]:
    """Every matching record, oldest first, for in-memory analytics."""
    records, _ = await repo.find_by_query(ScoreQuery(type=score_type), SortSpec("created_at", descending=False))
    return records
