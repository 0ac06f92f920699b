from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel
from uuid import UUID

from realty_scores.schemas.score import Pagination

T = TypeVar("T")


# --- Response envelopes ---
class ApiResponse(BaseModel, Generic[T]):
    status: str = "success"
    data: T


class PaginatedResponse(BaseModel, Generic[T]):
    status: str = "success"
    results: int
    pagination: Pagination
    data: T


# --- Sample data request ---
class SampleDataRequest(BaseModel):
    users: Optional[List[UUID]] = None
    seed: Optional[int] = None
