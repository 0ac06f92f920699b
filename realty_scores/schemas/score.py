from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator, model_validator
from uuid import UUID, uuid4
from datetime import datetime, timezone


ScoreType = Literal["lead", "property", "agent"]
SCORE_TYPES: tuple = ("lead", "property", "agent")

LeadSource = Literal["website", "referral", "social", "advertisement", "direct", "other"]
LeadStatus = Literal["new", "contacted", "qualified", "negotiation", "closed", "lost"]
PropertyType = Literal["residential", "commercial", "land"]
PropertyStatus = Literal["available", "pending", "sold"]
AgentPeriod = Literal["weekly", "monthly", "quarterly", "yearly"]

# Lead statuses counted as a conversion
CONVERTED_STATUSES = frozenset({"qualified", "negotiation", "closed"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Trimmed(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, from_attributes=True)


# --- Factor ---
class Factor(_Trimmed):
    name: Annotated[str, Field(min_length=1, max_length=100)]
    weight: Annotated[float, Field(ge=0, le=1)]
    value: Annotated[float, Field(ge=0, le=100)]


# --- Lead detail ---
class Budget(_Trimmed):
    min: Optional[float] = Field(default=None, ge=0)
    max: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_range(self):
        if self.min is not None and self.max is not None and self.max < self.min:
            raise ValueError("budget max must be greater than or equal to min")
        return self


class LeadDetail(_Trimmed):
    name: Annotated[str, Field(min_length=1)]
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    budget: Optional[Budget] = None
    interested_in: List[str] = Field(default_factory=list)
    source: LeadSource = "website"
    status: LeadStatus = "new"
    assigned_to: Optional[UUID] = None

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


# --- Property detail ---
class Location(_Trimmed):
    area: Optional[str] = None
    city: Optional[str] = None


class PropertyDetail(_Trimmed):
    name: Annotated[str, Field(min_length=1)]
    location: Location = Field(default_factory=Location)
    property_type: Optional[PropertyType] = None
    price: Optional[float] = Field(default=None, ge=0)
    size: Optional[float] = Field(default=None, ge=0)
    amenities: List[str] = Field(default_factory=list)
    status: Optional[PropertyStatus] = None


# --- Agent detail ---
class AgentPerformance(_Trimmed):
    leads_handled: Optional[int] = Field(default=None, ge=0)
    conversion_rate: Optional[float] = Field(default=None, ge=0, le=100)
    revenue_generated: Optional[float] = Field(default=None, ge=0)
    customer_satisfaction: Optional[float] = Field(default=None, ge=0, le=100)
    response_time: Optional[float] = Field(default=None, ge=0)  # hours


class AgentDetail(_Trimmed):
    user: UUID
    performance: AgentPerformance = Field(default_factory=AgentPerformance)
    period: AgentPeriod = "monthly"


DETAIL_MODELS = {
    "lead": LeadDetail,
    "property": PropertyDetail,
    "agent": AgentDetail,
}


# --- Score records (tagged by `type`) ---
class ScoreRecordBase(_Trimmed):
    id: UUID = Field(default_factory=uuid4)
    score: Annotated[int, Field(ge=0, le=100)]
    notes: Optional[str] = None
    factors: List[Factor] = Field(default_factory=list)
    created_by: Optional[UUID] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class LeadScore(ScoreRecordBase):
    type: Literal["lead"] = "lead"
    detail: LeadDetail


class PropertyScore(ScoreRecordBase):
    type: Literal["property"] = "property"
    detail: PropertyDetail


class AgentScore(ScoreRecordBase):
    type: Literal["agent"] = "agent"
    detail: AgentDetail


ScoreRecord = Annotated[Union[LeadScore, PropertyScore, AgentScore], Field(discriminator="type")]
score_record_adapter = TypeAdapter(ScoreRecord)


# --- Create requests (tagged by `type`) ---
class ScoreCreateBase(_Trimmed):
    # Used as-is when no factors are given, otherwise recomputed
    score: Optional[float] = None
    notes: Optional[str] = None
    factors: List[Factor] = Field(default_factory=list)


class LeadScoreCreate(ScoreCreateBase):
    type: Literal["lead"]
    detail: LeadDetail


class PropertyScoreCreate(ScoreCreateBase):
    type: Literal["property"]
    detail: PropertyDetail


class AgentScoreCreate(ScoreCreateBase):
    type: Literal["agent"]
    detail: AgentDetail


ScoreCreateRequest = Annotated[
    Union[LeadScoreCreate, PropertyScoreCreate, AgentScoreCreate],
    Field(discriminator="type"),
]
score_create_adapter = TypeAdapter(ScoreCreateRequest)


# --- Update request ---
class ScoreUpdateRequest(_Trimmed):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    type: Optional[ScoreType] = None  # must match the stored type if given
    score: Optional[float] = None
    notes: Optional[str] = None
    factors: Optional[List[Factor]] = None
    detail: Optional[Dict[str, Any]] = None  # merged into the stored detail


# --- Pagination / envelopes ---
class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class ScoreListResult(BaseModel):
    scores: List[ScoreRecord]
    pagination: Pagination
