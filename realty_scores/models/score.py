# models/score.py
from sqlalchemy import Column, String, Integer, Text, CheckConstraint, Index, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from uuid import uuid4
from realty_scores.db.base_class import Base

class ScoreRow(Base):
    __tablename__ = "scores"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    type = Column(String(20), nullable=False)  # lead, property, agent
    score = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    factors = Column(JSONB, nullable=False, default=list)  # [{name, weight, value}]
    detail = Column(JSONB, nullable=False, default=dict)   # LeadDetail | PropertyDetail | AgentDetail
    created_by = Column(UUID(as_uuid=True), nullable=True)

    __table_args__ = (
        CheckConstraint("type IN ('lead','property','agent')", name="chk_score_type"),
        CheckConstraint("score BETWEEN 0 AND 100", name="chk_score_range"),
        Index("idx_scores_type", "type"),
        Index("idx_scores_score", "score"),
        Index("idx_scores_created_at", "created_at"),
        Index("idx_scores_detail_status", text("(detail ->> 'status')")),
        Index("idx_scores_agent_user", text("(detail ->> 'user')"), postgresql_where=text("type = 'agent'")),
    )
