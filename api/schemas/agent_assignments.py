"""Agent scoping schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from api.schemas.common import CamelModel, CandidateSummary, UserSummary
from database.models.assignments import AgentAssignmentStatus


class AgentAssignmentUpsert(CamelModel):
    """HRs and candidates an agent works with. Replaces the previous sets."""

    agent_id: int = Field(gt=0, description="Agent user id")
    hr_ids: list[int] = Field(default_factory=list, description="HR users the agent serves")
    candidate_ids: list[int] = Field(
        default_factory=list, description="Candidates the agent represents"
    )
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("hr_ids", "candidate_ids")
    @classmethod
    def positive_ids(cls, v: list[int]) -> list[int]:
        if any(item <= 0 for item in v):
            raise ValueError("Ids must be positive integers")
        return v


class AgentAssignmentResponse(CamelModel):
    id: int
    agent_id: int
    agent: Optional[UserSummary] = None
    assigned_by: int
    assigned_by_user: Optional[UserSummary] = None
    status: AgentAssignmentStatus
    notes: Optional[str] = None
    assigned_at: datetime
    updated_at: datetime
    assigned_hrs: list[UserSummary] = Field(default_factory=list)
    assigned_candidates: list[CandidateSummary] = Field(default_factory=list)


class AssignmentCounts(CamelModel):
    active: int
    completed: int
    closed: int
    total: int


class AgentDashboard(CamelModel):
    assigned_hrs: int
    assigned_candidates: int
    available_jobs: int
    assignments: AssignmentCounts
