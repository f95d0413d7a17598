"""Candidate assignment schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from api.schemas.common import (
    CamelModel,
    CandidateSummary,
    JobSummary,
    TimestampMixin,
    UserSummary,
)
from core.utils.datetime import ensure_utc
from database.models.assignments import (
    AssignmentPriority,
    AssignmentStatus,
    CandidateStage,
)

SortField = Literal["assigned_at", "priority", "status", "due_date"]
SortOrder = Literal["asc", "desc"]


def _strip(v: Optional[str]) -> Optional[str]:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class AssignmentCreate(CamelModel):
    """Assign a candidate to an HR user, directly or through one of their jobs."""

    candidate_id: int = Field(gt=0, description="Candidate to assign")
    job_id: Optional[int] = Field(None, gt=0, description="Job the candidate is put forward for")
    assigned_to: Optional[int] = Field(None, gt=0, description="HR user receiving the candidate")
    priority: AssignmentPriority = Field(
        default=AssignmentPriority.MEDIUM, description="Work item priority"
    )
    notes: Optional[str] = Field(None, max_length=1000, description="Notes for the HR user")
    due_date: Optional[datetime] = Field(None, description="When the HR should respond")

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, v):
        return _strip(v)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v):
        return ensure_utc(v)


class AssignmentUpdate(CamelModel):
    """Subset of mutable fields; omitted fields are left unchanged."""

    status: Optional[AssignmentStatus] = None
    candidate_status: Optional[CandidateStage] = None
    priority: Optional[AssignmentPriority] = None
    notes: Optional[str] = Field(None, max_length=1000)
    feedback: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[datetime] = None

    @field_validator("notes", "feedback", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v):
        return ensure_utc(v)


class AssignmentResponse(TimestampMixin):
    id: int
    candidate_id: int
    job_id: Optional[int] = None
    assigned_to: int
    assigned_by: int
    priority: AssignmentPriority
    status: AssignmentStatus
    candidate_status: CandidateStage
    notes: Optional[str] = None
    feedback: Optional[str] = None
    due_date: Optional[datetime] = None
    assigned_at: datetime
    completed_at: Optional[datetime] = None
    is_overdue: bool = False
    is_due_soon: bool = False
    days_since_assigned: int = 0
    candidate: Optional[CandidateSummary] = None
    job: Optional[JobSummary] = None
    hr: Optional[UserSummary] = None
    assigned_by_user: Optional[UserSummary] = None


class AssignmentStats(CamelModel):
    total: int
    by_status: dict[str, int]
    overdue: int
    due_soon: int
