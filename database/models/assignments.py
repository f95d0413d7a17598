from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    Column,
    String,
    Text,
    ForeignKey,
    DateTime,
    Index,
    Table,
    text,
)
from database.engine import Base
from database.types import IdType, enum_type
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum


# ==================== Assignment Enums ===================== #
class AgentAssignmentStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AssignmentStatus(str, PyEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class AssignmentPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CandidateStage(str, PyEnum):
    """Pipeline stage, tracked independently of the assignment lifecycle."""

    NEW = "new"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEWED = "interviewed"
    OFFER_SENT = "offer_sent"
    HIRED = "hired"
    REJECTED = "rejected"


# ==================== Agent Scope ===================== #
agent_assignment_hrs = Table(
    "agent_assignment_hrs",
    Base.metadata,
    Column(
        "agent_assignment_id",
        IdType,
        ForeignKey("agent_assignments.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "hr_id",
        IdType,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)

agent_assignment_candidates = Table(
    "agent_assignment_candidates",
    Base.metadata,
    Column(
        "agent_assignment_id",
        IdType,
        ForeignKey("agent_assignments.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "candidate_id",
        IdType,
        ForeignKey("candidates.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class AgentAssignment(Base):
    """
    The scoping record of an agent: which HRs and candidates it may act for.

    One record per agent, created and maintained by an admin. Deactivating
    keeps the row; assigning again reactivates it.
    """

    __tablename__: str = "agent_assignments"
    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    agent_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    assigned_by: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id"), nullable=False
    )
    status: Mapped[AgentAssignmentStatus] = mapped_column(
        enum_type(AgentAssignmentStatus),
        nullable=False,
        default=AgentAssignmentStatus.ACTIVE,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )


# ==================== Pipeline Work Item ===================== #
class CandidateAssignment(Base):
    """
    A candidate placed with an HR user, optionally against one of their jobs.

    At most one active record exists per (candidate_id, assigned_to); the
    partial unique index turns a concurrent duplicate insert into an
    IntegrityError.
    """

    __tablename__: str = "candidate_assignments"
    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    candidate_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[int | None] = mapped_column(
        IdType, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True
    )
    assigned_to: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id"), nullable=False
    )
    assigned_by: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id"), nullable=False
    )
    priority: Mapped[AssignmentPriority] = mapped_column(
        enum_type(AssignmentPriority),
        nullable=False,
        default=AssignmentPriority.MEDIUM,
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        enum_type(AssignmentStatus), nullable=False, default=AssignmentStatus.ACTIVE
    )
    candidate_status: Mapped[CandidateStage] = mapped_column(
        enum_type(CandidateStage), nullable=False, default=CandidateStage.NEW
    )
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    feedback: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )

    __table_args__ = (
        Index(
            "uq_candidate_assignments_active_pair",
            "candidate_id",
            "assigned_to",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_candidate_assignments_owner", "assigned_to", "status"),
        Index("idx_candidate_assignments_creator", "assigned_by", "status"),
        Index("idx_candidate_assignments_due", "status", "due_date"),
    )
