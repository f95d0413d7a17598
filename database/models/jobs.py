from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, DateTime, Integer, JSON, Index
from database.engine import Base
from database.types import IdType, enum_type
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any


# ==================== Job Enums ===================== #
class JobStatus(str, PyEnum):
    OPEN = "open"
    ASSIGNED = "assigned"
    INTERVIEW = "interview"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class JobUrgency(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Job(Base):
    """
    A job posting owned by the HR user who created it.

    The owner is the anchor used to resolve agent visibility.
    """

    __tablename__: str = "jobs"
    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    job_code: Mapped[str | None] = mapped_column(
        String(32), unique=True, nullable=True, index=True
    )  # human readable, e.g. JOB0001
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    employment_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company_id: Mapped[int | None] = mapped_column(
        IdType, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[JobStatus] = mapped_column(
        enum_type(JobStatus), nullable=False, default=JobStatus.OPEN, index=True
    )
    urgency: Mapped[JobUrgency] = mapped_column(
        enum_type(JobUrgency), nullable=False, default=JobUrgency.MEDIUM
    )
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # experience level, education, languages, certifications
    requirements: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    salary_range: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    number_of_openings: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    posted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )

    __table_args__ = (Index("idx_jobs_owner_status", "created_by", "status"),)
