from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, DateTime, JSON, Text
from database.engine import Base
from database.types import IdType, enum_type
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any


# ============ Audit Enums ============ #
class AuditAction(str, PyEnum):
    """Audit action types."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN = "assign"
    UNASSIGN = "unassign"


# ==================== Models ===================== #
class AuditLog(Base):
    """
    Audit trail for pipeline mutations.
    """

    __tablename__ = "audit_logs"
    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    # Actor
    user_id: Mapped[int | None] = mapped_column(
        IdType, ForeignKey("users.id"), index=True
    )
    user_role: Mapped[str | None] = mapped_column(String(50))

    # Action
    action: Mapped[AuditAction] = mapped_column(
        enum_type(AuditAction), nullable=False, index=True
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[int | None] = mapped_column(IdType, index=True)

    # Details
    description: Mapped[str | None] = mapped_column(Text)
    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON)  # Before/after values
    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, index=True
    )
