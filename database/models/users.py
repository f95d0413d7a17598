from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime
from database.engine import Base
from database.types import IdType, enum_type
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum


# ==================== User Enums ===================== #
class UserRole(str, PyEnum):
    SUPERADMIN = "superadmin"  # platform owner, unrestricted
    ADMIN = "admin"  # manages agents and their scope
    HR = "hr"  # owns jobs and the work items assigned to them
    AGENT = "agent"  # places candidates with the HRs they are scoped to
    CANDIDATE = "candidate"  # passive subject of the pipeline


class UserStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLACKLISTED = "blacklisted"


class User(Base):
    """
    Identity record for every actor. The role is fixed for the lifetime of a session.
    """

    __tablename__: str = "users"
    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    custom_id: Mapped[str | None] = mapped_column(
        String(32), unique=True, nullable=True, index=True
    )  # human readable, e.g. HR0001
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    role: Mapped[UserRole] = mapped_column(
        enum_type(UserRole), nullable=False, index=True
    )
    status: Mapped[UserStatus] = mapped_column(
        enum_type(UserStatus), nullable=False, default=UserStatus.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
