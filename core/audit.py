"""
Audit sink.

Recording an audit entry is a side channel: a failure is logged and
swallowed so it never changes the outcome of the operation being audited.
Entries are written through their own session, after the primary change
has committed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.access.actor import Actor
from core.middleware.logging import get_logger
from database.models.audit import AuditAction, AuditLog

logger = get_logger(__name__)


@dataclass
class AuditEntry:
    actor: Actor
    action: AuditAction
    entity_type: str
    entity_id: Optional[int]
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None


class AuditSink(Protocol):
    async def record(self, entry: AuditEntry) -> None:
        ...


class DatabaseAuditSink:
    """Writes audit entries to the audit_logs table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        log: Optional[logging.Logger] = None,
    ):
        self.session_factory = session_factory
        self.log = log or logger

    async def record(self, entry: AuditEntry) -> None:
        try:
            async with self.session_factory() as session:
                session.add(
                    AuditLog(
                        user_id=entry.actor.id,
                        user_role=entry.actor.role.value,
                        action=entry.action,
                        entity_type=entry.entity_type,
                        entity_id=entry.entity_id,
                        description=entry.description,
                        changes={"before": entry.before, "after": entry.after},
                        extra_metadata=entry.metadata or None,
                    )
                )
                await session.commit()
        except Exception as e:
            self.log.warning(
                f"Failed to record audit entry: {e}",
                extra={
                    "entity_type": entry.entity_type,
                    "entity_id": entry.entity_id,
                    "action": entry.action.value,
                },
            )
