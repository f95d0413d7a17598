"""
Candidate assignment workflow.

AssignmentStateMachine owns creation, transition, deletion and the scoped
reads of candidate assignments. Lifecycle rules live in
core.assignments.transitions; this module loads records, checks scope,
persists and audits.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.summaries import (
    candidate_summary,
    job_summary,
    load_candidates,
    load_jobs,
    load_users,
    user_summary,
)
from core.access.actor import Actor, Capability
from core.access.gate import AccessGate
from core.assignments.transitions import (
    AssignmentChanges,
    AssignmentState,
    apply_changes,
)
from core.audit import AuditEntry, AuditSink
from core.config import settings
from core.errors import BadRequest, Conflict, Forbidden, NotFound
from core.middleware.logging import get_logger
from core.utils.datetime import days_between, ensure_utc, is_due_within, is_past, now
from database.models.assignments import (
    AssignmentPriority,
    AssignmentStatus,
    CandidateAssignment,
    CandidateStage,
)
from database.models.audit import AuditAction
from database.models.candidates import Candidate
from database.models.jobs import Job
from database.models.users import User, UserRole, UserStatus

logger = get_logger(__name__)

ENTITY_TYPE = "candidate_assignment"

PRIORITY_RANK = case(
    (CandidateAssignment.priority == AssignmentPriority.LOW, 0),
    (CandidateAssignment.priority == AssignmentPriority.MEDIUM, 1),
    (CandidateAssignment.priority == AssignmentPriority.HIGH, 2),
    else_=3,
)

SORT_COLUMNS = {
    "assigned_at": CandidateAssignment.assigned_at,
    "priority": PRIORITY_RANK,
    "status": CandidateAssignment.status,
    "due_date": CandidateAssignment.due_date,
}


def assignment_snapshot(record: CandidateAssignment) -> Dict[str, Any]:
    """JSON-safe copy of a record for the audit trail."""
    return {
        "id": record.id,
        "candidate_id": record.candidate_id,
        "job_id": record.job_id,
        "assigned_to": record.assigned_to,
        "assigned_by": record.assigned_by,
        "priority": record.priority.value,
        "status": record.status.value,
        "candidate_status": record.candidate_status.value,
        "notes": record.notes,
        "feedback": record.feedback,
        "due_date": record.due_date.isoformat() if record.due_date else None,
        "completed_at": record.completed_at.isoformat() if record.completed_at else None,
    }


def serialize_assignment(
    record: CandidateAssignment,
    reference: datetime,
    candidate: Optional[Dict[str, Any]] = None,
    job: Optional[Dict[str, Any]] = None,
    hr: Optional[Dict[str, Any]] = None,
    assigned_by_user: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    is_active = record.status == AssignmentStatus.ACTIVE
    due_date = ensure_utc(record.due_date)
    return {
        "id": record.id,
        "candidate_id": record.candidate_id,
        "job_id": record.job_id,
        "assigned_to": record.assigned_to,
        "assigned_by": record.assigned_by,
        "priority": record.priority,
        "status": record.status,
        "candidate_status": record.candidate_status,
        "notes": record.notes,
        "feedback": record.feedback,
        "due_date": due_date,
        "assigned_at": ensure_utc(record.assigned_at),
        "completed_at": ensure_utc(record.completed_at),
        "created_at": ensure_utc(record.created_at),
        "updated_at": ensure_utc(record.updated_at),
        "is_overdue": bool(is_active and due_date and is_past(due_date, reference)),
        "is_due_soon": bool(
            is_active
            and due_date
            and is_due_within(due_date, settings.assignment_due_soon_days, reference)
        ),
        "days_since_assigned": days_between(ensure_utc(record.assigned_at), reference),
        "candidate": candidate,
        "job": job,
        "hr": hr,
        "assigned_by_user": assigned_by_user,
    }


class AssignmentStateMachine:
    """
    Creates and moves candidate assignments through their lifecycle.

    At most one active assignment exists per (candidate, HR). The check
    before insert gives a precise error; the partial unique index on the
    table makes the invariant hold under concurrent creates.
    """

    def __init__(
        self,
        session: AsyncSession,
        audit: AuditSink,
        gate: Optional[AccessGate] = None,
        clock: Callable[[], datetime] = now,
    ):
        self.session = session
        self.audit = audit
        self.gate = gate or AccessGate(session)
        self.clock = clock

    # ==================== Mutations ===================== #

    async def create(
        self,
        actor: Actor,
        candidate_id: int,
        *,
        assigned_to: Optional[int] = None,
        job_id: Optional[int] = None,
        priority: Optional[AssignmentPriority] = None,
        notes: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Assign a candidate to an HR user, optionally against one of their jobs.

        Raises:
            BadRequest: no target, or jobId and assignedTo disagree
            NotFound: job, HR user or candidate does not exist
            Forbidden: agent without scope over the HR or the candidate
            Conflict: an active assignment already exists for the pair
        """
        actor.require(Capability.ASSIGNMENT_CREATE)

        if job_id is None and assigned_to is None:
            raise BadRequest("Either jobId or assignedTo is required")

        if job_id is not None:
            job = await self.session.get(Job, job_id)
            if job is None:
                raise NotFound(f"Job {job_id} not found")
            if assigned_to is not None and assigned_to != job.created_by:
                raise BadRequest(
                    "assignedTo must be the HR user who owns the job",
                    details={"jobId": job_id, "assignedTo": assigned_to},
                )
            hr_id = job.created_by
        else:
            hr_id = assigned_to

        hr = await self.session.get(User, hr_id)
        if hr is None or hr.role != UserRole.HR or hr.status != UserStatus.ACTIVE:
            raise NotFound(f"Active HR user {hr_id} not found")

        candidate = await self.session.get(Candidate, candidate_id)
        if candidate is None:
            raise NotFound(f"Candidate {candidate_id} not found")

        if actor.is_agent:
            visible_hrs = await self.gate.visible_hrs_for_agent(actor.id)
            visible_candidates = await self.gate.visible_candidates_for_agent(actor.id)
            if hr_id not in visible_hrs or candidate_id not in visible_candidates:
                raise Forbidden(
                    f"Agent {actor.id} is not assigned to HR {hr_id} "
                    f"and candidate {candidate_id}"
                )

        existing = await self._active_for_pair(candidate_id, hr_id)
        if existing is not None:
            raise self._duplicate(candidate_id, hr_id, existing)

        assigned_at = self.clock()
        record = CandidateAssignment(
            candidate_id=candidate_id,
            job_id=job_id,
            assigned_to=hr_id,
            assigned_by=actor.id,
            priority=priority or AssignmentPriority.MEDIUM,
            status=AssignmentStatus.ACTIVE,
            candidate_status=CandidateStage.NEW,
            notes=notes,
            due_date=due_date,
            assigned_at=assigned_at,
            created_at=assigned_at,
            updated_at=assigned_at,
        )
        self.session.add(record)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race against a concurrent create for the same pair
            await self.session.rollback()
            existing = await self._active_for_pair(candidate_id, hr_id)
            raise self._duplicate(candidate_id, hr_id, existing)

        logger.info(
            "Candidate assignment created",
            extra={
                "assignment_id": record.id,
                "candidate_id": candidate_id,
                "assigned_to": hr_id,
                "user_id": actor.id,
            },
        )
        await self.audit.record(
            AuditEntry(
                actor=actor,
                action=AuditAction.CREATE,
                entity_type=ENTITY_TYPE,
                entity_id=record.id,
                before=None,
                after=assignment_snapshot(record),
                description="Candidate assigned to HR",
            )
        )
        return (await self._serialize_many([record]))[0]

    async def transition(
        self,
        actor: Actor,
        assignment_id: int,
        changes: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Apply status, stage, priority, notes, feedback or due date changes.

        Raises:
            NotFound: absent or not visible to the actor
            Conflict: status or stage change on a closed assignment
            InvalidTransition: stage moves backward or past a final stage
        """
        actor.require(Capability.ASSIGNMENT_UPDATE)
        record = await self._load_visible(actor, assignment_id)

        result = apply_changes(
            AssignmentState.of(record),
            AssignmentChanges.from_dict(changes),
            at=self.clock(),
        )
        if not result.changed:
            return (await self._serialize_many([record]))[0]

        result.state.write_to(record)
        record.updated_at = self.clock()
        await self.session.commit()

        logger.info(
            "Candidate assignment updated",
            extra={
                "assignment_id": record.id,
                "fields": sorted(result.after),
                "user_id": actor.id,
            },
        )
        delta = result.audit_delta()
        await self.audit.record(
            AuditEntry(
                actor=actor,
                action=AuditAction.UPDATE,
                entity_type=ENTITY_TYPE,
                entity_id=record.id,
                before=delta["before"],
                after=delta["after"],
            )
        )
        return (await self._serialize_many([record]))[0]

    async def delete(self, actor: Actor, assignment_id: int) -> None:
        """
        Delete an active assignment.

        Only admins and the agent that created it may delete; closed
        assignments are kept for the record.

        Raises:
            NotFound: absent or not visible to the actor
            Forbidden: actor is neither admin nor the creating agent
            Conflict: assignment is no longer active
        """
        actor.require(Capability.ASSIGNMENT_DELETE)
        record = await self._load_visible(actor, assignment_id)

        if not (actor.is_admin or record.assigned_by == actor.id):
            raise Forbidden(f"Actor {actor.id} did not create assignment {assignment_id}")
        if record.status != AssignmentStatus.ACTIVE:
            raise Conflict(
                f"Assignment {assignment_id} is {record.status.value}; "
                "only active assignments can be deleted",
                details={"assignmentId": assignment_id, "status": record.status.value},
            )

        snapshot = assignment_snapshot(record)
        await self.session.delete(record)
        await self.session.commit()

        logger.info(
            "Candidate assignment deleted",
            extra={"assignment_id": assignment_id, "user_id": actor.id},
        )
        await self.audit.record(
            AuditEntry(
                actor=actor,
                action=AuditAction.DELETE,
                entity_type=ENTITY_TYPE,
                entity_id=assignment_id,
                before=snapshot,
                after=None,
            )
        )

    # ==================== Reads ===================== #

    async def get(self, actor: Actor, assignment_id: int) -> Dict[str, Any]:
        actor.require(Capability.ASSIGNMENT_VIEW)
        record = await self._load_visible(actor, assignment_id)
        return (await self._serialize_many([record]))[0]

    async def list_assignments(
        self,
        actor: Actor,
        *,
        status: Optional[AssignmentStatus] = None,
        priority: Optional[AssignmentPriority] = None,
        candidate_status: Optional[CandidateStage] = None,
        candidate_id: Optional[int] = None,
        job_id: Optional[int] = None,
        assigned_to: Optional[int] = None,
        assigned_by: Optional[int] = None,
        sort_by: str = "assigned_at",
        sort_order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dict[str, Any]], int]:
        """
        Assignments visible to the actor, filtered and paginated.

        HRs see assignments they own and agents the ones they created; the
        assigned_to / assigned_by filters narrow that further. `total`
        counts the same predicate as the returned page.
        """
        actor.require(Capability.ASSIGNMENT_VIEW)
        scope = self.gate.assignment_scope(actor)
        if scope.is_empty:
            return [], 0

        clauses = scope.clauses()
        for column, value in (
            (CandidateAssignment.status, status),
            (CandidateAssignment.priority, priority),
            (CandidateAssignment.candidate_status, candidate_status),
            (CandidateAssignment.candidate_id, candidate_id),
            (CandidateAssignment.job_id, job_id),
            (CandidateAssignment.assigned_to, assigned_to),
            (CandidateAssignment.assigned_by, assigned_by),
        ):
            if value is not None:
                clauses.append(column == value)

        return await self._page(clauses, sort_by, sort_order, limit, offset)

    async def mine(
        self,
        actor: Actor,
        *,
        status: Optional[AssignmentStatus] = AssignmentStatus.ACTIVE,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dict[str, Any]], int]:
        """
        An HR's own work items, or an agent's view over its candidates.

        Agents see every assignment touching a candidate in their scope,
        whoever created it.
        """
        actor.require(Capability.ASSIGNMENT_VIEW_MINE)

        if actor.is_agent:
            candidate_ids = await self.gate.visible_candidates_for_agent(actor.id)
            if not candidate_ids:
                return [], 0
            clauses = [CandidateAssignment.candidate_id.in_(sorted(candidate_ids))]
        else:
            clauses = [CandidateAssignment.assigned_to == actor.id]

        if status is not None:
            clauses.append(CandidateAssignment.status == status)

        return await self._page(clauses, "assigned_at", "desc", limit, offset)

    async def stats(self, actor: Actor) -> Dict[str, Any]:
        """Counts by status plus overdue and due-soon active assignments."""
        actor.require(Capability.ASSIGNMENT_STATS)
        scope = self.gate.assignment_scope(actor)
        by_status = {status.value: 0 for status in AssignmentStatus}
        if scope.is_empty:
            return {"total": 0, "by_status": by_status, "overdue": 0, "due_soon": 0}

        clauses = scope.clauses()
        rows = await self.session.execute(
            select(CandidateAssignment.status, func.count())
            .where(*clauses)
            .group_by(CandidateAssignment.status)
        )
        for status, count in rows.all():
            by_status[status.value] = count

        reference = self.clock()
        active = clauses + [
            CandidateAssignment.status == AssignmentStatus.ACTIVE,
            CandidateAssignment.due_date.is_not(None),
        ]
        overdue = await self.session.scalar(
            select(func.count())
            .select_from(CandidateAssignment)
            .where(*active, CandidateAssignment.due_date < reference)
        )
        due_soon = await self.session.scalar(
            select(func.count())
            .select_from(CandidateAssignment)
            .where(
                *active,
                CandidateAssignment.due_date >= reference,
                CandidateAssignment.due_date
                <= reference + timedelta(days=settings.assignment_due_soon_days),
            )
        )
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "overdue": overdue or 0,
            "due_soon": due_soon or 0,
        }

    # ==================== Helpers ===================== #

    async def _active_for_pair(
        self, candidate_id: int, hr_id: int
    ) -> Optional[CandidateAssignment]:
        result = await self.session.execute(
            select(CandidateAssignment).where(
                CandidateAssignment.candidate_id == candidate_id,
                CandidateAssignment.assigned_to == hr_id,
                CandidateAssignment.status == AssignmentStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _duplicate(
        candidate_id: int, hr_id: int, existing: Optional[CandidateAssignment]
    ) -> Conflict:
        details: Dict[str, Any] = {"candidateId": candidate_id, "assignedTo": hr_id}
        message = (
            f"Candidate {candidate_id} already has an active assignment with HR user {hr_id}"
        )
        if existing is not None:
            details["existingAssignmentId"] = existing.id
            message += f" (assignment {existing.id})"
        return Conflict(message, details=details)

    async def _load_visible(self, actor: Actor, assignment_id: int) -> CandidateAssignment:
        record = await self.session.get(CandidateAssignment, assignment_id)
        if record is None or not self.gate.assignment_scope(actor).permits(record):
            raise NotFound(f"Assignment {assignment_id} not found")
        return record

    async def _page(
        self,
        clauses: list,
        sort_by: str,
        sort_order: str,
        limit: int,
        offset: int,
    ) -> tuple[list[Dict[str, Any]], int]:
        total = await self.session.scalar(
            select(func.count()).select_from(CandidateAssignment).where(*clauses)
        )

        sort_column = SORT_COLUMNS.get(sort_by, CandidateAssignment.assigned_at)
        ordering = sort_column.asc() if sort_order == "asc" else sort_column.desc()
        result = await self.session.execute(
            select(CandidateAssignment)
            .where(*clauses)
            .order_by(ordering, CandidateAssignment.id.desc())
            .limit(limit)
            .offset(offset)
        )
        records = list(result.scalars().all())
        return await self._serialize_many(records), total or 0

    async def _serialize_many(
        self, records: list[CandidateAssignment]
    ) -> list[Dict[str, Any]]:
        candidates = await load_candidates(self.session, (r.candidate_id for r in records))
        jobs = await load_jobs(
            self.session, (r.job_id for r in records if r.job_id is not None)
        )
        users = await load_users(
            self.session,
            [r.assigned_to for r in records] + [r.assigned_by for r in records],
        )
        reference = self.clock()

        serialized = []
        for record in records:
            candidate = candidates.get(record.candidate_id)
            job = jobs.get(record.job_id) if record.job_id is not None else None
            hr = users.get(record.assigned_to)
            creator = users.get(record.assigned_by)
            serialized.append(
                serialize_assignment(
                    record,
                    reference,
                    candidate=candidate_summary(*candidate) if candidate else None,
                    job=job_summary(*job) if job else None,
                    hr=user_summary(hr) if hr else None,
                    assigned_by_user=user_summary(creator) if creator else None,
                )
            )
        return serialized
