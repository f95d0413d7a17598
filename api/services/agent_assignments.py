"""
Agent scope administration.

Admins decide which HRs and candidates each agent works with. An HR or a
candidate belongs to at most one agent at a time: assigning it to one
agent removes it from every other agent's active record.
"""

from typing import Any, Dict, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.summaries import (
    candidate_summary,
    load_candidates,
    load_users,
    user_summary,
)
from core.access.actor import Actor, Capability
from core.assignments.graph import AssignmentGraph
from core.audit import AuditEntry, AuditSink
from core.errors import BadRequest, NotFound
from core.middleware.logging import get_logger
from core.utils.datetime import ensure_utc, now
from database.models.assignments import (
    AgentAssignment,
    AgentAssignmentStatus,
    AssignmentStatus,
    CandidateAssignment,
    agent_assignment_candidates,
    agent_assignment_hrs,
)
from database.models.audit import AuditAction
from database.models.candidates import CandidateStatus
from database.models.jobs import Job, JobStatus
from database.models.users import User, UserRole, UserStatus

logger = get_logger(__name__)

ENTITY_TYPE = "agent_assignment"
AVAILABLE_JOB_STATUSES = (JobStatus.OPEN, JobStatus.ASSIGNED)


def _dedupe(ids: list[int]) -> list[int]:
    return list(dict.fromkeys(ids))


class AgentAssignmentService:
    """Maintains agent scoping records and the agent's own workspace views."""

    def __init__(self, session: AsyncSession, audit: AuditSink):
        self.session = session
        self.audit = audit
        self.graph = AssignmentGraph(session)

    async def upsert(
        self,
        actor: Actor,
        agent_id: int,
        hr_ids: list[int],
        candidate_ids: list[int],
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Set the HRs and candidates an agent works with and activate the record.

        Raises:
            NotFound: agent is not an active agent user
            BadRequest: some HRs are not active HR users, or some
                candidates do not exist or are not active
        """
        actor.require(Capability.AGENT_ASSIGNMENT_MANAGE)
        hr_ids = _dedupe(hr_ids)
        candidate_ids = _dedupe(candidate_ids)

        agent = await self.session.get(User, agent_id)
        if agent is None or agent.role != UserRole.AGENT or agent.status != UserStatus.ACTIVE:
            raise NotFound(f"Active agent {agent_id} not found")

        users = await load_users(self.session, hr_ids)
        invalid_hrs = [
            hr_id
            for hr_id in hr_ids
            if hr_id not in users
            or users[hr_id].role != UserRole.HR
            or users[hr_id].status != UserStatus.ACTIVE
        ]
        if invalid_hrs:
            raise BadRequest(
                "Some HR users are invalid or inactive",
                details={"invalidHrIds": invalid_hrs},
            )

        candidates = await load_candidates(self.session, candidate_ids)
        invalid_candidates = [
            candidate_id
            for candidate_id in candidate_ids
            if candidate_id not in candidates
            or candidates[candidate_id][0].status != CandidateStatus.ACTIVE
        ]
        if invalid_candidates:
            raise BadRequest(
                "Some candidates are invalid or inactive",
                details={"invalidCandidateIds": invalid_candidates},
            )

        record = await self.graph.record_for_agent(agent_id)
        before = None
        timestamp = now()
        if record is None:
            record = AgentAssignment(
                agent_id=agent_id,
                assigned_by=actor.id,
                status=AgentAssignmentStatus.ACTIVE,
                notes=notes,
                assigned_at=timestamp,
                created_at=timestamp,
                updated_at=timestamp,
            )
            self.session.add(record)
            await self.session.flush()
        else:
            before = await self._snapshot(record)
            record.status = AgentAssignmentStatus.ACTIVE
            record.assigned_by = actor.id
            record.assigned_at = timestamp
            record.updated_at = timestamp
            if notes is not None:
                record.notes = notes

        hr_owners = await self.graph.owners_of_hrs(hr_ids)
        candidate_owners = await self.graph.owners_of_candidates(candidate_ids)
        taken_from: Dict[int, Dict[str, list[int]]] = {}
        for hr_id, owner in hr_owners.items():
            if owner != record.id:
                taken_from.setdefault(owner, {"hrs": [], "candidates": []})["hrs"].append(hr_id)
        for candidate_id, owner in candidate_owners.items():
            if owner != record.id:
                taken_from.setdefault(owner, {"hrs": [], "candidates": []})[
                    "candidates"
                ].append(candidate_id)

        # Exclusive ownership: no other active record keeps these HRs or candidates
        other_active = select(AgentAssignment.id).where(
            AgentAssignment.status == AgentAssignmentStatus.ACTIVE,
            AgentAssignment.id != record.id,
        )
        if hr_ids:
            await self.session.execute(
                delete(agent_assignment_hrs).where(
                    agent_assignment_hrs.c.hr_id.in_(hr_ids),
                    agent_assignment_hrs.c.agent_assignment_id.in_(other_active),
                )
            )
        if candidate_ids:
            await self.session.execute(
                delete(agent_assignment_candidates).where(
                    agent_assignment_candidates.c.candidate_id.in_(candidate_ids),
                    agent_assignment_candidates.c.agent_assignment_id.in_(other_active),
                )
            )

        await self.session.execute(
            delete(agent_assignment_hrs).where(
                agent_assignment_hrs.c.agent_assignment_id == record.id
            )
        )
        await self.session.execute(
            delete(agent_assignment_candidates).where(
                agent_assignment_candidates.c.agent_assignment_id == record.id
            )
        )
        if hr_ids:
            await self.session.execute(
                insert(agent_assignment_hrs),
                [{"agent_assignment_id": record.id, "hr_id": hr_id} for hr_id in hr_ids],
            )
        if candidate_ids:
            await self.session.execute(
                insert(agent_assignment_candidates),
                [
                    {"agent_assignment_id": record.id, "candidate_id": candidate_id}
                    for candidate_id in candidate_ids
                ],
            )
        await self.session.commit()

        logger.info(
            "Agent scope assigned",
            extra={
                "agent_id": agent_id,
                "hrs": len(hr_ids),
                "candidates": len(candidate_ids),
                "reassigned_from": sorted(taken_from),
                "user_id": actor.id,
            },
        )
        await self.audit.record(
            AuditEntry(
                actor=actor,
                action=AuditAction.ASSIGN,
                entity_type=ENTITY_TYPE,
                entity_id=record.id,
                before=before,
                after={"agent_id": agent_id, "hr_ids": hr_ids, "candidate_ids": candidate_ids},
                metadata={"reassigned_from": {str(k): v for k, v in taken_from.items()}},
            )
        )
        for owner_id, removed in taken_from.items():
            await self.audit.record(
                AuditEntry(
                    actor=actor,
                    action=AuditAction.UNASSIGN,
                    entity_type=ENTITY_TYPE,
                    entity_id=owner_id,
                    before=removed,
                    after=None,
                    metadata={"reassigned_to_agent": agent_id},
                    description="Resources moved to another agent",
                )
            )

        return (await self._serialize([record]))[0]

    async def deactivate(self, actor: Actor, agent_id: int) -> Dict[str, Any]:
        """Deactivate an agent's record; the agent then sees nothing."""
        actor.require(Capability.AGENT_ASSIGNMENT_MANAGE)
        record = await self.graph.record_for_agent(agent_id)
        if record is None:
            raise NotFound(f"No agent assignment for agent {agent_id}")

        if record.status != AgentAssignmentStatus.INACTIVE:
            record.status = AgentAssignmentStatus.INACTIVE
            record.updated_at = now()
            await self.session.commit()
            await self.audit.record(
                AuditEntry(
                    actor=actor,
                    action=AuditAction.UPDATE,
                    entity_type=ENTITY_TYPE,
                    entity_id=record.id,
                    before={"status": AgentAssignmentStatus.ACTIVE.value},
                    after={"status": AgentAssignmentStatus.INACTIVE.value},
                )
            )
        return (await self._serialize([record]))[0]

    async def list_records(
        self,
        actor: Actor,
        status: Optional[AgentAssignmentStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dict[str, Any]], int]:
        actor.require(Capability.AGENT_ASSIGNMENT_MANAGE)
        clauses = [AgentAssignment.status == status] if status is not None else []

        total = await self.session.scalar(
            select(func.count()).select_from(AgentAssignment).where(*clauses)
        )
        result = await self.session.execute(
            select(AgentAssignment)
            .where(*clauses)
            .order_by(AgentAssignment.assigned_at.desc(), AgentAssignment.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return await self._serialize(list(result.scalars().all())), total or 0

    async def for_agent(self, actor: Actor, agent_id: int) -> Dict[str, Any]:
        actor.require(Capability.AGENT_ASSIGNMENT_MANAGE)
        record = await self.graph.record_for_agent(agent_id)
        if record is None:
            raise NotFound(f"No agent assignment for agent {agent_id}")
        return (await self._serialize([record]))[0]

    async def mine(self, actor: Actor) -> Dict[str, Any]:
        """The calling agent's active record with HR and candidate details."""
        actor.require(Capability.AGENT_ASSIGNMENT_VIEW_OWN)
        record = await self.graph.record_for_agent(actor.id)
        if record is None or record.status != AgentAssignmentStatus.ACTIVE:
            raise NotFound("No active agent assignment")
        return (await self._serialize([record]))[0]

    async def dashboard(self, actor: Actor) -> Dict[str, Any]:
        """Scope sizes, open jobs of the agent's HRs and its own assignment counts."""
        actor.require(Capability.AGENT_DASHBOARD)
        hr_ids = await self.graph.hrs_for_agent(actor.id)
        candidate_ids = await self.graph.candidates_for_agent(actor.id)

        available_jobs = 0
        if hr_ids:
            available_jobs = await self.session.scalar(
                select(func.count())
                .select_from(Job)
                .where(
                    Job.created_by.in_(sorted(hr_ids)),
                    Job.status.in_(AVAILABLE_JOB_STATUSES),
                )
            ) or 0

        rows = await self.session.execute(
            select(CandidateAssignment.status, func.count())
            .where(CandidateAssignment.assigned_by == actor.id)
            .group_by(CandidateAssignment.status)
        )
        counts = {status: count for status, count in rows.all()}

        return {
            "assigned_hrs": len(hr_ids),
            "assigned_candidates": len(candidate_ids),
            "available_jobs": available_jobs,
            "assignments": {
                "active": counts.get(AssignmentStatus.ACTIVE, 0),
                "completed": counts.get(AssignmentStatus.COMPLETED, 0),
                "closed": counts.get(AssignmentStatus.REJECTED, 0)
                + counts.get(AssignmentStatus.WITHDRAWN, 0),
                "total": sum(counts.values()),
            },
        }

    async def _snapshot(self, record: AgentAssignment) -> Dict[str, Any]:
        hr_ids, candidate_ids = (await self.graph.members([record.id]))[record.id]
        return {
            "agent_id": record.agent_id,
            "status": record.status.value,
            "hr_ids": hr_ids,
            "candidate_ids": candidate_ids,
        }

    async def _serialize(self, records: list[AgentAssignment]) -> list[Dict[str, Any]]:
        members = await self.graph.members([record.id for record in records])
        all_hr_ids = {hr for hrs, _ in members.values() for hr in hrs}
        all_candidate_ids = {c for _, cands in members.values() for c in cands}
        users = await load_users(
            self.session,
            all_hr_ids
            | {record.agent_id for record in records}
            | {record.assigned_by for record in records},
        )
        candidates = await load_candidates(self.session, all_candidate_ids)

        serialized = []
        for record in records:
            hr_ids, candidate_ids = members[record.id]
            agent = users.get(record.agent_id)
            admin = users.get(record.assigned_by)
            serialized.append({
                "id": record.id,
                "agent_id": record.agent_id,
                "agent": user_summary(agent) if agent else None,
                "assigned_by": record.assigned_by,
                "assigned_by_user": user_summary(admin) if admin else None,
                "status": record.status,
                "notes": record.notes,
                "assigned_at": ensure_utc(record.assigned_at),
                "updated_at": ensure_utc(record.updated_at),
                "assigned_hrs": [
                    user_summary(users[hr_id]) for hr_id in hr_ids if hr_id in users
                ],
                "assigned_candidates": [
                    candidate_summary(*candidates[candidate_id])
                    for candidate_id in candidate_ids
                    if candidate_id in candidates
                ],
            })
        return serialized
