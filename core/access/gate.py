"""
AccessGate: per-actor visibility.

Never raises for missing scope data. An agent without a scoping record
simply sees nothing; the calling service decides whether that means
Forbidden, NotFound or an empty result.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.access.actor import Actor
from core.access.scope import AssignmentScope, IdScope, JobFilter, VisibilityScope
from core.assignments.graph import AssignmentGraph
from core.middleware.logging import get_logger
from database.models.assignments import CandidateAssignment
from database.models.candidates import Candidate
from database.models.jobs import JobStatus
from database.models.users import UserRole

logger = get_logger(__name__)

NON_CANCELLED = frozenset({JobStatus.CANCELLED})


class AccessGate:
    """Computes visible entity sets for an actor."""

    def __init__(self, session: AsyncSession, graph: AssignmentGraph | None = None):
        self.session = session
        self.graph = graph or AssignmentGraph(session)

    async def visible_hrs_for_agent(self, agent_id: int) -> frozenset[int]:
        return await self.graph.hrs_for_agent(agent_id)

    async def visible_candidates_for_agent(self, agent_id: int) -> frozenset[int]:
        return await self.graph.candidates_for_agent(agent_id)

    async def visible_candidates_for_hr(self, hr_user_id: int) -> frozenset[int]:
        """Candidates ever assigned to the HR, whatever the assignment status."""
        result = await self.session.execute(
            select(CandidateAssignment.candidate_id)
            .where(CandidateAssignment.assigned_to == hr_user_id)
            .distinct()
        )
        return frozenset(result.scalars().all())

    async def hrs_assigned_to_candidate_user(self, user_id: int) -> frozenset[int]:
        """HRs holding any assignment against the candidate profile of `user_id`."""
        result = await self.session.execute(
            select(CandidateAssignment.assigned_to)
            .join(Candidate, Candidate.id == CandidateAssignment.candidate_id)
            .where(Candidate.user_id == user_id)
            .distinct()
        )
        return frozenset(result.scalars().all())

    def assignment_scope(self, actor: Actor) -> AssignmentScope:
        """HRs see work items assigned to them, agents the ones they created."""
        if actor.is_admin:
            return AssignmentScope()
        if actor.is_hr:
            return AssignmentScope(owners=IdScope.only([actor.id]))
        if actor.is_agent:
            return AssignmentScope(creators=IdScope.only([actor.id]))
        return AssignmentScope(owners=IdScope.nothing())

    async def visible_jobs_scope(self, actor: Actor) -> JobFilter:
        if actor.role == UserRole.SUPERADMIN:
            return JobFilter()
        if actor.role == UserRole.AGENT:
            hrs = await self.visible_hrs_for_agent(actor.id)
            return JobFilter(owners=IdScope.only(hrs))
        if actor.role == UserRole.HR:
            return JobFilter(
                owners=IdScope.only([actor.id]), excluded_statuses=NON_CANCELLED
            )
        # admin and candidate
        return JobFilter(excluded_statuses=NON_CANCELLED)

    async def scope_for(self, actor: Actor) -> VisibilityScope:
        """Build the full visibility scope of an actor."""
        jobs = await self.visible_jobs_scope(actor)

        if actor.is_admin:
            scope = VisibilityScope(
                actor=actor,
                jobs=jobs,
                candidates=IdScope.unrestricted(),
                users=IdScope.unrestricted(),
                all_companies=True,
            )
        elif actor.is_agent:
            scope = VisibilityScope(
                actor=actor,
                jobs=jobs,
                candidates=IdScope.only(
                    await self.visible_candidates_for_agent(actor.id)
                ),
                users=jobs.owners,
                assignments=self.assignment_scope(actor),
            )
        elif actor.is_hr:
            scope = VisibilityScope(
                actor=actor,
                jobs=jobs,
                candidates=IdScope.only(await self.visible_candidates_for_hr(actor.id)),
                users=IdScope.nothing(),
                assignments=self.assignment_scope(actor),
                own_companies=True,
            )
        else:
            scope = VisibilityScope(
                actor=actor,
                jobs=jobs,
                candidates=IdScope.nothing(),
                users=IdScope.only(
                    await self.hrs_assigned_to_candidate_user(actor.id)
                ),
                assignments=self.assignment_scope(actor),
            )

        logger.debug(
            "Visibility scope computed",
            extra={
                "actor_id": actor.id,
                "role": actor.role.value,
                "jobs_empty": scope.jobs.is_empty,
                "candidates": None
                if scope.candidates.is_unrestricted
                else len(scope.candidates.ids),
            },
        )
        return scope
