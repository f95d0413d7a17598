"""
Read-only projection over agent scoping records.

Answers "which HRs / candidates is agent X assigned to" and the reverse
lookups used when exclusive ownership is enforced.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.assignments import (
    AgentAssignment,
    AgentAssignmentStatus,
    agent_assignment_candidates,
    agent_assignment_hrs,
)


class AssignmentGraph:
    """Agent -> HR and Agent -> Candidate edges of active scoping records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def hrs_for_agent(self, agent_id: int) -> frozenset[int]:
        """Union of HR ids across the agent's active records; empty if none."""
        stmt = (
            select(agent_assignment_hrs.c.hr_id)
            .join(
                AgentAssignment,
                AgentAssignment.id == agent_assignment_hrs.c.agent_assignment_id,
            )
            .where(
                AgentAssignment.agent_id == agent_id,
                AgentAssignment.status == AgentAssignmentStatus.ACTIVE,
            )
            .distinct()
        )
        result = await self.session.execute(stmt)
        return frozenset(result.scalars().all())

    async def candidates_for_agent(self, agent_id: int) -> frozenset[int]:
        """Union of candidate ids across the agent's active records; empty if none."""
        stmt = (
            select(agent_assignment_candidates.c.candidate_id)
            .join(
                AgentAssignment,
                AgentAssignment.id
                == agent_assignment_candidates.c.agent_assignment_id,
            )
            .where(
                AgentAssignment.agent_id == agent_id,
                AgentAssignment.status == AgentAssignmentStatus.ACTIVE,
            )
            .distinct()
        )
        result = await self.session.execute(stmt)
        return frozenset(result.scalars().all())

    async def record_for_agent(self, agent_id: int) -> Optional[AgentAssignment]:
        """The agent's scoping record, active or not."""
        result = await self.session.execute(
            select(AgentAssignment).where(AgentAssignment.agent_id == agent_id)
        )
        return result.scalar_one_or_none()

    async def members(
        self, assignment_ids: list[int]
    ) -> dict[int, tuple[list[int], list[int]]]:
        """HR ids and candidate ids per scoping record id."""
        members: dict[int, tuple[list[int], list[int]]] = {
            assignment_id: ([], []) for assignment_id in assignment_ids
        }
        if not assignment_ids:
            return members

        hr_rows = await self.session.execute(
            select(
                agent_assignment_hrs.c.agent_assignment_id,
                agent_assignment_hrs.c.hr_id,
            )
            .where(agent_assignment_hrs.c.agent_assignment_id.in_(assignment_ids))
            .order_by(agent_assignment_hrs.c.hr_id)
        )
        for assignment_id, hr_id in hr_rows.all():
            members[assignment_id][0].append(hr_id)

        candidate_rows = await self.session.execute(
            select(
                agent_assignment_candidates.c.agent_assignment_id,
                agent_assignment_candidates.c.candidate_id,
            )
            .where(
                agent_assignment_candidates.c.agent_assignment_id.in_(assignment_ids)
            )
            .order_by(agent_assignment_candidates.c.candidate_id)
        )
        for assignment_id, candidate_id in candidate_rows.all():
            members[assignment_id][1].append(candidate_id)

        return members

    async def owners_of_hrs(self, hr_ids: list[int]) -> dict[int, int]:
        """Map HR id -> scoping record id for HRs held by any active record."""
        if not hr_ids:
            return {}
        result = await self.session.execute(
            select(agent_assignment_hrs.c.hr_id, AgentAssignment.id)
            .join(
                AgentAssignment,
                AgentAssignment.id == agent_assignment_hrs.c.agent_assignment_id,
            )
            .where(
                agent_assignment_hrs.c.hr_id.in_(hr_ids),
                AgentAssignment.status == AgentAssignmentStatus.ACTIVE,
            )
        )
        return {hr_id: assignment_id for hr_id, assignment_id in result.all()}

    async def owners_of_candidates(self, candidate_ids: list[int]) -> dict[int, int]:
        """Map candidate id -> scoping record id for candidates held by any active record."""
        if not candidate_ids:
            return {}
        result = await self.session.execute(
            select(agent_assignment_candidates.c.candidate_id, AgentAssignment.id)
            .join(
                AgentAssignment,
                AgentAssignment.id
                == agent_assignment_candidates.c.agent_assignment_id,
            )
            .where(
                agent_assignment_candidates.c.candidate_id.in_(candidate_ids),
                AgentAssignment.status == AgentAssignmentStatus.ACTIVE,
            )
        )
        return {
            candidate_id: assignment_id for candidate_id, assignment_id in result.all()
        }
