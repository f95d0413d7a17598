"""
Typed visibility values produced by the AccessGate.

An empty scope is a valid answer ("sees nothing"), distinct from an
unrestricted one ("sees everything"). Consumers turn scopes into SQL
clauses and skip the query entirely when a scope is structurally empty.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from sqlalchemy import false, or_, select
from sqlalchemy.sql.elements import ColumnElement

from core.access.actor import Actor
from database.models.assignments import CandidateAssignment
from database.models.companies import Company
from database.models.jobs import Job, JobStatus


@dataclass(frozen=True)
class IdScope:
    """A set of visible ids, or no restriction at all when `ids` is None."""

    ids: Optional[FrozenSet[int]] = None

    @classmethod
    def unrestricted(cls) -> "IdScope":
        return cls(None)

    @classmethod
    def only(cls, ids: Iterable[int]) -> "IdScope":
        return cls(frozenset(ids))

    @classmethod
    def nothing(cls) -> "IdScope":
        return cls(frozenset())

    @property
    def is_unrestricted(self) -> bool:
        return self.ids is None

    @property
    def is_empty(self) -> bool:
        return self.ids is not None and not self.ids

    def contains(self, entity_id: Optional[int]) -> bool:
        if self.ids is None:
            return True
        return entity_id in self.ids

    def clause(self, column) -> Optional[ColumnElement]:
        """SQL restriction for `column`, or None when unrestricted."""
        if self.ids is None:
            return None
        if not self.ids:
            return false()
        return column.in_(sorted(self.ids))


@dataclass(frozen=True)
class JobFilter:
    """Which jobs an actor may see: by owning HR and by status."""

    owners: IdScope = field(default_factory=IdScope.unrestricted)
    excluded_statuses: FrozenSet[JobStatus] = frozenset()
    statuses: Optional[FrozenSet[JobStatus]] = None

    @property
    def is_empty(self) -> bool:
        if self.owners.is_empty:
            return True
        return self.statuses is not None and not (self.statuses - self.excluded_statuses)

    def clauses(self) -> list[ColumnElement]:
        clauses = []
        owner_clause = self.owners.clause(Job.created_by)
        if owner_clause is not None:
            clauses.append(owner_clause)
        if self.excluded_statuses:
            clauses.append(Job.status.not_in(sorted(self.excluded_statuses)))
        if self.statuses is not None:
            clauses.append(Job.status.in_(sorted(self.statuses)))
        return clauses

    def permits(self, job: Job) -> bool:
        if not self.owners.contains(job.created_by):
            return False
        if job.status in self.excluded_statuses:
            return False
        return self.statuses is None or job.status in self.statuses

    def narrowed_to(self, statuses: Iterable[JobStatus]) -> "JobFilter":
        """The same filter further limited to the given statuses."""
        wanted = frozenset(statuses)
        if self.statuses is not None:
            wanted = wanted & self.statuses
        return JobFilter(
            owners=self.owners,
            excluded_statuses=self.excluded_statuses,
            statuses=wanted,
        )


@dataclass(frozen=True)
class AssignmentScope:
    """Restrictions on the owning HR and on the creator of assignments."""

    owners: IdScope = field(default_factory=IdScope.unrestricted)
    creators: IdScope = field(default_factory=IdScope.unrestricted)

    @property
    def is_empty(self) -> bool:
        return self.owners.is_empty or self.creators.is_empty

    def clauses(self) -> list[ColumnElement]:
        clauses = []
        for scope, column in (
            (self.owners, CandidateAssignment.assigned_to),
            (self.creators, CandidateAssignment.assigned_by),
        ):
            clause = scope.clause(column)
            if clause is not None:
                clauses.append(clause)
        return clauses

    def permits(self, assignment: CandidateAssignment) -> bool:
        return self.owners.contains(assignment.assigned_to) and self.creators.contains(
            assignment.assigned_by
        )


@dataclass(frozen=True)
class VisibilityScope:
    """
    Everything an actor may see, computed once per request.

    Attributes:
        actor: The actor the scope was computed for
        jobs: Job filter (owner HRs and statuses)
        candidates: Candidate ids the actor may act upon
        users: Users the actor may look up (HR directory for agents and candidates)
        assignments: Which candidate assignments the actor may see
        own_companies: Include companies created by the actor itself
        all_companies: Every company is visible
    """

    actor: Actor
    jobs: JobFilter
    candidates: IdScope
    users: IdScope
    assignments: AssignmentScope = field(default_factory=AssignmentScope)
    own_companies: bool = False
    all_companies: bool = False

    @property
    def companies_unrestricted(self) -> bool:
        return self.all_companies

    @property
    def companies_empty(self) -> bool:
        return self.jobs.is_empty and not self.own_companies

    def company_clause(self) -> Optional[ColumnElement]:
        """Companies are visible through the jobs the actor can see."""
        if self.companies_unrestricted:
            return None
        if self.companies_empty:
            return false()
        via_jobs = Company.id.in_(
            select(Job.company_id)
            .where(Job.company_id.is_not(None), *self.jobs.clauses())
            .distinct()
        )
        if self.own_companies:
            return or_(via_jobs, Company.created_by == self.actor.id)
        return via_jobs
