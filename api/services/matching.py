"""
Matching orchestration.

Resolves the subject and the pool inside the caller's visibility scope,
hands descriptors to the MatchRanker and enriches ranked results with
candidate and job summaries.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.summaries import (
    candidate_summary,
    job_summary,
    load_candidates,
)
from core.access.actor import Actor, Capability
from core.access.gate import AccessGate
from core.config import settings
from core.errors import NotFound
from core.matching.descriptors import describe_candidate, describe_job
from core.matching.ranker import MatchRanker, MatchResult
from core.middleware.logging import get_logger
from database.models.candidates import Candidate, CandidateStatus
from database.models.companies import Company
from database.models.jobs import Job, JobStatus
from database.models.users import User

logger = get_logger(__name__)

MATCHABLE_JOB_STATUSES = (JobStatus.OPEN, JobStatus.ASSIGNED)


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.match_default_limit
    return max(1, min(limit, settings.match_max_limit))


def pool_size_for(limit: int) -> int:
    return min(limit * settings.match_pool_multiplier, settings.match_max_pool)


class MatchingService:
    """Runs scoped match requests for agents and admins."""

    def __init__(
        self,
        session: AsyncSession,
        ranker: MatchRanker,
        gate: Optional[AccessGate] = None,
    ):
        self.session = session
        self.ranker = ranker
        self.gate = gate or AccessGate(session)

    async def match_job(
        self, actor: Actor, job_id: int, limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """Rank visible active candidates against a visible job."""
        actor.require(Capability.MATCH_RUN)
        limit = clamp_limit(limit)
        scope = await self.gate.scope_for(actor)

        row = (
            await self.session.execute(
                select(Job, Company)
                .outerjoin(Company, Company.id == Job.company_id)
                .where(Job.id == job_id)
            )
        ).first()
        if row is None or not scope.jobs.permits(row[0]):
            raise NotFound(f"Job {job_id} not found")
        job, company = row

        pool: list[tuple[Candidate, User]] = []
        if not scope.candidates.is_empty:
            stmt = (
                select(Candidate, User)
                .join(User, User.id == Candidate.user_id)
                .where(Candidate.status == CandidateStatus.ACTIVE)
                .order_by(Candidate.id)
                .limit(pool_size_for(limit))
            )
            clause = scope.candidates.clause(Candidate.id)
            if clause is not None:
                stmt = stmt.where(clause)
            result = await self.session.execute(stmt)
            pool = [(candidate, user) for candidate, user in result.all()]

        if not pool:
            return self._empty("No candidates available for matching", job_id=job_id)

        ranked = await self.ranker.rank_candidates_for_job(
            describe_job(job, company),
            [describe_candidate(candidate, user) for candidate, user in pool],
            limit=limit,
        )
        candidates = {candidate.id: (candidate, user) for candidate, user in pool}
        jobs = {job.id: (job, company)}
        return self._response(ranked, candidates, jobs, len(pool), job_id=job_id)

    async def match_candidate(
        self, actor: Actor, candidate_id: int, limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """Rank visible open jobs against a visible candidate."""
        actor.require(Capability.MATCH_RUN)
        limit = clamp_limit(limit)
        scope = await self.gate.scope_for(actor)

        if not scope.candidates.contains(candidate_id):
            raise NotFound(f"Candidate {candidate_id} not found")
        candidates = await load_candidates(self.session, [candidate_id])
        if candidate_id not in candidates:
            raise NotFound(f"Candidate {candidate_id} not found")
        candidate, user = candidates[candidate_id]

        jobs_filter = scope.jobs.narrowed_to(MATCHABLE_JOB_STATUSES)
        pool: list[tuple[Job, Optional[Company]]] = []
        if not jobs_filter.is_empty:
            result = await self.session.execute(
                select(Job, Company)
                .outerjoin(Company, Company.id == Job.company_id)
                .where(*jobs_filter.clauses())
                .order_by(Job.id)
                .limit(pool_size_for(limit))
            )
            pool = [(job, company) for job, company in result.all()]

        if not pool:
            return self._empty("No open jobs available for matching", candidate_id=candidate_id)

        ranked = await self.ranker.rank_jobs_for_candidate(
            describe_candidate(candidate, user),
            [describe_job(job, company) for job, company in pool],
            limit=limit,
        )
        jobs = {job.id: (job, company) for job, company in pool}
        return self._response(
            ranked, candidates, jobs, len(pool), candidate_id=candidate_id
        )

    def _empty(self, message: str, **subject: int) -> Dict[str, Any]:
        logger.info("Match pool empty, oracle not called", extra=subject)
        return {"matches": [], "total": 0, "pool_size": 0, "message": message}

    def _response(
        self,
        ranked: list[MatchResult],
        candidates: Dict[int, tuple[Candidate, User]],
        jobs: Dict[int, tuple[Job, Optional[Company]]],
        pool_size: int,
        **subject: int,
    ) -> Dict[str, Any]:
        matches = []
        for result in ranked:
            entry = result.to_dict()
            if result.candidate_id in candidates:
                entry["candidate"] = candidate_summary(*candidates[result.candidate_id])
            if result.job_id in jobs:
                entry["job"] = job_summary(*jobs[result.job_id])
            matches.append(entry)

        logger.info(
            "Match request served",
            extra={**subject, "pool_size": pool_size, "matches": len(matches)},
        )
        return {
            "matches": matches,
            "total": len(matches),
            "pool_size": pool_size,
            "message": None,
        }
