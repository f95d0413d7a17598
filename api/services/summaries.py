"""Batch loaders for the short entity summaries embedded in responses."""

from typing import Any, Dict, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.candidates import Candidate
from database.models.companies import Company
from database.models.jobs import Job
from database.models.users import User


def user_summary(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "custom_id": user.custom_id,
        "name": user.full_name,
        "email": user.email,
        "role": user.role.value,
        "status": user.status.value,
    }


def candidate_summary(candidate: Candidate, user: User | None) -> Dict[str, Any]:
    return {
        "id": candidate.id,
        "user_id": candidate.user_id,
        "custom_id": user.custom_id if user else None,
        "name": user.full_name if user else None,
        "email": user.email if user else None,
        "summary": candidate.summary,
        "location": candidate.location,
        "skills": candidate.skills or [],
        "total_experience": candidate.total_experience,
        "status": candidate.status.value,
    }


def job_summary(job: Job, company: Company | None = None) -> Dict[str, Any]:
    return {
        "id": job.id,
        "job_code": job.job_code,
        "title": job.title,
        "location": job.location,
        "status": job.status.value,
        "urgency": job.urgency.value,
        "created_by": job.created_by,
        "company_id": job.company_id,
        "company_name": company.name if company else None,
        "skills": job.skills or [],
        "salary_range": job.salary_range,
    }


def company_summary(company: Company) -> Dict[str, Any]:
    return {
        "id": company.id,
        "company_code": company.company_code,
        "name": company.name,
        "industry": company.industry,
        "location": company.location,
    }


async def load_users(session: AsyncSession, ids: Iterable[int]) -> Dict[int, User]:
    ids = sorted(set(ids))
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


async def load_candidates(
    session: AsyncSession, ids: Iterable[int]
) -> Dict[int, tuple[Candidate, User]]:
    """Candidates with their user record, keyed by candidate id."""
    ids = sorted(set(ids))
    if not ids:
        return {}
    result = await session.execute(
        select(Candidate, User)
        .join(User, User.id == Candidate.user_id)
        .where(Candidate.id.in_(ids))
    )
    return {candidate.id: (candidate, user) for candidate, user in result.all()}


async def load_jobs(
    session: AsyncSession, ids: Iterable[int]
) -> Dict[int, tuple[Job, Company | None]]:
    """Jobs with their company, keyed by job id."""
    ids = sorted(set(ids))
    if not ids:
        return {}
    result = await session.execute(
        select(Job, Company)
        .outerjoin(Company, Company.id == Job.company_id)
        .where(Job.id.in_(ids))
    )
    return {job.id: (job, company) for job, company in result.all()}
