"""
Global search across jobs, candidates, companies and users.

Each type is scoped independently by the caller's VisibilityScope. A type
whose scope is empty returns [] without touching the database, and one
type coming back empty never affects the others.
"""

import re
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from api.services.summaries import (
    candidate_summary,
    company_summary,
    job_summary,
    user_summary,
)
from core.access.actor import Actor, Capability
from core.access.gate import AccessGate
from core.access.scope import VisibilityScope
from core.config import settings
from core.middleware.logging import get_logger
from database.models.candidates import Candidate
from database.models.companies import Company
from database.models.jobs import Job
from database.models.users import User

logger = get_logger(__name__)

SEARCH_TYPES = ("jobs", "candidates", "companies", "users")

ID_PATTERN = re.compile(r"^([A-Za-z]+)(\d+)$")
MAX_ID_WIDTH = 8


def parse_types(raw: Optional[Iterable[str]]) -> list[str]:
    """
    Normalize requested types.

    Accepts repeated values and comma-separated lists. Unknown names are
    ignored; nothing requested means every type.
    """
    if not raw:
        return list(SEARCH_TYPES)
    wanted = set()
    for value in raw:
        for name in value.split(","):
            name = name.strip().lower()
            if name in SEARCH_TYPES:
                wanted.add(name)
    if not wanted:
        return list(SEARCH_TYPES)
    return [name for name in SEARCH_TYPES if name in wanted]


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.search_default_limit
    return max(1, min(limit, settings.search_max_limit))


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def id_variants(query: str) -> list[str]:
    """
    Human-readable id spellings for `query`, e.g. JOB1 -> JOB1, JOB01, ... JOB00000001.

    Empty when the query is not a letters-then-digits id.
    """
    match = ID_PATTERN.match(query.strip())
    if not match:
        return []
    prefix = match.group(1).upper()
    digits = match.group(2)
    number = str(int(digits))
    variants = {prefix + digits}
    for width in range(len(number), MAX_ID_WIDTH + 1):
        variants.add(prefix + number.zfill(width))
    return sorted(variants)


def id_clause(column, query: str) -> Optional[ColumnElement]:
    variants = id_variants(query)
    if not variants:
        return None
    return func.upper(column).in_(variants)


def text_match(query: str, *columns, id_column=None) -> ColumnElement:
    """Case-insensitive substring match on any column, plus the id path."""
    pattern = f"%{escape_like(query.strip())}%"
    conditions = [column.ilike(pattern, escape="\\") for column in columns]
    if id_column is not None:
        exact = id_clause(id_column, query)
        if exact is not None:
            conditions.append(exact)
    return or_(*conditions)


class SearchRouter:
    """Per-type scoped search."""

    def __init__(self, session: AsyncSession, gate: Optional[AccessGate] = None):
        self.session = session
        self.gate = gate or AccessGate(session)

    async def search(
        self,
        actor: Actor,
        query: str,
        types: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, list[Dict[str, Any]]]:
        """
        Search the requested types.

        Every type key is present in the result; types that were not
        requested, are out of scope, or match nothing are empty lists.
        """
        actor.require(Capability.SEARCH_RUN)
        results: Dict[str, list[Dict[str, Any]]] = {name: [] for name in SEARCH_TYPES}
        term = (query or "").strip()
        if len(term) < settings.search_min_query_length:
            logger.debug("Search query below minimum length", extra={"user_id": actor.id})
            return results

        wanted = parse_types(types)
        limit = clamp_limit(limit)
        scope = await self.gate.scope_for(actor)

        # One AsyncSession cannot run statements concurrently
        searchers = {
            "jobs": self._jobs,
            "candidates": self._candidates,
            "companies": self._companies,
            "users": self._users,
        }
        skipped = []
        for name in wanted:
            found = await searchers[name](scope, term, limit)
            if found is None:
                skipped.append(name)
                continue
            results[name] = found

        logger.info(
            "Search served",
            extra={
                "user_id": actor.id,
                "types": wanted,
                "skipped": skipped,
                "counts": {name: len(results[name]) for name in wanted},
            },
        )
        return results

    async def _jobs(
        self, scope: VisibilityScope, term: str, limit: int
    ) -> Optional[list[Dict[str, Any]]]:
        if scope.jobs.is_empty:
            return None
        result = await self.session.execute(
            select(Job, Company)
            .outerjoin(Company, Company.id == Job.company_id)
            .where(
                *scope.jobs.clauses(),
                text_match(
                    term,
                    Job.title,
                    Job.description,
                    Job.location,
                    Job.job_code,
                    cast(Job.skills, String),
                    id_column=Job.job_code,
                ),
            )
            .order_by(Job.created_at.desc(), Job.id.desc())
            .limit(limit)
        )
        return [job_summary(job, company) for job, company in result.all()]

    async def _candidates(
        self, scope: VisibilityScope, term: str, limit: int
    ) -> Optional[list[Dict[str, Any]]]:
        if scope.candidates.is_empty:
            return None
        stmt = (
            select(Candidate, User)
            .join(User, User.id == Candidate.user_id)
            .where(
                text_match(
                    term,
                    User.first_name,
                    User.last_name,
                    User.first_name + " " + User.last_name,
                    User.email,
                    User.custom_id,
                    Candidate.summary,
                    Candidate.location,
                    cast(Candidate.skills, String),
                    id_column=User.custom_id,
                )
            )
            .order_by(Candidate.id)
            .limit(limit)
        )
        clause = scope.candidates.clause(Candidate.id)
        if clause is not None:
            stmt = stmt.where(clause)
        result = await self.session.execute(stmt)
        return [candidate_summary(candidate, user) for candidate, user in result.all()]

    async def _companies(
        self, scope: VisibilityScope, term: str, limit: int
    ) -> Optional[list[Dict[str, Any]]]:
        if scope.companies_empty and not scope.companies_unrestricted:
            return None
        stmt = (
            select(Company)
            .where(
                text_match(
                    term,
                    Company.name,
                    Company.industry,
                    Company.description,
                    Company.location,
                    Company.company_code,
                    id_column=Company.company_code,
                )
            )
            .order_by(Company.name, Company.id)
            .limit(limit)
        )
        clause = scope.company_clause()
        if clause is not None:
            stmt = stmt.where(clause)
        result = await self.session.execute(stmt)
        return [company_summary(company) for company in result.scalars().all()]

    async def _users(
        self, scope: VisibilityScope, term: str, limit: int
    ) -> Optional[list[Dict[str, Any]]]:
        if scope.users.is_empty:
            return None
        stmt = (
            select(User)
            .where(
                text_match(
                    term,
                    User.first_name,
                    User.last_name,
                    User.first_name + " " + User.last_name,
                    User.email,
                    User.custom_id,
                    id_column=User.custom_id,
                )
            )
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
        )
        clause = scope.users.clause(User.id)
        if clause is not None:
            stmt = stmt.where(clause)
        result = await self.session.execute(stmt)
        return [user_summary(user) for user in result.scalars().all()]
