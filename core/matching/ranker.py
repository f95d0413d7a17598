"""
MatchRanker: turns scoring oracle output into a ranked list of matches.

Pools reach the ranker already filtered by the AccessGate; the ranker does
no authorization of its own. One oracle call is made per pool.

Ordering is by score, descending. Equal scores keep the order in which
the pool was supplied; this is input-order stability, not a meaningful
tie-break, so callers that want one must order the pool accordingly.
"""

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional, Protocol

from core.errors import UpstreamError, PipelineError
from core.middleware.logging import get_logger

logger = get_logger(__name__)


class MatchDirection(str, Enum):
    CANDIDATES_FOR_JOB = "candidates_for_job"
    JOBS_FOR_CANDIDATE = "jobs_for_candidate"


class ScoringOracle(Protocol):
    """
    External scorer. Returns `{"matches": [...]}` for one subject against a
    whole pool, or raises UpstreamError.
    """

    async def score(
        self,
        subject: dict[str, Any],
        pool: list[dict[str, Any]],
        direction: MatchDirection,
    ) -> Any:
        ...


@dataclass(frozen=True)
class MatchResult:
    candidate_id: int
    job_id: int
    match_score: int
    reasons: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    concerns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_entity_id(value: Any) -> Optional[int]:
    """Accept ints and digit strings; anything else is not an id."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_score(value: Any) -> Optional[int]:
    """Round a score in [0, 100] half-up to an int; None if it is not one."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not 0 <= value <= 100:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return int(math.floor(value + 0.5))


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def validate_matches(
    raw: Any,
    direction: MatchDirection,
    subject_id: int,
    pool_ids: list[int],
) -> list[MatchResult]:
    """
    Validate oracle output against the pool and return results in pool order.

    Entries without both ids, with an out-of-range or non-numeric score,
    naming a different subject, or naming something outside the pool are
    dropped. The first valid entry per pool member wins.

    Raises:
        UpstreamError: the body is not an object or `matches` is not a list
    """
    if not isinstance(raw, dict):
        raise UpstreamError("Scoring service returned a malformed response")
    entries = raw.get("matches", [])
    if not isinstance(entries, list):
        raise UpstreamError("Scoring service returned a malformed match list")

    pool_position = {entity_id: index for index, entity_id in enumerate(pool_ids)}
    accepted: dict[int, MatchResult] = {}
    dropped = 0

    for entry in entries:
        if not isinstance(entry, dict):
            dropped += 1
            continue
        candidate_id = parse_entity_id(entry.get("candidateId"))
        job_id = parse_entity_id(entry.get("jobId"))
        score = normalize_score(entry.get("matchScore"))
        if candidate_id is None or job_id is None or score is None:
            dropped += 1
            continue

        if direction == MatchDirection.CANDIDATES_FOR_JOB:
            subject, member = job_id, candidate_id
        else:
            subject, member = candidate_id, job_id
        if subject != subject_id or member not in pool_position or member in accepted:
            dropped += 1
            continue

        accepted[member] = MatchResult(
            candidate_id=candidate_id,
            job_id=job_id,
            match_score=score,
            reasons=_string_list(entry.get("reasons")),
            strengths=_string_list(entry.get("strengths")),
            concerns=_string_list(entry.get("concerns")),
        )

    if dropped:
        logger.warning(
            "Dropped invalid match entries",
            extra={"dropped": dropped, "accepted": len(accepted)},
        )
    return sorted(accepted.values(), key=lambda r: pool_position[_member(r, direction)])


def rank(results: list[MatchResult]) -> list[MatchResult]:
    """Sort by score descending; Python's sort is stable, so ties keep input order."""
    return sorted(results, key=lambda r: r.match_score, reverse=True)


def _member(result: MatchResult, direction: MatchDirection) -> int:
    if direction == MatchDirection.CANDIDATES_FOR_JOB:
        return result.candidate_id
    return result.job_id


class MatchRanker:
    """Ranks a pool against a subject using one oracle call."""

    def __init__(self, oracle: ScoringOracle):
        self.oracle = oracle

    async def rank_candidates_for_job(
        self,
        job: dict[str, Any],
        candidates: list[dict[str, Any]],
        limit: Optional[int] = None,
    ) -> list[MatchResult]:
        """
        Rank candidate descriptors against a job descriptor.

        Descriptors carry their id under `jobId` / `candidateId`.
        """
        return await self._rank(
            job, "jobId", candidates, "candidateId",
            MatchDirection.CANDIDATES_FOR_JOB, limit,
        )

    async def rank_jobs_for_candidate(
        self,
        candidate: dict[str, Any],
        jobs: list[dict[str, Any]],
        limit: Optional[int] = None,
    ) -> list[MatchResult]:
        return await self._rank(
            candidate, "candidateId", jobs, "jobId",
            MatchDirection.JOBS_FOR_CANDIDATE, limit,
        )

    async def _rank(
        self,
        subject: dict[str, Any],
        subject_key: str,
        pool: list[dict[str, Any]],
        pool_key: str,
        direction: MatchDirection,
        limit: Optional[int],
    ) -> list[MatchResult]:
        if not pool:
            return []

        subject_id = parse_entity_id(subject.get(subject_key))
        pool_ids = [parse_entity_id(item.get(pool_key)) for item in pool]
        if subject_id is None or any(entity_id is None for entity_id in pool_ids):
            raise ValueError(f"Descriptors must carry an integer '{subject_key}'/'{pool_key}'")

        try:
            raw = await self.oracle.score(subject, pool, direction)
        except PipelineError:
            raise
        except Exception as e:
            raise UpstreamError(f"Scoring service call failed: {type(e).__name__}") from e

        ranked = rank(validate_matches(raw, direction, subject_id, pool_ids))
        logger.info(
            "Ranked match pool",
            extra={
                "direction": direction.value,
                "subject_id": subject_id,
                "pool_size": len(pool),
                "matches": len(ranked),
            },
        )
        return ranked[:limit] if limit is not None else ranked
