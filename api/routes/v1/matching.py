"""
Matching endpoints.

Ranks candidates against a job or jobs against a candidate with the
scoring model. Both subject and pool are limited to what the caller can see.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_matching_service, require_capability
from api.schemas.matching import MatchCandidateRequest, MatchJobRequest, MatchResponse
from api.services.matching import MatchingService
from core.access.actor import Actor, Capability

router = APIRouter(prefix="/match", tags=["matching"])


@router.post(
    "/job",
    response_model=MatchResponse,
    summary="Match Candidates To Job",
    description="Rank visible candidates for a job. Ties keep ascending candidate id order.",
)
async def match_job(
    body: MatchJobRequest,
    actor: Actor = Depends(require_capability(Capability.MATCH_RUN)),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.match_job(actor, body.job_id, body.limit)


@router.post(
    "/candidate",
    response_model=MatchResponse,
    summary="Match Jobs To Candidate",
    description="Rank visible open jobs for a candidate. Ties keep ascending job id order.",
)
async def match_candidate(
    body: MatchCandidateRequest,
    actor: Actor = Depends(require_capability(Capability.MATCH_RUN)),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.match_candidate(actor, body.candidate_id, body.limit)
