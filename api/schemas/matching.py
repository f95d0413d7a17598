"""Matching request and response schemas."""

from typing import Optional

from pydantic import Field

from api.schemas.common import CamelModel, CandidateSummary, JobSummary


class MatchJobRequest(CamelModel):
    job_id: int = Field(gt=0, description="Job to rank candidates against")
    limit: Optional[int] = Field(None, ge=1, description="Maximum matches to return")


class MatchCandidateRequest(CamelModel):
    candidate_id: int = Field(gt=0, description="Candidate to rank jobs against")
    limit: Optional[int] = Field(None, ge=1, description="Maximum matches to return")


class MatchEntry(CamelModel):
    """
    One ranked pair.

    Equal scores keep the order of the pool sent to the scorer (ascending
    id); that order carries no meaning beyond stability.
    """

    candidate_id: int
    job_id: int
    match_score: int = Field(ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    candidate: Optional[CandidateSummary] = None
    job: Optional[JobSummary] = None


class MatchResponse(CamelModel):
    matches: list[MatchEntry]
    total: int
    pool_size: int
    message: Optional[str] = None
