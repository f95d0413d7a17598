"""Search response schema."""

from pydantic import Field

from api.schemas.common import (
    CamelModel,
    CandidateSummary,
    CompanySummary,
    JobSummary,
    UserSummary,
)


class SearchResponse(CamelModel):
    """Per-type results; each list is scoped and capped independently."""

    jobs: list[JobSummary] = Field(default_factory=list)
    candidates: list[CandidateSummary] = Field(default_factory=list)
    companies: list[CompanySummary] = Field(default_factory=list)
    users: list[UserSummary] = Field(default_factory=list)
