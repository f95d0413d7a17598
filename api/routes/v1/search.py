"""
Global search endpoint.

Searches jobs, candidates, companies and users, each within the caller's
visibility.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_search_router, require_capability
from api.schemas.search import SearchResponse
from api.services.search import SearchRouter
from core.access.actor import Actor, Capability

router = APIRouter(prefix="/search", tags=["search"])


@router.get(
    "",
    response_model=SearchResponse,
    summary="Global Search",
    description=(
        "Free-text search with id lookup (JOB1 finds JOB0001). Queries shorter "
        "than two characters return empty results."
    ),
)
async def global_search(
    q: str = Query("", max_length=200, description="Search text"),
    types: Optional[list[str]] = Query(
        None, description="jobs, candidates, companies, users; repeated or comma-separated"
    ),
    limit: Optional[int] = Query(None, ge=1, description="Maximum results per type"),
    actor: Actor = Depends(require_capability(Capability.SEARCH_RUN)),
    search_router: SearchRouter = Depends(get_search_router),
):
    return await search_router.search(actor, q, types=types, limit=limit)
