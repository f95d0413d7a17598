"""FastAPI dependencies for dependency injection."""

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from agents import registry
from api.schemas.common import PaginationParams
from api.services.agent_assignments import AgentAssignmentService
from api.services.assignments import AssignmentStateMachine
from api.services.matching import MatchingService
from api.services.search import SearchRouter
from core.access.actor import Actor, Capability, resolve_actor
from core.audit import AuditSink, DatabaseAuditSink
from core.matching.ranker import MatchRanker, ScoringOracle
from core.security import AuthenticationError, TokenExpiredError, decode_access_token
from database.engine import AsyncSessionLocal, get_db
from database.models.users import User

__all__ = [
    "get_db",
    "get_current_actor",
    "require_capability",
    "get_pagination_params",
    "get_audit_sink",
    "get_scoring_oracle",
    "get_assignment_service",
    "get_agent_assignment_service",
    "get_matching_service",
    "get_search_router",
]


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """
    Resolve the bearer token into an Actor, once per request.

    Raises:
        HTTPException 401: missing, invalid or expired token, unknown user
        HTTPException 403: the user account is not active
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenExpiredError:
        raise _unauthorized("Token has expired")
    except AuthenticationError:
        raise _unauthorized("Invalid authentication token")

    user = await db.get(User, int(payload["sub"]))
    if user is None:
        raise _unauthorized("Invalid authentication token")
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account",
        )

    actor = resolve_actor(user)
    request.state.actor = actor
    return actor


def require_capability(*capabilities: Capability) -> Callable:
    """
    Dependency factory: the current actor must hold every capability.

    Usage:
        actor: Actor = Depends(require_capability(Capability.MATCH_RUN))
    """

    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        for capability in capabilities:
            actor.require(capability)
        return actor

    return dependency


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)


# ==================== Services ===================== #


def get_audit_sink() -> AuditSink:
    return DatabaseAuditSink(AsyncSessionLocal)


def get_scoring_oracle() -> ScoringOracle:
    return registry.get("matching")


def get_assignment_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
) -> AssignmentStateMachine:
    return AssignmentStateMachine(db, audit)


def get_agent_assignment_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
) -> AgentAssignmentService:
    return AgentAssignmentService(db, audit)


def get_matching_service(
    db: AsyncSession = Depends(get_db),
    oracle: ScoringOracle = Depends(get_scoring_oracle),
) -> MatchingService:
    return MatchingService(db, MatchRanker(oracle))


def get_search_router(db: AsyncSession = Depends(get_db)) -> SearchRouter:
    return SearchRouter(db)
