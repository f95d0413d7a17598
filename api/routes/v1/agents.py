"""Agent workspace endpoints."""

from fastapi import APIRouter, Depends

from api.dependencies import get_agent_assignment_service, require_capability
from api.schemas.agent_assignments import AgentDashboard
from api.schemas.common import DataResponse
from api.services.agent_assignments import AgentAssignmentService
from core.access.actor import Actor, Capability

router = APIRouter(prefix="/agents", tags=["agents"])


@router.get(
    "/dashboard",
    response_model=DataResponse[AgentDashboard],
    summary="Agent Dashboard",
    description="Scope sizes, open jobs of the agent's HRs and its assignment counts.",
)
async def agent_dashboard(
    actor: Actor = Depends(require_capability(Capability.AGENT_DASHBOARD)),
    service: AgentAssignmentService = Depends(get_agent_assignment_service),
):
    return {"data": await service.dashboard(actor)}
