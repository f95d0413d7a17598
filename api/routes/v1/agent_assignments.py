"""
Agent scoping endpoints.

Admins decide which HRs and candidates each agent works with; agents read
their own record.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from api.dependencies import (
    get_agent_assignment_service,
    get_pagination_params,
    require_capability,
)
from api.schemas.agent_assignments import AgentAssignmentResponse, AgentAssignmentUpsert
from api.schemas.common import DataResponse, PaginatedResponse, PaginationParams
from api.services.agent_assignments import AgentAssignmentService
from core.access.actor import Actor, Capability
from database.models.assignments import AgentAssignmentStatus

router = APIRouter(prefix="/agent-assignments", tags=["agent-assignments"])


@router.post(
    "",
    response_model=DataResponse[AgentAssignmentResponse],
    summary="Assign Agent Scope",
    description="Set the HRs and candidates of an agent. Moves them away from any other agent.",
)
async def upsert_agent_assignment(
    body: AgentAssignmentUpsert,
    actor: Actor = Depends(require_capability(Capability.AGENT_ASSIGNMENT_MANAGE)),
    service: AgentAssignmentService = Depends(get_agent_assignment_service),
):
    record = await service.upsert(
        actor,
        body.agent_id,
        hr_ids=body.hr_ids,
        candidate_ids=body.candidate_ids,
        notes=body.notes,
    )
    return {"data": record, "message": "Agent assignment saved"}


@router.get(
    "",
    response_model=PaginatedResponse[AgentAssignmentResponse],
    summary="List Agent Assignments",
)
async def list_agent_assignments(
    status_filter: Optional[AgentAssignmentStatus] = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination_params),
    actor: Actor = Depends(require_capability(Capability.AGENT_ASSIGNMENT_MANAGE)),
    service: AgentAssignmentService = Depends(get_agent_assignment_service),
):
    items, total = await service.list_records(
        actor,
        status=status_filter,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return PaginatedResponse[AgentAssignmentResponse].create(items, total, pagination)


@router.get(
    "/mine",
    response_model=DataResponse[AgentAssignmentResponse],
    summary="My Agent Assignment",
)
async def my_agent_assignment(
    actor: Actor = Depends(require_capability(Capability.AGENT_ASSIGNMENT_VIEW_OWN)),
    service: AgentAssignmentService = Depends(get_agent_assignment_service),
):
    return {"data": await service.mine(actor)}


@router.get(
    "/{agent_id}",
    response_model=DataResponse[AgentAssignmentResponse],
    summary="Get Agent Assignment",
)
async def get_agent_assignment(
    agent_id: int = Path(..., gt=0, description="Agent user ID"),
    actor: Actor = Depends(require_capability(Capability.AGENT_ASSIGNMENT_MANAGE)),
    service: AgentAssignmentService = Depends(get_agent_assignment_service),
):
    return {"data": await service.for_agent(actor, agent_id)}


@router.delete(
    "/{agent_id}",
    response_model=DataResponse[AgentAssignmentResponse],
    summary="Deactivate Agent Assignment",
    description="Deactivate an agent's record. The agent then sees no HRs or candidates.",
)
async def deactivate_agent_assignment(
    agent_id: int = Path(..., gt=0, description="Agent user ID"),
    actor: Actor = Depends(require_capability(Capability.AGENT_ASSIGNMENT_MANAGE)),
    service: AgentAssignmentService = Depends(get_agent_assignment_service),
):
    record = await service.deactivate(actor, agent_id)
    return {"data": record, "message": "Agent assignment deactivated"}
