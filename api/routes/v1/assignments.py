"""
Candidate assignment endpoints.

Agents put candidates forward to HR users; HR users move the resulting
work items through the pipeline.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import (
    get_assignment_service,
    get_pagination_params,
    require_capability,
)
from api.schemas.assignments import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentStats,
    AssignmentUpdate,
    SortField,
    SortOrder,
)
from api.schemas.common import DataResponse, PaginatedResponse, PaginationParams
from api.services.assignments import AssignmentStateMachine
from core.access.actor import Actor, Capability
from database.models.assignments import (
    AssignmentPriority,
    AssignmentStatus,
    CandidateStage,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[AssignmentResponse],
    summary="Assign Candidate",
    description="Assign a candidate to an HR user directly or through one of their jobs.",
)
async def create_assignment(
    body: AssignmentCreate,
    actor: Actor = Depends(require_capability(Capability.ASSIGNMENT_CREATE)),
    service: AssignmentStateMachine = Depends(get_assignment_service),
):
    assignment = await service.create(
        actor,
        body.candidate_id,
        assigned_to=body.assigned_to,
        job_id=body.job_id,
        priority=body.priority,
        notes=body.notes,
        due_date=body.due_date,
    )
    return {"data": assignment, "message": "Candidate assigned"}


@router.get(
    "",
    response_model=PaginatedResponse[AssignmentResponse],
    summary="List Assignments",
    description="Assignments visible to the caller: owned by an HR, created by an agent, all for admins.",
)
async def list_assignments(
    status_filter: Optional[AssignmentStatus] = Query(None, alias="status"),
    priority: Optional[AssignmentPriority] = Query(None),
    candidate_status: Optional[CandidateStage] = Query(None, alias="candidateStatus"),
    candidate_id: Optional[int] = Query(None, alias="candidateId", gt=0),
    job_id: Optional[int] = Query(None, alias="jobId", gt=0),
    assigned_to: Optional[int] = Query(None, alias="assignedTo", gt=0),
    assigned_by: Optional[int] = Query(None, alias="assignedBy", gt=0),
    sort_by: SortField = Query("assigned_at", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    pagination: PaginationParams = Depends(get_pagination_params),
    actor: Actor = Depends(require_capability(Capability.ASSIGNMENT_VIEW)),
    service: AssignmentStateMachine = Depends(get_assignment_service),
):
    items, total = await service.list_assignments(
        actor,
        status=status_filter,
        priority=priority,
        candidate_status=candidate_status,
        candidate_id=candidate_id,
        job_id=job_id,
        assigned_to=assigned_to,
        assigned_by=assigned_by,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return PaginatedResponse[AssignmentResponse].create(items, total, pagination)


@router.get(
    "/mine",
    response_model=PaginatedResponse[AssignmentResponse],
    summary="My Assignments",
    description="An HR's own work items, or the assignments over an agent's candidates.",
)
async def my_assignments(
    status_filter: Optional[AssignmentStatus] = Query(
        AssignmentStatus.ACTIVE, alias="status"
    ),
    pagination: PaginationParams = Depends(get_pagination_params),
    actor: Actor = Depends(require_capability(Capability.ASSIGNMENT_VIEW_MINE)),
    service: AssignmentStateMachine = Depends(get_assignment_service),
):
    items, total = await service.mine(
        actor,
        status=status_filter,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return PaginatedResponse[AssignmentResponse].create(items, total, pagination)


@router.get(
    "/stats",
    response_model=DataResponse[AssignmentStats],
    summary="Assignment Statistics",
)
async def assignment_stats(
    actor: Actor = Depends(require_capability(Capability.ASSIGNMENT_STATS)),
    service: AssignmentStateMachine = Depends(get_assignment_service),
):
    return {"data": await service.stats(actor)}


@router.get(
    "/{assignment_id}",
    response_model=DataResponse[AssignmentResponse],
    summary="Get Assignment",
)
async def get_assignment(
    assignment_id: int = Path(..., gt=0, description="Assignment ID"),
    actor: Actor = Depends(require_capability(Capability.ASSIGNMENT_VIEW)),
    service: AssignmentStateMachine = Depends(get_assignment_service),
):
    return {"data": await service.get(actor, assignment_id)}


@router.put(
    "/{assignment_id}",
    response_model=DataResponse[AssignmentResponse],
    summary="Update Assignment",
    description="Change status, pipeline stage, priority, notes, feedback or due date.",
)
async def update_assignment(
    body: AssignmentUpdate,
    assignment_id: int = Path(..., gt=0, description="Assignment ID"),
    actor: Actor = Depends(require_capability(Capability.ASSIGNMENT_UPDATE)),
    service: AssignmentStateMachine = Depends(get_assignment_service),
):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    return {"data": await service.transition(actor, assignment_id, changes)}


@router.delete(
    "/{assignment_id}",
    summary="Delete Assignment",
    description="Delete an active assignment. Admins and the creating agent only.",
)
async def delete_assignment(
    assignment_id: int = Path(..., gt=0, description="Assignment ID"),
    actor: Actor = Depends(require_capability(Capability.ASSIGNMENT_DELETE)),
    service: AssignmentStateMachine = Depends(get_assignment_service),
):
    await service.delete(actor, assignment_id)
    return {"message": "Assignment deleted", "id": assignment_id}
