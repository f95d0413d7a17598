"""
API Services Layer.

Database orchestration for API endpoints. Domain rules live in core/;
services load records, apply those rules and shape responses.
"""

from api.services.assignments import AssignmentStateMachine, serialize_assignment
from api.services.agent_assignments import AgentAssignmentService
from api.services.matching import MatchingService
from api.services.search import SearchRouter, parse_types

__all__ = [
    "AssignmentStateMachine",
    "serialize_assignment",
    "AgentAssignmentService",
    "MatchingService",
    "SearchRouter",
    "parse_types",
]
