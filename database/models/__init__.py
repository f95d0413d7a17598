from database.models.users import User, UserRole, UserStatus
from database.models.companies import Company
from database.models.jobs import Job, JobStatus, JobUrgency
from database.models.candidates import Candidate, CandidateStatus
from database.models.assignments import (
    AgentAssignment,
    AgentAssignmentStatus,
    AssignmentPriority,
    AssignmentStatus,
    CandidateAssignment,
    CandidateStage,
    agent_assignment_candidates,
    agent_assignment_hrs,
)
from database.models.audit import AuditAction, AuditLog

__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "Company",
    "Job",
    "JobStatus",
    "JobUrgency",
    "Candidate",
    "CandidateStatus",
    "AgentAssignment",
    "AgentAssignmentStatus",
    "AssignmentPriority",
    "AssignmentStatus",
    "CandidateAssignment",
    "CandidateStage",
    "agent_assignment_candidates",
    "agent_assignment_hrs",
    "AuditAction",
    "AuditLog",
]
