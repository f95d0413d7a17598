"""
Pure lifecycle rules for candidate assignments.

Functions here take the current state of an assignment and the requested
changes, and return the next state plus the before/after delta for the
audit trail. Nothing here touches the database.

Lifecycle:   active -> completed | rejected | withdrawn  (terminal)
Stage track: new -> reviewed -> shortlisted -> interview_scheduled
             -> interviewed -> offer_sent -> hired
             any stage before hired -> rejected
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Optional

from core.errors import Conflict, InvalidTransition
from database.models.assignments import (
    AssignmentPriority,
    AssignmentStatus,
    CandidateAssignment,
    CandidateStage,
)

TERMINAL_STATUSES = frozenset(
    {AssignmentStatus.COMPLETED, AssignmentStatus.REJECTED, AssignmentStatus.WITHDRAWN}
)

STAGE_ORDER: tuple[CandidateStage, ...] = (
    CandidateStage.NEW,
    CandidateStage.REVIEWED,
    CandidateStage.SHORTLISTED,
    CandidateStage.INTERVIEW_SCHEDULED,
    CandidateStage.INTERVIEWED,
    CandidateStage.OFFER_SENT,
    CandidateStage.HIRED,
)
FINAL_STAGES = frozenset({CandidateStage.HIRED, CandidateStage.REJECTED})

DEFAULT_CLOSING_FEEDBACK = "No reason provided"


def is_terminal(status: AssignmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_advance_stage(current: CandidateStage, target: CandidateStage) -> bool:
    """True when `target` lies strictly forward of `current`."""
    if current in FINAL_STAGES:
        return False
    if target == CandidateStage.REJECTED:
        return True
    return STAGE_ORDER.index(target) > STAGE_ORDER.index(current)


@dataclass(frozen=True)
class AssignmentState:
    """The mutable fields of a candidate assignment."""

    status: AssignmentStatus = AssignmentStatus.ACTIVE
    candidate_status: CandidateStage = CandidateStage.NEW
    priority: AssignmentPriority = AssignmentPriority.MEDIUM
    notes: Optional[str] = None
    feedback: Optional[str] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def of(cls, record: CandidateAssignment) -> "AssignmentState":
        return cls(**{f.name: getattr(record, f.name) for f in fields(cls)})

    def write_to(self, record: CandidateAssignment) -> None:
        for f in fields(self):
            setattr(record, f.name, getattr(self, f.name))

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)


@dataclass(frozen=True)
class AssignmentChanges:
    """Requested changes; None means "leave as is"."""

    status: Optional[AssignmentStatus] = None
    candidate_status: Optional[CandidateStage] = None
    priority: Optional[AssignmentPriority] = None
    notes: Optional[str] = None
    feedback: Optional[str] = None
    due_date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssignmentChanges":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def requested(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class TransitionResult:
    state: AssignmentState
    before: dict[str, Any] = field(default_factory=dict)
    after: dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.after)

    def audit_delta(self) -> dict[str, Any]:
        return {"before": _jsonable(self.before), "after": _jsonable(self.after)}


def apply_changes(
    current: AssignmentState, changes: AssignmentChanges, at: datetime
) -> TransitionResult:
    """
    Validate and apply requested changes.

    Fields equal to their current value are ignored, so re-sending an
    unchanged record is a no-op rather than an error.

    Raises:
        Conflict: status or stage change on a closed assignment
        InvalidTransition: stage target is not forward of the current stage
    """
    updates = {
        name: value
        for name, value in changes.requested().items()
        if getattr(current, name) != value
    }

    lifecycle = {"status", "candidate_status"} & updates.keys()
    if lifecycle and current.is_terminal:
        raise Conflict(
            f"Assignment is already {current.status.value}; "
            f"{' and '.join(sorted(lifecycle))} can no longer change",
            details={"status": current.status.value, "fields": sorted(lifecycle)},
        )

    target_stage = updates.get("candidate_status")
    if target_stage is not None and not can_advance_stage(
        current.candidate_status, target_stage
    ):
        raise InvalidTransition(current.candidate_status.value, target_stage.value)

    target_status = updates.get("status")
    if target_status is not None and is_terminal(target_status):
        updates["completed_at"] = at
        if (
            target_status != AssignmentStatus.COMPLETED
            and not updates.get("feedback")
            and not current.feedback
        ):
            updates["feedback"] = DEFAULT_CLOSING_FEEDBACK

    before = {name: getattr(current, name) for name in updates}
    return TransitionResult(state=replace(current, **updates), before=before, after=updates)


def complete(
    current: AssignmentState, at: datetime, feedback: Optional[str] = None
) -> TransitionResult:
    return apply_changes(
        current,
        AssignmentChanges(status=AssignmentStatus.COMPLETED, feedback=feedback),
        at,
    )


def reject(
    current: AssignmentState, at: datetime, feedback: Optional[str] = None
) -> TransitionResult:
    return apply_changes(
        current,
        AssignmentChanges(status=AssignmentStatus.REJECTED, feedback=feedback),
        at,
    )


def withdraw(
    current: AssignmentState, at: datetime, feedback: Optional[str] = None
) -> TransitionResult:
    return apply_changes(
        current,
        AssignmentChanges(status=AssignmentStatus.WITHDRAWN, feedback=feedback),
        at,
    )


def _jsonable(values: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for name, value in values.items():
        if hasattr(value, "value"):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        out[name] = value
    return out
