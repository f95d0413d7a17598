"""
Tests for the pure assignment lifecycle rules.
"""

from datetime import datetime, timezone

import pytest

from core.assignments.transitions import (
    DEFAULT_CLOSING_FEEDBACK,
    AssignmentChanges,
    AssignmentState,
    apply_changes,
    can_advance_stage,
    complete,
    reject,
    withdraw,
)
from core.errors import Conflict, InvalidTransition
from database.models.assignments import (
    AssignmentPriority,
    AssignmentStatus,
    CandidateStage,
)

AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestStageOrdering:
    """Test which pipeline stage moves are allowed."""

    def test_forward_move_allowed(self):
        assert can_advance_stage(CandidateStage.NEW, CandidateStage.REVIEWED)

    def test_skipping_stages_allowed(self):
        assert can_advance_stage(CandidateStage.NEW, CandidateStage.INTERVIEWED)

    def test_backward_move_rejected(self):
        assert not can_advance_stage(CandidateStage.SHORTLISTED, CandidateStage.REVIEWED)

    def test_same_stage_is_not_an_advance(self):
        assert not can_advance_stage(CandidateStage.REVIEWED, CandidateStage.REVIEWED)

    def test_rejected_reachable_before_hired(self):
        assert can_advance_stage(CandidateStage.OFFER_SENT, CandidateStage.REJECTED)

    @pytest.mark.parametrize("final", [CandidateStage.HIRED, CandidateStage.REJECTED])
    def test_final_stages_do_not_move(self, final):
        assert not can_advance_stage(final, CandidateStage.REVIEWED)
        assert not can_advance_stage(final, CandidateStage.OFFER_SENT)


class TestApplyChanges:
    """Test applying requested changes to an assignment state."""

    def test_stage_advance_produces_delta(self):
        result = apply_changes(
            AssignmentState(),
            AssignmentChanges(candidate_status=CandidateStage.REVIEWED),
            AT,
        )

        assert result.changed
        assert result.state.candidate_status == CandidateStage.REVIEWED
        assert result.before == {"candidate_status": CandidateStage.NEW}
        assert result.after == {"candidate_status": CandidateStage.REVIEWED}

    def test_backward_stage_raises_invalid_transition(self):
        current = AssignmentState(candidate_status=CandidateStage.HIRED)

        with pytest.raises(InvalidTransition) as exc_info:
            apply_changes(
                current, AssignmentChanges(candidate_status=CandidateStage.REVIEWED), AT
            )

        assert exc_info.value.target == "reviewed"
        assert exc_info.value.current == "hired"

    def test_unchanged_fields_are_a_no_op(self):
        current = AssignmentState(priority=AssignmentPriority.HIGH)

        result = apply_changes(
            current,
            AssignmentChanges(
                priority=AssignmentPriority.HIGH, candidate_status=CandidateStage.NEW
            ),
            AT,
        )

        assert not result.changed
        assert result.state == current

    def test_input_state_is_not_mutated(self):
        current = AssignmentState()

        apply_changes(current, AssignmentChanges(notes="called twice"), AT)

        assert current.notes is None

    def test_completion_stamps_completed_at(self):
        result = complete(AssignmentState(), AT)

        assert result.state.status == AssignmentStatus.COMPLETED
        assert result.state.completed_at == AT
        assert result.state.feedback is None

    @pytest.mark.parametrize("close", [reject, withdraw])
    def test_closing_without_feedback_uses_default(self, close):
        result = close(AssignmentState(), AT)

        assert result.state.feedback == DEFAULT_CLOSING_FEEDBACK
        assert result.state.completed_at == AT

    def test_closing_keeps_supplied_feedback(self):
        result = reject(AssignmentState(), AT, feedback="Salary mismatch")

        assert result.state.feedback == "Salary mismatch"

    def test_closing_keeps_existing_feedback(self):
        result = withdraw(AssignmentState(feedback="Candidate moved abroad"), AT)

        assert result.state.feedback == "Candidate moved abroad"
        assert "feedback" not in result.after


class TestTerminalImmutability:
    """Test that closed assignments only accept bookkeeping changes."""

    @pytest.fixture
    def closed(self):
        return AssignmentState(
            status=AssignmentStatus.COMPLETED,
            candidate_status=CandidateStage.HIRED,
            completed_at=AT,
        )

    def test_status_change_conflicts(self, closed):
        with pytest.raises(Conflict):
            apply_changes(closed, AssignmentChanges(status=AssignmentStatus.ACTIVE), AT)

    def test_stage_change_conflicts(self, closed):
        with pytest.raises(Conflict) as exc_info:
            apply_changes(
                closed, AssignmentChanges(candidate_status=CandidateStage.REJECTED), AT
            )

        assert exc_info.value.details["fields"] == ["candidate_status"]

    def test_notes_still_allowed(self, closed):
        result = apply_changes(closed, AssignmentChanges(notes="Started on Monday"), AT)

        assert result.state.notes == "Started on Monday"
        assert result.state.status == AssignmentStatus.COMPLETED

    def test_resending_terminal_status_is_a_no_op(self, closed):
        result = apply_changes(
            closed, AssignmentChanges(status=AssignmentStatus.COMPLETED), AT
        )

        assert not result.changed


class TestAuditDelta:
    """Test the audit-friendly rendering of a transition."""

    def test_enums_and_datetimes_are_serialized(self):
        result = complete(AssignmentState(), AT)

        delta = result.audit_delta()

        assert delta["before"]["status"] == "active"
        assert delta["after"]["status"] == "completed"
        assert delta["after"]["completed_at"] == AT.isoformat()

    def test_changes_from_dict_ignores_unknown_keys(self):
        changes = AssignmentChanges.from_dict({"notes": "hi", "assigned_to": 99})

        assert changes.requested() == {"notes": "hi"}
