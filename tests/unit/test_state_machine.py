"""
Unit tests for the lifecycle state machines.
"""

import pytest

from educrm.models.application import ApplicationStatus
from educrm.models.outreach import OutreachStatus
from educrm.utils.errors import InvalidTransitionError
from educrm.utils.state_machine import APPLICATION_LIFECYCLE, OUTREACH_LIFECYCLE


class TestApplicationLifecycle:
    """Test cases for APPLICATION_LIFECYCLE."""

    @pytest.mark.parametrize(
        "current,target",
        [
            ("draft", "documents_pending"),
            ("draft", "submitted"),
            ("submitted", "under_review"),
            ("under_review", "conditional_offer"),
            ("conditional_offer", "visa_processing"),
            ("unconditional_offer", "enrolled"),
            ("visa_processing", "enrolled"),
            ("under_review", "rejected"),
            ("draft", "withdrawn"),
        ],
    )
    def test_legal_moves(self, current, target):
        assert APPLICATION_LIFECYCLE.can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("enrolled", "draft"),
            ("rejected", "under_review"),
            ("draft", "enrolled"),
            ("submitted", "draft"),
            ("withdrawn", "submitted"),
        ],
    )
    def test_illegal_moves(self, current, target):
        assert not APPLICATION_LIFECYCLE.can_transition(current, target)

    def test_assert_transition_returns_target(self):
        assert APPLICATION_LIFECYCLE.assert_transition("submitted", "under_review") == (
            ApplicationStatus.UNDER_REVIEW
        )

    def test_assert_transition_raises_with_details(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            APPLICATION_LIFECYCLE.assert_transition("enrolled", "draft")

        error = exc_info.value
        assert error.status_code == 409
        assert error.current == "enrolled"
        assert error.target == "draft"

    def test_legacy_status_name_is_accepted(self):
        assert APPLICATION_LIFECYCLE.can_transition("draft", "submitted_to_university")
        assert APPLICATION_LIFECYCLE.can_transition("submitted_to_university", "under_review")
        assert APPLICATION_LIFECYCLE.assert_transition("draft", "submitted_to_university") == (
            ApplicationStatus.SUBMITTED
        )

    def test_unknown_status_is_not_allowed(self):
        assert not APPLICATION_LIFECYCLE.can_transition("draft", "accepted")
        assert not APPLICATION_LIFECYCLE.can_transition("mystery", "submitted")

    @pytest.mark.parametrize("state", ["enrolled", "rejected", "withdrawn"])
    def test_terminal_states(self, state):
        assert APPLICATION_LIFECYCLE.is_terminal(state)

    def test_draft_is_not_terminal(self):
        assert not APPLICATION_LIFECYCLE.is_terminal("draft")


class TestOutreachLifecycle:
    """Test cases for OUTREACH_LIFECYCLE."""

    def test_happy_path(self):
        assert OUTREACH_LIFECYCLE.can_transition("draft", "sent")
        assert OUTREACH_LIFECYCLE.can_transition("sent", "responded")
        assert OUTREACH_LIFECYCLE.can_transition("responded", "closed")

    def test_follow_up_branch(self):
        assert OUTREACH_LIFECYCLE.can_transition("sent", "follow_up_needed")
        assert OUTREACH_LIFECYCLE.can_transition("follow_up_needed", "responded")

    def test_draft_can_be_closed(self):
        assert OUTREACH_LIFECYCLE.can_transition(OutreachStatus.DRAFT, OutreachStatus.CLOSED)

    def test_closed_is_terminal(self):
        assert OUTREACH_LIFECYCLE.is_terminal("closed")
        assert not OUTREACH_LIFECYCLE.can_transition("closed", "sent")

    def test_cannot_respond_before_sending(self):
        with pytest.raises(InvalidTransitionError):
            OUTREACH_LIFECYCLE.assert_transition("draft", "responded")
