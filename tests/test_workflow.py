"""
Unit tests for the application status workflow.
"""

import pytest

from internhub.services.workflow import (
    COMPANY_STATUSES, WorkflowError, can_company_set, can_withdraw, status_message,
    timeline_entry, validate_company_transition, validate_interview, validate_withdrawal
)


class TestCompanyTransitions:
    @pytest.mark.parametrize("current", ["pending", "reviewing", "shortlisted", "interviewed", "accepted", "rejected"])
    def test_any_company_status_from_any_live_status(self, current) -> None:
        for new in COMPANY_STATUSES:
            assert can_company_set(current, new)
            validate_company_transition(current, new)

    def test_skipping_ahead_is_allowed(self) -> None:
        validate_company_transition("pending", "accepted")

    def test_withdrawn_is_frozen(self) -> None:
        with pytest.raises(WorkflowError, match="withdrawn"):
            validate_company_transition("withdrawn", "reviewing")

    def test_company_cannot_withdraw(self) -> None:
        assert not can_company_set("pending", "withdrawn")
        with pytest.raises(WorkflowError):
            validate_company_transition("pending", "withdrawn")


class TestWithdrawal:
    @pytest.mark.parametrize("current", ["pending", "reviewing", "shortlisted", "interviewed"])
    def test_open_applications_can_be_withdrawn(self, current) -> None:
        assert can_withdraw(current)
        validate_withdrawal(current)

    @pytest.mark.parametrize("current", ["accepted", "rejected", "withdrawn"])
    def test_decided_applications_cannot_be_withdrawn(self, current) -> None:
        with pytest.raises(WorkflowError):
            validate_withdrawal(current)


class TestInterviews:
    def test_interview_keeps_any_live_status(self) -> None:
        for current in ("pending", "shortlisted", "interviewed", "accepted"):
            validate_interview(current)

    @pytest.mark.parametrize("current", ["withdrawn", "rejected"])
    def test_closed_applications_cannot_be_interviewed(self, current) -> None:
        with pytest.raises(WorkflowError):
            validate_interview(current)


class TestMessages:
    def test_known_status_message(self) -> None:
        assert status_message("shortlisted", "Data Intern") == \
            "Congratulations! You have been shortlisted for Data Intern"

    def test_unknown_status_falls_back(self) -> None:
        assert status_message("archived", "Data Intern") == \
            "Your application for Data Intern has been updated to archived"

    def test_timeline_entry_shape(self) -> None:
        entry = timeline_entry("reviewing", "Looking good", 7)
        assert entry["status"] == "reviewing"
        assert entry["note"] == "Looking good"
        assert entry["updated_by"] == 7
        assert entry["created_at"].tzinfo is None
