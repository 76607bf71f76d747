"""
Application Status Workflow

Status enum:
    pending → reviewing → shortlisted → interviewed → accepted | rejected
    withdrawn (student-driven)

The enum is a flat lookup table: a company may set any company status
in any order. The only frozen state is `withdrawn`. A student may withdraw
until the application reaches a decision.
"""

from typing import Optional

from internhub.utils.dates import utcnow


class WorkflowError(Exception):
    """A status change that the workflow does not allow."""


COMPANY_STATUSES = frozenset(
    ["pending", "reviewing", "shortlisted", "interviewed", "accepted", "rejected"]
)

# Statuses from which a student can no longer withdraw
FINAL_STATUSES = frozenset(["accepted", "rejected", "withdrawn"])

# Applicant-facing message per status
STATUS_MESSAGES = {
    "pending": "Your application for {title} is pending review",
    "reviewing": "Your application for {title} is being reviewed",
    "shortlisted": "Congratulations! You have been shortlisted for {title}",
    "interviewed": "Your interview for {title} has been recorded",
    "accepted": "Congratulations! Your application for {title} has been accepted",
    "rejected": "Your application for {title} was not selected this time",
}


def can_company_set(current: str, new: str) -> bool:
    return new in COMPANY_STATUSES and current != "withdrawn"


def can_withdraw(current: str) -> bool:
    return current not in FINAL_STATUSES


def validate_company_transition(current: str, new: str) -> None:
    """Raise WorkflowError unless a company may move `current` to `new`."""
    if new not in COMPANY_STATUSES:
        raise WorkflowError(f"Companies cannot set status '{new}'")
    if not can_company_set(current, new):
        raise WorkflowError("Cannot update a withdrawn application")


def validate_withdrawal(current: str) -> None:
    """Raise WorkflowError unless the applicant may withdraw."""
    if not can_withdraw(current):
        raise WorkflowError(f"Cannot withdraw an application that is {current}")


def status_message(status: str, title: str) -> str:
    template = STATUS_MESSAGES.get(status, "Your application for {title} has been updated to " + status)
    return template.format(title=title)


def timeline_entry(status: str, note: Optional[str] = None, updated_by: Optional[int] = None) -> dict:
    """Build the parameters for one application_timeline row."""
    return {
        "status": status,
        "note": note,
        "updated_by": updated_by,
        "created_at": utcnow(),
    }


def validate_interview(current: str) -> None:
    """Raise WorkflowError unless an interview can be scheduled."""
    if current in ("withdrawn", "rejected"):
        raise WorkflowError(f"Cannot schedule an interview for a {current} application")
