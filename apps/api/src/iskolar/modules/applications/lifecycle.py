"""
Application Lifecycle

The status state machine as a single lookup table: (current status, action)
maps to the next status, and anything absent from the table is illegal.

Staff actions that miss the table are refused with InvalidTransitionError.
System actions are side effects of other operations (a document approval,
a re-upload) and are silently skipped when their source status doesn't match.
"""

import enum
from typing import Any

from iskolar.core.exceptions import ConflictError

from .models import ApplicationStatus, ValidationAction


class LifecycleAction(str, enum.Enum):
    # Staff decisions
    APPROVE = "approve"
    REJECT = "reject"
    RETURN = "return"
    REQUEST_INFO = "request_info"
    RESUME_REVIEW = "resume_review"
    # Bulk document review
    BULK_APPROVE = "bulk_approve"
    BULK_REJECT = "bulk_reject"
    # System side effects
    AUTO_APPROVE = "auto_approve"
    AUTO_RETURN_TO_REVIEW = "auto_return_to_review"
    REOPEN_REVIEW = "reopen_review"


SYSTEM_ACTIONS: frozenset[LifecycleAction] = frozenset(
    {
        LifecycleAction.AUTO_APPROVE,
        LifecycleAction.AUTO_RETURN_TO_REVIEW,
        LifecycleAction.REOPEN_REVIEW,
    }
)

TERMINAL_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN}
)

_S = ApplicationStatus
_A = LifecycleAction

_NOT_WITHDRAWN = [status for status in ApplicationStatus if status != _S.WITHDRAWN]

TRANSITIONS: dict[tuple[ApplicationStatus, LifecycleAction], ApplicationStatus] = {
    (_S.UNDER_REVIEW, _A.APPROVE): _S.APPROVED,
    (_S.UNDER_REVIEW, _A.REJECT): _S.REJECTED,
    (_S.UNDER_REVIEW, _A.RETURN): _S.RETURNED,
    (_S.UNDER_REVIEW, _A.REQUEST_INFO): _S.UNDER_REVIEW,
    (_S.SUBMITTED, _A.RESUME_REVIEW): _S.UNDER_REVIEW,
    (_S.RETURNED, _A.RESUME_REVIEW): _S.UNDER_REVIEW,
    (_S.SUBMITTED, _A.AUTO_APPROVE): _S.APPROVED,
    (_S.UNDER_REVIEW, _A.AUTO_APPROVE): _S.APPROVED,
    (_S.SUBMITTED, _A.AUTO_RETURN_TO_REVIEW): _S.UNDER_REVIEW,
    (_S.APPROVED, _A.REOPEN_REVIEW): _S.UNDER_REVIEW,
    (_S.REJECTED, _A.REOPEN_REVIEW): _S.UNDER_REVIEW,
    **{(status, _A.BULK_APPROVE): _S.APPROVED for status in _NOT_WITHDRAWN},
    **{(status, _A.BULK_REJECT): _S.UNDER_REVIEW for status in _NOT_WITHDRAWN},
}

# Decision endpoint actions mapped onto the table
DECISION_ACTIONS: dict[ValidationAction, LifecycleAction] = {
    ValidationAction.APPROVED: LifecycleAction.APPROVE,
    ValidationAction.REJECTED: LifecycleAction.REJECT,
    ValidationAction.RETURNED: LifecycleAction.RETURN,
    ValidationAction.REQUESTED_INFO: LifecycleAction.REQUEST_INFO,
}

REQUIRED_CHECKLIST_FIELDS = ("gpa_met", "income_met", "documents_complete", "enrollment_verified")


class InvalidTransitionError(ConflictError):
    """Raised when a staff action is not allowed from the current status."""

    def __init__(self, current_status: ApplicationStatus, action: LifecycleAction):
        self.current_status = current_status
        self.action = action
        super().__init__(
            message=f"Cannot {action.value.replace('_', ' ')} an application that is "
            f"'{current_status.value}'",
            error_code="INVALID_TRANSITION",
            extra={"current_status": current_status.value, "action": action.value},
        )


def next_status(current: ApplicationStatus, action: LifecycleAction) -> ApplicationStatus | None:
    """Look up the target status. None means the transition is illegal."""
    return TRANSITIONS.get((current, action))


def require_transition(current: ApplicationStatus, action: LifecycleAction) -> ApplicationStatus:
    """Like next_status(), but raise InvalidTransitionError on a miss."""
    target = next_status(current, action)
    if target is None:
        raise InvalidTransitionError(current, action)
    return target


def source_statuses(action: LifecycleAction) -> list[ApplicationStatus]:
    """Every status the action may legally start from, in enum order."""
    return [status for status in ApplicationStatus if (status, action) in TRANSITIONS]


def is_system_action(action: LifecycleAction) -> bool:
    return action in SYSTEM_ACTIONS


def missing_checklist_items(checklist: dict[str, Any] | None) -> list[str]:
    """
    Checklist fields that are absent or not attested.

    Every field must be literally True; truthy strings don't count.
    """
    if not checklist:
        return list(REQUIRED_CHECKLIST_FIELDS)
    return [name for name in REQUIRED_CHECKLIST_FIELDS if checklist.get(name) is not True]
