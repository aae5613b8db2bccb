"""Vacation request and approval-step state machines."""

from __future__ import annotations

from enum import Enum

from hrpay_engine.exceptions import ConflictError


class VacationStatus(str, Enum):
    """Vacation request status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StepStatus(str, Enum):
    """Approval step status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvalidTransitionError(ConflictError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(getattr(from_status, "value", from_status))
        self.to_status = str(getattr(to_status, "value", to_status))
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"from_status": self.from_status, "to_status": self.to_status})


class VacationStateMachine:
    """State machine for vacation request status transitions.

    Allowed transitions:
    - pending → approved (terminal approval step approved)
    - pending → rejected (any step rejected)
    - pending → cancelled
    - approved → completed (employee returned)
    - approved → cancelled
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        VacationStatus.PENDING: [
            VacationStatus.APPROVED,
            VacationStatus.REJECTED,
            VacationStatus.CANCELLED,
        ],
        VacationStatus.APPROVED: [VacationStatus.COMPLETED, VacationStatus.CANCELLED],
        VacationStatus.REJECTED: [],  # Terminal state
        VacationStatus.COMPLETED: [],  # Terminal state
        VacationStatus.CANCELLED: [],  # Terminal state
    }

    # Statuses that occupy the employee's calendar
    BLOCKING = {VacationStatus.PENDING, VacationStatus.APPROVED}

    # Statuses that consume leave balance
    CONSUMING = {VacationStatus.APPROVED, VacationStatus.COMPLETED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(status, [])

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


class ApprovalStepMachine:
    """Each step moves pending → approved | rejected exactly once."""

    VALID_TRANSITIONS: dict[str, list[str]] = {
        StepStatus.PENDING: [StepStatus.APPROVED, StepStatus.REJECTED],
        StepStatus.APPROVED: [],
        StepStatus.REJECTED: [],
    }

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        if to_status not in cls.VALID_TRANSITIONS.get(from_status, []):
            raise InvalidTransitionError(from_status, to_status, "approval step already decided")
