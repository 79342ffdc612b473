"""Leave request state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from hrms_engine.errors import ValidationError


class LeaveRequestStatus(str, Enum):
    """Leave request status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def _value(status: str) -> str:
    return status.value if isinstance(status, Enum) else str(status)


class InvalidTransitionError(ValidationError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class LeaveRequestStateMachine:
    """State machine for leave request status transitions.

    Allowed transitions:
    - pending → approved
    - pending → rejected

    Both approved and rejected are terminal; a request is never reopened.
    """

    # Keyed by plain values so lookups work for both str and enum members
    VALID_TRANSITIONS: dict[str, list[str]] = {
        LeaveRequestStatus.PENDING.value: [
            LeaveRequestStatus.APPROVED.value,
            LeaveRequestStatus.REJECTED.value,
        ],
        LeaveRequestStatus.APPROVED.value: [],  # Terminal state
        LeaveRequestStatus.REJECTED.value: [],  # Terminal state
    }

    # Decisions that write attendance and debit the balance
    APPLIES_LEAVE = {LeaveRequestStatus.APPROVED.value}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(_value(from_status), [])
        return _value(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if no further transition is permitted from this status."""
        value = _value(status)
        return value in cls.VALID_TRANSITIONS and not cls.VALID_TRANSITIONS[value]

    @classmethod
    def applies_leave(cls, status: str) -> bool:
        return _value(status) in cls.APPLIES_LEAVE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return list(cls.VALID_TRANSITIONS.get(_value(current_status), []))

    @classmethod
    def parse_decision(cls, decision: str) -> LeaveRequestStatus:
        """Normalise a manager decision to a terminal status.

        Raises ValidationError for anything other than approved/rejected.
        """
        value = str(decision or "").strip().lower()
        try:
            status = LeaveRequestStatus(value)
        except ValueError:
            raise ValidationError("Decision must be 'approved' or 'rejected'") from None
        if not cls.can_transition(LeaveRequestStatus.PENDING, status):
            raise ValidationError("Decision must be 'approved' or 'rejected'")
        return status
