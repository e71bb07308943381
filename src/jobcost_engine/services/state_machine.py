"""Time entry payment status state machine with transition validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from jobcost_engine.models import PaymentStatus

if TYPE_CHECKING:
    from jobcost_engine.models import TimeEntry


class TimeEntryStateMachine:
    """State machine for time entry payment status transitions.

    Allowed transitions:
    - pending → approved
    - pending → cancelled
    - approved → paid (settlement only)
    - approved → cancelled
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PaymentStatus.PENDING: [PaymentStatus.APPROVED, PaymentStatus.CANCELLED],
        PaymentStatus.APPROVED: [PaymentStatus.PAID, PaymentStatus.CANCELLED],
        PaymentStatus.PAID: [],  # Terminal state
        PaymentStatus.CANCELLED: [],  # Terminal state
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def is_locked(cls, status: str) -> bool:
        """Check if an entry in this status is frozen (paid)."""
        return status == PaymentStatus.PAID

    @classmethod
    def sources_of(cls, to_status: str) -> list[str]:
        """Statuses from which ``to_status`` is reachable in one step."""
        return [
            PaymentStatus(s).value
            for s, targets in cls.VALID_TRANSITIONS.items()
            if to_status in targets
        ]

    @classmethod
    def validate_entry_for_transition(cls, entry: TimeEntry, to_status: str) -> list[str]:
        """Validate a time entry for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = entry.payment_status

        if not cls.can_transition(from_status, to_status):
            errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        if to_status == PaymentStatus.PAID and entry.payment_id is None:
            errors.append("Entries are marked paid only by settlement")

        return errors
