"""Typed exception hierarchy for the job cost engine.

Every exception carries a machine-readable ``code`` so the API layer can map
it to a response without parsing messages.

    JobCostError
    |
    +-- NotFoundError
    +-- InvalidStateError
    |   +-- EntryLockedError
    |   +-- NoPayableEntriesError
    |   +-- InvalidTransitionError
    +-- ValidationError
    +-- TransactionConflictError
    +-- RateNotConfiguredError
"""

from __future__ import annotations

from datetime import date
from uuid import UUID


class JobCostError(Exception):
    """Base class for all job cost engine errors."""

    code: str = "JOBCOST_ERROR"


class NotFoundError(JobCostError):
    """Entity is absent or outside the caller's company."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: UUID | str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStateError(JobCostError):
    """Operation is not allowed in the entity's current state."""

    code = "INVALID_STATE"


class EntryLockedError(InvalidStateError):
    """Paid time entries cannot be modified or deleted."""

    code = "ENTRY_LOCKED"

    def __init__(self, time_entry_id: UUID, action: str = "modify"):
        self.time_entry_id = time_entry_id
        self.action = action
        super().__init__(f"Cannot {action} paid time entry {time_entry_id}")


class NoPayableEntriesError(InvalidStateError):
    """No approved entries for the employee among the requested ids."""

    code = "NO_PAYABLE_ENTRIES"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"No approved time entries found for employee {employee_id}")


class InvalidTransitionError(InvalidStateError):
    """Raised when an invalid payment status transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ValidationError(JobCostError):
    """Input rejected before reaching the computations."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class TransactionConflictError(JobCostError):
    """A concurrent transaction changed the rows this one depends on.

    Retrying the whole operation is safe.
    """

    code = "TRANSACTION_CONFLICT"
    retryable = True


class RateNotConfiguredError(JobCostError):
    """No pay rate is configured for an employee on a date."""

    code = "RATE_NOT_CONFIGURED"

    def __init__(self, employee_id: UUID, as_of_date: date):
        self.employee_id = employee_id
        self.as_of_date = as_of_date
        super().__init__(
            f"No pay rate configured for employee {employee_id} on {as_of_date}"
        )
