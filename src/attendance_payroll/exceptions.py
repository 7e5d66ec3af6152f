"""Error taxonomy for payroll operations.

Every error carries a stable ``code`` and a ``retryable`` flag so callers can
tell "nothing happened, try again" apart from "the request conflicts with the
current state".
"""

from __future__ import annotations


class PayrollError(Exception):
    """Base class for all payroll engine errors."""

    code = "PAYROLL_ERROR"
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(PayrollError):
    """Employee, period, record or deduction does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStateError(PayrollError):
    """The request conflicts with the current state of a period or record."""

    code = "INVALID_STATE"


class PeriodLockedError(InvalidStateError):
    code = "PERIOD_LOCKED"

    def __init__(self, period_id: int):
        self.period_id = period_id
        super().__init__(f"Payroll period {period_id} is locked; reopen it first")


class PeriodClosedError(InvalidStateError):
    code = "PERIOD_CLOSED"

    def __init__(self, period_id: int):
        self.period_id = period_id
        super().__init__(f"Payroll period {period_id} is closed")


class RecordPaidError(InvalidStateError):
    code = "RECORD_PAID"

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"Payroll record {record_id} is paid and cannot be changed")


class RecordCancelledError(InvalidStateError):
    code = "RECORD_CANCELLED"

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"Payroll record {record_id} is cancelled and cannot be changed")


class AlreadyPaidError(InvalidStateError):
    code = "ALREADY_PAID"

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"Payroll record {record_id} is already paid")


class AlreadyClosedError(InvalidStateError):
    code = "ALREADY_CLOSED"

    def __init__(self, period_id: int):
        self.period_id = period_id
        super().__init__(f"Payroll period {period_id} is already closed")


class NotLockedError(InvalidStateError):
    code = "NOT_LOCKED"

    def __init__(self, period_id: int, status: str):
        self.period_id = period_id
        self.status = status
        super().__init__(
            f"Payroll period {period_id} must be locked to close (current: {status})"
        )


class NotAllComputedError(InvalidStateError):
    code = "NOT_ALL_COMPUTED"


class UnpaidRecordsExistError(InvalidStateError):
    code = "UNPAID_RECORDS_EXIST"


class PeriodNotEmptyError(InvalidStateError):
    code = "PERIOD_NOT_EMPTY"


class InvalidTransitionError(InvalidStateError):
    """Raised when an invalid period state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollValidationError(PayrollError):
    """Malformed input, rejected before any write."""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: list[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class ConcurrencyConflictError(PayrollError):
    """Two writers raced on the same record; safe to retry once."""

    code = "CONCURRENCY_CONFLICT"
    retryable = True
