"""Payroll period state machine with transition validation."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING

from attendance_payroll.exceptions import (
    InvalidTransitionError,
    PeriodClosedError,
    PeriodLockedError,
    RecordCancelledError,
    RecordPaidError,
)

if TYPE_CHECKING:
    from attendance_payroll.models import PayrollPeriod, PayrollRecord


class PeriodStatus(str, Enum):
    """Payroll period status values."""

    OPEN = "open"
    PROCESSING = "processing"
    LOCKED = "locked"
    CLOSED = "closed"


class PeriodStateMachine:
    """State machine for payroll period status transitions.

    Allowed transitions:
    - open → processing (first computation)
    - open → locked
    - processing → locked
    - processing → open (reopen)
    - locked → open (reopen)
    - locked → closed
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PeriodStatus.OPEN: [PeriodStatus.PROCESSING, PeriodStatus.LOCKED],
        PeriodStatus.PROCESSING: [PeriodStatus.LOCKED, PeriodStatus.OPEN],
        PeriodStatus.LOCKED: [PeriodStatus.CLOSED, PeriodStatus.OPEN],
        PeriodStatus.CLOSED: [],  # Terminal state
    }

    # Statuses where records can be created, computed, edited or deleted
    RECORDS_MUTABLE = {
        PeriodStatus.OPEN,
        PeriodStatus.PROCESSING,
    }

    # Statuses where records can be marked as paid
    PAYMENT_ALLOWED = {
        PeriodStatus.OPEN,
        PeriodStatus.PROCESSING,
        PeriodStatus.LOCKED,
    }

    # Statuses where the period's own fields can be edited
    PERIOD_EDITABLE = {
        PeriodStatus.OPEN,
        PeriodStatus.PROCESSING,
    }

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
    def can_mutate_records(cls, status: str) -> bool:
        """Check if records of a period in this status may change."""
        return status in cls.RECORDS_MUTABLE

    @classmethod
    def can_pay(cls, status: str) -> bool:
        """Check if records may be marked as paid in this status."""
        return status in cls.PAYMENT_ALLOWED

    @classmethod
    def can_edit_period(cls, status: str) -> bool:
        return status in cls.PERIOD_EDITABLE

    @classmethod
    def can_delete_period(cls, status: str) -> bool:
        return status == PeriodStatus.OPEN

    @classmethod
    def is_reopen(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition is a reopen (processing/locked → open)."""
        return to_status == PeriodStatus.OPEN and from_status in (
            PeriodStatus.PROCESSING,
            PeriodStatus.LOCKED,
        )

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def ensure_records_mutable(cls, period: PayrollPeriod) -> None:
        """Raise if records under ``period`` may not be created, changed or deleted."""
        if period.status == PeriodStatus.CLOSED:
            raise PeriodClosedError(period.id)
        if not cls.can_mutate_records(period.status):
            raise PeriodLockedError(period.id)

    @classmethod
    def ensure_record_mutable(cls, period: PayrollPeriod, record: PayrollRecord | None) -> None:
        """Raise if ``record`` (when it exists) may not change under ``period``.

        A closed period wins over the record state; a paid or cancelled record
        wins over a locked period.
        """
        if period.status == PeriodStatus.CLOSED:
            raise PeriodClosedError(period.id)
        if record is not None:
            if record.payment_status == "paid":
                raise RecordPaidError(record.id)
            if record.payment_status == "cancelled":
                raise RecordCancelledError(record.id)
        cls.ensure_records_mutable(period)

    @classmethod
    def ensure_payment_allowed(cls, period: PayrollPeriod) -> None:
        """Raise if records under ``period`` may not be marked as paid."""
        if not cls.can_pay(period.status):
            raise PeriodClosedError(period.id)

    @classmethod
    def lock_guard_errors(cls, records: Sequence[PayrollRecord]) -> list[str]:
        """Lock requires at least one record and every record computed."""
        if not records:
            return ["Payroll period has no records"]
        not_computed = [r for r in records if r.computed_at is None]
        if not_computed:
            return [f"{len(not_computed)} records not computed"]
        return []

    @classmethod
    def close_guard_errors(cls, records: Sequence[PayrollRecord]) -> list[str]:
        """Close requires every record paid or cancelled."""
        unpaid = [r for r in records if r.payment_status not in ("paid", "cancelled")]
        if unpaid:
            return [f"{len(unpaid)} records not paid"]
        return []

    @classmethod
    def validate_period_for_transition(
        cls,
        period: PayrollPeriod,
        records: Sequence[PayrollRecord],
        to_status: str,
    ) -> list[str]:
        """Validate a period for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = period.status

        # Basic transition check
        if not cls.can_transition(from_status, to_status):
            errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        # Transition-specific validations
        if to_status == PeriodStatus.LOCKED:
            errors.extend(cls.lock_guard_errors(records))

        elif to_status == PeriodStatus.CLOSED:
            errors.extend(cls.close_guard_errors(records))

        return errors
