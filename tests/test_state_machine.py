"""Tests for payroll period state machine."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from attendance_payroll.exceptions import (
    InvalidTransitionError,
    PeriodClosedError,
    PeriodLockedError,
    RecordCancelledError,
    RecordPaidError,
)
from attendance_payroll.services.state_machine import PeriodStateMachine, PeriodStatus


def _period(status: str, period_id: int = 1):
    return SimpleNamespace(id=period_id, status=status)


def _record(computed: bool = True, payment_status: str = "unpaid", record_id: int = 1):
    return SimpleNamespace(
        id=record_id,
        computed_at=datetime(2026, 1, 16, tzinfo=timezone.utc) if computed else None,
        payment_status=payment_status,
    )


class TestPeriodStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # open → processing (first computation)
        assert PeriodStateMachine.can_transition("open", "processing") is True

        # open → locked
        assert PeriodStateMachine.can_transition("open", "locked") is True

        # processing → locked
        assert PeriodStateMachine.can_transition("processing", "locked") is True

        # processing/locked → open (reopen)
        assert PeriodStateMachine.can_transition("processing", "open") is True
        assert PeriodStateMachine.can_transition("locked", "open") is True

        # locked → closed
        assert PeriodStateMachine.can_transition("locked", "closed") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Can't close without locking
        assert PeriodStateMachine.can_transition("open", "closed") is False
        assert PeriodStateMachine.can_transition("processing", "closed") is False

        # Can't go back to processing from locked
        assert PeriodStateMachine.can_transition("locked", "processing") is False

        # Closed is terminal
        assert PeriodStateMachine.can_transition("closed", "open") is False
        assert PeriodStateMachine.can_transition("closed", "locked") is False
        assert PeriodStateMachine.get_next_statuses("closed") == []

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PeriodStateMachine.validate_transition("open", "closed")

        assert exc_info.value.from_status == "open"
        assert exc_info.value.to_status == "closed"
        assert exc_info.value.code == "INVALID_TRANSITION"

    def test_is_reopen(self):
        """Test reopen detection."""
        assert PeriodStateMachine.is_reopen("locked", "open") is True
        assert PeriodStateMachine.is_reopen("processing", "open") is True
        assert PeriodStateMachine.is_reopen("open", "processing") is False
        assert PeriodStateMachine.is_reopen("closed", "open") is False

    def test_can_mutate_records(self):
        """Records change only while open or processing."""
        assert PeriodStateMachine.can_mutate_records("open") is True
        assert PeriodStateMachine.can_mutate_records("processing") is True
        assert PeriodStateMachine.can_mutate_records("locked") is False
        assert PeriodStateMachine.can_mutate_records("closed") is False

    def test_can_pay(self):
        """Payment is the only change a locked period accepts."""
        assert PeriodStateMachine.can_pay("open") is True
        assert PeriodStateMachine.can_pay("processing") is True
        assert PeriodStateMachine.can_pay("locked") is True
        assert PeriodStateMachine.can_pay("closed") is False

    def test_enum_values_match_plain_strings(self):
        assert PeriodStateMachine.can_transition(PeriodStatus.LOCKED, "closed") is True
        assert PeriodStatus("processing") is PeriodStatus.PROCESSING


class TestRecordGuards:
    """Test guards applied before record mutation and payment."""

    def test_locked_period_rejects_record_changes(self):
        with pytest.raises(PeriodLockedError):
            PeriodStateMachine.ensure_records_mutable(_period("locked"))

    def test_closed_period_rejects_record_changes(self):
        with pytest.raises(PeriodClosedError):
            PeriodStateMachine.ensure_records_mutable(_period("closed"))

    def test_open_and_processing_accept_record_changes(self):
        PeriodStateMachine.ensure_records_mutable(_period("open"))
        PeriodStateMachine.ensure_records_mutable(_period("processing"))

    def test_closed_period_rejects_payment(self):
        PeriodStateMachine.ensure_payment_allowed(_period("locked"))
        with pytest.raises(PeriodClosedError):
            PeriodStateMachine.ensure_payment_allowed(_period("closed"))

    def test_paid_record_rejected_before_locked_period(self):
        with pytest.raises(RecordPaidError):
            PeriodStateMachine.ensure_record_mutable(
                _period("locked"), _record(payment_status="paid")
            )

    def test_cancelled_record_rejected(self):
        with pytest.raises(RecordCancelledError):
            PeriodStateMachine.ensure_record_mutable(
                _period("processing"), _record(payment_status="cancelled")
            )

    def test_closed_period_rejected_before_record_state(self):
        with pytest.raises(PeriodClosedError):
            PeriodStateMachine.ensure_record_mutable(
                _period("closed"), _record(payment_status="paid")
            )

    def test_missing_record_falls_back_to_period_guard(self):
        PeriodStateMachine.ensure_record_mutable(_period("open"), None)
        with pytest.raises(PeriodLockedError):
            PeriodStateMachine.ensure_record_mutable(_period("locked"), None)


class TestTransitionValidation:
    """Test lock and close guards."""

    def test_lock_requires_records(self):
        errors = PeriodStateMachine.validate_period_for_transition(
            _period("processing"), [], "locked"
        )
        assert errors == ["Payroll period has no records"]

    def test_lock_requires_every_record_computed(self):
        records = [_record(), _record(computed=False), _record(computed=False)]
        errors = PeriodStateMachine.validate_period_for_transition(
            _period("processing"), records, "locked"
        )
        assert errors == ["2 records not computed"]

    def test_lock_passes_when_all_computed(self):
        errors = PeriodStateMachine.validate_period_for_transition(
            _period("processing"), [_record(), _record()], "locked"
        )
        assert errors == []

    def test_close_requires_every_record_paid(self):
        records = [_record(payment_status="paid"), _record()]
        errors = PeriodStateMachine.validate_period_for_transition(
            _period("locked"), records, "closed"
        )
        assert errors == ["1 records not paid"]

    def test_close_passes_when_all_paid(self):
        records = [_record(payment_status="paid")]
        errors = PeriodStateMachine.validate_period_for_transition(
            _period("locked"), records, "closed"
        )
        assert errors == []

    def test_close_treats_cancelled_records_as_settled(self):
        records = [_record(payment_status="paid"), _record(payment_status="cancelled")]
        errors = PeriodStateMachine.validate_period_for_transition(
            _period("locked"), records, "closed"
        )
        assert errors == []

    def test_invalid_transition_reported(self):
        errors = PeriodStateMachine.validate_period_for_transition(
            _period("open"), [], "closed"
        )
        assert errors == ["Cannot transition from 'open' to 'closed'"]
