"""Payroll engine services."""

from attendance_payroll.services.deduction_ledger import DeductionLedger
from attendance_payroll.services.payment_service import PaymentService
from attendance_payroll.services.payroll_computer import PayrollComputer
from attendance_payroll.services.payroll_service import PayrollService
from attendance_payroll.services.period_service import (
    PeriodData,
    PeriodService,
    next_period_dates,
)
from attendance_payroll.services.period_totals import PeriodTotalsAggregator
from attendance_payroll.services.state_machine import PeriodStateMachine, PeriodStatus

__all__ = [
    "DeductionLedger",
    "PaymentService",
    "PayrollComputer",
    "PayrollService",
    "PeriodData",
    "PeriodService",
    "PeriodStateMachine",
    "PeriodStatus",
    "PeriodTotalsAggregator",
    "next_period_dates",
]
