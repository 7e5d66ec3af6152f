"""Payroll calculation components."""

from attendance_payroll.calculators.attendance_aggregator import AttendanceAggregator
from attendance_payroll.calculators.deduction_policy import (
    ContributionRule,
    PercentageDeductionPolicy,
    flat_rate_policy,
    no_deductions,
    policy_from_name,
    standard_contribution_policy,
    validate_policy_output,
)
from attendance_payroll.calculators.money import round_to_cents, to_decimal
from attendance_payroll.calculators.overtime_claimer import OvertimeClaimer

__all__ = [
    "AttendanceAggregator",
    "ContributionRule",
    "OvertimeClaimer",
    "PercentageDeductionPolicy",
    "flat_rate_policy",
    "no_deductions",
    "policy_from_name",
    "round_to_cents",
    "standard_contribution_policy",
    "to_decimal",
    "validate_policy_output",
]
