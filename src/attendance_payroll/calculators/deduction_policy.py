"""Deduction policies.

A deduction policy is a pure function ``policy(gross_pay) -> {category: amount}``
that the payroll computer calls after gross pay is known. Its output is written
as ``source="policy"`` deduction rows on the record. Policies are plain
callables so tests and callers can inject their own.

Rule based policies are configured with ``ContributionRule`` entries:

    rule = ContributionRule(category="sss", rate=Decimal("0.045"), max_amount=Decimal("1350"))

The rates shipped in ``standard_contribution_policy`` are illustrative
percentages with caps, not authoritative government tables.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from attendance_payroll.calculators.money import ZERO, round_to_cents, to_decimal
from attendance_payroll.calculators.types import DeductionCategory
from attendance_payroll.exceptions import PayrollValidationError

DeductionPolicy = Callable[[Decimal], Mapping[str, Decimal]]

_CATEGORIES = {category.value for category in DeductionCategory}


@dataclass(frozen=True)
class ContributionRule:
    """Percentage of gross pay for one deduction category."""

    category: str
    rate: Decimal  # As decimal, e.g., 0.045 for 4.5%
    max_amount: Decimal | None = None
    wage_ceiling: Decimal | None = None  # Gross above this is not deducted from
    min_amount: Decimal | None = None

    def amount_for(self, gross_pay: Decimal) -> Decimal:
        """Calculate this rule's deduction for a gross amount."""
        if gross_pay <= 0:
            return ZERO

        base = gross_pay
        if self.wage_ceiling is not None:
            base = min(base, self.wage_ceiling)

        amount = round_to_cents(base * self.rate)
        if self.min_amount is not None:
            amount = max(amount, self.min_amount)
        if self.max_amount is not None:
            amount = min(amount, self.max_amount)
        return round_to_cents(amount)


class PercentageDeductionPolicy:
    """Applies a list of contribution rules to gross pay."""

    def __init__(self, rules: list[ContributionRule]):
        errors = [
            f"Unknown deduction category '{rule.category}'"
            for rule in rules
            if rule.category not in _CATEGORIES
        ]
        if errors:
            raise PayrollValidationError(errors)
        self.rules = list(rules)

    def __call__(self, gross_pay: Decimal) -> dict[str, Decimal]:
        result: dict[str, Decimal] = {}
        for rule in self.rules:
            result[rule.category] = result.get(rule.category, ZERO) + rule.amount_for(gross_pay)
        return result

    def __repr__(self) -> str:
        return f"PercentageDeductionPolicy({self.rules!r})"


def no_deductions(gross_pay: Decimal) -> dict[str, Decimal]:
    """Policy that never deducts anything."""
    return {}


def flat_rate_policy(rate: Decimal, category: str = "tax") -> PercentageDeductionPolicy:
    """Deduct a single flat percentage of gross pay."""
    return PercentageDeductionPolicy([ContributionRule(category=category, rate=to_decimal(rate))])


def standard_contribution_policy() -> PercentageDeductionPolicy:
    """Employee share of SSS, PhilHealth and Pag-IBIG contributions."""
    return PercentageDeductionPolicy(
        [
            ContributionRule(
                category=DeductionCategory.SSS.value,
                rate=Decimal("0.045"),
                max_amount=Decimal("1350"),
            ),
            ContributionRule(
                category=DeductionCategory.PHILHEALTH.value,
                rate=Decimal("0.025"),
            ),
            ContributionRule(
                category=DeductionCategory.PAGIBIG.value,
                rate=Decimal("0.02"),
                max_amount=Decimal("100"),
            ),
        ]
    )


def policy_from_name(name: str) -> DeductionPolicy:
    """Resolve the DEDUCTION_POLICY setting to a policy callable."""
    key = name.strip().lower()
    if key == "standard":
        return standard_contribution_policy()
    if key == "none":
        return no_deductions
    raise PayrollValidationError(f"Unknown deduction policy '{name}'")


def validate_policy_output(output: Mapping[str, object]) -> dict[str, Decimal]:
    """Check a policy result and normalize amounts to cents.

    Raises PayrollValidationError listing every unknown category and every
    negative or non-numeric amount.
    """
    errors: list[str] = []
    amounts: dict[str, Decimal] = {}

    for category, raw in output.items():
        key = category.value if isinstance(category, DeductionCategory) else str(category)
        if key not in _CATEGORIES:
            errors.append(f"Unknown deduction category '{key}'")
            continue
        try:
            amount = to_decimal(raw)
        except (InvalidOperation, TypeError, ValueError):
            errors.append(f"Deduction amount for '{key}' is not a number: {raw!r}")
            continue
        if not amount.is_finite():
            errors.append(f"Deduction amount for '{key}' is not a number: {raw!r}")
            continue
        if amount < 0:
            errors.append(f"Deduction amount for '{key}' must be non-negative, got {amount}")
            continue
        amounts[key] = round_to_cents(amounts.get(key, ZERO) + amount)

    if errors:
        raise PayrollValidationError(errors)
    return amounts
