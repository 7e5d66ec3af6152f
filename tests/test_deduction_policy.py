"""Tests for deduction policies and money helpers."""

from decimal import Decimal

import pytest

from attendance_payroll.calculators.deduction_policy import (
    ContributionRule,
    PercentageDeductionPolicy,
    flat_rate_policy,
    no_deductions,
    policy_from_name,
    standard_contribution_policy,
    validate_policy_output,
)
from attendance_payroll.calculators.money import round_to_cents, sum_money, to_decimal
from attendance_payroll.exceptions import PayrollValidationError


class TestMoney:
    """Test cent rounding and coercion."""

    def test_round_half_up(self):
        assert round_to_cents(Decimal("10.005")) == Decimal("10.01")
        assert round_to_cents(Decimal("10.004")) == Decimal("10.00")
        assert round_to_cents(Decimal("-10.005")) == Decimal("-10.01")

    def test_to_decimal_float_keeps_short_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("12.50") == Decimal("12.50")

    def test_sum_money_rounds_once(self):
        assert sum_money([Decimal("0.004"), Decimal("0.004")]) == Decimal("0.01")
        assert sum_money([]) == Decimal("0.00")


class TestContributionRule:
    """Test a single percentage rule."""

    def test_rate_applied_to_gross(self):
        rule = ContributionRule(category="sss", rate=Decimal("0.045"))
        assert rule.amount_for(Decimal("10000")) == Decimal("450.00")

    def test_max_amount_caps(self):
        rule = ContributionRule(category="sss", rate=Decimal("0.045"), max_amount=Decimal("1350"))
        assert rule.amount_for(Decimal("100000")) == Decimal("1350.00")

    def test_wage_ceiling_limits_base(self):
        rule = ContributionRule(
            category="philhealth",
            rate=Decimal("0.05"),
            wage_ceiling=Decimal("20000"),
        )
        assert rule.amount_for(Decimal("50000")) == Decimal("1000.00")

    def test_min_amount_floor(self):
        rule = ContributionRule(category="pag-ibig", rate=Decimal("0.01"), min_amount=Decimal("50"))
        assert rule.amount_for(Decimal("1000")) == Decimal("50.00")

    def test_zero_gross_deducts_nothing(self):
        rule = ContributionRule(category="sss", rate=Decimal("0.045"), min_amount=Decimal("50"))
        assert rule.amount_for(Decimal("0")) == Decimal("0")


class TestPolicies:
    """Test the shipped policies."""

    def test_flat_rate_policy(self):
        policy = flat_rate_policy(Decimal("0.10"))
        assert policy(Decimal("8500")) == {"tax": Decimal("850.00")}

    def test_no_deductions(self):
        assert no_deductions(Decimal("8500")) == {}

    def test_standard_policy_caps(self):
        amounts = standard_contribution_policy()(Decimal("40000"))
        assert amounts == {
            "sss": Decimal("1350.00"),
            "philhealth": Decimal("1000.00"),
            "pag-ibig": Decimal("100.00"),
        }

    def test_standard_policy_below_caps(self):
        amounts = standard_contribution_policy()(Decimal("4000"))
        assert amounts["sss"] == Decimal("180.00")
        assert amounts["philhealth"] == Decimal("100.00")
        assert amounts["pag-ibig"] == Decimal("80.00")

    def test_unknown_category_rejected(self):
        with pytest.raises(PayrollValidationError):
            PercentageDeductionPolicy([ContributionRule(category="union", rate=Decimal("0.01"))])

    def test_policy_from_name(self):
        assert policy_from_name("none") is no_deductions
        assert isinstance(policy_from_name(" Standard "), PercentageDeductionPolicy)
        with pytest.raises(PayrollValidationError):
            policy_from_name("progressive")


class TestPolicyOutputValidation:
    """Test checks applied to whatever a policy returns."""

    def test_amounts_normalized_to_cents(self):
        result = validate_policy_output({"tax": Decimal("10.005"), "sss": 5})
        assert result == {"tax": Decimal("10.01"), "sss": Decimal("5.00")}

    def test_negative_and_unknown_rejected(self):
        with pytest.raises(PayrollValidationError) as exc_info:
            validate_policy_output({"tax": Decimal("-1"), "union": Decimal("5")})

        assert len(exc_info.value.errors) == 2

    def test_non_numeric_rejected(self):
        with pytest.raises(PayrollValidationError):
            validate_policy_output({"tax": "lots"})

    def test_nan_rejected(self):
        with pytest.raises(PayrollValidationError):
            validate_policy_output({"tax": Decimal("NaN")})
