"""Tests for hourly and salaried pay policies."""

from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_recon.calculators.pay_policy import (
    HourlyPayPolicy,
    PayInputs,
    SalariedPayPolicy,
    net_pay,
    payable_hours,
    policy_for,
    resolve_rates,
)
from payroll_recon.calculators.types import CompensationModel, WorkerProfile


def make_inputs(**overrides) -> PayInputs:
    values = dict(
        expected_days=Decimal("20"),
        time_off_days=Decimal("0"),
        holiday_days=Decimal("0"),
        payable_hours=Decimal("0"),
        catch_up_hours=Decimal("0"),
        hourly_rate=Decimal("0"),
        flat_rate=Decimal("0"),
    )
    values.update(overrides)
    return PayInputs(**values)


class TestPayableHours:
    """Test payable hour selection."""

    def test_submitted_excluded_by_default(self):
        assert payable_hours(Decimal("160"), Decimal("10"), False) == Decimal("160")

    def test_submitted_included_when_flag_set(self):
        assert payable_hours(Decimal("160"), Decimal("10"), True) == Decimal("170")


class TestHourlyPayPolicy:
    """Test hourly gross pay."""

    def test_approved_hours_only(self):
        """160 payable hours at $50 is $8000."""
        gross = HourlyPayPolicy().gross_pay(
            make_inputs(payable_hours=Decimal("160"), hourly_rate=Decimal("50"))
        )
        assert gross == Decimal("8000")

    def test_including_submitted(self):
        """170 payable hours at $50 is $8500."""
        gross = HourlyPayPolicy().gross_pay(
            make_inputs(payable_hours=Decimal("170"), hourly_rate=Decimal("50"))
        )
        assert gross == Decimal("8500")

    @pytest.mark.parametrize(
        "hours,catch_up,rate",
        [
            (Decimal("0"), Decimal("0"), Decimal("0")),
            (Decimal("37.25"), Decimal("2.5"), Decimal("31.17")),
            (Decimal("0"), Decimal("6"), Decimal("42")),
            (Decimal("80.333"), Decimal("0"), Decimal("19.99")),
        ],
    )
    def test_gross_is_exact(self, hours, catch_up, rate):
        """Gross is exactly (H + K) * R, without intermediate rounding."""
        gross = HourlyPayPolicy().gross_pay(
            make_inputs(payable_hours=hours, catch_up_hours=catch_up, hourly_rate=rate)
        )
        assert gross == (hours + catch_up) * rate


class TestSalariedPayPolicy:
    """Test salaried proration."""

    def test_proration_scenario(self):
        """$5000, 20 expected days, 4 time-off and 1 holiday: 5 unpaid, $3750."""
        policy = SalariedPayPolicy()
        inputs = make_inputs(
            flat_rate=Decimal("5000"),
            time_off_days=Decimal("4"),
            holiday_days=Decimal("1"),
        )
        assert policy.unpaid_days(inputs) == Decimal("5")
        assert policy.gross_pay(inputs) == Decimal("3750")

    def test_no_unpaid_days_pays_full_rate(self):
        gross = SalariedPayPolicy().gross_pay(make_inputs(flat_rate=Decimal("5000")))
        assert gross == Decimal("5000")

    def test_unpaid_days_capped_at_expected(self):
        """Unpaid days beyond the expected days yield zero, never negative."""
        policy = SalariedPayPolicy()
        inputs = make_inputs(
            flat_rate=Decimal("5000"),
            time_off_days=Decimal("18"),
            holiday_days=Decimal("4"),
        )
        assert policy.unpaid_days(inputs) == Decimal("20")
        assert policy.gross_pay(inputs) == Decimal("0")

    def test_zero_expected_days_uses_denominator_of_one(self):
        policy = SalariedPayPolicy()
        inputs = make_inputs(expected_days=Decimal("0"), flat_rate=Decimal("5000"))
        assert policy.gross_pay(inputs) == Decimal("5000")

    def test_logged_and_catch_up_hours_ignored(self):
        """Salaried pay does not depend on hours or catch-up."""
        policy = SalariedPayPolicy()
        base = policy.gross_pay(make_inputs(flat_rate=Decimal("5000")))
        with_hours = policy.gross_pay(
            make_inputs(
                flat_rate=Decimal("5000"),
                payable_hours=Decimal("12"),
                catch_up_hours=Decimal("8"),
                hourly_rate=Decimal("50"),
            )
        )
        assert base == with_hours


class TestNetPay:
    """Test net pay derivation."""

    def test_net_adds_reimbursements_and_subtracts_deductions(self):
        assert net_pay(Decimal("8000"), Decimal("150"), Decimal("75")) == Decimal("8075")

    def test_net_can_go_negative(self):
        assert net_pay(Decimal("0"), Decimal("0"), Decimal("40")) == Decimal("-40")


class TestPolicySelection:
    """Test policy lookup and rate resolution."""

    def test_policy_for_model(self):
        assert isinstance(policy_for(CompensationModel.HOURLY), HourlyPayPolicy)
        assert isinstance(policy_for("salaried"), SalariedPayPolicy)

    def test_unknown_model_rejected(self):
        with pytest.raises(ValueError):
            policy_for("commission")

    def test_hourly_rate_falls_back_to_flat_rate(self):
        worker = WorkerProfile(
            worker_id=uuid4(),
            first_name="Ann",
            last_name="Lee",
            compensation_model=CompensationModel.HOURLY,
            flat_rate=Decimal("45"),
        )
        assert resolve_rates(worker) == (Decimal("45"), Decimal("45"))

    def test_missing_rates_are_zero(self):
        worker = WorkerProfile(
            worker_id=uuid4(),
            first_name="Ann",
            last_name="Lee",
            compensation_model=CompensationModel.HOURLY,
        )
        assert resolve_rates(worker) == (Decimal("0"), Decimal("0"))
