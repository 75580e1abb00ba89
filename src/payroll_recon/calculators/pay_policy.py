"""Gross and net pay under the two compensation models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from payroll_recon.calculators.types import ZERO, CompensationModel, WorkerProfile


@dataclass(frozen=True)
class PayInputs:
    """Common input to every pay policy."""

    expected_days: Decimal
    time_off_days: Decimal
    holiday_days: Decimal
    payable_hours: Decimal
    catch_up_hours: Decimal
    hourly_rate: Decimal
    flat_rate: Decimal


def payable_hours(approved: Decimal, submitted: Decimal, include_submitted: bool) -> Decimal:
    """Approved hours, plus submitted hours when the run includes them."""
    return approved + (submitted if include_submitted else ZERO)


def net_pay(gross: Decimal, reimbursements: Decimal, deductions: Decimal) -> Decimal:
    return gross + reimbursements - deductions


class PayPolicy(ABC):
    """Computes gross pay for one worker from PayInputs."""

    model: CompensationModel

    @abstractmethod
    def gross_pay(self, inputs: PayInputs) -> Decimal:
        """Return exact (unrounded) gross pay."""


class HourlyPayPolicy(PayPolicy):
    """gross = (payable hours + catch-up hours) x hourly rate."""

    model = CompensationModel.HOURLY

    def gross_pay(self, inputs: PayInputs) -> Decimal:
        return (inputs.payable_hours + inputs.catch_up_hours) * inputs.hourly_rate


class SalariedPayPolicy(PayPolicy):
    """Flat period rate prorated by unpaid days.

    Logged hours and catch-up hours do not affect salaried pay. A period
    with no expected days uses a denominator of one.
    """

    model = CompensationModel.SALARIED

    def unpaid_days(self, inputs: PayInputs) -> Decimal:
        denom = inputs.expected_days or Decimal("1")
        return min(denom, inputs.time_off_days + inputs.holiday_days)

    def proration_factor(self, inputs: PayInputs) -> Decimal:
        denom = inputs.expected_days or Decimal("1")
        return max(ZERO, (denom - self.unpaid_days(inputs)) / denom)

    def gross_pay(self, inputs: PayInputs) -> Decimal:
        return inputs.flat_rate * self.proration_factor(inputs)


_POLICIES: dict[CompensationModel, PayPolicy] = {
    CompensationModel.HOURLY: HourlyPayPolicy(),
    CompensationModel.SALARIED: SalariedPayPolicy(),
}


def policy_for(model: CompensationModel | str) -> PayPolicy:
    """Select the pay policy for a compensation model."""
    return _POLICIES[CompensationModel(model)]


def resolve_rates(worker: WorkerProfile) -> tuple[Decimal, Decimal]:
    """Return (hourly_rate, flat_rate) for a worker.

    A worker without an hourly rate is paid hourly at the flat rate.
    """
    flat_rate = worker.flat_rate or ZERO
    hourly_rate = worker.hourly_rate or flat_rate
    return hourly_rate, flat_rate
