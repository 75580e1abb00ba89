"""Payroll reconciliation calculators."""

from payroll_recon.calculators.adjustments import AdjustmentAggregator
from payroll_recon.calculators.engine import ReconciliationEngine
from payroll_recon.calculators.exception_detector import ExceptionDetector
from payroll_recon.calculators.external_time import ExternalTimeAggregator
from payroll_recon.calculators.internal_time import InternalTimeAggregator
from payroll_recon.calculators.line_builder import LineItemBuilder
from payroll_recon.calculators.pay_policy import HourlyPayPolicy, PayInputs, SalariedPayPolicy

__all__ = [
    "AdjustmentAggregator",
    "ExceptionDetector",
    "ExternalTimeAggregator",
    "HourlyPayPolicy",
    "InternalTimeAggregator",
    "LineItemBuilder",
    "PayInputs",
    "ReconciliationEngine",
    "SalariedPayPolicy",
]
