"""Tests for the reconciliation engine calculation pass."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_recon.calculators.engine import ReconciliationEngine
from payroll_recon.calculators.types import (
    AdjustmentRow,
    BucketConfig,
    CompensationModel,
    ExceptionType,
    ExternalTimeRow,
    InternalTimeRow,
    PayPeriod,
    ReconciliationThresholds,
    RunInputs,
    Severity,
    WorkerProfile,
)

PERIOD = PayPeriod(date(2026, 2, 2), date(2026, 2, 27))
TIME_OFF = uuid4()
CLIENT = uuid4()
WEEKDAYS = [
    date(2026, 2, d)
    for d in range(2, 28)
    if date(2026, 2, d).weekday() < 5
]


def hourly_worker(last_name="Anders", rate=Decimal("50")) -> WorkerProfile:
    return WorkerProfile(
        worker_id=uuid4(),
        first_name="Alice",
        last_name=last_name,
        compensation_model=CompensationModel.HOURLY,
        hourly_rate=rate,
    )


def salaried_worker(last_name="Baker", flat=Decimal("5000")) -> WorkerProfile:
    return WorkerProfile(
        worker_id=uuid4(),
        first_name="Bob",
        last_name=last_name,
        compensation_model=CompensationModel.SALARIED,
        flat_rate=flat,
    )


def make_inputs(workers, internal=(), external=(), adjustments=(), holidays=(), include_submitted=False):
    return RunInputs(
        payroll_run_id=uuid4(),
        period=PERIOD,
        include_submitted=include_submitted,
        workers=list(workers),
        holidays=set(holidays),
        buckets=BucketConfig(time_off_client_id=TIME_OFF),
        internal_rows=list(internal),
        external_rows=list(external),
        adjustment_rows=list(adjustments),
    )


def full_month(worker: WorkerProfile, hours=Decimal("8"), status="approved"):
    return [
        InternalTimeRow(worker.worker_id, day, status, CLIENT, hours)
        for day in WEEKDAYS
    ]


@pytest.fixture
def engine() -> ReconciliationEngine:
    return ReconciliationEngine(engine_version="test")


class TestHourlyScenarios:
    """Test hourly pay through the full pass."""

    def test_submitted_excluded(self, engine):
        """160 approved, 10 submitted, flag off: 160 payable, $8000."""
        worker = hourly_worker()
        internal = full_month(worker) + [
            InternalTimeRow(worker.worker_id, date(2026, 2, 27), "submitted", CLIENT, Decimal("10"))
        ]
        result = engine.calculate(make_inputs([worker], internal))

        line = result.lines[0]
        assert result.expected_work_days == 20
        assert line.approved_hours == Decimal("160.00")
        assert line.submitted_hours == Decimal("10.00")
        assert line.payable_hours == Decimal("160.00")
        assert line.gross_pay == Decimal("8000.00")
        assert line.net_pay == Decimal("8000.00")

    def test_submitted_included(self, engine):
        """Same worker with the flag on: 170 payable, $8500."""
        worker = hourly_worker()
        internal = full_month(worker) + [
            InternalTimeRow(worker.worker_id, date(2026, 2, 27), "submitted", CLIENT, Decimal("10"))
        ]
        result = engine.calculate(make_inputs([worker], internal, include_submitted=True))

        line = result.lines[0]
        assert line.payable_hours == Decimal("170.00")
        assert line.gross_pay == Decimal("8500.00")

    def test_catch_up_and_adjustments(self, engine):
        """Catch-up hours add to hourly gross; net applies adjustments."""
        worker = hourly_worker()
        adjustments = [
            AdjustmentRow(worker.worker_id, PERIOD.start, PERIOD.end, "CATCHUP", hours=Decimal("4")),
            AdjustmentRow(worker.worker_id, PERIOD.start, PERIOD.end, "REIMBURSEMENT", Decimal("120")),
            AdjustmentRow(worker.worker_id, PERIOD.start, PERIOD.end, "DEDUCTION", Decimal("20")),
        ]
        result = engine.calculate(make_inputs([worker], full_month(worker), adjustments=adjustments))

        line = result.lines[0]
        assert line.gross_pay == Decimal("8200.00")
        assert line.net_pay == Decimal("8300.00")


class TestSalariedScenarios:
    """Test salaried pay through the full pass."""

    def test_time_off_prorates(self, engine):
        """4 days of time off out of 20 pays 16/20 of the flat rate."""
        worker = salaried_worker()
        internal = [
            InternalTimeRow(worker.worker_id, day, "approved", TIME_OFF, Decimal("8"))
            for day in WEEKDAYS[:4]
        ]
        result = engine.calculate(make_inputs([worker], internal))

        line = result.lines[0]
        assert line.time_off_days == Decimal("4.00")
        assert line.gross_pay == Decimal("4000.00")

    def test_catch_up_ignored(self, engine):
        worker = salaried_worker()
        adjustments = [
            AdjustmentRow(worker.worker_id, PERIOD.start, PERIOD.end, "CATCHUP", hours=Decimal("16"))
        ]
        result = engine.calculate(make_inputs([worker], adjustments=adjustments))

        line = result.lines[0]
        assert line.catch_up_hours == Decimal("16.00")
        assert line.gross_pay == Decimal("5000.00")

    def test_holiday_reduces_expected_days(self, engine):
        worker = salaried_worker()
        result = engine.calculate(make_inputs([worker], holidays={date(2026, 2, 16)}))

        assert result.expected_work_days == 19
        assert result.holiday_days == 1
        assert result.lines[0].holiday_days == Decimal("1.00")


class TestCalculatePass:
    """Test pass-level behavior."""

    def test_one_line_per_worker_even_without_inputs(self, engine):
        workers = [hourly_worker("Zed"), salaried_worker("Adams")]
        result = engine.calculate(make_inputs(workers))

        assert len(result.lines) == 2
        assert [line.worker_id for line in result.lines] == [
            workers[1].worker_id,
            workers[0].worker_id,
        ]
        assert result.lines[0].gross_pay == Decimal("5000.00")
        assert result.lines[1].gross_pay == Decimal("0.00")
        assert result.exceptions == []

    def test_mismatch_scenario(self, engine):
        """External 40 vs payable 35 raises one CRIT mismatch."""
        worker = hourly_worker()
        internal = [
            InternalTimeRow(worker.worker_id, day, "approved", CLIENT, Decimal("7"))
            for day in WEEKDAYS[:5]
        ]
        external = [
            ExternalTimeRow(day, Decimal("8"), worker.worker_id, Decimal("90"))
            for day in WEEKDAYS[:5]
        ]
        result = engine.calculate(make_inputs([worker], internal, external))

        assert len(result.exceptions) == 1
        finding = result.exceptions[0]
        assert finding.exception_type == ExceptionType.HOURS_MISMATCH
        assert finding.severity == Severity.CRIT
        assert finding.portal_hours == Decimal("35.00")
        assert finding.external_hours == Decimal("40.00")

    def test_unassigned_external_time(self, engine):
        """10 unlinked external hours give one run-level exception."""
        worker = hourly_worker()
        external = [
            ExternalTimeRow(WEEKDAYS[0], Decimal("6"), None),
            ExternalTimeRow(WEEKDAYS[1], Decimal("4"), None),
        ]
        result = engine.calculate(make_inputs([worker], external=external))

        assert result.unassigned_external_hours == Decimal("10")
        assert len(result.exceptions) == 1
        assert result.exceptions[0].exception_type == ExceptionType.UNASSIGNED_EXTERNAL_TIME
        assert result.exceptions[0].worker_id is None

    def test_sequences_follow_detection_order(self, engine):
        first = hourly_worker("Adams")
        second = hourly_worker("Baker")
        external = [
            ExternalTimeRow(WEEKDAYS[0], Decimal("6"), first.worker_id, Decimal("30")),
            ExternalTimeRow(WEEKDAYS[0], Decimal("6"), second.worker_id, Decimal("95")),
            ExternalTimeRow(WEEKDAYS[1], Decimal("3"), None),
        ]
        result = engine.calculate(make_inputs([second, first], external=external))

        assert [e.sequence for e in result.exceptions] == list(range(1, 7))
        assert [(e.worker_id, e.exception_type) for e in result.exceptions] == [
            (first.worker_id, ExceptionType.HOURS_MISMATCH),
            (first.worker_id, ExceptionType.LOW_ACTIVITY),
            (first.worker_id, ExceptionType.MISSING_PORTAL_ALLOCATION),
            (second.worker_id, ExceptionType.HOURS_MISMATCH),
            (second.worker_id, ExceptionType.MISSING_PORTAL_ALLOCATION),
            (None, ExceptionType.UNASSIGNED_EXTERNAL_TIME),
        ]

    def test_threshold_overrides(self):
        worker = hourly_worker()
        internal = full_month(worker)
        external = [
            ExternalTimeRow(day, Decimal("8"), worker.worker_id, Decimal("60"))
            for day in WEEKDAYS
        ]
        inputs = make_inputs([worker], internal, external)

        default = ReconciliationEngine(engine_version="test").calculate(inputs)
        relaxed = ReconciliationEngine(
            thresholds=ReconciliationThresholds(activity_threshold=Decimal("50")),
            engine_version="test",
        ).calculate(inputs)

        assert [e.exception_type for e in default.exceptions] == [ExceptionType.LOW_ACTIVITY]
        assert relaxed.exceptions == []

    def test_deterministic(self, engine):
        """The same inputs give identical lines and exceptions."""
        worker = hourly_worker()
        external = [ExternalTimeRow(WEEKDAYS[0], Decimal("3"), None)]
        inputs = make_inputs([worker], full_month(worker), external)

        first = engine.calculate(inputs)
        second = engine.calculate(inputs)

        assert [l.line_id for l in first.lines] == [l.line_id for l in second.lines]
        assert [e.exception_id for e in first.exceptions] == [
            e.exception_id for e in second.exceptions
        ]
        assert first.total_gross == second.total_gross
