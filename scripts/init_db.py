#!/usr/bin/env python
"""Create the schema and optionally load a small demo data set.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --database-url sqlite+aiosqlite:///./payroll_recon.db --seed
    python scripts/init_db.py --drop --seed
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from payroll_recon.config import get_settings
from payroll_recon.models import (
    Adjustment,
    Base,
    ExternalTimeRecord,
    Holiday,
    InternalTimeRecord,
    WorkBucketAssignment,
    Worker,
)

TIME_OFF_CLIENT_ID = UUID("7f000000-0000-4000-8000-000000000001")
INTERNAL_WORK_CLIENT_ID = UUID("7f000000-0000-4000-8000-000000000002")
ACME_CLIENT_ID = UUID("7f000000-0000-4000-8000-0000000000a1")


def _weekdays(start: date, end: date) -> list[date]:
    days = []
    day = start
    while day <= end:
        if day.weekday() < 5:
            days.append(day)
        day += timedelta(days=1)
    return days


def build_demo_rows(period_start: date, period_end: date) -> list:
    """One hourly and one salaried worker with a month of time, plus stray external time."""
    hourly = Worker(
        worker_id=uuid4(),
        first_name="Alice",
        last_name="Anders",
        work_email="alice@example.com",
        compensation_model="hourly",
        hourly_rate=Decimal("50.00"),
    )
    salaried = Worker(
        worker_id=uuid4(),
        first_name="Bob",
        last_name="Baker",
        work_email="bob@example.com",
        compensation_model="salaried",
        flat_rate=Decimal("5000.00"),
    )
    rows: list = [
        hourly,
        salaried,
        WorkBucketAssignment(role="time_off", client_id=TIME_OFF_CLIENT_ID),
        WorkBucketAssignment(role="internal_work", client_id=INTERNAL_WORK_CLIENT_ID),
    ]

    days = _weekdays(period_start, period_end)
    for index, day in enumerate(days):
        rows.append(
            InternalTimeRecord(
                worker_id=hourly.worker_id,
                work_date=day,
                client_id=ACME_CLIENT_ID,
                approval_status="submitted" if index == len(days) - 1 else "approved",
                client_facing_hours=Decimal("7"),
                non_client_facing_hours=Decimal("1"),
            )
        )
        rows.append(
            ExternalTimeRecord(
                worker_id=hourly.worker_id,
                source="tracker",
                work_date=day,
                hours=Decimal("8.25"),
                activity_percent=Decimal("64") if index % 2 else Decimal("0"),
            )
        )
        rows.append(
            InternalTimeRecord(
                worker_id=salaried.worker_id,
                work_date=day,
                client_id=TIME_OFF_CLIENT_ID if index < 2 else ACME_CLIENT_ID,
                approval_status="approved",
                client_facing_hours=Decimal("8"),
            )
        )

    rows.append(
        ExternalTimeRecord(source="tracker", work_date=days[0], hours=Decimal("3.5"))
    )
    rows.append(
        Adjustment(
            worker_id=hourly.worker_id,
            period_start=period_start,
            period_end=period_end,
            adjustment_type="REIMBURSEMENT",
            amount=Decimal("84.20"),
            description="Client site parking",
            created_by="seed",
        )
    )
    if len(days) > 10:
        rows.append(Holiday(holiday_date=days[10], name="Company holiday"))
    return rows


async def init_db(database_url: str, drop: bool, seed: bool, period_start: date) -> None:
    """Create tables, then insert demo rows if requested."""
    print(f"Target database: {database_url.split('@')[1] if '@' in database_url else database_url}")
    engine = create_async_engine(database_url, echo=False)

    try:
        async with engine.begin() as conn:
            if drop:
                print("Dropping existing tables")
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        print(f"Schema ready ({len(Base.metadata.tables)} tables)")

        if seed:
            period_end = period_start + timedelta(days=27)
            rows = build_demo_rows(period_start, period_end)
            async with AsyncSession(engine) as session:
                # Workers first so time rows can reference them
                session.add_all([row for row in rows if isinstance(row, Worker)])
                await session.flush()
                session.add_all([row for row in rows if not isinstance(row, Worker)])
                await session.commit()
            print(f"Seeded {len(rows)} rows for {period_start}..{period_end}")
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the payroll reconciliation schema")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--drop", action="store_true", help="Drop all tables first")
    parser.add_argument("--seed", action="store_true", help="Load demo workers and time")
    parser.add_argument(
        "--period-start",
        type=date.fromisoformat,
        default=date(2026, 2, 2),
        help="First day of the demo period (YYYY-MM-DD)",
    )
    args = parser.parse_args()

    database_url = args.database_url or get_settings().database_url
    asyncio.run(init_db(database_url, args.drop, args.seed, args.period_start))


if __name__ == "__main__":
    main()
