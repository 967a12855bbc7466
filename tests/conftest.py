"""
Shared fixtures: an in-memory SQLite store with the reporting schema,
a fixed "today" and a controllable monotonic clock for cache TTLs.
"""

import os
from datetime import date, datetime, timezone

import pytest

# Config is a singleton built at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from kpi_portal.brand_kpi_reporting import (  # noqa: E402
    PeriodKey,
    ReconciledRow,
    ReconciledValues,
    ReconciliationAccessor,
    TableStore,
    create_all,
)

TODAY = date(2025, 3, 15)
BRAND = "brand-1"


def ts(day: int, hour: int = 9, month: int = 3, year: int = 2025) -> datetime:
    return datetime(year, month, day, hour, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return TableStore(engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def accessor(store, clock):
    return ReconciliationAccessor(store, ttl_seconds=300, clock=clock)


@pytest.fixture
def today():
    return lambda: TODAY


def add_kpi(store, kpi_id, **fields):
    row = {"id": kpi_id, "name": fields.pop("name", kpi_id.title()), "calculation_type": "direct"}
    row.update(fields)
    store.upsert("kpis", row)


def add_report(store, user_id, kpi_id, month, value, updated_at, day=None, year=2025, brand_id=BRAND):
    row = {
        "user_id": user_id,
        "brand_id": brand_id,
        "kpi_id": kpi_id,
        "year": year,
        "month": month,
        "value": None if value is None else str(value),
        "updated_at": updated_at,
    }
    if day is None:
        store.upsert("kpi_reports", row)
    else:
        row["day"] = day
        store.upsert("kpi_daily_reports", row)


def make_values(cells, granularity="monthly", year=2025, brand_id=BRAND):
    """Snapshot from {(kpi_id, month[, day]): value}."""
    rows = {}
    for cell, value in cells.items():
        kpi_id, month, *day = cell
        key = PeriodKey(brand_id, kpi_id, year, month, day[0] if day else None)
        rows[key] = ReconciledRow(value=value, updated_at=None)
    return ReconciledValues(rows, granularity)
