"""Overview rows: month value, YTD, target and progress per KPI."""

import pytest

from kpi_portal.brand_kpi_reporting import (
    BrandKpiMetrics,
    BrandKpiQueries,
    KpiDefinition,
    KpiDefinitionResolver,
    load_overview,
    overview_dataframe,
)
from kpi_portal.brand_kpi_reporting.metrics import OVERVIEW_COLUMNS

from conftest import BRAND, TODAY, add_kpi, add_report, make_values, ts

DEFINITIONS = [
    KpiDefinition("sales", "Sales", unit="adet", ytd_calc="sum", target=100.0),
    KpiDefinition("visits", "Visits", unit="adet", ytd_calc="sum"),
    KpiDefinition("conv", "Conversion", calculation_type="percentage", unit="%",
                  numerator_kpi_id="sales", denominator_kpi_id="visits"),
    KpiDefinition("broken", "Broken", calculation_type="percentage", numerator_kpi_id="sales"),
    KpiDefinition("quota", "Quota", calculation_type="target", target=500.0),
]


def metrics_for(cells, targets=None, granularity="monthly"):
    return BrandKpiMetrics(
        KpiDefinitionResolver(DEFINITIONS),
        make_values(cells, granularity),
        targets,
        clock=lambda: TODAY,
    )


class TestOverview:
    def test_rows_follow_kpi_order(self):
        metrics = metrics_for({("sales", 1): 40.0, ("sales", 3): 45.0})
        rows = metrics.get_kpi_overview(BRAND, 2025, 3, ["visits", "sales"])
        assert [r["kpi_id"] for r in rows] == ["visits", "sales"]

    def test_month_ytd_and_progress(self):
        metrics = metrics_for({("sales", 1): 40.0, ("sales", 3): 45.0})
        row = metrics.get_kpi_overview(BRAND, 2025, 3, ["sales"])[0]

        assert row["monthly"] == 45.0
        assert row["ytd"] == 85.0
        assert row["target"] == 100.0
        assert (row["progress_percent"], row["tier"]) == (85, "amber")
        assert row["fill_width"] == 85.0
        assert row["error"] is None

    def test_brand_target_overrides_static(self):
        metrics = metrics_for({("sales", 1): 40.0}, targets={"sales": 40.0})
        row = metrics.get_kpi_overview(BRAND, 2025, 3, ["sales"])[0]
        assert (row["target"], row["progress_percent"], row["tier"]) == (40.0, 100, "green")

    def test_absent_month_is_none(self):
        metrics = metrics_for({("sales", 1): 40.0})
        row = metrics.get_kpi_overview(BRAND, 2025, 3, ["sales"])[0]
        assert row["monthly"] is None
        assert row["ytd"] == 40.0

    def test_no_target_is_neutral(self):
        metrics = metrics_for({("visits", 1): 10.0})
        row = metrics.get_kpi_overview(BRAND, 2025, 3, ["visits"])[0]
        assert (row["progress_percent"], row["tier"], row["fill_width"]) == (None, "neutral", 0.0)

    def test_broken_definition_is_isolated(self):
        metrics = metrics_for({("sales", 3): 10.0, ("visits", 3): 40.0})
        rows = metrics.get_kpi_overview(BRAND, 2025, 3, ["broken", "conv", "ghost"])
        by_id = {r["kpi_id"]: r for r in rows}

        assert by_id["broken"]["error"] == "DEFINITION_ERROR"
        assert by_id["broken"]["name"] == "Broken"
        assert by_id["ghost"]["error"] == "DEFINITION_ERROR"
        assert by_id["ghost"]["name"] == "ghost"
        assert by_id["conv"]["error"] is None
        assert by_id["conv"]["monthly"] == pytest.approx(25.0)

    def test_target_kpi_without_data(self):
        metrics = metrics_for({("quota", 3): 999.0})
        row = metrics.get_kpi_overview(BRAND, 2025, 3, ["quota"])[0]
        assert row["target"] == 500.0
        assert row["monthly"] is None
        assert row["tier"] == "neutral"

    def test_daily_month_value_is_month_to_date(self):
        cells = {("sales", 3, 2): 5.0, ("sales", 3, 15): 7.0, ("sales", 3, 28): 100.0}
        metrics = metrics_for(cells, granularity="daily")
        row = metrics.get_kpi_overview(BRAND, 2025, 3, ["sales"])[0]
        assert row["monthly"] == 12.0

    def test_daily_future_month(self):
        metrics = metrics_for({("sales", 4, 1): 5.0}, granularity="daily")
        row = metrics.get_kpi_overview(BRAND, 2025, 4, ["sales"])[0]
        assert row["monthly"] is None


def test_monthly_trend():
    metrics = metrics_for({("sales", 2): 4.0})
    trend = metrics.get_monthly_trend("sales", BRAND, 2025)

    assert list(trend.columns) == ["month", "month_name", "value"]
    assert len(trend) == 12
    assert trend.loc[1, "value"] == 4.0
    assert trend["value"].isna().sum() == 11


def test_overview_dataframe_columns():
    rows = metrics_for({}).get_kpi_overview(BRAND, 2025, 3, ["sales", "broken"])
    df = overview_dataframe(rows)
    assert list(df.columns) == OVERVIEW_COLUMNS
    assert df["kpi_id"].tolist() == ["sales", "broken"]


def test_overview_dataframe_empty():
    assert list(overview_dataframe([]).columns) == OVERVIEW_COLUMNS


def test_load_overview_from_store(store, accessor):
    add_kpi(store, "orders", unit="adet", ytd_calc="sum", target=200)
    add_kpi(store, "visits", unit="adet", ytd_calc="sum")
    add_kpi(store, "conv", calculation_type="percentage", unit="%",
            numerator_kpi_id="orders", denominator_kpi_id="visits")
    store.upsert("brand_kpi_mappings", {"brand_id": BRAND, "kpi_id": "orders"})
    store.upsert("brand_kpi_mappings", {"brand_id": BRAND, "kpi_id": "conv"})

    add_report(store, "user-a", "orders", 3, 40, ts(10, hour=9))
    add_report(store, "user-b", "orders", 3, 60, ts(10, hour=12))
    add_report(store, "user-a", "visits", 3, 300, ts(10))

    queries = BrandKpiQueries(store)
    queries.save_target(BRAND, 2025, "orders", 120)
    queries.save_kpi_ordering("user-a", BRAND, ["orders"])

    metrics, rows = load_overview(queries, accessor, BRAND, 2025, 3, user_id="user-a", clock=lambda: TODAY)
    by_id = {r["kpi_id"]: r for r in rows}

    # visits is loaded as an operand but not shown
    assert [r["kpi_id"] for r in rows] == ["orders", "conv"]
    assert by_id["orders"]["monthly"] == 60.0
    assert (by_id["orders"]["target"], by_id["orders"]["progress_percent"]) == (120.0, 50)
    assert by_id["conv"]["monthly"] == pytest.approx(20.0)
    assert metrics.get_monthly_trend("orders", BRAND, 2025).loc[2, "value"] == 60.0


def test_load_overview_nested_percentage(store, accessor):
    add_kpi(store, "orders", unit="adet")
    add_kpi(store, "visits", unit="adet")
    add_kpi(store, "conv", calculation_type="percentage",
            numerator_kpi_id="orders", denominator_kpi_id="visits")
    add_kpi(store, "rel", calculation_type="percentage",
            numerator_kpi_id="conv", denominator_kpi_id="visits")
    store.upsert("brand_kpi_mappings", {"brand_id": BRAND, "kpi_id": "rel"})

    add_report(store, "user-a", "orders", 3, 50, ts(10))
    add_report(store, "user-a", "visits", 3, 200, ts(10))

    _, rows = load_overview(BrandKpiQueries(store), accessor, BRAND, 2025, 3, clock=lambda: TODAY)

    assert rows[0]["error"] is None
    assert rows[0]["monthly"] == pytest.approx(0.25 / 200.0)
