"""Display formatting and Altair chart builders."""

import altair as alt
import pandas as pd
import pytest

from kpi_portal.brand_kpi_reporting import (
    build_monthly_trend_chart,
    build_progress_chart,
    format_kpi_value,
    format_number,
    format_progress,
)


@pytest.mark.parametrize("value, unit, expected", [
    (None, "adet", "—"),
    (float("nan"), "%", "—"),
    (25, "%", "25,0%"),
    (1234, "TL", "₺1.234"),
    (1234.5, "adet", "1.234,50 adet"),
    (120, "adet", "120 adet"),
    (0, "", "0"),
    (1000000, None, "1.000.000"),
])
def test_format_kpi_value(value, unit, expected):
    assert format_kpi_value(value, unit) == expected


def test_format_number_decimals():
    assert format_number(1234.567, 2) == "1.234,57"
    assert format_number(None) == "—"


def test_format_progress():
    assert format_progress(85, "amber") == "🟡 85%"
    assert format_progress(None, "neutral") == "⚪ —"


class TestCharts:
    def test_progress_chart(self):
        df = pd.DataFrame({
            "name": ["Sales", "Visits"],
            "progress_percent": [120, None],
            "tier": ["green", "neutral"],
        })
        assert isinstance(build_progress_chart(df), alt.LayerChart)

    def test_progress_chart_empty(self):
        df = pd.DataFrame(columns=["name", "progress_percent", "tier"])
        assert isinstance(build_progress_chart(df), alt.Chart)

    def test_trend_with_target(self):
        trend = pd.DataFrame({"month": [1, 2], "month_name": ["Jan", "Feb"], "value": [3.0, None]})
        assert isinstance(build_monthly_trend_chart(trend, "Sales", target_value=10), alt.LayerChart)

    def test_trend_without_target(self):
        trend = pd.DataFrame({"month": [1], "month_name": ["Jan"], "value": [3.0]})
        assert isinstance(build_monthly_trend_chart(trend, "Sales"), alt.Chart)

    def test_trend_all_absent(self):
        trend = pd.DataFrame({"month": [1], "month_name": ["Jan"], "value": [None]})
        chart = build_monthly_trend_chart(trend)
        assert isinstance(chart, alt.Chart)
        assert "No data" in chart.to_json()
