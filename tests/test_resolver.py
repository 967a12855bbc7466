"""Direct, target and percentage resolution."""

import logging

import pytest

from kpi_portal.brand_kpi_reporting import (
    DefinitionError,
    DerivedValueResolver,
    KpiDefinition,
    KpiDefinitionResolver,
    Period,
)

from conftest import BRAND, make_values

MARCH = Period(2025, 3)


def conversion(unit="%", **fields):
    return KpiDefinition("conv", "Conversion", calculation_type="percentage", unit=unit,
                         numerator_kpi_id="orders", denominator_kpi_id="visits", **fields)


DIRECTS = [KpiDefinition("orders", "Orders", unit="adet"), KpiDefinition("visits", "Visits", unit="adet")]


def resolver_for(definitions, cells, granularity="monthly"):
    return DerivedValueResolver(KpiDefinitionResolver(definitions), make_values(cells, granularity))


class TestDirect:
    def test_value(self):
        resolver = resolver_for(DIRECTS, {("orders", 3): 50.0})
        assert resolver.resolve_value("orders", BRAND, MARCH) == 50.0

    def test_absent(self):
        resolver = resolver_for(DIRECTS, {})
        assert resolver.resolve_value("orders", BRAND, MARCH) is None

    def test_zero(self):
        resolver = resolver_for(DIRECTS, {("orders", 3): 0.0})
        assert resolver.resolve_value("orders", BRAND, MARCH) == 0.0


class TestPercentage:
    def test_percent_unit_scales(self):
        resolver = resolver_for(DIRECTS + [conversion("%")], {("orders", 3): 50.0, ("visits", 3): 200.0})
        assert resolver.resolve_value("conv", BRAND, MARCH) == pytest.approx(25.0)

    def test_plain_ratio(self):
        resolver = resolver_for(DIRECTS + [conversion("")], {("orders", 3): 50.0, ("visits", 3): 200.0})
        assert resolver.resolve_value("conv", BRAND, MARCH) == pytest.approx(0.25)

    def test_zero_denominator(self):
        resolver = resolver_for(DIRECTS + [conversion()], {("orders", 3): 50.0, ("visits", 3): 0.0})
        assert resolver.resolve_value("conv", BRAND, MARCH) is None

    def test_missing_operand(self):
        resolver = resolver_for(DIRECTS + [conversion()], {("orders", 3): 50.0})
        assert resolver.resolve_value("conv", BRAND, MARCH) is None

    def test_zero_numerator(self):
        resolver = resolver_for(DIRECTS + [conversion()], {("orders", 3): 0.0, ("visits", 3): 10.0})
        assert resolver.resolve_value("conv", BRAND, MARCH) == 0.0

    def test_daily_month_to_date_uses_operand_sums(self):
        cells = {
            ("orders", 3, 1): 1.0, ("visits", 3, 1): 10.0,
            ("orders", 3, 2): 3.0, ("visits", 3, 2): 10.0,
        }
        resolver = resolver_for(DIRECTS + [conversion()], cells, "daily")
        assert resolver.resolve_value("conv", BRAND, MARCH) == pytest.approx(20.0)
        assert resolver.resolve_value("conv", BRAND, MARCH, through_day=1) == pytest.approx(10.0)


class TestTarget:
    def test_without_target_data(self):
        definitions = [KpiDefinition("quota", "Quota", calculation_type="target")]
        resolver = resolver_for(definitions, {("quota", 3): 100.0})
        assert resolver.resolve_value("quota", BRAND, MARCH) is None

    def test_with_target_data(self):
        definitions = [KpiDefinition("quota", "Quota", calculation_type="target", has_target_data=True)]
        resolver = resolver_for(definitions, {("quota", 3): 100.0})
        assert resolver.resolve_value("quota", BRAND, MARCH) == 100.0


class TestDepthGuard:
    def test_self_reference(self):
        definitions = DIRECTS + [
            KpiDefinition("loop", "Loop", calculation_type="percentage",
                          numerator_kpi_id="loop", denominator_kpi_id="visits"),
        ]
        resolver = resolver_for(definitions, {("visits", 3): 1.0})
        with pytest.raises(DefinitionError):
            resolver.resolve_value("loop", BRAND, MARCH)

    def test_one_nested_percentage_is_allowed(self):
        definitions = DIRECTS + [
            conversion(""),
            KpiDefinition("rel", "Relative", calculation_type="percentage", unit="",
                          numerator_kpi_id="conv", denominator_kpi_id="visits"),
        ]
        resolver = resolver_for(definitions, {("orders", 3): 50.0, ("visits", 3): 200.0})
        assert resolver.resolve_value("rel", BRAND, MARCH) == pytest.approx(0.25 / 200.0)

    def test_too_deep(self):
        definitions = DIRECTS + [
            conversion(""),
            KpiDefinition("rel", "Relative", calculation_type="percentage",
                          numerator_kpi_id="conv", denominator_kpi_id="visits"),
            KpiDefinition("rel2", "Relative 2", calculation_type="percentage",
                          numerator_kpi_id="rel", denominator_kpi_id="visits"),
        ]
        resolver = resolver_for(definitions, {("orders", 3): 50.0, ("visits", 3): 200.0})
        with pytest.raises(DefinitionError):
            resolver.resolve_value("rel2", BRAND, MARCH)


def test_resolve_many_isolates_errors(caplog):
    definitions = DIRECTS + [
        conversion(),
        KpiDefinition("broken", "Broken", calculation_type="percentage", numerator_kpi_id="orders"),
    ]
    resolver = resolver_for(definitions, {("orders", 3): 50.0, ("visits", 3): 200.0})

    with caplog.at_level(logging.WARNING):
        result = resolver.resolve_many(["orders", "broken", "missing", "conv"], BRAND, MARCH)

    assert result == {"orders": 50.0, "broken": None, "missing": None, "conv": pytest.approx(25.0)}
    assert "DEFINITION_ERROR" in caplog.text
