"""Brand KPIs, targets and ordering."""

import pytest

from kpi_portal.brand_kpi_reporting import BrandKpiQueries, ValidationError, apply_ordering

from conftest import BRAND, add_kpi


@pytest.fixture
def queries(store):
    return BrandKpiQueries(store)


class TestBrandKpis:
    def test_mapping(self, store, queries):
        store.upsert("brand_kpi_mappings", {"brand_id": BRAND, "kpi_id": "b"})
        store.upsert("brand_kpi_mappings", {"brand_id": BRAND, "kpi_id": "a"})
        store.upsert("user_brand_kpis", {"user_id": "u", "brand_id": BRAND, "kpi_id": "z"})

        assert queries.get_brand_kpi_ids(BRAND) == ["a", "b"]

    def test_falls_back_to_user_assignments(self, store, queries):
        store.upsert("user_brand_kpis", {"user_id": "u1", "brand_id": BRAND, "kpi_id": "x"})
        store.upsert("user_brand_kpis", {"user_id": "u2", "brand_id": BRAND, "kpi_id": "x"})
        store.upsert("user_brand_kpis", {"user_id": "u2", "brand_id": BRAND, "kpi_id": "y"})

        assert queries.get_brand_kpi_ids(BRAND) == ["x", "y"]

    def test_no_kpis(self, queries):
        assert queries.get_brand_kpi_ids(BRAND) == []

    def test_brands(self, store, queries):
        store.upsert("brand_kpi_mappings", {"brand_id": "b2", "kpi_id": "k"})
        store.upsert("user_brand_kpis", {"user_id": "u", "brand_id": "b1", "kpi_id": "k"})
        assert queries.get_brands() == ["b1", "b2"]

    def test_definitions(self, store, queries):
        add_kpi(store, "sales", unit="adet")
        assert queries.get_kpi_definitions(["sales"]).resolve_definition("sales").ytd_calc == "sum"


class TestTargets:
    def test_save_and_get(self, queries):
        queries.save_target(BRAND, 2025, "sales", "1.500")
        queries.save_target(BRAND, 2025, "sales", 2000)
        queries.save_target(BRAND, 2024, "sales", 900)

        assert queries.get_targets(BRAND, 2025) == {"sales": 2000.0}

    def test_delete(self, store, queries):
        queries.save_target(BRAND, 2025, "sales", 100)
        assert queries.delete_target(BRAND, 2025, "sales") == 1
        assert queries.get_targets(BRAND, 2025) == {}
        assert store.select("brand_kpi_targets").empty

    def test_cleared_target_is_removed(self, queries):
        queries.save_target(BRAND, 2025, "sales", 100)
        assert queries.save_target(BRAND, 2025, "sales", "") is None
        assert queries.get_targets(BRAND, 2025) == {}

    def test_kpi_filter(self, queries):
        queries.save_target(BRAND, 2025, "a", 1)
        queries.save_target(BRAND, 2025, "b", 2)
        assert queries.get_targets(BRAND, 2025, ["b"]) == {"b": 2.0}


class TestOrdering:
    def test_round_trip_and_replace(self, queries):
        queries.save_kpi_ordering("u", BRAND, ["c", "a", "b"])
        assert queries.get_kpi_ordering("u", BRAND) == ["c", "a", "b"]

        queries.save_kpi_ordering("u", BRAND, ["b", "a"])
        assert queries.get_kpi_ordering("u", BRAND) == ["b", "a"]

    def test_contexts_are_separate(self, queries):
        queries.save_kpi_ordering("u", BRAND, ["a", "b"], context="monthly-overview")
        assert queries.get_kpi_ordering("u", BRAND) == []
        assert queries.get_kpi_ordering("u", BRAND, "monthly-overview") == ["a", "b"]

    def test_unknown_context(self, queries):
        with pytest.raises(ValidationError):
            queries.get_kpi_ordering("u", BRAND, "dashboard-x")

    def test_duplicates_are_dropped(self, queries):
        assert queries.save_kpi_ordering("u", BRAND, ["a", "a", "b"]) == 2


def test_apply_ordering():
    assert apply_ordering(["a", "b", "c", "d"], ["c", "zzz", "a"]) == ["c", "a", "b", "d"]
    assert apply_ordering(["a", "b"], []) == ["a", "b"]
