# kpi_portal/brand_kpi_reporting/metrics.py
"""
KPI Overview for Brand KPI Reporting

Combines the resolvers into the per-KPI overview rows shown on the
monthly overview page: selected month value, YTD, target and progress.

A KPI with a broken definition yields a row flagged DEFINITION_ERROR;
the other KPIs of the brand are still computed.

VERSION: 1.3.0
CHANGELOG:
- v1.3.0: Daily-reporting brands show month-to-date as the month value
- v1.2.0: Brand/year targets override the KPI's static target
- v1.1.0: Per-KPI error isolation
"""

import logging
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from .constants import (
    CALC_TARGET,
    DEFINITION_ERROR,
    GRANULARITY_MONTHLY,
    MONTH_ORDER,
    ORDERING_CONTEXT_DEFAULT,
    TIER_NEUTRAL,
)
from .definitions import KpiDefinition, KpiDefinitionResolver
from .exceptions import DefinitionError
from .periods import Period, PeriodRange, elapsed_day_boundary
from .progress import compute_progress, progress_fill_width, resolve_target
from .queries import BrandKpiQueries, apply_ordering
from .reconciliation import ReconciledValues, ReconciliationAccessor
from .resolver import DerivedValueResolver
from .ytd import YtdAggregator

logger = logging.getLogger(__name__)

OVERVIEW_COLUMNS = [
    'kpi_id', 'name', 'category', 'unit', 'calculation_type', 'only_cumulative',
    'monthly', 'ytd', 'target', 'progress_percent', 'tier', 'fill_width', 'error',
]


class BrandKpiMetrics:
    """
    KPI overview calculations for one brand.

    Usage:
        metrics = BrandKpiMetrics(definitions, values, targets)
        rows = metrics.get_kpi_overview(brand_id, 2025, 3, kpi_ids)
    """

    def __init__(
        self,
        definitions: KpiDefinitionResolver,
        values: ReconciledValues,
        targets: Optional[Mapping[str, float]] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.definitions = definitions
        self.values = values
        self.targets = dict(targets or {})
        self._clock = clock
        self.resolver = DerivedValueResolver(definitions, values)
        self.aggregator = YtdAggregator(self.resolver, clock=clock)

    # =========================================================================
    # OVERVIEW
    # =========================================================================

    def get_kpi_overview(
        self,
        brand_id: str,
        year: int,
        month: int,
        kpi_ids: List[str],
        as_of: Optional[date] = None,
    ) -> List[Dict]:
        """
        Build one overview row per KPI, in the order given.

        Args:
            brand_id: Brand scope
            year: Reporting year
            month: Selected month
            kpi_ids: KPIs to show (already in the user's ordering)
            as_of: Reference date (defaults to the injected clock)

        Returns:
            List of dicts with the OVERVIEW_COLUMNS keys
        """
        as_of = as_of or self._clock()
        rows = []
        failed = 0

        for kpi_id in kpi_ids:
            kpi_id = str(kpi_id)
            try:
                rows.append(self._kpi_row(kpi_id, brand_id, year, month, as_of))
            except DefinitionError as e:
                logger.warning(f"⚠️ {e.code} for KPI {kpi_id}: {e}")
                rows.append(self._error_row(kpi_id))
                failed += 1

        logger.debug(f"📊 Overview {brand_id} {year}-{month:02d}: {len(rows)} KPIs, {failed} with errors")
        return rows

    def _monthly_value(self, kpi_id: str, brand_id: str, year: int, month: int, as_of: date) -> Optional[float]:
        period = Period(year, month)
        if self.values.granularity == GRANULARITY_MONTHLY:
            return self.resolver.resolve_value(kpi_id, brand_id, period)

        last_day = elapsed_day_boundary(year, month, as_of)
        if last_day == 0:
            return None
        return self.resolver.resolve_value(kpi_id, brand_id, period, through_day=last_day)

    def _kpi_row(self, kpi_id: str, brand_id: str, year: int, month: int, as_of: date) -> Dict:
        definition = self.definitions.resolve_definition(kpi_id)
        target = resolve_target(definition, self.targets)

        # Target-only KPIs have no periodic values to measure progress with
        if definition.calculation_type == CALC_TARGET and not definition.has_target_data:
            return self._row(definition, monthly=None, ytd=0.0, target=target,
                             percent=None, tier=TIER_NEUTRAL)

        monthly = self._monthly_value(kpi_id, brand_id, year, month, as_of)
        ytd = self.aggregator.aggregate_ytd(kpi_id, brand_id, year, as_of=as_of)
        progress = compute_progress(ytd, target)

        return self._row(definition, monthly=monthly, ytd=ytd, target=target,
                         percent=progress.percent, tier=progress.tier)

    @staticmethod
    def _row(
        definition: KpiDefinition,
        monthly: Optional[float],
        ytd: float,
        target: Optional[float],
        percent: Optional[int],
        tier: str,
    ) -> Dict:
        return {
            'kpi_id': definition.id,
            'name': definition.name,
            'category': definition.category,
            'unit': definition.unit,
            'calculation_type': definition.calculation_type,
            'only_cumulative': definition.only_cumulative,
            'monthly': monthly,
            'ytd': ytd,
            'target': target,
            'progress_percent': percent,
            'tier': tier,
            'fill_width': progress_fill_width(percent),
            'error': None,
        }

    def _error_row(self, kpi_id: str) -> Dict:
        # The definition may exist but be broken; show whatever is known
        definition = self.definitions.get(kpi_id)

        return {
            'kpi_id': kpi_id,
            'name': definition.name if definition else kpi_id,
            'category': definition.category if definition else None,
            'unit': definition.unit if definition else None,
            'calculation_type': definition.calculation_type if definition else None,
            'only_cumulative': definition.only_cumulative if definition else False,
            'monthly': None,
            'ytd': 0.0,
            'target': None,
            'progress_percent': None,
            'tier': TIER_NEUTRAL,
            'fill_width': 0.0,
            'error': DEFINITION_ERROR,
        }

    # =========================================================================
    # TREND
    # =========================================================================

    def get_monthly_trend(self, kpi_id: str, brand_id: str, year: int) -> pd.DataFrame:
        """
        Monthly values of one KPI for trend charts.

        Returns:
            DataFrame with columns: month, month_name, value (None where absent)
        """
        series = self.aggregator.monthly_series(kpi_id, brand_id, year)
        return pd.DataFrame({
            'month': range(1, 13),
            'month_name': MONTH_ORDER,
            'value': series,
        })


def overview_dataframe(rows: List[Dict]) -> pd.DataFrame:
    """Overview rows as a DataFrame, keeping row order."""
    return pd.DataFrame(rows, columns=OVERVIEW_COLUMNS)


def load_overview(
    queries: BrandKpiQueries,
    accessor: ReconciliationAccessor,
    brand_id: str,
    year: int,
    month: int,
    user_id: Optional[str] = None,
    granularity: str = GRANULARITY_MONTHLY,
    context: str = ORDERING_CONTEXT_DEFAULT,
    clock: Callable[[], date] = date.today,
    as_of: Optional[date] = None,
) -> Tuple[BrandKpiMetrics, List[Dict]]:
    """
    Load everything one brand's overview needs and compute it.

    One batch read of the whole year's reconciled cells feeds every KPI,
    including percentage operands that are not displayed themselves.

    Returns:
        Tuple of (metrics, overview rows); the metrics object serves the
        trend charts of the same snapshot
    """
    kpi_ids = queries.get_brand_kpi_ids(brand_id)
    if user_id is not None:
        kpi_ids = apply_ordering(kpi_ids, queries.get_kpi_ordering(user_id, brand_id, context))

    definitions = queries.get_kpi_definitions(kpi_ids)
    rows = accessor.fetch_reconciled_range(
        brand_id,
        PeriodRange(year),
        kpi_ids=definitions.operand_ids(kpi_ids),
        granularity=granularity,
    )
    values = accessor.to_values(rows, granularity)
    targets = queries.get_targets(brand_id, year, kpi_ids)

    metrics = BrandKpiMetrics(definitions, values, targets, clock=clock)
    overview = metrics.get_kpi_overview(brand_id, year, month, kpi_ids, as_of=as_of)

    logger.info(f"✅ Overview loaded for {brand_id} {year}-{month:02d} "
                f"({granularity}, {len(kpi_ids)} KPIs, {len(rows)} cells)")
    return metrics, overview
