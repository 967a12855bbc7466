# kpi_portal/brand_kpi_reporting/ytd.py
"""
YTD Aggregator

Year-to-date figures over the elapsed window of a year:
- past years: January..December
- current year: January..current month
- future years: nothing (YTD is 0)

Months without a resolved value are skipped, so an absent month never
pulls an average down. An empty window aggregates to 0.

A percentage KPI is resolved month by month first and the monthly ratios
are then summed or averaged per its ytd_calc.

VERSION: 1.1.0
CHANGELOG:
- v1.1.0: Month-to-date aggregation over daily snapshots
"""

import logging
from datetime import date
from typing import Callable, List, Optional

from .constants import GRANULARITY_DAILY, YTD_SUM
from .exceptions import ValidationError
from .periods import Period, elapsed_day_boundary, elapsed_month_boundary
from .resolver import DerivedValueResolver

logger = logging.getLogger(__name__)


def aggregate_values(values: List[Optional[float]], ytd_calc: str) -> float:
    """Sum or average the present values; 0 when none are present."""
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    if ytd_calc == YTD_SUM:
        return float(sum(present))
    return float(sum(present) / len(present))


class YtdAggregator:
    """
    Cumulative figures for one KPI.

    Usage:
        aggregator = YtdAggregator(resolver)
        ytd = aggregator.aggregate_ytd(kpi_id, brand_id, 2025)
    """

    def __init__(self, resolver: DerivedValueResolver, clock: Callable[[], date] = date.today):
        self.resolver = resolver
        self._clock = clock

    def _as_of(self, as_of: Optional[date]) -> date:
        return as_of or self._clock()

    def monthly_series(self, kpi_id: str, brand_id: str, year: int) -> List[Optional[float]]:
        """Resolved value of each month (January first); None where absent."""
        return [
            self.resolver.resolve_value(kpi_id, brand_id, Period(year, month))
            for month in range(1, 13)
        ]

    def aggregate_ytd(
        self,
        kpi_id: str,
        brand_id: str,
        year: int,
        as_of: Optional[date] = None,
    ) -> float:
        """
        Sum or average of the resolved monthly values over the elapsed window.

        Args:
            kpi_id: KPI to aggregate
            brand_id: Brand scope
            year: Reporting year
            as_of: Reference date (defaults to the injected clock)

        Returns:
            The aggregate, 0.0 when no month in the window has a value
        """
        definition = self.resolver.definitions.resolve_definition(kpi_id)
        as_of = self._as_of(as_of)
        last_month = elapsed_month_boundary(year, as_of)
        daily = self.resolver.values.granularity == GRANULARITY_DAILY

        values = [
            self.resolver.resolve_value(
                kpi_id, brand_id, Period(year, month),
                through_day=elapsed_day_boundary(year, month, as_of) if daily else None,
            )
            for month in range(1, last_month + 1)
        ]
        result = aggregate_values(values, definition.ytd_calc)

        logger.debug(f"YTD {kpi_id} {brand_id} {year} ({definition.ytd_calc}, months 1-{last_month}): {result}")
        return result

    def aggregate_month_to_date(
        self,
        kpi_id: str,
        brand_id: str,
        year: int,
        month: int,
        as_of: Optional[date] = None,
    ) -> float:
        """
        Cumulative value of a month from its daily reports.

        Direct KPIs sum their daily values up to the elapsed day; percentage
        KPIs divide the month-to-date sums of their operands.

        Raises:
            ValidationError: the resolver holds a monthly snapshot
        """
        if self.resolver.values.granularity != GRANULARITY_DAILY:
            raise ValidationError("month-to-date needs a daily snapshot")

        last_day = elapsed_day_boundary(year, month, self._as_of(as_of))
        if last_day == 0:
            return 0.0

        value = self.resolver.resolve_value(kpi_id, brand_id, Period(year, month), through_day=last_day)
        return 0.0 if value is None else float(value)
