# kpi_portal/brand_kpi_reporting/resolver.py
"""
Derived Value Resolver

Turns a KPI definition plus reconciled cells into a single number for one
period. Pure: all cells come from a ReconciledValues snapshot loaded in
one batch beforehand.

Calculation types:
- direct: the reconciled value, or None when nobody reported it
- target: None unless the KPI has periodic target data, then like direct
- percentage: numerator / denominator for the same period, scaled by 100
  when the KPI's unit is '%'. Either operand absent, or a denominator of
  exactly zero, gives None.

VERSION: 1.2.0
CHANGELOG:
- v1.2.0: resolve_many isolates per-KPI definition errors
- v1.1.0: Depth guard for percentage chains
"""

import logging
from typing import Dict, Iterable, Optional

from .constants import CALC_DIRECT, CALC_PERCENTAGE, CALC_TARGET, MAX_RESOLVE_DEPTH
from .definitions import KpiDefinitionResolver
from .exceptions import DefinitionError
from .periods import Period
from .reconciliation import ReconciledValues

logger = logging.getLogger(__name__)


class DerivedValueResolver:
    """
    Resolve direct, target and percentage KPIs for a single period.

    Usage:
        resolver = DerivedValueResolver(definitions, values)
        value = resolver.resolve_value(kpi_id, brand_id, Period(2025, 3))
    """

    def __init__(self, definitions: KpiDefinitionResolver, values: ReconciledValues):
        self.definitions = definitions
        self.values = values

    def resolve_value(
        self,
        kpi_id: str,
        brand_id: str,
        period: Period,
        through_day: Optional[int] = None,
    ) -> Optional[float]:
        """
        Resolve one KPI for one period.

        Args:
            kpi_id: KPI to resolve
            brand_id: Brand scope (the snapshot already holds one brand only)
            period: Month, or a single day on a daily snapshot
            through_day: Month-to-date cutoff on a daily snapshot

        Returns:
            The derived value, or None when it cannot be computed

        Raises:
            DefinitionError: broken definition, or a chain deeper than
                MAX_RESOLVE_DEPTH
        """
        return self._resolve(str(kpi_id), brand_id, period, through_day, depth=0)

    def _resolve(
        self,
        kpi_id: str,
        brand_id: str,
        period: Period,
        through_day: Optional[int],
        depth: int,
    ) -> Optional[float]:
        if depth > MAX_RESOLVE_DEPTH:
            raise DefinitionError(
                f"KPI {kpi_id} exceeds resolution depth {MAX_RESOLVE_DEPTH} (cycle or nested percentage)",
                kpi_id=kpi_id,
            )

        definition = self.definitions.resolve_definition(kpi_id)

        if definition.calculation_type == CALC_DIRECT:
            return self._cell(kpi_id, period, through_day)

        if definition.calculation_type == CALC_TARGET:
            if not definition.has_target_data:
                return None
            return self._cell(kpi_id, period, through_day)

        if definition.calculation_type == CALC_PERCENTAGE:
            numerator = self._resolve(definition.numerator_kpi_id, brand_id, period, through_day, depth + 1)
            denominator = self._resolve(definition.denominator_kpi_id, brand_id, period, through_day, depth + 1)
            if numerator is None or denominator is None:
                return None
            if denominator == 0:
                logger.debug(f"KPI {kpi_id}: zero denominator for {brand_id} {period}")
                return None

            ratio = numerator / denominator
            return ratio * 100 if definition.is_percent_unit else ratio

        # resolve_definition already rejects unknown types
        raise DefinitionError(f"KPI {kpi_id} has unsupported calculation_type", kpi_id=kpi_id)

    def _cell(self, kpi_id: str, period: Period, through_day: Optional[int]) -> Optional[float]:
        return self.values.value(kpi_id, period.year, period.month, period.day, through_day)

    def resolve_many(
        self,
        kpi_ids: Iterable[str],
        brand_id: str,
        period: Period,
        through_day: Optional[int] = None,
    ) -> Dict[str, Optional[float]]:
        """Resolve several KPIs; a broken definition only blanks its own KPI."""
        results: Dict[str, Optional[float]] = {}
        for kpi_id in kpi_ids:
            kpi_id = str(kpi_id)
            try:
                results[kpi_id] = self.resolve_value(kpi_id, brand_id, period, through_day)
            except DefinitionError as e:
                logger.warning(f"⚠️ {e.code} for KPI {kpi_id}: {e}")
                results[kpi_id] = None
        return results
