# kpi_portal/brand_kpi_reporting/queries.py
"""
Data Loading for Brand KPI Reporting

Handles the lookups around the reconciliation engine:
- Which KPIs a brand reports (brand_kpi_mappings, else user assignments)
- KPI definitions (kpis)
- Brand/year targets (brand_kpi_targets)
- Per-user KPI ordering (user_kpi_ordering)

VERSION: 1.2.0
CHANGELOG:
- v1.2.0: Ordering saved as one delete-then-insert transaction
- v1.1.0: Fall back to user assignments when a brand has no KPI mapping
"""

import logging
from typing import Dict, Iterable, List, Optional

from .constants import ORDERING_CONTEXT_DEFAULT, ORDERING_CONTEXTS
from .definitions import KpiDefinitionResolver
from .exceptions import ValidationError
from .parsing import parse_number
from .store import TableStore

logger = logging.getLogger(__name__)


class BrandKpiQueries:
    """
    Data loading class for brand KPI reporting.

    Usage:
        queries = BrandKpiQueries(TableStore(get_db_engine()))

        kpi_ids = queries.get_brand_kpi_ids(brand_id)
        definitions = queries.get_kpi_definitions(kpi_ids)
        targets = queries.get_targets(brand_id, 2025)
    """

    def __init__(self, store: TableStore):
        self.store = store

    # =========================================================================
    # BRAND KPIS
    # =========================================================================

    def get_brands(self) -> List[str]:
        """Every brand with mapped or user-assigned KPIs."""
        mapped = self.store.select('brand_kpi_mappings')
        assigned = self.store.select('user_brand_kpis')
        brands = set(mapped['brand_id'].astype(str)) | set(assigned['brand_id'].astype(str))
        return sorted(brands)

    def get_brand_kpi_ids(self, brand_id: str) -> List[str]:
        """
        KPI ids reported for a brand.

        Returns:
            KPI ids from brand_kpi_mappings; when the brand has no mapping,
            the union of every user's assigned KPIs for the brand
        """
        mapped = self.store.select('brand_kpi_mappings', {'brand_id': brand_id}, order_by=['kpi_id'])
        if not mapped.empty:
            return [str(k) for k in mapped['kpi_id']]

        assigned = self.store.select('user_brand_kpis', {'brand_id': brand_id}, order_by=['kpi_id'])
        kpi_ids = list(dict.fromkeys(str(k) for k in assigned['kpi_id'])) if not assigned.empty else []

        logger.debug(f"Brand {brand_id} has no KPI mapping, using {len(kpi_ids)} user-assigned KPIs")
        return kpi_ids

    def get_kpi_definitions(self, kpi_ids: Optional[Iterable[str]] = None) -> KpiDefinitionResolver:
        return KpiDefinitionResolver.from_store(self.store, kpi_ids)

    # =========================================================================
    # TARGETS
    # =========================================================================

    def get_targets(
        self,
        brand_id: str,
        year: int,
        kpi_ids: Optional[Iterable[str]] = None,
    ) -> Dict[str, float]:
        """
        Brand targets for a year.

        Returns:
            Dict kpi_id -> target (KPIs without a saved target are absent)
        """
        match: Dict[str, object] = {'brand_id': brand_id, 'year': year}
        if kpi_ids is not None:
            match['kpi_id'] = [str(k) for k in kpi_ids]

        df = self.store.select('brand_kpi_targets', match)
        targets: Dict[str, float] = {}
        for record in df.to_dict('records'):
            target = parse_number(record.get('target'))
            if target is not None:
                targets[str(record['kpi_id'])] = target
        return targets

    def save_target(self, brand_id: str, year: int, kpi_id: str, value: object) -> Optional[float]:
        """
        Store the brand's target for a KPI and year.

        A cleared value removes the target row.

        Returns:
            The stored target, or None when it was removed
        """
        target = parse_number(value)
        if target is None:
            self.delete_target(brand_id, year, kpi_id)
            return None

        self.store.upsert('brand_kpi_targets', {
            'brand_id': brand_id,
            'kpi_id': str(kpi_id),
            'year': year,
            'target': target,
        })
        logger.info(f"🎯 Target saved: {brand_id} {kpi_id} {year} = {target}")
        return target

    def delete_target(self, brand_id: str, year: int, kpi_id: str) -> int:
        removed = self.store.delete('brand_kpi_targets', {
            'brand_id': brand_id,
            'kpi_id': str(kpi_id),
            'year': year,
        })
        logger.info(f"🗑️ Target removed: {brand_id} {kpi_id} {year} ({removed} row)")
        return removed

    # =========================================================================
    # KPI ORDERING
    # =========================================================================

    @staticmethod
    def _check_context(context: str) -> None:
        if context not in ORDERING_CONTEXTS:
            raise ValidationError(f"Unknown ordering context: {context}")

    def get_kpi_ordering(
        self,
        user_id: str,
        brand_id: str,
        context: str = ORDERING_CONTEXT_DEFAULT,
    ) -> List[str]:
        """The user's saved KPI order for a brand; empty when never saved."""
        self._check_context(context)
        df = self.store.select(
            'user_kpi_ordering',
            {'user_id': user_id, 'brand_id': brand_id, 'context': context},
            order_by=['order_index'],
        )
        return [str(k) for k in df['kpi_id']] if not df.empty else []

    def save_kpi_ordering(
        self,
        user_id: str,
        brand_id: str,
        kpi_ids: List[str],
        context: str = ORDERING_CONTEXT_DEFAULT,
    ) -> int:
        """Replace the user's KPI order for a brand with `kpi_ids`."""
        self._check_context(context)
        ordered = list(dict.fromkeys(str(k) for k in kpi_ids))
        rows = [
            {
                'user_id': user_id,
                'brand_id': brand_id,
                'context': context,
                'kpi_id': kpi_id,
                'order_index': index,
            }
            for index, kpi_id in enumerate(ordered)
        ]
        saved = self.store.replace(
            'user_kpi_ordering',
            {'user_id': user_id, 'brand_id': brand_id, 'context': context},
            rows,
        )
        logger.info(f"💾 KPI ordering saved for user {user_id}, brand {brand_id} ({context}): {saved} KPIs")
        return saved


def apply_ordering(kpi_ids: List[str], ordering: List[str]) -> List[str]:
    """Order `kpi_ids` by the saved ordering; unordered KPIs keep their place after it."""
    position = {kpi_id: index for index, kpi_id in enumerate(ordering)}
    available = set(kpi_ids)
    ordered = [k for k in ordering if k in available]
    return ordered + [k for k in kpi_ids if k not in position]
