# kpi_portal/brand_kpi_reporting/definitions.py
"""
KPI Definition Resolver

Pure lookup of a KPI's calculation strategy. A `percentage` KPI missing
either operand id is a definition error: it is never downgraded to
`direct`.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .constants import (
    CALC_DIRECT,
    CALC_PERCENTAGE,
    CALC_TARGET,
    CALCULATION_TYPES,
    CURRENCY_UNITS,
    MAX_RESOLVE_DEPTH,
    PERCENT_UNITS,
    SUMMABLE_UNIT_KEYWORDS,
    YTD_AVERAGE,
    YTD_CALC_ALIASES,
    YTD_SUM,
)
from .exceptions import DefinitionError
from .parsing import parse_number

logger = logging.getLogger(__name__)


def _normalize(text: Optional[str]) -> str:
    if text is None or (not isinstance(text, str) and pd.isna(text)):
        return ''
    return str(text).strip().lower()


def _optional_id(value: object) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def _flag(value: object) -> bool:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return False
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes')
    return bool(value)


def default_ytd_calc(unit: Optional[str]) -> str:
    """Counts, points and currency add up over months; rates are averaged."""
    unit_norm = _normalize(unit)
    if any(keyword in unit_norm for keyword in SUMMABLE_UNIT_KEYWORDS):
        return YTD_SUM
    return YTD_AVERAGE


def normalize_ytd_calc(ytd_calc: Optional[str], unit: Optional[str]) -> str:
    key = _normalize(ytd_calc)
    if not key:
        return default_ytd_calc(unit)
    if key not in YTD_CALC_ALIASES:
        logger.warning(f"Unknown ytd_calc {ytd_calc!r}, falling back to unit default")
        return default_ytd_calc(unit)
    return YTD_CALC_ALIASES[key]


@dataclass(frozen=True)
class KpiDefinition:
    """A KPI and its calculation strategy."""

    id: str
    name: str
    calculation_type: str = CALC_DIRECT
    unit: Optional[str] = None
    category: Optional[str] = None
    numerator_kpi_id: Optional[str] = None
    denominator_kpi_id: Optional[str] = None
    target: Optional[float] = None
    has_target_data: bool = False
    ytd_calc: str = YTD_AVERAGE
    only_cumulative: bool = False

    @property
    def is_percent_unit(self) -> bool:
        unit = str(self.unit or '').strip()
        return unit == '%' or _normalize(unit) in PERCENT_UNITS

    @property
    def is_currency_unit(self) -> bool:
        return _normalize(self.unit) in CURRENCY_UNITS

    @property
    def is_percentage(self) -> bool:
        return self.calculation_type == CALC_PERCENTAGE

    @property
    def accepts_entries(self) -> bool:
        """Whether user-entered values for this KPI are ever resolved."""
        if self.calculation_type == CALC_TARGET:
            return self.has_target_data
        return self.calculation_type == CALC_DIRECT

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> 'KpiDefinition':
        """Build a definition from a `kpis` table row."""
        unit = record.get('unit')
        unit = None if unit is None or (not isinstance(unit, str) and pd.isna(unit)) else str(unit)
        calc_type = _normalize(record.get('calculation_type')) or CALC_DIRECT

        return cls(
            id=str(record['id']),
            name=str(record.get('name') or record['id']),
            calculation_type=calc_type,
            unit=unit,
            category=_optional_id(record.get('category')),
            numerator_kpi_id=_optional_id(record.get('numerator_kpi_id')),
            denominator_kpi_id=_optional_id(record.get('denominator_kpi_id')),
            target=parse_number(record.get('target')),
            has_target_data=_flag(record.get('has_target_data')),
            ytd_calc=normalize_ytd_calc(record.get('ytd_calc'), unit),
            only_cumulative=_flag(record.get('only_cumulative')),
        )


class KpiDefinitionResolver:
    """
    Lookup of KPI definitions by id.

    Usage:
        resolver = KpiDefinitionResolver.from_dataframe(kpis_df)
        definition = resolver.resolve_definition(kpi_id)
    """

    def __init__(self, definitions: Iterable[KpiDefinition]):
        self._definitions: Dict[str, KpiDefinition] = {d.id: d for d in definitions}

    @classmethod
    def from_dataframe(cls, kpis_df: pd.DataFrame) -> 'KpiDefinitionResolver':
        if kpis_df.empty:
            return cls([])
        return cls(KpiDefinition.from_record(r) for r in kpis_df.to_dict('records'))

    @classmethod
    def from_store(cls, store, kpi_ids: Optional[Iterable[str]] = None) -> 'KpiDefinitionResolver':
        """
        Load definitions from the `kpis` table.

        Percentage operands of the requested KPIs are loaded too, level by
        level down to MAX_RESOLVE_DEPTH, so the resolver can walk nested
        percentages without further round trips.
        """
        if kpi_ids is None:
            return cls.from_dataframe(store.select('kpis'))

        requested = [str(k) for k in kpi_ids]
        if not requested:
            return cls([])

        resolver = cls.from_dataframe(store.select('kpis', {'id': requested}))
        attempted = set(requested)

        for _ in range(MAX_RESOLVE_DEPTH):
            operands = [
                k for k in resolver.operand_ids(requested)
                if k not in resolver and k not in attempted
            ]
            if not operands:
                break
            attempted.update(operands)
            extra = cls.from_dataframe(store.select('kpis', {'id': operands}))
            resolver = cls(list(resolver._definitions.values()) + list(extra._definitions.values()))

        return resolver

    def __contains__(self, kpi_id: object) -> bool:
        return str(kpi_id) in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, kpi_id: str) -> Optional[KpiDefinition]:
        """Raw lookup without validation (None when unknown)."""
        return self._definitions.get(str(kpi_id))

    @property
    def kpi_ids(self) -> List[str]:
        return list(self._definitions)

    def resolve_definition(self, kpi_id: str) -> KpiDefinition:
        """
        Return the definition of `kpi_id`.

        Raises:
            DefinitionError: unknown KPI, unknown calculation type, or a
                percentage KPI without both operand ids
        """
        kpi_id = str(kpi_id)
        definition = self._definitions.get(kpi_id)
        if definition is None:
            raise DefinitionError(f"Unknown KPI: {kpi_id}", kpi_id=kpi_id)

        if definition.calculation_type not in CALCULATION_TYPES:
            raise DefinitionError(
                f"KPI {kpi_id} has unsupported calculation_type {definition.calculation_type!r}",
                kpi_id=kpi_id,
            )

        if definition.is_percentage and not (definition.numerator_kpi_id and definition.denominator_kpi_id):
            raise DefinitionError(
                f"Percentage KPI {kpi_id} is missing numerator/denominator KPI ids",
                kpi_id=kpi_id,
            )

        return definition

    def operand_ids(self, kpi_ids: Iterable[str]) -> List[str]:
        """
        `kpi_ids` plus every percentage operand they reference, nested
        operands included down to MAX_RESOLVE_DEPTH (one batch load).
        """
        needed: List[str] = []
        level = [str(k) for k in kpi_ids]

        for depth in range(MAX_RESOLVE_DEPTH + 1):
            next_level: List[str] = []
            for kpi_id in level:
                if kpi_id not in needed:
                    needed.append(kpi_id)
                definition = self._definitions.get(kpi_id)
                if depth == MAX_RESOLVE_DEPTH or definition is None or not definition.is_percentage:
                    continue
                for operand in (definition.numerator_kpi_id, definition.denominator_kpi_id):
                    if operand and operand not in needed and operand not in next_level:
                        next_level.append(operand)
            level = next_level

        return needed
