# kpi_portal/brand_kpi_reporting/reconciliation.py
"""
Reconciliation Store Accessor

Several users may each hold a row for the same (brand, kpi, year,
month[, day]) cell. Reads return every contributor's row (no user
filter) and reduce them to one authoritative row per cell: the one with
the latest updated_at. There is no locking; the latest-wins reduction
over a snapshot read is the only conflict resolution.

Exact updated_at ties are resolved by store order (the row the store
returned first wins) until a business tie-break is agreed.

VERSION: 1.4.0
CHANGELOG:
- v1.4.0: Month-to-date rollups on daily snapshots (ReconciledValues.value)
- v1.3.0: Cache invalidation on save/delete of a user's own cell
- v1.2.0: Cleared values delete the user's row instead of storing zero
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .constants import GRANULARITY_DAILY, GRANULARITY_MONTHLY
from .exceptions import ValidationError
from .parsing import is_cleared, parse_number
from .periods import Period, PeriodKey, PeriodRange
from .schema import REPORT_TABLES
from .store import TableStore

logger = logging.getLogger(__name__)

CELL_COLUMNS = {
    GRANULARITY_MONTHLY: ['kpi_id', 'year', 'month'],
    GRANULARITY_DAILY: ['kpi_id', 'year', 'month', 'day'],
}


@dataclass(frozen=True)
class ReconciledRow:
    """The winning row of one cell."""

    value: Optional[float]
    updated_at: Optional[pd.Timestamp]
    user_id: Optional[str] = None


def _check_granularity(granularity: str) -> None:
    if granularity not in CELL_COLUMNS:
        raise ValidationError(f"Unknown granularity: {granularity}")


def reconcile_latest(rows_df: pd.DataFrame, key_columns: List[str]) -> pd.DataFrame:
    """
    Keep the latest-updated row per cell key.

    Args:
        rows_df: Raw report rows, in store order
        key_columns: Cell key columns (never including user_id)

    Returns:
        One row per distinct cell key, with updated_at parsed to UTC
    """
    if rows_df.empty:
        return rows_df.copy()

    df = rows_df.copy()
    df['updated_at'] = pd.to_datetime(df['updated_at'], utc=True, errors='coerce', format='mixed')
    df['_store_order'] = range(len(df))

    # Latest first; ties keep store order; unparsable timestamps lose
    df = df.sort_values(
        ['updated_at', '_store_order'],
        ascending=[False, True],
        na_position='last',
        kind='stable',
    )
    winners = df.drop_duplicates(subset=key_columns, keep='first')

    logger.debug(f"Reconciled {len(rows_df)} rows into {len(winners)} cells")
    return winners.drop(columns=['_store_order']).sort_values(key_columns).reset_index(drop=True)


class ReconciledValues:
    """
    In-memory lookup over the reconciled cells of one brand.

    Built from fetch_reconciled_range() output and consumed by the pure
    resolvers, so resolution never touches the store.
    """

    def __init__(
        self,
        rows: Mapping[PeriodKey, ReconciledRow],
        granularity: str = GRANULARITY_MONTHLY,
    ):
        _check_granularity(granularity)
        self.granularity = granularity
        self._cells: Dict[Tuple[str, int, int, Optional[int]], Optional[float]] = {}
        self._days: Dict[Tuple[str, int, int], List[Tuple[int, Optional[float]]]] = {}

        for key, row in rows.items():
            cell = (str(key.kpi_id), key.year, key.month, key.day)
            self._cells[cell] = row.value
            if key.day is not None:
                self._days.setdefault(cell[:3], []).append((key.day, row.value))

    def __len__(self) -> int:
        return len(self._cells)

    def has_cell(self, kpi_id: str, year: int, month: int, day: Optional[int] = None) -> bool:
        return (str(kpi_id), year, month, day) in self._cells

    def value(
        self,
        kpi_id: str,
        year: int,
        month: int,
        day: Optional[int] = None,
        through_day: Optional[int] = None,
    ) -> Optional[float]:
        """
        Reconciled value of one cell, or None when nobody entered it.

        On a daily snapshot, day=None returns the month-to-date sum of the
        month's daily values up to `through_day` (None when no day has data).
        """
        kpi_id = str(kpi_id)

        if self.granularity == GRANULARITY_MONTHLY:
            if day is not None:
                raise ValidationError("monthly values have no day component")
            return self._cells.get((kpi_id, year, month, None))

        if day is not None:
            return self._cells.get((kpi_id, year, month, day))

        present = [
            v for d, v in self._days.get((kpi_id, year, month), [])
            if v is not None and (through_day is None or d <= through_day)
        ]
        if not present:
            return None
        return float(sum(present))


class ReconciliationCache:
    """
    TTL cache of reconciled reads, keyed by (granularity, brand, year,
    month, day, kpi filter).

    One instance is shared by every accessor of the process, so a write
    through any accessor invalidates what the others would read.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds is None:
            from kpi_portal.config import config
            ttl_seconds = config.get_app_setting("CACHE_TTL_SECONDS", 300)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple, Tuple[float, Dict[PeriodKey, ReconciledRow]]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, cache_key: Tuple) -> Optional[Dict[PeriodKey, ReconciledRow]]:
        with self._lock:
            cached = self._entries.get(cache_key)
            if cached is None:
                return None
            if self._clock() - cached[0] >= self.ttl_seconds:
                del self._entries[cache_key]
                return None
            return dict(cached[1])

    def put(self, cache_key: Tuple, rows: Dict[PeriodKey, ReconciledRow]) -> None:
        with self._lock:
            self._entries[cache_key] = (self._clock(), dict(rows))

    def invalidate(self, brand_id: str, year: int, month: int, granularity: str) -> int:
        """Drop every cached read that could contain the affected cell."""
        with self._lock:
            stale = [
                k for k in self._entries
                if k[0] == granularity and k[1] == brand_id and k[2] == year
                and (k[3] is None or k[3] == month)
            ]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cached reconciliation(s) for {brand_id} {year}-{month}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class ReconciliationAccessor:
    """
    Read reconciled report cells and write a user's own cells.

    Usage:
        accessor = ReconciliationAccessor(TableStore(get_db_engine()))
        row = accessor.fetch_reconciled_cell(brand_id, kpi_id, Period(2025, 3, 6))
        rows = accessor.fetch_reconciled_range(brand_id, PeriodRange(2025), kpi_ids)
        values = accessor.to_values(rows)

    Accessors built over the same ReconciliationCache see each other's
    writes immediately.
    """

    def __init__(
        self,
        store: TableStore,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        cache: Optional[ReconciliationCache] = None,
    ):
        self.store = store
        self.cache = cache if cache is not None else ReconciliationCache(ttl_seconds, clock)

    # =========================================================================
    # READS
    # =========================================================================

    def fetch_reconciled_range(
        self,
        brand_id: str,
        period_range: PeriodRange,
        kpi_ids: Optional[Iterable[str]] = None,
        granularity: Optional[str] = None,
    ) -> Dict[PeriodKey, ReconciledRow]:
        """
        Fetch and reconcile every cell of a brand within a period range.

        Args:
            brand_id: Brand scope
            period_range: Year, optionally narrowed to a month or a day
            kpi_ids: Optional KPI filter (None = all KPIs)
            granularity: 'monthly' or 'daily' (default: daily iff a day is given)

        Returns:
            Dict mapping each cell's PeriodKey to its winning row. Cells with
            no rows are absent from the map.
        """
        if granularity is None:
            granularity = GRANULARITY_DAILY if period_range.day is not None else GRANULARITY_MONTHLY
        _check_granularity(granularity)
        if granularity == GRANULARITY_MONTHLY and period_range.day is not None:
            raise ValidationError("monthly reports have no day component")

        kpi_filter = tuple(sorted(str(k) for k in kpi_ids)) if kpi_ids is not None else None
        cache_key = (granularity, brand_id, period_range.year, period_range.month,
                     period_range.day, kpi_filter)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"♻️ Using cached reconciliation for {cache_key}")
            return cached

        match: Dict[str, object] = {'brand_id': brand_id, **period_range.as_filter()}
        if kpi_filter is not None:
            match['kpi_id'] = list(kpi_filter)

        rows_df = self.store.select(REPORT_TABLES[granularity], match)
        winners = reconcile_latest(rows_df, CELL_COLUMNS[granularity])

        result: Dict[PeriodKey, ReconciledRow] = {}
        for record in winners.to_dict('records'):
            key = PeriodKey(
                brand_id=brand_id,
                kpi_id=str(record['kpi_id']),
                year=int(record['year']),
                month=int(record['month']),
                day=int(record['day']) if granularity == GRANULARITY_DAILY else None,
            )
            updated_at = record.get('updated_at')
            result[key] = ReconciledRow(
                value=parse_number(record.get('value')),
                updated_at=None if pd.isna(updated_at) else updated_at,
                user_id=record.get('user_id'),
            )

        logger.debug(f"fetch_reconciled_range {granularity} brand={brand_id} "
                     f"{period_range}: {len(rows_df)} rows -> {len(result)} cells")

        self.cache.put(cache_key, result)
        return dict(result)

    def fetch_reconciled_cell(
        self,
        brand_id: str,
        kpi_id: str,
        period: Period,
    ) -> Optional[ReconciledRow]:
        """
        Reconciled row of a single cell.

        Returns:
            The winning row, or None when no user has written the cell
        """
        key = PeriodKey(brand_id, str(kpi_id), period.year, period.month, period.day)
        rows = self.fetch_reconciled_range(
            brand_id,
            PeriodRange(period.year, period.month, period.day),
            kpi_ids=[kpi_id],
        )
        return rows.get(key)

    @staticmethod
    def to_values(
        rows: Mapping[PeriodKey, ReconciledRow],
        granularity: str = GRANULARITY_MONTHLY,
    ) -> ReconciledValues:
        return ReconciledValues(rows, granularity)

    # =========================================================================
    # WRITES (a user's own row only)
    # =========================================================================

    def save_cell(
        self,
        user_id: str,
        key: PeriodKey,
        value: object,
        updated_at: Optional[datetime] = None,
    ) -> Optional[float]:
        """
        Upsert the user's own row for a cell.

        A cleared value (None, blank or unreadable) deletes the user's row
        instead of storing zero.

        Returns:
            The stored number, or None when the row was removed
        """
        if is_cleared(value):
            self.delete_cell(user_id, key)
            return None

        number = parse_number(value)
        granularity = GRANULARITY_DAILY if key.is_daily else GRANULARITY_MONTHLY
        row = {
            'user_id': user_id,
            **key.as_filter(),
            'value': repr(number),
            'updated_at': updated_at or datetime.now(timezone.utc),
        }
        self.store.upsert(REPORT_TABLES[granularity], row)
        self.invalidate(key.brand_id, key.year, key.month, granularity)

        logger.info(f"💾 Saved {granularity} cell {key.kpi_id} {key.period()} for user {user_id}")
        return number

    def delete_cell(self, user_id: str, key: PeriodKey) -> int:
        """Delete the user's own row for a cell; other users' rows stay."""
        granularity = GRANULARITY_DAILY if key.is_daily else GRANULARITY_MONTHLY
        removed = self.store.delete(REPORT_TABLES[granularity], {'user_id': user_id, **key.as_filter()})
        self.invalidate(key.brand_id, key.year, key.month, granularity)

        logger.info(f"🗑️ Removed {removed} {granularity} row(s) {key.kpi_id} {key.period()} for user {user_id}")
        return removed

    # =========================================================================
    # CACHE
    # =========================================================================

    def invalidate(self, brand_id: str, year: int, month: int, granularity: str) -> None:
        """Drop every cached read that could contain the affected cell."""
        self.cache.invalidate(brand_id, year, month, granularity)

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Reconciliation cache cleared")
