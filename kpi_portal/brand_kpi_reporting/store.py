# kpi_portal/brand_kpi_reporting/store.py
"""
Generic table store over SQLAlchemy Core.

The engine only needs three primitives: select with a filter, upsert of
one row, and delete by match. Each call runs in its own transaction;
nothing is transactional across calls. Every database failure surfaces
as StoreUnavailableError and is never retried here.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd
from sqlalchemy import Table, and_, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import StoreUnavailableError, ValidationError
from .schema import metadata

logger = logging.getLogger(__name__)

FilterValue = Union[object, Sequence[object]]


class TableStore:
    """
    Query primitive used by the reporting engine.

    Usage:
        store = TableStore(get_db_engine())
        rows_df = store.select('kpi_reports', {'brand_id': brand_id, 'year': 2025})
        store.upsert('brand_kpi_targets', {'brand_id': b, 'kpi_id': k, 'year': 2025, 'target': 100})
        store.delete('brand_kpi_targets', {'brand_id': b, 'kpi_id': k, 'year': 2025})
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _table(name: Union[str, Table]) -> Table:
        if isinstance(name, Table):
            return name
        try:
            return metadata.tables[name]
        except KeyError:
            raise ValidationError(f"Unknown table: {name}") from None

    @staticmethod
    def _where(table: Table, match: Mapping[str, FilterValue]):
        clauses = []
        for column_name, value in match.items():
            if column_name not in table.c:
                raise ValidationError(f"Unknown column {table.name}.{column_name}")
            column = table.c[column_name]
            if value is None:
                clauses.append(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return and_(*clauses) if clauses else None

    # =========================================================================
    # PRIMITIVES
    # =========================================================================

    def select(
        self,
        table: Union[str, Table],
        match: Optional[Mapping[str, FilterValue]] = None,
        order_by: Optional[Iterable[str]] = None,
    ) -> pd.DataFrame:
        """
        Select rows matching `match` (scalars compare equal, lists use IN).

        Returns:
            DataFrame with every column of the table (empty when nothing matches)
        """
        table = self._table(table)
        stmt = select(table)
        where = self._where(table, match or {})
        if where is not None:
            stmt = stmt.where(where)
        for column_name in order_by or []:
            stmt = stmt.order_by(table.c[column_name])

        try:
            with self.engine.connect() as conn:
                df = pd.read_sql(stmt, conn)
        except (SQLAlchemyError, pd.errors.DatabaseError) as e:
            logger.error(f"❌ select on {table.name} failed: {e}")
            raise StoreUnavailableError(f"select on {table.name} failed: {e}") from e

        logger.debug(f"select {table.name} returned {len(df)} rows")
        return df

    def upsert(self, table: Union[str, Table], row: Mapping[str, object]) -> None:
        """Insert `row`, or update the existing row with the same identity."""
        table = self._table(table)
        identity = table.info["identity"]
        missing = [col for col in identity if row.get(col) is None]
        if missing:
            raise ValidationError(f"upsert on {table.name} missing identity columns: {missing}")

        match = {col: row[col] for col in identity}
        values = {k: v for k, v in row.items() if k not in identity}
        where = self._where(table, match)

        try:
            with self.engine.begin() as conn:
                existing = conn.execute(select(*[table.c[c] for c in identity]).where(where)).first()
                if existing is None:
                    conn.execute(insert(table).values(**dict(row)))
                elif values:
                    conn.execute(update(table).where(where).values(**values))
        except SQLAlchemyError as e:
            logger.error(f"❌ upsert on {table.name} failed: {e}")
            raise StoreUnavailableError(f"upsert on {table.name} failed: {e}") from e

    def delete(self, table: Union[str, Table], match: Mapping[str, FilterValue]) -> int:
        """Delete rows matching `match`; returns the number of rows removed."""
        table = self._table(table)
        if not match:
            raise ValidationError(f"refusing to delete every row of {table.name}")
        where = self._where(table, match)

        try:
            with self.engine.begin() as conn:
                result = conn.execute(delete(table).where(where))
        except SQLAlchemyError as e:
            logger.error(f"❌ delete on {table.name} failed: {e}")
            raise StoreUnavailableError(f"delete on {table.name} failed: {e}") from e

        return result.rowcount

    def replace(
        self,
        table: Union[str, Table],
        match: Mapping[str, FilterValue],
        rows: List[Dict[str, object]],
    ) -> int:
        """Delete every row matching `match`, then insert `rows` (one transaction)."""
        table = self._table(table)
        if not match:
            raise ValidationError(f"refusing to replace every row of {table.name}")
        where = self._where(table, match)

        try:
            with self.engine.begin() as conn:
                conn.execute(delete(table).where(where))
                if rows:
                    conn.execute(insert(table), rows)
        except SQLAlchemyError as e:
            logger.error(f"❌ replace on {table.name} failed: {e}")
            raise StoreUnavailableError(f"replace on {table.name} failed: {e}") from e

        return len(rows)
