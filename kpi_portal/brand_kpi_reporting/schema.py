# kpi_portal/brand_kpi_reporting/schema.py
"""
Table definitions for the KPI reporting store.

Report tables hold one row per user per cell (multi-writer); the
`identity` entry in each table's info lists the columns an upsert
matches on.
"""

import logging

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

metadata = MetaData()

# =====================================================================
# KPI DEFINITIONS
# =====================================================================

kpis = Table(
    "kpis",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("category", String(255)),
    Column("unit", String(32)),
    Column("calculation_type", String(16), nullable=False, default="direct"),
    Column("numerator_kpi_id", String(36)),
    Column("denominator_kpi_id", String(36)),
    Column("target", Float),
    Column("has_target_data", Boolean, default=False),
    Column("ytd_calc", String(16)),
    Column("only_cumulative", Boolean, default=False),
    info={"identity": ("id",)},
)

# =====================================================================
# REPORT CELLS (per user)
# =====================================================================

kpi_reports = Table(
    "kpi_reports",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(36), nullable=False),
    Column("brand_id", String(36), nullable=False),
    Column("kpi_id", String(36), nullable=False),
    Column("year", Integer, nullable=False),
    Column("month", Integer, nullable=False),
    Column("value", String(64)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("user_id", "brand_id", "kpi_id", "year", "month",
                     name="uq_kpi_reports_user_cell"),
    info={"identity": ("user_id", "brand_id", "kpi_id", "year", "month")},
)

kpi_daily_reports = Table(
    "kpi_daily_reports",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(36), nullable=False),
    Column("brand_id", String(36), nullable=False),
    Column("kpi_id", String(36), nullable=False),
    Column("year", Integer, nullable=False),
    Column("month", Integer, nullable=False),
    Column("day", Integer, nullable=False),
    Column("value", String(64)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("user_id", "brand_id", "kpi_id", "year", "month", "day",
                     name="uq_kpi_daily_reports_user_cell"),
    info={"identity": ("user_id", "brand_id", "kpi_id", "year", "month", "day")},
)

# =====================================================================
# TARGETS & BRAND ASSIGNMENTS
# =====================================================================

brand_kpi_targets = Table(
    "brand_kpi_targets",
    metadata,
    Column("brand_id", String(36), primary_key=True),
    Column("kpi_id", String(36), primary_key=True),
    Column("year", Integer, primary_key=True),
    Column("target", Float),
    info={"identity": ("brand_id", "kpi_id", "year")},
)

brand_kpi_mappings = Table(
    "brand_kpi_mappings",
    metadata,
    Column("brand_id", String(36), primary_key=True),
    Column("kpi_id", String(36), primary_key=True),
    info={"identity": ("brand_id", "kpi_id")},
)

user_brand_kpis = Table(
    "user_brand_kpis",
    metadata,
    Column("user_id", String(36), primary_key=True),
    Column("brand_id", String(36), primary_key=True),
    Column("kpi_id", String(36), primary_key=True),
    info={"identity": ("user_id", "brand_id", "kpi_id")},
)

user_kpi_ordering = Table(
    "user_kpi_ordering",
    metadata,
    Column("user_id", String(36), primary_key=True),
    Column("brand_id", String(36), primary_key=True),
    Column("context", String(32), primary_key=True),
    Column("kpi_id", String(36), primary_key=True),
    Column("order_index", Integer, nullable=False),
    info={"identity": ("user_id", "brand_id", "context", "kpi_id")},
)

# Granularity -> report table
REPORT_TABLES = {
    "monthly": kpi_reports,
    "daily": kpi_daily_reports,
}


def create_all(engine: Engine) -> None:
    """Create every reporting table that does not exist yet."""
    try:
        metadata.create_all(engine)
    except SQLAlchemyError as e:
        logger.error(f"❌ Schema creation failed: {e}")
        raise StoreUnavailableError(f"schema creation failed: {e}") from e
    logger.info(f"✅ Reporting schema ready ({len(metadata.tables)} tables)")
