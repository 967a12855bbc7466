# kpi_portal/__init__.py
"""
Brand KPI Reporting Portal

This package contains the shared utilities and the reporting engine:
- config: Configuration management (local .env + Streamlit Cloud)
- db: Database engine management with pooling
- brand_kpi_reporting: Reconciliation, derived values, YTD and progress

Usage:
    from kpi_portal.config import config
    from kpi_portal.db import get_db_engine, check_db_connection
    from kpi_portal.brand_kpi_reporting import ReconciliationAccessor, BrandKpiMetrics
"""

# Configuration
from .config import (
    config,
    Config,
    IS_RUNNING_ON_CLOUD,
    APP_CONFIG,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    reset_db_engine,
)

__all__ = [
    # Config
    'config',
    'Config',
    'IS_RUNNING_ON_CLOUD',
    'APP_CONFIG',

    # Database
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
]

__version__ = '1.0.0'
