# kpi_portal/brand_kpi_reporting/__init__.py
"""
Brand KPI Reporting Module

Reconciles the values several users submit for the same brand KPI cell
and derives month values, ratios, YTD totals and progress against target.

VERSION: 1.4.0
CHANGELOG:
- v1.4.0: Daily reporting:
          - reconciliation.py: ReconciledValues rolls daily cells up to month-to-date
          - ytd.py: aggregate_month_to_date()
          - metrics.py: daily brands show month-to-date as the month value
- v1.3.0: Per-user KPI ordering (queries.py get/save_kpi_ordering)
- v1.2.0: Brand/year targets with fallback to the KPI's static target
- v1.1.0: Per-KPI error isolation in the overview

Components:
- TableStore: select/upsert/delete primitives over SQLAlchemy Core
- ReconciliationAccessor: latest-wins reads, user-scoped writes
- KpiDefinitionResolver: KPI calculation strategy lookup
- DerivedValueResolver: direct / percentage / target values
- YtdAggregator: YTD and month-to-date aggregation
- compute_progress: progress tiers against target
- BrandKpiQueries: brand KPIs, targets and ordering
- BrandKpiMetrics: overview rows
- Fragments: Streamlit UI components

Usage:
    from kpi_portal.brand_kpi_reporting import (
        TableStore,
        ReconciliationAccessor,
        BrandKpiQueries,
        load_overview,
    )
"""

# Errors
from .exceptions import (
    ReportingError,
    ValidationError,
    StoreUnavailableError,
    DefinitionError,
)

# Periods & parsing
from .periods import (
    PeriodKey,
    PeriodRange,
    Period,
    analyze_period,
    elapsed_month_boundary,
    elapsed_day_boundary,
)
from .parsing import parse_number

# Store
from .schema import metadata, create_all, REPORT_TABLES
from .store import TableStore

# Engine
from .reconciliation import (
    ReconciliationAccessor,
    ReconciliationCache,
    ReconciledRow,
    ReconciledValues,
    reconcile_latest,
)
from .definitions import KpiDefinition, KpiDefinitionResolver
from .resolver import DerivedValueResolver
from .ytd import YtdAggregator
from .progress import Progress, compute_progress, progress_fill_width, resolve_target

# Queries & Metrics
from .queries import BrandKpiQueries, apply_ordering
from .metrics import BrandKpiMetrics, overview_dataframe, load_overview

# Presentation
from .formatters import format_kpi_value, format_number, format_progress
from .charts import build_progress_chart, build_monthly_trend_chart
from .fragments import (
    monthly_overview_fragment,
    monthly_entry_fragment,
    clear_data_cache,
)

# Constants
from .constants import (
    CALC_DIRECT,
    CALC_PERCENTAGE,
    CALC_TARGET,
    GRANULARITY_MONTHLY,
    GRANULARITY_DAILY,
    ORDERING_CONTEXT_DEFAULT,
    MONTH_ORDER,
)

__all__ = [
    # Errors
    'ReportingError',
    'ValidationError',
    'StoreUnavailableError',
    'DefinitionError',

    # Periods & parsing
    'PeriodKey',
    'PeriodRange',
    'Period',
    'analyze_period',
    'elapsed_month_boundary',
    'elapsed_day_boundary',
    'parse_number',

    # Store
    'metadata',
    'create_all',
    'REPORT_TABLES',
    'TableStore',

    # Engine
    'ReconciliationAccessor',
    'ReconciliationCache',
    'ReconciledRow',
    'ReconciledValues',
    'reconcile_latest',
    'KpiDefinition',
    'KpiDefinitionResolver',
    'DerivedValueResolver',
    'YtdAggregator',
    'Progress',
    'compute_progress',
    'progress_fill_width',
    'resolve_target',

    # Queries & Metrics
    'BrandKpiQueries',
    'apply_ordering',
    'BrandKpiMetrics',
    'overview_dataframe',
    'load_overview',

    # Presentation
    'format_kpi_value',
    'format_number',
    'format_progress',
    'build_progress_chart',
    'build_monthly_trend_chart',
    'monthly_overview_fragment',
    'monthly_entry_fragment',
    'clear_data_cache',

    # Constants
    'CALC_DIRECT',
    'CALC_PERCENTAGE',
    'CALC_TARGET',
    'GRANULARITY_MONTHLY',
    'GRANULARITY_DAILY',
    'ORDERING_CONTEXT_DEFAULT',
    'MONTH_ORDER',
]

__version__ = '1.4.0'
