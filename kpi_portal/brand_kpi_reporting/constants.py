# kpi_portal/brand_kpi_reporting/constants.py
"""
Constants for Brand KPI Reporting Module

VERSION: 1.3.0
CHANGELOG:
- v1.3.0: Added ordering contexts and legacy ytd_calc aliases
- v1.2.0: Added progress tier thresholds and colors
"""

# =====================================================================
# CALCULATION TYPES
# =====================================================================

CALC_DIRECT = 'direct'
CALC_PERCENTAGE = 'percentage'
CALC_TARGET = 'target'

CALCULATION_TYPES = [CALC_DIRECT, CALC_PERCENTAGE, CALC_TARGET]

# Percentage KPIs only reference direct/target KPIs in practice.
# One level of percentage plus its operands.
MAX_RESOLVE_DEPTH = 2

# =====================================================================
# YTD AGGREGATION
# =====================================================================

YTD_SUM = 'sum'
YTD_AVERAGE = 'average'

# Values written by older admin screens
YTD_CALC_ALIASES = {
    'sum': YTD_SUM,
    'toplam': YTD_SUM,
    'total': YTD_SUM,
    'average': YTD_AVERAGE,
    'avg': YTD_AVERAGE,
    'ortalama': YTD_AVERAGE,
    'mean': YTD_AVERAGE,
}

# Units whose monthly values add up (default ytd_calc = sum)
SUMMABLE_UNIT_KEYWORDS = ['adet', 'puan', 'tl', '₺']

PERCENT_UNITS = ['%', 'yüzde']
CURRENCY_UNITS = ['tl', '₺']

# =====================================================================
# GRANULARITY
# =====================================================================

GRANULARITY_MONTHLY = 'monthly'
GRANULARITY_DAILY = 'daily'

# =====================================================================
# PROGRESS TIERS
# =====================================================================

TIER_GREEN = 'green'
TIER_AMBER = 'amber'
TIER_RED = 'red'
TIER_NEUTRAL = 'neutral'

TIER_GREEN_MIN = 100
TIER_AMBER_MIN = 80

COLORS = {
    TIER_GREEN: "#28a745",
    TIER_AMBER: "#ffc107",
    TIER_RED: "#dc3545",
    TIER_NEUTRAL: "#d3d3d3",
    "primary": "#1f77b4",
    "track": "#e0e0e0",
}

TIER_ICONS = {
    TIER_GREEN: "✅",
    TIER_AMBER: "🟡",
    TIER_RED: "🔴",
    TIER_NEUTRAL: "⚪",
}

# =====================================================================
# ERROR CODES
# =====================================================================

VALIDATION_ERROR = 'VALIDATION_ERROR'
STORE_UNAVAILABLE = 'STORE_UNAVAILABLE'
DEFINITION_ERROR = 'DEFINITION_ERROR'
NUMERIC_COERCION_FAILURE = 'NUMERIC_COERCION_FAILURE'

# =====================================================================
# DISPLAY
# =====================================================================

NO_DATA = "—"

MONTH_ORDER = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"
]

# =====================================================================
# KPI ORDERING
# =====================================================================

ORDERING_CONTEXT_DEFAULT = 'sales-dashboard'
ORDERING_CONTEXTS = ['sales-dashboard', 'monthly-overview']

# =====================================================================
# CACHE SETTINGS
# =====================================================================

CACHE_TTL_SECONDS = 300  # overridden by config CACHE_TTL_SECONDS

# =====================================================================
# CHART DIMENSIONS
# =====================================================================

CHART_WIDTH = 'container'
CHART_HEIGHT = 300
