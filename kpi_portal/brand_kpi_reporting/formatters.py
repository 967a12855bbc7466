# kpi_portal/brand_kpi_reporting/formatters.py
"""
Formatting utilities for Brand KPI Reporting.
Values are shown with Turkish separators (1.234,5).
"""

import logging
from typing import Optional, Union

import pandas as pd

from .constants import COLORS, CURRENCY_UNITS, NO_DATA, PERCENT_UNITS, TIER_ICONS, TIER_NEUTRAL

logger = logging.getLogger(__name__)

_TR_SEPARATORS = str.maketrans(',.', '.,')


def format_number(value: Union[int, float, None], decimals: int = 0) -> str:
    """
    Format number with Turkish thousand separator

    Args:
        value: Number to format
        decimals: Number of decimal places

    Returns:
        Formatted string, NO_DATA for missing values
    """
    if value is None or pd.isna(value):
        return NO_DATA
    return f"{float(value):,.{decimals}f}".translate(_TR_SEPARATORS)


def _default_decimals(value: float, is_percent: bool) -> int:
    if is_percent:
        return 1
    return 0 if float(value).is_integer() else 2


def format_kpi_value(
    value: Union[int, float, None],
    unit: Optional[str] = None,
    decimals: Optional[int] = None,
) -> str:
    """
    Format a KPI value for display according to its unit

    Args:
        value: Resolved value (None = nobody reported it)
        unit: KPI unit ('%', 'TL', 'adet', ...)
        decimals: Override the default precision

    Returns:
        "—" for missing values, "25,0%" for percent units,
        "₺1.234" for TL units, "120 adet" otherwise
    """
    if value is None or pd.isna(value):
        return NO_DATA

    unit_text = str(unit or '').strip()
    unit_norm = unit_text.lower()
    is_percent = unit_text == '%' or unit_norm in PERCENT_UNITS

    if decimals is None:
        decimals = _default_decimals(value, is_percent)
    number = format_number(value, decimals)

    if is_percent:
        return f"{number}%"
    if unit_norm in CURRENCY_UNITS:
        return f"₺{number}"
    if unit_text:
        return f"{number} {unit_text}"
    return number


def format_progress(percent: Optional[int], tier: str) -> str:
    """Progress badge text, e.g. '🟡 85%'."""
    if percent is None or tier == TIER_NEUTRAL:
        return f"{TIER_ICONS[TIER_NEUTRAL]} {NO_DATA}"
    return f"{TIER_ICONS.get(tier, '')} {percent}%"


def tier_color(tier: str) -> str:
    return COLORS.get(tier, COLORS[TIER_NEUTRAL])
