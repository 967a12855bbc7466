# kpi_portal/brand_kpi_reporting/parsing.py
"""
Numeric coercion for stored KPI values.

Values reach the engine as numbers or as user-typed strings in Turkish
format ("1.234,56"), legacy dot-decimal format ("1234.56") or with
English thousands separators ("1,234.56"). Everything funnels through
parse_number(); anything it cannot read is absent (None), never zero.
"""

import logging
import math
import re
from decimal import Decimal
from typing import Optional

import numpy as np
import pandas as pd

from .constants import NUMERIC_COERCION_FAILURE

logger = logging.getLogger(__name__)

_PLAIN_NUMBER = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
_SPACES = re.compile(r'\s+')


def _normalize_separators(text: str) -> str:
    """Rewrite a separator-formatted string to a plain dot-decimal string."""
    last_comma = text.rfind(',')
    last_dot = text.rfind('.')

    if last_comma > last_dot:
        # Comma is the decimal separator, dots are thousands
        return text.replace('.', '').replace(',', '.', 1)

    if last_dot > last_comma:
        # Dot is the decimal separator, everything before it is thousands
        parts = text.split('.')
        head = ''.join(parts[:-1]).replace(',', '')
        return f"{head}.{parts[-1]}"

    return text


def parse_number(value: object) -> Optional[float]:
    """
    Coerce a stored value to a float.

    Args:
        value: int/float/Decimal/numpy scalar or a formatted string

    Returns:
        The parsed float, or None when the value is empty or unreadable
    """
    if value is None or value is pd.NA:
        return None

    if isinstance(value, (bool, np.bool_)):
        logger.warning(f"{NUMERIC_COERCION_FAILURE}: boolean value {value!r} treated as absent")
        return None

    if isinstance(value, (int, float, Decimal, np.number)):
        number = float(value)
        if not math.isfinite(number):
            if not math.isnan(number):
                logger.warning(f"{NUMERIC_COERCION_FAILURE}: non-finite value {value!r} treated as absent")
            return None
        return number

    text = _SPACES.sub('', str(value))
    if text == '':
        return None

    cleaned = _normalize_separators(text)
    if not _PLAIN_NUMBER.match(cleaned):
        logger.warning(f"{NUMERIC_COERCION_FAILURE}: could not parse {value!r}")
        return None

    number = float(cleaned)
    if not math.isfinite(number):
        logger.warning(f"{NUMERIC_COERCION_FAILURE}: non-finite value {value!r} treated as absent")
        return None
    return number



def is_cleared(value: object) -> bool:
    """True when a submitted value means "remove my entry"."""
    if value is None:
        return True
    if isinstance(value, str) and _SPACES.sub('', value) == '':
        return True
    return parse_number(value) is None
