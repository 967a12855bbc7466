# kpi_portal/brand_kpi_reporting/progress.py
"""
Progress Calculator

Cumulative value against target, bucketed into tiers:
- green: 100% and above
- amber: 80% up to 100%
- red: below 80%
- neutral: no usable target (absent or not positive)

The percent is not capped; only the bar fill is clamped to [0, 100].
"""

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import (
    TIER_AMBER,
    TIER_AMBER_MIN,
    TIER_GREEN,
    TIER_GREEN_MIN,
    TIER_NEUTRAL,
    TIER_RED,
)
from .definitions import KpiDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Progress:
    percent: Optional[int]
    tier: str


def compute_progress(cumulative: Optional[float], target: Optional[float]) -> Progress:
    """
    Progress of `cumulative` against `target`.

    Args:
        cumulative: YTD or month-to-date value (None counts as 0)
        target: Target for the same window

    Returns:
        Progress(percent, tier); percent is None when tier is neutral
    """
    if target is None or target <= 0:
        return Progress(None, TIER_NEUTRAL)

    # Scale before dividing; half-up, so 80.5% shows as 81%
    raw_percent = max(0.0, (cumulative or 0.0) * 100 / target)
    percent = int(math.floor(raw_percent + 0.5))

    if percent >= TIER_GREEN_MIN:
        tier = TIER_GREEN
    elif percent >= TIER_AMBER_MIN:
        tier = TIER_AMBER
    else:
        tier = TIER_RED

    return Progress(percent, tier)


def progress_fill_width(percent: Optional[float]) -> float:
    """Bar fill in [0, 100]; 0 for neutral progress."""
    if percent is None:
        return 0.0
    return float(min(100.0, max(0.0, percent)))


def resolve_target(definition: KpiDefinition, brand_targets: Mapping[str, float]) -> Optional[float]:
    """Brand/year target if one was saved, else the KPI's static target."""
    target = brand_targets.get(definition.id)
    if target is not None:
        return float(target)
    return definition.target
