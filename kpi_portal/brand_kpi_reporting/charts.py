# kpi_portal/brand_kpi_reporting/charts.py
"""
Altair Chart Builders for Brand KPI Reporting

VERSION: 1.1.0
CHANGELOG:
- v1.1.0: Progress bars colored by tier, fill clamped to 0-100
"""

import logging
from typing import Optional

import altair as alt
import pandas as pd

from .constants import CHART_HEIGHT, CHART_WIDTH, COLORS, MONTH_ORDER, TIER_AMBER, TIER_GREEN, TIER_NEUTRAL, TIER_RED
from .progress import progress_fill_width

logger = logging.getLogger(__name__)

_TIER_SCALE = alt.Scale(
    domain=[TIER_GREEN, TIER_AMBER, TIER_RED, TIER_NEUTRAL],
    range=[COLORS[TIER_GREEN], COLORS[TIER_AMBER], COLORS[TIER_RED], COLORS[TIER_NEUTRAL]],
)


def _empty_chart(message: str = "No data") -> alt.Chart:
    return alt.Chart(pd.DataFrame({'text': [message]})).mark_text().encode(text='text:N')


def build_progress_chart(overview_df: pd.DataFrame) -> alt.Chart:
    """
    Horizontal progress bars, one per KPI, over a 0-100 track.

    Args:
        overview_df: overview_dataframe() output

    Returns:
        Layered Altair chart (track + fill + percent label)
    """
    if overview_df.empty:
        return _empty_chart()

    chart_df = overview_df[['name', 'progress_percent', 'tier']].copy()
    chart_df['fill'] = chart_df['progress_percent'].apply(
        lambda p: progress_fill_width(None if pd.isna(p) else p)
    )
    chart_df['label'] = chart_df['progress_percent'].apply(
        lambda p: '' if pd.isna(p) else f"{int(p)}%"
    )
    chart_df['track'] = 100
    kpi_order = chart_df['name'].tolist()

    base = alt.Chart(chart_df).encode(y=alt.Y('name:N', sort=kpi_order, title=None))

    track = base.mark_bar(color=COLORS['track']).encode(
        x=alt.X('track:Q', scale=alt.Scale(domain=[0, 100]), title='Progress (%)'),
    )
    fill = base.mark_bar().encode(
        x='fill:Q',
        color=alt.Color('tier:N', scale=_TIER_SCALE, legend=None),
        tooltip=[
            alt.Tooltip('name:N', title='KPI'),
            alt.Tooltip('label:N', title='Progress'),
        ],
    )
    labels = base.mark_text(align='left', dx=4).encode(x='fill:Q', text='label:N')

    height = max(CHART_HEIGHT // 3, 32 * len(chart_df))
    return (track + fill + labels).properties(width=CHART_WIDTH, height=height)


def build_monthly_trend_chart(
    trend_df: pd.DataFrame,
    name: str = "Value",
    target_value: Optional[float] = None,
) -> alt.Chart:
    """Monthly bars of one KPI; absent months are left empty, not drawn as zero."""
    if trend_df.empty or trend_df['value'].isna().all():
        return _empty_chart()

    chart_df = trend_df.dropna(subset=['value'])

    bars = alt.Chart(chart_df).mark_bar(
        color=COLORS['primary'],
        cornerRadiusTopLeft=3,
        cornerRadiusTopRight=3,
    ).encode(
        x=alt.X('month_name:N', sort=MONTH_ORDER, title='Month'),
        y=alt.Y('value:Q', title=name),
        tooltip=[
            alt.Tooltip('month_name:N', title='Month'),
            alt.Tooltip('value:Q', title=name, format=',.2f'),
        ],
    )

    chart = bars
    if target_value is not None and target_value > 0:
        target_line = alt.Chart(pd.DataFrame({'target': [target_value]})).mark_rule(
            color=COLORS[TIER_RED],
            strokeDash=[5, 5],
            strokeWidth=2,
        ).encode(y='target:Q')
        chart = chart + target_line

    return chart.properties(width=CHART_WIDTH, height=CHART_HEIGHT)
