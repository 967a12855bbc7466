# kpi_portal/brand_kpi_reporting/fragments.py
"""
Streamlit Fragments for Brand KPI Reporting

- monthly_overview_fragment(): KPI table, progress bars and a trend chart
- monthly_entry_fragment(): the current user's own entries for a period

Store outages show a retryable error instead of breaking the page.

VERSION: 1.1.0
CHANGELOG:
- v1.1.0: Entry form clears the cell when the input is emptied
"""

import logging
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from .charts import build_monthly_trend_chart, build_progress_chart
from .constants import DEFINITION_ERROR, GRANULARITY_DAILY, MONTH_ORDER, NO_DATA
from .definitions import KpiDefinitionResolver
from .exceptions import StoreUnavailableError, ValidationError
from .formatters import format_kpi_value, format_progress
from .metrics import BrandKpiMetrics, overview_dataframe
from .parsing import is_cleared, parse_number
from .periods import PeriodKey, PeriodRange
from .reconciliation import ReconciliationAccessor

logger = logging.getLogger(__name__)


def clear_data_cache(accessor: Optional[ReconciliationAccessor] = None):
    """Clear cached data - called after saves and by the Refresh button."""
    if accessor is not None:
        accessor.clear_cache()
    st.cache_data.clear()
    logger.info("Data cache cleared")


def _display_table(overview_df: pd.DataFrame) -> pd.DataFrame:
    display_df = pd.DataFrame({
        'KPI': overview_df['name'],
        'Month': [format_kpi_value(v, u) for v, u in zip(overview_df['monthly'], overview_df['unit'])],
        'YTD': [
            NO_DATA if err == DEFINITION_ERROR else format_kpi_value(v, u)
            for v, u, err in zip(overview_df['ytd'], overview_df['unit'], overview_df['error'])
        ],
        'Target': [format_kpi_value(v, u) for v, u in zip(overview_df['target'], overview_df['unit'])],
        'Progress': [
            format_progress(None if pd.isna(p) else int(p), t)
            for p, t in zip(overview_df['progress_percent'], overview_df['tier'])
        ],
    })
    return display_df


def _input_text(row) -> str:
    if row is None or row.value is None:
        return ''
    value = float(row.value)
    return str(int(value)) if value.is_integer() else repr(value)


# =============================================================================
# MONTHLY OVERVIEW
# =============================================================================

@st.fragment
def monthly_overview_fragment(
    overview_rows: List[Dict],
    metrics: BrandKpiMetrics,
    brand_id: str,
    year: int,
    month: int,
    fragment_key: str = "bkr_overview"
):
    """
    Monthly overview with progress bars.

    Args:
        overview_rows: Rows from BrandKpiMetrics.get_kpi_overview()
        metrics: The metrics object that produced the rows (for trends)
        brand_id: Selected brand
        year: Selected year
        month: Selected month
        fragment_key: Unique key prefix
    """
    if not overview_rows:
        st.info("📊 No KPIs are assigned to this brand")
        return

    overview_df = overview_dataframe(overview_rows)

    st.subheader(f"📊 {MONTH_ORDER[month - 1]} {year}")
    st.dataframe(_display_table(overview_df), hide_index=True, use_container_width=True)

    broken = overview_df[overview_df['error'] == DEFINITION_ERROR]
    if not broken.empty:
        st.warning(f"⚠️ {len(broken)} KPI(s) have an invalid definition: {', '.join(broken['name'])}")

    with st.expander("ℹ️ How progress is calculated", expanded=False):
        st.markdown("""
**Progress** = YTD value / target, rounded to a whole percent.

| Tier | Progress |
|------|----------|
| ✅ Green | 100% and above |
| 🟡 Amber | 80% - 99% |
| 🔴 Red | below 80% |
| ⚪ Neutral | no target |

YTD sums or averages the months reported so far; months nobody reported are skipped.
        """)

    st.altair_chart(build_progress_chart(overview_df), use_container_width=True)

    # Trend for one KPI
    valid_df = overview_df[overview_df['error'].isna()]
    if valid_df.empty:
        return

    names = dict(zip(valid_df['kpi_id'], valid_df['name']))
    selected = st.selectbox(
        "Trend",
        list(names),
        format_func=lambda k: names[k],
        key=f"{fragment_key}_trend_kpi",
    )
    row = valid_df[valid_df['kpi_id'] == selected].iloc[0]
    trend_df = metrics.get_monthly_trend(selected, brand_id, year)
    target = None if pd.isna(row['target']) else float(row['target'])
    st.altair_chart(
        build_monthly_trend_chart(trend_df, row['name'], target_value=target),
        use_container_width=True,
    )


# =============================================================================
# ENTRY (current user's own cells)
# =============================================================================

@st.fragment
def monthly_entry_fragment(
    accessor: ReconciliationAccessor,
    definitions: KpiDefinitionResolver,
    kpi_ids: List[str],
    user_id: str,
    brand_id: str,
    year: int,
    month: int,
    day: Optional[int] = None,
    fragment_key: str = "bkr_entry"
):
    """
    Entry form for the current user's values of one period.

    Each field shows the reconciled value (latest writer across users).
    Saving writes only the current user's row; an emptied field removes it.
    """
    entry_ids = [
        k for k in kpi_ids
        if k in definitions and definitions.get(k).accepts_entries
    ]
    if not entry_ids:
        st.info("No KPIs to enter for this brand")
        return

    granularity = GRANULARITY_DAILY if day is not None else None
    try:
        rows = accessor.fetch_reconciled_range(
            brand_id,
            PeriodRange(year, month, day),
            kpi_ids=entry_ids,
            granularity=granularity,
        )
    except StoreUnavailableError as e:
        st.error(f"⚠️ Could not load entries: {e}")
        if st.button("🔄 Retry", key=f"{fragment_key}_retry_load"):
            st.rerun(scope="fragment")
        return

    current = {key.kpi_id: row for key, row in rows.items()}

    with st.form(f"{fragment_key}_form"):
        inputs = {}
        for kpi_id in entry_ids:
            definition = definitions.get(kpi_id)
            row = current.get(kpi_id)
            existing = _input_text(row)
            label = f"{definition.name} ({definition.unit})" if definition.unit else definition.name
            inputs[kpi_id] = st.text_input(label, value=existing, key=f"{fragment_key}_{kpi_id}")
            if row is not None and row.user_id and row.user_id != user_id:
                st.caption(f"Last updated by {row.user_id}")

        submitted = st.form_submit_button("💾 Save", type="primary")

    if not submitted:
        return

    saved, cleared, rejected = 0, 0, []
    try:
        for kpi_id, text in inputs.items():
            row = current.get(kpi_id)
            previous = _input_text(row)
            if text.strip() == previous:
                continue

            if text.strip() and parse_number(text) is None:
                rejected.append(definitions.get(kpi_id).name)
                continue

            key = PeriodKey(brand_id, kpi_id, year, month, day)
            if is_cleared(text):
                accessor.delete_cell(user_id, key)
                cleared += 1
            else:
                accessor.save_cell(user_id, key, text)
                saved += 1
    except (StoreUnavailableError, ValidationError) as e:
        st.error(f"⚠️ Save failed: {e}. Please retry.")
        return

    if rejected:
        st.warning(f"Not a number, skipped: {', '.join(rejected)}")

    if saved or cleared:
        clear_data_cache()
        st.toast(f"✅ Saved {saved}, cleared {cleared}")
        logger.info(f"Entry saved by {user_id} for {brand_id} {year}-{month:02d}: {saved} saved, {cleared} cleared")
        st.rerun()
