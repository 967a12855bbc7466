# app.py
"""
Brand KPI Portal - Main Entry Point

Version: 1.0.0
"""

import streamlit as st
from kpi_portal.config import config
from kpi_portal.db import check_db_connection, get_db_engine
from kpi_portal.brand_kpi_reporting import create_all, StoreUnavailableError
import logging

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.is_feature_enabled("DEBUG_MODE") else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Brand KPI Portal"
APP_ICON = "📊"
APP_VERSION = "1.0.0"

st.set_page_config(
    page_title=APP_NAME,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

# ==================== CUSTOM CSS ====================

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
        color: #1f77b4;
    }

    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }

    .info-card {
        background: #f8f9fa;
        padding: 1.5rem;
        border-radius: 0.5rem;
        border-left: 4px solid #1f77b4;
        margin-bottom: 1rem;
    }
</style>
""", unsafe_allow_html=True)


# ==================== HELPER FUNCTIONS ====================

def ensure_schema() -> bool:
    """Create missing reporting tables; False when the store is unreachable."""
    try:
        create_all(get_db_engine())
        return True
    except StoreUnavailableError as e:
        st.error(f"⚠️ {e}")
        return False


def show_home():
    """Landing page with database status"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Monthly and daily brand KPI reporting</p>', unsafe_allow_html=True)

    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        st.info("Please check your network connection or the DATABASE_URL / DB_* settings.")
        return

    if not ensure_schema():
        return

    st.markdown("### 📊 Available Pages")
    st.markdown("""
    <div class="info-card">
        <strong>📊 Monthly KPI Overview</strong><br>
        <span style="color: #666;">Month values, YTD totals and progress against target for each brand KPI,
        plus entry of your own values.</span>
    </div>
    """, unsafe_allow_html=True)

    st.caption(f"{APP_NAME} v{APP_VERSION}")


# ==================== MAIN ====================

def main():
    """Main application entry point"""
    show_home()


if __name__ == "__main__":
    main()
