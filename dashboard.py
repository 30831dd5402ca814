"""
Retail Operations Dashboard
Store inventory, working capital and supplier actions from one JSON snapshot
"""

import streamlit as st
from datetime import datetime
import traceback
import pytz

# Import data loaders
from data_loader import load_app_data, count_records
from business_rules import DATA_SOURCE_RULES, get_reference_date
from utils import get_cached_app_data, clear_cached_app_data

# Import UI components
from ui_components import (
    render_navigation,
    render_quick_actions,
    render_data_status,
    format_timestamp,
)

# Import page modules
from pages.home_page import render_home_page
from pages.action_center_page import render_action_center_page
from pages.strategy_page import render_strategy_page
from pages.details_page import render_details_page
from pages.data_upload_page import render_data_upload_page
from pages.debug_page import render_debug_page

# ===== PAGE CONFIGURATION =====
st.set_page_config(
    page_title="Retail Operations Dashboard",
    page_icon="🏬",
    layout="wide",
    initial_sidebar_state="expanded"
)

# ===== CUSTOM CSS =====
st.markdown("""
    <style>
        .main {
            padding: 1rem;
        }

        /* Improve metric cards */
        [data-testid="stMetric"] {
            background-color: #f8f9fa;
            padding: 1rem;
            border-radius: 0.5rem;
            border: 1px solid #e9ecef;
        }

        /* Hide automatic Streamlit page navigation */
        [data-testid="stSidebarNav"] {
            display: none;
        }
    </style>
""", unsafe_allow_html=True)

DASHBOARD_TIMEZONE = 'Asia/Kolkata'

# ===== MAIN APPLICATION =====

def main():
    """Main application entry point"""

    # ===== SIDEBAR: NAVIGATION =====
    selected_page = render_navigation()

    # Load data with progress indicator
    progress_bar = st.sidebar.progress(0)
    progress_text = st.sidebar.empty()

    def update_loading_progress(progress, message):
        """Update progress bar and text during data loading"""
        progress_bar.progress(progress)
        progress_text.text(message)

    try:
        app_data = get_cached_app_data(
            load_app_data,
            DATA_SOURCE_RULES["data_dir"],
            _progress_callback=update_loading_progress
        )
    except Exception as e:
        st.error(f"Error loading data: {str(e)}")
        st.error(traceback.format_exc())
        app_data = None

    # Clear progress indicators
    progress_bar.empty()
    progress_text.empty()

    if app_data is None:
        st.error("Failed to load data. Please check your data files.")
        st.stop()

    today = get_reference_date()

    # ===== SIDEBAR: QUICK ACTIONS =====
    if "refresh" in render_quick_actions():
        clear_cached_app_data()
        st.rerun()

    render_data_status(
        data_load_time=app_data.get('load_time'),
        record_count=count_records(app_data),
        reference_date=today
    )

    if count_records(app_data) == 0 and selected_page not in ("data_management", "debug"):
        st.warning(
            f"No snapshot records were loaded from '{DATA_SOURCE_RULES['data_dir']}'. "
            "Upload files under Data Management or check the Debug page for loader errors."
        )

    # Display dashboard time in IST
    ist = pytz.timezone(DASHBOARD_TIMEZONE)
    ist_time = datetime.now(ist)
    st.markdown(f"<div style='font-size:16px; color:gray;'>Dashboard Time (IST): {format_timestamp(ist_time)}</div>", unsafe_allow_html=True)

    # Route to selected page
    if selected_page == "home":
        render_home_page(app_data, today)

    elif selected_page == "action_center":
        render_action_center_page(app_data, today)

    elif selected_page == "strategy":
        render_strategy_page(app_data, today)

    elif selected_page == "details":
        render_details_page(app_data, today)

    elif selected_page == "data_management":
        render_data_upload_page()

    elif selected_page == "debug":
        render_debug_page(debug_info=app_data, today=today)

    # Footer
    st.sidebar.divider()
    st.sidebar.caption("Retail Operations Dashboard v1.0")

if __name__ == "__main__":
    main()
