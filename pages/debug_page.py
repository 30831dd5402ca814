"""
Debug & Logs Page
Shows snapshot loading logs, rule evaluation logs and dataset diagnostics
"""

import streamlit as st
import pandas as pd
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from business_rules import DATA_SOURCE_RULES, SNAPSHOT_RULES
from data_loader import DATASET_SCHEMAS, DATASET_KEYS, get_snapshot_frames
from action_center import compute_action_center
from inventory_status import compute_inventory_status
from home_dashboard import compute_home_dashboard
from utils import clear_cached_app_data


def categorize_logs(logs):
    """Split log lines by their INFO/WARNING/ERROR prefix"""
    return (
        [log for log in logs if log.startswith("INFO:")],
        [log for log in logs if log.startswith("WARNING:")],
        [log for log in logs if log.startswith("ERROR:")],
    )


def render_log_section(section_name, log_key, logs):
    with st.expander(f"📄 {section_name} Logs", expanded=False):
        info_logs, warning_logs, error_logs = categorize_logs(logs)

        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Info", len(info_logs))
        with col2:
            st.metric("Warnings", len(warning_logs), delta="⚠️" if len(warning_logs) > 0 else None)
        with col3:
            st.metric("Errors", len(error_logs), delta="❌" if len(error_logs) > 0 else None)

        if error_logs:
            st.error("**Errors:**")
            for log in error_logs:
                st.text(log)

        if warning_logs:
            st.warning("**Warnings:**")
            for log in warning_logs:
                st.text(log)

        if info_logs and st.checkbox(f"Show Info logs for {section_name}", key=f"show_info_{log_key}"):
            st.info("**Info:**")
            for log in info_logs:
                st.text(log)


def render_debug_page(debug_info, today=None):
    """Render debug and logs page"""

    st.title("🔧 Debug & System Logs")

    if not debug_info:
        st.warning("No debug information available. Data may not have loaded yet.")
        return

    frames = get_snapshot_frames(debug_info)

    # System Info
    st.header("📊 System Information")
    col1, col2, col3, col4 = st.columns(4)

    with col1:
        st.metric("Data Load Time", str(debug_info.get('load_time_str', 'N/A')))

    with col2:
        datasets_loaded = len([key for key, df in frames.items() if not df.empty])
        st.metric("Datasets Loaded", f"{datasets_loaded} / {len(DATASET_KEYS)}")

    with col3:
        total_errors = sum(
            len(categorize_logs(debug_info.get(f'{key}_logs', []))[2]) for key in DATASET_KEYS
        )
        st.metric("Loader Errors", total_errors, delta=None if total_errors == 0 else "⚠️")

    with col4:
        st.metric("Reference Date", SNAPSHOT_RULES['reference_date'])

    st.caption(f"Data directory: `{DATA_SOURCE_RULES['data_dir']}`")

    st.divider()

    # Data Loading Logs
    st.header("📋 Data Loading Logs")

    log_sections = {"Snapshot": "snapshot_logs"}
    log_sections.update({DATASET_SCHEMAS[key]['label']: f"{key}_logs" for key in DATASET_KEYS})

    for section_name, log_key in log_sections.items():
        if debug_info.get(log_key):
            render_log_section(section_name, log_key, debug_info[log_key])

    st.divider()

    # Rule evaluation logs come from the memoized derivations
    st.header("🧮 Rule Evaluation Logs")

    action_logs, _ = compute_action_center(debug_info, today)
    status_logs, _ = compute_inventory_status(debug_info)
    home_logs, _ = compute_home_dashboard(debug_info, today)

    rule_sections = {
        "Action Center": ("action_center_rules", action_logs),
        "Inventory Status": ("inventory_status_rules", status_logs),
        "Home Dashboard": ("home_rules", home_logs),
        "Strategy": ("strategy_rules", st.session_state.get('strategy_logs', [])),
        "Details Lookups": ("details_rules", st.session_state.get('details_logs', [])),
    }
    for section_name, (log_key, logs) in rule_sections.items():
        if logs:
            render_log_section(section_name, log_key, logs)

    st.divider()

    # Data Shape Info
    st.header("📐 Data Shape Information")

    shape_info = []
    for key, df in frames.items():
        shape_info.append({
            'Dataset': DATASET_SCHEMAS[key]['label'],
            'Rows': len(df),
            'Columns': len(df.columns),
            'Memory (MB)': round(df.memory_usage(deep=True).sum() / 1024 / 1024, 2)
        })

    st.dataframe(pd.DataFrame(shape_info), hide_index=True, width='stretch')

    st.divider()

    # Column Information
    st.header("📊 Column Information")

    dataset_selector = st.selectbox(
        "Select dataset to inspect:",
        options=DATASET_KEYS,
        format_func=lambda key: DATASET_SCHEMAS[key]['label']
    )

    df = frames[dataset_selector]

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("Column Names")
        st.dataframe(pd.DataFrame({'Column': df.columns}), hide_index=True)

    with col2:
        st.subheader("Data Types")
        dtypes_df = pd.DataFrame({
            'Column': df.dtypes.index,
            'Type': df.dtypes.values.astype(str),
            'Non-Null': df.count().values,
            'Null': df.isna().sum().values
        })
        st.dataframe(dtypes_df, hide_index=True)

    st.subheader("Sample Data (First 5 Rows)")
    st.dataframe(df.head(5), width='stretch')

    st.divider()

    # Cache Information
    st.header("💾 Cache Information")

    st.info("""
    **Cache Settings:**
    - Snapshot: loaded once per session (st.session_state)
    - Rule results: Streamlit @st.cache_data, keyed by snapshot and reference date
    - Clear Cache: Use the button below, Refresh Data in the sidebar, or re-upload files
    """)

    if st.button("🗑️ Clear Cache & Reload Data"):
        clear_cached_app_data()
        st.success("Cache cleared! Reloading page...")
        st.rerun()
