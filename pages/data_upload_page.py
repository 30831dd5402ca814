"""
Data Upload & Management Page
Replace snapshot documents with uploaded JSON files, with validation and template export
"""

import streamlit as st
import pandas as pd
from datetime import datetime
import json
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from ui_components import render_page_header
from business_rules import DATA_SOURCE_RULES
from data_loader import DATASET_SCHEMAS, DATASET_KEYS
from file_loader import read_json_records
from utils import clear_cached_app_data

# ===== FILE CONFIGURATIONS =====

SAMPLE_RECORDS = {
    "stores": [
        {"store_id": "STR-001", "store_name": "Phoenix MarketCity Flagship", "store_type": "Flagship",
         "performance_tier": "A", "sq_ft": 12000, "avg_basket_size": 1850, "location": "Bengaluru"},
    ],
    "suppliers": [
        {"supplier_id": "SUP-001", "supplier_name": "Acme Textiles", "return_window_days": 30,
         "payment_terms": "NET 45", "avg_delivery_time_days": 6, "on_time_delivery_pct": 0.92, "quality_rating": 4.2},
    ],
    "skus": [
        {"sku_id": "SKU-00001", "product_name": "Cotton Kurta", "category": "Apparel", "cost_price": 450.0,
         "selling_price": 899.0, "margin": 0.4994, "supplier_id": "SUP-001"},
    ],
    "inventory": [
        {"store_id": "STR-001", "sku_id": "SKU-00001", "quantity_on_hand": 120, "days_in_stock": 45},
    ],
    "purchase_orders": [
        {"po_id": "PO-000001", "supplier_id": "SUP-001", "sku_id": "SKU-00001", "quantity_ordered": 200,
         "order_date": "2025-09-20T00:00:00Z", "actual_delivery_date": "2025-09-28T00:00:00Z",
         "status": "Delivered", "delivery_location": "STR-001", "total_cost": 90000.0},
    ],
    "sales": [
        {"transaction_id": "TXN-0000001", "store_id": "STR-001", "sku_id": "SKU-00001",
         "transaction_date": "2025-10-14T18:30:00Z", "quantity_sold": 2, "total_amount": 1798.0,
         "time_of_day": "Evening", "payment_method": "UPI"},
    ],
    "forecasts": [
        {"sku_id": "SKU-00001", "store_id": "STR-001", "forecast_date": "2025-11-01T00:00:00Z",
         "forecast_period": 30, "predicted_demand": 64},
    ],
}

FILE_CONFIGS = {
    key: {
        "file_name": DATA_SOURCE_RULES["files"][key],
        "display_name": DATASET_SCHEMAS[key]["label"],
        "required_columns": DATASET_SCHEMAS[key]["required"],
        "sample_data": SAMPLE_RECORDS[key],
    }
    for key in DATASET_KEYS
}

# ===== VALIDATION FUNCTIONS =====

def validate_file(df, dataset_key):
    """
    Validate an uploaded document against its dataset schema

    Duplicate natural keys are reported as warnings: the loader keeps the
    last record for each key.

    Returns:
        (is_valid, errors_list, warnings_list)
    """
    errors = []
    warnings = []
    schema = DATASET_SCHEMAS.get(dataset_key)

    if not schema:
        return False, [f"Unknown dataset: {dataset_key}"], warnings

    missing_cols = [col for col in schema["required"] if col not in df.columns]
    if missing_cols:
        errors.append(f"Missing required columns: {', '.join(missing_cols)}")
        return False, errors, warnings

    for col in schema["numeric"]:
        if col in df.columns:
            coerced = pd.to_numeric(df[col], errors='coerce')
            bad = int((coerced.isna() & df[col].notna()).sum())
            if bad:
                errors.append(f"Column '{col}' contains {bad} non-numeric values")

    if dataset_key == "inventory":
        qty = pd.to_numeric(df['quantity_on_hand'], errors='coerce')
        if (qty < 0).any():
            errors.append("Found negative quantities in 'quantity_on_hand'")

    if dataset_key == "forecasts":
        periods = pd.to_numeric(df['forecast_period'], errors='coerce')
        unknown = int((~periods.isin([30, 90])).sum())
        if unknown:
            warnings.append(f"{unknown} forecasts have a period other than 30 or 90 days and will be ignored")

    for col in schema["dates"]:
        if col in df.columns:
            parsed = pd.to_datetime(df[col], errors='coerce', utc=True, format='ISO8601')
            bad = int((parsed.isna() & df[col].notna()).sum())
            if bad:
                warnings.append(f"Column '{col}' has {bad} unparseable dates (treated as missing)")

    if schema["unique_keys"]:
        duplicates = df.duplicated(subset=schema["unique_keys"])
        if duplicates.any():
            warnings.append(
                f"Found {int(duplicates.sum())} duplicate {'/'.join(schema['unique_keys'])} records; the last one wins"
            )

    return len(errors) == 0, errors, warnings


def create_template(dataset_key):
    """JSON template with one sample record"""
    config = FILE_CONFIGS.get(dataset_key)
    if not config:
        return None
    return json.dumps(config["sample_data"], indent=2).encode('utf-8')


def _record_history(file_name, status, rows):
    st.session_state.upload_history.append({
        'file': file_name,
        'timestamp': datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        'status': status,
        'rows': rows
    })


# ===== MAIN RENDER FUNCTION =====

def render_data_upload_page():
    """Main data upload page render function"""

    render_page_header(
        "Data Upload & Management",
        icon="📤",
        subtitle="Replace snapshot documents with your own JSON files"
    )

    # uploaded_files holds raw bytes per dataset key (read by file_loader)
    if 'uploaded_files' not in st.session_state:
        st.session_state.uploaded_files = {}

    if 'upload_meta' not in st.session_state:
        st.session_state.upload_meta = {}

    if 'upload_history' not in st.session_state:
        st.session_state.upload_history = []

    with st.expander("📖 Instructions", expanded=False):
        st.markdown(f"""
        **How to Upload Data:**

        1. **Download Template**: Each document is a JSON array of flat records
        2. **Upload File**: Uploaded files replace the matching file in `{DATA_SOURCE_RULES['data_dir']}`
        3. **Validate**: Missing columns and non-numeric values block the upload
        4. **Refresh**: Click "Refresh Dashboard" below to reload the snapshot

        Files you do not upload keep loading from disk.
        """)

    st.divider()
    st.subheader("📥 Snapshot Documents")

    for dataset_key, config in FILE_CONFIGS.items():
        file_name = config["file_name"]
        loaded = dataset_key in st.session_state.uploaded_files
        with st.expander(f"{'✅' if loaded else '⭕'} {config['display_name']} ({file_name})", expanded=False):
            st.caption(f"Required fields: {', '.join(config['required_columns'])}")

            col1, col2 = st.columns([3, 1])

            with col1:
                uploaded_file = st.file_uploader(
                    f"Upload {file_name}",
                    type=['json'],
                    key=f"upload_{dataset_key}",
                    label_visibility="collapsed"
                )

            with col2:
                st.download_button(
                    label="📥 Template",
                    data=create_template(dataset_key),
                    file_name=f"TEMPLATE_{file_name}",
                    mime="application/json",
                    width='stretch',
                    key=f"template_{dataset_key}"
                )

            if uploaded_file is not None:
                raw = uploaded_file.getvalue()
                try:
                    df = read_json_records(raw)
                except ValueError as e:
                    st.error(f"❌ Error reading file: {e}")
                    _record_history(file_name, 'Failed', 0)
                    continue

                is_valid, errors, warnings = validate_file(df, dataset_key)

                for warning in warnings:
                    st.warning(f"⚠️ {warning}")

                if is_valid:
                    st.session_state.uploaded_files[dataset_key] = raw
                    st.session_state.upload_meta[dataset_key] = {
                        'timestamp': datetime.now(),
                        'rows': len(df),
                    }
                    _record_history(file_name, 'Success', len(df))
                    st.success(f"✅ File validated successfully! Loaded {len(df):,} records")

                    with st.expander("Preview Data (first 5 rows)", expanded=False):
                        st.dataframe(df.head(), width='stretch')
                else:
                    st.error("❌ Validation failed:")
                    for error in errors:
                        st.error(f"  • {error}")
                    _record_history(file_name, 'Failed', 0)

            elif loaded:
                meta = st.session_state.upload_meta.get(dataset_key, {})
                if meta:
                    st.info(f"ℹ️ Currently loaded: {meta['rows']:,} records (uploaded {meta['timestamp'].strftime('%Y-%m-%d %H:%M:%S')})")

    st.divider()

    # === DATA STATUS DASHBOARD ===
    st.subheader("📊 Data Status")

    status_data = []
    for dataset_key, config in FILE_CONFIGS.items():
        meta = st.session_state.upload_meta.get(dataset_key)
        status_data.append({
            'File': config['file_name'],
            'Source': 'Uploaded' if dataset_key in st.session_state.uploaded_files else 'Disk',
            'Rows': f"{meta['rows']:,}" if meta else '-',
            'Last Updated': meta['timestamp'].strftime('%Y-%m-%d %H:%M:%S') if meta else '-',
        })
    st.dataframe(pd.DataFrame(status_data), hide_index=True, width='stretch')

    st.divider()

    # === ACTIONS ===
    st.subheader("⚙️ Actions")

    col1, col2 = st.columns(2)

    with col1:
        if st.button("🔄 Refresh Dashboard", width='stretch', help="Reload the snapshot with uploaded data"):
            clear_cached_app_data()
            st.success("✅ Cache cleared! Navigate to any page to see your uploaded data.")

    with col2:
        if st.button("🗑️ Clear All Uploads", width='stretch', help="Go back to the files on disk"):
            st.session_state.uploaded_files = {}
            st.session_state.upload_meta = {}
            clear_cached_app_data()
            st.success("✅ All uploads cleared!")
            st.rerun()

    st.divider()

    # === UPLOAD HISTORY ===
    st.subheader("📜 Upload History")
    st.caption("Last 10 upload attempts")

    if st.session_state.upload_history:
        history_df = pd.DataFrame(st.session_state.upload_history[-10:])
        history_df = history_df[['timestamp', 'file', 'status', 'rows']]
        history_df.columns = ['Timestamp', 'File', 'Status', 'Rows']
        st.dataframe(history_df, hide_index=True, width='stretch')
    else:
        st.info("No upload history yet")

    st.divider()
    st.caption("**Note:** Uploaded data is stored in session state and will be cleared when the browser session ends. For permanent data changes, replace the JSON files in the data directory.")
