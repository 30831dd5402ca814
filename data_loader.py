import pandas as pd
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor, as_completed
import os
import time
from business_rules import DATA_SOURCE_RULES
from file_loader import get_file_source, safe_read_json

# === Dataset Schemas ===

DATASET_SCHEMAS = {
    "stores": {
        "label": "Stores",
        "required": ["store_id", "store_name", "store_type", "performance_tier"],
        "optional": ["sq_ft", "avg_basket_size", "location"],
        "numeric": ["sq_ft", "avg_basket_size"],
        "dates": [],
        "unique_keys": ["store_id"],
    },
    "suppliers": {
        "label": "Suppliers",
        "required": ["supplier_id", "supplier_name", "return_window_days", "payment_terms"],
        "optional": ["avg_delivery_time_days", "on_time_delivery_pct", "quality_rating"],
        "numeric": ["return_window_days", "avg_delivery_time_days", "on_time_delivery_pct", "quality_rating"],
        "dates": [],
        "unique_keys": ["supplier_id"],
    },
    "skus": {
        "label": "SKUs",
        "required": ["sku_id", "product_name", "category", "cost_price", "supplier_id"],
        "optional": ["selling_price", "margin"],
        "numeric": ["cost_price", "selling_price", "margin"],
        "dates": [],
        "unique_keys": ["sku_id"],
    },
    "inventory": {
        "label": "Inventory",
        "required": ["store_id", "sku_id", "quantity_on_hand", "days_in_stock"],
        "optional": [],
        "numeric": ["quantity_on_hand", "days_in_stock"],
        "dates": [],
        "unique_keys": ["store_id", "sku_id"],
    },
    "purchase_orders": {
        "label": "Purchase Orders",
        "required": ["po_id", "supplier_id", "sku_id", "quantity_ordered", "status",
                     "delivery_location", "total_cost"],
        "optional": ["order_date", "actual_delivery_date"],
        "numeric": ["quantity_ordered", "total_cost"],
        "dates": ["order_date", "actual_delivery_date"],
        "unique_keys": None,
    },
    "sales": {
        "label": "Sales Transactions",
        "required": ["transaction_id", "store_id", "sku_id", "transaction_date",
                     "quantity_sold", "total_amount"],
        "optional": ["time_of_day", "payment_method"],
        "numeric": ["quantity_sold", "total_amount"],
        "dates": ["transaction_date"],
        "unique_keys": None,
    },
    "forecasts": {
        "label": "Demand Forecasts",
        "required": ["sku_id", "store_id", "forecast_period", "predicted_demand"],
        "optional": ["forecast_date"],
        "numeric": ["forecast_period", "predicted_demand"],
        "dates": ["forecast_date"],
        "unique_keys": ["store_id", "sku_id", "forecast_period"],
    },
}

DATASET_KEYS = list(DATASET_SCHEMAS.keys())

# === Helper Functions ===

def clean_string_column(series: pd.Series) -> pd.Series:
    """
    Strip whitespace and normalize internal spaces in identifier/text columns.

    Missing values stay missing instead of turning into the string 'nan'.
    """
    cleaned = series.astype(str).str.strip().str.replace(r'\s+', ' ', regex=True)
    return cleaned.where(series.notna(), pd.NA)

def safe_numeric_column(series: pd.Series, remove_commas: bool = False) -> pd.Series:
    """
    Convert column to numeric with optional comma removal.

    Args:
        series: Pandas Series to convert
        remove_commas: If True, remove commas before conversion

    Returns:
        Numeric Series with NaN filled as 0
    """
    if remove_commas:
        series = series.astype(str).str.replace(',', '', regex=False)
    return pd.to_numeric(series, errors='coerce').fillna(0)

def parse_date_column(series: pd.Series) -> pd.Series:
    """Parse ISO date strings into naive UTC timestamps (NaT when absent)."""
    parsed = pd.to_datetime(series, errors='coerce', utc=True, format='ISO8601')
    return parsed.dt.tz_localize(None)

def check_columns(df, required_cols, filename, logs):
    """Helper function to check for missing columns."""
    missing_cols = [col for col in required_cols if col not in df.columns]
    if missing_cols:
        logs.append(f"ERROR: '{filename}' is missing required columns: {', '.join(missing_cols)}")
        return False
    return True

def empty_dataset(dataset_key: str) -> pd.DataFrame:
    """Empty frame that still carries the dataset's schema columns."""
    schema = DATASET_SCHEMAS[dataset_key]
    df = pd.DataFrame(columns=schema["required"] + schema["optional"])
    for col in schema["numeric"]:
        df[col] = df[col].astype(float)
    for col in schema["dates"]:
        df[col] = pd.to_datetime(df[col])
    return df

# === Dataset Normalization ===

def normalize_dataset(dataset_key: str, df: pd.DataFrame, logs: list) -> pd.DataFrame:
    """
    Coerce a raw dataset to its schema: clean ids/text, numeric and date columns,
    add missing optional columns, and enforce the natural-key uniqueness invariant.
    """
    schema = DATASET_SCHEMAS[dataset_key]
    df = df.copy()

    for col in schema["optional"]:
        if col not in df.columns:
            df[col] = pd.NA
            logs.append(f"WARNING: Optional column '{col}' not present; filled with blanks.")

    df = df[schema["required"] + schema["optional"]].copy()

    for col in df.columns:
        if col in schema["numeric"]:
            df[col] = safe_numeric_column(df[col])
        elif col in schema["dates"]:
            df[col] = parse_date_column(df[col])
        else:
            df[col] = clean_string_column(df[col])

    if schema["unique_keys"]:
        dupes = df.duplicated(subset=schema["unique_keys"], keep='last')
        if dupes.any():
            logs.append(
                f"WARNING: Found {int(dupes.sum())} duplicated {'/'.join(schema['unique_keys'])} "
                f"records in {schema['label']}; keeping the last occurrence."
            )
            df = df[~dupes]

    return df.reset_index(drop=True)

def load_dataset(dataset_key: str, file_path: str, file_key: str = None, source=None):
    """
    Load one JSON snapshot document and normalize it to its schema.

    A failed read never raises: the dataset degrades to an empty frame and the
    failure is logged so the rest of the snapshot can still load.

    Args:
        dataset_key: one of DATASET_KEYS
        file_path: path used when no uploaded file exists
        file_key: session state key for uploaded file (defaults to dataset_key)
        source: pre-resolved source from get_file_source()

    Returns: logs (list), dataframe
    """
    logs = []
    start_time = time.time()
    schema = DATASET_SCHEMAS[dataset_key]
    filename = os.path.basename(file_path)
    logs.append(f"--- {schema['label']} Loader ---")

    try:
        df = safe_read_json(file_key or dataset_key, file_path, source=source)
        logs.append(f"INFO: Loaded {len(df)} records from {filename}.")
    except Exception as e:
        logs.append(f"ERROR: Failed to read '{filename}': {e}")
        return logs, empty_dataset(dataset_key)

    if df.empty:
        logs.append(f"WARNING: '{filename}' contains no records.")
        return logs, empty_dataset(dataset_key)

    if not check_columns(df, schema["required"], filename, logs):
        return logs, empty_dataset(dataset_key)

    df = normalize_dataset(dataset_key, df, logs)

    for col in schema["dates"]:
        missing_dates = int(df[col].isna().sum())
        if missing_dates:
            logs.append(f"INFO: {missing_dates} records have no '{col}'.")

    end_time = time.time()
    logs.append(f"INFO: {schema['label']} Loader finished in {end_time - start_time:.2f} seconds.")

    return logs, df

# === Snapshot Loader ===

def load_app_data(data_dir=None, _progress_callback=None):
    """
    Load all seven snapshot documents concurrently and assemble the AppData dict.

    Sources are resolved up front (uploaded buffers win over disk) so the worker
    threads never touch Streamlit session state. Every dataset is awaited; a
    failure in one only empties that dataset.

    Args:
        data_dir: directory holding the JSON documents (defaults to DATA_SOURCE_RULES)
        _progress_callback: Optional callback(progress, message) (underscore prefix = not hashed)

    Returns:
        dict with one DataFrame per dataset key, '<key>_logs' lists, and load time
    """
    def update_progress(step, message):
        """Helper to update progress if callback provided"""
        if _progress_callback:
            _progress_callback(step, message)

    data_dir = data_dir or DATA_SOURCE_RULES["data_dir"]
    files = DATA_SOURCE_RULES["files"]
    start_time = time.time()

    sources = {}
    for key in DATASET_KEYS:
        path = os.path.join(data_dir, files[key])
        source, is_uploaded = get_file_source(key, path)
        sources[key] = (path, source, is_uploaded)

    update_progress(0.05, "Loading snapshot data...")

    results = {}
    max_workers = DATA_SOURCE_RULES.get("max_load_workers", len(DATASET_KEYS))
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            pool.submit(load_dataset, key, path, key, source): key
            for key, (path, source, _) in sources.items()
            if source is not None
        }
        for key, (path, source, _) in sources.items():
            if source is None:
                results[key] = (
                    [f"--- {DATASET_SCHEMAS[key]['label']} Loader ---",
                     f"ERROR: File not found: {path} (and no uploaded file)"],
                    empty_dataset(key),
                )

        for done, future in enumerate(as_completed(futures), start=1):
            key = futures[future]
            results[key] = future.result()
            update_progress(0.05 + 0.9 * done / max(len(futures), 1),
                            f"Loaded {DATASET_SCHEMAS[key]['label'].lower()}...")

    app_data = {}
    for key in DATASET_KEYS:
        logs, df = results[key]
        path, _, is_uploaded = sources[key]
        if is_uploaded:
            logs.insert(1, f"INFO: Using uploaded file for {os.path.basename(path)}.")
        app_data[key] = df
        app_data[f"{key}_logs"] = logs

    total_records = sum(len(app_data[key]) for key in DATASET_KEYS)
    elapsed = time.time() - start_time
    app_data["snapshot_logs"] = [
        "--- Snapshot Loader ---",
        f"INFO: Data directory: {data_dir}",
        f"INFO: Loaded {total_records} records across {len(DATASET_KEYS)} datasets "
        f"in {elapsed:.2f} seconds.",
    ]
    empty_keys = [key for key in DATASET_KEYS if app_data[key].empty]
    if empty_keys:
        app_data["snapshot_logs"].append(
            f"WARNING: Continuing with empty datasets: {', '.join(empty_keys)}"
        )

    now = datetime.now()
    app_data["load_time"] = now
    app_data["load_time_str"] = now.strftime("%Y-%m-%d %H:%M:%S")

    update_progress(1.0, "Ready!")

    return app_data

def get_snapshot_frames(app_data):
    """Return only the dataset frames of an AppData dict (drops logs/timestamps)."""
    return {key: app_data.get(key, empty_dataset(key)) for key in DATASET_KEYS}

def count_records(app_data) -> int:
    """Total rows across all datasets."""
    return sum(len(df) for df in get_snapshot_frames(app_data).values())
