import pandas as pd
import streamlit as st
import io # Required for Excel export

APP_DATA_CACHE_KEY = 'app_data'

# --- Data Export Function ---

def get_filtered_data_as_excel(dfs_to_export_dict):
    """
    Processes a dictionary of dataframes
    and returns an Excel file as a bytes object for download.
    The dictionary format is { "sheet_name": (dataframe, include_index_bool) }

    Datetime columns are written as plain YYYY-MM-DD strings; the frame is only
    copied when such a column exists.
    """
    output = io.BytesIO()

    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        for sheet_name, (df, include_index) in dfs_to_export_dict.items():

            if not isinstance(df, pd.DataFrame):
                print(f"Skipping {sheet_name}: Not a DataFrame.")
                continue
            if df.empty:
                print(f"Skipping {sheet_name}: DataFrame is empty.")
                continue

            df_to_export = df
            datetime_cols = [col for col in df.columns if pd.api.types.is_datetime64_any_dtype(df[col])]

            if datetime_cols:
                df_to_export = df.copy()
                for col in datetime_cols:
                    if df_to_export[col].dt.tz is not None:
                        df_to_export[col] = df_to_export[col].dt.tz_localize(None)
                    df_to_export[col] = df_to_export[col].dt.strftime('%Y-%m-%d')

            # Excel sheet names max out at 31 characters
            sheet_name = sheet_name[:31]
            df_to_export.to_excel(writer, sheet_name=sheet_name, index=include_index)

            # Auto-adjust column widths
            worksheet = writer.sheets[sheet_name]
            for idx, col in enumerate(df_to_export.columns):
                series = df_to_export[col]
                max_len = max(
                    series.astype(str).map(len).max(),
                    len(str(series.name))
                ) + 2
                worksheet.set_column(idx, idx, max_len)

    return output.getvalue()


def build_alert_export(action_data, inventory_status_df=None):
    """
    Sheet dictionary for the Action Center Excel download.

    Args:
        action_data: dict returned by action_center.compute_action_center()
        inventory_status_df: optional frame from inventory_status.compute_inventory_status()

    Returns:
        { "sheet_name": (dataframe, include_index_bool) }
    """
    sheets = {
        "Urgent Returns": (action_data['urgent_returns'], False),
        "Upcoming Payables": (action_data['upcoming_payables'], False),
        "Critical Reorders": (action_data['critical_reorders'], False),
    }
    if inventory_status_df is not None:
        sheets["Inventory Status"] = (inventory_status_df, False)
    return sheets


# --- Snapshot Cache ---

def get_cached_app_data(data_loader_func, *loader_args, **loader_kwargs):
    """
    Load the snapshot once per session and keep it in session_state.

    Filter changes and page switches rerun the script; the snapshot is only
    reloaded after clear_cached_app_data() (Refresh / new upload).

    Args:
        data_loader_func: Function to call to load data (data_loader.load_app_data)
        *loader_args: Arguments to pass to the loader function

    Returns:
        The cached AppData dict
    """
    if APP_DATA_CACHE_KEY not in st.session_state:
        st.session_state[APP_DATA_CACHE_KEY] = data_loader_func(*loader_args, **loader_kwargs)

    return st.session_state[APP_DATA_CACHE_KEY]


def clear_cached_app_data():
    """Drop the session snapshot and all memoized rule results."""
    st.session_state.pop(APP_DATA_CACHE_KEY, None)
    st.cache_data.clear()
