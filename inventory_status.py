"""
Inventory Status Module

Classifies store/SKU stock against the 90-day demand forecast:
- Overstocked: more than 3x the 90-day forecast on hand AND older than 60 days
- Understocked: fewer than 10 units on hand while the 90-day forecast exceeds 100

Output is capped at the 18 oldest overstock rows followed by the 7 most
valuable understock rows.
"""

import numpy as np
import pandas as pd
import streamlit as st
from datetime import datetime

from business_rules import STOCK_STATUS_RULES
from data_loader import empty_dataset
from lookup_maps import build_lookup_maps, STORE_SKU_KEY

INVENTORY_STATUS_COLUMNS = [
    'store_id', 'sku_id', 'product_name', 'category', 'status',
    'quantity_on_hand', 'forecast_90day', 'days_in_stock',
    'inventory_value', 'threshold', 'reason_delta'
]


def classify_stock_status(on_hand: pd.Series, forecast_90: pd.Series, days_in_stock: pd.Series) -> pd.Series:
    """
    Label each row Overstocked, Understocked or None.

    The two conditions cannot both hold (understock needs on hand < 10 while the
    forecast is above 100, so on hand is far below 3x forecast).
    """
    rules = STOCK_STATUS_RULES
    overstock = (on_hand > forecast_90 * rules['safety_factor']) & (days_in_stock > rules['overstock_age_days'])
    understock = (on_hand < rules['min_safety_stock']) & (forecast_90 > rules['understock_min_forecast'])

    status = pd.Series(None, index=on_hand.index, dtype=object)
    status[overstock] = rules['overstock_label']
    status[understock & ~overstock] = rules['understock_label']
    return status


def find_inventory_status(app_data, maps) -> pd.DataFrame:
    """
    Find overstocked and understocked store/SKU pairs.

    Overstock: threshold = 3 x forecast_90, reason_delta = on hand - threshold
    Understock: threshold = 10, reason_delta = 10 - on hand

    Returns:
        DataFrame with INVENTORY_STATUS_COLUMNS; overstock block first (oldest stock
        first, max 18 rows) then understock block (highest value first, max 7 rows)
    """
    rules = STOCK_STATUS_RULES
    inventory = app_data.get('inventory', empty_dataset('inventory'))

    df = inventory.join(maps.forecast90[['predicted_demand']], on=STORE_SKU_KEY, how='inner')
    df = df.join(maps.sku[['product_name', 'category', 'cost_price']], on='sku_id', how='inner')
    df = df.rename(columns={'predicted_demand': 'forecast_90day'})

    df = df.assign(status=classify_stock_status(df['quantity_on_hand'], df['forecast_90day'], df['days_in_stock']))
    df = df[df['status'].notna()]

    is_over = df['status'] == rules['overstock_label']
    overstock_threshold = df['forecast_90day'] * rules['safety_factor']
    df = df.assign(
        inventory_value=df['quantity_on_hand'] * df['cost_price'],
        threshold=np.where(is_over, overstock_threshold, rules['min_safety_stock']),
        reason_delta=np.where(
            is_over,
            df['quantity_on_hand'] - overstock_threshold,
            rules['min_safety_stock'] - df['quantity_on_hand'],
        ),
    )

    overstock = (
        df[df['status'] == rules['overstock_label']]
        .sort_values('days_in_stock', ascending=False, kind='stable')
        .head(rules['max_overstock_rows'])
    )
    understock = (
        df[df['status'] == rules['understock_label']]
        .sort_values('inventory_value', ascending=False, kind='stable')
        .head(rules['max_understock_rows'])
    )

    return pd.concat([overstock, understock])[INVENTORY_STATUS_COLUMNS].reset_index(drop=True)


@st.cache_data(show_spinner="Checking stock health...")
def compute_inventory_status(app_data):
    """
    Cached wrapper around find_inventory_status().

    Returns:
        tuple: (logs, inventory_status_df)
    """
    logs = []
    start_time = datetime.now()
    logs.append("--- Inventory Status Rules ---")

    maps = build_lookup_maps(app_data)
    status_df = find_inventory_status(app_data, maps)

    over_count = int((status_df['status'] == STOCK_STATUS_RULES['overstock_label']).sum())
    under_count = int((status_df['status'] == STOCK_STATUS_RULES['understock_label']).sum())
    logs.append(f"INFO: {over_count} overstocked and {under_count} understocked items surfaced.")

    elapsed = (datetime.now() - start_time).total_seconds()
    logs.append(f"INFO: Inventory Status Rules finished in {elapsed:.2f} seconds.")

    return logs, status_df
