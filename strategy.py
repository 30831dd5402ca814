"""
Strategy Module

Places every selling SKU on a velocity vs. margin grid. The averages across the
filtered SKUs split the grid into four quadrants:

                     margin >= avg        margin < avg
  velocity >= avg    Core Performer       Slow-Moving
  velocity <  avg    Growth Potential     Underperformer
"""

import pandas as pd
import streamlit as st
from datetime import datetime

from business_rules import STRATEGY_RULES, get_reference_date
from data_loader import empty_dataset

ALL_OPTION = 'ALL'

STRATEGY_COLUMNS = [
    'sku_id', 'product_name', 'category', 'velocity', 'margin', 'quadrant'
]


def get_filter_options(app_data):
    """Store and category dropdown options, each led by 'ALL'."""
    stores = app_data.get('stores', empty_dataset('stores'))
    skus = app_data.get('skus', empty_dataset('skus'))
    store_options = [ALL_OPTION] + stores['store_id'].dropna().drop_duplicates().tolist()
    category_options = [ALL_OPTION] + skus['category'].dropna().drop_duplicates().tolist()
    return store_options, category_options


def calculate_sku_velocity(sales: pd.DataFrame, today: pd.Timestamp, window_days: int = 90, store: str = ALL_OPTION) -> pd.Series:
    """
    Units sold per SKU in the trailing window ending at today.

    Returns:
        Series of units sold indexed by sku_id
    """
    start = today - pd.Timedelta(days=window_days)
    dates = sales['transaction_date']
    recent = sales[(dates > start) & (dates <= today)]
    if store != ALL_OPTION:
        recent = recent[recent['store_id'] == store]
    return recent.groupby('sku_id')['quantity_sold'].sum()


def get_sku_margin(skus: pd.DataFrame) -> pd.Series:
    """Margin as a fraction of selling price; derived from prices when not supplied."""
    derived = (skus['selling_price'] - skus['cost_price']) / skus['selling_price'].where(skus['selling_price'] > 0)
    margin = skus['margin'].where(skus['margin'] > 0, derived)
    return margin.fillna(0)


def classify_quadrant(velocity, margin, avg_velocity, avg_margin):
    labels = STRATEGY_RULES['quadrants']
    if velocity >= avg_velocity and margin >= avg_margin:
        return labels[0]
    if velocity < avg_velocity and margin >= avg_margin:
        return labels[1]
    if velocity >= avg_velocity and margin < avg_margin:
        return labels[2]
    return labels[3]


@st.cache_data(show_spinner="Building strategy quadrant...")
def compute_strategy(app_data, today=None, store=ALL_OPTION, category=ALL_OPTION):
    """
    Velocity/margin quadrant for the selected store and category.

    Only SKUs that sold in the trailing window are placed on the grid.

    Returns:
        tuple: (logs, dict with quadrant_data, avg_velocity, avg_margin,
                quadrant_counts, store, category)
    """
    logs = []
    start_time = datetime.now()
    logs.append("--- Strategy Quadrant ---")
    today = get_reference_date() if today is None else today

    skus = app_data.get('skus', empty_dataset('skus'))
    sales = app_data.get('sales', empty_dataset('sales'))

    velocity = calculate_sku_velocity(sales, today, STRATEGY_RULES['velocity_window_days'], store)

    df = skus.drop_duplicates(subset='sku_id', keep='last')
    if category != ALL_OPTION:
        df = df[df['category'] == category]
    df = df.assign(velocity=df['sku_id'].map(velocity).fillna(0), margin=get_sku_margin(df))
    df = df[df['velocity'] > 0]

    if df.empty:
        logs.append(f"WARNING: No sales for store={store}, category={category} in the last "
                    f"{STRATEGY_RULES['velocity_window_days']} days.")
        avg_velocity, avg_margin = 0.0, 0.0
        df = df.assign(quadrant=pd.Series(dtype=object))
    else:
        avg_velocity = float(df['velocity'].mean())
        avg_margin = float(df['margin'].mean())
        df = df.assign(quadrant=[
            classify_quadrant(v, m, avg_velocity, avg_margin)
            for v, m in zip(df['velocity'], df['margin'])
        ])

    quadrant_data = df.sort_values('velocity', ascending=False, kind='stable')[STRATEGY_COLUMNS].reset_index(drop=True)
    quadrant_counts = quadrant_data['quadrant'].value_counts().reindex(STRATEGY_RULES['quadrants'], fill_value=0)

    logs.append(f"INFO: {len(quadrant_data)} SKUs placed (store={store}, category={category}).")
    elapsed = (datetime.now() - start_time).total_seconds()
    logs.append(f"INFO: Strategy Quadrant finished in {elapsed:.2f} seconds.")

    return logs, {
        'quadrant_data': quadrant_data,
        'avg_velocity': avg_velocity,
        'avg_margin': avg_margin,
        'quadrant_counts': quadrant_counts.to_dict(),
        'store': store,
        'category': category,
    }
