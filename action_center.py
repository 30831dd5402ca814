"""
Action Center Module

Derives the prioritized alert lists shown on the Action Center:
- Urgent returns: delivered stock whose supplier return window closes soon and
  that the 90-day forecast says will not sell
- Upcoming payables: delivered POs whose payment falls due within 30 days
- Critical re-orders: fast sellers with less than a week of stock left

Every detector is a pure function of the snapshot and the reference date.
Records whose supplier, SKU, inventory or forecast cannot be resolved are
skipped, never raised.
"""

import numpy as np
import pandas as pd
import streamlit as st
from datetime import datetime

from business_rules import RETURN_RULES, PAYABLE_RULES, REORDER_RULES, get_reference_date
from data_loader import empty_dataset
from lookup_maps import build_lookup_maps, STORE_SKU_KEY

ONE_DAY = pd.Timedelta(days=1)

URGENT_RETURN_COLUMNS = [
    'po_id', 'sku_id', 'product_name', 'store_id', 'supplier_name',
    'days_remaining', 'at_risk_quantity', 'at_risk_value', 'deadline'
]

UPCOMING_PAYABLE_COLUMNS = [
    'po_id', 'supplier_name', 'amount_due', 'due_date', 'days_until_due'
]

CRITICAL_REORDER_COLUMNS = [
    'alert_id', 'sku_id', 'product_name', 'store_id', 'current_stock',
    'days_of_stock_left', 'forecast_30day', 'supplier_name',
    'supplier_rating', 'recommended_po_qty'
]


def days_until(target: pd.Series, today: pd.Timestamp) -> pd.Series:
    """Whole days from today to target, rounded up (NaN where target is missing)."""
    return np.ceil((target - today) / ONE_DAY)


def _finalize(df: pd.DataFrame, columns, sort_by) -> pd.DataFrame:
    """Select output columns and apply a stable ascending sort."""
    return (
        df[columns]
        .sort_values(sort_by, kind='stable')
        .reset_index(drop=True)
    )


# ===== 1. URGENT RETURNS =====

def find_urgent_returns(app_data, maps, today=None) -> pd.DataFrame:
    """
    Find delivered purchase orders that should be returned before the supplier's
    return window closes.

    deadline       = delivery date + supplier return window
    days_remaining = ceil((deadline - today) / 1 day), alert when 0 < days <= 30
    at_risk_qty    = on hand - 90-day predicted demand (only positive excess)
    at_risk_value  = floor(at_risk_qty x unit cost of the PO)

    Returns:
        DataFrame with URGENT_RETURN_COLUMNS, most urgent first
    """
    today = get_reference_date() if today is None else today
    window = RETURN_RULES['alert_window_days']
    pos = app_data.get('purchase_orders', empty_dataset('purchase_orders'))

    df = pos[pos['actual_delivery_date'].notna()]
    df = df.join(maps.supplier[['supplier_name', 'return_window_days']], on='supplier_id', how='inner')

    deadline = df['actual_delivery_date'] + pd.to_timedelta(df['return_window_days'], unit='D')
    df = df.assign(deadline=deadline, days_remaining=days_until(deadline, today))
    df = df[(df['days_remaining'] > 0) & (df['days_remaining'] <= window)]

    # Stock and forecast for the store the PO was delivered to
    join_key = ['delivery_location', 'sku_id']
    df = df.join(maps.inventory[['quantity_on_hand']], on=join_key, how='inner')
    df = df.join(maps.forecast90[['predicted_demand']], on=join_key, how='inner')
    df = df.join(maps.sku[['product_name']], on='sku_id', how='inner')

    # Unit cost is undefined for zero-quantity POs
    df = df[df['quantity_ordered'] > 0]

    excess = df['quantity_on_hand'] - df['predicted_demand']
    df = df.assign(excess=excess)[excess > 0]

    unit_cost = df['total_cost'] / df['quantity_ordered']
    df = df.assign(
        store_id=df['delivery_location'],
        days_remaining=df['days_remaining'].astype(int),
        at_risk_quantity=np.floor(df['excess']).astype(int),
        at_risk_value=np.floor(df['excess'] * unit_cost).astype(int),
    )

    return _finalize(df, URGENT_RETURN_COLUMNS, 'days_remaining')


# ===== 2. UPCOMING PAYABLES =====

def get_payment_days(payment_terms: pd.Series) -> pd.Series:
    """Map supplier payment terms to days after delivery (NET 30 when unrecognized)."""
    terms = PAYABLE_RULES['payment_terms_days']
    return payment_terms.map(terms).fillna(PAYABLE_RULES['default_payment_days'])


def find_upcoming_payables(app_data, maps, today=None) -> pd.DataFrame:
    """
    Find delivered purchase orders whose supplier payment is due within 30 days.

    Returns:
        DataFrame with UPCOMING_PAYABLE_COLUMNS, soonest due first
    """
    today = get_reference_date() if today is None else today
    window = PAYABLE_RULES['alert_window_days']
    pos = app_data.get('purchase_orders', empty_dataset('purchase_orders'))

    df = pos[(pos['status'] == PAYABLE_RULES['payable_status']) & pos['actual_delivery_date'].notna()]
    df = df.join(maps.supplier[['supplier_name', 'payment_terms']], on='supplier_id', how='inner')

    due_date = df['actual_delivery_date'] + pd.to_timedelta(get_payment_days(df['payment_terms']), unit='D')
    df = df.assign(due_date=due_date, days_until_due=days_until(due_date, today))
    df = df[(df['days_until_due'] > 0) & (df['days_until_due'] <= window)]

    df = df.assign(
        amount_due=df['total_cost'],
        days_until_due=df['days_until_due'].astype(int),
    )

    return _finalize(df, UPCOMING_PAYABLE_COLUMNS, 'days_until_due')


# ===== 3. CRITICAL RE-ORDERS =====

def find_critical_reorders(app_data, maps) -> pd.DataFrame:
    """
    Find store/SKU pairs that will run out within a week at forecast demand.

    daily_demand       = 30-day forecast / 30 (forecasts below 50 units ignored)
    days_of_stock_left = on hand / daily_demand, alert when < 7
    recommended_po_qty = ceil(30-day forecast x 1.2)

    Returns:
        DataFrame with CRITICAL_REORDER_COLUMNS, fewest days of stock first
    """
    period = REORDER_RULES['forecast_period']
    inventory = app_data.get('inventory', empty_dataset('inventory'))

    df = inventory.join(maps.forecast30[['predicted_demand']], on=STORE_SKU_KEY, how='inner')
    df = df[df['predicted_demand'] >= REORDER_RULES['min_forecast_units']]

    daily_demand = df['predicted_demand'] / period
    df = df.assign(daily_demand=daily_demand)[daily_demand > 0]

    days_left = df['quantity_on_hand'] / df['daily_demand']
    df = df.assign(days_of_stock_left=days_left)[days_left < REORDER_RULES['critical_days_of_stock']]

    df = df.join(maps.sku[['product_name', 'supplier_id']], on='sku_id', how='inner')
    df = df.join(maps.supplier[['supplier_name', 'on_time_delivery_pct']], on='supplier_id', how='inner')

    df = df.assign(
        alert_id=df['store_id'] + '-' + df['sku_id'],
        current_stock=df['quantity_on_hand'],
        forecast_30day=df['predicted_demand'],
        supplier_rating=df['on_time_delivery_pct'] * 100,
        recommended_po_qty=np.ceil(df['predicted_demand'] * REORDER_RULES['recommended_qty_multiplier']).astype(int),
    )

    return _finalize(df, CRITICAL_REORDER_COLUMNS, 'days_of_stock_left')


# ===== ROLLUP =====

def summarize_action_center(urgent_returns, upcoming_payables, critical_reorders):
    """Bundle the alert lists with their headline totals."""
    return {
        'urgent_returns': urgent_returns,
        'upcoming_payables': upcoming_payables,
        'critical_reorders': critical_reorders,
        'total_return_value': float(urgent_returns['at_risk_value'].sum()),
        'total_payable_value': float(upcoming_payables['amount_due'].sum()),
    }


@st.cache_data(show_spinner="Evaluating action center rules...")
def compute_action_center(app_data, today=None):
    """
    Run all action center detectors against one snapshot.

    Args:
        app_data: dict produced by data_loader.load_app_data()
        today: reference date (defaults to the configured snapshot date)

    Returns:
        tuple: (logs, action_center dict)
    """
    logs = []
    start_time = datetime.now()
    logs.append("--- Action Center Rules ---")
    today = get_reference_date() if today is None else today
    logs.append(f"INFO: Reference date: {today:%Y-%m-%d %H:%M}")

    maps = build_lookup_maps(app_data)

    urgent_returns = find_urgent_returns(app_data, maps, today)
    logs.append(f"INFO: {len(urgent_returns)} urgent return alerts.")

    upcoming_payables = find_upcoming_payables(app_data, maps, today)
    logs.append(f"INFO: {len(upcoming_payables)} payables due in the next {PAYABLE_RULES['alert_window_days']} days.")

    critical_reorders = find_critical_reorders(app_data, maps)
    logs.append(f"INFO: {len(critical_reorders)} critical re-order alerts.")

    elapsed = (datetime.now() - start_time).total_seconds()
    logs.append(f"INFO: Action Center Rules finished in {elapsed:.2f} seconds.")

    return logs, summarize_action_center(urgent_returns, upcoming_payables, critical_reorders)
