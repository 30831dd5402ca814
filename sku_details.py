"""
SKU / Supplier Details Module

Read-models for the Details deep-dive. A SKU view joins catalogue, supplier,
per-store stock, forecasts, recent sales and open purchase orders. A supplier
view rolls up its SKUs and purchase order history.
"""

import pandas as pd
import streamlit as st
from datetime import datetime

from business_rules import DETAIL_RULES, PURCHASE_PLAN_RULES, get_reference_date
from data_loader import empty_dataset
from lookup_maps import get_record, skus_by_supplier


def simulate_purchase_plan(cost_price):
    """
    Simulated safety stock, reorder point and order quantity for the SKU card.

    The figures come from fixed modulo arithmetic on the cost price. They are a
    display placeholder, not a replenishment model, and are flagged as such.
    """
    rules = PURCHASE_PLAN_RULES
    seed = int(cost_price) if pd.notna(cost_price) else 0
    safety_stock = rules['safety_stock_base'] + seed % rules['safety_stock_modulo']
    reorder_point = safety_stock + rules['reorder_point_offset'] + seed % rules['reorder_point_modulo']
    order_quantity = rules['order_quantity_base'] + seed % rules['order_quantity_modulo']
    return {
        'safety_stock': safety_stock,
        'reorder_point': reorder_point,
        'order_quantity': order_quantity,
        'is_illustrative': rules['is_illustrative'],
    }


def calculate_daily_sales_trend(sales: pd.DataFrame, today: pd.Timestamp, window_days: int) -> pd.DataFrame:
    """Units sold per day over the trailing window, days without sales filled with 0."""
    end = today.normalize()
    days = pd.date_range(end=end, periods=window_days, freq='D')
    dated = sales[sales['transaction_date'].notna()]
    daily = dated.groupby(dated['transaction_date'].dt.normalize())['quantity_sold'].sum()
    daily = daily.reindex(days, fill_value=0)
    return pd.DataFrame({'date': days, 'units_sold': daily.values})


def calculate_store_velocity(sales: pd.DataFrame, today: pd.Timestamp, window_days: int) -> pd.DataFrame:
    """Units sold per store in the trailing window, with the average per day."""
    dates = sales['transaction_date']
    recent = sales[(dates > today - pd.Timedelta(days=window_days)) & (dates <= today)]
    velocity = recent.groupby('store_id', as_index=False)['quantity_sold'].sum()
    velocity = velocity.rename(columns={'quantity_sold': 'units_sold'})
    velocity['daily_velocity'] = velocity['units_sold'] / window_days
    return velocity.sort_values('store_id', kind='stable').reset_index(drop=True)


def get_open_purchase_orders(pos: pd.DataFrame) -> pd.DataFrame:
    """Purchase orders not yet delivered, newest order first."""
    open_pos = pos[pos['status'] != DETAIL_RULES['delivered_status']]
    return open_pos.sort_values('order_date', ascending=False, kind='stable', na_position='last').reset_index(drop=True)


def find_sku(app_data, maps, sku_id, today=None):
    """
    Assemble the deep-dive for one SKU.

    Returns:
        dict with sku, supplier, inventory, forecasts, sales_trend_30d,
        store_velocity_90d, recent_transactions, open_purchase_orders and
        purchase_plan; None when the SKU is unknown
    """
    sku = get_record(maps.sku, sku_id)
    if sku is None:
        return None

    today = get_reference_date() if today is None else today
    inventory = app_data.get('inventory', empty_dataset('inventory'))
    forecasts = app_data.get('forecasts', empty_dataset('forecasts'))
    sales = app_data.get('sales', empty_dataset('sales'))
    pos = app_data.get('purchase_orders', empty_dataset('purchase_orders'))

    sku_sales = sales[sales['sku_id'] == sku_id]

    return {
        'sku': sku,
        'supplier': get_record(maps.supplier, sku['supplier_id']),
        'inventory': inventory[inventory['sku_id'] == sku_id].sort_values('store_id', kind='stable').reset_index(drop=True),
        'forecasts': (
            forecasts[forecasts['sku_id'] == sku_id]
            .sort_values(['forecast_period', 'store_id'], kind='stable')
            .reset_index(drop=True)
        ),
        'sales_trend_30d': calculate_daily_sales_trend(sku_sales, today, DETAIL_RULES['trend_window_days']),
        'store_velocity_90d': calculate_store_velocity(sku_sales, today, DETAIL_RULES['velocity_window_days']),
        'recent_transactions': (
            sku_sales.sort_values('transaction_date', ascending=False, kind='stable')
            .head(DETAIL_RULES['recent_transactions'])
            .reset_index(drop=True)
        ),
        'open_purchase_orders': get_open_purchase_orders(pos[pos['sku_id'] == sku_id]),
        'purchase_plan': simulate_purchase_plan(sku['cost_price']),
    }


def find_supplier(app_data, maps, supplier_id):
    """
    Assemble the deep-dive for one supplier.

    Returns:
        dict with supplier, skus, po_count, total_po_value, avg_delivery_time,
        on_time_pct and open_purchase_orders; None when the supplier is unknown
    """
    supplier = get_record(maps.supplier, supplier_id)
    if supplier is None:
        return None

    pos = app_data.get('purchase_orders', empty_dataset('purchase_orders'))
    supplier_pos = pos[pos['supplier_id'] == supplier_id]

    return {
        'supplier': supplier,
        'skus': skus_by_supplier(maps, supplier_id),
        'po_count': len(supplier_pos),
        'total_po_value': float(supplier_pos['total_cost'].sum()),
        'avg_delivery_time': supplier['avg_delivery_time_days'],
        'on_time_pct': supplier['on_time_delivery_pct'] * 100,
        'open_purchase_orders': get_open_purchase_orders(supplier_pos),
    }


def get_search_options(app_data):
    """
    Search box options for the Details view.

    Returns:
        tuple: (sku_options, supplier_options), each an ordered dict of id -> label
    """
    skus = app_data.get('skus', empty_dataset('skus')).drop_duplicates(subset='sku_id', keep='last')
    suppliers = app_data.get('suppliers', empty_dataset('suppliers')).drop_duplicates(subset='supplier_id', keep='last')

    sku_options = {
        row.sku_id: f"{row.sku_id} - {row.product_name}"
        for row in skus.itertuples(index=False)
        if pd.notna(row.sku_id)
    }
    supplier_options = {
        row.supplier_id: f"{row.supplier_id} - {row.supplier_name}"
        for row in suppliers.itertuples(index=False)
        if pd.notna(row.supplier_id)
    }
    return sku_options, supplier_options


def log_detail_lookup(kind, key, found):
    """Debug-page style log line for a detail search."""
    stamp = datetime.now().strftime("%H:%M:%S")
    if found:
        return f"INFO: [{stamp}] {kind} '{key}' found."
    return f"WARNING: [{stamp}] {kind} '{key}' not found in the snapshot."


# ===== CACHED VIEWS =====

@st.cache_data(show_spinner=False)
def compute_search_options(app_data):
    """Cached wrapper around get_search_options()."""
    return get_search_options(app_data)


@st.cache_data(show_spinner=False, max_entries=64)
def compute_sku_details(app_data, _maps, sku_id, today=None):
    """Cached find_sku(); _maps must be built from the same snapshot."""
    return find_sku(app_data, _maps, sku_id, today)


@st.cache_data(show_spinner=False, max_entries=64)
def compute_supplier_details(app_data, _maps, supplier_id):
    """Cached find_supplier(); _maps must be built from the same snapshot."""
    return find_supplier(app_data, _maps, supplier_id)
