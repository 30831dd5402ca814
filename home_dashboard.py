"""
Home Dashboard Module

Capital-allocation KPIs and store health for the Home view:
- Total inventory value and its split by store
- Liquidatable value (urgent returns) and payables due in 30 days
- Projected next-30-day sales from the observed monthly run-rate
- Store health cards (revenue, stock age, stockout rate)
- 30-day working-capital position (credit health)
- Monthly sales trend with a short linear forecast
"""

import pandas as pd
import numpy as np
import streamlit as st
from datetime import datetime
from dateutil.relativedelta import relativedelta
from scipy.stats import linregress

from business_rules import KPI_RULES, STORE_HEALTH_RULES, get_reference_date
from data_loader import empty_dataset
from action_center import compute_action_center


# ===== INVENTORY VALUE =====

def _sku_cost_map(skus: pd.DataFrame) -> pd.Series:
    latest = skus.drop_duplicates(subset='sku_id', keep='last')
    return latest.set_index('sku_id')['cost_price']


def _inventory_values(inventory: pd.DataFrame, skus: pd.DataFrame) -> pd.Series:
    """on hand x cost price per inventory row; unknown SKUs are worth 0."""
    cost = inventory['sku_id'].map(_sku_cost_map(skus)).fillna(0)
    return inventory['quantity_on_hand'] * cost


def calculate_total_inventory_value(inventory: pd.DataFrame, skus: pd.DataFrame) -> float:
    """Sum of on hand x cost price across all stores."""
    if inventory.empty:
        return 0.0
    return float(_inventory_values(inventory, skus).sum())


def calculate_store_value_breakdown(inventory: pd.DataFrame, skus: pd.DataFrame, stores: pd.DataFrame) -> pd.DataFrame:
    """
    Inventory value per store, highest first.

    Returns:
        DataFrame with store_id, store_name, value, percent (share of total value)
    """
    columns = ['store_id', 'store_name', 'value', 'percent']
    if inventory.empty:
        return pd.DataFrame(columns=columns)

    values = (
        inventory.assign(value=_inventory_values(inventory, skus))
        .groupby('store_id', as_index=False)['value'].sum()
    )
    names = stores.drop_duplicates(subset='store_id', keep='last').set_index('store_id')['store_name']
    values['store_name'] = values['store_id'].map(names).fillna(values['store_id'])

    total = values['value'].sum()
    values['percent'] = values['value'] / total * 100 if total > 0 else 0.0

    return values.sort_values('value', ascending=False, kind='stable')[columns].reset_index(drop=True)


# ===== SALES PROJECTION =====

def count_observed_months(sales: pd.DataFrame) -> int:
    """Distinct calendar months present in the transactions."""
    dates = sales['transaction_date'].dropna()
    if dates.empty:
        return 0
    return int(dates.dt.to_period('M').nunique())


def calculate_projected_sales(sales: pd.DataFrame) -> float:
    """
    Projected next-30-day sales = (total sales / months observed) x 1.1.

    Example: 24,000,000 over 8 months -> 3,300,000
    """
    months = count_observed_months(sales)
    if months == 0:
        return 0.0
    total = float(sales['total_amount'].sum())
    return total / months * KPI_RULES['projected_sales_growth']


# ===== STORE HEALTH =====

def _store_ids(stores: pd.DataFrame, inventory: pd.DataFrame):
    configured = list(STORE_HEALTH_RULES['stores'].keys())
    known = sorted(set(stores['store_id'].dropna()) | set(inventory['store_id'].dropna()))
    return configured + [s for s in known if s not in configured] if known else configured


def calculate_store_health(app_data):
    """
    One health card per store.

    Revenue is total sales; average stock age is the mean days_in_stock of the
    store's inventory; stockout rate is the percent of its SKUs with nothing on
    hand. Empty cohorts report 0 rather than NaN.

    Returns:
        list of dicts (store_id, store_name, health_tier, problem_stat,
        problem_value, total_revenue, avg_stock_age, stockout_rate)
    """
    rules = STORE_HEALTH_RULES
    stores = app_data.get('stores', empty_dataset('stores'))
    inventory = app_data.get('inventory', empty_dataset('inventory'))
    sales = app_data.get('sales', empty_dataset('sales'))

    store_lookup = stores.drop_duplicates(subset='store_id', keep='last').set_index('store_id')
    revenue_by_store = sales.groupby('store_id')['total_amount'].sum()

    cards = []
    for store_id in _store_ids(stores, inventory):
        store_inv = inventory[inventory['store_id'] == store_id]
        count = len(store_inv)
        avg_age = float(store_inv['days_in_stock'].mean()) if count else 0.0
        stockout_rate = float((store_inv['quantity_on_hand'] == 0).sum() / count * 100) if count else 0.0

        config = rules['stores'].get(store_id)
        if store_id in store_lookup.index:
            store_name = store_lookup.at[store_id, 'store_name']
            dataset_tier = store_lookup.at[store_id, 'performance_tier']
        else:
            store_name, dataset_tier = store_id, None

        if config:
            tier = config['tier']
            problem_stat = config['problem_stat']
        else:
            tier = dataset_tier if isinstance(dataset_tier, str) and dataset_tier else rules['default_tier']
            problem_stat = rules['default_problem_stat']

        if problem_stat == 'stockout_rate':
            problem_value = f"{stockout_rate:.1f}%"
        else:
            problem_value = f"{avg_age:.0f} days"

        cards.append({
            'store_id': store_id,
            'store_name': store_name,
            'health_tier': tier,
            'problem_stat': rules['problem_stat_labels'][problem_stat],
            'problem_value': problem_value,
            'total_revenue': float(revenue_by_store.get(store_id, 0.0)),
            'avg_stock_age': avg_age,
            'stockout_rate': stockout_rate,
        })

    return cards


# ===== CREDIT HEALTH =====

def calculate_credit_health(kpis):
    """
    30-day working-capital position.

    Cash in (projected sales) plus liquid assets (recoverable returns) against
    cash out (supplier payables).
    """
    cash_in = kpis['projected_30day_sales']
    liquid_assets = kpis['liquidatable_value']
    cash_out = kpis['payables_due_30days']
    total_buffer = cash_in + liquid_assets
    net_position = total_buffer - cash_out
    return {
        'cash_in': cash_in,
        'liquid_assets': liquid_assets,
        'cash_out': cash_out,
        'total_buffer': total_buffer,
        'net_position': net_position,
        'is_safe': net_position > 0,
    }


# ===== SALES TREND =====

def calculate_monthly_sales(sales: pd.DataFrame, today: pd.Timestamp) -> pd.DataFrame:
    """Total sales per complete calendar month before the reference month."""
    dated = sales[sales['transaction_date'].notna()]
    current_month = today.to_period('M')
    months = dated['transaction_date'].dt.to_period('M')
    dated = dated[months < current_month]
    if dated.empty:
        return pd.DataFrame({'period': pd.Series(dtype='datetime64[ns]'), 'value': pd.Series(dtype=float)})
    monthly = (
        dated.groupby(dated['transaction_date'].dt.to_period('M'))['total_amount']
        .sum()
        .sort_index()
    )
    return pd.DataFrame({
        'period': monthly.index.to_timestamp(),
        'value': monthly.values.astype(float),
    })


def forecast_monthly_sales(monthly: pd.DataFrame, months_ahead: int) -> pd.DataFrame:
    """
    Extend monthly totals with a straight-line trend fitted over the history.
    A single data point is carried forward flat; forecasts never go below 0.
    """
    if monthly.empty:
        return pd.DataFrame(columns=['period', 'value'])

    last_period = monthly['period'].iloc[-1]
    x = np.arange(len(monthly))
    if len(monthly) > 1:
        slope, intercept, r_value, p_value, std_err = linregress(x, monthly['value'])
    else:
        slope, intercept = 0.0, float(monthly['value'].iloc[0])

    rows = []
    for step in range(1, months_ahead + 1):
        value = intercept + slope * (len(monthly) - 1 + step)
        rows.append({'period': last_period + relativedelta(months=step), 'value': max(float(value), 0.0)})
    return pd.DataFrame(rows)


def calculate_sales_change(sales: pd.DataFrame, today: pd.Timestamp, window_days: int) -> float:
    """Percent change of the latest window's sales over the window before it."""
    dates = sales['transaction_date']
    window = pd.Timedelta(days=window_days)
    last = sales.loc[(dates > today - window) & (dates <= today), 'total_amount'].sum()
    prior = sales.loc[(dates > today - 2 * window) & (dates <= today - window), 'total_amount'].sum()
    if prior <= 0:
        return 0.0
    return float((last - prior) / prior * 100)


def calculate_sales_trend(sales: pd.DataFrame, today: pd.Timestamp, horizon: int = 8):
    """
    Chart data for the sales overview.

    horizon 8 shows the last 8 months of actuals only; 30/60/90 append forecast
    months while the cumulative forecast days stay below the horizon, and the
    last actual month is repeated on the forecast line so the two lines join.

    Returns:
        dict with chart_data (month, period, historical, forecast), total_sales,
        change_percentage, horizon
    """
    trend_rules = KPI_RULES['sales_trend']
    monthly = calculate_monthly_sales(sales, today).tail(trend_rules['actual_months_shown'])

    chart = pd.DataFrame({
        'period': monthly['period'],
        'historical': monthly['value'],
        'forecast': np.nan,
    })

    if horizon != trend_rules['actual_months_shown'] and not monthly.empty:
        forecast = forecast_monthly_sales(monthly, trend_rules['forecast_months'])
        day_count = 0
        forecast_rows = []
        for _, row in forecast.iterrows():
            if day_count >= horizon:
                break
            forecast_rows.append({'period': row['period'], 'historical': np.nan, 'forecast': row['value']})
            day_count += row['period'].days_in_month
        chart.loc[chart.index[-1], 'forecast'] = chart['historical'].iloc[-1]
        chart = pd.concat([chart, pd.DataFrame(forecast_rows)], ignore_index=True)

    chart = chart.reset_index(drop=True)
    chart.insert(0, 'month', chart['period'].dt.strftime('%b') if not chart.empty else pd.Series(dtype=str))

    return {
        'chart_data': chart,
        'total_sales': float(monthly['value'].sum()),
        'change_percentage': calculate_sales_change(sales, today, trend_rules['change_window_days']),
        'horizon': horizon,
    }


@st.cache_data(show_spinner=False)
def compute_sales_trend(app_data, today=None, horizon=8):
    """Cached wrapper around calculate_sales_trend()."""
    today = get_reference_date() if today is None else today
    return calculate_sales_trend(app_data.get('sales', empty_dataset('sales')), today, horizon)


# ===== ROLLUP =====

@st.cache_data(show_spinner="Calculating dashboard KPIs...")
def compute_home_dashboard(app_data, today=None):
    """
    Assemble the Home view read-model.

    Returns:
        tuple: (logs, dict with kpis, store_value_breakdown, store_health_cards, credit_health)
    """
    logs = []
    start_time = datetime.now()
    logs.append("--- Home Dashboard KPIs ---")
    today = get_reference_date() if today is None else today

    action_logs, action_data = compute_action_center(app_data, today)
    logs.extend(action_logs)

    inventory = app_data.get('inventory', empty_dataset('inventory'))
    skus = app_data.get('skus', empty_dataset('skus'))
    stores = app_data.get('stores', empty_dataset('stores'))
    sales = app_data.get('sales', empty_dataset('sales'))

    unknown_skus = int((~inventory['sku_id'].isin(skus['sku_id'])).sum())
    if unknown_skus:
        logs.append(f"WARNING: {unknown_skus} inventory rows reference unknown SKUs and are valued at 0.")

    kpis = {
        'total_inventory_value': calculate_total_inventory_value(inventory, skus),
        'liquidatable_value': action_data['total_return_value'],
        'payables_due_30days': action_data['total_payable_value'],
        'projected_30day_sales': calculate_projected_sales(sales),
    }
    logs.append(f"INFO: Projected 30-day sales from {count_observed_months(sales)} observed months.")

    dashboard = {
        'kpis': kpis,
        'store_value_breakdown': calculate_store_value_breakdown(inventory, skus, stores),
        'store_health_cards': calculate_store_health(app_data),
        'credit_health': calculate_credit_health(kpis),
    }

    elapsed = (datetime.now() - start_time).total_seconds()
    logs.append(f"INFO: Home Dashboard KPIs finished in {elapsed:.2f} seconds.")

    return logs, dashboard
