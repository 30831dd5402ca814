"""
Business Rules Configuration
Centralized definitions for thresholds, windows, and business logic constants.
This file allows rules to be changed in one place without modifying tool code.
"""

import os
import pandas as pd

# ===== DATA SOURCE =====

DATA_SOURCE_RULES = {
    # Directory holding the seven JSON snapshot documents
    "data_dir": os.environ.get("RETAIL_DATA_DIR", "demo_data_100k"),

    # dataset key -> file name inside data_dir
    "files": {
        "stores": "stores.json",
        "suppliers": "suppliers.json",
        "skus": "skus.json",
        "inventory": "inventory.json",
        "purchase_orders": "purchase_orders.json",
        "sales": "sales_transactions.json",
        "forecasts": "demand_forecast.json",
    },

    "max_load_workers": 7,
}


# ===== SNAPSHOT DATE =====

SNAPSHOT_RULES = {
    # All date-delta math runs against this instant. Must match the date the
    # fixture generator used when the snapshot was produced.
    "reference_date": os.environ.get("RETAIL_REFERENCE_DATE", "2025-11-01T12:00:00"),
}


def get_reference_date():
    """Return the configured reference date as a naive UTC Timestamp."""
    ts = pd.Timestamp(SNAPSHOT_RULES["reference_date"])
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


# ===== CURRENCY =====

CURRENCY_RULES = {
    "base_currency": "INR",
    "symbol": "₹",
    # Lakh/crore digit grouping (12,34,567)
    "indian_grouping": True,
}


# ===== ACTION CENTER RULES =====

RETURN_RULES = {
    # Alert when the supplier return window closes within this many days
    "alert_window_days": 30,
    # Forecast horizon compared against on-hand stock to size the excess
    "forecast_period": 90,
}

PAYABLE_RULES = {
    "default_payment_days": 30,
    "payment_terms_days": {
        "NET 45": 45,
        "NET 60": 60,
    },
    "alert_window_days": 30,
    # Only delivered POs create a payable
    "payable_status": "Delivered",
}

REORDER_RULES = {
    "forecast_period": 30,
    # Ignore slow sellers below this 30-day forecast
    "min_forecast_units": 50,
    "critical_days_of_stock": 7,
    "recommended_qty_multiplier": 1.2,
}


# ===== INVENTORY STATUS RULES =====

STOCK_STATUS_RULES = {
    "forecast_period": 90,
    "safety_factor": 3,               # Overstock when on hand > 3x the 90-day forecast
    "min_safety_stock": 10,           # Understock when on hand below this...
    "understock_min_forecast": 100,   # ...and the 90-day forecast above this
    "overstock_age_days": 60,         # Overstock only counts for stock older than this
    "max_overstock_rows": 18,
    "max_understock_rows": 7,
    "overstock_label": "Overstocked",
    "understock_label": "Understocked",
}


# ===== KPI RULES =====

KPI_RULES = {
    # Projected next-30-day sales = average monthly sales x growth factor
    "projected_sales_growth": 1.1,
    "sales_trend": {
        "forecast_months": 3,
        "horizons": [8, 30, 60, 90],    # 8 = months of actuals only
        "actual_months_shown": 8,
        "change_window_days": 90,
    },
}

STORE_HEALTH_RULES = {
    # Fixed tier labels and headline stat per flagship store
    "stores": {
        "STR-001": {"tier": "A", "problem_stat": "avg_stock_age"},
        "STR-002": {"tier": "C", "problem_stat": "avg_stock_age"},
        "STR-003": {"tier": "B", "problem_stat": "stockout_rate"},
    },
    "default_tier": "B",
    "default_problem_stat": "avg_stock_age",
    "problem_stat_labels": {
        "avg_stock_age": "Avg. Stock Age",
        "stockout_rate": "Stockout Rate",
    },
}


# ===== STRATEGY RULES =====

STRATEGY_RULES = {
    "velocity_window_days": 90,
    "quadrants": ["Core Performer", "Growth Potential", "Slow-Moving", "Underperformer"],
    "quadrant_colors": {
        "Core Performer": "#16a34a",
        "Growth Potential": "#0284c7",
        "Slow-Moving": "#eab308",
        "Underperformer": "#dc2626",
    },
}


# ===== DETAIL VIEW RULES =====

DETAIL_RULES = {
    "trend_window_days": 30,
    "velocity_window_days": 90,
    "recent_transactions": 10,
    "supplier_sku_preview": 10,
    "delivered_status": "Delivered",
}

PURCHASE_PLAN_RULES = {
    # Simulated figures for the detail view. These are NOT an inventory
    # optimisation policy; every plan is flagged illustrative.
    "is_illustrative": True,
    "safety_stock_base": 20,
    "safety_stock_modulo": 30,
    "reorder_point_offset": 40,
    "reorder_point_modulo": 50,
    "order_quantity_base": 100,
    "order_quantity_modulo": 200,
}
