"""
Pytest configuration and shared fixtures for all tests
Small in-memory snapshots and JSON files on disk
"""

import pytest
import pandas as pd
import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import streamlit as st

from data_loader import DATASET_KEYS, empty_dataset, normalize_dataset
from business_rules import DATA_SOURCE_RULES

REFERENCE_DATE = pd.Timestamp("2025-11-01 12:00:00")


def days_before(days, ref=REFERENCE_DATE):
    """ISO timestamp string `days` before the reference date (negative = after)"""
    return (ref - pd.Timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_app_data(**records):
    """
    Assemble an AppData dict the way load_app_data() would.

    Each keyword is a dataset key with a list of record dicts; datasets not
    given are empty. Records go through the loader's normalization so column
    types match a real load.
    """
    app_data = {}
    for key in DATASET_KEYS:
        rows = records.get(key)
        logs = []
        if rows:
            app_data[key] = normalize_dataset(key, pd.DataFrame(rows), logs)
        else:
            app_data[key] = empty_dataset(key)
        app_data[f"{key}_logs"] = logs
    return app_data


# ===== SHARED MOCK DATA FIXTURES =====

@pytest.fixture
def today():
    """Reference date used by every rule test"""
    return REFERENCE_DATE


@pytest.fixture(autouse=True)
def clear_streamlit_cache():
    """Memoized derivations must not leak between tests"""
    st.cache_data.clear()
    yield
    st.cache_data.clear()


@pytest.fixture
def stores_records():
    return [
        {"store_id": "STR-001", "store_name": "Phoenix MarketCity Flagship", "store_type": "Flagship", "performance_tier": "A"},
        {"store_id": "STR-002", "store_name": "Koramangala Neighborhood", "store_type": "Neighborhood", "performance_tier": "C"},
        {"store_id": "STR-003", "store_name": "Indiranagar Mall Outlet", "store_type": "Mall", "performance_tier": "B"},
    ]


@pytest.fixture
def suppliers_records():
    """
    - SUP-1: 30-day return window, NET 45
    - SUP-2: 60-day return window, NET 60
    - SUP-3: 15-day return window, NET 30 (falls back to the default)
    """
    return [
        {"supplier_id": "SUP-1", "supplier_name": "Acme Textiles", "return_window_days": 30,
         "payment_terms": "NET 45", "avg_delivery_time_days": 5, "on_time_delivery_pct": 0.9, "quality_rating": 4.5},
        {"supplier_id": "SUP-2", "supplier_name": "Bharat Footwear", "return_window_days": 60,
         "payment_terms": "NET 60", "avg_delivery_time_days": 10, "on_time_delivery_pct": 0.8, "quality_rating": 4.0},
        {"supplier_id": "SUP-3", "supplier_name": "Chennai Cosmetics", "return_window_days": 15,
         "payment_terms": "NET 30", "avg_delivery_time_days": 7, "on_time_delivery_pct": 0.95, "quality_rating": 4.8},
    ]


@pytest.fixture
def skus_records():
    return [
        {"sku_id": "SKU-A", "product_name": "Cotton Kurta", "category": "Apparel", "cost_price": 100.0,
         "selling_price": 200.0, "margin": 0.5, "supplier_id": "SUP-1"},
        {"sku_id": "SKU-B", "product_name": "Running Shoe", "category": "Footwear", "cost_price": 50.0,
         "selling_price": 125.0, "margin": 0.6, "supplier_id": "SUP-2"},
        {"sku_id": "SKU-C", "product_name": "Denim Jacket", "category": "Apparel", "cost_price": 200.0,
         "selling_price": 222.0, "margin": 0.1, "supplier_id": "SUP-1"},
        {"sku_id": "SKU-D", "product_name": "Lip Balm", "category": "Beauty", "cost_price": 10.0,
         "selling_price": 10.5, "margin": 0.05, "supplier_id": "SUP-3"},
    ]


@pytest.fixture
def snapshot_dir(tmp_path, stores_records, suppliers_records, skus_records):
    """
    Data directory holding stores, suppliers and SKUs documents only.
    The other four documents are missing on purpose.
    """
    files = DATA_SOURCE_RULES["files"]
    for key, records in (("stores", stores_records), ("suppliers", suppliers_records), ("skus", skus_records)):
        with open(tmp_path / files[key], "w", encoding="utf-8") as fh:
            json.dump(records, fh)
    return tmp_path


# ===== UTILITY FUNCTIONS FOR TESTS =====

def assert_log_contains(logs, expected_message):
    """
    Helper to assert that a log message contains expected text

    Args:
        logs: List of log messages
        expected_message: Text expected to be in one of the logs
    """
    log_text = " ".join(logs)
    assert expected_message in log_text, f"Expected '{expected_message}' not found in logs: {log_text}"

def assert_columns_exist(df, columns):
    """
    Helper to assert that DataFrame contains required columns

    Args:
        df: Pandas DataFrame
        columns: List of column names that should exist
    """
    missing = set(columns) - set(df.columns)
    assert not missing, f"Missing required columns: {missing}"
