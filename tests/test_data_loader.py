"""
Tests for data_loader module
Schema normalization, per-dataset loading and the concurrent snapshot loader
"""

import pytest
import pandas as pd
import json
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import file_loader
from data_loader import (
    DATASET_KEYS,
    DATASET_SCHEMAS,
    clean_string_column,
    safe_numeric_column,
    parse_date_column,
    empty_dataset,
    normalize_dataset,
    load_dataset,
    load_app_data,
    count_records,
)
from conftest import assert_log_contains, assert_columns_exist


@pytest.fixture(autouse=True)
def no_uploads(monkeypatch):
    """Loader tests read from disk only"""
    monkeypatch.setattr(file_loader.st, "session_state", {})


def write_json(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


class TestHelpers:

    def test_clean_string_column(self):
        cleaned = clean_string_column(pd.Series(["  SKU-A ", "Cotton   Kurta", None]))
        assert cleaned.iloc[0] == "SKU-A"
        assert cleaned.iloc[1] == "Cotton Kurta"
        assert pd.isna(cleaned.iloc[2])

    def test_safe_numeric_column(self):
        assert safe_numeric_column(pd.Series(["12", "abc", None])).tolist() == [12.0, 0.0, 0.0]
        assert safe_numeric_column(pd.Series(["1,250"]), remove_commas=True).tolist() == [1250.0]

    def test_parse_date_column_is_naive_utc(self):
        parsed = parse_date_column(pd.Series(["2025-10-01T05:30:00+05:30", "2025-10-02T00:00:00Z", None]))
        assert parsed.dt.tz is None
        assert parsed.iloc[0] == pd.Timestamp("2025-10-01 00:00:00")
        assert parsed.iloc[1] == pd.Timestamp("2025-10-02 00:00:00")
        assert pd.isna(parsed.iloc[2])

    def test_empty_dataset_keeps_schema(self):
        for key in DATASET_KEYS:
            df = empty_dataset(key)
            schema = DATASET_SCHEMAS[key]
            assert df.empty
            assert list(df.columns) == schema["required"] + schema["optional"]


class TestNormalizeDataset:

    def test_missing_optional_columns_are_added(self):
        logs = []
        df = normalize_dataset("skus", pd.DataFrame([
            {"sku_id": "SKU-A", "product_name": "Kurta", "category": "Apparel", "cost_price": "100", "supplier_id": "SUP-1"},
        ]), logs)

        assert_columns_exist(df, ["selling_price", "margin"])
        assert df['cost_price'].iloc[0] == 100.0
        assert df['selling_price'].iloc[0] == 0.0
        assert_log_contains(logs, "Optional column 'selling_price' not present")

    def test_duplicates_keep_last(self):
        logs = []
        df = normalize_dataset("inventory", pd.DataFrame([
            {"store_id": "STR-001", "sku_id": "SKU-A", "quantity_on_hand": 1, "days_in_stock": 5},
            {"store_id": "STR-001", "sku_id": "SKU-A", "quantity_on_hand": 7, "days_in_stock": 9},
            {"store_id": "STR-002", "sku_id": "SKU-A", "quantity_on_hand": 3, "days_in_stock": 2},
        ]), logs)

        assert len(df) == 2
        assert df.loc[df['store_id'] == 'STR-001', 'quantity_on_hand'].iloc[0] == 7
        assert_log_contains(logs, "WARNING: Found 1 duplicated store_id/sku_id records")

    def test_extra_columns_dropped(self):
        df = normalize_dataset("stores", pd.DataFrame([
            {"store_id": "STR-001", "store_name": "A", "store_type": "Mall", "performance_tier": "A", "manager": "X"},
        ]), [])
        assert "manager" not in df.columns


class TestLoadDataset:

    def test_success(self, tmp_path):
        path = write_json(tmp_path / "purchase_orders.json", [
            {"po_id": "PO-1", "supplier_id": "SUP-1", "sku_id": "SKU-A", "quantity_ordered": 10,
             "order_date": "2025-10-01T00:00:00Z", "actual_delivery_date": None, "status": "Pending",
             "delivery_location": "STR-001", "total_cost": 500},
        ])
        logs, df = load_dataset("purchase_orders", path)

        assert len(df) == 1
        assert pd.isna(df['actual_delivery_date'].iloc[0])
        assert df['order_date'].iloc[0] == pd.Timestamp("2025-10-01")
        assert_log_contains(logs, "INFO: Loaded 1 records from purchase_orders.json")
        assert_log_contains(logs, "1 records have no 'actual_delivery_date'")
        assert_log_contains(logs, "Purchase Orders Loader finished")

    def test_missing_required_column(self, tmp_path):
        path = write_json(tmp_path / "stores.json", [{"store_id": "STR-001"}])
        logs, df = load_dataset("stores", path)

        assert df.empty
        assert_columns_exist(df, DATASET_SCHEMAS["stores"]["required"])
        assert_log_contains(logs, "ERROR: 'stores.json' is missing required columns: store_name")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "skus.json"
        path.write_text("[{", encoding="utf-8")
        logs, df = load_dataset("skus", str(path))

        assert df.empty
        assert_log_contains(logs, "ERROR: Failed to read 'skus.json'")

    def test_empty_document(self, tmp_path):
        logs, df = load_dataset("sales", write_json(tmp_path / "sales.json", []))

        assert df.empty
        assert_log_contains(logs, "contains no records")


class TestLoadAppData:

    def test_partial_snapshot(self, snapshot_dir):
        """Missing documents load as empty datasets; the rest still load"""
        progress = []
        app_data = load_app_data(str(snapshot_dir), _progress_callback=lambda p, m: progress.append(p))

        for key in DATASET_KEYS:
            assert key in app_data
            assert f"{key}_logs" in app_data

        assert len(app_data['stores']) == 3
        assert len(app_data['suppliers']) == 3
        assert len(app_data['skus']) == 4
        assert app_data['sales'].empty
        assert_log_contains(app_data['sales_logs'], "ERROR: File not found")
        assert_log_contains(app_data['snapshot_logs'], "Continuing with empty datasets")
        assert count_records(app_data) == 10
        assert progress[-1] == 1.0
        assert 'load_time_str' in app_data

    def test_uploaded_file_overrides_disk(self, snapshot_dir, monkeypatch):
        raw = json.dumps([
            {"store_id": "STR-009", "store_name": "Pop-up", "store_type": "Kiosk", "performance_tier": "C"},
        ]).encode('utf-8')
        monkeypatch.setattr(file_loader.st, "session_state", {"uploaded_files": {"stores": raw}})

        app_data = load_app_data(str(snapshot_dir))

        assert app_data['stores']['store_id'].tolist() == ['STR-009']
        assert_log_contains(app_data['stores_logs'], "Using uploaded file")
