"""
Tests for lookup_maps module
"""

import pandas as pd
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lookup_maps import build_lookup_maps, get_record, skus_by_supplier
from conftest import build_app_data


class TestBuildLookupMaps:

    def test_duplicate_keys_keep_last(self, skus_records):
        skus = pd.DataFrame(skus_records + [dict(skus_records[0], product_name="Kurta v2")])
        app_data = build_app_data()
        app_data['skus'] = skus
        maps = build_lookup_maps(app_data)

        assert len(maps.sku) == 4
        assert get_record(maps.sku, "SKU-A")['product_name'] == "Kurta v2"

    def test_forecasts_split_by_period(self):
        app_data = build_app_data(forecasts=[
            {"sku_id": "SKU-A", "store_id": "STR-001", "forecast_period": 30, "predicted_demand": 40},
            {"sku_id": "SKU-A", "store_id": "STR-001", "forecast_period": 90, "predicted_demand": 120},
            {"sku_id": "SKU-B", "store_id": "STR-001", "forecast_period": 90, "predicted_demand": 60},
        ])
        maps = build_lookup_maps(app_data)

        assert len(maps.forecast30) == 1
        assert len(maps.forecast90) == 2
        assert get_record(maps.forecast90, ("STR-001", "SKU-A"))['predicted_demand'] == 120
        assert get_record(maps.forecast30, ("STR-001", "SKU-B")) is None

    def test_inventory_keyed_by_store_and_sku(self):
        app_data = build_app_data(inventory=[
            {"store_id": "STR-001", "sku_id": "SKU-A", "quantity_on_hand": 4, "days_in_stock": 3},
            {"store_id": "STR-002", "sku_id": "SKU-A", "quantity_on_hand": 9, "days_in_stock": 3},
        ])
        maps = build_lookup_maps(app_data)

        assert get_record(maps.inventory, ("STR-002", "SKU-A"))['quantity_on_hand'] == 9
        assert get_record(maps.inventory, ("STR-003", "SKU-A")) is None

    def test_snapshot_is_not_mutated(self, skus_records, suppliers_records):
        app_data = build_app_data(skus=skus_records, suppliers=suppliers_records)
        before = app_data['skus'].copy()
        build_lookup_maps(app_data)

        pd.testing.assert_frame_equal(app_data['skus'], before)

    def test_empty_snapshot(self):
        maps = build_lookup_maps(build_app_data())
        assert maps.sku.empty
        assert get_record(maps.supplier, "SUP-1") is None


class TestSkusBySupplier:

    def test_catalogue_order(self, skus_records):
        maps = build_lookup_maps(build_app_data(skus=skus_records))

        assert skus_by_supplier(maps, "SUP-1")['sku_id'].tolist() == ['SKU-A', 'SKU-C']
        assert skus_by_supplier(maps, "SUP-404").empty
