"""
Lookup Maps

Keyed views over the flat snapshot datasets so rule evaluation joins on natural
keys instead of scanning whole tables:

- supplier:   supplier_id
- sku:        sku_id
- inventory:  (store_id, sku_id)
- forecast30: (store_id, sku_id) for the 30-day horizon
- forecast90: (store_id, sku_id) for the 90-day horizon

Duplicate keys keep the last record. Building the maps never mutates the
snapshot; rebuild them whenever the snapshot is replaced.
"""

from dataclasses import dataclass

import pandas as pd

from data_loader import empty_dataset

STORE_SKU_KEY = ['store_id', 'sku_id']


@dataclass(frozen=True)
class LookupMaps:
    supplier: pd.DataFrame
    sku: pd.DataFrame
    inventory: pd.DataFrame
    forecast30: pd.DataFrame
    forecast90: pd.DataFrame


def _index_by(df: pd.DataFrame, keys) -> pd.DataFrame:
    """Index a frame by its natural key, keeping the last record per key."""
    keyed = df.dropna(subset=keys)
    keyed = keyed[~keyed.duplicated(subset=keys, keep='last')]
    return keyed.set_index(keys, drop=False).rename_axis(
        [f"{k}_key" for k in keys] if len(keys) > 1 else f"{keys[0]}_key"
    )


def _forecast_for_period(forecasts: pd.DataFrame, period: int) -> pd.DataFrame:
    return _index_by(forecasts[forecasts['forecast_period'] == period], STORE_SKU_KEY)


def build_lookup_maps(app_data) -> LookupMaps:
    """
    Build keyed lookups from an AppData dict.

    Args:
        app_data: dict produced by data_loader.load_app_data()

    Returns:
        LookupMaps with one indexed frame per join key
    """
    suppliers = app_data.get('suppliers', empty_dataset('suppliers'))
    skus = app_data.get('skus', empty_dataset('skus'))
    inventory = app_data.get('inventory', empty_dataset('inventory'))
    forecasts = app_data.get('forecasts', empty_dataset('forecasts'))

    return LookupMaps(
        supplier=_index_by(suppliers, ['supplier_id']),
        sku=_index_by(skus, ['sku_id']),
        inventory=_index_by(inventory, STORE_SKU_KEY),
        forecast30=_forecast_for_period(forecasts, 30),
        forecast90=_forecast_for_period(forecasts, 90),
    )


def get_record(keyed: pd.DataFrame, key):
    """
    Single-record lookup by key.

    Returns:
        dict of the record's fields, or None when the key is not present
    """
    if key not in keyed.index:
        return None
    return keyed.loc[[key]].iloc[0].to_dict()


def skus_by_supplier(maps: LookupMaps, supplier_id: str) -> pd.DataFrame:
    """All SKUs owned by a supplier, in catalogue order."""
    skus = maps.sku
    return skus[skus['supplier_id'] == supplier_id].reset_index(drop=True)
