"""
Demo snapshot generator

Usage:
  python tools/generate_demo_data.py --out demo_data_100k --skus 500 --sales 100000 --seed 42

Writes the seven JSON documents the dashboard loads. Dates are generated
relative to the configured reference date so every alert type has hits.
"""
import argparse
import json
import os
import sys

import numpy as np
import pandas as pd
from dateutil.relativedelta import relativedelta

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from business_rules import DATA_SOURCE_RULES, STORE_HEALTH_RULES, get_reference_date

STORES = [
    ("STR-001", "Phoenix MarketCity Flagship", "Flagship", 14000, 2400, "Bengaluru"),
    ("STR-002", "Koramangala Neighborhood", "Neighborhood", 4500, 950, "Bengaluru"),
    ("STR-003", "Indiranagar Mall Outlet", "Mall", 7000, 1500, "Bengaluru"),
]

CATEGORIES = {
    "Apparel": (250, 1800),
    "Footwear": (600, 3500),
    "Home Decor": (150, 2500),
    "Electronics": (900, 15000),
    "Beauty": (80, 900),
    "Grocery": (20, 400),
}

PAYMENT_TERMS = ["NET 30", "NET 45", "NET 60"]
RETURN_WINDOWS = [15, 30, 45, 60]
PO_STATUSES = ["Delivered", "Delivered", "Delivered", "In Transit", "Pending"]
TIMES_OF_DAY = ["Morning", "Afternoon", "Evening", "Night"]
PAYMENT_METHODS = ["UPI", "Card", "Cash", "Wallet"]


def iso(ts):
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_stores():
    return pd.DataFrame([
        {
            "store_id": store_id,
            "store_name": name,
            "store_type": store_type,
            "performance_tier": STORE_HEALTH_RULES["stores"].get(store_id, {}).get("tier", "B"),
            "sq_ft": sq_ft,
            "avg_basket_size": basket,
            "location": city,
        }
        for store_id, name, store_type, sq_ft, basket, city in STORES
    ])


def build_suppliers(rng, count):
    ids = [f"SUP-{i:03d}" for i in range(1, count + 1)]
    return pd.DataFrame({
        "supplier_id": ids,
        "supplier_name": [f"Supplier {i:03d} Pvt Ltd" for i in range(1, count + 1)],
        "return_window_days": rng.choice(RETURN_WINDOWS, size=count),
        "payment_terms": rng.choice(PAYMENT_TERMS, size=count),
        "avg_delivery_time_days": rng.integers(3, 21, size=count),
        "on_time_delivery_pct": rng.uniform(0.7, 0.99, size=count).round(2),
        "quality_rating": rng.uniform(3.0, 5.0, size=count).round(1),
    })


def build_skus(rng, count, suppliers):
    categories = rng.choice(list(CATEGORIES.keys()), size=count)
    low = np.array([CATEGORIES[c][0] for c in categories])
    high = np.array([CATEGORIES[c][1] for c in categories])
    cost = (low + rng.random(count) * (high - low)).round(2)
    markup = rng.uniform(1.15, 2.4, size=count)
    selling = (cost * markup).round(2)
    return pd.DataFrame({
        "sku_id": [f"SKU-{i:05d}" for i in range(1, count + 1)],
        "product_name": [f"{c} Item {i:05d}" for i, c in enumerate(categories, start=1)],
        "category": categories,
        "cost_price": cost,
        "selling_price": selling,
        "margin": ((selling - cost) / selling).round(4),
        "supplier_id": rng.choice(suppliers["supplier_id"], size=count),
    })


def build_inventory(rng, stores, skus):
    grid = pd.MultiIndex.from_product(
        [stores["store_id"], skus["sku_id"]], names=["store_id", "sku_id"]
    ).to_frame(index=False)
    n = len(grid)
    # A slice of zero stock drives stockout rate; a long tail drives overstock
    quantity = rng.gamma(2.0, 40.0, size=n).astype(int)
    quantity[rng.random(n) < 0.06] = 0
    quantity[rng.random(n) < 0.05] *= 8
    grid["quantity_on_hand"] = quantity
    grid["days_in_stock"] = rng.integers(1, 180, size=n)
    return grid


def build_purchase_orders(rng, skus, suppliers, stores, today, count):
    sku_rows = skus.sample(n=count, replace=True, random_state=int(rng.integers(1 << 31)))
    order_date = today - pd.to_timedelta(rng.integers(5, 120, size=count), unit="D")
    lead = pd.to_timedelta(rng.integers(3, 20, size=count), unit="D")
    status = rng.choice(PO_STATUSES, size=count)
    delivered = status == "Delivered"
    delivery = pd.Series(order_date + lead).where(delivered)
    # Deliveries cannot land after the snapshot
    delivery = delivery.where(delivery < today, today - pd.Timedelta(days=1)).where(delivered)
    quantity = rng.integers(20, 400, size=count)
    return pd.DataFrame({
        "po_id": [f"PO-{i:06d}" for i in range(1, count + 1)],
        "supplier_id": sku_rows["supplier_id"].values,
        "sku_id": sku_rows["sku_id"].values,
        "quantity_ordered": quantity,
        "order_date": [iso(d) for d in order_date],
        "actual_delivery_date": [iso(d) if pd.notna(d) else None for d in delivery],
        "status": status,
        "delivery_location": rng.choice(stores["store_id"], size=count),
        "total_cost": (quantity * sku_rows["cost_price"].values).round(2),
    })


def build_sales(rng, skus, stores, today, count, months):
    start = (today.replace(day=1, hour=0, minute=0, second=0) - relativedelta(months=months))
    span_seconds = int((today.replace(day=1, hour=0, minute=0, second=0) - start).total_seconds())
    # Popularity is skewed so the strategy quadrant has fast and slow movers
    weights = rng.pareto(1.5, size=len(skus)) + 0.05
    weights = weights / weights.sum()
    picks = rng.choice(len(skus), size=count, p=weights)
    quantity = rng.integers(1, 5, size=count)
    # Later months sell more so the trend line slopes upward
    offsets = np.sort(rng.power(1.3, size=count)) * span_seconds
    dates = start + pd.to_timedelta(offsets.astype(np.int64), unit="s")
    price = skus["selling_price"].values[picks]
    return pd.DataFrame({
        "transaction_id": [f"TXN-{i:07d}" for i in range(1, count + 1)],
        "store_id": rng.choice(stores["store_id"], size=count, p=[0.45, 0.25, 0.30]),
        "sku_id": skus["sku_id"].values[picks],
        "transaction_date": [iso(d) for d in dates],
        "quantity_sold": quantity,
        "total_amount": (quantity * price).round(2),
        "time_of_day": rng.choice(TIMES_OF_DAY, size=count),
        "payment_method": rng.choice(PAYMENT_METHODS, size=count),
    })


def build_forecasts(rng, inventory, today):
    base = rng.gamma(1.5, 30.0, size=len(inventory))
    rows = []
    for period, factor in ((30, 1.0), (90, 3.0)):
        noise = rng.uniform(0.85, 1.15, size=len(inventory))
        rows.append(pd.DataFrame({
            "sku_id": inventory["sku_id"].values,
            "store_id": inventory["store_id"].values,
            "forecast_date": iso(today.normalize()),
            "forecast_period": period,
            "predicted_demand": np.round(base * factor * noise).astype(int),
        }))
    return pd.concat(rows, ignore_index=True)


def write_json(df, path):
    records = df.replace({np.nan: None}).to_dict(orient="records")
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(records, fh, default=lambda v: v.item() if hasattr(v, "item") else str(v))


def main():
    parser = argparse.ArgumentParser(description="Generate a demo retail snapshot")
    parser.add_argument("--out", type=str, default=DATA_SOURCE_RULES["data_dir"], help="Output directory")
    parser.add_argument("--skus", type=int, default=500, help="Number of SKUs")
    parser.add_argument("--suppliers", type=int, default=30, help="Number of suppliers")
    parser.add_argument("--pos", type=int, default=2000, help="Number of purchase orders")
    parser.add_argument("--sales", type=int, default=100000, help="Number of sales transactions")
    parser.add_argument("--months", type=int, default=8, help="Months of sales history")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    today = get_reference_date()

    stores = build_stores()
    suppliers = build_suppliers(rng, args.suppliers)
    skus = build_skus(rng, args.skus, suppliers)
    inventory = build_inventory(rng, stores, skus)
    purchase_orders = build_purchase_orders(rng, skus, suppliers, stores, today, args.pos)
    sales = build_sales(rng, skus, stores, today, args.sales, args.months)
    forecasts = build_forecasts(rng, inventory, today)

    os.makedirs(args.out, exist_ok=True)
    datasets = {
        "stores": stores,
        "suppliers": suppliers,
        "skus": skus,
        "inventory": inventory,
        "purchase_orders": purchase_orders,
        "sales": sales,
        "forecasts": forecasts,
    }
    for key, df in datasets.items():
        path = os.path.join(args.out, DATA_SOURCE_RULES["files"][key])
        write_json(df, path)
        print(f"Wrote {len(df):,} records to {path}")


if __name__ == "__main__":
    main()
