"""
Tests for home_dashboard module
Inventory value, projected sales, store health, credit health and sales trend
"""

import pytest
import pandas as pd
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from home_dashboard import (
    calculate_total_inventory_value,
    calculate_store_value_breakdown,
    count_observed_months,
    calculate_projected_sales,
    calculate_store_health,
    calculate_credit_health,
    calculate_monthly_sales,
    forecast_monthly_sales,
    calculate_sales_change,
    calculate_sales_trend,
    compute_home_dashboard,
)
from conftest import build_app_data, assert_log_contains


def sale(txn_id, date, amount, store_id="STR-001", sku_id="SKU-A", qty=1):
    return {"transaction_id": txn_id, "store_id": store_id, "sku_id": sku_id,
            "transaction_date": date, "quantity_sold": qty, "total_amount": amount}


def monthly_sales(start_month=3, months=8, step=100):
    """One sale on the 15th of each month of 2025, worth step, 2 x step, ..."""
    return [
        sale(f"TXN-{i}", f"2025-{start_month + i:02d}-15T10:00:00Z", step * (i + 1))
        for i in range(months)
    ]


# ===== INVENTORY VALUE =====

class TestInventoryValue:
    """on hand x cost price"""

    def test_total_value_ignores_unknown_skus(self, skus_records):
        app_data = build_app_data(
            skus=skus_records,
            inventory=[
                {"store_id": "STR-001", "sku_id": "SKU-A", "quantity_on_hand": 10, "days_in_stock": 5},
                {"store_id": "STR-002", "sku_id": "SKU-B", "quantity_on_hand": 4, "days_in_stock": 5},
                {"store_id": "STR-002", "sku_id": "SKU-404", "quantity_on_hand": 99, "days_in_stock": 5},
            ],
        )
        total = calculate_total_inventory_value(app_data['inventory'], app_data['skus'])
        assert total == pytest.approx(1000 + 200)

    def test_empty_inventory(self):
        app_data = build_app_data()
        assert calculate_total_inventory_value(app_data['inventory'], app_data['skus']) == 0.0

    def test_store_breakdown_sorted_with_percent(self, skus_records, stores_records):
        app_data = build_app_data(
            stores=stores_records,
            skus=skus_records,
            inventory=[
                {"store_id": "STR-001", "sku_id": "SKU-D", "quantity_on_hand": 25, "days_in_stock": 5},
                {"store_id": "STR-003", "sku_id": "SKU-A", "quantity_on_hand": 7, "days_in_stock": 5},
                {"store_id": "STR-003", "sku_id": "SKU-B", "quantity_on_hand": 1, "days_in_stock": 5},
            ],
        )
        breakdown = calculate_store_value_breakdown(app_data['inventory'], app_data['skus'], app_data['stores'])

        assert breakdown['store_id'].tolist() == ['STR-003', 'STR-001']
        assert breakdown['value'].tolist() == pytest.approx([750.0, 250.0])
        assert breakdown['percent'].tolist() == pytest.approx([75.0, 25.0])
        assert breakdown['store_name'].iloc[0] == 'Indiranagar Mall Outlet'


# ===== PROJECTED SALES =====

class TestProjectedSales:
    """Average monthly sales x 1.1"""

    def test_eight_months_example(self):
        """24,000,000 over 8 months projects 3,300,000"""
        app_data = build_app_data(sales=[
            sale(f"TXN-{m}", f"2025-{m:02d}-15T10:00:00Z", 3_000_000) for m in range(3, 11)
        ])
        assert count_observed_months(app_data['sales']) == 8
        assert calculate_projected_sales(app_data['sales']) == pytest.approx(3_300_000)

    def test_same_month_counts_once(self):
        app_data = build_app_data(sales=[
            sale("TXN-1", "2025-10-01T00:00:00Z", 500),
            sale("TXN-2", "2025-10-31T23:00:00Z", 500),
        ])
        assert count_observed_months(app_data['sales']) == 1
        assert calculate_projected_sales(app_data['sales']) == pytest.approx(1100)

    def test_no_sales(self):
        assert calculate_projected_sales(build_app_data()['sales']) == 0.0


# ===== STORE HEALTH =====

class TestStoreHealth:
    """Per-store cards with fixed tiers and headline stats"""

    @pytest.fixture
    def cards(self, stores_records):
        app_data = build_app_data(
            stores=stores_records,
            inventory=[
                {"store_id": "STR-001", "sku_id": "SKU-A", "quantity_on_hand": 3, "days_in_stock": 10},
                {"store_id": "STR-001", "sku_id": "SKU-B", "quantity_on_hand": 3, "days_in_stock": 30},
                {"store_id": "STR-003", "sku_id": "SKU-A", "quantity_on_hand": 0, "days_in_stock": 1},
                {"store_id": "STR-003", "sku_id": "SKU-B", "quantity_on_hand": 5, "days_in_stock": 1},
                {"store_id": "STR-003", "sku_id": "SKU-C", "quantity_on_hand": 0, "days_in_stock": 1},
                {"store_id": "STR-003", "sku_id": "SKU-D", "quantity_on_hand": 7, "days_in_stock": 1},
            ],
            sales=[
                sale("TXN-1", "2025-10-15T10:00:00Z", 1500, store_id="STR-001"),
                sale("TXN-2", "2025-10-16T10:00:00Z", 500, store_id="STR-001"),
            ],
        )
        return {card['store_id']: card for card in calculate_store_health(app_data)}

    def test_average_stock_age(self, cards):
        card = cards['STR-001']
        assert card['problem_stat'] == 'Avg. Stock Age'
        assert card['problem_value'] == '20 days'
        assert card['total_revenue'] == pytest.approx(2000)

    def test_stockout_rate(self, cards):
        card = cards['STR-003']
        assert card['problem_stat'] == 'Stockout Rate'
        assert card['problem_value'] == '50.0%'
        assert card['stockout_rate'] == pytest.approx(50.0)

    def test_empty_cohort_reports_zero(self, cards):
        card = cards['STR-002']
        assert card['problem_value'] == '0 days'
        assert card['total_revenue'] == 0.0

    def test_fixed_tiers(self, cards):
        assert [cards[s]['health_tier'] for s in ('STR-001', 'STR-002', 'STR-003')] == ['A', 'C', 'B']
        assert cards['STR-002']['store_name'] == 'Koramangala Neighborhood'

    def test_unconfigured_store_uses_dataset_tier(self, stores_records):
        extra = {"store_id": "STR-009", "store_name": "Airport Kiosk", "store_type": "Kiosk", "performance_tier": "A"}
        cards = calculate_store_health(build_app_data(stores=stores_records + [extra]))

        assert [c['store_id'] for c in cards] == ['STR-001', 'STR-002', 'STR-003', 'STR-009']
        assert cards[-1]['health_tier'] == 'A'
        assert cards[-1]['problem_stat'] == 'Avg. Stock Age'


# ===== CREDIT HEALTH =====

class TestCreditHealth:

    def test_negative_position_is_unsafe(self):
        credit = calculate_credit_health({
            'projected_30day_sales': 1000.0,
            'liquidatable_value': 200.0,
            'payables_due_30days': 1500.0,
        })
        assert credit['total_buffer'] == 1200.0
        assert credit['net_position'] == -300.0
        assert credit['is_safe'] is False

    def test_zero_position_is_unsafe(self):
        credit = calculate_credit_health({
            'projected_30day_sales': 500.0,
            'liquidatable_value': 0.0,
            'payables_due_30days': 500.0,
        })
        assert credit['is_safe'] is False

    def test_positive_position_is_safe(self):
        credit = calculate_credit_health({
            'projected_30day_sales': 500.0,
            'liquidatable_value': 100.0,
            'payables_due_30days': 0.0,
        })
        assert credit['net_position'] == 600.0
        assert credit['is_safe'] is True


# ===== SALES TREND =====

class TestSalesTrend:
    """Monthly actuals with a linear forecast tail"""

    @pytest.fixture
    def sales(self):
        return build_app_data(sales=monthly_sales())['sales']

    def test_monthly_totals_exclude_reference_month(self, today):
        sales = build_app_data(sales=monthly_sales() + [sale("TXN-NOV", "2025-11-01T08:00:00Z", 999)])['sales']
        monthly = calculate_monthly_sales(sales, today)

        assert len(monthly) == 8
        assert monthly['value'].tolist() == [100.0 * i for i in range(1, 9)]

    def test_actuals_only(self, sales, today):
        trend = calculate_sales_trend(sales, today, horizon=8)
        chart = trend['chart_data']

        assert len(chart) == 8
        assert chart['forecast'].isna().all()
        assert chart['month'].tolist() == ['Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct']
        assert trend['total_sales'] == pytest.approx(3600)

    def test_30_day_horizon_adds_one_month(self, sales, today):
        chart = calculate_sales_trend(sales, today, horizon=30)['chart_data']

        assert len(chart) == 9
        assert chart['month'].iloc[-1] == 'Nov'
        assert chart['forecast'].iloc[-1] == pytest.approx(900)
        assert pd.isna(chart['historical'].iloc[-1])

    def test_forecast_line_joins_last_actual(self, sales, today):
        chart = calculate_sales_trend(sales, today, horizon=30)['chart_data']
        october = chart[chart['month'] == 'Oct'].iloc[0]

        assert october['historical'] == october['forecast'] == 800

    @pytest.mark.parametrize("horizon,rows", [(60, 10), (90, 11)])
    def test_longer_horizons(self, sales, today, horizon, rows):
        chart = calculate_sales_trend(sales, today, horizon=horizon)['chart_data']
        assert len(chart) == rows

    def test_only_last_eight_months_shown(self, today):
        sales = build_app_data(sales=monthly_sales(start_month=1, months=10))['sales']
        chart = calculate_sales_trend(sales, today, horizon=8)['chart_data']

        assert len(chart) == 8
        assert chart['month'].iloc[0] == 'Mar'

    def test_change_percentage(self, sales, today):
        """Aug-Oct (2,100) against May-Jul (1,200)"""
        assert calculate_sales_change(sales, today, 90) == pytest.approx(75.0)
        assert calculate_sales_trend(sales, today)['change_percentage'] == pytest.approx(75.0)

    def test_change_without_prior_window(self, today):
        sales = build_app_data(sales=[sale("TXN-1", "2025-10-15T10:00:00Z", 100)])['sales']
        assert calculate_sales_change(sales, today, 90) == 0.0

    def test_single_month_forecasts_flat(self, today):
        sales = build_app_data(sales=[sale("TXN-1", "2025-10-15T10:00:00Z", 400)])['sales']
        forecast = forecast_monthly_sales(calculate_monthly_sales(sales, today), 3)

        assert forecast['value'].tolist() == [400.0, 400.0, 400.0]
        assert forecast['period'].iloc[0] == pd.Timestamp("2025-11-01")

    def test_forecast_never_negative(self, today):
        sales = build_app_data(sales=[
            sale("TXN-1", "2025-09-15T10:00:00Z", 1000),
            sale("TXN-2", "2025-10-15T10:00:00Z", 100),
        ])['sales']
        forecast = forecast_monthly_sales(calculate_monthly_sales(sales, today), 3)

        assert (forecast['value'] >= 0).all()
        assert forecast['value'].iloc[-1] == 0.0

    def test_empty_sales(self, today):
        trend = calculate_sales_trend(build_app_data()['sales'], today, horizon=90)
        assert trend['chart_data'].empty
        assert trend['total_sales'] == 0.0
        assert trend['change_percentage'] == 0.0


# ===== ROLLUP =====

class TestComputeHomeDashboard:

    def test_rollup(self, stores_records, skus_records, today):
        app_data = build_app_data(
            stores=stores_records,
            skus=skus_records,
            inventory=[
                {"store_id": "STR-001", "sku_id": "SKU-A", "quantity_on_hand": 10, "days_in_stock": 5},
                {"store_id": "STR-001", "sku_id": "SKU-404", "quantity_on_hand": 10, "days_in_stock": 5},
            ],
            sales=monthly_sales(),
        )
        logs, dashboard = compute_home_dashboard(app_data, today)

        kpis = dashboard['kpis']
        assert kpis['total_inventory_value'] == pytest.approx(1000)
        assert kpis['projected_30day_sales'] == pytest.approx(3600 / 8 * 1.1)
        assert kpis['liquidatable_value'] == 0
        assert kpis['payables_due_30days'] == 0
        assert dashboard['credit_health']['is_safe'] is True
        assert len(dashboard['store_health_cards']) == 3
        assert dashboard['store_value_breakdown']['store_id'].tolist() == ['STR-001']
        assert_log_contains(logs, "1 inventory rows reference unknown SKUs")
        assert_log_contains(logs, "Home Dashboard KPIs finished")
