"""
Details Page
Deep-dive into a single SKU or supplier
"""

import streamlit as st
import plotly.graph_objects as go
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from ui_components import (
    render_page_header, render_kpi_row, render_chart, render_data_table,
    render_empty_state, format_currency, format_number
)
from business_rules import DETAIL_RULES
from lookup_maps import build_lookup_maps
from sku_details import (
    compute_search_options, compute_sku_details, compute_supplier_details, log_detail_lookup
)

DETAILS_LOGS_KEY = 'details_logs'
LAST_LOOKUP_KEY = 'details_last_lookup'


@st.cache_resource(show_spinner=False, max_entries=1)
def _get_lookup_maps(load_time, _app_data):
    """Lookup maps for the currently loaded snapshot only"""
    return build_lookup_maps(_app_data)


def _record_lookup(kind, key, found):
    """Log a search when the selection changes, not on every rerun"""
    if st.session_state.get(LAST_LOOKUP_KEY) == (kind, key):
        return
    st.session_state[LAST_LOOKUP_KEY] = (kind, key)
    st.session_state.setdefault(DETAILS_LOGS_KEY, ["--- Details Lookups ---"]).append(
        log_detail_lookup(kind, key, found)
    )


def render_sku_details(details):
    sku = details['sku']
    supplier = details['supplier']

    st.subheader(f"{sku['product_name']} ({sku['sku_id']})")
    st.caption(f"Category: {sku['category']}")

    render_kpi_row({
        "Cost Price": {"value": format_currency(sku['cost_price'], decimals=2)},
        "Selling Price": {"value": format_currency(sku['selling_price'], decimals=2)},
        "Margin": {"value": format_number(sku['margin'] * 100, 'percentage')},
        "Total On Hand": {"value": format_number(details['inventory']['quantity_on_hand'].sum())},
    })

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Stock by Store**")
        render_data_table(details['inventory'], downloadable=False)
    with col2:
        st.markdown("**Demand Forecast**")
        render_data_table(details['forecasts'], downloadable=False)

    trend = details['sales_trend_30d']
    fig = go.Figure(go.Bar(x=trend['date'], y=trend['units_sold'], marker_color='#2563eb'))
    fig.update_layout(yaxis_title="Units Sold")
    render_chart(fig, title=f"Daily Sales (last {DETAIL_RULES['trend_window_days']} days)", height=300)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown(f"**Store Velocity ({DETAIL_RULES['velocity_window_days']} days)**")
        render_data_table(details['store_velocity_90d'], downloadable=False)
    with col2:
        plan = details['purchase_plan']
        st.markdown("**Purchase Plan**")
        if plan['is_illustrative']:
            st.caption("⚠️ Simulated figures for illustration, not a replenishment recommendation.")
        st.metric("Safety Stock", plan['safety_stock'])
        st.metric("Reorder Point", plan['reorder_point'])
        st.metric("Order Quantity", plan['order_quantity'])

    render_data_table(
        details['recent_transactions'],
        title=f"Recent Transactions (last {DETAIL_RULES['recent_transactions']})",
        downloadable=False
    )
    render_data_table(details['open_purchase_orders'], title="Open Purchase Orders", downloadable=False)

    if supplier is None:
        st.warning(f"Supplier '{sku['supplier_id']}' is not in the snapshot.")
    else:
        st.markdown(
            f"**Supplier:** {supplier['supplier_name']} ({supplier['supplier_id']}) | "
            f"Payment terms {supplier['payment_terms']} | "
            f"Return window {supplier['return_window_days']:.0f} days"
        )


def render_supplier_details(details):
    supplier = details['supplier']

    st.subheader(f"{supplier['supplier_name']} ({supplier['supplier_id']})")
    st.caption(f"Payment terms: {supplier['payment_terms']} | Return window: {supplier['return_window_days']:.0f} days")

    render_kpi_row({
        "Purchase Orders": {"value": format_number(details['po_count'])},
        "Total PO Value": {"value": format_currency(details['total_po_value'])},
        "Avg. Delivery Time": {"value": f"{format_number(details['avg_delivery_time'], 'decimal')} days"},
        "On-Time %": {"value": format_number(details['on_time_pct'], 'percentage')},
    })

    skus = details['skus']
    preview = DETAIL_RULES['supplier_sku_preview']
    render_data_table(
        skus[['sku_id', 'product_name', 'category', 'cost_price', 'selling_price']],
        title=f"SKUs ({len(skus)})",
        max_rows=preview,
        downloadable=False
    )
    render_data_table(details['open_purchase_orders'], title="Open Purchase Orders", downloadable=False)


def render_details_page(app_data, today):
    """Render the Details page"""
    render_page_header("Details", icon="🔎", subtitle="Search a SKU or supplier")

    maps = _get_lookup_maps(str(app_data.get('load_time')), app_data)
    sku_options, supplier_options = compute_search_options(app_data)

    mode = st.radio("Search by", ["SKU", "Supplier"], horizontal=True, key="details_mode")

    if mode == "SKU":
        sku_id = st.selectbox(
            "SKU",
            options=list(sku_options.keys()),
            format_func=lambda key: sku_options.get(key, key),
            index=None,
            placeholder="Type a SKU id or product name",
            key="details_sku"
        )
        if sku_id is None:
            render_empty_state("Select a SKU to see its stock, forecast and sales.")
            return
        details = compute_sku_details(app_data, maps, sku_id, today)
        _record_lookup("SKU", sku_id, details is not None)
        if details is None:
            st.error(f"SKU '{sku_id}' was not found.")
            return
        render_sku_details(details)

    else:
        supplier_id = st.selectbox(
            "Supplier",
            options=list(supplier_options.keys()),
            format_func=lambda key: supplier_options.get(key, key),
            index=None,
            placeholder="Type a supplier id or name",
            key="details_supplier"
        )
        if supplier_id is None:
            render_empty_state("Select a supplier to see its SKUs and purchase orders.")
            return
        details = compute_supplier_details(app_data, maps, supplier_id)
        _record_lookup("Supplier", supplier_id, details is not None)
        if details is None:
            st.error(f"Supplier '{supplier_id}' was not found.")
            return
        render_supplier_details(details)
