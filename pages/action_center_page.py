"""
Action Center Page
Prioritized alerts: urgent returns, upcoming payables, critical re-orders
and overstock / understock health
"""

import streamlit as st
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from ui_components import (
    render_page_header, render_kpi_row, render_data_table, render_info_box,
    request_navigation, format_currency, format_date
)
from business_rules import RETURN_RULES, PAYABLE_RULES, REORDER_RULES, STOCK_STATUS_RULES
from action_center import compute_action_center
from inventory_status import compute_inventory_status
from utils import get_filtered_data_as_excel, build_alert_export


def _display_returns(df):
    return df.assign(
        at_risk_value=df['at_risk_value'].map(format_currency),
        deadline=df['deadline'].map(format_date),
    ).rename(columns={
        'po_id': 'PO', 'sku_id': 'SKU', 'product_name': 'Product', 'store_id': 'Store',
        'supplier_name': 'Supplier', 'days_remaining': 'Days Left',
        'at_risk_quantity': 'Excess Units', 'at_risk_value': 'Value at Risk', 'deadline': 'Return By',
    })


def _display_payables(df):
    return df.assign(
        amount_due=df['amount_due'].map(format_currency),
        due_date=df['due_date'].map(format_date),
    ).rename(columns={
        'po_id': 'PO', 'supplier_name': 'Supplier', 'amount_due': 'Amount Due',
        'due_date': 'Due Date', 'days_until_due': 'Days Until Due',
    })


def _display_reorders(df):
    return df.assign(
        days_of_stock_left=df['days_of_stock_left'].round(1),
        supplier_rating=df['supplier_rating'].map(lambda r: f"{r:.0f}%"),
    ).drop(columns=['alert_id']).rename(columns={
        'sku_id': 'SKU', 'product_name': 'Product', 'store_id': 'Store',
        'current_stock': 'On Hand', 'days_of_stock_left': 'Days of Stock',
        'forecast_30day': '30-Day Forecast', 'supplier_name': 'Supplier',
        'supplier_rating': 'On-Time %', 'recommended_po_qty': 'Recommended PO Qty',
    })


def _display_stock_status(df):
    return df.assign(
        inventory_value=df['inventory_value'].map(format_currency),
    ).rename(columns={
        'store_id': 'Store', 'sku_id': 'SKU', 'product_name': 'Product', 'category': 'Category',
        'status': 'Status', 'quantity_on_hand': 'On Hand', 'forecast_90day': '90-Day Forecast',
        'days_in_stock': 'Days in Stock', 'inventory_value': 'Value',
        'threshold': 'Threshold', 'reason_delta': 'Over / Under By',
    })


def _render_detail_action(df, id_col, button_label, key):
    """Pick an alert row and open its SKU on the Details page"""
    if df.empty:
        return
    col1, col2 = st.columns([3, 1])
    with col1:
        alert_id = st.selectbox("Alert", df[id_col].tolist(), key=f"{key}_select", label_visibility="collapsed")
    with col2:
        if st.button(button_label, width='stretch', key=f"{key}_button"):
            sku_id = df.loc[df[id_col] == alert_id, 'sku_id'].iloc[0]
            request_navigation("details", details_mode="SKU", details_sku=sku_id)


def render_action_center_page(app_data, today):
    """Render the Action Center page"""
    render_page_header(
        "Action Center",
        icon="🚨",
        subtitle=f"Alerts evaluated as of {today:%d %b %Y %H:%M} UTC"
    )

    _, action_data = compute_action_center(app_data, today)
    _, status_df = compute_inventory_status(app_data)

    returns = action_data['urgent_returns']
    payables = action_data['upcoming_payables']
    reorders = action_data['critical_reorders']

    render_kpi_row({
        "Urgent Returns": {
            "value": f"{len(returns):,}",
            "delta": format_currency(action_data['total_return_value']),
            "delta_color": "off",
            "help": f"Return windows closing within {RETURN_RULES['alert_window_days']} days"
        },
        "Upcoming Payables": {
            "value": f"{len(payables):,}",
            "delta": format_currency(action_data['total_payable_value']),
            "delta_color": "off",
            "help": f"Payments due within {PAYABLE_RULES['alert_window_days']} days"
        },
        "Critical Re-orders": {
            "value": f"{len(reorders):,}",
            "help": f"Less than {REORDER_RULES['critical_days_of_stock']} days of stock at forecast demand"
        },
        "Stock Health Alerts": {
            "value": f"{len(status_df):,}",
            "help": "Overstocked and understocked store/SKU pairs"
        },
    })

    tab_returns, tab_payables, tab_reorders, tab_status = st.tabs([
        f"↩️ Urgent Returns ({len(returns)})",
        f"💸 Payables ({len(payables)})",
        f"📦 Re-orders ({len(reorders)})",
        f"⚖️ Stock Health ({len(status_df)})",
    ])

    with tab_returns:
        st.caption("Excess stock (on hand above the 90-day forecast) that can still go back to the supplier.")
        render_data_table(_display_returns(returns), downloadable=False)
        _render_detail_action(returns, 'po_id', "↩️ Initiate Return", "initiate_return")

    with tab_payables:
        st.caption("Delivered purchase orders whose supplier payment falls due soon.")
        render_data_table(_display_payables(payables), downloadable=False)

    with tab_reorders:
        st.caption("Fast sellers that will run out within a week at forecast demand.")
        render_data_table(_display_reorders(reorders), downloadable=False)
        _render_detail_action(reorders, 'alert_id', "🛒 Approve PO", "approve_po")

    with tab_status:
        st.caption(
            f"Showing up to {STOCK_STATUS_RULES['max_overstock_rows']} oldest overstock rows and "
            f"{STOCK_STATUS_RULES['max_understock_rows']} most valuable understock rows."
        )
        render_data_table(_display_stock_status(status_df), downloadable=False)

    st.divider()
    if returns.empty and payables.empty and reorders.empty and status_df.empty:
        render_info_box("No alerts for this snapshot.", type="success")
    else:
        st.download_button(
            label="📥 Download Alerts (Excel)",
            data=get_filtered_data_as_excel(build_alert_export(action_data, status_df)),
            file_name=f"action_center_{today:%Y%m%d}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            key="download_action_center"
        )
