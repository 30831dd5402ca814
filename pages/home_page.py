"""
Home Page - Capital Allocation Overview
Inventory value, cash position, store health and the sales trend
"""

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from ui_components import (
    render_page_header, render_kpi_row, render_chart, render_data_table,
    build_donut_chart, format_currency, format_compact_currency
)
from business_rules import KPI_RULES
from home_dashboard import compute_home_dashboard, compute_sales_trend


HORIZON_LABELS = {
    8: "8-Month Actual",
    30: "30-Day Forecast",
    60: "60-Day Forecast",
    90: "90-Day Forecast",
}


def render_kpi_cards(kpis):
    render_kpi_row({
        "Total Inventory Value": {
            "value": format_compact_currency(kpis['total_inventory_value']),
            "help": "On hand x cost price across all stores"
        },
        "Liquidatable Value": {
            "value": format_compact_currency(kpis['liquidatable_value']),
            "help": "Excess stock that can still be returned to suppliers"
        },
        "Payables (30 Days)": {
            "value": format_compact_currency(kpis['payables_due_30days']),
            "help": "Delivered POs whose payment falls due in the next 30 days"
        },
        "Projected Sales (30 Days)": {
            "value": format_compact_currency(kpis['projected_30day_sales']),
            "help": "Average monthly sales x 1.1"
        },
    })


def render_credit_health(credit):
    """30-day working-capital breakdown"""
    status = "✅ Healthy" if credit['is_safe'] else "⚠️ At Risk"
    with st.expander(f"💳 30-Day Credit Health: {status}", expanded=not credit['is_safe']):
        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Cash In (Projected Sales)", format_currency(credit['cash_in']))
            st.metric("Liquid Assets (Returns)", format_currency(credit['liquid_assets']))
        with col2:
            st.metric("Total Buffer", format_currency(credit['total_buffer']))
            st.metric("Cash Out (Payables)", format_currency(credit['cash_out']))
        with col3:
            st.metric(
                "Net Position",
                format_currency(credit['net_position']),
                delta="Safe" if credit['is_safe'] else "Shortfall",
                delta_color="normal" if credit['is_safe'] else "inverse"
            )


def render_store_breakdown(breakdown):
    if breakdown.empty:
        st.info("No inventory value to break down.")
        return
    fig = build_donut_chart(breakdown['store_name'], breakdown['value'])
    render_chart(fig, title="🏪 Inventory Value by Store", height=320)

    table = breakdown.assign(
        value=breakdown['value'].map(format_currency),
        percent=breakdown['percent'].map(lambda p: f"{p:.1f}%")
    ).rename(columns={'store_id': 'Store', 'store_name': 'Name', 'value': 'Value', 'percent': 'Share'})
    st.dataframe(table, hide_index=True, width='stretch')


def render_store_health(cards):
    st.subheader("🏥 Store Health")
    if not cards:
        st.info("No stores in the snapshot.")
        return
    cols = st.columns(min(len(cards), 3))
    for idx, card in enumerate(cards):
        with cols[idx % len(cols)]:
            with st.container(border=True):
                st.markdown(f"**{card['store_name']}** ({card['store_id']})")
                st.markdown(f"Health Tier: **{card['health_tier']}**")
                st.metric("Revenue", format_compact_currency(card['total_revenue']))
                st.metric(card['problem_stat'], card['problem_value'])


def render_sales_trend(app_data, today):
    st.subheader("📈 Sales Overview")
    horizons = KPI_RULES['sales_trend']['horizons']
    horizon = st.radio(
        "Horizon",
        options=horizons,
        format_func=lambda h: HORIZON_LABELS.get(h, f"{h}-Day"),
        horizontal=True,
        key="sales_trend_horizon"
    )

    trend = compute_sales_trend(app_data, today, horizon)
    chart = trend['chart_data']

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Total Sales (shown months)", format_compact_currency(trend['total_sales']))
    with col2:
        change = trend['change_percentage']
        st.metric("vs. previous 90 days", f"{change:+.1f}%")

    if chart.empty:
        st.info("No sales history before the reference date.")
        return

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=chart['month'], y=chart['historical'], mode='lines+markers', name='Actual',
        line=dict(color='#2563eb', width=3)
    ))
    if chart['forecast'].notna().any():
        fig.add_trace(go.Scatter(
            x=chart['month'], y=chart['forecast'], mode='lines+markers', name='Forecast',
            line=dict(color='#f97316', width=3, dash='dash')
        ))
    fig.update_layout(yaxis_title="Sales", hovermode='x unified')
    render_chart(fig, height=360)


def render_home_page(app_data, today):
    """Render the Home page"""
    render_page_header("Home", icon="🏠", subtitle=f"Snapshot as of {today:%d %b %Y}")

    _, dashboard = compute_home_dashboard(app_data, today)

    render_kpi_cards(dashboard['kpis'])
    render_credit_health(dashboard['credit_health'])

    st.divider()
    col1, col2 = st.columns([1, 1])
    with col1:
        render_store_breakdown(dashboard['store_value_breakdown'])
    with col2:
        render_sales_trend(app_data, today)

    st.divider()
    render_store_health(dashboard['store_health_cards'])

    with st.expander("📄 Store health data"):
        render_data_table(
            pd.DataFrame(dashboard['store_health_cards']),
            downloadable=True,
            download_filename="store_health.csv"
        )
