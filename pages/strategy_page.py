"""
Strategy Page
SKU performance based on 90-day sales velocity vs. profit margin
"""

import streamlit as st
import plotly.express as px
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from ui_components import render_page_header, render_chart, render_data_table, get_quadrant_color
from business_rules import STRATEGY_RULES
from strategy import get_filter_options, compute_strategy


def render_strategy_page(app_data, today):
    """Render the Strategy page"""
    render_page_header(
        "Strategy",
        icon="🎯",
        subtitle=f"SKU performance based on {STRATEGY_RULES['velocity_window_days']}-day sales velocity vs. profit margin."
    )

    store_options, category_options = get_filter_options(app_data)
    col1, col2 = st.columns(2)
    with col1:
        store = st.selectbox("Store", store_options, key="strategy_store")
    with col2:
        category = st.selectbox("Category", category_options, key="strategy_category")

    logs, result = compute_strategy(app_data, today, store, category)
    st.session_state['strategy_logs'] = logs
    quadrant_data = result['quadrant_data']

    if quadrant_data.empty:
        st.info("No SKUs sold in the selected store and category during the velocity window.")
        return

    counts = result['quadrant_counts']
    cols = st.columns(len(STRATEGY_RULES['quadrants']))
    for col, quadrant in zip(cols, STRATEGY_RULES['quadrants']):
        with col:
            st.metric(quadrant, counts.get(quadrant, 0))

    plot_df = quadrant_data.assign(margin_pct=quadrant_data['margin'] * 100)
    fig = px.scatter(
        plot_df,
        x='velocity',
        y='margin_pct',
        color='quadrant',
        hover_data=['sku_id', 'product_name', 'category'],
        color_discrete_map={q: get_quadrant_color(q) for q in STRATEGY_RULES['quadrants']},
        labels={'velocity': 'Units Sold (Velocity)', 'margin_pct': 'Profit Margin (%)', 'quadrant': 'Quadrant'}
    )
    fig.add_vline(x=result['avg_velocity'], line_dash='dash', line_color='gray')
    fig.add_hline(y=result['avg_margin'] * 100, line_dash='dash', line_color='gray')
    render_chart(fig, title="Velocity vs. Margin", height=480)

    quadrant_filter = st.selectbox("Show quadrant", ["All"] + STRATEGY_RULES['quadrants'], key="strategy_quadrant")
    table = quadrant_data if quadrant_filter == "All" else quadrant_data[quadrant_data['quadrant'] == quadrant_filter]
    table = table.assign(margin=(table['margin'] * 100).round(1))
    render_data_table(
        table.rename(columns={
            'sku_id': 'SKU', 'product_name': 'Product', 'category': 'Category',
            'velocity': 'Velocity', 'margin': 'Margin %', 'quadrant': 'Quadrant'
        }),
        download_filename="strategy_quadrant.csv"
    )
