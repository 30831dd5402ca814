"""
UI Components Module
Reusable Streamlit widgets and formatters for the Retail Operations Dashboard
Pages call these instead of styling metrics, tables and charts themselves
"""

import streamlit as st
import plotly.graph_objects as go
from datetime import datetime

from business_rules import CURRENCY_RULES, STRATEGY_RULES

# ===== UI LAYOUT HELPERS =====

def render_page_header(title, icon="🏬", subtitle=None):
    """Render consistent page headers"""
    st.title(f"{icon} {title}")
    if subtitle:
        st.caption(subtitle)
    st.divider()

def render_kpi_row(metrics_dict):
    """
    Render a row of KPI metrics

    Args:
        metrics_dict: Dict with format {"Label": {"value": "₹1,23,456", "delta": "+5%", "help": "Help text"}}
    """
    cols = st.columns(len(metrics_dict))
    for idx, (label, data) in enumerate(metrics_dict.items()):
        with cols[idx]:
            raw_value = data.get("value", "N/A")
            if raw_value is None or (isinstance(raw_value, str) and raw_value.strip() == ""):
                display_value = "N/A"
            else:
                display_value = raw_value

            st.metric(
                label=label,
                value=display_value,
                delta=data.get("delta"),
                delta_color=data.get("delta_color", "normal"),
                help=data.get("help")
            )

def render_data_table(df, title=None, max_rows=100, downloadable=True, download_filename="data.csv", column_config=None):
    """
    Render a data table with optional CSV download

    Args:
        df: Pandas DataFrame
        title: Optional section title
        max_rows: Maximum rows to display
        downloadable: Show download button
        download_filename: Name for downloaded file
        column_config: Optional st.column_config mapping
    """
    if title:
        st.subheader(title)

    if df.empty:
        st.info("No data available")
        return

    st.dataframe(df.head(max_rows), width='stretch', hide_index=True, column_config=column_config)

    if len(df) > max_rows:
        st.caption(f"Showing first {max_rows} of {len(df)} records")

    if downloadable:
        csv = df.to_csv(index=False).encode('utf-8')
        st.download_button(
            label="📥 Download CSV",
            data=csv,
            file_name=download_filename,
            mime="text/csv",
            key=f"download_{download_filename}"
        )

def render_chart(fig, title=None, height=400):
    """
    Render a Plotly chart with consistent styling

    Args:
        fig: Plotly figure object
        title: Optional chart title
        height: Chart height in pixels
    """
    if title:
        st.subheader(title)

    fig.update_layout(
        height=height,
        margin=dict(l=20, r=20, t=40, b=20),
        template="plotly_white"
    )

    st.plotly_chart(fig, width='stretch')

def render_info_box(message, type="info"):
    """
    Render an info/warning/error box

    Args:
        message: Message to display
        type: "info", "warning", "error", "success"
    """
    if type == "info":
        st.info(message)
    elif type == "warning":
        st.warning(message)
    elif type == "error":
        st.error(message)
    elif type == "success":
        st.success(message)

# ===== CHART BUILDERS =====

def build_donut_chart(labels, values, title=None):
    """Donut chart used for value splits (e.g. inventory value by store)"""
    fig = go.Figure(data=[go.Pie(labels=labels, values=values, hole=0.55, sort=False)])
    fig.update_traces(textinfo="percent", hovertemplate="%{label}<br>%{value:,.0f}<extra></extra>")
    if title:
        fig.update_layout(title=title)
    return fig

def get_quadrant_color(quadrant):
    return STRATEGY_RULES["quadrant_colors"].get(quadrant, "#6b7280")

# ===== NAVIGATION HELPERS =====

def get_main_navigation():
    """
    Define main navigation menu structure
    Returns list of menu items with page info
    """
    return [
        {
            "id": "home",
            "label": "🏠 Home",
            "description": "Capital allocation KPIs and store health"
        },
        {
            "id": "action_center",
            "label": "🚨 Action Center",
            "description": "Returns, payables, re-orders and stock health"
        },
        {
            "id": "strategy",
            "label": "🎯 Strategy",
            "description": "SKU velocity vs. margin quadrant"
        },
        {
            "id": "details",
            "label": "🔎 Details",
            "description": "SKU and supplier deep-dive"
        },
        {
            "id": "data_management",
            "label": "📤 Data Management",
            "description": "Upload replacement snapshot files"
        },
        {
            "id": "debug",
            "label": "🔧 Debug & Logs",
            "description": "Loader logs, rule logs and diagnostics"
        }
    ]

def render_navigation():
    """
    Render main navigation menu in sidebar
    Returns selected page ID
    """
    st.sidebar.title("🏬 Retail Operations")
    st.sidebar.caption("Store inventory, cash and supplier actions")
    st.sidebar.divider()

    menu_items = get_main_navigation()
    apply_navigation_request()

    selected = st.sidebar.radio(
        "Navigation",
        options=[item["label"] for item in menu_items],
        key="main_nav"
    )

    selected_page = next((item for item in menu_items if item["label"] == selected), None)

    if selected_page:
        st.sidebar.caption(selected_page["description"])

    st.sidebar.divider()

    return selected_page["id"] if selected_page else "home"

NAV_REQUEST_KEY = "nav_request"

def request_navigation(page_id, **widget_state):
    """
    Switch to another view on the next rerun.

    widget_state pre-fills widgets on the target page by key (e.g. the
    Details search box). Widget values cannot change once rendered in the
    current run, so the request is applied by render_navigation().
    """
    st.session_state[NAV_REQUEST_KEY] = {"page": page_id, "state": widget_state}
    st.rerun()

def apply_navigation_request():
    """Apply a pending request_navigation() before the sidebar radio renders"""
    request = st.session_state.pop(NAV_REQUEST_KEY, None)
    if not request:
        return None

    target = next((item for item in get_main_navigation() if item["id"] == request["page"]), None)
    if target is None:
        return None

    st.session_state["main_nav"] = target["label"]
    for key, value in request["state"].items():
        st.session_state[key] = value
    return target["id"]

# ===== QUICK ACTIONS =====

def render_quick_actions():
    """Render quick action buttons in sidebar"""
    st.sidebar.header("⚡ Quick Actions")

    actions = []

    if st.sidebar.button("🔄 Refresh Data", width='stretch'):
        actions.append("refresh")

    return actions

# ===== DATA STATUS INDICATOR =====

def render_data_status(data_load_time=None, record_count=None, reference_date=None):
    """Render data status indicator"""
    st.sidebar.divider()
    st.sidebar.caption("📊 Data Status")

    if data_load_time:
        st.sidebar.caption(f"Last Updated: {data_load_time.strftime('%H:%M:%S')}")

    if reference_date is not None:
        st.sidebar.caption(f"As of: {format_date(reference_date)}")

    if record_count:
        st.sidebar.caption(f"Records: {record_count:,}")

    st.sidebar.success("✓ Data Loaded")

# ===== EMPTY STATE HANDLERS =====

def render_empty_state(message="No data available", action_text=None, action_callback=None):
    """Render empty state with optional action"""
    st.info(f"ℹ️ {message}")
    if action_text and action_callback:
        if st.button(action_text):
            action_callback()

# ===== UTILITY FORMATTERS =====

def group_indian_digits(digits: str) -> str:
    """
    Insert lakh/crore separators into a string of digits.

    '1234567' -> '12,34,567'
    """
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])

def format_currency(value, decimals=0, symbol=None):
    """
    Format an amount in the base currency.

    Uses Indian digit grouping when CURRENCY_RULES asks for it:
    1234567 -> '₹12,34,567', -1500.5 with decimals=2 -> '-₹1,500.50'
    """
    if value is None:
        return "N/A"
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return str(value)
    if amount != amount:
        return "N/A"

    symbol = CURRENCY_RULES["symbol"] if symbol is None else symbol
    sign = "-" if round(amount, decimals) < 0 else ""
    text = f"{abs(amount):.{decimals}f}"
    whole, _, fraction = text.partition(".")

    if CURRENCY_RULES["indian_grouping"]:
        whole = group_indian_digits(whole)
    else:
        whole = f"{int(whole):,}"

    return f"{sign}{symbol}{whole}" + (f".{fraction}" if fraction else "")

def format_compact_currency(value):
    """Short form for KPI cards: crore (1e7) and lakh (1e5) units"""
    if value is None:
        return "N/A"
    symbol = CURRENCY_RULES["symbol"]
    amount = float(value)
    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    if amount >= 1e7:
        return f"{sign}{symbol}{amount / 1e7:.2f} Cr"
    if amount >= 1e5:
        return f"{sign}{symbol}{amount / 1e5:.2f} L"
    return format_currency(value)

def format_number(value, format_type="integer"):
    """Format numbers consistently"""
    if value is None:
        return "N/A"

    if format_type == 'currency':
        return format_currency(value)

    formats = {
        'integer': '{:,.0f}',
        'percentage': '{:.1f}%',
        'decimal': '{:.2f}'
    }

    try:
        return formats.get(format_type, '{}').format(value)
    except (TypeError, ValueError):
        return str(value)

def format_date(date_value, format_str='%Y-%m-%d'):
    """Format dates consistently"""
    if date_value is None:
        return "N/A"

    if isinstance(date_value, str):
        return date_value
    try:
        return date_value.strftime(format_str)
    except (AttributeError, ValueError):
        return str(date_value)

def format_timestamp(ts=None):
    """Wall-clock stamp for the dashboard clock; ts defaults to local now"""
    return (ts or datetime.now()).strftime('%Y-%m-%d %H:%M:%S')
