"""
Streamlit UI for the HVAC Pricing Tool.

Features:
- Employee tab: device search, price requests per project, request status
- Approvals tab: pending requests with full breakdown, approve/reject
- Parameters tab: active coefficients, publish a new version, history
- Catalog tab: device list and CSV export

The signed-in principal comes from the identity provider in production;
locally the sidebar stands in for it.
"""
import streamlit as st
import pandas as pd
from datetime import datetime

from hvac_pricing.config.settings import get_settings
from hvac_pricing.config.logging import setup_logging
from hvac_pricing.engine.capabilities import Capability, grant
from hvac_pricing.engine.errors import PricingError
from hvac_pricing.engine.models import PARAMETER_FIELDS
from hvac_pricing.services.approval import ApprovalStateMachine
from hvac_pricing.services.catalog_service import CatalogService
from hvac_pricing.services.inquiry_ledger import InquiryLedger
from hvac_pricing.services.parameter_store import ParameterStore
from hvac_pricing.services.project_service import ProjectService
from hvac_pricing.store.db import get_engine, init_db, session_scope


st.set_page_config(
    page_title="HVAC Pricing Tool",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def bootstrap():
    """Configure logging and make sure the schema exists."""
    setup_logging()
    init_db(get_engine())
    return get_settings()


try:
    settings = bootstrap()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()


# ============================================================================
# SIDEBAR: Principal
# ============================================================================
with st.sidebar:
    st.header("👤 Signed In")
    with st.container(border=True):
        user_id = st.text_input("User ID", value="employee-1")
        full_name = st.text_input("Full Name", value="")
        role = st.selectbox("Role", ["employee", "admin"])
    if not user_id.strip():
        st.warning("Enter a user ID to continue.")
        st.stop()
    token = grant(user_id, role, full_name=full_name)

    with session_scope() as db:
        unread = ProjectService(db).unread_count_for_user(token.user_id)
    if unread:
        st.info(f"💬 {unread} unread admin comment(s)")


st.title("HVAC Pricing Tool")
st.caption(f"Currency: {settings.currency} | {datetime.now().strftime('%Y-%m-%d')}")

tab_names = ["⚡ Request Price"]
if token.has(Capability.APPROVE_REQUESTS):
    tab_names += ["✅ Approvals", "⚙️ Parameters", "📚 Catalog"]
tabs = st.tabs(tab_names)


# ============================================================================
# TAB 1: REQUEST PRICE
# ============================================================================
with tabs[0]:
    col1, col2 = st.columns([1.4, 1.6], gap="large")

    with col1:
        st.subheader("Projects")
        with session_scope() as db:
            projects = ProjectService(db).list_projects(token.user_id)

        with st.form("new_project", clear_on_submit=True):
            name = st.text_input("New project name")
            if st.form_submit_button("➕ Create Project") and name.strip():
                with session_scope() as db:
                    ProjectService(db).create_project(token.user_id, name)
                st.rerun()

        project_labels = {p.id: p.name for p in projects}
        project_id = None
        if projects:
            project_id = st.selectbox("Project", options=list(project_labels), format_func=project_labels.get)
        else:
            st.info("Create a project to start requesting prices.")

        st.subheader("Find a Device")
        with session_scope() as db:
            catalog = CatalogService(db)
            categories = catalog.list_categories()
            category_labels = {'all': 'All categories', **{c.id: c.name for c in categories}}
            category_id = st.selectbox("Category", options=list(category_labels), format_func=category_labels.get)
            query = st.text_input("Search model", placeholder="e.g. Chiller")
            devices = catalog.search_devices(query, category_id)

        for device in devices:
            c1, c2 = st.columns([3, 1])
            c1.markdown(f"**{device.model_name}**  \n:gray[{device.category_name}]")
            if c2.button("Request", key=f"req-{device.id}", disabled=project_id is None):
                try:
                    with session_scope() as db:
                        record = InquiryLedger(db).request_price(token.user_id, device.id, project_id)
                    st.toast(f"Request {record.id[:8]} is {record.status}")
                except PricingError as e:
                    st.error(e.message)

    with col2:
        st.subheader("My Requests")
        with session_scope() as db:
            requests = InquiryLedger(db).get_user_requests(token.user_id)
        if requests:
            st.dataframe(pd.DataFrame([{
                'Model': r.model_name,
                'Category': r.category_name,
                'Project': project_labels.get(r.project_id, r.project_id),
                'Status': r.status,
                'Sell Price': f"{r.sell_price:,.0f} {settings.currency}" if r.sell_price is not None else "—",
                'Requested': r.timestamp.strftime('%Y-%m-%d %H:%M'),
            } for r in requests]), use_container_width=True, hide_index=True)
        else:
            st.caption("No requests yet.")

        if project_id:
            st.subheader("💬 Project Comments")
            with session_scope() as db:
                service = ProjectService(db)
                for c in service.list_comments(token, project_id):
                    st.markdown(f"**{c.user_full_name}** ({c.role}): {c.content}")
                service.mark_comments_read(token, project_id)
            with st.form("comment", clear_on_submit=True):
                content = st.text_area("Comment", label_visibility="collapsed")
                if st.form_submit_button("Send") and content.strip():
                    with session_scope() as db:
                        ProjectService(db).add_comment(token, project_id, content)
                    st.rerun()


if len(tabs) > 1:
    # ========================================================================
    # TAB 2: APPROVALS
    # ========================================================================
    with tabs[1]:
        st.subheader("Pending Requests")
        with session_scope() as db:
            ledger = InquiryLedger(db)
            pending = ledger.list_all(token, status="pending")
            breakdowns = {r.id: ledger.replay_breakdown(token, r.id) for r in pending}

        if not pending:
            st.success("Nothing waiting for approval.")

        for record in pending:
            with st.container(border=True):
                c1, c2, c3 = st.columns([3, 1, 1])
                c1.markdown(
                    f"**{record.model_name_snapshot}** ({record.category_name_snapshot})  \n"
                    f"User `{record.user_id}` · {record.created_at.strftime('%Y-%m-%d %H:%M')} · "
                    f"**{record.sell_price_snapshot:,.0f} {settings.currency}**"
                )
                if c2.button("Approve", key=f"ok-{record.id}", type="primary"):
                    with session_scope() as db:
                        ApprovalStateMachine(db).approve(token, record.id)
                    st.rerun()
                if c3.button("Reject", key=f"no-{record.id}"):
                    with session_scope() as db:
                        ApprovalStateMachine(db).reject(token, record.id)
                    st.rerun()
                with st.expander("🔍 Breakdown"):
                    st.text(breakdowns[record.id].get_trace_text())

    # ========================================================================
    # TAB 3: PARAMETERS
    # ========================================================================
    with tabs[2]:
        active = None
        with session_scope() as db:
            store = ParameterStore(db)
            try:
                active = store.get_active()
            except PricingError as e:
                st.error(e.message)
            history = store.history()

        if active is not None:
            st.subheader("Active Parameters")
            st.caption(f"Version `{active.id}`")
            with st.form("parameters"):
                values = {}
                for name in PARAMETER_FIELDS:
                    values[name] = st.text_input(name.replace('_', ' ').title(), value=str(getattr(active, name)))
                if st.form_submit_button("💾 Publish New Version", type="primary"):
                    try:
                        with session_scope() as db:
                            store = ParameterStore(db)
                            result = store.validate(values)
                            for warning in result.warnings:
                                st.warning(warning)
                            published = store.update(values, token)
                        st.toast(f"Published version {published.id[:8]}")
                        st.rerun()
                    except PricingError as e:
                        st.error(e.message)

        st.subheader("History")
        st.dataframe(pd.DataFrame([{
            'Version': r.id[:8],
            'Active': r.is_active,
            'Created': r.created_at.strftime('%Y-%m-%d %H:%M'),
            'By': r.created_by,
            **{name: str(getattr(r, name)) for name in PARAMETER_FIELDS},
        } for r in history]), use_container_width=True, hide_index=True)

    # ========================================================================
    # TAB 4: CATALOG
    # ========================================================================
    with tabs[3]:
        st.subheader("📚 Devices")
        price_error = None
        with session_scope() as db:
            catalog = CatalogService(db)
            ledger = InquiryLedger(db)
            rows = []
            for d in catalog.list_devices():
                price = None
                if d.is_active and price_error is None:
                    try:
                        price = ledger.calculate_price(token, d.id).sell_price
                    except PricingError as e:
                        price_error = e.message
                rows.append({
                    'Model': d.model_name,
                    'Category': d.category.name if d.category else '',
                    'Factory Price': float(d.factory_price),
                    'Length': float(d.length),
                    'Weight': float(d.weight),
                    'Active': d.is_active,
                    'Sell Price': float(price) if price is not None else None,
                })
        if price_error:
            st.error(f"Sell prices unavailable: {price_error}")
        catalog_df = pd.DataFrame(rows)
        st.dataframe(catalog_df, use_container_width=True, height=500, hide_index=True)
        st.download_button(
            "📥 CSV",
            data=catalog_df.to_csv(index=False),
            file_name="hvac_catalog.csv",
            mime="text/csv",
        )
