import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from datetime import date

import streamlit as st
import pandas as pd
import plotly.express as px

from carecore.api import CareApi
from carecore.config import Settings, configure_logging
from carecore.domain import (
    ACCESS_STATUSES, APPROVED, PRIORITIES, REJECTED, TRANSACTION_TYPES, VIEWER_ROLES,
)
from carecore.events import EventBus
from carecore.filters import apply_filters, by_status, matching_search
from carecore.services import default_report_service, rows_frame, transactions_frame
from carecore.storage import JsonFileBackend, KeyValueStore, MemoryBackend, Session
from carecore.sync import CollectionWatcher, StoreBridge
from carecore.tasks import UNIT_DAYS, frequency_text, next_due
from carecore.transactions import receipt_data_url, receipt_href

st.set_page_config(page_title="Care Dashboard", layout="wide")


@st.cache_resource
def shared_backend():
    """One profile for every browser session, like tabs of one browser."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if settings.store_path:
        return settings, JsonFileBackend(settings.store_path)
    return settings, MemoryBackend()


settings, backend = shared_backend()

if "api" not in st.session_state:
    bus = EventBus()
    store = KeyValueStore(backend)
    st.session_state.api = CareApi(settings, store=store, bus=bus)
    st.session_state.login = Session()
    st.session_state.bridge = StoreBridge(store, bus)
    changes = st.session_state.outside_changes = []
    # runs on the writing session's thread, so only touch the captured list
    st.session_state.watcher = CollectionWatcher(bus, lambda: changes.append(pd.Timestamp.now()))

api: CareApi = st.session_state.api
login: Session = st.session_state.login

if isinstance(backend, JsonFileBackend):
    backend.poll()


def run(coro):
    return asyncio.run(coro)


# sidebar: viewer, organisation, client

st.sidebar.markdown("### 👤 Viewer")
role = api.get_viewer_role(login)
new_role = st.sidebar.selectbox("Role", VIEWER_ROLES, index=VIEWER_ROLES.index(role))
if new_role != role:
    api.set_viewer_role(login, new_role)
    st.rerun()

orgs = api.organisations()
org_ids = [o.id for o in orgs]
current_org = api.current_org_id()
org_id = st.sidebar.selectbox(
    "Organisation", org_ids,
    index=org_ids.index(current_org) if current_org in org_ids else 0,
    format_func=lambda oid: next(o.name for o in orgs if o.id == oid),
)
if org_id != current_org:
    api.select_org(login, org_id)

clients = run(api.get_clients())
active = api.read_active_client()
client_ids = [c.id for c in clients]
client_id = st.sidebar.selectbox(
    "Client", client_ids,
    index=client_ids.index(active.id) if active.id in client_ids else 0,
    format_func=lambda cid: next(c.name for c in clients if c.id == cid),
)
if client_id != active.id:
    api.write_active_client(client_id, next(c.name for c in clients if c.id == client_id))

if st.session_state.outside_changes:
    st.sidebar.info(f"🔄 Updated from another tab at {st.session_state.outside_changes[-1]:%H:%M:%S}")
    st.session_state.outside_changes.clear()

access = run(api.resolve_access(login, client_id, org_id))
st.sidebar.caption(f"Access for this organisation: **{access}**")

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Overview", "🗓 Tasks", "💰 Budget", "🧾 Transactions", "📝 Requests", "🏢 Clients & Access"]
)

if menu == "🏠 Overview":
    rows = run(api.get_budget_rows(client_id))
    txs = run(api.get_transactions(client_id))
    annual = run(api.get_annual_budget(client_id))
    report = default_report_service().client_report(client_id, rows, txs, annual)
    result = report["result"]

    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Allocated", f"${result['allocated']:,.2f}")
    with k2:
        st.metric("Spent", f"${result['spent']:,.2f}")
    with k3:
        st.metric("Remaining", f"${result['remaining']:,.2f}")
    with k4:
        st.metric("Pending", f"{result['pending_count']} (${result['pending_amount']:,.2f})")

    frame = rows_frame(rows)
    if not frame.empty:
        fig = px.bar(
            frame, x="item", y=["allocated", "spent"], barmode="group",
            color_discrete_sequence=["#4c78a8", "#f58518"],
            title="Allocated vs spent", template="plotly_dark",
        )
        st.plotly_chart(fig, use_container_width=True)

    if result["over_budget"]:
        st.warning("Over budget: " + ", ".join(result["over_budget"]))
    for check in report["validation"]:
        for msg in check["messages"]:
            st.caption(f"⚠️ {msg}")

elif menu == "🗓 Tasks":
    tasks = [t for t in run(api.get_tasks()) if t.client_id == client_id]
    files = api.read_task_files()
    for t in tasks:
        with st.expander(f"{t.title} · {t.status} · due {t.next_due or '-'}"):
            st.write(f"**Category:** {t.category or '-'}  \n**Frequency:** {t.frequency or '-'}  \n"
                     f"**Last done:** {t.last_done or '-'}")
            for c in t.comments:
                st.caption(c)
            for f in files.get(t.id, []):
                st.markdown(f"📎 [{f.name}]({f.data_url})")

    st.markdown("#### Add task")
    catalog = run(api.get_task_catalog())
    categories = sorted({i.category for i in catalog if i.category})
    with st.form("add_task"):
        category = st.selectbox("Category", categories) if categories else st.text_input("Category")
        titles = [i.title for i in catalog if i.category == category]
        title = st.selectbox("Title", titles) if titles else st.text_input("Title")
        c1, c2 = st.columns(2)
        count = c1.number_input("Every", min_value=1, value=1)
        unit = c2.selectbox("Unit", list(UNIT_DAYS))
        last_done = st.date_input("Last done", value=date.today())
        if st.form_submit_button("Add") and title:
            run(api.add_task(
                client_id, title, category=category,
                frequency=frequency_text(int(count), unit),
                last_done=last_done.isoformat(),
                next_due=next_due(last_done.isoformat(), int(count), unit),
            ))
            st.success("Task added")
            st.rerun()

elif menu == "💰 Budget":
    rows = run(api.get_budget_rows(client_id))
    st.dataframe(rows_frame(rows), use_container_width=True)
    annual = run(api.get_annual_budget(client_id))
    total = st.number_input("Annual budget", min_value=0, value=int(annual), step=100)
    if st.button("Save annual budget"):
        run(api.set_annual_budget(client_id, total))
        st.success("Saved")

elif menu == "🧾 Transactions":
    txs = run(api.get_transactions(client_id))
    q1, q2 = st.columns([3, 1])
    query = q1.text_input("Search")
    status = q2.selectbox("Status", ["", "Pending", "Approved", "Rejected"])
    shown = apply_filters(txs, matching_search(query), by_status(status))
    st.dataframe(transactions_frame(shown), use_container_width=True)

    for t in shown:
        if t.status != "Pending" or role == "family":
            continue
        c1, c2, c3 = st.columns([4, 1, 1])
        href = receipt_href(t)
        c1.write(f"{t.date} · {t.item} · ${t.amount:,.2f}" + (f" · [receipt]({href})" if href else ""))
        if c2.button("Approve", key=f"ap-{t.id}"):
            run(api.set_transaction_status(t.id, APPROVED))
            st.rerun()
        if c3.button("Reject", key=f"rj-{t.id}"):
            run(api.set_transaction_status(t.id, REJECTED))
            st.rerun()

    st.markdown("#### Add transaction")
    with st.form("add_tx"):
        tx_type = st.selectbox("Type", TRANSACTION_TYPES)
        tx_date = st.date_input("Date", value=date.today())
        category = st.text_input("Category")
        item = st.text_input("Item")
        amount = st.number_input("Amount", value=0.0, step=1.0)
        made_by = st.text_input("Made by", value=role.title())
        receipt = st.file_uploader("Receipt")
        if st.form_submit_button("Add") and item:
            data_url = receipt_data_url(receipt.getvalue(), receipt.type) if receipt else None
            run(api.add_transaction(
                client_id, tx_type, tx_date.isoformat(), made_by, category, item, amount,
                receipt_data_url=data_url,
                receipt_filename=receipt.name if receipt else None,
                receipt_mime_type=receipt.type if receipt else None,
            ))
            st.success("Transaction recorded")
            st.rerun()

elif menu == "📝 Requests":
    for r in run(api.get_requests_by_client(client_id)):
        with st.expander(f"{r.title} · {r.status} · {r.created_at[:10]}"):
            st.write(r.detail)
            if r.reason:
                st.caption(f"Reason: {r.reason}")
            if role == "management" and r.status == "Pending":
                c1, c2 = st.columns(2)
                if c1.button("Approve", key=f"rqa-{r.id}"):
                    run(api.set_request_status(r.id, APPROVED))
                    st.rerun()
                if c2.button("Reject", key=f"rqr-{r.id}"):
                    run(api.set_request_status(r.id, REJECTED))
                    st.rerun()

    with st.form("add_request"):
        title = st.text_input("Title")
        detail = st.text_area("Details")
        reason = st.text_area("Reason")
        priority = st.selectbox("Priority", PRIORITIES, index=1)
        if st.form_submit_button("Submit") and title:
            run(api.add_request(client_id, role.title(), title, detail, reason, priority=priority))
            st.rerun()

elif menu == "🏢 Clients & Access":
    annotated = run(api.clients_with_access(login, org_id))
    st.dataframe(
        pd.DataFrame([{"client": c.name, "dob": c.dob, "access": a} for c, a in annotated]),
        use_container_width=True,
    )
    target = st.selectbox("Client", [c.id for c, _ in annotated],
                          format_func=lambda cid: next(c.name for c, _ in annotated if c.id == cid))
    c1, c2 = st.columns(2)
    if c1.button("Request access"):
        run(api.request_access(target, org_id))
        st.rerun()
    if settings.mock and role == "management":
        new_status = c2.selectbox("Access", ACCESS_STATUSES)
        if c2.button("Update access"):
            api.set_org_status(target, org_id, new_status)
            st.rerun()

    st.markdown("#### Users with access")
    users = run(api.get_users_with_access(client_id))
    st.table(pd.DataFrame([{"name": u.name, "role": u.role} for u in users]))
