import streamlit as st
import pandas as pd

from element_component import get_tracker, item_history_dialog, show_order_details
from services.command_service import run_command

st.set_page_config(page_title="Receipt History", page_icon="🧾")
st.title("🧾 Receipt History")

tracker = get_tracker()

# -----------------------------------------------------------------------------
# Filters
# -----------------------------------------------------------------------------
col_search, col_from, col_to = st.columns([2, 1, 1])
search = col_search.text_input("Search waybill or item", key="history_search")
date_from = col_from.date_input("From", value=None, key="date_from")
date_to = col_to.date_input("To", value=None, key="date_to")


def clear_filters():
    st.session_state["history_search"] = ""
    st.session_state["date_from"] = None
    st.session_state["date_to"] = None


st.button("Clear filters", on_click=clear_filters)

ok, msg, entries = run_command(
    tracker,
    "query_history",
    text=search,
    date_from=date_from,
    date_to=date_to,
)

if not ok:
    st.error(msg)
    st.stop()

if not entries:
    st.info("No receipts match the filters.")
    st.stop()

df_history = pd.DataFrame(
    [
        {
            "Waybill": h.waybill,
            "Date Ordered": h.date_ordered or "",
            "Date Received": h.date_received or "",
            "Item": h.name,
            "Qty": h.qty,
        }
        for h in entries
    ]
)
st.caption(msg)
st.dataframe(df_history, hide_index=True)

st.divider()

# -----------------------------------------------------------------------------
# Details
# -----------------------------------------------------------------------------
col_waybill, col_item = st.columns(2)

with col_waybill:
    waybill = st.selectbox("Waybill details", sorted(df_history["Waybill"].unique()), index=None)
    if waybill:
        order = tracker.orders.find_by_waybill(waybill)
        if order is None:
            st.info("Waybill not found.")
        else:
            show_order_details(order)

with col_item:
    item = st.selectbox("Item history", sorted(df_history["Item"].unique()), index=None)
    if item and st.button("Show item history"):
        item_history_dialog(item)
