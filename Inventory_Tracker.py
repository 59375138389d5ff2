import pandas as pd
import streamlit as st

from domain.models import PRODUCTS
from element_component import (
    confirmation_dialog,
    get_tracker,
    order_items_frame,
    show_order_details,
)
from services.command_service import run_command
from utils.formatting import format_items

st.set_page_config(
    page_title="Waybills",
    page_icon="🚚"
)

st.sidebar.header("🚚 Waybills")

tracker = get_tracker()

for state_name in ("order_input_state", "receive_state", "edit_state", "delete_state"):
    st.session_state.setdefault(state_name, None)


@st.dialog("Edit waybill", width="large")
def edit_order_dialog(order_id):
    order = tracker.orders.get(order_id)
    if order is None:
        st.error("Waybill not found.")
        return

    st.subheader(f"Edit Waybill {order.waybill}")
    st.caption("Change quantities, add or remove lines. Save to apply.")

    df = pd.DataFrame(
        [{"name": i.name, "qty": i.qty, "price": i.price} for i in order.items],
        columns=["name", "qty", "price"],
    )
    edited = st.data_editor(
        df,
        num_rows="dynamic",
        hide_index=True,
        column_config={
            "name": st.column_config.SelectboxColumn("Item", options=sorted(set(PRODUCTS) | set(df["name"]))),
            "qty": st.column_config.NumberColumn("Qty", min_value=1, step=1),
            "price": st.column_config.NumberColumn("Price", min_value=0.0, step=0.01),
        },
        key=f"editor_{order_id}",
    )

    if st.button("Save", type="primary"):
        items = edited.astype(object).where(edited.notna(), None).to_dict("records")
        ok, msg, _ = run_command(tracker, "edit_order_items", order_id=order_id, items=items)
        if ok:
            st.session_state["edit_state"] = msg
            st.rerun()
        else:
            st.error(msg)


# -------------------------------------------------------------------
# Quick lookup
# -------------------------------------------------------------------

st.subheader("Quick Lookup")
lookup = st.text_input("Waybill", key="quick_lookup", placeholder="Type a waybill number")
if lookup:
    ok, msg, found = run_command(tracker, "quick_lookup", waybill=lookup)
    if found is None:
        st.info(msg)
    else:
        show_order_details(found)

st.divider()

# -------------------------------------------------------------------
# Add / append to waybill
# -------------------------------------------------------------------

with st.form("order_input_form", clear_on_submit=True, enter_to_submit=False):
    st.subheader("Add Items to Waybill")
    waybill = st.text_input("Waybill")
    confirm_waybill = st.text_input("Confirm Waybill")
    order_date = st.date_input("Date", value="today")
    item_name = st.selectbox("Item", PRODUCTS)
    qty = st.number_input("Quantity", min_value=1, step=1, value=1)
    price = st.number_input("Price", min_value=0.0, step=0.01, value=None)

    if st.form_submit_button("Submit"):
        ok, msg, _ = run_command(
            tracker,
            "submit_order",
            waybill=waybill,
            confirm_waybill=confirm_waybill,
            date=order_date,
            item={"name": item_name, "qty": int(qty), "price": price},
        )
        if ok:
            st.session_state["order_input_state"] = msg
        else:
            st.session_state["order_input_state"] = None
            st.error(msg)

    if st.session_state["order_input_state"]:
        st.success(st.session_state["order_input_state"])

# -------------------------------------------------------------------
# Confirm arrival
# -------------------------------------------------------------------

st.subheader("Confirm Arrival")
col_input, col_button = st.columns([3, 1], vertical_alignment="bottom")
arrival = col_input.text_input("Waybill to receive", key="arrival_waybill")
if col_button.button("Receive"):
    if not arrival.strip():
        st.error("Enter a waybill number.")
    else:
        pending = tracker.orders.find_by_waybill(arrival.strip())
        if pending is not None and not pending.is_received:
            st.dataframe(order_items_frame(pending), hide_index=True)
        confirmation_dialog(
            "receive_order",
            {"Waybill": arrival.strip()},
            "receive_state",
            waybill=arrival,
        )

for state_name in ("receive_state", "edit_state", "delete_state"):
    if st.session_state[state_name]:
        st.success(st.session_state[state_name])
        st.session_state[state_name] = None

st.divider()

# -------------------------------------------------------------------
# Waybill list
# -------------------------------------------------------------------

st.subheader("Waybills")
search = st.text_input("Search waybill or item", key="search_waitlist")
ok, msg, orders = run_command(tracker, "search_orders", text=search)

if not orders:
    st.info("No waybills yet.")
    st.stop()

st.dataframe(
    pd.DataFrame(
        [
            {
                "Waybill": o.waybill,
                "Date": o.date or "",
                "Items": format_items(o.items) or "No items yet",
                "Status": o.status.upper(),
                "Received": o.received_at or "",
            }
            for o in orders
        ]
    ),
    hide_index=True,
)

labels = {o.id: f"{o.waybill} ({o.status})" for o in orders}
selected_id = st.selectbox(
    "Waybill",
    list(labels.keys()),
    format_func=labels.get,
    index=None,
    placeholder="Pick a waybill to edit or delete",
)

if selected_id:
    selected = tracker.orders.get(selected_id)
    col_edit, col_delete = st.columns(2)
    with col_edit:
        if st.button("Edit", disabled=selected.is_received):
            edit_order_dialog(selected_id)
    with col_delete:
        if st.button("Delete"):
            confirmation_dialog(
                "delete_order",
                {
                    "Waybill": selected.waybill,
                    "Status": selected.status,
                    "Items": format_items(selected.items),
                },
                "delete_state",
                order_id=selected_id,
            )
