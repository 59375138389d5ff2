import logging

import pandas as pd
import streamlit as st

from data_integrator import create_store_from_env
from domain.models import Order
from services.command_service import run_command
from services.tracker import InventoryTracker
from utils.formatting import format_currency

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@st.cache_resource
def get_tracker() -> InventoryTracker:
    return InventoryTracker(create_store_from_env())


def order_items_frame(order: Order) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"Item": i.name, "Qty": i.qty, "Price": format_currency(i.price)}
            for i in order.items
        ],
        columns=["Item", "Qty", "Price"],
    )


def show_order_details(order: Order):
    col_status, col_ordered, col_received = st.columns(3)
    col_status.metric("Status", order.status.upper())
    col_ordered.metric("Date Ordered", order.date or "-")
    col_received.metric("Date Received", order.received_at or "-")
    st.dataframe(order_items_frame(order), hide_index=True)


@st.dialog("Confirm")
def confirmation_dialog(command, payload, state_name, **kwargs):
    """
    Show `payload` for review and run `command` on "Yes".
    kwargs are passed to the command.
    """
    df = pd.DataFrame(list(payload.items()), columns=["Key", "Value"])
    df["Value"] = df["Value"].astype("string")
    st.dataframe(df, hide_index=True)

    col_yes, col_no = st.columns(2)

    with col_yes:
        if st.button("Yes", type="primary", key="confirm_yes"):
            ok, msg, _ = run_command(get_tracker(), command, **kwargs)
            st.session_state[state_name] = msg if ok else None

            if not ok:
                st.error(msg)
            else:
                st.rerun()
    with col_no:
        if st.button("No"):
            st.rerun()


@st.dialog("Item history")
def item_history_dialog(name):
    ok, msg, entries = run_command(get_tracker(), "item_history", name=name)
    if not entries:
        st.info(msg)
        return

    st.subheader(msg)
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "Waybill": h.waybill,
                    "Date Ordered": h.date_ordered or "",
                    "Date Received": h.date_received or "",
                    "Qty": h.qty,
                }
                for h in entries
            ]
        ),
        hide_index=True,
    )
