import streamlit as st
import pandas as pd

from element_component import get_tracker, item_history_dialog
from services.command_service import run_command

st.set_page_config(
    page_title="Inventory",
    page_icon="📦"
)

st.sidebar.header("📦 Inventory")

tracker = get_tracker()
st.session_state.setdefault("adjust_state", None)

st.subheader("Inventory")
search = st.text_input("Search item", key="search_inventory")
ok, msg, records = run_command(tracker, "list_inventory", text=search)

if not records:
    st.info("Nothing in stock yet.")
    st.stop()

st.dataframe(
    pd.DataFrame([{"Item": r.name, "Qty": r.qty} for r in records]),
    hide_index=True,
)

# -------------------------------------------------------------------
# Manual adjustment
# -------------------------------------------------------------------

with st.form("adjust_form", enter_to_submit=False):
    st.subheader("Adjust Quantity")
    name = st.selectbox("Item", [r.name for r in records])
    delta = st.number_input("Change (+ add / - subtract)", step=1, value=1)

    if st.form_submit_button("Apply"):
        ok, msg, record = run_command(tracker, "adjust_inventory", name=name, delta=int(delta))
        if ok:
            st.session_state["adjust_state"] = msg
            st.rerun()
        else:
            st.error(msg)

if st.session_state["adjust_state"]:
    st.success(f"Updated {st.session_state['adjust_state']}")
    st.session_state["adjust_state"] = None

st.divider()

history_for = st.selectbox(
    "Show history for",
    [r.name for r in records],
    index=None,
    placeholder="Pick an item",
)
if history_for and st.button("Show history"):
    item_history_dialog(history_for)
