import pytest

from data_integrator import load_json
from domain.errors import AlreadyReceivedError, NotFoundError, PersistenceError, ValidationError
from domain.models import LineItem, STATUS_PENDING, STATUS_RECEIVED
from services.tracker_state import KEY_HISTORY, KEY_INVENTORY, KEY_ORDERS
from tests.conftest import TODAY, dump


def _stock(tracker):
    return {r.name: r.qty for r in tracker.inventory.list()}


def test_submit_creates_pending_order(tracker, store):
    order = tracker.orders.submit_order("WB1", "2024-02-10", {"name": "CCP", "qty": 4, "price": 9.5})

    assert order.id == "id1"
    assert order.waybill == "WB1"
    assert order.date == "2024-02-10"
    assert order.status == STATUS_PENDING
    assert order.received_at is None
    assert order.items == [LineItem("CCP", 4, 9.5)]
    assert load_json(store, KEY_ORDERS, [])[0]["waybill"] == "WB1"


def test_submit_same_waybill_merges_in_call_order(tracker):
    submitted = [LineItem("CCP", 1), LineItem("CGM", 2), LineItem("CCP", 3)]
    for n, item in enumerate(submitted):
        tracker.orders.submit_order("WB7", f"2024-02-0{n + 1}", item)

    matching = [o for o in tracker.state.orders if o.waybill == "WB7"]
    assert len(matching) == 1
    assert matching[0].items == submitted
    # the last submission's date wins
    assert matching[0].date == "2024-02-03"


def test_submit_defaults_date_to_today(tracker):
    order = tracker.orders.submit_order("WB1", None, LineItem("CCP", 1))
    assert order.date == TODAY


@pytest.mark.parametrize(
    "waybill, item, confirm",
    [
        ("", LineItem("CCP", 1), None),
        ("   ", LineItem("CCP", 1), None),
        ("WB1", LineItem("", 1), None),
        ("WB1", LineItem("CCP", 0), None),
        ("WB1", {"name": "CCP", "qty": "two"}, None),
        ("WB1", {"name": "CCP", "qty": 1.5}, None),
        ("WB1", {"name": "CCP", "qty": 1, "price": -2}, None),
        ("WB1", LineItem("CCP", 1), "WB2"),
    ],
)
def test_submit_rejects_invalid_input(tracker, store, waybill, item, confirm):
    with pytest.raises(ValidationError):
        tracker.orders.submit_order(waybill, None, item, confirm_waybill=confirm)
    assert tracker.state.orders == []
    assert store.get(KEY_ORDERS) is None


def test_submit_rejects_bad_date(tracker):
    with pytest.raises(ValidationError):
        tracker.orders.submit_order("WB1", "01/02/2024", LineItem("CCP", 1))


def test_submit_accepts_matching_confirmation_and_trims(tracker):
    order = tracker.orders.submit_order(" WB1 ", None, {"name": "CCP", "qty": "2"}, confirm_waybill="WB1")
    assert order.waybill == "WB1"
    assert order.items[0].qty == 2


def test_submit_to_received_waybill_fails_without_mutation(tracker):
    tracker.orders.submit_order("WB1", None, LineItem("CCP", 1))
    tracker.orders.receive_order("WB1")

    with pytest.raises(AlreadyReceivedError):
        tracker.orders.submit_order("WB1", "2024-05-05", LineItem("CGM", 9))

    order = tracker.orders.find_by_waybill("WB1")
    assert order.items == [LineItem("CCP", 1)]
    assert order.date == TODAY


def test_receive_scenario(tracker):
    tracker.orders.submit_order("WB100", None, {"name": "CCP", "qty": 10})
    tracker.orders.submit_order("WB100", None, {"name": "CGM", "qty": 5})
    assert len(tracker.state.orders) == 1
    assert len(tracker.state.orders[0].items) == 2

    order = tracker.orders.receive_order("WB100")

    assert order.status == STATUS_RECEIVED
    assert order.received_at == TODAY
    assert _stock(tracker) == {"CCP": 10, "CGM": 5}
    assert len(tracker.state.history) == 2
    assert all(h.date_received == TODAY for h in tracker.state.history)
    assert [(h.name, h.qty, h.waybill, h.date_ordered) for h in tracker.state.history] == [
        ("CCP", 10, "WB100", TODAY),
        ("CGM", 5, "WB100", TODAY),
    ]

    with pytest.raises(AlreadyReceivedError):
        tracker.orders.receive_order("WB100")
    with pytest.raises(AlreadyReceivedError):
        tracker.orders.receive_order("WB100")

    assert _stock(tracker) == {"CCP": 10, "CGM": 5}
    assert len(tracker.state.history) == 2


def test_receive_adds_to_existing_stock(tracker):
    tracker.inventory.increment("CCP", 3)
    tracker.orders.submit_order("WB1", None, LineItem("CCP", 2))
    tracker.orders.receive_order("WB1")
    assert _stock(tracker) == {"CCP": 5}


def test_receive_persists_all_three_collections(tracker, store):
    tracker.orders.submit_order("WB1", None, LineItem("CCP", 2))
    tracker.orders.receive_order("WB1")

    assert load_json(store, KEY_ORDERS, [])[0]["status"] == "received"
    assert load_json(store, KEY_ORDERS, [])[0]["receivedAt"] == TODAY
    assert load_json(store, KEY_INVENTORY, []) == [{"name": "CCP", "qty": 2}]
    assert load_json(store, KEY_HISTORY, []) == [
        {"waybill": "WB1", "dateOrdered": TODAY, "dateReceived": TODAY, "name": "CCP", "qty": 2}
    ]


def test_receive_unknown_waybill(tracker):
    with pytest.raises(NotFoundError):
        tracker.orders.receive_order("NOPE")
    with pytest.raises(ValidationError):
        tracker.orders.receive_order("  ")


def test_receive_empty_order_only_changes_status(tracker):
    order = tracker.orders.submit_order("WB1", None, LineItem("CCP", 1))
    tracker.orders.edit_order_items(order.id, [])

    received = tracker.orders.receive_order("WB1")

    assert received.status == STATUS_RECEIVED
    assert tracker.inventory.list() == []
    assert tracker.state.history == []


def test_receive_rolls_back_when_store_fails(tracker, store):
    tracker.orders.submit_order("WB1", None, LineItem("CCP", 2))
    store.fail_keys.add(KEY_HISTORY)

    with pytest.raises(PersistenceError):
        tracker.orders.receive_order("WB1")

    order = tracker.orders.find_by_waybill("WB1")
    assert order.status == STATUS_PENDING
    assert order.received_at is None
    assert tracker.inventory.list() == []
    assert tracker.state.history == []
    # keys written before the failure were put back to the pre-receive values
    assert load_json(store, KEY_ORDERS, [])[0]["status"] == "pending"
    assert load_json(store, KEY_INVENTORY, []) == []

    store.fail_keys.clear()
    tracker.orders.receive_order("WB1")
    assert _stock(tracker) == {"CCP": 2}
    assert len(tracker.state.history) == 1


def test_edit_items_cleans_input(tracker):
    order = tracker.orders.submit_order("WB1", None, LineItem("CCP", 1))

    edited = tracker.orders.edit_order_items(
        order.id,
        [
            {"name": "CGM", "qty": 0, "price": ""},
            {"name": "  ", "qty": 4},
            {"name": "UCP", "qty": "abc", "price": -1},
            LineItem("TGC", 6, 2.0),
        ],
    )

    assert edited.items == [
        LineItem("CGM", 1, None),
        LineItem("UCP", 1, None),
        LineItem("TGC", 6, 2.0),
    ]


def test_edit_received_order_is_rejected(tracker):
    order = tracker.orders.submit_order("WB1", None, LineItem("CCP", 1))
    tracker.orders.receive_order("WB1")

    with pytest.raises(AlreadyReceivedError):
        tracker.orders.edit_order_items(order.id, [LineItem("CCP", 50)])
    with pytest.raises(AlreadyReceivedError):
        tracker.orders.add_line(order.id)
    with pytest.raises(AlreadyReceivedError):
        tracker.orders.remove_line(order.id, 0)

    assert tracker.orders.get(order.id).items == [LineItem("CCP", 1)]


def test_edit_unknown_order(tracker):
    with pytest.raises(NotFoundError):
        tracker.orders.edit_order_items("missing", [])


def test_add_and_remove_line(tracker):
    order = tracker.orders.submit_order("WB1", None, LineItem("CCP", 3))

    order = tracker.orders.add_line(order.id)
    assert order.items[-1] == LineItem("25KG", 1, None)

    order = tracker.orders.remove_line(order.id, 0)
    assert order.items == [LineItem("25KG", 1, None)]

    with pytest.raises(NotFoundError):
        tracker.orders.remove_line(order.id, 5)


def test_delete_keeps_inventory_and_history(tracker, store):
    order = tracker.orders.submit_order("WB1", None, LineItem("CCP", 2))
    tracker.orders.receive_order("WB1")

    tracker.orders.delete_order(order.id)

    assert tracker.orders.find_by_waybill("WB1") is None
    assert load_json(store, KEY_ORDERS, None) == []
    assert _stock(tracker) == {"CCP": 2}
    assert len(tracker.history.query()) == 1

    with pytest.raises(NotFoundError):
        tracker.orders.delete_order(order.id)


def test_waybill_can_be_reused_after_delete(tracker):
    order = tracker.orders.submit_order("WB1", None, LineItem("CCP", 2))
    tracker.orders.delete_order(order.id)

    again = tracker.orders.submit_order("WB1", None, LineItem("CGM", 1))
    assert again.id != order.id
    assert again.items == [LineItem("CGM", 1)]


def test_search_and_sorting(tracker):
    tracker.orders.submit_order("WB-A", "2024-01-05", LineItem("CCP", 1))
    tracker.orders.submit_order("wb-b", "2024-03-05", LineItem("Crown 4MM", 1))
    tracker.orders.submit_order("X-9", "2024-02-05", LineItem("UGP", 1))

    assert [o.waybill for o in tracker.orders.list_sorted_by_date_descending()] == ["wb-b", "X-9", "WB-A"]
    assert [o.waybill for o in tracker.orders.search("wb")] == ["wb-b", "WB-A"]
    assert [o.waybill for o in tracker.orders.search("crown")] == ["wb-b"]
    assert [o.waybill for o in tracker.orders.search("ugp")] == ["X-9"]
    assert len(tracker.orders.search("")) == 3


def test_quick_lookup_is_case_insensitive(tracker):
    tracker.orders.submit_order("WB-Abc", None, LineItem("CCP", 1))

    assert tracker.quick_lookup(" wb-abc ").waybill == "WB-Abc"
    assert tracker.quick_lookup("") is None
    assert tracker.quick_lookup(None) is None
    assert tracker.quick_lookup("other") is None
    # exact lookup stays exact
    assert tracker.orders.find_by_waybill("wb-abc") is None


def test_state_survives_restart(tracker, make_tracker):
    tracker.orders.submit_order("WB1", "2024-02-01", LineItem("CCP", 2, 1.25))
    tracker.orders.submit_order("WB2", "2024-02-02", LineItem("CGM", 1))
    tracker.orders.receive_order("WB1")

    reloaded = make_tracker()

    assert [o.to_dict() for o in reloaded.state.orders] == [o.to_dict() for o in tracker.state.orders]
    assert reloaded.state.inventory == tracker.state.inventory
    assert reloaded.state.history == tracker.state.history
    with pytest.raises(AlreadyReceivedError):
        reloaded.orders.receive_order("WB1")


def test_negative_legacy_qty_receives_as_zero_in_stock_and_history(store, make_tracker):
    store.set(KEY_ORDERS, dump([
        {"id": "old1", "waybill": "WB1", "date": "2024-01-01",
         "items": [{"name": "CCP", "qty": -4}, {"name": "CGM", "qty": 2}], "status": "pending", "receivedAt": None},
    ]))
    tracker = make_tracker()

    tracker.orders.receive_order("WB1")

    assert _stock(tracker) == {"CCP": 0, "CGM": 2}
    assert [(h.name, h.qty) for h in tracker.state.history] == [("CCP", 0), ("CGM", 2)]


def test_stored_padded_waybill_can_be_received_and_appended(store, make_tracker):
    store.set(KEY_ORDERS, dump([
        {"id": "old1", "waybill": " WB1 ", "date": "2024-01-01",
         "items": [{"name": "CCP", "qty": 1}], "status": "pending", "receivedAt": None},
        {"id": "old2", "waybill": "WB2\t", "date": 20240101,
         "items": "broken", "status": "pending", "receivedAt": None},
    ]))
    tracker = make_tracker()

    order = tracker.orders.submit_order("WB1", "2024-01-05", LineItem("CGM", 2))
    assert order.id == "old1"
    assert len(tracker.state.orders) == 2

    assert tracker.orders.receive_order(" WB1").is_received
    assert tracker.orders.find_by_waybill("WB2").items == []
    assert tracker.orders.find_by_waybill("WB2").date is None
