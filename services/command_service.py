# services/command_service.py
import logging
from typing import Any, Callable, Dict, Tuple

from domain.errors import PersistenceError, TrackerError
from services.tracker import InventoryTracker

logger = logging.getLogger(__name__)


def _submit_order(t: InventoryTracker, *, waybill, date=None, item, confirm_waybill=None):
    order = t.orders.submit_order(waybill, date, item, confirm_waybill=confirm_waybill)
    return f"Waybill {order.waybill} saved ({len(order.items)} items)", order


def _edit_order_items(t: InventoryTracker, *, order_id, items):
    order = t.orders.edit_order_items(order_id, items)
    return f"Waybill {order.waybill} updated", order


def _add_line(t: InventoryTracker, *, order_id, name=None):
    order = t.orders.add_line(order_id, name) if name else t.orders.add_line(order_id)
    return "Line added", order


def _remove_line(t: InventoryTracker, *, order_id, index):
    return "Line removed", t.orders.remove_line(order_id, index)


def _delete_order(t: InventoryTracker, *, order_id):
    order = t.orders.delete_order(order_id)
    return f"Waybill {order.waybill} deleted", order


def _receive_order(t: InventoryTracker, *, waybill):
    order = t.orders.receive_order(waybill)
    return f"Waybill {order.waybill} received and moved to inventory", order


def _adjust_inventory(t: InventoryTracker, *, name, delta):
    record = t.inventory.increment(name, delta)
    return f"{record.name}: {record.qty}", record


def _list_inventory(t: InventoryTracker, *, text=None):
    records = t.inventory.list(text)
    return f"{len(records)} items", records


def _query_history(t: InventoryTracker, *, text=None, date_from=None, date_to=None):
    entries = t.history.query(text, date_from, date_to)
    return f"{len(entries)} entries", entries


def _item_history(t: InventoryTracker, *, name):
    entries = t.history.for_item(name)
    if not entries:
        return f"No history found for {name}", []
    return f"History for {name}", entries


def _quick_lookup(t: InventoryTracker, *, waybill):
    order = t.quick_lookup(waybill)
    if order is None:
        return "Waybill not found", None
    return f"Waybill {order.waybill}: {order.status.upper()}", order


def _search_orders(t: InventoryTracker, *, text=None):
    orders = t.orders.search(text)
    return f"{len(orders)} waybills", orders


COMMANDS: Dict[str, Callable[..., Tuple[str, Any]]] = {
    "submit_order": _submit_order,
    "edit_order_items": _edit_order_items,
    "add_line": _add_line,
    "remove_line": _remove_line,
    "delete_order": _delete_order,
    "receive_order": _receive_order,
    "adjust_inventory": _adjust_inventory,
    "list_inventory": _list_inventory,
    "query_history": _query_history,
    "item_history": _item_history,
    "quick_lookup": _quick_lookup,
    "search_orders": _search_orders,
}


def run_command(tracker: InventoryTracker, name: str, /, **kwargs) -> Tuple[bool, str, Any]:
    """
    Run a named command against the tracker.
    Returns (ok, message, data); tracker errors come back as
    (False, message, None) instead of raising.
    """
    handler = COMMANDS[name]

    try:
        message, data = handler(tracker, **kwargs)
    except PersistenceError as e:
        logger.error("%s failed to persist: %s", name, e)
        return False, f"Changes were not saved. {e.message}", None
    except TrackerError as e:
        logger.info("%s rejected: %s", name, e.message)
        return False, e.message, None

    return True, message, data
