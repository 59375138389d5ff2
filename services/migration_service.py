# services/migration_service.py
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from data_integrator import KeyValueStore, load_json, save_json
from domain.errors import PersistenceError
from domain.models import LineItem, Order, new_order_id, to_iso_date, waybill_key, STATUS_PENDING
from services.tracker_state import KEY_HISTORY, KEY_INVENTORY, KEY_ORDERS

logger = logging.getLogger(__name__)

LEGACY_WAITLIST_KEY = "waitlist"
LEGACY_INVENTORY_KEY = "inventory"
LEGACY_HISTORY_KEY = "history"
LEGACY_KEYS = (LEGACY_WAITLIST_KEY, LEGACY_INVENTORY_KEY, LEGACY_HISTORY_KEY)


@dataclass
class MigrationReport:
    ran: bool = False
    orders_added: int = 0
    duplicates_skipped: int = 0
    invalid_skipped: int = 0
    inventory_replaced: bool = False
    history_replaced: bool = False


def convert_waitlist(
    waitlist: List[Any],
    orders: List[Dict[str, Any]],
    today: str,
    new_id: Callable[[], str] = new_order_id,
    report: Optional[MigrationReport] = None,
) -> List[Dict[str, Any]]:
    """
    Turn legacy waitlist entries into pending order rows.
    Entries whose waybill is already taken (by a current order or an
    earlier entry) are skipped, first occurrence wins.
    Returns only the new rows.
    """
    report = report or MigrationReport()
    seen = {waybill_key(o.get("waybill")) for o in orders if isinstance(o, dict)}
    out: List[Dict[str, Any]] = []

    for entry in waitlist:
        waybill = waybill_key(entry.get("waybill")) if isinstance(entry, dict) else ""

        # skip entries without a usable key
        if not waybill:
            logger.warning("Skipping legacy waitlist entry without waybill: %r", entry)
            report.invalid_skipped += 1
            continue
        if waybill in seen:
            report.duplicates_skipped += 1
            continue
        seen.add(waybill)

        items = entry.get("items")
        if not isinstance(items, list):
            items = []
        order = Order(
            id=new_id(),
            waybill=waybill,
            date=to_iso_date(entry.get("date")) or today,
            items=[LineItem.from_dict(i) for i in items if isinstance(i, dict)],
            status=STATUS_PENDING,
            received_at=None,
        )
        out.append(order.to_dict())

    report.orders_added += len(out)
    return out


def migrate_legacy_data(
    store: KeyValueStore,
    today: Callable[[], str],
    new_id: Callable[[], str] = new_order_id,
) -> MigrationReport:
    """
    One-shot upgrade of the old single-collection keys
    (waitlist / inventory / history) into the current three collections.

    Behaviour:
      - no legacy key present (or all unreadable) -> nothing happens
      - waitlist entries become pending orders, deduplicated by waybill
      - list-shaped legacy inventory / history replace the current ones
      - all three collections are saved, then the legacy keys are erased,
        so the next run finds nothing to do

    Never raises: failures are logged and the legacy keys stay in place
    for the next start.
    """
    report = MigrationReport()

    try:
        old_waitlist = load_json(store, LEGACY_WAITLIST_KEY, None)
        old_inventory = load_json(store, LEGACY_INVENTORY_KEY, None)
        old_history = load_json(store, LEGACY_HISTORY_KEY, None)
    except PersistenceError as e:
        logger.error("Legacy data could not be read, migration skipped: %s", e)
        return report

    if old_waitlist is None and old_inventory is None and old_history is None:
        return report

    logger.info("Legacy data found, migrating")

    try:
        orders = load_json(store, KEY_ORDERS, [])
        inventory = load_json(store, KEY_INVENTORY, [])
        history = load_json(store, KEY_HISTORY, [])
        if not isinstance(orders, list):
            orders = []

        if isinstance(old_waitlist, list):
            orders = orders + convert_waitlist(old_waitlist, orders, today(), new_id, report)
        if isinstance(old_inventory, list):
            inventory = old_inventory
            report.inventory_replaced = True
        if isinstance(old_history, list):
            history = old_history
            report.history_replaced = True

        save_json(store, KEY_ORDERS, orders)
        save_json(store, KEY_INVENTORY, inventory)
        save_json(store, KEY_HISTORY, history)

        for key in LEGACY_KEYS:
            store.delete(key)
    except PersistenceError as e:
        logger.error("Legacy migration failed, will retry on next start: %s", e)
        return report

    report.ran = True
    logger.info(
        "Migration done: %d orders added, %d duplicates skipped, inventory replaced=%s, history replaced=%s",
        report.orders_added,
        report.duplicates_skipped,
        report.inventory_replaced,
        report.history_replaced,
    )
    return report
