# services/tracker.py
import logging
from datetime import date
from typing import Callable, Optional

from data_integrator import KeyValueStore
from domain.models import Order, new_order_id
from services.history_log import HistoryLog
from services.inventory_store import InventoryStore
from services.migration_service import MigrationReport, migrate_legacy_data
from services.order_ledger import OrderLedger
from services.tracker_state import TrackerState

logger = logging.getLogger(__name__)


def today_iso() -> str:
    return date.today().isoformat()


class InventoryTracker:
    """
    Everything one process needs, built once: legacy data is migrated,
    the collections are loaded, and the ledger, inventory and history
    share the same state.
    """

    def __init__(
        self,
        store: KeyValueStore,
        today: Callable[[], str] = today_iso,
        new_id: Callable[[], str] = new_order_id,
    ):
        self.store = store
        self.today = today
        self.migration: MigrationReport = migrate_legacy_data(store, today, new_id)
        self.state = TrackerState(store)
        self.inventory = InventoryStore(self.state)
        self.history = HistoryLog(self.state)
        self.orders = OrderLedger(self.state, self.inventory, self.history, today, new_id)

    def quick_lookup(self, waybill: Optional[str]) -> Optional[Order]:
        return self.orders.quick_lookup(waybill)
