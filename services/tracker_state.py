# services/tracker_state.py
import copy
import logging
from contextlib import contextmanager
from typing import Iterator, List, Type, TypeVar

from data_integrator import KeyValueStore, load_json, save_json
from domain.errors import PersistenceError
from domain.models import HistoryEntry, InventoryRecord, Order

logger = logging.getLogger(__name__)

KEY_ORDERS = "psi_orders_v2"
KEY_INVENTORY = "psi_inventory_v2"
KEY_HISTORY = "psi_history_v2"

T = TypeVar("T")


def _load_records(store: KeyValueStore, key: str, factory: Type[T]) -> List[T]:
    raw = load_json(store, key, [])
    if not isinstance(raw, list):
        logger.warning("Expected a list under '%s', got %s; starting empty", key, type(raw).__name__)
        return []

    records = []
    for row in raw:
        if not isinstance(row, dict):
            logger.warning("Skipping malformed record under '%s': %r", key, row)
            continue
        records.append(factory.from_dict(row))
    return records


class TrackerState:
    """
    The three collections (orders, inventory, history) and their store.

    Every mutation goes through `transaction()`: the collections are
    snapshotted, the block runs, and all three are written back in a fixed
    order. If anything fails, the in-memory collections are restored to the
    snapshot before the error propagates.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.orders: List[Order] = []
        self.inventory: List[InventoryRecord] = []
        self.history: List[HistoryEntry] = []
        self._depth = 0
        self.load()

    def load(self) -> None:
        self.orders = _load_records(self.store, KEY_ORDERS, Order)
        self.inventory = _load_records(self.store, KEY_INVENTORY, InventoryRecord)
        self.history = _load_records(self.store, KEY_HISTORY, HistoryEntry)
        logger.info(
            "Loaded %d orders, %d inventory records, %d history entries",
            len(self.orders), len(self.inventory), len(self.history),
        )

    def persist_all(self) -> None:
        save_json(self.store, KEY_ORDERS, [o.to_dict() for o in self.orders])
        save_json(self.store, KEY_INVENTORY, [r.to_dict() for r in self.inventory])
        save_json(self.store, KEY_HISTORY, [h.to_dict() for h in self.history])

    def _snapshot(self) -> tuple:
        return copy.deepcopy((self.orders, self.inventory, self.history))

    def _restore(self, snapshot: tuple) -> None:
        self.orders, self.inventory, self.history = snapshot

    @contextmanager
    def transaction(self) -> Iterator["TrackerState"]:
        # nested blocks join the outer transaction, only the outermost one persists
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = self._snapshot()
        self._depth = 1
        try:
            yield self
            self.persist_all()
        except PersistenceError:
            self._restore(snapshot)
            logger.error("Persisting failed, in-memory state rolled back")
            self._write_back()
            raise
        except Exception:
            self._restore(snapshot)
            raise
        finally:
            self._depth = 0

    def _write_back(self) -> None:
        # some keys may already hold the new values; put the restored ones back
        try:
            self.persist_all()
        except PersistenceError:
            logger.exception("Could not write the restored state back to the store")
