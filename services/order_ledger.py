# services/order_ledger.py
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from domain.errors import AlreadyReceivedError, NotFoundError, ValidationError
from domain.models import (
    HistoryEntry,
    LineItem,
    Order,
    PRODUCTS,
    STATUS_PENDING,
    STATUS_RECEIVED,
    new_order_id,
    waybill_key,
)
from services.history_log import HistoryLog
from services.inventory_store import InventoryStore
from services.tracker_state import TrackerState
from utils.query import contains, normalize, parse_iso_date

logger = logging.getLogger(__name__)

ItemInput = Union[LineItem, Dict[str, Any]]


def _as_line_item(item: ItemInput) -> LineItem:
    if isinstance(item, LineItem):
        return LineItem(name=item.name, qty=item.qty, price=item.price)
    if isinstance(item, dict):
        return LineItem(name=item.get("name"), qty=item.get("qty"), price=item.get("price"))
    raise ValidationError(f"Not a line item: {item!r}")


def validate_line_item(item: ItemInput) -> LineItem:
    """
    Strict check used on submission: name required, qty a whole number >= 1,
    price empty or >= 0.
    """
    item = _as_line_item(item)

    name = str(item.name or "").strip()
    if not name:
        raise ValidationError("Item name is required")

    qty = item.qty
    if isinstance(qty, bool) or not isinstance(qty, int):
        try:
            number = float(str(qty).strip())
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid quantity: {item.qty!r}")
        if not number.is_integer():
            raise ValidationError(f"Quantity must be a whole number, got {item.qty!r}")
        qty = int(number)
    if qty < 1:
        raise ValidationError("Quantity must be at least 1")

    price = item.price
    if price is not None and price != "":
        try:
            price = float(price)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid price: {item.price!r}")
        if price < 0:
            raise ValidationError("Price cannot be negative")
    else:
        price = None

    return LineItem(name=name, qty=qty, price=price)


def coerce_line_item(item: ItemInput) -> Optional[LineItem]:
    """
    Lenient clean-up used by the order editor:
    qty is raised to at least 1, bad or negative prices become empty,
    lines without a name are dropped (None).
    """
    if isinstance(item, LineItem):
        name, qty, price = item.name, item.qty, item.price
    elif isinstance(item, dict):
        name, qty, price = item.get("name"), item.get("qty"), item.get("price")
    else:
        return None

    name = str(name or "").strip()
    if not name:
        return None

    try:
        qty = int(float(qty))
    except (TypeError, ValueError, OverflowError):
        qty = 0

    try:
        price = float(price) if price not in (None, "") else None
    except (TypeError, ValueError):
        price = None
    if price is not None and price < 0:
        price = None

    return LineItem(name=name, qty=max(1, qty), price=price)


class OrderLedger:
    """
    Owns the orders. A waybill maps to at most one order; a received
    order is frozen.
    """

    def __init__(
        self,
        state: TrackerState,
        inventory: InventoryStore,
        history: HistoryLog,
        today: Callable[[], str],
        new_id: Callable[[], str] = new_order_id,
    ):
        self.state = state
        self.inventory = inventory
        self.history = history
        self.today = today
        self.new_id = new_id

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, order_id: str) -> Optional[Order]:
        return next((o for o in self.state.orders if o.id == order_id), None)

    def find_by_waybill(self, waybill: str) -> Optional[Order]:
        key = waybill_key(waybill)
        return next((o for o in self.state.orders if o.waybill == key), None)

    def quick_lookup(self, waybill: Optional[str]) -> Optional[Order]:
        if not waybill or not waybill.strip():
            return None
        key = normalize(waybill)
        return next((o for o in self.state.orders if normalize(o.waybill) == key), None)

    def list_sorted_by_date_descending(self) -> List[Order]:
        return sorted(self.state.orders, key=lambda o: o.date or "", reverse=True)

    def search(self, text: Optional[str] = None) -> List[Order]:
        orders = self.list_sorted_by_date_descending()
        if not text or not text.strip():
            return orders
        return [
            o for o in orders
            if contains(o.waybill, text) or any(contains(i.name, text) for i in o.items)
        ]

    def _require(self, order_id: str) -> Order:
        order = self.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def _require_pending(self, order_id: str) -> Order:
        order = self._require(order_id)
        if order.is_received:
            raise AlreadyReceivedError(
                f"Waybill {order.waybill} has already been received, its items can no longer be changed"
            )
        return order

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def submit_order(
        self,
        waybill: str,
        date: Optional[str],
        line_item: ItemInput,
        confirm_waybill: Optional[str] = None,
    ) -> Order:
        """
        Add a line item under a waybill.

        - waybill not seen before -> new pending order with this single item
        - waybill pending         -> date updated, item appended
        - waybill received        -> AlreadyReceivedError, nothing changes
        """
        waybill = (waybill or "").strip()
        if not waybill:
            raise ValidationError("Waybill is required")
        if confirm_waybill is not None and confirm_waybill.strip() != waybill:
            raise ValidationError("Waybill numbers do not match")

        date = parse_iso_date(date) or self.today()
        item = validate_line_item(line_item)

        existing = self.find_by_waybill(waybill)
        if existing is not None and existing.is_received:
            raise AlreadyReceivedError(
                f"Waybill {waybill} has already been received, no more items can be added"
            )

        with self.state.transaction():
            existing = self.find_by_waybill(waybill)
            if existing is not None:
                existing.date = date
                existing.items.append(item)
            else:
                self.state.orders.append(
                    Order(
                        id=self.new_id(),
                        waybill=waybill,
                        date=date,
                        items=[item],
                        status=STATUS_PENDING,
                        received_at=None,
                    )
                )

        return self.find_by_waybill(waybill)

    def edit_order_items(self, order_id: str, items: Iterable[ItemInput]) -> Order:
        """
        Replace the items of a pending order wholesale.
        Lines without a name are dropped, quantities below 1 become 1.
        """
        self._require_pending(order_id)
        cleaned = [i for i in (coerce_line_item(item) for item in items) if i is not None]

        with self.state.transaction():
            self._require(order_id).items = cleaned

        return self.get(order_id)

    def add_line(self, order_id: str, name: str = PRODUCTS[0]) -> Order:
        self._require_pending(order_id)
        with self.state.transaction():
            self._require(order_id).items.append(LineItem(name=name, qty=1, price=None))
        return self.get(order_id)

    def remove_line(self, order_id: str, index: int) -> Order:
        order = self._require_pending(order_id)
        if not 0 <= index < len(order.items):
            raise NotFoundError(f"Waybill {order.waybill} has no line {index + 1}")

        with self.state.transaction():
            del self._require(order_id).items[index]
        return self.get(order_id)

    def delete_order(self, order_id: str) -> Order:
        """
        Remove the order for good. Inventory and history are left as they are.
        """
        order = self._require(order_id)
        with self.state.transaction():
            self.state.orders = [o for o in self.state.orders if o.id != order_id]

        logger.info("Deleted waybill %s (%s)", order.waybill, order.status)
        return order

    def receive_order(self, waybill: str) -> Order:
        """
        Receive a waybill exactly once: credit every item to inventory,
        log one history entry per item and mark the order received.
        All of it is persisted together or not at all.
        """
        waybill = (waybill or "").strip()
        if not waybill:
            raise ValidationError("Enter a waybill number")

        order = self.find_by_waybill(waybill)
        if order is None:
            raise NotFoundError(f"Waybill {waybill} not found")
        if order.is_received:
            raise AlreadyReceivedError(
                f"Waybill {waybill} has already been received. Duplicate receiving is not allowed"
            )

        today = self.today()
        with self.state.transaction():
            order = self.find_by_waybill(waybill)
            for item in order.items:
                # legacy lines may carry a negative qty; stock and history get the same clamped value
                qty = max(0, item.qty)
                self.inventory.credit(item.name, qty)
                self.history.append(
                    HistoryEntry(
                        waybill=order.waybill,
                        date_ordered=order.date,
                        date_received=today,
                        name=item.name,
                        qty=qty,
                    )
                )
            order.status = STATUS_RECEIVED
            order.received_at = today

        logger.info("Received waybill %s (%d items)", waybill, len(order.items))
        return self.find_by_waybill(waybill)
