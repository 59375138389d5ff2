# services/inventory_store.py
import logging
from typing import List, Optional

from domain.errors import InvalidAdjustmentError, ValidationError
from domain.models import InventoryRecord
from services.tracker_state import TrackerState
from utils.query import contains

logger = logging.getLogger(__name__)


class InventoryStore:
    """
    On-hand quantity per product name.
    Records are created on first reference and never deleted;
    a quantity can never drop below zero.
    """

    def __init__(self, state: TrackerState):
        self.state = state

    def get(self, name: str) -> Optional[InventoryRecord]:
        return next((r for r in self.state.inventory if r.name == name), None)

    def get_or_create(self, name: str) -> InventoryRecord:
        record = self.get(name)
        if record is not None:
            return record

        with self.state.transaction():
            record = InventoryRecord(name=name, qty=0)
            self.state.inventory.append(record)
        return self.get(name)

    def increment(self, name: str, delta: int) -> InventoryRecord:
        """
        Add `delta` (negative for a manual subtract) to the stock of `name`.
        Raises InvalidAdjustmentError when the result would be negative,
        leaving the store untouched.
        """
        if not name or not str(name).strip():
            raise ValidationError("Item name is required")
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError(f"Quantity must be a whole number, got {delta!r}")
        if delta == 0:
            raise ValidationError("Quantity cannot be zero")

        record = self.get(name)
        current = record.qty if record else 0
        if current + delta < 0:
            raise InvalidAdjustmentError(
                f"Quantity cannot be negative: {name} has {current}, cannot apply {delta}"
            )

        with self.state.transaction():
            record = self.get_or_create(name)
            record.qty += delta

        logger.info("Inventory %s %+d -> %d", name, delta, current + delta)
        return self.get(name)

    def credit(self, name: str, qty: int) -> InventoryRecord:
        """
        Stock coming in from a received order. Lines with no quantity
        still create the record, as receiving always references the product.
        """
        with self.state.transaction():
            record = self.get_or_create(name)
            record.qty += max(0, qty)
        return record

    def list(self, filter_substring: Optional[str] = None) -> List[InventoryRecord]:
        records = self.state.inventory
        if filter_substring:
            records = [r for r in records if contains(r.name, filter_substring)]
        return sorted(records, key=lambda r: (r.name.lower(), r.name))
