# domain/models.py

import uuid
from datetime import date
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

STATUS_PENDING = "pending"
STATUS_RECEIVED = "received"

# Product master of the store, used by the pickers.
PRODUCTS = [
    "25KG", "50KG", "AQUA 2MM", "AQUA 3MM", "BPLUS", "CCP", "CFP", "CGM", "CGP",
    "CL1C", "CSSP", "CL1M", "CROWN 2MM", "CROWN 3MM", "CROWN 4MM", "CROWN 6MM", "CROWN 9MM", "ECO 4MM",
    "ECO 6MM", "ECO9MM", "TFCON", "TGC", "TGP", "TSSC", "TSSCON", "UCP",
    "UFP", "UGP", "UL1C", "UPLUS", "USSP",
]


def new_order_id() -> str:
    return uuid.uuid4().hex[:12]


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def to_iso_date(value: Any) -> Optional[str]:
    """
    Valid YYYY-MM-DD strings pass through, anything else (numbers,
    free text, empty values) becomes None.
    """
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        return None


def waybill_key(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _to_price(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class LineItem:
    """
    One product line on a waybill.
    """
    name: str
    qty: int
    price: Optional[float] = None  # unit price, display only

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "qty": self.qty, "price": self.price}

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "LineItem":
        return cls(
            name=str(row.get("name") or ""),
            qty=_to_int(row.get("qty")),
            price=_to_price(row.get("price")),
        )


@dataclass
class Order:
    """
    An incoming shipment, identified internally by `id`
    and by the business key `waybill`.
    """
    id: str
    waybill: str
    date: Optional[str]
    items: List[LineItem] = field(default_factory=list)
    status: str = STATUS_PENDING
    received_at: Optional[str] = None

    @property
    def is_received(self) -> bool:
        return self.status == STATUS_RECEIVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "waybill": self.waybill,
            "date": self.date,
            "items": [item.to_dict() for item in self.items],
            "status": self.status,
            "receivedAt": self.received_at,
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "Order":
        items = row.get("items")
        if not isinstance(items, list):
            items = []
        status = row.get("status")
        return cls(
            id=str(row.get("id") or ""),
            waybill=waybill_key(row.get("waybill")),
            date=to_iso_date(row.get("date")),
            items=[LineItem.from_dict(i) for i in items if isinstance(i, dict)],
            status=STATUS_RECEIVED if status == STATUS_RECEIVED else STATUS_PENDING,
            received_at=to_iso_date(row.get("receivedAt")),
        )


@dataclass
class InventoryRecord:
    name: str
    qty: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "qty": self.qty}

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "InventoryRecord":
        return cls(name=str(row.get("name") or ""), qty=_to_int(row.get("qty")))


@dataclass
class HistoryEntry:
    """
    A single receipt event: one line item of one order at the moment it was received.
    """
    waybill: str
    date_ordered: Optional[str]
    date_received: Optional[str]
    name: str
    qty: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "waybill": self.waybill,
            "dateOrdered": self.date_ordered,
            "dateReceived": self.date_received,
            "name": self.name,
            "qty": self.qty,
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            waybill=str(row.get("waybill") or ""),
            date_ordered=to_iso_date(row.get("dateOrdered")),
            date_received=to_iso_date(row.get("dateReceived")),
            name=str(row.get("name") or ""),
            qty=_to_int(row.get("qty")),
        )
