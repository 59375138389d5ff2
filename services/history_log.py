# services/history_log.py
from typing import List, Optional

from domain.models import HistoryEntry
from services.tracker_state import TrackerState
from utils.query import contains, parse_iso_date, within_range


class HistoryLog:
    """
    Append-only record of receipts. Entries are never edited or removed,
    not even when the originating order is deleted.
    """

    def __init__(self, state: TrackerState):
        self.state = state

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        with self.state.transaction():
            self.state.history.append(entry)
        return entry

    def query(
        self,
        text: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[HistoryEntry]:
        """
        Entries matching `text` (waybill or item name, case-insensitive)
        and received within [date_from, date_to] when either bound is given.
        Entries without a received date fall back to the order date;
        with neither they never match a date range.
        Newest receipts first.
        """
        date_from = parse_iso_date(date_from, "start date")
        date_to = parse_iso_date(date_to, "end date")

        out = []
        for entry in self.state.history:
            if text and not (contains(entry.waybill, text) or contains(entry.name, text)):
                continue
            if (date_from or date_to) and not within_range(
                entry.date_received or entry.date_ordered, date_from, date_to
            ):
                continue
            out.append(entry)

        return sorted(out, key=lambda h: h.date_received or "", reverse=True)

    def for_item(self, name: str) -> List[HistoryEntry]:
        return [h for h in self.state.history if h.name == name]
