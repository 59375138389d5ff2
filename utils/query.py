# utils/query.py

from datetime import date
from typing import Any, Optional

from domain.errors import ValidationError


def normalize(value: Any) -> str:
    """
    Trimmed, lower-cased string form of `value` ("" for None).
    """
    if value is None:
        return ""
    return str(value).strip().lower()


def contains(haystack: Any, needle: Any) -> bool:
    return normalize(needle) in normalize(haystack)


def within_range(date_str: Optional[str], date_from: Optional[str] = None, date_to: Optional[str] = None) -> bool:
    """
    True when date_str lies in [date_from, date_to], both bounds inclusive
    and optional. ISO dates compare correctly as strings.
    An empty date never matches.
    """
    if not date_str:
        return False
    if date_from and date_str < date_from:
        return False
    if date_to and date_str > date_to:
        return False
    return True


def parse_iso_date(value: Any, field_name: str = "date") -> Optional[str]:
    """
    Accepts None, "", a date or a YYYY-MM-DD string.
    Returns the ISO string (or None) and raises ValidationError otherwise.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: '{text}' (expected YYYY-MM-DD)")
