# utils/formatting.py
from typing import List, Optional


def format_currency(n: Optional[float]) -> str:
    """
    Format a price with ',' as thousands separator, for display only.
    Example: 1234567 -> "1,234,567", 12.5 -> "12.50", None -> ""
    """
    if n is None:
        return ""
    if float(n).is_integer():
        return f"{n:,.0f}"
    return f"{n:,.2f}"


def format_items(items: List) -> str:
    """
    "CCP (10), CGM (5)" style summary of line items.
    """
    return ", ".join(f"{item.name} ({item.qty})" for item in items)
