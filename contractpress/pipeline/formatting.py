from __future__ import annotations

from datetime import date
from typing import Dict, Optional

from ..config import CURRENCY_SYMBOL


IP_OWNERSHIP_LABELS: Dict[str, str] = {
    "freelancer": "Service Provider retains ownership",
    "client": "Client owns all deliverables",
    "joint": "Jointly owned by both parties",
}

USAGE_RIGHTS_LABELS: Dict[str, str] = {
    "limited": "Limited usage rights",
    "full": "Full usage rights",
}

RENEWAL_LABELS: Dict[str, str] = {
    "monthly": "Monthly",
    "quarterly": "Quarterly",
    "yearly": "Yearly",
}

BLANK_DATE = "_____________"


def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_amount(value: float) -> str:
    """
    Fixed-locale number formatting: Indian digit grouping, no trailing
    ``.00``, at most two decimals.
    """
    negative = value < 0
    cents = int(round(abs(value) * 100))
    whole, frac = divmod(cents, 100)
    text = _group_indian(str(whole))
    if frac:
        text += f".{frac:02d}".rstrip("0")
    return f"-{text}" if negative else text


def format_currency(value: float) -> str:
    return f"{CURRENCY_SYMBOL} {format_amount(value)}"


def format_percentage(value: float) -> str:
    return f"{value:g}%"


def format_date(value: Optional[date], blank: str = BLANK_DATE) -> str:
    if value is None:
        return blank
    return f"{value:%B} {value.day}, {value.year}"
