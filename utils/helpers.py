"""
Helper utility functions
"""
from datetime import datetime, date
from typing import Optional
import math

from config import settings


def format_currency(amount: float) -> str:
    """Format a number as currency"""
    if amount < 0:
        return f"-{settings.CURRENCY_SYMBOL}{abs(amount):,.2f}"
    return f"{settings.CURRENCY_SYMBOL}{amount:,.2f}"


def format_distance(km: Optional[float]) -> str:
    """Format a distance in kilometers"""
    if km is None:
        return "N/A"
    return f"{km:,.1f} km"


def parse_date(date_str) -> Optional[date]:
    """
    Parse various date formats to a date object.
    Timestamps are truncated to their calendar day.
    """
    if not date_str:
        return None

    if isinstance(date_str, datetime):
        return date_str.date()

    if isinstance(date_str, date):
        return date_str

    text = str(date_str).strip()

    # ISO timestamps from the store, e.g. 2026-02-01T08:30:00+00:00
    if "T" in text:
        text = text.split("T", 1)[0]

    formats = [
        "%Y-%m-%d",  # 2026-02-01
        "%d/%m/%Y",  # 01/02/2026
        "%Y/%m/%d",  # 2026/02/01
        "%d-%m-%Y",  # 01-02-2026
        "%b %d, %Y",  # Feb 01, 2026
        "%d %b %Y",  # 01 Feb 2026
    ]

    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


BLANK_VALUES = ['', '-', 'N/A', 'n/a', 'null', 'None']


def is_blank(value) -> bool:
    """True for None, NaN and placeholder cells such as 'N/A'"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() in BLANK_VALUES


def parse_optional_number(value) -> Optional[float]:
    """
    Parse a numeric cell, keeping "not recorded" distinct from zero.
    Examples: "1,234.50" -> 1234.5, "" -> None, "N/A" -> None
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return float(value)

    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return float(value)

    text = str(value).strip()
    if text in BLANK_VALUES:
        return None

    text = text.replace(settings.CURRENCY_SYMBOL, '').replace('$', '').replace(',', '').strip()

    try:
        return float(text)
    except ValueError:
        return None


def clean_text(value) -> Optional[str]:
    """Strip a free-text field, mapping blanks to None"""
    if is_blank(value):
        return None
    return str(value).strip()


def photo_key(photo_url: str) -> str:
    """
    Reduce a photo reference to the token used for duplicate detection:
    the last path segment without query string.
    """
    token = str(photo_url).strip().split("?", 1)[0].rstrip("/")
    return token.rsplit("/", 1)[-1]


def format_date(value: Optional[date]) -> str:
    if not value:
        return ""
    return value.strftime(settings.DATE_FORMAT)
