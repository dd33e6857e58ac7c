"""
Data normalization and cleaning functions.
"""
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)

# Day-first SMS formats, then statement and spreadsheet formats.
TIMESTAMP_FORMATS = [
    "%d/%m/%y %I:%M%p",
    "%d/%m/%Y %I:%M%p",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%Y-%m-%d",
    "%d/%m/%Y",
]


def normalize_money(value: Any) -> Optional[Decimal]:
    """
    Normalize money values by removing thousands separators and spaces.

    Args:
        value: Raw money string (or number from a spreadsheet cell)

    Returns:
        Signed Decimal value, or None if no number can be read
    """
    if value is None:
        return None

    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        amount = Decimal(str(value))
        return amount if amount.is_finite() else None

    cleaned = re.sub(r'[,\s]', '', str(value))
    # Amounts at the end of a sentence pick up the full stop.
    cleaned = cleaned.rstrip('.')
    if not cleaned:
        return None

    # Handle parentheses (negative amounts)
    is_negative = cleaned.startswith('(') and cleaned.endswith(')')
    if is_negative:
        cleaned = cleaned[1:-1]

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        logger.debug(f"Could not extract numeric value from: {value}")
        return None

    if not amount.is_finite():
        return None

    return -abs(amount) if is_negative else amount


def normalize_timestamp(date_value: Any, time_value: Optional[str] = None) -> Optional[datetime]:
    """
    Normalize a date (and optional separate time) into a naive datetime.

    Args:
        date_value: Raw date string, e.g. "5/6/24" or "2025-12-06 10:15:00",
            or an already-parsed datetime
        time_value: Raw time string, e.g. "2:30 PM"

    Returns:
        datetime object or None if parsing fails
    """
    if isinstance(date_value, datetime):
        return date_value

    if not date_value or not str(date_value).strip():
        return None

    combined = str(date_value).strip()
    if time_value:
        combined = f"{combined} {time_value.strip()}"

    cleaned = normalize_text(combined)
    # "2:30 PM" and "2:30PM" both appear in messages
    cleaned = re.sub(r'\s*([AaPp][Mm])$', lambda m: m.group(1).upper(), cleaned)

    for format_str in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(cleaned, format_str)
        except ValueError:
            continue

    logger.debug(f"Could not parse timestamp: {combined}")
    return None


def normalize_text(value: str) -> str:
    """
    Normalize text by trimming and cleaning.

    Args:
        value: Raw text string

    Returns:
        Cleaned text string
    """
    if not value:
        return ""

    # Remove extra whitespace
    cleaned = re.sub(r'\s+', ' ', value.strip())

    return cleaned
