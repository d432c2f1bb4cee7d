"""
Utility functions for the Tapatalk archiver.

Small text helpers shared by the extractors: digit extraction, humanized
count scaling, date parsing and query-string lookups.
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional
from urllib.parse import parse_qs, urlparse

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# Multipliers for humanized counts such as "1.2k" or "3m"
SCALE_SUFFIXES = {
    "": 1,
    "k": 1000,
    "m": 1000000,
}

_COUNT_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?|\.\d+)([km]?)\b", re.IGNORECASE)
_INT_RE = re.compile(r"\d+")


def scale_count(text: Optional[str]) -> int:
    """
    Convert a humanized count into an integer.

    Tapatalk abbreviates large reply and view counts in topic listings.
    The number is multiplied by its suffix and rounded to the nearest
    integer, ties going away from zero.

    Args:
        text: The displayed count, e.g. "1.2k", "3m", "5" or "1,234"

    Returns:
        The scaled integer, or 0 when the text holds no number

    Example:
        scale_count("1.2k")  # 1200
        scale_count("3m")    # 3000000
        scale_count("5")     # 5
    """
    if not text:
        return 0

    match = _COUNT_RE.search(text)
    if not match:
        return 0

    number, suffix = match.groups()
    try:
        value = Decimal(number.replace(",", ""))
    except InvalidOperation:
        return 0

    scaled = value * SCALE_SUFFIXES[suffix.lower()]
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def first_int(text: Optional[str], default: int = 0) -> int:
    """Return the first run of digits in ``text`` as an int."""
    if not text:
        return default
    match = _INT_RE.search(text)
    return int(match.group()) if match else default


def query_int(href: Optional[str], key: str) -> Optional[int]:
    """
    Read an integer query parameter from a link.

    Example:
        query_int("./viewtopic.php?f=2&t=123", "t")  # 123
    """
    if not href:
        return None
    values = parse_qs(urlparse(href).query).get(key)
    if not values:
        return None
    return first_int(values[0], default=None)


def parse_iso_date(date_str: Optional[str]) -> Optional[datetime]:
    """
    Parse a machine-readable ISO 8601 timestamp (``time[datetime]``).

    Values carrying an offset are converted to naive UTC, the form the
    archive stores. Returns None when the value is missing or malformed.
    """
    if not date_str:
        return None

    try:
        if date_str.endswith('Z'):
            date_str = date_str[:-1] + '+00:00'
        dt = datetime.fromisoformat(date_str)
    except ValueError:
        logger.debug("Could not parse ISO date %r", date_str)
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_human_date(date_str: Optional[str], dayfirst: bool = False) -> Optional[datetime]:
    """
    Parse a human-formatted profile date such as "Sat Mar 04, 2017 7:12 pm".

    Profile pages render birthdays and timespan titles in the board's
    display format, so these go through dateutil's parser. Birthdays are
    rendered day first ("4-3-1990"), pass ``dayfirst=True`` for those.
    Relative text such as "3 years ago" is not a date and gives None.
    """
    if not date_str or not date_str.strip():
        return None

    parsed = parse_iso_date(date_str.strip())
    if parsed is not None:
        return parsed

    try:
        return date_parser.parse(date_str, dayfirst=dayfirst)
    except (ValueError, OverflowError):
        logger.debug("Could not parse date %r", date_str)
        return None
