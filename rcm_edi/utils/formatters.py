"""Utility functions for EDI field formatting."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union, Optional
import logging
import re

logger = logging.getLogger(__name__)

# Characters reserved as X12 delimiters in generated interchanges
RESERVED_CHARACTERS = "*~:^"

CENTS = Decimal("0.01")

_DATE_FORMATS = ["%Y%m%d", "%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y"]


def parse_date(date_value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse a date value from the formats claim records arrive in.

    Args:
        date_value: Date in various formats:
            - date or datetime object
            - ISO timestamp ("2024-01-15T00:00:00.000Z")
            - "YYYY-MM-DD", "YYYYMMDD", "MM/DD/YYYY" or "MM-DD-YYYY" string

    Returns:
        date instance, or None if the value cannot be parsed
    """
    if not date_value:
        return None

    if isinstance(date_value, datetime):
        return date_value.date()
    if isinstance(date_value, date):
        return date_value

    date_str = str(date_value).strip()

    # Drop time portion of ISO timestamps and "YYYY-MM-DD HH:MM:SS" strings
    if 'T' in date_str:
        date_str = date_str.split('T')[0]
    if ' ' in date_str:
        date_str = date_str.split(' ')[0]

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    logger.warning(f"Unknown date format: {date_value}")
    return None


def format_date_yyyymmdd(date_value: Union[str, date, datetime, None]) -> str:
    """Format date to CCYYMMDD (D8) format for EDI.

    Args:
        date_value: Date value in any format accepted by parse_date

    Returns:
        Date string in YYYYMMDD format, or empty string if invalid
    """
    parsed = parse_date(date_value)
    if parsed is None:
        return ""
    return parsed.strftime('%Y%m%d')


def format_amount(amount: Union[Decimal, float, int, str, None]) -> str:
    """Format a monetary amount with two decimals, rounding half up.

    Unparseable values are logged and sent as 0.00.
    """
    if amount in (None, ""):
        return "0.00"

    try:
        return str(Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        logger.warning(f"Invalid amount value: {amount}")
        return "0.00"


def _digits(value: Union[str, int, None]) -> str:
    return re.sub(r"\D", "", str(value or ""))


def format_phone(phone: Union[str, None]) -> str:
    """Reduce a phone number to its 10 NANP digits for PER04.

    A leading country code 1 is dropped. Other lengths are logged and
    passed through as digits.
    """
    digits = _digits(phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if digits and len(digits) != 10:
        logger.warning(f"Invalid phone number length: {phone}")
    return digits


def format_zip(zip_code: Union[str, int, None]) -> str:
    """Format a ZIP or ZIP+4 for N403 (5 or 9 digits)."""
    digits = _digits(zip_code)
    if len(digits) in (5, 9):
        return digits
    if len(digits) > 9:
        return digits[:9]
    if len(digits) > 5:
        return digits[:5]
    if digits:
        logger.warning(f"Short ZIP code: {zip_code}")
    return digits


def format_diagnosis_code(code: Union[str, None]) -> str:
    """Format an ICD-10 code for the HI segment (uppercase, no decimal point).

    Args:
        code: ICD-10-CM code such as "F32.9"

    Returns:
        Code as transmitted in X12, e.g. "F329"
    """
    if not code:
        return ""
    return str(code).replace('.', '').strip().upper()


def clean_element(value: Union[str, int, float, None]) -> str:
    """Remove X12 delimiter characters from element data.

    Args:
        value: Raw element value

    Returns:
        Element string safe to embed in a segment
    """
    if value is None:
        return ""

    value_str = str(value)
    cleaned = re.sub(f"[{re.escape(RESERVED_CHARACTERS)}]", "", value_str)
    if cleaned != value_str:
        logger.debug(f"Stripped delimiter characters from element: {value_str!r}")
    return cleaned


def truncate_element(value: Union[str, None], max_length: int) -> str:
    """Cut an element to its X12 maximum length, logging when data is lost."""
    value_str = str(value or "")
    if len(value_str) <= max_length:
        return value_str

    logger.warning(f"Truncating element from {len(value_str)} to {max_length} chars: {value_str[:20]}...")
    return value_str[:max_length]
