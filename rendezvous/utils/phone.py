"""
Phone number utilities for Quebec (North American Numbering Plan) numbers.

Accepted input shapes:
- 5145550123
- 514-555-0123, 514.555.0123, 514 555 0123
- (514) 555-0123
- +1 514 555 0123, +1-514-555-0123

Normalized output is always ``NNN-NNN-NNNN``.
"""

import re
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)

QUEBEC_PHONE_PATTERN = re.compile(
    r"^(\+?1[\s.-]?)?(\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}$"
)


def extract_phone_digits(value: Any) -> Optional[str]:
    """
    Return the 10 significant digits of a phone number, or None.

    A leading country code ``1`` is dropped when 11 digits are present.
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    digits = re.sub(r"\D", "", text)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]

    if len(digits) != 10:
        logger.debug("Phone number '%s' has %d significant digits, expected 10", value, len(digits))
        return None
    return digits


def validate_quebec_phone(value: Any) -> bool:
    """
    Validate a Quebec phone number.

    Empty values are accepted: phone is an optional field everywhere it is used.
    """
    if value is None:
        return True
    text = str(value).strip()
    if not text:
        return True
    return bool(QUEBEC_PHONE_PATTERN.match(text))


def format_quebec_phone(value: Any) -> str:
    """Format a phone number as NNN-NNN-NNNN; unrecognized input is returned as-is."""
    if value is None:
        return ""
    digits = extract_phone_digits(value)
    if digits is None:
        return str(value)
    return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"


def to_e164(value: Any) -> Optional[str]:
    """Convert a Quebec phone number to E.164 (``+15145550123``) for SMS providers."""
    digits = extract_phone_digits(value)
    if digits is None:
        return None
    return f"+1{digits}"
