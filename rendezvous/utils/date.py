"""
Date and time parsing utilities for spreadsheet imports.

Dates arrive as ISO strings, Quebec-style DD/MM/YYYY strings or native
datetime cells from Excel; everything is normalized to ``YYYY-MM-DD`` and
times to ``HH:MM``.
"""

import pandas as pd
from typing import Any, Optional
import re
from datetime import date, datetime, time
import logging

from rendezvous.core.config import settings

logger = logging.getLogger(__name__)

FAILED_SAMPLE_LIMIT = 5

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])(?::[0-5][0-9])?$")

_failure_counts: dict = {}


def _record_parse_failure(value: Any, context: Optional[str], error: Exception) -> None:
    """Log the first few failures per context, then stay quiet."""
    key = context or "default"
    _failure_counts[key] = _failure_counts.get(key, 0) + 1
    if _failure_counts[key] <= FAILED_SAMPLE_LIMIT:
        logger.warning("Failed to parse date%s value '%s': %s", f" ({key})" if context else "", value, error)


def parse_flexible_date(value: Any, *, log_context: Optional[str] = None, log_failures: bool = True) -> Optional[str]:
    """
    Parse a date value and return it as ``YYYY-MM-DD``.

    Supports ISO dates, DD/MM/YYYY and MM/DD/YYYY (day-first is preferred when
    ambiguous, per ``settings.date_default_dayfirst``), and datetime objects.

    Returns:
        ISO date string or None if the value cannot be parsed
    """
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    value = str(value).strip()
    if value == "":
        return None

    parse_attempts = []
    numeric_match = re.match(r'^\d{1,2}[/-]\d{1,2}[/-]\d{2,4}', value)
    if numeric_match:
        parts = re.split(r'[/-]', numeric_match.group(0))
        first, second = int(parts[0]), int(parts[1])

        if first > 12 and second <= 12:
            dayfirst_preferred = True
        elif second > 12 and first <= 12:
            dayfirst_preferred = False
        else:
            dayfirst_preferred = settings.date_default_dayfirst

        parse_attempts.append(
            lambda v, df=dayfirst_preferred: pd.to_datetime(v, dayfirst=df, errors='raise')
        )
        parse_attempts.append(
            lambda v, df=not dayfirst_preferred: pd.to_datetime(v, dayfirst=df, errors='raise')
        )

    parse_attempts.append(lambda v: pd.to_datetime(v, errors='raise'))

    last_error = None
    for attempt in parse_attempts:
        try:
            parsed = attempt(value)
        except (ValueError, TypeError, OverflowError) as exc:
            last_error = exc
            continue
        if pd.isna(parsed):
            continue
        return parsed.strftime('%Y-%m-%d')

    if log_failures:
        _record_parse_failure(value, log_context, last_error or ValueError("Unable to determine format"))
    return None


def is_valid_date(value: Any) -> bool:
    return parse_flexible_date(value, log_failures=False) is not None


def normalize_time(value: Any) -> Optional[str]:
    """Return ``HH:MM`` for ``H:MM``, ``HH:MM`` or ``HH:MM:SS`` input, else None."""
    if value is None:
        return None
    if isinstance(value, (time, datetime)):
        return value.strftime('%H:%M')

    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        return None
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def is_valid_time(value: Any) -> bool:
    return normalize_time(value) is not None
