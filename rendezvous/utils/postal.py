"""Canadian postal code helpers."""

import re
from typing import Any

CANADIAN_POSTAL_CODE_PATTERN = re.compile(r"^[A-Za-z]\d[A-Za-z][\s-]?\d[A-Za-z]\d$")


def validate_canadian_postal_code(value: Any) -> bool:
    """Return True for ``A1A 1A1`` style codes; empty values are accepted."""
    if value is None:
        return True
    text = str(value).strip()
    if not text:
        return True
    return bool(CANADIAN_POSTAL_CODE_PATTERN.match(text))


def format_canadian_postal_code(value: Any) -> str:
    """
    Normalize a postal code to uppercase ``AAA BBB``.

    Values without exactly six significant characters are only uppercased.
    """
    if value is None:
        return ""
    text = str(value).strip().upper()
    compact = re.sub(r"[\s-]", "", text)
    if len(compact) != 6:
        return text
    return f"{compact[:3]} {compact[3:]}"
