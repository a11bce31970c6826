"""
Field validators used by the import column schemas.

Regex presets cover the text formats found in client, service and
appointment spreadsheets; the numeric helpers implement the clamp-and-fallback
rules applied to durations, prices and loyalty points.
"""

import math
import re
from typing import Any, Optional, Tuple


PRESET_PATTERNS = {
    "email": r"^[^\s@]+@[^\s@]+\.[^\s@]+$",
    "phone_qc": r"^(\+?1[\s.-]?)?(\([0-9]{3}\)|[0-9]{3})[\s.-]?[0-9]{3}[\s.-]?[0-9]{4}$",
    "postal_code_ca": r"^[A-Za-z]\d[A-Za-z][\s-]?\d[A-Za-z]\d$",
    "hex_color": r"^#[0-9A-Fa-f]{6}$",
    "time_24h": r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$",
    "date_iso": r"^\d{4}-\d{2}-\d{2}$",
}


PRESET_DESCRIPTIONS = {
    "email": "Adresse courriel",
    "phone_qc": "Téléphone (514-555-0123)",
    "postal_code_ca": "Code postal canadien (H2X 1Y2)",
    "hex_color": "Couleur hexadécimale (#RRGGBB)",
    "time_24h": "Heure sur 24 h (HH:MM)",
    "date_iso": "Date ISO (AAAA-MM-JJ)",
}

TRUTHY_VALUES = {"oui", "yes", "1", "true", "vrai", "x", "o", "y"}
FALSY_VALUES = {"non", "no", "0", "false", "faux", "n", ""}


def get_preset_pattern(preset_name: str) -> Optional[str]:
    return PRESET_PATTERNS.get(preset_name)


def get_preset_description(preset_name: str) -> Optional[str]:
    return PRESET_DESCRIPTIONS.get(preset_name)


def matches_preset(value: Any, preset_name: str) -> bool:
    """Return True when the stripped value matches the preset regex."""
    pattern = get_preset_pattern(preset_name)
    if pattern is None:
        raise KeyError(f"Unknown preset validator: {preset_name}")
    if value is None:
        return False
    return re.match(pattern, str(value).strip(), re.IGNORECASE) is not None


def validate_with_preset(
    value: Any,
    preset_name: str,
    allow_null: bool = True
) -> Tuple[bool, Optional[str]]:
    """
    Validate a value against a preset pattern.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_null:
            return True, None
        return False, "Valeur requise"

    if get_preset_pattern(preset_name) is None:
        return False, f"Unknown preset validator: {preset_name}"

    str_val = str(value).strip()
    if not matches_preset(str_val, preset_name):
        description = get_preset_description(preset_name)
        return False, f"Valeur '{str_val}' ne respecte pas le format {description or preset_name}"
    return True, None


def list_available_presets() -> dict:
    return {name: PRESET_DESCRIPTIONS.get(name, "") for name in PRESET_PATTERNS}


def is_email(value: Any) -> bool:
    return matches_preset(value, "email")


def is_hex_color(value: Any) -> bool:
    return matches_preset(value, "hex_color")


def _parse_number(value: Any) -> Optional[float]:
    """Parse '125,50 $', '60 min' or '1 250.00' into a float."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)

    text = str(value).strip().lower()
    text = re.sub(r"(\$|cad|min(utes?)?|pts?|points?)", "", text)
    text = text.replace(" ", "").replace(" ", "")
    if text.count(",") == 1 and "." not in text:
        text = text.replace(",", ".")
    else:
        text = text.replace(",", "")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_int_in_range(value: Any, minimum: int, maximum: int, default: int) -> int:
    """Parse an integer, clamp it to [minimum, maximum], fall back to ``default``."""
    number = _parse_number(value)
    if number is None:
        return default
    return int(min(max(round(number), minimum), maximum))


def is_non_negative_number(value: Any) -> bool:
    number = _parse_number(value)
    return number is not None and number >= 0


def parse_non_negative_float(value: Any, default: float = 0.0) -> float:
    number = _parse_number(value)
    if number is None:
        return default
    return max(number, 0.0)


def parse_non_negative_int(value: Any, default: int = 0) -> int:
    number = _parse_number(value)
    if number is None:
        return default
    return max(int(round(number)), 0)


def is_boolean_text(value: Any) -> bool:
    return str(value).strip().lower() in TRUTHY_VALUES | FALSY_VALUES


def parse_boolean(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_VALUES
