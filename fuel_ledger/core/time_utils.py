from __future__ import annotations

import re
from datetime import date

PRIMARY_DATE_FORMAT = "%Y-%m-%d"
UNKNOWN_MONTH_KEY = "unknown"
UNKNOWN_MONTH_LABEL = "Unknown date"

MONTH_KEY_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}")
MONTH_LABELS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def normalize_date(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()[0:10]


def _parse_date_components(cleaned: str) -> date:
    if len(cleaned) != 10 or cleaned[4] != "-" or cleaned[7] != "-":
        raise ValueError("Invalid date format. Expected 'YYYY-MM-DD'.")

    try:
        year = int(cleaned[0:4])
        month = int(cleaned[5:7])
        day = int(cleaned[8:10])
    except ValueError as exc:
        raise ValueError("Invalid date format. Expected 'YYYY-MM-DD'.") from exc

    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ValueError("Invalid date format. Expected 'YYYY-MM-DD'.") from exc


def parse_iso_date(value: str) -> date:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Date must be a non-empty string.")
    return _parse_date_components(value.strip())


def is_month_key(value: object) -> bool:
    if not isinstance(value, str) or not MONTH_KEY_PATTERN.fullmatch(value):
        return False
    return 1 <= int(value[5:7]) <= 12


def month_key(value: object) -> str | None:
    """Return ``YYYY-MM`` for a stored date, or ``None`` when it is unusable."""
    candidate = normalize_date(value)[0:7]
    return candidate if is_month_key(candidate) else None


def month_label(key: str) -> str:
    if not is_month_key(key):
        return UNKNOWN_MONTH_LABEL
    return f"{MONTH_LABELS[int(key[5:7]) - 1]} {key[0:4]}"


def month_start(key: str) -> str:
    return f"{key}-01"


def format_date(value: date) -> str:
    return value.strftime(PRIMARY_DATE_FORMAT)
