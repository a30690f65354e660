"""Request parameter checks shared by the controllers."""

import re
from datetime import date
from typing import Any

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_SOL_PATTERN = re.compile(r"[0-9]+")


def is_valid_date(value: str) -> bool:
    """True for a real calendar date written as YYYY-MM-DD."""
    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        return False

    year, month, day = (int(part) for part in value.split("-"))
    try:
        parsed = date(year, month, day)
    except ValueError:
        return False

    return (parsed.year, parsed.month, parsed.day) == (year, month, day)


def is_valid_sol(value: str) -> bool:
    """Sols are non-negative integers: digits only, no sign, no decimals."""
    return isinstance(value, str) and bool(_SOL_PATTERN.fullmatch(value))


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0
