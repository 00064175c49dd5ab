"""
Period keys.

A period key names one fiscal quarter as ``YYYYQd``: four ASCII digits forming
a year in [2000, 2099], the literal ``Q``, and a quarter digit in 1-4.

The validator compares raw ASCII code points (never ``str.isdigit``, which
accepts non-ASCII digits) and never raises.
"""
from __future__ import annotations

from typing import Any, Optional, Tuple

KEY_LENGTH = 6
MIN_YEAR = 2000
MAX_YEAR = 2099


def _is_ascii_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def is_valid_period(key: Any) -> bool:
    """Return True when ``key`` is a well-formed period key."""
    if isinstance(key, (bytes, bytearray)):
        # one byte per character
        key = bytes(key).decode("latin-1")
    if not isinstance(key, str):
        return False

    if len(key) != KEY_LENGTH:
        return False
    if not all(_is_ascii_digit(ch) for ch in key[0:4]):
        return False
    if key[4] != "Q":
        return False
    if not "1" <= key[5] <= "4":
        return False

    year = 0
    for ch in key[0:4]:
        year = year * 10 + (ord(ch) - ord("0"))
    return MIN_YEAR <= year <= MAX_YEAR


def parse_period(key: Any) -> Optional[Tuple[int, int]]:
    """(year, quarter) for a valid key, else None."""
    if not is_valid_period(key):
        return None
    if isinstance(key, (bytes, bytearray)):
        key = bytes(key).decode("latin-1")
    return int(key[0:4]), int(key[5])


def format_period(year: int, quarter: int) -> str:
    key = f"{year:04d}Q{quarter}"
    if not is_valid_period(key):
        raise ValueError(f"No valid period for year={year} quarter={quarter}")
    return key


def canonical_period(key: Any) -> Optional[str]:
    """The key as ``str`` when valid (bytes are decoded), else None."""
    parsed = parse_period(key)
    if parsed is None:
        return None
    return format_period(*parsed)
