"""
params.py — Parsowanie parametrów zapytania w konwencji REST percolatora.

Wartości czasu: "500ms", "10s", "5m", "1h", "2d", "1w" albo same milisekundy.
Wartości logiczne: "false", "0", "off", "no" → False; pusty parametr → True.
"""
from __future__ import annotations

import re
from typing import Optional

_TIME_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w)?\s*$", re.IGNORECASE)

_UNIT_MS = {
    None: 1,
    "ms": 1,
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
    "w": 604_800_000,
}

_FALSE_VALUES = {"false", "0", "off", "no"}


def parse_time_ms(value: Optional[str], name: str = "time") -> Optional[int]:
    """Raises ValueError on a malformed value."""
    if value is None:
        return None
    match = _TIME_RE.match(value)
    if match is None:
        raise ValueError(f"failed to parse setting [{name}] with value [{value}] as a time value")
    amount, unit = match.groups()
    return int(float(amount) * _UNIT_MS[unit.lower() if unit else None])


def parse_bool(value: Optional[str], default: Optional[bool] = None) -> Optional[bool]:
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def parse_version(value: Optional[str]) -> Optional[int]:
    """Version 0 means "no version given". Raises ValueError on a non-integer value."""
    if value is None or value == "":
        return None
    try:
        version = int(value)
    except ValueError:
        raise ValueError(f"failed to parse version [{value}]") from None
    return version or None
