# nonogram/games/core/coerce_utils.py
from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

DIFFICULTIES = ("easy", "medium", "hard")

_ISO_DATE_FMT = "%Y-%m-%d"


def normalize_level(level: Optional[str]) -> str:
    """Normalize difficulty level strings."""
    if level is None: return "easy"
    ALIASES = {'0': 'easy', 'easy': 'easy', '1': 'medium', 'medium': 'medium',
               '2': 'hard', '3': 'hard', 'hard': 'hard'}
    return ALIASES.get(str(level).strip().lower(), "easy")


def coerce_id_list(val: Any) -> List[str]:
    """Coerce stored id collections to a list of strings, dropping anything that isn't one."""
    if not isinstance(val, list):
        return []
    return [x for x in val if isinstance(x, str)]


def coerce_int(val: Any, default: int = 0) -> int:
    # bool is an int subclass; a stored true/false is not a counter
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return default
    return int(val)


# ---- calendar dates (local time, "YYYY-MM-DD") ----

def today_iso(now: Optional[datetime] = None) -> str:
    """Today's date in the server's local timezone, not UTC."""
    return (now or datetime.now()).strftime(_ISO_DATE_FMT)


def parse_iso_date(value: Any) -> Optional[date]:
    if not isinstance(value, str) or len(value) != 10:
        return None
    try:
        return datetime.strptime(value, _ISO_DATE_FMT).date()
    except ValueError:
        return None


def is_iso_date(value: Any) -> bool:
    return parse_iso_date(value) is not None


def previous_date_iso(date_iso: str) -> str:
    d = parse_iso_date(date_iso)
    if d is None:
        raise ValueError(f"not an ISO date: {date_iso!r}")
    return (d - timedelta(days=1)).strftime(_ISO_DATE_FMT)


def days_between(older_iso: str, newer_iso: str) -> Optional[int]:
    """Whole days from older to newer (negative when older is actually later); None on bad input."""
    a, b = parse_iso_date(older_iso), parse_iso_date(newer_iso)
    if a is None or b is None:
        return None
    return (b - a).days
