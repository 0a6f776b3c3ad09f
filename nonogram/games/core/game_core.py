# nonogram/games/core/game_core.py
from __future__ import annotations
from typing import Any, Dict, Optional
import logging
import uuid

from .coerce_utils import DIFFICULTIES, coerce_int, parse_iso_date
from .kv_storage import KeyValueStorage, read_json, remove_key, write_json
from .puzzle_store_nonogram import NonogramStore
from .rotation import load_rotation, seen_key
from .session_store import SessionStore

logger = logging.getLogger(__name__)

STATS_KEY = "nonogram:stats:v1"


# ============================================================
# Player identity
# ============================================================

def get_or_create_player_id(req) -> str:
    """
    Stable per-browser key: cookie 'player_id' if present, else a new uuid4.
    An explicit X-Player-Id header wins (API clients, tests).
    """
    pid = req.headers.get("X-Player-Id") or req.cookies.get("player_id")
    if pid:
        return str(pid)[:64]
    return str(uuid.uuid4())


# ============================================================
# Solve statistics
# ============================================================

def default_stats() -> Dict[str, Any]:
    return {
        "totalSolved": 0,
        "totalSolvedByDifficulty": {lvl: 0 for lvl in DIFFICULTIES},
        "solvedToday": 0,
        "lastSolvedDateISO": None,
    }


def load_stats(storage: KeyValueStorage) -> Dict[str, Any]:
    """Stored counters with field-by-field migration; anything missing or mistyped reads as 0/None."""
    parsed = read_json(storage, STATS_KEY)
    stats = default_stats()
    if not isinstance(parsed, dict):
        return stats

    stats["totalSolved"] = coerce_int(parsed.get("totalSolved"))
    by = parsed.get("totalSolvedByDifficulty")
    if isinstance(by, dict):
        for lvl in DIFFICULTIES:
            stats["totalSolvedByDifficulty"][lvl] = coerce_int(by.get(lvl))
    stats["solvedToday"] = coerce_int(parsed.get("solvedToday"))
    last = parsed.get("lastSolvedDateISO")
    stats["lastSolvedDateISO"] = last if parse_iso_date(last) else None
    return stats


def save_stats(storage: KeyValueStorage, stats: Dict[str, Any]) -> bool:
    return write_json(storage, STATS_KEY, stats)


def roll_day(stats: Dict[str, Any], today: str) -> bool:
    """Reset the daily counter when the calendar moved on. True if anything changed."""
    if stats.get("lastSolvedDateISO") != today:
        stats["solvedToday"] = 0
        stats["lastSolvedDateISO"] = today
        return True
    return False


def solved_marker_key(difficulty: str, puzzle_id: str) -> str:
    return f"nonogram:solved:{difficulty}:{puzzle_id}:v1"


def is_marked_solved(storage: KeyValueStorage, difficulty: str, puzzle_id: str) -> bool:
    return read_json(storage, solved_marker_key(difficulty, puzzle_id)) is True


def clear_solved_marker(storage: KeyValueStorage, difficulty: str, puzzle_id: str) -> None:
    remove_key(storage, solved_marker_key(difficulty, puzzle_id))


def record_solve(storage: KeyValueStorage, difficulty: str, puzzle_id: str, today: str) -> bool:
    """
    Count one solve. The per-puzzle marker makes this idempotent across reloads;
    returns False when the puzzle was already counted.
    """
    if is_marked_solved(storage, difficulty, puzzle_id):
        logger.debug("solve of %s/%s already counted", difficulty, puzzle_id)
        return False
    write_json(storage, solved_marker_key(difficulty, puzzle_id), True)

    stats = load_stats(storage)
    roll_day(stats, today)
    stats["totalSolved"] += 1
    by = stats["totalSolvedByDifficulty"]
    by[difficulty] = by.get(difficulty, 0) + 1
    stats["solvedToday"] += 1
    save_stats(storage, stats)
    logger.info("BUMP_SOLVED: %s/%s total=%d today=%d", difficulty, puzzle_id,
                stats["totalSolved"], stats["solvedToday"])
    return True


def stats_payload(storage: KeyValueStorage, store: NonogramStore, today: str) -> Dict[str, Any]:
    stats = load_stats(storage)
    if roll_day(stats, today):
        save_stats(storage, stats)

    seen_today: Dict[str, int] = {}
    for lvl in DIFFICULTIES:
        live = {p.id for p in store.pool(lvl)}
        record = load_rotation(storage, seen_key(lvl, today))
        seen_today[lvl] = len({i for i in record.used_ids if i in live})

    return {
        "totalSolved": stats["totalSolved"],
        "totalSolvedByDifficulty": dict(stats["totalSolvedByDifficulty"]),
        "solvedToday": stats["solvedToday"],
        "lastSolvedDateISO": stats["lastSolvedDateISO"],
        "seenTodayByDifficulty": seen_today,
    }


def history_stats(sessions: SessionStore, date_iso: Optional[str] = None) -> Dict[str, Any]:
    """Played/solved totals from stored attempts (stale days included), optionally for one date."""
    rows = sessions.history(date_iso)
    by_level: Dict[str, Dict[str, int]] = {lvl: {"played": 0, "solved": 0} for lvl in DIFFICULTIES}
    for r in rows:
        row = by_level.setdefault(r.difficulty, {"played": 0, "solved": 0})
        row["played"] += 1
        if r.record.status == "solved":
            row["solved"] += 1

    dates = sorted(r.date_iso for r in rows)
    return {
        "totalPlayed": len(rows),
        "totalSolved": sum(1 for r in rows if r.record.status == "solved"),
        "byDifficulty": by_level,
        "oldestDate": dates[0] if dates else None,
        "newestDate": dates[-1] if dates else None,
    }


__all__ = [
    "get_or_create_player_id",
    "default_stats", "load_stats", "save_stats", "roll_day",
    "solved_marker_key", "is_marked_solved", "clear_solved_marker", "record_solve",
    "stats_payload", "history_stats",
]
