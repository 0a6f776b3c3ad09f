# nonogram/games/core/session_store.py
"""
Date-scoped persistence of one attempt per (difficulty, day[, puzzle]).

Key strategy:
  nonogram:attempt:<difficulty>:<YYYY-MM-DD>[:<puzzle_id>]
  - same day   -> resume
  - other day  -> load() reports nothing (fresh start) but the record stays for history
  - cleanup()  -> age-based sweep, run once per process start
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple
import json, logging

from nonogram.errors import CorruptPersistedRecord, StorageUnavailable
from .coerce_utils import days_between, is_iso_date, today_iso
from .grid import Grid, copy_grid, is_valid_player_grid, is_valid_player_grid_stack
from .kv_storage import KeyValueStorage, remove_key, write_json

logger = logging.getLogger(__name__)

KEY_PREFIX = "nonogram:attempt:"
STATUSES = ("in_progress", "solved")
DEFAULT_RETENTION_DAYS = 30


@dataclass
class AttemptRecord:
    grid: Grid
    undo_stack: List[Grid] = field(default_factory=list)
    redo_stack: List[Grid] = field(default_factory=list)
    elapsed_seconds: int = 0
    status: str = "in_progress"
    last_saved_date: Optional[str] = None
    puzzle_id: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        out = {
            "grid": copy_grid(self.grid),
            "undoStack": [copy_grid(g) for g in self.undo_stack],
            "redoStack": [copy_grid(g) for g in self.redo_stack],
            "timerSeconds": int(self.elapsed_seconds),
            "status": self.status,
            "lastSavedDate": self.last_saved_date,
        }
        if self.puzzle_id is not None:
            out["puzzleId"] = self.puzzle_id
        return out

    @classmethod
    def from_json(cls, data: Any, size: Optional[int] = None) -> "AttemptRecord":
        """
        Shape-check a stored record. Raises CorruptPersistedRecord when the core
        fields are off; broken undo/redo stacks only lose the history.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except ValueError as e:
                raise CorruptPersistedRecord(f"unparseable JSON: {e}") from e
        if not isinstance(data, dict):
            raise CorruptPersistedRecord("record is not an object")

        grid = data.get("grid")
        n = size if size is not None else (len(grid) if isinstance(grid, list) else -1)
        if n <= 0 or not is_valid_player_grid(grid, n):
            raise CorruptPersistedRecord(f"grid is not a {n}x{n} grid of 0/1/2")

        seconds = data.get("timerSeconds", data.get("elapsedSeconds", 0))
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 0:
            raise CorruptPersistedRecord(f"bad elapsed seconds {seconds!r}")

        status = data.get("status", "in_progress")
        if status not in STATUSES:
            raise CorruptPersistedRecord(f"unknown status {status!r}")

        saved = data.get("lastSavedDate")
        if not is_iso_date(saved):
            raise CorruptPersistedRecord(f"bad lastSavedDate {saved!r}")

        pid = data.get("puzzleId")
        undo = data.get("undoStack")
        redo = data.get("redoStack")
        return cls(
            grid=copy_grid(grid),
            undo_stack=[copy_grid(g) for g in undo] if is_valid_player_grid_stack(undo, n) else [],
            redo_stack=[copy_grid(g) for g in redo] if is_valid_player_grid_stack(redo, n) else [],
            elapsed_seconds=seconds,
            status=status,
            last_saved_date=saved,
            puzzle_id=pid if isinstance(pid, str) else None,
        )


class StoredAttempt(NamedTuple):
    key: str
    difficulty: str
    date_iso: str
    puzzle_id: Optional[str]
    record: AttemptRecord


def attempt_key(difficulty: str, date_iso: str, puzzle_id: Optional[str] = None) -> str:
    base = f"{KEY_PREFIX}{difficulty}:{date_iso}"
    return f"{base}:{puzzle_id}" if puzzle_id else base


def parse_attempt_key(key: str) -> Optional[Tuple[str, str, Optional[str]]]:
    """(difficulty, date_iso, puzzle_id) or None for keys that aren't attempt keys."""
    if not key.startswith(KEY_PREFIX):
        return None
    parts = key[len(KEY_PREFIX):].split(":", 2)
    if len(parts) < 2 or not parts[0] or not is_iso_date(parts[1]):
        return None
    puzzle_id = parts[2] if len(parts) == 3 and parts[2] else None
    return parts[0], parts[1], puzzle_id


class SessionStore:
    """
    Sole channel for an attempt to survive a reload.
    `today` is injectable so tests (and the day-rollover check) control the calendar.
    """
    def __init__(self, storage: KeyValueStorage, today: Callable[[], str] = today_iso):
        self.storage = storage
        self.today = today

    # -------- reads --------
    def load(self, difficulty: str, date_iso: str, puzzle_id: Optional[str] = None,
             size: Optional[int] = None) -> Optional[AttemptRecord]:
        """
        The saved attempt, but only if it was last written on date_iso.
        None means "fresh attempt"; it never means the data was deleted.
        """
        key = attempt_key(difficulty, date_iso, puzzle_id)
        try:
            raw = self.storage.get(key)
        except StorageUnavailable as e:
            logger.warning("load %s failed: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            record = AttemptRecord.from_json(raw, size=size)
        except CorruptPersistedRecord as e:
            logger.warning("ignoring corrupt attempt at %s: %s", key, e)
            return None
        if record.last_saved_date != date_iso:
            logger.debug("attempt at %s is from %s, not %s; starting fresh", key, record.last_saved_date, date_iso)
            return None
        return record

    def list_all(self) -> List[StoredAttempt]:
        """Every stored attempt (stale ones included). Malformed entries are skipped."""
        try:
            keys = self.storage.keys()
        except StorageUnavailable as e:
            logger.warning("list attempts failed: %s", e)
            return []
        out: List[StoredAttempt] = []
        for key in keys:
            parsed = parse_attempt_key(key)
            if parsed is None:
                continue
            try:
                raw = self.storage.get(key)
                if raw is None:
                    continue
                record = AttemptRecord.from_json(raw)
            except (StorageUnavailable, CorruptPersistedRecord) as e:
                logger.debug("skip %s: %s", key, e)
                continue
            out.append(StoredAttempt(key, parsed[0], parsed[1], parsed[2], record))
        return out

    def history(self, date_iso: Optional[str] = None) -> List[StoredAttempt]:
        rows = self.list_all()
        if date_iso is None:
            return rows
        return [r for r in rows if r.date_iso == date_iso]

    # -------- writes --------
    def save(self, difficulty: str, date_iso: str, record: AttemptRecord,
             puzzle_id: Optional[str] = None) -> bool:
        """
        Overwrite the attempt, stamping lastSavedDate with today.
        Best-effort: a refused write is logged and play carries on in memory.
        """
        record.last_saved_date = self.today()
        if puzzle_id is not None and record.puzzle_id is None:
            record.puzzle_id = puzzle_id
        return write_json(self.storage, attempt_key(difficulty, date_iso, puzzle_id), record.to_json())

    def cleanup(self, max_age_days: int = DEFAULT_RETENTION_DAYS, today: Optional[str] = None) -> int:
        """
        Drop attempts whose key date is more than max_age_days before today.
        Today's entries are never older than 0 days, so they always survive.
        Returns how many keys were removed.
        """
        max_age_days = max(0, int(max_age_days))
        today = today or self.today()
        try:
            keys = self.storage.keys()
        except StorageUnavailable as e:
            logger.warning("cleanup skipped: %s", e)
            return 0

        doomed = []
        for key in keys:
            parsed = parse_attempt_key(key)
            if parsed is None:
                continue
            age = days_between(parsed[1], today)
            if age is not None and age > max_age_days:
                doomed.append(key)

        removed = sum(1 for key in doomed if remove_key(self.storage, key))
        if removed:
            logger.info("cleanup removed %d attempt(s) older than %d days", removed, max_age_days)
        return removed
