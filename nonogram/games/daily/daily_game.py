# nonogram/games/daily/daily_game.py
"""
One player's daily game: which puzzle is mounted for (difficulty, today),
"new puzzle", difficulty switches, and calendar rollover.

Mounting always builds a new VictoryStateMachine, so switching puzzles or
days can never carry notification flags across.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, Optional
from time import time
import logging

from nonogram.games.core.coerce_utils import today_iso
from nonogram.games.core.kv_storage import KeyValueStorage, read_json, write_json
from nonogram.games.core.playflow import VictoryStateMachine
from nonogram.games.core.puzzle_store_nonogram import NonogramPuzzle, NonogramStore
from nonogram.games.core.rotation import (
    PoolStatus,
    RotationRecord,
    load_rotation,
    mark_seen,
    pick_from_rotation_pool,
    pool_status,
    rotation_key,
    save_rotation,
    seen_key,
)
from nonogram.games.core.selection import Pool, next_unseen_puzzle, resolve_pool, select_puzzle
from nonogram.games.core.session_store import SessionStore

logger = logging.getLogger(__name__)

SELECTION_MODES = ("featured", "daily")
NEW_PUZZLE_POLICIES = ("daily_seen", "rotation")


def active_key(difficulty: str, date_iso: str) -> str:
    """Which puzzle the player is on for that tier and day (survives reloads)."""
    return f"nonogram:active:{difficulty}:{date_iso}:v1"


class DailyGame:
    def __init__(
        self,
        storage: KeyValueStorage,
        store: NonogramStore,
        today: Callable[[], str] = today_iso,
        now: Callable[[], float] = time,
        selection_mode: str = "featured",
        new_puzzle_policy: str = "daily_seen",
        default_difficulty: str = "easy",
    ):
        self.storage = storage
        self.store = store
        self.today = today
        self.now = now
        self.selection_mode = selection_mode if selection_mode in SELECTION_MODES else "featured"
        self.new_puzzle_policy = new_puzzle_policy if new_puzzle_policy in NEW_PUZZLE_POLICIES else "daily_seen"
        self.default_difficulty = default_difficulty
        self.sessions = SessionStore(storage, today=today)
        self.machine: Optional[VictoryStateMachine] = None

    # ---- mounting ----
    def mount(self, difficulty: Optional[str] = None,
              puzzle: Optional[NonogramPuzzle] = None) -> VictoryStateMachine:
        """
        Equivalent of a page load for the given tier: fresh machine, fresh flags.
        Without an explicit puzzle the stored active pointer (or the day's default) decides.
        """
        date_iso = self.today()
        requested = difficulty or (self.machine.difficulty if self.machine else self.default_difficulty)
        lvl, pool = resolve_pool(self.store, requested, fallback=self.default_difficulty)
        if puzzle is None or self.store.index_of(lvl, puzzle.id) < 0:
            puzzle = self._active_puzzle(lvl, pool, date_iso)
        mark_seen(self.storage, seen_key(lvl, date_iso), puzzle.id)
        if self.new_puzzle_policy == "rotation":
            mark_seen(self.storage, rotation_key(lvl), puzzle.id)

        machine = VictoryStateMachine(puzzle, lvl, date_iso, self.sessions, now=self.now)
        machine.load()
        self.machine = machine
        return machine

    def switch(self, difficulty: str) -> VictoryStateMachine:
        """Leave the current puzzle's record as it is and mount another tier."""
        if self.machine is not None:
            logger.info("switch %s -> %s", self.machine.difficulty, difficulty)
        return self.mount(difficulty)

    def current(self) -> VictoryStateMachine:
        """The mounted machine, re-mounted when missing or when the calendar day rolled over."""
        if self.machine is None:
            return self.mount()
        if self.machine.date_iso != self.today():
            logger.info("day rolled over (%s -> %s); remounting", self.machine.date_iso, self.today())
            return self.mount(self.machine.difficulty)
        return self.machine

    def _active_puzzle(self, difficulty: str, pool: Pool, date_iso: str) -> NonogramPuzzle:
        pid = read_json(self.storage, active_key(difficulty, date_iso))
        if isinstance(pid, str):
            idx = self.store.index_of(difficulty, pid)
            if idx >= 0:
                return pool[idx]
            logger.info("active puzzle %s no longer in %s pool", pid, difficulty)
        return select_puzzle(pool, difficulty, date_iso, self.selection_mode)

    # ---- new puzzle ----
    def new_puzzle(self) -> VictoryStateMachine:
        machine = self.current()
        lvl, date_iso = machine.difficulty, machine.date_iso
        pool = self.store.pool(lvl)

        if self.new_puzzle_policy == "rotation":
            nxt = pick_from_rotation_pool(self.storage, pool, rotation_key(lvl))
            if nxt.id == machine.puzzle.id and len(pool) > 1:
                # wrapped around onto the board already shown; mount records the step
                nxt = pool[(self.store.index_of(lvl, nxt.id) + 1) % len(pool)]
        else:
            nxt = self._next_unseen_today(pool, lvl, date_iso, machine.puzzle)

        # the pointer only matters for a later reload; this mount uses nxt directly
        write_json(self.storage, active_key(lvl, date_iso), nxt.id)
        logger.info("new puzzle %s -> %s (%s)", machine.puzzle.id, nxt.id, self.new_puzzle_policy)
        return self.mount(lvl, puzzle=nxt)

    def _next_unseen_today(self, pool: Pool, difficulty: str, date_iso: str,
                           current: NonogramPuzzle) -> NonogramPuzzle:
        key = seen_key(difficulty, date_iso)
        seen = set(load_rotation(self.storage, key).used_ids) | {current.id}
        candidate = next_unseen_puzzle(pool, difficulty, date_iso, seen, anchor=current)
        if candidate.id not in seen:
            return candidate

        # everything seen today: start over from the day's default puzzle
        candidate = select_puzzle(pool, difficulty, date_iso, self.selection_mode)
        if candidate.id == current.id and len(pool) > 1:
            candidate = next_unseen_puzzle(pool, difficulty, date_iso, [current.id], anchor=current)
        save_rotation(self.storage, key, RotationRecord(used_ids=[candidate.id], last_id=candidate.id))
        logger.info("seen set for %s/%s exhausted; reset at %s", difficulty, date_iso, candidate.id)
        return candidate

    # ---- readout ----
    def remaining(self) -> PoolStatus:
        machine = self.current()
        pool = self.store.pool(machine.difficulty)
        if self.new_puzzle_policy == "rotation":
            return pool_status(self.storage, pool, rotation_key(machine.difficulty))
        return pool_status(self.storage, pool, seen_key(machine.difficulty, machine.date_iso))

    def snapshot(self) -> Dict[str, Any]:
        machine = self.current()
        status = self.remaining()
        out = machine.snapshot()
        out.update({
            "remaining": status.remaining,
            "poolUsed": status.used,
            "poolTotal": status.total,
            "availableDifficulties": [lvl for lvl, n in self.store.pool_report().items() if n > 0],
        })
        return out
