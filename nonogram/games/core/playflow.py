# nonogram/games/core/playflow.py
"""
Victory state machine: load -> play -> solve -> (notify once) -> revisit/restart.

One instance == one mounted puzzle. Everything session-scoped (SessionFlags)
is rebuilt with the instance, so a page load, a puzzle switch or a new
machine after a server restart all start with clean flags. The SessionStore
is the source of truth; the grid held here is a working copy.

Notification rule: the solve check runs after every grid change *and* right
after load, because the grid is data, not an event. Load resets the
notification flags first and its own evaluation can only reconcile status,
so a revisited solved grid never raises the victory notification.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from time import time
import logging

from .game_core import clear_solved_marker, record_solve
from .grid import (
    Grid,
    compute_clues,
    completed_rows,
    copy_grid,
    create_empty_grid,
    is_solved,
    is_valid_player_grid,
)
from .puzzle_store_nonogram import NonogramPuzzle
from .session_store import AttemptRecord, SessionStore

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"
SOLVED = "solved"


@dataclass
class SessionFlags:
    """Process-lifetime only; never persisted."""
    has_loaded: bool = False              # gate: no evaluation before the record was read
    has_shown_notification: bool = False  # at most one victory notification per load
    has_moved: bool = False               # first move starts the timer


@dataclass
class VictoryStateMachine:
    puzzle: NonogramPuzzle
    difficulty: str
    date_iso: str
    sessions: SessionStore
    now: Callable[[], float] = time
    flags: SessionFlags = field(default_factory=SessionFlags)

    grid: Grid = field(init=False)
    undo_stack: List[Grid] = field(init=False, default_factory=list)
    redo_stack: List[Grid] = field(init=False, default_factory=list)
    status: str = field(init=False, default=IN_PROGRESS)
    notification_visible: bool = field(init=False, default=False)
    restored: bool = field(init=False, default=False)        # load() found a same-day record
    last_save_ok: Optional[bool] = field(init=False, default=None)

    _elapsed_base: int = field(init=False, default=0, repr=False)
    _running_since: Optional[float] = field(init=False, default=None, repr=False)
    _pending: List[Tuple[str, tuple]] = field(init=False, default_factory=list, repr=False)

    def __post_init__(self):
        self.grid = create_empty_grid(self.puzzle.size)
        self._solution = self.puzzle.solution_lists()

    # ---- lifecycle ----
    def load(self) -> bool:
        """
        Read the stored attempt and apply load effects, strictly in this order:
        restore status, hide notification, clear notification flag, open the gate,
        evaluate the restored grid, then replay anything buffered before load.
        Returns True when a same-day record was restored.
        """
        record = self.sessions.load(self.difficulty, self.date_iso, self.puzzle.id, size=self.puzzle.size)
        if record is not None:
            self.grid = copy_grid(record.grid)
            self.undo_stack = [copy_grid(g) for g in record.undo_stack]
            self.redo_stack = [copy_grid(g) for g in record.redo_stack]
            self._elapsed_base = record.elapsed_seconds
            self.status = SOLVED if record.status == SOLVED else IN_PROGRESS
        else:
            self.grid = create_empty_grid(self.puzzle.size)
            self.undo_stack, self.redo_stack = [], []
            self._elapsed_base = 0
            self.status = IN_PROGRESS
        self._running_since = None
        self.restored = record is not None

        self.notification_visible = False
        self.flags.has_shown_notification = False
        self.flags.has_loaded = True

        self._evaluate(origin="load")
        logger.info("[Load] %s/%s %s status=%s restored=%s", self.difficulty, self.date_iso,
                    self.puzzle.id, self.status, self.restored)

        pending, self._pending = self._pending, []
        for name, args in pending:
            getattr(self, name)(*args)
        return self.restored

    @property
    def loaded(self) -> bool:
        return self.flags.has_loaded

    @property
    def locked(self) -> bool:
        """The board is read-only once solved."""
        return self.status == SOLVED

    def _defer(self, name: str, *args) -> bool:
        if self.flags.has_loaded:
            return False
        self._pending.append((name, args))
        logger.debug("buffered %s until load completes", name)
        return True

    # ---- player actions ----
    def edit(self, next_grid: Grid) -> bool:
        """
        Apply a grid change from the board. Returns False when the board is locked.
        Raises ValueError for a grid of the wrong shape.
        """
        if not is_valid_player_grid(next_grid, self.puzzle.size):
            raise ValueError(f"grid must be {self.puzzle.size}x{self.puzzle.size} of 0/1/2")
        if self._defer("edit", copy_grid(next_grid)):
            return True
        if self.locked:
            return False

        if not self.flags.has_moved:
            self.flags.has_moved = True
            logger.debug("first move on %s", self.puzzle.id)
        self._start_timer()

        if next_grid != self.grid:
            self.undo_stack.append(self.grid)
            self.redo_stack = []
            self.grid = copy_grid(next_grid)

        self._evaluate(origin="edit")
        self._persist()
        return True

    def undo(self) -> bool:
        if self._defer("undo"):
            return True
        if not self.undo_stack:
            return False
        self.redo_stack.append(self.grid)
        self.grid = self.undo_stack.pop()
        self._evaluate(origin="undo")
        self._persist()
        return True

    def redo(self) -> bool:
        if self._defer("redo"):
            return True
        if not self.redo_stack:
            return False
        self.undo_stack.append(self.grid)
        self.grid = self.redo_stack.pop()
        self._evaluate(origin="redo")
        self._persist()
        return True

    def dismiss(self) -> bool:
        """Close the victory notification; the solved status stays."""
        if self._defer("dismiss"):
            return True
        if not self.notification_visible:
            return False
        self.notification_visible = False
        return True

    def restart(self) -> None:
        """Fresh attempt on the same puzzle; re-arms the notification."""
        if self._defer("restart"):
            return
        self.grid = create_empty_grid(self.puzzle.size)
        self.undo_stack, self.redo_stack = [], []
        self.status = IN_PROGRESS
        self.notification_visible = False
        self.flags.has_shown_notification = False
        self.flags.has_moved = False
        self._elapsed_base = 0
        self._running_since = None
        # re-solving after a restart counts as a new solve
        clear_solved_marker(self.sessions.storage, self.difficulty, self.puzzle.id)
        self._persist()
        logger.info("[Restart] %s/%s %s", self.difficulty, self.date_iso, self.puzzle.id)

    def heartbeat(self) -> int:
        """Persist the running timer without touching the grid."""
        if self.flags.has_loaded and (self.flags.has_moved or self.restored):
            self._persist()
        return self.elapsed_seconds

    # ---- timer ----
    @property
    def elapsed_seconds(self) -> int:
        if self._running_since is None:
            return self._elapsed_base
        return self._elapsed_base + max(0, int(self.now() - self._running_since))

    @property
    def timer_running(self) -> bool:
        return self._running_since is not None

    def _start_timer(self) -> None:
        if self._running_since is None and self.status != SOLVED:
            self._running_since = self.now()

    def _pause_timer(self) -> None:
        if self._running_since is not None:
            self._elapsed_base = self.elapsed_seconds
            self._running_since = None

    # ---- evaluation ----
    def _evaluate(self, origin: str) -> bool:
        """
        Re-derive status from the grid. Returns True only when this call raised
        the victory notification.
        """
        if not self.flags.has_loaded:
            return False

        if not is_solved(self.grid, self._solution):
            self.status = IN_PROGRESS
            return False

        was = self.status
        self.status = SOLVED
        self._pause_timer()

        if origin == "load":
            return False
        if was == IN_PROGRESS and not self.flags.has_shown_notification:
            self.flags.has_shown_notification = True
            self.notification_visible = True
            counted = record_solve(self.sessions.storage, self.difficulty, self.puzzle.id, self.sessions.today())
            logger.info("[Victory] %s/%s %s solved in %ss (counted=%s)", self.difficulty, self.date_iso,
                        self.puzzle.id, self.elapsed_seconds, counted)
            return True
        return False

    def _persist(self) -> bool:
        record = AttemptRecord(
            grid=self.grid,
            undo_stack=self.undo_stack,
            redo_stack=self.redo_stack,
            elapsed_seconds=self.elapsed_seconds,
            status=self.status,
            puzzle_id=self.puzzle.id,
        )
        self.last_save_ok = self.sessions.save(self.difficulty, self.date_iso, record, puzzle_id=self.puzzle.id)
        return self.last_save_ok

    # ---- readout ----
    def snapshot(self) -> Dict[str, Any]:
        row_clues, col_clues = compute_clues(self._solution)
        return {
            "puzzleId": self.puzzle.id,
            "name": self.puzzle.name,
            "difficulty": self.difficulty,
            "date": self.date_iso,
            "size": self.puzzle.size,
            "grid": copy_grid(self.grid),
            "rowClues": row_clues,
            "colClues": col_clues,
            "completedRows": completed_rows(self.grid, self._solution),
            "status": self.status,
            "notificationVisible": self.notification_visible,
            "locked": self.locked,
            "elapsedSeconds": self.elapsed_seconds,
            "timerRunning": self.timer_running,
            "canUndo": bool(self.undo_stack),
            "canRedo": bool(self.redo_stack),
            "persisted": self.last_save_ok is not False,
        }
