# nonogram/games/core/puzzle_store_nonogram.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
import json, logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from nonogram.db import db
from nonogram.models import PuzzleRow
from .coerce_utils import DIFFICULTIES, normalize_level
from .grid import is_valid_solution_grid

logger = logging.getLogger(__name__)

STORE_KEY = "nonogram_store"
DEFAULT_PUZZLES_PATH = Path(__file__).resolve().parents[2] / "data" / "puzzles.json"


@dataclass(frozen=True)
class NonogramPuzzle:
    id: str
    size: int
    solution: Tuple[Tuple[int, ...], ...]
    name: Optional[str] = None
    difficulty: str = "easy"

    def solution_lists(self) -> List[List[int]]:
        return [list(row) for row in self.solution]


def index_in_pool(pool: Sequence[NonogramPuzzle], puzzle_id: str) -> int:
    """Position of puzzle_id in an ordered pool, -1 when absent."""
    for i, p in enumerate(pool):
        if p.id == puzzle_id:
            return i
    return -1


def _coerce_solution(raw: Any) -> Optional[List[List[int]]]:
    """Accepts rows as int lists ([1,0,1]) or compact strings ("101")."""
    if not isinstance(raw, list):
        return None
    rows: List[List[int]] = []
    for row in raw:
        if isinstance(row, str):
            if not set(row) <= {"0", "1"}:
                return None
            rows.append([int(ch) for ch in row])
        elif isinstance(row, list):
            rows.append(row)
        else:
            return None
    return rows


def build_puzzle(raw: Dict[str, Any], difficulty: str) -> NonogramPuzzle:
    """Validate one authored entry. Raises ValueError on anything off-shape."""
    pid = raw.get("id")
    if not isinstance(pid, str) or not pid.strip():
        raise ValueError("puzzle id must be a non-empty string")
    solution = _coerce_solution(raw.get("solution"))
    size = raw.get("size", len(solution) if solution else 0)
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise ValueError(f"{pid}: bad size {size!r}")
    if not is_valid_solution_grid(solution, size):
        raise ValueError(f"{pid}: solution is not a {size}x{size} grid of 0/1")
    name = raw.get("name")
    return NonogramPuzzle(
        id=pid.strip(),
        size=size,
        solution=tuple(tuple(row) for row in solution),
        name=name if isinstance(name, str) and name else None,
        difficulty=difficulty,
    )


class NonogramStore:
    """
    Encapsulated, reloadable puzzle catalog.
    Lives inside current_app.extensions['nonogram_store'].
    Pools are ordered and immutable once built; order drives rotation and hashing.
    """
    def __init__(self, json_path: Optional[Path] = None, use_db: bool = True):
        self.json_path = Path(json_path) if json_path else DEFAULT_PUZZLES_PATH
        self.use_db = use_db
        self.by_id: Dict[str, NonogramPuzzle] = {}
        self.pools: Dict[str, Tuple[NonogramPuzzle, ...]] = {lvl: () for lvl in DIFFICULTIES}
        self.loaded_from: Optional[str] = None   # 'db' or 'json'

    # -------- public API --------
    def load(self, force: bool = False) -> None:
        if self.loaded_from is not None and not force:
            return
        puzzles = self._load_from_db() if self.use_db else []
        self.loaded_from = "db" if puzzles else None
        if not puzzles:
            puzzles = self._load_from_json()
            self.loaded_from = "json"
        self._build_caches(puzzles)

    def load_entries(self, entries: Dict[str, List[Dict[str, Any]]]) -> None:
        """Build pools straight from {difficulty: [raw entries]} (tests, seeding previews)."""
        self.loaded_from = "inline"
        self._build_caches(self._parse_tiers(entries))

    def pool(self, difficulty: str) -> Tuple[NonogramPuzzle, ...]:
        return self.pools.get(normalize_level(difficulty), ())

    def has_puzzles(self, difficulty: str) -> bool:
        return len(self.pool(difficulty)) > 0

    def get_by_id(self, puzzle_id: str) -> Optional[NonogramPuzzle]:
        return self.by_id.get(puzzle_id)

    def index_of(self, difficulty: str, puzzle_id: str) -> int:
        return index_in_pool(self.pool(difficulty), puzzle_id)

    def pool_report(self) -> Dict[str, int]:
        return {k: len(v) for k, v in self.pools.items()}

    # -------- internals --------
    def _parse_tiers(self, data: Any) -> List[NonogramPuzzle]:
        out: List[NonogramPuzzle] = []
        if not isinstance(data, dict):
            logger.warning("puzzle catalog must be an object keyed by difficulty; got %s", type(data).__name__)
            return out
        for lvl in DIFFICULTIES:
            rows = data.get(lvl) or []
            if not isinstance(rows, list):
                logger.warning("skip tier %s: not a list", lvl)
                continue
            for raw in rows:
                try:
                    out.append(build_puzzle(raw if isinstance(raw, dict) else {}, lvl))
                except ValueError as e:
                    logger.warning("skip %s puzzle: %s", lvl, e)
        return out

    def _load_from_db(self) -> List[NonogramPuzzle]:
        try:
            rows = (PuzzleRow.query
                    .filter_by(is_active=True)
                    .order_by(PuzzleRow.position.asc(), PuzzleRow.id.asc())
                    .all())
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("puzzle table unavailable, falling back to JSON: %s", e)
            return []
        out: List[NonogramPuzzle] = []
        for r in rows:
            try:
                out.append(build_puzzle(
                    {"id": r.external_id, "size": r.size, "solution": r.solution_json, "name": r.name},
                    normalize_level(r.difficulty),
                ))
            except ValueError as e:
                logger.warning("skip puzzle row id=%s ext=%s: %s", r.id, r.external_id, e)
        return out

    def _load_from_json(self) -> List[NonogramPuzzle]:
        if not self.json_path.exists():
            logger.warning("puzzles.json missing at %s", self.json_path)
            return []
        try:
            data = json.loads(self.json_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.exception("load puzzles.json failed: %s", e)
            return []
        return self._parse_tiers(data)

    def _build_caches(self, puzzles: List[NonogramPuzzle]) -> None:
        by_id: Dict[str, NonogramPuzzle] = {}
        tiers: Dict[str, List[NonogramPuzzle]] = {lvl: [] for lvl in DIFFICULTIES}
        for p in puzzles:
            if p.id in by_id:
                logger.warning("duplicate puzzle id %s ignored", p.id)
                continue
            by_id[p.id] = p
            tiers[p.difficulty].append(p)

        self.by_id = by_id
        self.pools = {lvl: tuple(items) for lvl, items in tiers.items()}

        logger.info("Nonogram store loaded (%s): easy=%d medium=%d hard=%d",
                    self.loaded_from or "-", len(tiers["easy"]), len(tiers["medium"]), len(tiers["hard"]))


# --------- accessors (store lives on current_app) ----------
def get_store(load: bool = True) -> NonogramStore:
    ext = getattr(current_app, "extensions", None)
    if ext is None:
        current_app.extensions = {}
        ext = current_app.extensions
    store: NonogramStore | None = ext.get(STORE_KEY)
    if store is None:
        path = current_app.config.get("NONOGRAM_PUZZLES_PATH")
        store = NonogramStore(json_path=Path(path) if path else None)
        ext[STORE_KEY] = store
    if load:
        store.load(force=False)
    return store

def warmup_store(force: bool = False) -> None:
    get_store(load=False).load(force=force)
