# nonogram/games/core/selection.py
"""
Which puzzle a player is shown.

featured_puzzle / daily_puzzle are pure functions of (pool, difficulty, date):
every device computes the same answer, no stored state involved.
next_unseen_puzzle walks the pool past ids the caller already showed.
"""
from __future__ import annotations
from datetime import date
from typing import Iterable, Optional, Sequence, Tuple
import logging

from nonogram.errors import NoPuzzlesAvailable
from .coerce_utils import DIFFICULTIES, normalize_level, parse_iso_date, previous_date_iso
from .puzzle_store_nonogram import NonogramPuzzle, NonogramStore, index_in_pool

logger = logging.getLogger(__name__)

DAILY_EPOCH = date(2024, 1, 1)

Pool = Sequence[NonogramPuzzle]


def _to_int32(x: int) -> int:
    x &= 0xFFFFFFFF
    return x - 0x100000000 if x & 0x80000000 else x


def stable_hash(text: str) -> int:
    """
    djb2 (xor variant) over UTF-16 code units with 32-bit wraparound.
    Must stay bit-for-bit stable: changing it reshuffles every featured puzzle.
    """
    h = 5381
    raw = text.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = _to_int32(_to_int32(h << 5) + h) ^ unit
    return abs(h)


def _require(pool: Pool, difficulty: Optional[str]) -> None:
    if not pool:
        raise NoPuzzlesAvailable(difficulty)


def featured_index(pool_size: int, difficulty: str, date_iso: str) -> int:
    if pool_size == 1:
        return 0
    today = stable_hash(f"{difficulty}:{date_iso}") % pool_size
    yesterday = stable_hash(f"{difficulty}:{previous_date_iso(date_iso)}") % pool_size
    # don't show yesterday's puzzle two days running
    if today == yesterday:
        today = (today + 1) % pool_size
    return today


def featured_puzzle(pool: Pool, difficulty: str, date_iso: str) -> NonogramPuzzle:
    """The puzzle designated for (difficulty, date). Raises NoPuzzlesAvailable on an empty pool."""
    _require(pool, difficulty)
    return pool[featured_index(len(pool), difficulty, date_iso)]


def daily_puzzle(pool: Pool, date_iso: str, difficulty: Optional[str] = None) -> NonogramPuzzle:
    """Same puzzle for everyone: days since 2024-01-01, cycled through the pool."""
    _require(pool, difficulty)
    d = parse_iso_date(date_iso)
    if d is None:
        raise ValueError(f"not an ISO date: {date_iso!r}")
    return pool[(d - DAILY_EPOCH).days % len(pool)]


def next_unseen_puzzle(
    pool: Pool,
    difficulty: str,
    date_iso: str,
    seen_ids: Iterable[str],
    anchor: Optional[NonogramPuzzle] = None,
) -> NonogramPuzzle:
    """
    - anchor given and unseen: return it unchanged (stay put).
    - otherwise scan forward from anchor (or today's featured puzzle), wrapping,
      for the first unseen entry.
    - everything seen: return anchor or pool[0]; the caller is expected to reset its seen set.
    """
    _require(pool, difficulty)
    seen = set(seen_ids)

    if anchor is not None and anchor.id not in seen:
        return anchor

    start = anchor if anchor is not None else featured_puzzle(pool, difficulty, date_iso)
    start_index = max(index_in_pool(pool, start.id), 0)

    n = len(pool)
    for offset in range(n):
        candidate = pool[(start_index + offset) % n]
        if candidate.id not in seen:
            return candidate

    return anchor if anchor is not None else pool[0]


def resolve_pool(store: NonogramStore, difficulty: Optional[str], fallback: str = "easy") -> Tuple[str, Pool]:
    """
    (effective_difficulty, pool) for a requested tier.
    Empty tier -> the fallback tier, then the easiest non-empty tier.
    Raises NoPuzzlesAvailable only when the whole catalog is empty.
    """
    lvl = normalize_level(difficulty)
    if store.has_puzzles(lvl):
        return lvl, store.pool(lvl)

    for candidate in (normalize_level(fallback),) + DIFFICULTIES:
        if store.has_puzzles(candidate):
            logger.info("difficulty %s has no puzzles; falling back to %s", lvl, candidate)
            return candidate, store.pool(candidate)

    raise NoPuzzlesAvailable(lvl)


def select_puzzle(pool: Pool, difficulty: str, date_iso: str, mode: str = "featured") -> NonogramPuzzle:
    """Default puzzle for the day under the configured selection mode."""
    if mode == "daily":
        return daily_puzzle(pool, date_iso, difficulty)
    return featured_puzzle(pool, difficulty, date_iso)
