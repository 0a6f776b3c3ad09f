# nonogram/games/core/rotation.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence
import logging

from nonogram.errors import NoPuzzlesAvailable
from .coerce_utils import coerce_id_list
from .kv_storage import KeyValueStorage, read_json, write_json
from .puzzle_store_nonogram import NonogramPuzzle

logger = logging.getLogger(__name__)


@dataclass
class RotationRecord:
    """
    Ids already handed out in one scope (per difficulty, or per difficulty+day).
    Ids of puzzles that left the catalog may linger; counts filter against the live pool.
    """
    used_ids: List[str] = field(default_factory=list)
    last_id: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "RotationRecord":
        # the per-day seen record was once stored as a bare list of ids
        if isinstance(data, list):
            return cls(used_ids=coerce_id_list(data))
        if not isinstance(data, dict) or not isinstance(data.get("usedIds"), list):
            return cls()
        last = data.get("lastId")
        return cls(used_ids=coerce_id_list(data["usedIds"]), last_id=last if isinstance(last, str) else None)

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"usedIds": list(self.used_ids)}
        if self.last_id is not None:
            out["lastId"] = self.last_id
        return out


class PoolStatus(NamedTuple):
    used: int
    total: int
    remaining: int


def rotation_key(difficulty: str) -> str:
    """Per-difficulty rotation; persists across days until the pool is exhausted."""
    return f"nonogram:rotate:{difficulty}:v1"


def seen_key(difficulty: str, date_iso: str) -> str:
    """Per-day seen set used by the 'new puzzle' flow."""
    return f"nonogram:seen:{difficulty}:{date_iso}:v1"


def load_rotation(storage: KeyValueStorage, key: str) -> RotationRecord:
    return RotationRecord.from_json(read_json(storage, key))


def save_rotation(storage: KeyValueStorage, key: str, record: RotationRecord) -> bool:
    return write_json(storage, key, record.to_json())


def pick_from_rotation_pool(storage: KeyValueStorage, pool: Sequence[NonogramPuzzle], key: str) -> NonogramPuzzle:
    """
    Next puzzle with no repeats until the pool is exhausted.
    Picks the first unused entry in pool order; once everything was used the
    record restarts as [pool[0]] and pool[0] is returned (wraparound, not an error).
    """
    if not pool:
        raise NoPuzzlesAvailable()

    record = load_rotation(storage, key)
    used = set(record.used_ids)
    remaining = [p for p in pool if p.id not in used]

    if remaining:
        picked = remaining[0]
        record.used_ids.append(picked.id)
        record.last_id = picked.id
        save_rotation(storage, key, record)
        logger.debug("rotation %s -> %s (%d left)", key, picked.id, len(remaining) - 1)
        return picked

    picked = pool[0]
    save_rotation(storage, key, RotationRecord(used_ids=[picked.id], last_id=picked.id))
    logger.info("rotation %s exhausted; restarting at %s", key, picked.id)
    return picked


def pool_status(storage: KeyValueStorage, pool: Sequence[NonogramPuzzle], key: str) -> PoolStatus:
    record = load_rotation(storage, key)
    live = {p.id for p in pool}
    used = len({i for i in record.used_ids if i in live})
    total = len(pool)
    return PoolStatus(used=used, total=total, remaining=max(0, total - used))


def mark_seen(storage: KeyValueStorage, key: str, puzzle_id: str) -> RotationRecord:
    """Add an id to a seen record (de-duplicated) and persist it."""
    record = load_rotation(storage, key)
    if puzzle_id not in record.used_ids:
        record.used_ids.append(puzzle_id)
    record.last_id = puzzle_id
    save_rotation(storage, key, record)
    return record
