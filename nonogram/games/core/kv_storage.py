# nonogram/games/core/kv_storage.py
"""
Host key-value storage: the per-player equivalent of a browser's local storage.

Two backends:
  MemoryStorage - dict in this process (tests, memory-only play)
  SqlStorage    - rows in nonogram_kv, one namespace per player id

Every backend raises StorageUnavailable for a refused read or write; the game
layers above decide whether to swallow it.
"""
from __future__ import annotations
from typing import Dict, List, Optional
import json, logging

from sqlalchemy.exc import SQLAlchemyError

from nonogram.db import db
from nonogram.errors import StorageUnavailable
from nonogram.models import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """Interface. Values are strings; callers serialize."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    def __init__(self, quota_bytes: Optional[int] = None, disabled: bool = False):
        self.data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.disabled = disabled

    def _check(self) -> None:
        if self.disabled:
            raise StorageUnavailable("storage disabled")

    def _used_bytes(self, replacing: Optional[str] = None) -> int:
        return sum(len(k) + len(v) for k, v in self.data.items() if k != replacing)

    def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check()
        if self.quota_bytes is not None:
            if self._used_bytes(replacing=key) + len(key) + len(value) > self.quota_bytes:
                raise StorageUnavailable(f"quota exceeded writing {key}")
        self.data[key] = value

    def remove(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)

    def keys(self) -> List[str]:
        self._check()
        return list(self.data.keys())


class SqlStorage(KeyValueStorage):
    """One player's slice of the nonogram_kv table."""

    def __init__(self, player_id: str):
        self.player_id = str(player_id)[:64]

    def _row(self, key: str) -> Optional[KeyValueEntry]:
        return KeyValueEntry.query.filter_by(player_id=self.player_id, key=key).first()

    def get(self, key: str) -> Optional[str]:
        try:
            row = self._row(key)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable(str(e)) from e
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        try:
            row = self._row(key)
            if row:
                row.value = value
            else:
                db.session.add(KeyValueEntry(player_id=self.player_id, key=key, value=value))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable(str(e)) from e

    def remove(self, key: str) -> None:
        try:
            KeyValueEntry.query.filter_by(player_id=self.player_id, key=key).delete()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable(str(e)) from e

    def keys(self) -> List[str]:
        try:
            rows = (db.session.query(KeyValueEntry.key)
                    .filter(KeyValueEntry.player_id == self.player_id)
                    .order_by(KeyValueEntry.id.asc())
                    .all())
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable(str(e)) from e
        return [r[0] for r in rows]


def all_player_ids() -> List[str]:
    """Distinct players with anything stored (retention sweep)."""
    try:
        rows = db.session.query(KeyValueEntry.player_id).distinct().all()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageUnavailable(str(e)) from e
    return [r[0] for r in rows]


# ---- JSON helpers shared by the stores ----

def read_json(storage: KeyValueStorage, key: str):
    """Parsed JSON or None. Unavailable storage and unparseable text both read as absent."""
    try:
        raw = storage.get(key)
    except StorageUnavailable as e:
        logger.warning("read %s failed: %s", key, e)
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("discarding unparseable value at %s", key)
        return None


def write_json(storage: KeyValueStorage, key: str, value) -> bool:
    """Best-effort write; False when the storage refused it."""
    try:
        storage.set(key, json.dumps(value, separators=(",", ":")))
        return True
    except StorageUnavailable as e:
        logger.warning("write %s failed, continuing in memory: %s", key, e)
        return False


def remove_key(storage: KeyValueStorage, key: str) -> bool:
    try:
        storage.remove(key)
        return True
    except StorageUnavailable as e:
        logger.warning("remove %s failed: %s", key, e)
        return False
