# nonogram/models.py
from datetime import datetime, timezone
from sqlalchemy import func
from .db import db


def _utcnow():
    return datetime.now(timezone.utc)


class PuzzleRow(db.Model):
    """Authored catalog entry. The bundled puzzles.json is the fallback when this table is empty."""
    __tablename__ = "nonogram_puzzles"

    id            = db.Column(db.Integer, primary_key=True)
    external_id   = db.Column(db.Text, nullable=False, unique=True)   # PuzzleEntry.id, stable across sessions
    name          = db.Column(db.Text)
    difficulty    = db.Column(db.String(16), nullable=False, default="easy")
    size          = db.Column(db.Integer, nullable=False)
    solution_json = db.Column(db.JSON, nullable=False)                # N x N of 0/1
    position      = db.Column(db.Integer, nullable=False, default=0)  # pool order (rotation + hash tiebreak)
    is_active     = db.Column(db.Boolean, nullable=False, default=True)
    created_at    = db.Column(db.DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<PuzzleRow id={self.id} external_id={self.external_id!r} difficulty={self.difficulty}>"


class KeyValueEntry(db.Model):
    """
    One player's key-value store (the server-side stand-in for browser local storage).
    Values are opaque strings; the game layers put JSON in them.
    """
    __tablename__  = "nonogram_kv"
    __table_args__ = (
        db.UniqueConstraint("player_id", "key", name="uq_nonogram_kv_player_key"),
    )

    id         = db.Column(db.BigInteger().with_variant(db.Integer, "sqlite"), primary_key=True)
    player_id  = db.Column(db.String(64), nullable=False, index=True)
    key        = db.Column(db.String(255), nullable=False)
    value      = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<KeyValueEntry player_id={self.player_id!r} key={self.key!r}>"
