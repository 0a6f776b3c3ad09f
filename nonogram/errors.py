# nonogram/errors.py
"""
Error taxonomy for the game-progress core.

None of these are meant to reach the player: routes and stores recover from
them locally (fallback pool, fresh attempt, memory-only play).
"""


class NoPuzzlesAvailable(LookupError):
    """A difficulty pool (or the whole catalog) has no puzzles."""

    def __init__(self, difficulty: str | None = None):
        self.difficulty = difficulty
        msg = f"No puzzles available for difficulty: {difficulty}" if difficulty else "No puzzles available"
        super().__init__(msg)


class CorruptPersistedRecord(ValueError):
    """Stored JSON failed to parse or failed shape validation."""


class StorageUnavailable(RuntimeError):
    """The host key-value storage refused a read/write (quota, disabled, DB down)."""
