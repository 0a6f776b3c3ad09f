import pytest

from nonogram import create_app
from nonogram.config import TestingConfig
from nonogram.games.core.kv_storage import MemoryStorage
from nonogram.games.core.puzzle_store_nonogram import NonogramStore, get_store
from nonogram.games.core.session_store import SessionStore
from nonogram.games.daily import daily_routes

CATALOG = {
    "easy": [
        {"id": "e1", "name": "Hook", "solution": ["110", "010", "011"]},
        {"id": "e2", "name": "Bars", "solution": ["111", "000", "111"]},
        {"id": "e3", "name": "Slash", "solution": ["100", "010", "001"]},
    ],
    "medium": [
        {"id": "m1", "name": "Ring", "solution": ["1111", "1001", "1001", "1111"]},
        {"id": "m2", "name": "Blob", "solution": ["0110", "1111", "1111", "0110"]},
    ],
    "hard": [],
}


class Clock:
    """Controllable calendar day and wall clock."""

    def __init__(self, date="2025-03-10", t=1000.0):
        self.date = date
        self.t = t

    def today(self):
        return self.date

    def now(self):
        return self.t


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store():
    s = NonogramStore(use_db=False)
    s.load_entries(CATALOG)
    return s


@pytest.fixture
def sessions(storage, clock):
    return SessionStore(storage, today=clock.today)


@pytest.fixture
def app(clock, monkeypatch):
    app = create_app(TestingConfig)
    with app.app_context():
        get_store(load=False).load_entries(CATALOG)
    monkeypatch.setattr(daily_routes, "_today", clock.today)
    daily_routes.SESSIONS.clear()
    yield app
    daily_routes.SESSIONS.clear()


@pytest.fixture
def client(app):
    c = app.test_client()
    c.environ_base["HTTP_X_PLAYER_ID"] = "player-1"
    return c
