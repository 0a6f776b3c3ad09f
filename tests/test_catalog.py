import pytest

from nonogram.db import db
from nonogram.games.core.puzzle_store_nonogram import NonogramStore, build_puzzle, get_store, warmup_store
from nonogram.models import PuzzleRow


def test_bundled_catalog_loads_every_tier():
    store = NonogramStore(use_db=False)
    store.load()
    assert store.loaded_from == "json"
    assert store.pool_report() == {"easy": 6, "medium": 4, "hard": 3}
    assert {p.size for p in store.pool("medium")} == {10}
    assert store.get_by_id("easy-06").solution[0] == (1, 1, 1, 1, 1)


def test_invalid_and_duplicate_entries_are_skipped():
    store = NonogramStore(use_db=False)
    store.load_entries({
        "easy": [
            {"id": "ok", "solution": ["10", "01"]},
            {"id": "ok", "solution": ["11", "11"]},
            {"id": "ragged", "solution": ["10", "0"]},
            {"id": "", "solution": ["10", "01"]},
            {"id": "bad-cell", "solution": ["12", "01"]},
            {"id": "size-mismatch", "size": 3, "solution": ["10", "01"]},
            "not an object",
        ],
        "medium": "not a list",
    })
    assert [p.id for p in store.pool("easy")] == ["ok"]
    assert store.get_by_id("ok").solution == ((1, 0), (0, 1))
    assert store.has_puzzles("medium") is False
    assert store.index_of("easy", "ok") == 0
    assert store.index_of("easy", "missing") == -1


def test_build_puzzle_rejects_bad_shapes():
    with pytest.raises(ValueError):
        build_puzzle({"id": "x", "solution": [[1, 0], [0]]}, "easy")
    p = build_puzzle({"id": " x ", "name": "", "solution": [[1]]}, "hard")
    assert (p.id, p.name, p.size, p.difficulty) == ("x", None, 1, "hard")


def test_store_prefers_database_rows(app):
    with app.app_context():
        db.session.add_all([
            PuzzleRow(external_id="db-2", difficulty="easy", size=2, solution_json=[[1, 1], [0, 0]], position=2),
            PuzzleRow(external_id="db-1", difficulty="easy", size=2, solution_json=[[1, 0], [0, 1]], position=1),
            PuzzleRow(external_id="db-off", difficulty="easy", size=2, solution_json=[[1, 0], [0, 1]],
                      position=0, is_active=False),
            PuzzleRow(external_id="db-bad", difficulty="hard", size=3, solution_json=[[1]], position=0),
        ])
        db.session.commit()

        warmup_store(force=True)
        store = get_store(load=False)
        assert store.loaded_from == "db"
        assert [p.id for p in store.pool("easy")] == ["db-1", "db-2"]
        assert store.pool("hard") == ()
