import json

from nonogram.games.core.game_core import (
    STATS_KEY,
    clear_solved_marker,
    history_stats,
    load_stats,
    record_solve,
    stats_payload,
)
from nonogram.games.core.rotation import mark_seen, seen_key
from nonogram.games.core.session_store import AttemptRecord
from nonogram.games.core.grid import create_empty_grid


def test_record_solve_counts_once_per_puzzle(storage):
    assert record_solve(storage, "easy", "e1", "2025-03-10") is True
    assert record_solve(storage, "easy", "e1", "2025-03-10") is False

    stats = load_stats(storage)
    assert stats["totalSolved"] == 1
    assert stats["totalSolvedByDifficulty"] == {"easy": 1, "medium": 0, "hard": 0}
    assert stats["solvedToday"] == 1


def test_clearing_the_marker_allows_another_count(storage):
    record_solve(storage, "easy", "e1", "2025-03-10")
    clear_solved_marker(storage, "easy", "e1")
    assert record_solve(storage, "easy", "e1", "2025-03-10") is True
    assert load_stats(storage)["totalSolved"] == 2


def test_solved_today_resets_on_a_new_day(storage, store):
    record_solve(storage, "easy", "e1", "2025-03-10")
    record_solve(storage, "easy", "e2", "2025-03-11")
    stats = load_stats(storage)
    assert stats["solvedToday"] == 1
    assert stats["totalSolved"] == 2

    payload = stats_payload(storage, store, "2025-03-12")
    assert payload["solvedToday"] == 0
    assert payload["lastSolvedDateISO"] == "2025-03-12"


def test_load_stats_migrates_partial_records(storage):
    storage.set(STATS_KEY, json.dumps({"totalSolved": 4, "totalSolvedByDifficulty": {"easy": "x", "hard": 2},
                                       "solvedToday": True, "lastSolvedDateISO": "yesterday"}))
    stats = load_stats(storage)
    assert stats["totalSolved"] == 4
    assert stats["totalSolvedByDifficulty"] == {"easy": 0, "medium": 0, "hard": 2}
    assert stats["solvedToday"] == 0
    assert stats["lastSolvedDateISO"] is None


def test_seen_today_counts_only_live_puzzles(storage, store):
    key = seen_key("easy", "2025-03-10")
    for pid in ("e1", "e3", "retired"):
        mark_seen(storage, key, pid)
    payload = stats_payload(storage, store, "2025-03-10")
    assert payload["seenTodayByDifficulty"] == {"easy": 2, "medium": 0, "hard": 0}


def test_history_stats(sessions, clock):
    grid = create_empty_grid(3)
    sessions.save("easy", "2025-03-09", AttemptRecord(grid=grid, status="solved"), puzzle_id="e1")
    sessions.save("easy", "2025-03-10", AttemptRecord(grid=grid), puzzle_id="e2")
    sessions.save("medium", "2025-03-10", AttemptRecord(grid=create_empty_grid(4), status="solved"), puzzle_id="m1")

    out = history_stats(sessions)
    assert out["totalPlayed"] == 3
    assert out["totalSolved"] == 2
    assert out["byDifficulty"]["easy"] == {"played": 2, "solved": 1}
    assert out["oldestDate"] == "2025-03-09"
    assert out["newestDate"] == "2025-03-10"

    one_day = history_stats(sessions, "2025-03-10")
    assert one_day["totalPlayed"] == 2
    assert one_day["totalSolved"] == 1
    assert one_day["byDifficulty"]["easy"] == {"played": 1, "solved": 0}
    assert one_day["oldestDate"] == one_day["newestDate"] == "2025-03-10"
