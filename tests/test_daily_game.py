import pytest

from nonogram.games.core.kv_storage import MemoryStorage
from nonogram.games.core.selection import featured_puzzle
from nonogram.games.daily.daily_game import DailyGame


@pytest.fixture
def game(storage, store, clock):
    return DailyGame(storage, store, today=clock.today, now=clock.now)


def test_mount_shows_featured_puzzle(game, store, clock):
    m = game.mount("easy")
    assert m.puzzle is featured_puzzle(store.pool("easy"), "easy", clock.date)
    assert game.remaining().remaining == 2


def test_new_puzzle_visits_every_puzzle_then_restarts_at_featured(game, store, clock):
    featured = game.mount("easy").puzzle
    shown = [featured.id] + [game.new_puzzle().puzzle.id for _ in range(2)]
    assert sorted(shown) == ["e1", "e2", "e3"]
    assert game.remaining().remaining == 0

    assert game.new_puzzle().puzzle.id == featured.id
    assert game.remaining().remaining == 2


def test_new_puzzle_survives_a_reload(storage, store, clock, game):
    game.mount("easy")
    picked = game.new_puzzle().puzzle.id

    reloaded = DailyGame(storage, store, today=clock.today, now=clock.now)
    assert reloaded.mount("easy").puzzle.id == picked


def test_rotation_policy_never_repeats_the_current_puzzle(store, clock):
    pool_ids = {p.id for p in store.pool("easy")}
    for day in range(1, 29):
        date_iso = f"2025-02-{day:02d}"
        game = DailyGame(MemoryStorage(), store, today=lambda d=date_iso: d, now=clock.now,
                         new_puzzle_policy="rotation")
        shown = [game.mount("easy").puzzle.id]
        for _ in range(4):
            nxt = game.new_puzzle().puzzle.id
            assert nxt != shown[-1], date_iso
            shown.append(nxt)
        assert set(shown[:3]) == pool_ids, date_iso


def test_new_puzzle_moves_on_when_storage_is_unavailable(store, clock):
    game = DailyGame(MemoryStorage(disabled=True), store, today=clock.today, now=clock.now)
    first = game.mount("easy").puzzle.id
    second = game.new_puzzle().puzzle.id
    assert second != first
    assert game.machine.puzzle.id == second

    rotating = DailyGame(MemoryStorage(disabled=True), store, today=clock.today, now=clock.now,
                         new_puzzle_policy="rotation")
    current = rotating.mount("easy").puzzle.id
    assert rotating.new_puzzle().puzzle.id != current


def test_switch_leaves_the_previous_attempt_untouched(game, store):
    easy = game.mount("easy")
    grid = easy.puzzle.solution_lists()
    grid[0] = [0] * len(grid[0])
    easy.edit(grid)

    medium = game.switch("medium")
    assert medium.difficulty == "medium"
    assert medium.puzzle.size == 4
    assert medium.flags is not easy.flags

    back = game.switch("easy")
    assert back.restored is True
    assert back.grid == grid


def test_empty_tier_falls_back(game):
    m = game.switch("hard")
    assert m.difficulty == "easy"


def test_day_rollover_remounts_on_the_new_puzzle(game, clock):
    first = game.mount("easy")
    first.edit(first.puzzle.solution_lists())

    clock.date = "2025-03-11"
    nxt = game.current()
    assert nxt is not first
    assert nxt.date_iso == "2025-03-11"
    assert nxt.difficulty == "easy"
    assert nxt.status == "in_progress"
    assert nxt.notification_visible is False


def test_daily_selection_mode(storage, store):
    game = DailyGame(storage, store, today=lambda: "2024-01-02", selection_mode="daily")
    assert game.mount("easy").puzzle.id == "e2"


def test_snapshot_reports_pool(game):
    game.mount("medium")
    snap = game.snapshot()
    assert snap["poolTotal"] == 2
    assert snap["remaining"] == 1
    assert snap["availableDifficulties"] == ["easy", "medium"]
