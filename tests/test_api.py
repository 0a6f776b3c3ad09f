from nonogram.games.core.puzzle_store_nonogram import get_store
from nonogram.games.daily import daily_routes


def _solution(app, puzzle_id):
    with app.app_context():
        return get_store().get_by_id(puzzle_id).solution_lists()


def test_index_redirects_to_play(client):
    resp = client.get("/games/nonogram/")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/games/nonogram/play")


def test_play_returns_snapshot_and_sets_player_cookie(app):
    c = app.test_client()
    resp = c.get("/games/nonogram/play?difficulty=easy")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["ok"] is True
    assert body["state"]["difficulty"] == "easy"
    assert body["state"]["status"] == "in_progress"
    assert "player_id=" in resp.headers.get("Set-Cookie", "")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_solve_then_reload_shows_solved_without_notification(app, client):
    state = client.get("/games/nonogram/play?difficulty=easy").get_json()["state"]
    solution = _solution(app, state["puzzleId"])

    solved = client.post("/games/nonogram/api/edit", json={"grid": solution}).get_json()["state"]
    assert solved["status"] == "solved"
    assert solved["notificationVisible"] is True
    assert solved["locked"] is True

    reloaded = client.get("/games/nonogram/play").get_json()
    assert reloaded["restored"] is True
    assert reloaded["state"]["status"] == "solved"
    assert reloaded["state"]["notificationVisible"] is False

    stats = client.get("/games/nonogram/api/stats").get_json()["stats"]
    assert stats["totalSolved"] == 1
    assert stats["history"]["totalSolved"] == 1

    assert client.get("/games/nonogram/api/stats?date=2025-03-10").get_json()["stats"]["history"]["totalPlayed"] == 1
    assert client.get("/games/nonogram/api/stats?date=2025-03-09").get_json()["stats"]["history"]["totalPlayed"] == 0


def test_state_survives_losing_the_in_memory_game(app, client):
    state = client.get("/games/nonogram/play?difficulty=easy").get_json()["state"]
    grid = [[0] * state["size"] for _ in range(state["size"])]
    grid[0][0] = 2
    client.post("/games/nonogram/api/edit", json={"grid": grid})

    daily_routes.SESSIONS.clear()
    again = client.get("/games/nonogram/api/state").get_json()["state"]
    assert again["grid"] == grid
    assert again["canUndo"] is True


def test_undo_redo_restart_dismiss(app, client):
    state = client.get("/games/nonogram/play?difficulty=easy").get_json()["state"]
    solution = _solution(app, state["puzzleId"])
    client.post("/games/nonogram/api/edit", json={"grid": solution})

    assert client.post("/games/nonogram/api/dismiss").get_json()["state"]["notificationVisible"] is False
    assert client.post("/games/nonogram/api/undo").get_json()["state"]["status"] == "in_progress"
    assert client.post("/games/nonogram/api/redo").get_json()["state"]["status"] == "solved"

    restarted = client.post("/games/nonogram/api/restart").get_json()["state"]
    assert restarted["status"] == "in_progress"
    assert restarted["canUndo"] is False


def test_bad_grid_is_rejected(client):
    client.get("/games/nonogram/play?difficulty=easy")
    resp = client.post("/games/nonogram/api/edit", json={"grid": [[0]]})
    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False

    resp = client.post("/games/nonogram/api/edit", json={})
    assert resp.status_code == 400


def test_switch_and_new_puzzle(client):
    client.get("/games/nonogram/play?difficulty=easy")
    medium = client.post("/games/nonogram/api/switch", json={"difficulty": "medium"}).get_json()["state"]
    assert medium["difficulty"] == "medium"
    assert medium["size"] == 4

    nxt = client.post("/games/nonogram/api/new").get_json()["state"]
    assert nxt["puzzleId"] != medium["puzzleId"]
    assert nxt["remaining"] == 0

    status = client.get("/games/nonogram/api/pool_status").get_json()
    assert (status["used"], status["total"], status["remaining"]) == (2, 2, 0)

    assert client.post("/games/nonogram/api/switch", json={}).status_code == 400


def test_day_rollover_moves_to_new_day(app, client, clock):
    client.get("/games/nonogram/play?difficulty=easy")
    clock.date = "2025-03-11"
    state = client.get("/games/nonogram/api/state").get_json()["state"]
    assert state["date"] == "2025-03-11"
    assert state["status"] == "in_progress"


def test_tick_persists_timer(client):
    client.get("/games/nonogram/play?difficulty=easy")
    resp = client.post("/games/nonogram/api/tick", json={"seconds": 3})
    assert resp.status_code == 200
    assert resp.get_json()["state"]["elapsedSeconds"] >= 0


def test_players_are_isolated(app, client):
    state = client.get("/games/nonogram/play?difficulty=easy").get_json()["state"]
    client.post("/games/nonogram/api/edit", json={"grid": _solution(app, state["puzzleId"])})

    other = app.test_client()
    other.environ_base["HTTP_X_PLAYER_ID"] = "player-2"
    fresh = other.get("/games/nonogram/play?difficulty=easy").get_json()["state"]
    assert fresh["status"] == "in_progress"
    assert other.get("/games/nonogram/api/stats").get_json()["stats"]["totalSolved"] == 0


def test_empty_catalog_returns_503(app, client):
    with app.app_context():
        get_store(load=False).load_entries({})
    resp = client.get("/games/nonogram/play")
    assert resp.status_code == 503
    assert resp.get_json()["ok"] is False
