# nonogram/games/daily/daily_routes.py
from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, make_response, redirect, request, url_for

from nonogram import limiter
from nonogram.errors import NoPuzzlesAvailable
from nonogram.games.core.coerce_utils import coerce_int, today_iso
from nonogram.games.core.game_core import get_or_create_player_id, history_stats, stats_payload
from nonogram.games.core.kv_storage import SqlStorage
from nonogram.games.core.puzzle_store_nonogram import get_store
from .daily_game import DailyGame

logger = logging.getLogger(__name__)
bp = Blueprint("daily", __name__, url_prefix="/games/nonogram")

# --------- per-player games (in-memory, keyed by player cookie) ----------
SESSIONS: Dict[str, DailyGame] = {}

PLAYER_COOKIE = "player_id"
COOKIE_MAX_AGE = 60 * 60 * 24 * 365


# -----------------------------------------------------------------------------
# Small per-request helpers
# -----------------------------------------------------------------------------
def _pid() -> str:
    return get_or_create_player_id(request)


def _today() -> str:
    return today_iso()


def _new_game(pid: str) -> DailyGame:
    cfg = current_app.config
    return DailyGame(
        SqlStorage(pid),
        get_store(),
        today=lambda: _today(),
        selection_mode=cfg.get("NONOGRAM_SELECTION_MODE", "featured"),
        new_puzzle_policy=cfg.get("NONOGRAM_NEW_PUZZLE_POLICY", "daily_seen"),
        default_difficulty=cfg.get("NONOGRAM_DEFAULT_DIFFICULTY", "easy"),
    )


def _game(pid: str) -> DailyGame:
    """The player's game; a missing entry (server restart) behaves like a page reload."""
    game = SESSIONS.get(pid)
    if game is None or game.store is not get_store(load=False):
        game = SESSIONS[pid] = _new_game(pid)
    return game


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _respond(pid: str, payload: Dict[str, Any], status: int = 200):
    resp = make_response(jsonify(payload), status)
    if request.cookies.get(PLAYER_COOKIE) != pid:
        resp.set_cookie(PLAYER_COOKIE, pid, max_age=COOKIE_MAX_AGE, httponly=True, samesite="Lax")
    return resp


def _state_response(pid: str, game: DailyGame, **extra):
    payload = {"ok": True, **extra, "state": game.snapshot()}
    return _respond(pid, payload)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
@bp.errorhandler(NoPuzzlesAvailable)
def _no_puzzles(e: NoPuzzlesAvailable):
    logger.error("catalog empty: %s", e)
    return jsonify({"ok": False, "error": str(e)}), 503


@bp.errorhandler(ValueError)
def _bad_input(e: ValueError):
    logger.info("rejected request to %s: %s", request.path, e)
    return jsonify({"ok": False, "error": str(e)}), 400


# -----------------------------------------------------------------------------
# Page routes
# -----------------------------------------------------------------------------
@bp.get("/")
def index():
    return redirect(url_for("daily.play"))


@bp.get("/play")
def play():
    """Page load: a fresh machine for today's puzzle in the requested (or current) tier."""
    pid = _pid()
    game = _game(pid)
    difficulty = request.args.get("difficulty")
    machine = game.mount(difficulty)
    logger.info("[Play] player=%s %s/%s %s restored=%s", pid, machine.difficulty,
                machine.date_iso, machine.puzzle.id, machine.restored)
    return _state_response(pid, game, restored=machine.restored)


# -----------------------------------------------------------------------------
# API
# -----------------------------------------------------------------------------
@bp.post("/api/edit")
@limiter.limit(lambda: current_app.config.get("NONOGRAM_EDIT_LIMIT", "600 per minute"))
def api_edit():
    pid = _pid()
    game = _game(pid)
    grid = _body().get("grid")
    if grid is None:
        raise ValueError("missing grid")
    applied = game.current().edit(grid)
    return _state_response(pid, game, applied=applied)


@bp.post("/api/undo")
def api_undo():
    pid = _pid()
    game = _game(pid)
    applied = game.current().undo()
    return _state_response(pid, game, applied=applied)


@bp.post("/api/redo")
def api_redo():
    pid = _pid()
    game = _game(pid)
    applied = game.current().redo()
    return _state_response(pid, game, applied=applied)


@bp.post("/api/restart")
def api_restart():
    pid = _pid()
    game = _game(pid)
    game.current().restart()
    return _state_response(pid, game)


@bp.post("/api/dismiss")
def api_dismiss():
    pid = _pid()
    game = _game(pid)
    applied = game.current().dismiss()
    return _state_response(pid, game, applied=applied)


@bp.post("/api/switch")
def api_switch():
    pid = _pid()
    game = _game(pid)
    difficulty = _body().get("difficulty")
    if not isinstance(difficulty, str) or not difficulty.strip():
        raise ValueError("missing difficulty")
    game.switch(difficulty.strip().lower())
    return _state_response(pid, game)


@bp.post("/api/new")
def api_new():
    pid = _pid()
    game = _game(pid)
    game.new_puzzle()
    return _state_response(pid, game)


@bp.post("/api/tick")
def api_tick():
    """Timer heartbeat. The server clock is authoritative; the client's count is only logged."""
    pid = _pid()
    game = _game(pid)
    client_seconds = coerce_int(_body().get("seconds"), default=-1)
    elapsed = game.current().heartbeat()
    if client_seconds >= 0 and abs(client_seconds - elapsed) > 5:
        logger.debug("tick drift player=%s client=%s server=%s", pid, client_seconds, elapsed)
    return _state_response(pid, game)


@bp.get("/api/state")
def api_state():
    pid = _pid()
    return _state_response(pid, _game(pid))


@bp.get("/api/stats")
def api_stats():
    pid = _pid()
    game = _game(pid)
    payload = stats_payload(game.storage, game.store, game.today())
    payload["history"] = history_stats(game.sessions, request.args.get("date"))
    return _respond(pid, {"ok": True, "stats": payload})


@bp.get("/api/pool_status")
def api_pool_status():
    pid = _pid()
    game = _game(pid)
    status = game.remaining()
    machine = game.current()
    return _respond(pid, {
        "ok": True,
        "difficulty": machine.difficulty,
        "policy": game.new_puzzle_policy,
        "used": status.used,
        "total": status.total,
        "remaining": status.remaining,
    })
