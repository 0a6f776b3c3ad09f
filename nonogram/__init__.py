# nonogram/__init__.py
from __future__ import annotations
import os, secrets
import logging
import click
from flask import Flask

from .db import db
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# --- extensions ---
migrate = Migrate()
# in-memory limiter; point RATELIMIT_STORAGE_URI at redis in prod
limiter = Limiter(get_remote_address, storage_uri="memory://")


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)

    # ---------------------------
    # Config
    # ---------------------------
    app.config.from_object(config_object or os.getenv("NONOGRAM_CONFIG", "nonogram.config.Config"))
    app.config.from_pyfile("config.py", silent=True)  # instance/config.py (optional)

    app.config.setdefault(
        "SQLALCHEMY_DATABASE_URI",
        os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL") or "sqlite:///nonogram.db"
    )
    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    app.config.setdefault("NONOGRAM_WARMUP", True)
    app.config.setdefault("NONOGRAM_RETENTION_DAYS", 30)
    app.config.setdefault("NONOGRAM_CREATE_TABLES", False)

    if not app.config.get("SECRET_KEY"):
        app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY") or secrets.token_hex(32)

    # ---------------------------
    # Logging
    # ---------------------------
    level = logging.DEBUG if app.debug else logging.INFO
    app.logger.setLevel(level)
    for name in ("nonogram", "nonogram.games", "nonogram.games.core", "nonogram.games.daily"):
        logging.getLogger(name).setLevel(level)

    # ---------------------------
    # Extensions init
    # ---------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    from . import models  # noqa: F401  (register tables before create_all / migrate)

    # ---------------------------
    # Blueprints
    # ---------------------------
    from .games.daily.daily_routes import bp as daily_bp
    app.register_blueprint(daily_bp)

    # ---------------------------
    # Startup: tables, catalog warmup, retention sweep
    # ---------------------------
    with app.app_context():
        if app.config.get("NONOGRAM_CREATE_TABLES"):
            db.create_all()

        if app.config.get("NONOGRAM_WARMUP", True):
            from .games.core.puzzle_store_nonogram import warmup_store, get_store
            warmup_store(force=False)
            app.logger.info("Nonogram puzzle store warmed up at startup: %s", get_store(load=False).pool_report())

        if app.config.get("NONOGRAM_CLEANUP_ON_START", True):
            removed = sweep_expired_attempts(app.config["NONOGRAM_RETENTION_DAYS"])
            app.logger.info("Startup cleanup removed %d stale attempt(s).", removed)

    # ---------------------------
    # CLI commands
    # ---------------------------
    @app.cli.command("nonogram-rebuild-store")
    def nonogram_rebuild_store():
        """Rebuild the puzzle catalog from DB (fallback to JSON)."""
        from .games.core.puzzle_store_nonogram import warmup_store, get_store
        with app.app_context():
            warmup_store(force=True)
            store = get_store(load=False)
            click.echo(f"Rebuilt nonogram store from {store.loaded_from}. Pools: {store.pool_report()}")

    @app.cli.command("nonogram-stats")
    def nonogram_stats():
        """Print catalog stats."""
        from .games.core.puzzle_store_nonogram import get_store
        with app.app_context():
            store = get_store()
            sizes = sorted({p.size for p in store.by_id.values()})
            click.echo(f"Nonogram puzzles loaded: total={len(store.by_id)}, sizes={sizes}, pools={store.pool_report()}")

    @app.cli.command("nonogram-cleanup")
    @click.option("--days", type=int, default=None, help="Retention window (defaults to NONOGRAM_RETENTION_DAYS).")
    def nonogram_cleanup(days):
        """Remove stored attempts older than the retention window."""
        with app.app_context():
            removed = sweep_expired_attempts(days if days is not None else app.config["NONOGRAM_RETENTION_DAYS"])
            click.echo(f"Removed {removed} stale attempt(s).")

    @app.after_request
    def set_security_headers(resp):
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return resp

    return app


def sweep_expired_attempts(max_age_days: int) -> int:
    """Run SessionStore.cleanup for every player with stored data. Needs an app context."""
    from .errors import StorageUnavailable
    from .games.core.kv_storage import SqlStorage, all_player_ids
    from .games.core.session_store import SessionStore

    try:
        players = all_player_ids()
    except StorageUnavailable as e:
        logging.getLogger(__name__).warning("cleanup skipped, storage unavailable: %s", e)
        return 0
    return sum(SessionStore(SqlStorage(pid)).cleanup(max_age_days) for pid in players)
