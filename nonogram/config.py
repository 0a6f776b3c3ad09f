import os


def _env_bool(name, default):
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///nonogram.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "2000 per hour; 300 per minute")
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)

    # featured (hashed, no back-to-back repeat) | daily (days since 2024-01-01)
    NONOGRAM_SELECTION_MODE = os.environ.get("NONOGRAM_SELECTION_MODE", "featured")
    # daily_seen (per-day seen set) | rotation (no repeats across days until exhausted)
    NONOGRAM_NEW_PUZZLE_POLICY = os.environ.get("NONOGRAM_NEW_PUZZLE_POLICY", "daily_seen")
    NONOGRAM_DEFAULT_DIFFICULTY = os.environ.get("NONOGRAM_DEFAULT_DIFFICULTY", "easy")
    NONOGRAM_RETENTION_DAYS = int(os.environ.get("NONOGRAM_RETENTION_DAYS", "30"))
    NONOGRAM_PUZZLES_PATH = os.environ.get("NONOGRAM_PUZZLES_PATH")  # None -> bundled puzzles.json
    NONOGRAM_WARMUP = True
    NONOGRAM_CLEANUP_ON_START = True
    NONOGRAM_CREATE_TABLES = False


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_ECHO = True
    NONOGRAM_CREATE_TABLES = True


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE = True


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    RATELIMIT_ENABLED = False
    NONOGRAM_CREATE_TABLES = True
    NONOGRAM_CLEANUP_ON_START = False
    NONOGRAM_PUZZLES_PATH = None
