"""
JTBD Journey Map
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])

Env overview:
    DATABASE_URL          store (PostgreSQL in production, SQLite fallback in dev)
    SECRET_KEY            required in production
    CORS_ORIGINS          comma list, "*" in dev
    MAX_UPLOAD_BYTES      CSV upload cap (default 5 MiB)
    JOURNEY_SAVE_ATOMIC   single-commit journey saves (default off)
    WORKSPACE_IDLE_TTL_SECONDS  evict workspaces idle this long (default 24h, 0 = never)
    RATELIMIT_*           see rate limit section below
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'journey_map_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

_DEV_SECRET = secrets.token_hex(32)


def _env_flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _database_url(fallback=None):
    # SQLAlchemy 2.0 only accepts the postgresql:// scheme
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else fallback


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # ── Store ────────────────────────────────────────────────────────────
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    # Journey save: independent commit per step unless enabled
    JOURNEY_SAVE_ATOMIC = _env_flag("JOURNEY_SAVE_ATOMIC")

    # In-memory workspaces idle longer than this are dropped on the next create
    WORKSPACE_IDLE_TTL_SECONDS = int(os.getenv("WORKSPACE_IDLE_TTL_SECONDS", str(24 * 60 * 60)))

    # ── HTTP surface ─────────────────────────────────────────────────────
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    # ── Rate limits (per remote address) ─────────────────────────────────
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "true")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_IMPORT = os.getenv("RATELIMIT_IMPORT", "20/minute")
    RATELIMIT_WORKSPACE = os.getenv("RATELIMIT_WORKSPACE", "120/minute")
    RATELIMIT_JOURNEYS = os.getenv("RATELIMIT_JOURNEYS", "300/minute")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    # Flask-SQLAlchemy picks a shared static pool for in-memory SQLite
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    JOURNEY_SAVE_ATOMIC = False


class ProductionConfig(Config):
    """Production: PostgreSQL, explicit CORS origins, stable secret."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
