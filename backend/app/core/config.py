"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env for local runs (no-op when the file is absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable.

    Blank or malformed values fall back to ``default`` so a typo in a
    deployment manifest never prevents the application from booting.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Defaults to a development placeholder and should be
        overridden in production.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        When set, session tokens, cache entries and account locks live in
        Redis; otherwise process-local adapters are used.
    STORE_TIMEOUT_SECONDS: int
        Socket and connect timeout applied to Redis clients.
    TOKEN_TTL_DAYS: int
        Absolute lifetime of a session token.
    MAX_TOKENS_PER_ACCOUNT: int
        Live tokens kept per account; the oldest are evicted on overflow.
    ACCOUNT_LOCK_TIMEOUT: int
        Seconds a request waits for the per-account mutation lock.
    CACHE_ENABLED: bool
        Global switch for read-through response caching.
    RATELIMIT_DEFAULT: str
        Uniform per-account request budget (flask-limiter syntax).
    STORE_CURRENCY: str
        ISO 4217 code reported on carts and orders.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")
    APP_COMMIT = os.getenv("APP_COMMIT", "unknown")

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Shared stores
    REDIS_URL = os.getenv("REDIS_URL") or None
    STORE_TIMEOUT_SECONDS = env_int("STORE_TIMEOUT_SECONDS", 5)
    ACCOUNT_LOCK_TIMEOUT = env_int("ACCOUNT_LOCK_TIMEOUT", 10)

    # Session tokens
    TOKEN_TTL_DAYS = env_int("TOKEN_TTL_DAYS", 30)
    MAX_TOKENS_PER_ACCOUNT = env_int("MAX_TOKENS_PER_ACCOUNT", 5)
    PASSWORD_RESET_TTL_SECONDS = env_int("PASSWORD_RESET_TTL_SECONDS", 3600)

    # Cache (seconds)
    CACHE_ENABLED = env_bool("CACHE_ENABLED", True)
    CACHE_DEFAULT_TTL = env_int("CACHE_DEFAULT_TTL", 3600)
    CART_CACHE_TTL = env_int("CART_CACHE_TTL", 300)
    PROFILE_CACHE_TTL = env_int("PROFILE_CACHE_TTL", 1800)
    ORDERS_CACHE_TTL = env_int("ORDERS_CACHE_TTL", 900)
    ORDER_CACHE_TTL = env_int("ORDER_CACHE_TTL", 1800)
    TRACKING_CACHE_TTL = env_int("TRACKING_CACHE_TTL", 300)
    ADDRESSES_CACHE_TTL = env_int("ADDRESSES_CACHE_TTL", 1800)
    STATUSES_CACHE_TTL = env_int("STATUSES_CACHE_TTL", 86400)
    IDEMPOTENCY_TTL = env_int("IDEMPOTENCY_TTL", 86400)

    # Rate limiting
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "1000 per hour")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_STRATEGY = "moving-window"
    RATELIMIT_HEADERS_ENABLED = True
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "5 per minute")

    # Storefront
    STORE_CURRENCY = os.getenv("STORE_CURRENCY", "USD")
    STORE_CURRENCY_SYMBOL = os.getenv("STORE_CURRENCY_SYMBOL", "$")
    ORDERS_PER_PAGE = env_int("ORDERS_PER_PAGE", 10)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to Redis; process-local stores are used instead.
    - Rate limiting is off so suites can hammer endpoints.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = None
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"
    USE_PROXYFIX = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
