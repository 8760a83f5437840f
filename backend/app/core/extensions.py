"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, cast

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app, g, has_request_context
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

if TYPE_CHECKING:
    from app.services._shared.ports import AccountLockManager, Cache, SessionTokenStore

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Extension keys under ``app.extensions``
TOKEN_STORE_KEY = "session_token_store"
CACHE_KEY = "response_cache"
LOCKS_KEY = "account_locks"
ORDER_CREATED_KEY = "order_created_handlers"
PASSWORD_RESET_KEY = "password_reset_handlers"


def rate_limit_key() -> str:
    """Key requests by authenticated account, falling back to client address."""
    auth = getattr(g, "auth", None) if has_request_context() else None
    account_id = getattr(auth, "account_id", None)
    if account_id is not None:
        return f"account:{account_id}"
    return f"ip:{get_remote_address()}"


# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
limiter = Limiter(key_func=rate_limit_key)
redis_client: redis.Redis | None = None


def _connect_redis(app: Flask) -> redis.Redis | None:
    """
    Build and ping a Redis client from ``REDIS_URL``.

    Returns ``None`` when unset under ``TESTING`` or ``DEBUG``. Any other
    deployment may run several workers, which must share tokens, cache and
    locks, so a missing ``REDIS_URL`` raises.
    """
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        if app.testing or app.debug:
            return None
        raise RuntimeError("REDIS_URL must be set outside testing and debug mode")
    timeout = app.config.get("STORE_TIMEOUT_SECONDS", 5)
    client = redis.Redis.from_url(
        redis_url,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, rate limiting and shared stores.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`app.models` package to ensure SQLAlchemy metadata is ready for
        migrations.

    Notes
    -----
    With ``REDIS_URL`` configured, the session-token store, response cache and
    account locks are Redis-backed so every worker shares them. Without it,
    process-local adapters are installed; that is only allowed under
    ``TESTING`` or ``DEBUG`` (single-process servers).
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from app import models as _models  # noqa: F401

    migrate.init_app(app, db)
    limiter.init_app(app)

    from app.services._shared.ports import (
        InMemoryAccountLockManager,
        InMemoryCache,
        InMemorySessionTokenStore,
    )

    global redis_client
    redis_client = _connect_redis(app)
    if redis_client is None:
        app.extensions.pop("redis_client", None)
        install_stores(
            app,
            token_store=InMemorySessionTokenStore(),
            cache=InMemoryCache(default_ttl=app.config.get("CACHE_DEFAULT_TTL", 3600)),
            locks=InMemoryAccountLockManager(),
        )
    else:
        from app.infra.redis import (
            RedisAccountLockManager,
            RedisCache,
            RedisSessionTokenStore,
        )

        app.extensions["redis_client"] = redis_client
        install_stores(
            app,
            token_store=RedisSessionTokenStore(r=redis_client),
            cache=RedisCache(r=redis_client, default_ttl=app.config.get("CACHE_DEFAULT_TTL", 3600)),
            locks=RedisAccountLockManager(r=redis_client),
        )

    app.extensions.setdefault(ORDER_CREATED_KEY, [])
    app.extensions.setdefault(PASSWORD_RESET_KEY, [])


def install_stores(
    app: Flask,
    *,
    token_store: SessionTokenStore,
    cache: Cache,
    locks: AccountLockManager,
) -> None:
    """Bind the shared stores on ``app.extensions`` (tests swap them per case)."""
    app.extensions[TOKEN_STORE_KEY] = token_store
    app.extensions[CACHE_KEY] = cache
    app.extensions[LOCKS_KEY] = locks


def get_token_store() -> SessionTokenStore:
    """Return the session-token store bound to the current app."""
    return cast("SessionTokenStore", current_app.extensions[TOKEN_STORE_KEY])


def get_cache() -> Cache:
    """Return the response cache bound to the current app."""
    return cast("Cache", current_app.extensions[CACHE_KEY])


def get_account_locks() -> AccountLockManager:
    """Return the per-account lock manager bound to the current app."""
    return cast("AccountLockManager", current_app.extensions[LOCKS_KEY])


# ----------------------------- Observers -------------------------------------


def register_order_created_handler(app: Flask, handler: Callable[[Any], None]) -> None:
    """Subscribe ``handler`` to post-commit order creation events."""
    app.extensions.setdefault(ORDER_CREATED_KEY, []).append(handler)


def register_password_reset_handler(app: Flask, handler: Callable[[Any], None]) -> None:
    """Subscribe ``handler`` to password-reset requests (receives the raw key)."""
    app.extensions.setdefault(PASSWORD_RESET_KEY, []).append(handler)


def get_order_created_handlers() -> list[Callable[[Any], None]]:
    return list(current_app.extensions.get(ORDER_CREATED_KEY, []))


def get_password_reset_handlers() -> list[Callable[[Any], None]]:
    return list(current_app.extensions.get(PASSWORD_RESET_KEY, []))
