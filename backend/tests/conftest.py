"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Session tokens,
cache entries and account locks get fresh process-local stores per test.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest
from app.core.config import TestingConfig
from app.core.extensions import (
    ORDER_CREATED_KEY,
    PASSWORD_RESET_KEY,
    install_stores,
)
from app.core.extensions import db as _db  # Flask-SQLAlchemy instance
from app.factory import create_app  # application factory under test
from app.services._shared.ports import (
    InMemoryAccountLockManager,
    InMemoryCache,
    InMemorySessionTokenStore,
)
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Never talks to Redis; stores are swapped per test by ``stores``.
    - Rate limiting stays off except where a test enables it explicitly.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    CORS_ORIGINS = "http://localhost:5173"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    os.environ.pop("REDIS_URL", None)
    app = create_app(TestConfig, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Parameters
    ----------
    app: flask.Flask
        Application fixture ensuring the Flask context is available.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    Services commit through their Unit of Work; on this session a commit only
    releases a SAVEPOINT, so the outer transaction still discards everything.
    HTTP requests close the session on teardown, so API tests commit their
    fixtures (``session.commit()``) before calling the client.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(bind=connection, future=True, autoflush=False)
    scoped = scoped_session(SessionFactory)

    nested = connection.begin_nested()

    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(autouse=True)
def stores(app):
    """Install fresh token/cache/lock stores and empty observer lists.

    Returns
    -------
    types.SimpleNamespace
        ``tokens``, ``cache`` and ``locks`` bound to the app for this test.
    """
    bundle = SimpleNamespace(
        tokens=InMemorySessionTokenStore(),
        cache=InMemoryCache(default_ttl=300),
        locks=InMemoryAccountLockManager(),
    )
    install_stores(app, token_store=bundle.tokens, cache=bundle.cache, locks=bundle.locks)
    app.extensions[ORDER_CREATED_KEY] = []
    app.extensions[PASSWORD_RESET_KEY] = []
    yield bundle
    app.extensions[ORDER_CREATED_KEY] = []
    app.extensions[PASSWORD_RESET_KEY] = []


@pytest.fixture()
def client(app, session):
    """Return a Flask test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def freeze_time() -> Callable[[str | None], Any]:
    """Factory returning :func:`freezegun.freeze_time`.

    Examples
    --------
    >>> def test_with_frozen_time(freeze_time):
    ...     with freeze_time("2024-01-01"):
    ...         ...
    """
    from freezegun import freeze_time as _freeze_time

    def _factory(target: str | None = None) -> Any:
        return _freeze_time(target or "2024-01-01")

    return _factory


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper to the transactional session fixture.

    Pure unit tests (no ``session`` fixture requested) skip the database.
    """
    from tests.factories import SQLAlchemySession

    if "session" not in request.fixturenames:
        SQLAlchemySession.set(None)
        yield
        return
    SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
