"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from app.core.extensions import db
from app.infra.sqlalchemy.catalog import SQLAlchemyCatalog
from app.repositories import (
    AccountRepository,
    AddressRepository,
    CartRepository,
    CouponRepository,
    OrderRepository,
    ProductRepository,
)
from app.uow.base import UnitOfWork

logger = logging.getLogger(__name__)

# Dialects that understand ``SET TRANSACTION ...`` at the start of a transaction
_SET_TRANSACTION_DIALECTS = ("postgresql", "mysql", "mariadb")


class SQLAlchemyRepositoryContainer:
    """Repositories and the catalog adapter sharing one SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.accounts = AccountRepository(session=self.session)
        self.addresses = AddressRepository(session=self.session)
        self.carts = CartRepository(session=self.session)
        self.orders = OrderRepository(session=self.session)
        self.products = ProductRepository(session=self.session)
        self.coupons = CouponRepository(session=self.session)
        self.catalog = SQLAlchemyCatalog(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-write UoW on the Flask-scoped session.

    Commits when the block exits cleanly, rolls back on any exception
    (including a failing commit).
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session begins lazily on first use.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work.

    - Owns a fresh transaction when none is active and, on PostgreSQL and
      MySQL/MariaDB, issues ``SET TRANSACTION ISOLATION LEVEL`` and
      ``SET TRANSACTION READ ONLY``.
    - Attaches to an already running transaction otherwise (test fixtures,
      nested service calls) and skips the directives.
    - Always installs write guards: ORM flushes with pending changes and raw
      DML/DDL statements raise ``RuntimeError``.
    - ``commit()`` is not allowed.

    Parameters
    ----------
    isolation_level:
        Isolation hint such as ``"READ COMMITTED"``; ``None`` keeps the
        connection default.
    enforce_db_readonly:
        Apply ``SET TRANSACTION READ ONLY`` where supported.
    """

    _WRITE_PREFIXES = (
        "insert",
        "update",
        "delete",
        "merge",
        "alter",
        "drop",
        "truncate",
        "create",
        "replace",
        "grant",
        "revoke",
    )

    _KNOWN_ISOLATION = ("READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE", "READ UNCOMMITTED")

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(session=db.session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly
        self._conn: Connection | None = None
        self._txn_ctx: SessionTransaction | None = None
        self._listeners_installed = False

    # ----------------------------- Context Manager -----------------------------

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._txn_ctx = None
        try:
            txn_ctx = self.session.begin()
            txn_ctx.__enter__()
            self._txn_ctx = txn_ctx
        except InvalidRequestError:
            # Already inside a transaction: attach, guards only.
            pass

        self._conn = self.session.connection()
        self._install_listeners()

        if self._txn_ctx is not None and self._conn.dialect.name in _SET_TRANSACTION_DIALECTS:
            self._apply_directives()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._txn_ctx is not None:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                try:
                    self._txn_ctx.__exit__(exc_type, exc, tb)
                finally:
                    self._txn_ctx = None
        finally:
            self._remove_listeners()
            self._conn = None

    # ----------------------------- Public API ---------------------------------

    def commit(self) -> None:
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ----------------------------- Internals ----------------------------------

    def _apply_directives(self) -> None:
        try:
            if self.isolation_level:
                iso = self.isolation_level.upper().strip()
                if iso not in self._KNOWN_ISOLATION:
                    logger.warning("uow.unknown_isolation_level", extra={"status": iso})
                self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {iso}"))
            if self.enforce_db_readonly:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
        except SQLAlchemyError:
            logger.warning("uow.set_transaction_failed", exc_info=True)

    def _install_listeners(self) -> None:
        if self._listeners_installed:
            return

        def _before_flush(session, flush_context, instances):
            if session.new or session.dirty or session.deleted:
                raise RuntimeError(
                    "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
                )

        def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            first = statement.lstrip().split(None, 1)[0].lower() if statement else ""
            if first.startswith(self._WRITE_PREFIXES):
                raise RuntimeError(f"Read-only UnitOfWork: SQL statement blocked: {first.upper()}")

        event.listen(self.session, "before_flush", _before_flush)
        target = self._conn if self._conn is not None else self.session.get_bind()
        event.listen(target, "before_cursor_execute", _before_cursor_execute)

        self._ro_before_flush = _before_flush
        self._ro_before_cursor_execute = _before_cursor_execute
        self._listeners_installed = True

    def _remove_listeners(self) -> None:
        if not self._listeners_installed:
            return
        with suppress(SQLAlchemyError):
            event.remove(self.session, "before_flush", self._ro_before_flush)
        with suppress(SQLAlchemyError):
            target = self._conn if self._conn is not None else self.session.get_bind()
            event.remove(target, "before_cursor_execute", self._ro_before_cursor_execute)
        self._listeners_installed = False
