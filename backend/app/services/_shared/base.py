# app/services/_shared/base.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from typing import Any

from app.repositories.base import Pagination
from app.services._shared.ports.account_lock import AccountLockManager
from app.services._shared.ports.cache import Cache
from app.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContext:
    """
    Request-scoped data handed from the API layer to services.

    :param actor_id: Account resolved from the session token, if any.
    :param request_id: Correlation id for logging.
    """

    actor_id: int | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Open read-only and read-write units of work.
    * Hold the optional cache and per-account lock collaborators.
    * Offer shared helpers (pagination, actor checks, cache invalidation,
      observer fan-out).

    Notes
    -----
    - Services never touch the global session directly; they go through a
      Unit of Work.
    - Services raise :mod:`app.services._shared.errors`; the HTTP mapping
      lives in ``app.core.errors``.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def __init__(
        self,
        *,
        ctx: ServiceContext | None = None,
        cache: Cache | None = None,
        locks: AccountLockManager | None = None,
        lock_timeout: float = 10.0,
    ) -> None:
        """
        :param ctx: Request-scoped context.
        :param cache: Response cache to invalidate after writes.
        :param locks: Per-account lock manager serializing mutations.
        :param lock_timeout: Seconds to wait for an account lock.
        """
        self.ctx = ctx or ServiceContext()
        self.cache = cache
        self.locks = locks
        self.lock_timeout = lock_timeout

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param isolation: Isolation level hint (``"READ COMMITTED"`` by default).
        :param enforce_db_readonly: Apply ``SET TRANSACTION READ ONLY`` when supported.
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    # ----------------------- Validation utilities ---------------------------

    def ensure_pagination(
        self, *, page: int, limit: int, sort: Iterable[str] | None = None, max_limit: int = 100
    ) -> Pagination:
        """Clamp ``page`` to ``>= 1`` and ``limit`` to ``[1, max_limit]``."""
        page = max(1, int(page))
        limit = min(max(1, int(limit)), max_limit)
        return Pagination(page=page, limit=limit, sort=list(sort or []))

    def account_lock(self, account_id: int) -> AbstractContextManager[None]:
        """Serialize mutations of ``account_id`` (no-op without a lock manager)."""
        if self.locks is None:
            return nullcontext()
        return self.locks.hold(account_id, timeout=self.lock_timeout)

    # -------------------------- Cache helpers -------------------------------

    def invalidate(self, *keys: str) -> None:
        if self.cache is not None and keys:
            self.cache.delete(*keys)

    def invalidate_prefix(self, prefix: str) -> None:
        if self.cache is not None:
            self.cache.delete_prefix(prefix)

    # -------------------------- Observers -----------------------------------

    @staticmethod
    def notify(handlers: Iterable[Callable[[Any], None]], event: Any, *, name: str) -> None:
        """
        Call each handler with ``event``; failures are logged, never raised.

        :param handlers: Subscribed callables.
        :param event: Payload handed to each subscriber.
        :param name: Event name used in the log record.
        """
        for handler in handlers:
            try:
                handler(event)
            except Exception:  # noqa: BLE001 - subscribers must not fail the request
                logger.exception("observer.failed", extra={"event": name})
