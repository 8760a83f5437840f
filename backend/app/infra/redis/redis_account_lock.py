from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import redis  # type: ignore[import-untyped]
from redis.exceptions import LockError, RedisError  # type: ignore[import-untyped]

from app.services._shared.errors import UnavailableError
from app.services._shared.ports.account_lock import DEFAULT_WAIT_SECONDS, AccountLockManager

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisAccountLockManager(AccountLockManager):
    """
    Cross-process per-account locks built on :meth:`redis.Redis.lock`.

    :param r: A Redis client (already connected).
    :param lease_seconds: Auto-release horizon protecting against crashed holders.
    """

    r: redis.Redis
    lease_seconds: float = 30.0

    @staticmethod
    def _k(account_id: int) -> str:
        return f"lock:account:{account_id}"

    @contextmanager
    def hold(self, account_id: int, *, timeout: float = DEFAULT_WAIT_SECONDS) -> Iterator[None]:
        try:
            lock = self.r.lock(
                self._k(account_id),
                timeout=self.lease_seconds,
                blocking_timeout=timeout,
            )
            acquired = lock.acquire()
        except RedisError as exc:
            raise UnavailableError("Lock service temporarily unavailable") from exc
        if not acquired:
            raise UnavailableError("Account is busy, please retry", retry_after=1)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # Lease ran out while the work was still running
                log.warning("lock.lease_expired", extra={"account_id": account_id})
