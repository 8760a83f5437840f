from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol

from app.services._shared.errors import UnavailableError

DEFAULT_WAIT_SECONDS = 10.0


class AccountLockManager(Protocol):
    """
    Serialize mutations of a single account's cart and order placement.

    Locks are keyed by account id only, so two accounts never contend.
    Failing to acquire within ``timeout`` raises
    :class:`~app.services._shared.errors.UnavailableError`.
    """

    def hold(
        self, account_id: int, *, timeout: float = DEFAULT_WAIT_SECONDS
    ) -> AbstractContextManager[None]: ...


class InMemoryAccountLockManager(AccountLockManager):
    """
    Per-account re-entrant locks for a single process.

    An entry lives only while some thread holds or waits for it, so the map
    never grows past the number of accounts currently in flight.
    """

    def __init__(self) -> None:
        # account_id -> [lock, holders + waiters]
        self._locks: dict[int, list] = {}
        self._guard = threading.Lock()

    def _checkout(self, account_id: int) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(account_id)
            if entry is None:
                entry = self._locks[account_id] = [threading.RLock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, account_id: int) -> None:
        with self._guard:
            entry = self._locks[account_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[account_id]

    @contextmanager
    def hold(self, account_id: int, *, timeout: float = DEFAULT_WAIT_SECONDS) -> Iterator[None]:
        lock = self._checkout(account_id)
        try:
            if not lock.acquire(timeout=timeout):
                raise UnavailableError("Account is busy, please retry", retry_after=1)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(account_id)
