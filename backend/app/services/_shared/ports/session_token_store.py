from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol

TOKEN_BYTES = 32  # 64 hex characters


def new_token() -> str:
    """Return a fresh opaque session token (256 bits of entropy, hex encoded)."""
    return secrets.token_hex(TOKEN_BYTES)


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class SessionTokenView:
    """
    Read-model for a stored session token.

    :ivar token: Opaque bearer string handed to the client.
    :ivar account_id: Owning account.
    :ivar created_at: Issue instant (UTC); eviction order follows it.
    :ivar expires_at: Absolute expiry (UTC). Never extended by use.
    :ivar last_used_at: Last successful validation (UTC), if any.
    """

    token: str
    account_id: int
    created_at: datetime
    expires_at: datetime
    last_used_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or utcnow())


class SessionTokenStore(Protocol):
    """
    Stateful store for opaque session tokens.

    Implementations keep two views that MUST change together: the per-account
    token list (oldest first) and a global ``token -> account`` reverse index
    used by :meth:`lookup`.
    """

    def issue(self, account_id: int, *, ttl: timedelta, max_tokens: int) -> SessionTokenView:
        """
        Create a token for ``account_id`` and evict the oldest ones so that at
        most ``max_tokens`` remain for the account.
        """

    def lookup(self, token: str) -> SessionTokenView | None:
        """Resolve a token through the reverse index; expired tokens are purged and ``None`` returned."""

    def touch(self, account_id: int, token: str) -> SessionTokenView | None:
        """Record a successful use without extending the expiry.

        :returns: The updated record, or ``None`` when the token is unknown or
            belongs to another account.
        """

    def revoke(self, account_id: int, token: str) -> bool:
        """Remove a single token. Idempotent; ``True`` when something was removed."""

    def revoke_all(self, account_id: int) -> int:
        """Remove every token of the account. :returns: number removed."""

    def prune_expired(self, account_id: int) -> int:
        """Drop the account's expired tokens. :returns: number removed."""

    def list_tokens(self, account_id: int) -> list[SessionTokenView]:
        """Return the account's live tokens, oldest first."""

    def sweep_expired(self) -> int:
        """Drop expired tokens across all accounts (periodic maintenance)."""


class InMemorySessionTokenStore(SessionTokenStore):
    """
    Process-local session token store.

    .. note::
       A single ``threading.Lock`` makes every operation atomic, which keeps
       the reverse index and the per-account lists consistent. Suitable for a
       single worker and for tests.
    """

    def __init__(self) -> None:
        self._by_token: dict[str, SessionTokenView] = {}
        self._by_account: dict[int, list[str]] = {}
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _drop(self, token: str) -> SessionTokenView | None:
        view = self._by_token.pop(token, None)
        if view is None:
            return None
        tokens = self._by_account.get(view.account_id)
        if tokens is not None:
            if token in tokens:
                tokens.remove(token)
            if not tokens:
                self._by_account.pop(view.account_id, None)
        return view

    def _prune_locked(self, account_id: int, now: datetime) -> int:
        expired = [
            t for t in self._by_account.get(account_id, []) if self._by_token[t].is_expired(now)
        ]
        for t in expired:
            self._drop(t)
        return len(expired)

    # -------------------------- API ----------------------------

    def issue(self, account_id: int, *, ttl: timedelta, max_tokens: int) -> SessionTokenView:
        now = utcnow()
        with self._lock:
            token = new_token()
            while token in self._by_token:
                token = new_token()
            view = SessionTokenView(
                token=token,
                account_id=account_id,
                created_at=now,
                expires_at=now + ttl,
            )
            self._by_token[token] = view
            tokens = self._by_account.setdefault(account_id, [])
            tokens.append(token)
            # Oldest first; the fresh token is always last so it survives.
            while len(tokens) > max(1, max_tokens):
                self._drop(tokens[0])
            return view

    def lookup(self, token: str) -> SessionTokenView | None:
        with self._lock:
            view = self._by_token.get(token)
            if view is None:
                return None
            if view.is_expired():
                self._drop(token)
                return None
            return view

    def touch(self, account_id: int, token: str) -> SessionTokenView | None:
        with self._lock:
            view = self._by_token.get(token)
            if view is None or view.account_id != account_id:
                return None
            touched = self._by_token[token] = replace(view, last_used_at=utcnow())
            return touched

    def revoke(self, account_id: int, token: str) -> bool:
        with self._lock:
            view = self._by_token.get(token)
            if view is None or view.account_id != account_id:
                return False
            self._drop(token)
            return True

    def revoke_all(self, account_id: int) -> int:
        with self._lock:
            tokens = list(self._by_account.get(account_id, []))
            for t in tokens:
                self._drop(t)
            return len(tokens)

    def prune_expired(self, account_id: int) -> int:
        with self._lock:
            return self._prune_locked(account_id, utcnow())

    def list_tokens(self, account_id: int) -> list[SessionTokenView]:
        now = utcnow()
        with self._lock:
            return [
                self._by_token[t]
                for t in self._by_account.get(account_id, [])
                if not self._by_token[t].is_expired(now)
            ]

    def sweep_expired(self) -> int:
        now = utcnow()
        with self._lock:
            return sum(self._prune_locked(a, now) for a in list(self._by_account))
