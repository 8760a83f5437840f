# comments in English; reST docstrings
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import redis  # type: ignore[import-untyped]

from app.infra.redis._errors import unavailable_on_redis_error
from app.services._shared.ports.session_token_store import (
    SessionTokenStore,
    SessionTokenView,
    new_token,
    utcnow,
)


def _s(value: bytes | str | None, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisSessionTokenStore(SessionTokenStore):
    """
    Redis-backed session token store shared by every worker.

    Layout
    ------
    - ``st:{token}``: hash ``{account_id, created_at, expires_at, last_used_at}``
      with a key TTL equal to the remaining lifetime. This is the reverse index.
    - ``st:u:{account_id}``: sorted set of the account's tokens scored by a
      global issue sequence (``st:seq``), so ties within the same clock tick
      still evict in issue order.

    Both structures change inside one ``MULTI/EXEC`` block; issuing watches the
    account set and retries on concurrent modification.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token: str) -> str:
        return f"st:{token}"

    @staticmethod
    def _ku(account_id: int) -> str:
        return f"st:u:{account_id}"

    SEQ_KEY = "st:seq"

    @staticmethod
    def _ts(dt: datetime) -> float:
        return dt.astimezone(UTC).timestamp()

    @staticmethod
    def _dt(raw: str) -> datetime | None:
        return datetime.fromtimestamp(float(raw), tz=UTC) if raw else None

    def _view(self, token: str, h: dict) -> SessionTokenView | None:
        if not h:
            return None
        created = self._dt(_s(h.get(b"created_at")))
        expires = self._dt(_s(h.get(b"expires_at")))
        if created is None or expires is None:
            return None
        return SessionTokenView(
            token=token,
            account_id=int(_s(h.get(b"account_id"), "0")),
            created_at=created,
            expires_at=expires,
            last_used_at=self._dt(_s(h.get(b"last_used_at"))),
        )

    def _members(self, account_id: int) -> list[str]:
        return [_s(m) for m in self.r.zrange(self._ku(account_id), 0, -1)]

    # -------------------- API ------------------------

    @unavailable_on_redis_error
    def issue(self, account_id: int, *, ttl: timedelta, max_tokens: int) -> SessionTokenView:
        """
        Store a new token and trim the account to ``max_tokens`` (oldest first).

        Members whose hash already expired are dropped from the account set in
        the same transaction and do not count towards the limit.
        """
        now = utcnow()
        expires_at = now + ttl
        seconds = max(1, math.ceil(ttl.total_seconds()))
        token = new_token()
        k_tok = self._k(token)
        k_user = self._ku(account_id)
        seq = int(self.r.incr(self.SEQ_KEY))
        limit = max(1, max_tokens)

        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(k_user)
                    members = [_s(m) for m in p.zrange(k_user, 0, -1)]
                    stale = [m for m in members if not p.exists(self._k(m))]
                    live = [m for m in members if m not in stale]
                    overflow = len(live) + 1 - limit
                    victims = live[:overflow] if overflow > 0 else []

                    p.multi()
                    p.hset(
                        k_tok,
                        mapping={
                            "account_id": str(account_id),
                            "created_at": repr(self._ts(now)),
                            "expires_at": repr(self._ts(expires_at)),
                        },
                    )
                    p.expire(k_tok, seconds)
                    p.zadd(k_user, {token: seq})
                    for m in stale + victims:
                        p.zrem(k_user, m)
                    for m in victims:
                        p.delete(self._k(m))
                    # The account set lives as long as its newest token.
                    p.expire(k_user, seconds)
                    p.execute()
                break
            except redis.WatchError:
                # Concurrent issue/revoke on this account; recompute victims
                continue

        return SessionTokenView(
            token=token, account_id=account_id, created_at=now, expires_at=expires_at
        )

    @unavailable_on_redis_error
    def lookup(self, token: str) -> SessionTokenView | None:
        view = self._view(token, self.r.hgetall(self._k(token)))
        if view is None:
            return None
        if view.is_expired():
            with self.r.pipeline(transaction=True) as p:
                p.delete(self._k(token))
                p.zrem(self._ku(view.account_id), token)
                p.execute()
            return None
        return view

    @unavailable_on_redis_error
    def touch(self, account_id: int, token: str) -> SessionTokenView | None:
        key = self._k(token)
        if _s(self.r.hget(key, "account_id")) != str(account_id):
            return None
        # HSET on a vanished key would resurrect it without a TTL
        with self.r.pipeline(transaction=True) as p:
            p.exists(key)
            p.hset(key, "last_used_at", repr(self._ts(utcnow())))
            exists, _ = p.execute()
        if not exists:
            self.r.delete(key)
            return None
        return self._view(token, self.r.hgetall(key))

    @unavailable_on_redis_error
    def revoke(self, account_id: int, token: str) -> bool:
        key = self._k(token)
        if _s(self.r.hget(key, "account_id")) != str(account_id):
            return False
        with self.r.pipeline(transaction=True) as p:
            p.delete(key)
            p.zrem(self._ku(account_id), token)
            deleted, removed = p.execute()
        return bool(deleted) or bool(removed)

    @unavailable_on_redis_error
    def revoke_all(self, account_id: int) -> int:
        members = self._members(account_id)
        if not members:
            return 0
        with self.r.pipeline(transaction=True) as p:
            for m in members:
                p.delete(self._k(m))
            p.delete(self._ku(account_id))
            out = p.execute()
        return sum(1 for deleted in out[:-1] if deleted)

    @unavailable_on_redis_error
    def prune_expired(self, account_id: int) -> int:
        now = utcnow()
        doomed: list[str] = []
        for m in self._members(account_id):
            view = self._view(m, self.r.hgetall(self._k(m)))
            if view is None or view.is_expired(now):
                doomed.append(m)
        if not doomed:
            return 0
        with self.r.pipeline(transaction=True) as p:
            for m in doomed:
                p.delete(self._k(m))
            p.zrem(self._ku(account_id), *doomed)
            p.execute()
        return len(doomed)

    @unavailable_on_redis_error
    def list_tokens(self, account_id: int) -> list[SessionTokenView]:
        now = utcnow()
        views: list[SessionTokenView] = []
        for m in self._members(account_id):
            view = self._view(m, self.r.hgetall(self._k(m)))
            if view is not None and not view.is_expired(now):
                views.append(view)
        return views

    @unavailable_on_redis_error
    def sweep_expired(self) -> int:
        total = 0
        for key in self.r.scan_iter(match="st:u:*", count=500):
            account = _s(key).rsplit(":", 1)[-1]
            if account.isdigit():
                total += self.prune_expired(int(account))
        return total
