"""Best-effort key/value cache port for read-through response caching."""

from __future__ import annotations

import hashlib
import json
import threading
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol


def fingerprint(params: Mapping[str, Any]) -> str:
    """
    Return a deterministic digest of ``params`` (key order independent).

    :param params: JSON-serializable parameters (page, filters, ...).
    :returns: 32-char hex digest.
    :rtype: str
    """
    canonical = json.dumps(dict(params), sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.md5(canonical.encode(), usedforsecurity=False).hexdigest()


def cache_key(prefix: str, params: Mapping[str, Any] | None = None) -> str:
    """Build ``prefix`` or ``prefix:<fingerprint>`` when parameters are given."""
    if not params:
        return prefix
    return f"{prefix}:{fingerprint(params)}"


class Cache(Protocol):
    """
    Key/value cache holding JSON-serializable payloads.

    Implementations must never raise on backend failures: a failed read is a
    miss and a failed write is dropped, so callers fall back to recomputing.
    """

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    def delete(self, *keys: str) -> None: ...

    def delete_prefix(self, prefix: str) -> int: ...

    def clear(self) -> None: ...


class InMemoryCache(Cache):
    """
    Process-local TTL cache.

    Values are stored JSON-encoded so callers get the same copy semantics as
    the Redis adapter (no shared mutable state between hits).
    """

    def __init__(self, *, default_ttl: int = 3600) -> None:
        self.default_ttl = int(default_ttl)
        self._data: dict[str, tuple[float, str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _now() -> float:
        return datetime.now(UTC).timestamp()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, raw = entry
            if expires_at <= self._now():
                self._data.pop(key, None)
                return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        seconds = self.default_ttl if ttl is None else int(ttl)
        if seconds <= 0:
            return
        raw = json.dumps(value, default=str)
        with self._lock:
            self._data[key] = (self._now() + seconds, raw)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._data if k.startswith(prefix)]
            for k in doomed:
                del self._data[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
