from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from app.services._shared.ports.cache import Cache

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisCache(Cache):
    """
    Redis-backed response cache.

    Entries are JSON strings under ``cache:{key}`` with a per-entry TTL.
    Backend failures are logged and swallowed: reads degrade to misses and
    writes/deletes to no-ops.

    :param r: A Redis client (already connected).
    :param default_ttl: TTL applied when ``set`` receives none.
    """

    r: redis.Redis
    default_ttl: int = 3600
    namespace: str = "cache:"

    def _k(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def get(self, key: str) -> Any | None:
        try:
            raw = self.r.get(self._k(key))
        except RedisError:
            log.warning("cache.get_failed", extra={"cache_key": key}, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("cache.decode_failed", extra={"cache_key": key})
            return None

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        seconds = self.default_ttl if ttl is None else int(ttl)
        if seconds <= 0:
            return
        try:
            self.r.set(self._k(key), json.dumps(value, default=str), ex=seconds)
        except RedisError:
            log.warning("cache.set_failed", extra={"cache_key": key}, exc_info=True)

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            self.r.delete(*(self._k(k) for k in keys))
        except RedisError:
            log.warning("cache.delete_failed", extra={"cache_key": ",".join(keys)}, exc_info=True)

    def delete_prefix(self, prefix: str) -> int:
        removed = 0
        try:
            batch: list[bytes] = []
            for key in self.r.scan_iter(match=f"{self._k(prefix)}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    removed += int(self.r.delete(*batch))
                    batch.clear()
            if batch:
                removed += int(self.r.delete(*batch))
        except RedisError:
            log.warning("cache.delete_prefix_failed", extra={"cache_key": prefix}, exc_info=True)
        return removed

    def clear(self) -> None:
        self.delete_prefix("")
