"""Redis adapters for the shared-store ports."""

from __future__ import annotations

from .redis_account_lock import RedisAccountLockManager
from .redis_cache import RedisCache
from .redis_session_token_store import RedisSessionTokenStore

__all__ = ["RedisAccountLockManager", "RedisCache", "RedisSessionTokenStore"]
