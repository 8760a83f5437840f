"""
app.services._shared.ports
==========================

Collection of *ports* (hexagonal interfaces) that decouple the services from
storage and collaborator implementations.

Modules
-------
- :mod:`session_token_store`:
    :class:`~.SessionTokenStore` and :class:`~.SessionTokenView`, the opaque
    session-token registry with its ``token -> account`` reverse index.
- :mod:`cache`:
    :class:`~.Cache`, the best-effort response cache.
- :mod:`account_lock`:
    :class:`~.AccountLockManager`, per-account mutual exclusion.
- :mod:`catalog`:
    :class:`~.Catalog`, the external product/inventory collaborator.

Design Notes
------------
Process-local adapters live next to each port; Redis adapters live under
``app.infra.redis`` and the SQL catalog adapter under ``app.infra.sqlalchemy``.
"""

from __future__ import annotations

from .account_lock import AccountLockManager, InMemoryAccountLockManager
from .cache import Cache, InMemoryCache, cache_key, fingerprint
from .catalog import (
    Catalog,
    CouponView,
    ProductView,
    StockCheck,
    StockLevel,
    VariationView,
)
from .session_token_store import (
    InMemorySessionTokenStore,
    SessionTokenStore,
    SessionTokenView,
    new_token,
)

__all__ = [
    "AccountLockManager",
    "InMemoryAccountLockManager",
    "Cache",
    "InMemoryCache",
    "cache_key",
    "fingerprint",
    "Catalog",
    "CouponView",
    "ProductView",
    "StockCheck",
    "StockLevel",
    "VariationView",
    "SessionTokenStore",
    "SessionTokenView",
    "InMemorySessionTokenStore",
    "new_token",
]
