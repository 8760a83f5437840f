"""Cache key builders shared by the API read-through layer and services."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.services._shared.ports.cache import cache_key

ORDER_STATUSES = "order_statuses"


def cart(account_id: int) -> str:
    return f"cart:{account_id}"


def profile(account_id: int) -> str:
    return f"profile:{account_id}"


def addresses(account_id: int) -> str:
    return f"addresses:{account_id}"


def orders_prefix(account_id: int) -> str:
    """Prefix covering every cached order listing of the account."""
    return f"orders:{account_id}:"


def orders(account_id: int, params: Mapping[str, Any]) -> str:
    return cache_key(f"orders:{account_id}", params)


def order(account_id: int, order_id: int) -> str:
    return f"order:{account_id}:{order_id}"


def tracking(account_id: int, order_id: int) -> str:
    return f"tracking:{account_id}:{order_id}"


def idempotency(account_id: int, scope: str, key: str) -> str:
    return cache_key(f"idem:{account_id}:{scope}", {"key": key})
