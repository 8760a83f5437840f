from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar, cast

from redis.exceptions import RedisError  # type: ignore[import-untyped]

from app.services._shared.errors import UnavailableError

F = TypeVar("F", bound=Callable[..., Any])


def unavailable_on_redis_error(func: F) -> F:
    """Re-raise Redis connectivity/timeouts as a retryable ``UnavailableError``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except RedisError as exc:
            raise UnavailableError("Session store temporarily unavailable") from exc

    return cast(F, wrapper)
