"""Shared API helpers: request auth, parameters, envelopes, caching, idempotency."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, TypeVar

from flask import Flask, Response, current_app, g, jsonify, request
from marshmallow import Schema

from app.core.extensions import (
    get_account_locks,
    get_cache,
    get_order_created_handlers,
    get_password_reset_handlers,
    get_token_store,
)
from app.core.logger import ensure_request_id
from app.services._shared import cache_keys
from app.services._shared.base import ServiceContext
from app.services._shared.errors import ServiceError, UnauthenticatedError
from app.services.addresses.service import AddressService
from app.services.auth.dto import TokenPolicy
from app.services.auth.service import Authenticator
from app.services.cart.service import CartService
from app.services.orders.service import OrderService
from app.services.profile.service import ProfileService

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)


# ------------------------------ Request auth ---------------------------------


@dataclass(frozen=True, slots=True)
class AuthContext:
    """
    Authentication outcome of the current request, stored on ``g.auth``.

    :param account_id: Account resolved from the token, ``None`` when anonymous.
    :param token: Raw token presented, if any.
    :param error: Why a presented token was rejected; re-raised by
        :func:`require_token` only on protected endpoints.
    """

    account_id: int | None = None
    token: str | None = None
    error: ServiceError | None = None


def request_params() -> dict[str, Any]:
    """Merge request parameters; JSON body wins over form data over query string."""
    params: dict[str, Any] = dict(request.args.items())
    params.update(request.form.items())
    body = request.get_json(silent=True)
    if isinstance(body, Mapping):
        params.update(body)
    return params


def init_request_auth(app: Flask) -> None:
    """Resolve the session token of every request into ``g.auth``."""

    @app.before_request
    def _resolve_token() -> None:
        g.auth = AuthContext()
        if request.method == "OPTIONS":
            return
        token = Authenticator.extract_token(request.headers, request_params())
        if token is None:
            return
        try:
            view = authenticator().validate(token)
        except ServiceError as exc:
            g.auth = AuthContext(token=token, error=exc)
            return
        g.auth = AuthContext(account_id=view.account_id, token=token)


def current_auth() -> AuthContext:
    return getattr(g, "auth", None) or AuthContext()


def require_token(func: F) -> F:
    """Reject the request unless ``g.auth`` carries an authenticated account."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        auth = current_auth()
        if auth.account_id is None:
            if auth.error is not None:
                raise auth.error
            raise UnauthenticatedError("Authentication token required")
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_account_id() -> int:
    account_id = current_auth().account_id
    if account_id is None:
        raise UnauthenticatedError("Authentication token required")
    return account_id


def service_context() -> ServiceContext:
    return ServiceContext(actor_id=current_auth().account_id, request_id=ensure_request_id())


# ---------------------------- Service factories ------------------------------


def authenticator() -> Authenticator:
    cfg = current_app.config
    return Authenticator(
        token_store=get_token_store(),
        policy=TokenPolicy(
            ttl=timedelta(days=int(cfg.get("TOKEN_TTL_DAYS", 30))),
            max_tokens=int(cfg.get("MAX_TOKENS_PER_ACCOUNT", 5)),
        ),
        ctx=service_context(),
    )


def profile_service() -> ProfileService:
    return ProfileService(
        token_store=get_token_store(),
        cache=get_cache(),
        reset_ttl=timedelta(seconds=int(current_app.config.get("PASSWORD_RESET_TTL_SECONDS", 3600))),
        on_password_reset_requested=get_password_reset_handlers(),
        ctx=service_context(),
    )


def address_service() -> AddressService:
    return AddressService(cache=get_cache(), ctx=service_context())


def cart_service() -> CartService:
    cfg = current_app.config
    return CartService(
        cache=get_cache(),
        locks=get_account_locks(),
        lock_timeout=float(cfg.get("ACCOUNT_LOCK_TIMEOUT", 10)),
        currency=cfg.get("STORE_CURRENCY", "USD"),
        currency_symbol=cfg.get("STORE_CURRENCY_SYMBOL", "$"),
        ctx=service_context(),
    )


def order_service() -> OrderService:
    cfg = current_app.config
    return OrderService(
        cache=get_cache(),
        locks=get_account_locks(),
        lock_timeout=float(cfg.get("ACCOUNT_LOCK_TIMEOUT", 10)),
        currency=cfg.get("STORE_CURRENCY", "USD"),
        on_order_created=get_order_created_handlers(),
        ctx=service_context(),
    )


# -------------------------------- Parsing ------------------------------------


def load(schema: Schema, params: Mapping[str, Any] | None = None) -> Any:
    """Validate ``params`` (default: merged request parameters) with ``schema``."""
    return schema.load(request_params() if params is None else dict(params))


# ------------------------------- Responses -----------------------------------


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def success_response(data: Any = None, message: str = "", *, status: int = 200) -> Response:
    """Wrap ``data`` in the success envelope ``{success, message, data}``."""
    return json_response({"success": True, "message": message, "data": data}, status=status)


# ----------------------------- Response cache --------------------------------


def cached_payload(key: str, ttl_setting: str, builder: Callable[[], Any]) -> Any:
    """
    Read-through cache for serialized payloads.

    :param key: Cache key (see :mod:`app.services._shared.cache_keys`).
    :param ttl_setting: Config name holding the TTL in seconds.
    :param builder: Computes the JSON-ready payload on a miss.
    """
    if not current_app.config.get("CACHE_ENABLED", True):
        return builder()
    cache = get_cache()
    hit = cache.get(key)
    if hit is not None:
        return hit
    payload = builder()
    cache.set(key, payload, int(current_app.config.get(ttl_setting, 3600)))
    return payload


# ------------------------------ Idempotency ----------------------------------


def enforce_idempotency(scope: str) -> tuple[str | None, dict[str, Any] | None]:
    """
    Look up a previous response for the request's ``Idempotency-Key``.

    :returns: ``(cache_key, cached)``; ``cache_key`` is ``None`` without a header.
    """
    key = (request.headers.get("Idempotency-Key") or "").strip()
    if not key:
        return None, None
    cache_key = cache_keys.idempotency(current_account_id(), scope, key)
    return cache_key, get_cache().get(cache_key)


def store_idempotent_response(cache_key: str | None, body: Any, status: int) -> None:
    """Persist the response blueprint for subsequent replays."""

    if not cache_key:
        return
    ttl = int(current_app.config.get("IDEMPOTENCY_TTL", 86400))
    get_cache().set(cache_key, {"body": body, "status": status}, ttl)


def build_cached_response(payload: Mapping[str, Any]) -> Response:
    """Rehydrate a Flask response object from cached payload metadata."""

    response = json_response(payload.get("body", {}), status=int(payload.get("status", 200)))
    response.headers["Idempotent-Replayed"] = "true"
    return response


# -------------------------------- Timing -------------------------------------


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            log.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
