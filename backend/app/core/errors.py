"""Centralized JSON error handling for the API.

Every error leaves the application in the storefront envelope::

    {"success": false, "message": ..., "data": null,
     "code": ..., "status": ..., "request_id": ..., "details": {...}}

``details`` is only present when structured context exists.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, cast
from uuid import uuid4

from flask import Flask, Response, g, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from app.services._shared import errors as svc

log = logging.getLogger(__name__)


def _ensure_request_id() -> str:
    """
    Get or generate a request-scoped correlation identifier.

    :returns: Correlation/request identifier.
    :rtype: str
    """
    if hasattr(g, "request_id"):
        return cast(str, g.request_id)

    hdr = request.headers.get("X-Request-Id") or request.headers.get("X-Correlation-Id")
    req_id = hdr or str(uuid4())
    g.request_id = req_id
    return req_id


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthenticated",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        429: "too_many_requests",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_envelope(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the failure envelope.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Envelope dictionary.
    :rtype: dict
    """
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "data": None,
        "code": code,
        "status": int(status),
        "request_id": _ensure_request_id(),
    }
    if details:
        body["details"] = details
    return body


def _error_response(body: dict[str, Any], status: int) -> tuple[Response, int]:
    return jsonify(body), int(status)


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier, typically snake_case. Defaults to
        ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Optional structured payload (e.g., validation messages) included in the
        response body.
    headers : dict[str, str] | None, optional
        Extra response headers such as ``Retry-After``.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}
        self.headers = headers or {}

    def to_envelope(self) -> dict[str, Any]:
        """
        Serialize error metadata into the failure envelope.

        :returns: Envelope dictionary.
        :rtype: dict
        """
        return _as_envelope(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


# ----------------------- Service error translation ---------------------------

# Ordered: first matching class wins, so subclasses precede their bases.
_SERVICE_STATUS: tuple[tuple[type[svc.ServiceError], int], ...] = (
    (svc.NotFoundError, HTTPStatus.NOT_FOUND),
    (svc.ConflictError, HTTPStatus.CONFLICT),
    (svc.UnauthenticatedError, HTTPStatus.UNAUTHORIZED),
    (svc.InvalidCredentialsError, HTTPStatus.UNAUTHORIZED),
    (svc.AuthorizationError, HTTPStatus.FORBIDDEN),
    (svc.PreconditionFailedError, HTTPStatus.PRECONDITION_FAILED),
    (svc.UnavailableError, HTTPStatus.SERVICE_UNAVAILABLE),
    (svc.InvalidInputError, HTTPStatus.BAD_REQUEST),
    (svc.BusinessRuleError, HTTPStatus.BAD_REQUEST),
)


def from_service_error(exc: svc.ServiceError) -> APIError:
    """
    Map a framework-agnostic service error onto an :class:`APIError`.

    :param exc: Error raised within the service layer.
    :returns: API error carrying status, code, details and headers.
    :rtype: APIError
    """
    status = HTTPStatus.BAD_REQUEST
    for klass, mapped in _SERVICE_STATUS:
        if isinstance(exc, klass):
            status = mapped
            break
    headers: dict[str, str] = {}
    if isinstance(exc, svc.UnavailableError):
        headers["Retry-After"] = str(exc.retry_after)
    return APIError(
        message=exc.message,
        status_code=status,
        code=exc.code,
        details=dict(exc.details) or None,
        headers=headers,
    )


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Guarantees the failure envelope for all handled errors.
    - Ensures a correlation ``request_id`` is present on every error.
    - Emits 5xx with ``exc_info`` for traceability; 4xx as warnings.
    """

    @app.before_request
    def _seed_request_id() -> None:
        _ensure_request_id()

    def _render(err: APIError):
        body = err.to_envelope()
        level = log.error if err.status_code >= 500 else log.warning
        level(
            "APIError: code=%s status=%s msg=%s request_id=%s",
            err.code,
            err.status_code,
            err.message,
            body.get("request_id"),
            extra={"code": err.code, "status": err.status_code},
        )
        response, status = _error_response(body, err.status_code)
        for header, value in err.headers.items():
            response.headers[header] = value
        return response, status

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return _render(err)

    @app.errorhandler(svc.ServiceError)
    def handle_service_error(err: svc.ServiceError):
        return _render(from_service_error(err))

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        elif status == HTTPStatus.TOO_MANY_REQUESTS:
            message = f"Rate limit exceeded: {message}"
        body = _as_envelope(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level(
            "HTTPException: code=%s status=%s detail=%s request_id=%s",
            error_code,
            status,
            message,
            body.get("request_id"),
        )
        response, status = _error_response(body, status)
        # Preserve rate-limit and Allow headers set by the raiser
        for header, value in err.get_headers():
            if header.lower() != "content-type":
                response.headers[header] = value
        return response, status

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        body = _as_envelope(
            status=HTTPStatus.BAD_REQUEST,
            code="validation_error",
            message=_first_validation_message(err.messages) or "Validation failed",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: request_id=%s", body.get("request_id"))
        return _error_response(body, HTTPStatus.BAD_REQUEST)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        body = _as_envelope(
            status=HTTPStatus.CONFLICT,
            code="conflict",
            message="Resource conflict",
        )
        log.error("IntegrityError: request_id=%s", body.get("request_id"), exc_info=True)
        return _error_response(body, HTTPStatus.CONFLICT)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        body = _as_envelope(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("OperationalError: request_id=%s", body.get("request_id"), exc_info=True)
        response, status = _error_response(body, HTTPStatus.SERVICE_UNAVAILABLE)
        response.headers["Retry-After"] = "1"
        return response, status

    @app.errorhandler(RedisError)
    def handle_redis_error(err: RedisError):
        body = _as_envelope(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("RedisError: request_id=%s", body.get("request_id"), exc_info=True)
        response, status = _error_response(body, HTTPStatus.SERVICE_UNAVAILABLE)
        response.headers["Retry-After"] = "1"
        return response, status

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Never leak internal details
        body = _as_envelope(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("Unhandled exception: request_id=%s", body.get("request_id"), exc_info=True)
        return _error_response(body, HTTPStatus.INTERNAL_SERVER_ERROR)


def _first_validation_message(messages: Any) -> str | None:
    """Return the first leaf message of a marshmallow error tree."""
    if isinstance(messages, str):
        return messages
    if isinstance(messages, list):
        for item in messages:
            found = _first_validation_message(item)
            if found:
                return found
    if isinstance(messages, dict):
        for value in messages.values():
            found = _first_validation_message(value)
            if found:
                return found
    return None
