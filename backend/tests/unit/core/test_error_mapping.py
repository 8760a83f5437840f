"""Unit tests for translating service errors into API errors."""

from __future__ import annotations

import pytest
from app.core.errors import from_service_error
from app.services._shared import errors as svc


@pytest.mark.parametrize(
    ("exc", "status", "code"),
    [
        (svc.NotFoundError("Order", 1), 404, "not_found"),
        (svc.DuplicateIdentifierError("email"), 409, "email_exists"),
        (svc.UnauthenticatedError(), 401, "unauthenticated"),
        (svc.InvalidCredentialsError(), 401, "invalid_credentials"),
        (svc.AuthorizationError(), 403, "forbidden"),
        (svc.PreconditionFailedError(), 412, "precondition_failed"),
        (svc.InvalidInputError(), 400, "validation_error"),
        (svc.EmptyCartError(), 400, "empty_cart"),
        (svc.InvalidResetKeyError(), 400, "invalid_reset_key"),
        (svc.UnavailableError(), 503, "service_unavailable"),
    ],
)
def test_service_errors_map_to_status_and_code(exc, status, code):
    err = from_service_error(exc)
    assert err.status_code == status
    assert err.code == code
    assert err.message == exc.message


def test_stock_details_survive_translation():
    err = from_service_error(svc.InsufficientStockError(2, product_id=9))
    assert err.details == {"available": 2, "product_id": 9}
    assert err.message == "Only 2 items available in stock"


def test_unavailable_sets_retry_after():
    err = from_service_error(svc.UnavailableError(retry_after=3))
    assert err.headers == {"Retry-After": "3"}
