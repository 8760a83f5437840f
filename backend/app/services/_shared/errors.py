"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between repositories, ports,
and application services.

The translation to HTTP responses is handled by ``app/core/errors.py``, which
maps every :class:`ServiceError` subclass to a status code and keeps the
``code`` attribute as the machine-readable identifier.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g.
        ``'uq_accounts_email'``). SQLite reports column names instead of
        constraint names, so ``table.column`` fragments are accepted too.

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - ``code`` is a stable snake_case identifier surfaced to API clients.
    - ``details`` carries safe structured context (e.g. available stock).
    """

    code: ClassVar[str] = "bad_request"
    default_message: ClassVar[str] = "Request could not be processed"

    def __init__(self, message: str | None = None, *, details: Mapping[str, Any] | None = None):
        super().__init__(message or self.default_message)
        self.details: dict[str, Any] = dict(details or {})

    @property
    def message(self) -> str:
        return str(self)


# --------------------------------------------------------------------------- #
# Lookup / uniqueness
# --------------------------------------------------------------------------- #


@dataclass(eq=False)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found or is not visible to the caller.

    Ownership mismatches deliberately surface as ``NotFoundError`` so the API
    never confirms the existence of another account's resources.

    :param entity: Entity name (e.g., "Order").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    :param detail: Optional client-facing message overriding the default.
    :type detail: str | None
    :param extra: Optional structured context for the client.
    :type extra: dict | None
    """

    entity: str
    key: str | int
    detail: str | None = None
    extra: dict[str, Any] | None = None

    code: ClassVar[str] = "not_found"

    def __post_init__(self) -> None:
        Exception.__init__(self, str(self))
        self.details = dict(self.extra or {})

    def __str__(self) -> str:
        return self.detail or f"{self.entity} not found"


@dataclass(eq=False)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Account").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    code: ClassVar[str] = "conflict"

    def __post_init__(self) -> None:
        Exception.__init__(self, str(self))
        self.details = {}

    def __str__(self) -> str:
        return self.detail


class DuplicateIdentifierError(ConflictError):
    """Username or email already registered to another account."""

    _MESSAGES: ClassVar[dict[str, str]] = {
        "username": "Username already exists",
        "email": "Email already exists",
    }

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__("Account", self._MESSAGES.get(field, f"{field} already exists"))

    @property  # type: ignore[override]
    def code(self) -> str:
        return f"{self.field}_exists"


class PreconditionFailedError(ServiceError):
    """Raised when an ``If-Match`` ETag does not match the current entity."""

    code = "precondition_failed"
    default_message = "Precondition failed (ETag mismatch)"


class InvalidInputError(ServiceError):
    """Input passed schema validation but violates a service-level rule."""

    code = "validation_error"
    default_message = "Invalid input"


# --------------------------------------------------------------------------- #
# Authentication / authorization
# --------------------------------------------------------------------------- #


class UnauthenticatedError(ServiceError):
    """Missing, unknown or expired session token."""

    code = "unauthenticated"
    default_message = "Invalid or expired authentication token"


class InvalidCredentialsError(ServiceError):
    """Unknown identifier or password mismatch during login."""

    code = "invalid_credentials"
    default_message = "Invalid username or password"


class AuthorizationError(ServiceError):
    """Authenticated caller is not allowed to perform the operation."""

    code = "forbidden"
    default_message = "You are not allowed to perform this action"


class InvalidResetKeyError(ServiceError):
    code = "invalid_reset_key"
    default_message = "Invalid or expired password reset key"


# --------------------------------------------------------------------------- #
# Cart / order business rules
# --------------------------------------------------------------------------- #


class BusinessRuleError(ServiceError):
    """Base for client-correctable violations of cart and order rules (400)."""

    code = "business_rule_violation"


class NotPurchasableError(BusinessRuleError):
    code = "not_purchasable"
    default_message = "Product is not purchasable"


class VariationRequiredError(BusinessRuleError):
    code = "variation_required"
    default_message = "Variation ID is required for variable products"


class InvalidVariationError(BusinessRuleError):
    code = "invalid_variation"
    default_message = "Invalid variation"


class InsufficientStockError(BusinessRuleError):
    """Requested quantity exceeds the managed stock of a product."""

    code = "insufficient_stock"

    def __init__(self, available: int, *, product_id: int | None = None) -> None:
        self.available = max(0, int(available))
        details: dict[str, Any] = {"available": self.available}
        if product_id is not None:
            details["product_id"] = product_id
        super().__init__(f"Only {self.available} items available in stock", details=details)


class InvalidCouponError(BusinessRuleError):
    code = "invalid_coupon"
    default_message = "Invalid coupon code"


class EmptyCartError(BusinessRuleError):
    code = "empty_cart"
    default_message = "Cart is empty"


class NotCancellableError(BusinessRuleError):
    code = "not_cancellable"
    default_message = "Order cannot be cancelled"


class InvalidTransitionError(BusinessRuleError):
    code = "invalid_transition"
    default_message = "Order status transition is not allowed"


# --------------------------------------------------------------------------- #
# Infrastructure
# --------------------------------------------------------------------------- #


class UnavailableError(ServiceError):
    """A backing store timed out or is unreachable; the request may be retried."""

    code = "service_unavailable"
    default_message = "Service temporarily unavailable"

    def __init__(self, message: str | None = None, *, retry_after: int = 1) -> None:
        super().__init__(message)
        self.retry_after = int(retry_after)
