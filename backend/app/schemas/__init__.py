"""Convenience exports for application schemas."""

from __future__ import annotations

from .address import AddressBookSchema, AddressFieldsSchema, AddressTypeSchema, AddressWriteSchema
from .auth import (
    AccountSchema,
    ForgotPasswordSchema,
    LoginSchema,
    LogoutSchema,
    ProfileSchema,
    ProfileUpdateSchema,
    RegisterSchema,
    ResetPasswordSchema,
    SessionSchema,
    TokenStatusSchema,
)
from .cart import (
    AddToCartSchema,
    CartCountSchema,
    CartItemKeySchema,
    CartSchema,
    CouponCodeSchema,
    LineItemSchema,
    RemovedLineSchema,
    UpdateCartSchema,
)
from .common import Money, PageMetaSchema, RequestSchema
from .order import (
    CreateOrderSchema,
    OrderIdSchema,
    OrderListQuerySchema,
    OrderListSchema,
    OrderSchema,
    OrderStatusSchema,
    TrackingSchema,
)

__all__ = [
    "AccountSchema",
    "AddressBookSchema",
    "AddressFieldsSchema",
    "AddressTypeSchema",
    "AddressWriteSchema",
    "AddToCartSchema",
    "CartCountSchema",
    "CartItemKeySchema",
    "CartSchema",
    "CouponCodeSchema",
    "CreateOrderSchema",
    "ForgotPasswordSchema",
    "LineItemSchema",
    "LoginSchema",
    "LogoutSchema",
    "Money",
    "OrderIdSchema",
    "OrderListQuerySchema",
    "OrderListSchema",
    "OrderSchema",
    "OrderStatusSchema",
    "PageMetaSchema",
    "ProfileSchema",
    "ProfileUpdateSchema",
    "RegisterSchema",
    "RemovedLineSchema",
    "RequestSchema",
    "ResetPasswordSchema",
    "SessionSchema",
    "TokenStatusSchema",
    "TrackingSchema",
    "UpdateCartSchema",
]
