# app/services/orders/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from app.services._shared.dto import PageMeta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class CreateOrderIn:
    """
    Checkout request.

    :param billing: Billing fields; blanks fall back to the saved billing address.
    :type billing: dict
    :param shipping: Shipping fields; empty falls back to the saved shipping
        address, then to billing.
    :type shipping: dict | None
    :param payment_method: Payment gateway id (recorded, never charged).
    :type payment_method: str
    """

    billing: dict[str, Any] = field(default_factory=dict)
    shipping: dict[str, Any] | None = None
    payment_method: str = ""
    payment_method_title: str | None = None
    customer_note: str | None = None


@dataclass(frozen=True, slots=True)
class OrderQueryIn:
    page: int = 1
    per_page: int = 10
    status: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class OrderLineOut:
    id: int
    product_id: int
    variation_id: int | None
    name: str
    sku: str | None
    quantity: int
    price: Decimal
    subtotal: Decimal
    total: Decimal
    options: dict[str, Any]


@dataclass(frozen=True, slots=True)
class OrderOut:
    id: int
    status: str
    status_label: str
    email: str
    currency: str
    payment_method: str
    payment_method_title: str
    billing: dict[str, Any]
    shipping: dict[str, Any]
    coupon_codes: list[str]
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    shipping_total: Decimal
    total: Decimal
    customer_note: str | None
    created_at: datetime | None
    updated_at: datetime | None
    completed_at: datetime | None
    items: list[OrderLineOut] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)


@dataclass(frozen=True, slots=True)
class OrderListOut:
    items: list[OrderOut]
    meta: PageMeta


@dataclass(frozen=True, slots=True)
class NoteOut:
    id: int
    content: str
    created_at: datetime | None


@dataclass(frozen=True, slots=True)
class TrackingOut:
    order_id: int
    status: str
    status_label: str
    created_at: datetime | None
    updated_at: datetime | None
    completed_at: datetime | None
    tracking_number: str | None
    tracking_provider: str | None
    tracking_link: str | None
    notes: list[NoteOut] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class StatusOut:
    key: str
    slug: str
    label: str


# ------------------------------ Events ------------------------------------ #


@dataclass(frozen=True, slots=True)
class OrderCreated:
    """Published to ``on_order_created`` observers after the order commits."""

    account_id: int
    order: OrderOut
