# app/services/cart/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from app.services._shared.pricing import ZERO

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AddItemIn:
    """
    Add-to-cart request.

    :param product_id: Catalog product id.
    :type product_id: int
    :param quantity: Units to add (merged with an identical line).
    :type quantity: int
    :param variation_id: Required for variable products.
    :type variation_id: int | None
    :param options: Free-form selected options (e.g. ``{"color": "red"}``).
    :type options: dict
    """

    product_id: int
    quantity: int = 1
    variation_id: int | None = None
    options: dict[str, Any] = field(default_factory=dict)


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class CartLineOut:
    key: str
    product_id: int
    variation_id: int | None
    name: str
    sku: str | None
    quantity: int
    price: Decimal
    current_price: Decimal
    line_subtotal: Decimal
    options: dict[str, Any]
    stock_status: str
    stock_quantity: int | None
    backorders_allowed: bool
    in_stock: bool

    @property
    def price_changed(self) -> bool:
        return self.price != self.current_price


@dataclass(frozen=True, slots=True)
class CartTotalsOut:
    subtotal: Decimal = ZERO
    discount_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    shipping_total: Decimal = ZERO
    total: Decimal = ZERO
    currency: str = "USD"
    currency_symbol: str = "$"


@dataclass(frozen=True, slots=True)
class CartOut:
    """
    Cart read-model with totals recomputed from live catalog prices.

    ``tax_total`` and ``shipping_total`` are always zero.
    """

    items: list[CartLineOut]
    totals: CartTotalsOut
    applied_coupons: list[str] = field(default_factory=list)
    needs_shipping: bool = False

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def line_count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True, slots=True)
class LineItemOut:
    """Result of an add: the affected line plus the whole cart afterwards."""

    line: CartLineOut
    merged: bool
    cart: CartOut


@dataclass(frozen=True, slots=True)
class RemovedLineOut:
    removed: CartLineOut
    previous_count: int
    current_count: int
    remaining_keys: list[str]
    cart: CartOut


@dataclass(frozen=True, slots=True)
class CartCountOut:
    count: int
    total: Decimal
