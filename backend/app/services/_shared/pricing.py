"""Money arithmetic and cart line identity."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.services._shared.ports.catalog import CouponView

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

PERCENT = "percent"
FIXED_CART = "fixed_cart"


def money(value: Any) -> Decimal:
    """Quantize ``value`` to cents, rounding half up."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_key(product_id: int, variation_id: int | None, options: Mapping[str, Any] | None) -> str:
    """
    Deterministic identity of a cart selection.

    Two additions of the same product, variation and options produce the same
    key and therefore merge into one line.

    :param product_id: Catalog product id.
    :param variation_id: Variation id, ``None``/``0`` for simple products.
    :param options: Free-form selected options; key order is irrelevant.
    :returns: 32 hex characters.
    """
    opts = sorted((str(k), str(v)) for k, v in (options or {}).items())
    payload = json.dumps([int(product_id), int(variation_id or 0), opts], separators=(",", ":"))
    return hashlib.sha256(payload.encode()).hexdigest()[:32]


def coupon_discount(subtotal: Decimal, coupons: Iterable[CouponView]) -> Decimal:
    """
    Total discount of the valid ``coupons`` on ``subtotal``, capped at it.

    ``percent`` coupons take ``amount`` percent of the subtotal; ``fixed_cart``
    coupons take ``amount`` off. Invalid coupons contribute nothing.
    """
    subtotal = money(subtotal)
    discount = ZERO
    for coupon in coupons:
        if not coupon.is_valid:
            continue
        if coupon.discount_type == PERCENT:
            discount += money(subtotal * Decimal(coupon.amount) / Decimal(100))
        elif coupon.discount_type == FIXED_CART:
            discount += money(coupon.amount)
    return min(money(discount), subtotal)


def allocate(amounts: Sequence[Decimal], discount: Decimal) -> list[Decimal]:
    """
    Split ``discount`` over ``amounts`` proportionally.

    The last non-zero amount absorbs the rounding remainder, so the parts
    always sum to ``discount`` exactly.

    :param amounts: Line subtotals.
    :param discount: Discount to spread (``<= sum(amounts)``).
    :returns: Discount share per amount, same order.
    """
    total = sum(amounts, ZERO)
    shares = [ZERO for _ in amounts]
    if not amounts or total <= 0 or discount <= 0:
        return shares
    last = max(i for i, amount in enumerate(amounts) if amount > 0)
    allocated = ZERO
    for i, amount in enumerate(amounts):
        if i == last:
            shares[i] = money(discount - allocated)
            break
        share = money(discount * amount / total)
        shares[i] = share
        allocated += share
    return shares
