"""Unit tests for money rounding, line identity and coupon arithmetic."""

from __future__ import annotations

from decimal import Decimal

import pytest
from app.services._shared.ports.catalog import CouponView
from app.services._shared.pricing import allocate, coupon_discount, line_key, money


def _coupon(discount_type: str, amount: str, *, valid: bool = True) -> CouponView:
    return CouponView(code="c", discount_type=discount_type, amount=Decimal(amount), is_valid=valid)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, "0.00"),
        (10, "10.00"),
        ("2.345", "2.35"),
        (Decimal("2.344"), "2.34"),
        (0.1, "0.10"),
    ],
)
def test_money_quantizes_half_up(raw, expected):
    assert money(raw) == Decimal(expected)


def test_line_key_ignores_option_order():
    a = line_key(5, None, {"color": "red", "size": "M"})
    b = line_key(5, 0, {"size": "M", "color": "red"})
    assert a == b
    assert len(a) == 32


def test_line_key_distinguishes_variations_and_options():
    base = line_key(5, 1, {})
    assert base != line_key(5, 2, {})
    assert base != line_key(5, 1, {"gift": "yes"})
    assert base != line_key(6, 1, {})


def test_percent_coupon_discount():
    assert coupon_discount(Decimal("35.00"), [_coupon("percent", "10")]) == Decimal("3.50")


def test_fixed_cart_coupon_discount_is_capped_at_subtotal():
    assert coupon_discount(Decimal("3.00"), [_coupon("fixed_cart", "5.00")]) == Decimal("3.00")


def test_invalid_coupons_are_ignored():
    coupons = [_coupon("percent", "50", valid=False), _coupon("fixed_cart", "1.00")]
    assert coupon_discount(Decimal("20.00"), coupons) == Decimal("1.00")


def test_allocate_sums_to_discount_exactly():
    amounts = [Decimal("10.00"), Decimal("10.00"), Decimal("10.00")]
    shares = allocate(amounts, Decimal("1.00"))

    assert shares[:2] == [Decimal("0.33"), Decimal("0.33")]
    assert shares[2] == Decimal("0.34")
    assert sum(shares) == Decimal("1.00")


def test_allocate_skips_trailing_zero_lines_for_the_remainder():
    shares = allocate([Decimal("5.00"), Decimal("0.00")], Decimal("1.00"))
    assert shares == [Decimal("1.00"), Decimal("0.00")]


def test_allocate_without_discount_returns_zeros():
    assert allocate([Decimal("5.00")], Decimal("0")) == [Decimal("0.00")]
    assert allocate([], Decimal("1.00")) == []
