"""Cart endpoints: lines, quantities and coupons of the caller's cart."""

from __future__ import annotations

from flask import Blueprint

from app.api.deps import (
    cached_payload,
    cart_service,
    current_account_id,
    load,
    require_token,
    success_response,
    timing,
)
from app.schemas import (
    AddToCartSchema,
    CartCountSchema,
    CartItemKeySchema,
    CartSchema,
    CouponCodeSchema,
    LineItemSchema,
    RemovedLineSchema,
    UpdateCartSchema,
)
from app.services._shared import cache_keys

bp = Blueprint("cart", __name__)

add_schema = AddToCartSchema()
update_schema = UpdateCartSchema()
key_schema = CartItemKeySchema()
coupon_schema = CouponCodeSchema()
cart_schema = CartSchema()
line_item_schema = LineItemSchema()
removed_schema = RemovedLineSchema()
count_schema = CartCountSchema()


@bp.get("")
@require_token
@timing
def get_cart():
    account_id = current_account_id()
    payload = cached_payload(
        cache_keys.cart(account_id),
        "CART_CACHE_TTL",
        lambda: cart_schema.dump(cart_service().get_cart(account_id)),
    )
    return success_response(payload)


@bp.get("/count")
@require_token
@timing
def count():
    result = cart_service().count(current_account_id())
    return success_response(count_schema.dump(result))


@bp.post("/add")
@require_token
@timing
def add_item():
    result = cart_service().add_item(current_account_id(), load(add_schema))
    return success_response(line_item_schema.dump(result), "Product added to cart")


@bp.put("/update")
@require_token
@timing
def update_item():
    data = load(update_schema)
    cart = cart_service().update_quantity(current_account_id(), data["cart_item_key"], data["quantity"])
    message = "Cart item removed" if data["quantity"] <= 0 else "Cart updated successfully"
    return success_response(cart_schema.dump(cart), message)


@bp.route("/remove", methods=["DELETE", "POST"])
@require_token
@timing
def remove_item():
    data = load(key_schema)
    result = cart_service().remove_item(current_account_id(), data["cart_item_key"])
    return success_response(removed_schema.dump(result), "Product removed from cart")


@bp.delete("/clear")
@require_token
@timing
def clear():
    removed = cart_service().clear(current_account_id())
    return success_response({"items_removed": removed}, "Cart cleared successfully")


@bp.post("/apply-coupon")
@require_token
@timing
def apply_coupon():
    data = load(coupon_schema)
    cart = cart_service().apply_coupon(current_account_id(), data["coupon_code"])
    return success_response(cart_schema.dump(cart), "Coupon applied successfully")


@bp.delete("/remove-coupon")
@require_token
@timing
def remove_coupon():
    data = load(coupon_schema)
    cart = cart_service().remove_coupon(current_account_id(), data["coupon_code"])
    return success_response(cart_schema.dump(cart), "Coupon removed successfully")
