"""Cart request and response schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, validate

from app.services.cart.dto import AddItemIn

from .common import Money, RequestSchema


class AddToCartSchema(RequestSchema):
    """
    ``POST /cart/add``.

    ``variation`` (the selected attributes) is accepted as an alias of
    ``options``.
    """

    product_id = fields.Integer(required=True, validate=validate.Range(min=1))
    quantity = fields.Integer(load_default=1, validate=validate.Range(min=1))
    variation_id = fields.Integer(load_default=None, validate=validate.Range(min=0))
    variation = fields.Dict(keys=fields.String(), load_default=None)
    options = fields.Dict(keys=fields.String(), load_default=None)

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> AddItemIn:
        raw = data.get("options") or data.get("variation") or {}
        options = {str(k): str(v) for k, v in raw.items() if v is not None}
        return AddItemIn(
            product_id=data["product_id"],
            quantity=data["quantity"],
            variation_id=data.get("variation_id") or None,
            options=options,
        )


class UpdateCartSchema(RequestSchema):
    cart_item_key = fields.String(required=True, validate=validate.Length(min=1, max=64))
    quantity = fields.Integer(required=True)


class CartItemKeySchema(RequestSchema):
    cart_item_key = fields.String(required=True, validate=validate.Length(min=1, max=64))


class CouponCodeSchema(RequestSchema):
    coupon_code = fields.String(required=True, validate=validate.Length(min=1, max=100))


# ------------------------------- Responses -------------------------------- #


class CartLineSchema(Schema):
    key = fields.String(required=True)
    product_id = fields.Integer(required=True)
    variation_id = fields.Integer(allow_none=True)
    name = fields.String()
    sku = fields.String(allow_none=True)
    quantity = fields.Integer(required=True)
    price = Money()
    current_price = Money()
    price_changed = fields.Boolean()
    line_subtotal = Money()
    options = fields.Dict(keys=fields.String())
    stock_status = fields.String()
    stock_quantity = fields.Integer(allow_none=True)
    backorders_allowed = fields.Boolean()
    in_stock = fields.Boolean()


class CartTotalsSchema(Schema):
    subtotal = Money()
    discount_total = Money()
    tax_total = Money()
    shipping_total = Money()
    total = Money()
    currency = fields.String()
    currency_symbol = fields.String()


class CartSchema(Schema):
    """Full cart: lines, totals and derived counters."""

    items = fields.List(fields.Nested(CartLineSchema))
    totals = fields.Nested(CartTotalsSchema)
    item_count = fields.Integer()
    line_count = fields.Integer()
    is_empty = fields.Boolean()
    needs_shipping = fields.Boolean()
    applied_coupons = fields.List(fields.String())


class LineItemSchema(Schema):
    cart_item_key = fields.String(attribute="line.key")
    line = fields.Nested(CartLineSchema)
    merged = fields.Boolean()
    cart = fields.Nested(CartSchema)


class RemovedLineSchema(Schema):
    removed = fields.Nested(CartLineSchema)
    previous_count = fields.Integer()
    current_count = fields.Integer()
    remaining_keys = fields.List(fields.String())
    cart = fields.Nested(CartSchema)


class CartCountSchema(Schema):
    count = fields.Integer()
    total = Money()
