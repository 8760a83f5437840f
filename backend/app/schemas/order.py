"""Order request and response schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, pre_load, validate

from app.models.address import ADDRESS_FIELDS
from app.services.orders.dto import CreateOrderIn, OrderQueryIn

from .common import Money, PageMetaSchema, RequestSchema

MAX_PER_PAGE = 100


def _collect(data: dict[str, Any], prefix: str) -> dict[str, Any]:
    """Gather ``<prefix>_<field>`` keys into a plain address dict."""
    block = dict(data.get(prefix) or {}) if isinstance(data.get(prefix), dict) else {}
    for name in ADDRESS_FIELDS:
        value = data.get(f"{prefix}_{name}")
        if value is not None:
            block[name] = value
    return block


class CreateOrderSchema(RequestSchema):
    """
    ``POST /orders/create``.

    Addresses arrive either flat (``billing_first_name``, ``shipping_city``...)
    or nested (``billing: {...}``); flat keys win. Blank values fall back to
    the saved address book at checkout.
    """

    billing = fields.Dict(keys=fields.String(), load_default=dict)
    shipping = fields.Dict(keys=fields.String(), load_default=dict)
    payment_method = fields.String(required=True, validate=validate.Length(min=1, max=100))
    payment_method_title = fields.String(load_default=None, validate=validate.Length(max=200))
    customer_note = fields.String(load_default=None, validate=validate.Length(max=2000))

    @pre_load
    def group_addresses(self, data: Any, **_: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {**data, "billing": _collect(data, "billing"), "shipping": _collect(data, "shipping")}

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> CreateOrderIn:
        return CreateOrderIn(
            billing=data["billing"],
            shipping=data["shipping"] or None,
            payment_method=data["payment_method"],
            payment_method_title=data.get("payment_method_title"),
            customer_note=data.get("customer_note"),
        )


class OrderIdSchema(RequestSchema):
    order_id = fields.Integer(required=True, validate=validate.Range(min=1))


class OrderListQuerySchema(RequestSchema):
    """``GET /orders`` query: ``page``, ``per_page`` (capped at 100) and ``status``."""

    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    per_page = fields.Integer(load_default=10, validate=validate.Range(min=1))
    status = fields.String(load_default=None, validate=validate.Length(max=30))

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> OrderQueryIn:
        return OrderQueryIn(
            page=data["page"],
            per_page=min(data["per_page"], MAX_PER_PAGE),
            status=data.get("status") or None,
        )


# ------------------------------- Responses -------------------------------- #


class OrderLineSchema(Schema):
    id = fields.Integer()
    product_id = fields.Integer()
    variation_id = fields.Integer(allow_none=True)
    name = fields.String()
    sku = fields.String(allow_none=True)
    quantity = fields.Integer()
    price = Money()
    subtotal = Money()
    total = Money()
    options = fields.Dict(keys=fields.String())


class OrderSchema(Schema):
    """Order with totals and, unless excluded, its line items."""

    id = fields.Integer(required=True)
    status = fields.String(required=True)
    status_label = fields.String()
    email = fields.String()
    currency = fields.String()
    payment_method = fields.String()
    payment_method_title = fields.String()
    billing = fields.Dict(keys=fields.String())
    shipping = fields.Dict(keys=fields.String())
    coupon_codes = fields.List(fields.String())
    subtotal = Money()
    discount_total = Money()
    tax_total = Money()
    shipping_total = Money()
    total = Money()
    customer_note = fields.String(allow_none=True)
    item_count = fields.Integer()
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)
    completed_at = fields.DateTime(allow_none=True)
    items = fields.List(fields.Nested(OrderLineSchema))


class OrderListSchema(Schema):
    items = fields.List(fields.Nested(OrderSchema(exclude=("billing", "shipping"))))
    meta = fields.Nested(PageMetaSchema)


class OrderNoteSchema(Schema):
    id = fields.Integer()
    content = fields.String()
    created_at = fields.DateTime(allow_none=True)


class TrackingSchema(Schema):
    order_id = fields.Integer()
    status = fields.String()
    status_label = fields.String()
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)
    completed_at = fields.DateTime(allow_none=True)
    tracking_number = fields.String(allow_none=True)
    tracking_provider = fields.String(allow_none=True)
    tracking_link = fields.String(allow_none=True)
    notes = fields.List(fields.Nested(OrderNoteSchema))


class OrderStatusSchema(Schema):
    key = fields.String()
    slug = fields.String()
    label = fields.String()
