"""Order endpoints: checkout, listing, detail, tracking and cancellation."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, request

from app.api.deps import (
    build_cached_response,
    cached_payload,
    current_account_id,
    enforce_idempotency,
    load,
    order_service,
    require_token,
    store_idempotent_response,
    success_response,
    timing,
)
from app.api.etag import set_response_etag
from app.schemas import (
    CreateOrderSchema,
    OrderIdSchema,
    OrderListQuerySchema,
    OrderListSchema,
    OrderSchema,
    OrderStatusSchema,
    TrackingSchema,
)
from app.services._shared import cache_keys
from app.services.orders.service import OrderService

bp = Blueprint("orders", __name__)

create_schema = CreateOrderSchema()
order_id_schema = OrderIdSchema()
list_query_schema = OrderListQuerySchema()
order_schema = OrderSchema()
order_list_schema = OrderListSchema()
tracking_schema = TrackingSchema()
statuses_schema = OrderStatusSchema(many=True)


@bp.post("/create")
@require_token
@timing
def create_order():
    """Place an order from the cart; ``Idempotency-Key`` replays the first response."""

    cache_key, cached = enforce_idempotency("orders.create")
    if cached:
        return build_cached_response(cached)
    order = order_service().create_order(current_account_id(), load(create_schema))
    body = {"success": True, "message": "Order created successfully", "data": order_schema.dump(order)}
    store_idempotent_response(cache_key, body, 201)
    return success_response(body["data"], body["message"], status=201)


@bp.get("")
@require_token
@timing
def list_orders():
    account_id = current_account_id()
    query = list_query_schema.load(request.args)
    payload = cached_payload(
        cache_keys.orders(account_id, asdict(query)),
        "ORDERS_CACHE_TTL",
        lambda: order_list_schema.dump(order_service().list_orders(account_id, query)),
    )
    return success_response(payload)


@bp.get("/statuses")
@require_token
@timing
def list_statuses():
    payload = cached_payload(
        cache_keys.ORDER_STATUSES,
        "STATUSES_CACHE_TTL",
        lambda: statuses_schema.dump(OrderService.list_statuses()),
    )
    return success_response(payload)


@bp.get("/<int:order_id>")
@require_token
@timing
def get_order(order_id: int):
    account_id = current_account_id()
    payload = cached_payload(
        cache_keys.order(account_id, order_id),
        "ORDER_CACHE_TTL",
        lambda: order_schema.dump(order_service().get_order(account_id, order_id)),
    )
    return set_response_etag(success_response(payload), payload)


@bp.get("/tracking/<int:order_id>")
@require_token
@timing
def get_tracking(order_id: int):
    account_id = current_account_id()
    payload = cached_payload(
        cache_keys.tracking(account_id, order_id),
        "TRACKING_CACHE_TTL",
        lambda: tracking_schema.dump(order_service().get_tracking(account_id, order_id)),
    )
    return success_response(payload)


@bp.put("/cancel")
@require_token
@timing
def cancel_order():
    data = load(order_id_schema)
    order = order_service().cancel_order(current_account_id(), data["order_id"])
    return success_response(order_schema.dump(order), "Order cancelled successfully")
