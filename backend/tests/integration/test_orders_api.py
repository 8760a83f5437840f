"""
HTTP tests for ``/api/v1/orders``.

The checkout scenario walks the whole flow: log in, fill the cart, apply a
coupon, place the order (with an idempotency key), read it back and cancel.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from app.core.extensions import ORDER_CREATED_KEY
from app.models.account import Account
from app.models.catalog import Product
from tests.factories.account import DEFAULT_PASSWORD, AccountFactory
from tests.factories.catalog import CouponFactory, ProductFactory
from tests.factories.order import OrderFactory
from tests.helpers.http import data_of, error_of, json_headers, login

BASE = "/api/v1/orders"

FLAT_BILLING = {
    "billing_first_name": "Avery",
    "billing_last_name": "Cole",
    "billing_email": "avery@example.com",
    "billing_address_1": "9 Pine Ave",
    "billing_city": "Fargo",
    "billing_postcode": "58102",
    "billing_country": "US",
}


@pytest.fixture()
def ctx(client, session):
    account = AccountFactory(username="avery", email="avery@example.com")
    product = ProductFactory(price=Decimal("20.00"), manage_stock=True, stock_quantity=5)
    CouponFactory(code="take10", amount=Decimal("10"))
    session.commit()
    return {
        "account_id": account.id,
        "product": product.id,
        "token": login(client, "avery", DEFAULT_PASSWORD),
    }


def _fill_cart(client, ctx, quantity=2):
    resp = client.post(
        "/api/v1/cart/add",
        json={"product_id": ctx["product"], "quantity": quantity},
        headers=json_headers(ctx["token"]),
    )
    assert resp.status_code == 200, resp.get_json()


def test_checkout_scenario(app, client, ctx, session):
    events = []
    app.extensions[ORDER_CREATED_KEY].append(events.append)
    headers = json_headers(ctx["token"])
    _fill_cart(client, ctx)
    data_of(client.post("/api/v1/cart/apply-coupon", json={"coupon_code": "take10"}, headers=headers))

    resp = client.post(
        f"{BASE}/create",
        json={**FLAT_BILLING, "payment_method": "cod", "customer_note": "Leave at door"},
        headers=headers,
    )

    assert resp.status_code == 201
    order = data_of(resp)
    assert order["status"] == "pending"
    assert order["subtotal"] == "40.00"
    assert order["discount_total"] == "4.00"
    assert order["total"] == "36.00"
    assert order["billing"]["country"] == "US"
    assert order["shipping"]["city"] == "Fargo"
    assert [e.order.id for e in events] == [order["id"]]

    cart = data_of(client.get("/api/v1/cart", headers=headers))
    assert cart["is_empty"] is True
    session.expire_all()
    assert session.get(Product, ctx["product"]).stock_quantity == 3

    listing = data_of(client.get(BASE, headers=headers))
    assert [o["id"] for o in listing["items"]] == [order["id"]]
    assert listing["meta"]["total"] == 1

    detail = client.get(f"{BASE}/{order['id']}", headers=headers)
    assert data_of(detail)["customer_note"] == "Leave at door"
    assert detail.headers.get("ETag")

    cancelled = data_of(client.put(f"{BASE}/cancel", json={"order_id": order["id"]}, headers=headers))
    assert cancelled["status"] == "cancelled"
    session.expire_all()
    assert session.get(Product, ctx["product"]).stock_quantity == 5

    tracking = data_of(client.get(f"{BASE}/tracking/{order['id']}", headers=headers))
    assert tracking["status"] == "cancelled"
    assert len(tracking["notes"]) == 1

    error_of(
        client.put(f"{BASE}/cancel", json={"order_id": order["id"]}, headers=headers),
        400,
        "not_cancellable",
    )


def test_idempotency_key_replays_first_response(client, ctx):
    _fill_cart(client, ctx)
    headers = json_headers(ctx["token"], **{"Idempotency-Key": "abc-123"})
    payload = {**FLAT_BILLING, "payment_method": "cod"}

    first = client.post(f"{BASE}/create", json=payload, headers=headers)
    second = client.post(f"{BASE}/create", json=payload, headers=headers)

    assert first.status_code == second.status_code == 201
    assert second.headers.get("Idempotent-Replayed") == "true"
    assert data_of(second)["id"] == data_of(first)["id"]


def test_empty_cart(client, ctx):
    resp = client.post(
        f"{BASE}/create", json={**FLAT_BILLING, "payment_method": "cod"}, headers=json_headers(ctx["token"])
    )
    error_of(resp, 400, "empty_cart")


def test_payment_method_required(client, ctx):
    _fill_cart(client, ctx)
    body = error_of(
        client.post(f"{BASE}/create", json=FLAT_BILLING, headers=json_headers(ctx["token"])),
        400,
        "validation_error",
    )
    assert "payment_method" in body["details"]["errors"]


def test_missing_billing_fields(client, ctx):
    _fill_cart(client, ctx)
    body = error_of(
        client.post(
            f"{BASE}/create",
            json={"billing": {"first_name": "Avery"}, "payment_method": "cod"},
            headers=json_headers(ctx["token"]),
        ),
        400,
        "validation_error",
    )
    assert "billing_address_1" in body["details"]


def test_foreign_order_is_hidden(client, ctx, session):
    other = OrderFactory()
    session.commit()
    other_id = other.id

    headers = json_headers(ctx["token"])
    error_of(client.get(f"{BASE}/{other_id}", headers=headers), 404, "not_found")
    error_of(client.get(f"{BASE}/tracking/{other_id}", headers=headers), 404, "not_found")


def test_list_pagination_and_status_filter(client, ctx, session):
    account = session.get(Account, ctx["account_id"])
    for _ in range(3):
        OrderFactory(account=account)
    session.commit()
    headers = json_headers(ctx["token"])

    page = data_of(client.get(BASE, query_string={"page": 2, "per_page": 2}, headers=headers))
    assert len(page["items"]) == 1
    assert page["meta"]["total_pages"] == 2
    assert page["meta"]["has_prev"] is True

    none = data_of(client.get(BASE, query_string={"status": "completed"}, headers=headers))
    assert none["items"] == []

    error_of(client.get(BASE, query_string={"status": "bogus"}, headers=headers), 400, "validation_error")


def test_statuses(client, ctx):
    statuses = data_of(client.get(f"{BASE}/statuses", headers=json_headers(ctx["token"])))
    assert {"key": "wc-pending", "slug": "pending", "label": "Pending payment"} in statuses
