"""HTTP tests for the health endpoint and the shared error envelope."""

from __future__ import annotations

from tests.helpers.http import data_of, error_of


def test_health(client):
    data = data_of(client.get("/api/v1/health"))
    assert data["status"] == "ok"
    assert data["db"] == "ok"


def test_unknown_route_uses_error_envelope(client):
    body = error_of(client.get("/api/v1/nope"), 404, "not_found")
    assert body["message"] == "Route '/api/v1/nope' not found"
    assert body["request_id"]


def test_request_id_is_echoed(client):
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "req-42"})
    assert resp.headers.get("X-Request-ID") == "req-42"


def test_invalid_token_is_rejected_on_protected_routes(client):
    body = error_of(
        client.get("/api/v1/cart", headers={"Authorization": "Bearer " + "0" * 64}),
        401,
        "unauthenticated",
    )
    assert body["message"] == "Invalid or expired authentication token"


def test_invalid_token_is_ignored_on_public_routes(client):
    resp = client.get("/api/v1/health", headers={"X-Auth-Token": "garbage"})
    assert resp.status_code == 200


def test_method_not_allowed(client):
    error_of(client.get("/api/v1/cart/clear"), 405)
