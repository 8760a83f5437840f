"""HTTP tests for ``/api/v1/addresses``."""

from __future__ import annotations

import pytest
from tests.factories.account import DEFAULT_PASSWORD, AccountFactory
from tests.helpers.http import data_of, error_of, json_headers, login

BASE = "/api/v1/addresses"

ADDRESS = {
    "first_name": "Jo",
    "last_name": "Baker",
    "address_1": "77 Bay St",
    "city": "Tampa",
    "state": "FL",
    "postcode": "33602",
    "country": "US",
}


@pytest.fixture()
def headers(client, session):
    AccountFactory(username="jo")
    session.commit()
    return json_headers(login(client, "jo", DEFAULT_PASSWORD))


def test_address_book_lifecycle(client, headers):
    assert data_of(client.get(BASE, headers=headers)) == {
        "billing": None,
        "shipping": None,
        "default_billing": False,
        "default_shipping": False,
    }

    resp = client.post(f"{BASE}/add", json={**ADDRESS, "type": "shipping"}, headers=headers)
    assert resp.status_code == 201
    assert data_of(resp)["shipping"]["city"] == "Tampa"

    book = data_of(
        client.put(f"{BASE}/update", json={"type": "shipping", "city": "Miami"}, headers=headers)
    )
    assert book["shipping"]["city"] == "Miami"
    assert book["shipping"]["address_1"] == "77 Bay St"

    book = data_of(client.post(f"{BASE}/set-default", json={"type": "shipping"}, headers=headers))
    assert book["default_shipping"] is True

    book = data_of(client.delete(f"{BASE}/delete", json={"type": "shipping"}, headers=headers))
    assert book["shipping"] is None


def test_add_requires_core_fields(client, headers):
    body = error_of(
        client.post(f"{BASE}/add", json={"type": "billing", "city": "Tampa"}, headers=headers),
        400,
        "validation_error",
    )
    assert "first_name" in body["details"]["errors"]


def test_invalid_type(client, headers):
    error_of(
        client.post(f"{BASE}/add", json={**ADDRESS, "type": "office"}, headers=headers),
        400,
        "validation_error",
    )


def test_update_missing_address(client, headers):
    error_of(
        client.put(f"{BASE}/update", json={"type": "billing", "city": "Miami"}, headers=headers),
        404,
        "not_found",
    )
