"""HTTP tests for ``/api/v1/auth``: sessions, profile and password reset."""

from __future__ import annotations

import pytest
from app.core.extensions import PASSWORD_RESET_KEY
from tests.factories.account import DEFAULT_PASSWORD, AccountFactory
from tests.helpers.http import data_of, error_of, json_headers, login

BASE = "/api/v1/auth"


@pytest.fixture()
def account(session):
    acc = AccountFactory(username="morgan", email="morgan@example.com", first_name="Morgan")
    session.commit()
    return {"id": acc.id, "username": "morgan", "email": "morgan@example.com"}


class TestRegisterAndLogin:
    def test_register_returns_token(self, client, session):
        resp = client.post(
            f"{BASE}/register",
            json={"username": "newuser", "email": "New@Example.com", "password": "secret12"},
        )

        assert resp.status_code == 201
        data = data_of(resp)
        assert len(data["token"]) == 64
        assert data["account"]["email"] == "new@example.com"

    def test_register_duplicate_username(self, client, account):
        resp = client.post(
            f"{BASE}/register",
            json={"username": "morgan", "email": "x@example.com", "password": "secret12"},
        )
        error_of(resp, 409, "username_exists")

    def test_register_validation(self, client, session):
        resp = client.post(f"{BASE}/register", json={"username": "ab", "password": "1"})
        body = error_of(resp, 400, "validation_error")
        assert {"username", "email", "password"} <= set(body["details"]["errors"])

    @pytest.mark.parametrize("field", ["username", "email", "identifier"])
    def test_login_accepts_identifier_aliases(self, client, account, field):
        value = account["email"] if field != "username" else account["username"]
        resp = client.post(f"{BASE}/login", json={field: value, "password": DEFAULT_PASSWORD})
        assert data_of(resp)["account"]["id"] == account["id"]

    def test_login_bad_password(self, client, account):
        resp = client.post(f"{BASE}/login", json={"username": "morgan", "password": "nope"})
        error_of(resp, 401, "invalid_credentials")

    def test_sixth_login_invalidates_the_first_token(self, client, account):
        tokens = [login(client, "morgan", DEFAULT_PASSWORD) for _ in range(6)]

        error_of(client.get(f"{BASE}/validate-token", headers=json_headers(tokens[0])), 401)
        assert data_of(client.get(f"{BASE}/validate-token", headers=json_headers(tokens[5])))[
            "valid"
        ]


class TestTokens:
    def test_login_token_opens_authenticated_routes(self, client, account, stores):
        token = login(client, "morgan", DEFAULT_PASSWORD)

        cart = client.get("/api/v1/cart", headers=json_headers(token))
        assert cart.status_code == 200, cart.get_json()
        status = data_of(client.get(f"{BASE}/validate-token", headers=json_headers(token)))

        assert status["valid"] is True
        assert status["last_used_at"] is not None
        assert stores.tokens.lookup(token).last_used_at is not None

    def test_validate_token_via_each_transport(self, client, account):
        token = login(client, "morgan", DEFAULT_PASSWORD)

        for resp in (
            client.get(f"{BASE}/validate-token", headers=json_headers(token)),
            client.get(f"{BASE}/validate-token", headers={"X-Auth-Token": token}),
            client.get(f"{BASE}/validate-token", query_string={"token": token}),
        ):
            assert data_of(resp)["account_id"] == account["id"]

    def test_missing_token(self, client, session):
        body = error_of(client.get(f"{BASE}/validate-token"), 401, "unauthenticated")
        assert body["message"] == "Authentication token required"

    def test_logout_revokes_token(self, client, account):
        token = login(client, "morgan", DEFAULT_PASSWORD)
        other = login(client, "morgan", DEFAULT_PASSWORD)

        resp = client.post(f"{BASE}/logout", headers=json_headers(token))
        assert data_of(resp)["revoked"] == 1
        error_of(client.get(f"{BASE}/validate-token", headers=json_headers(token)), 401)
        data_of(client.get(f"{BASE}/validate-token", headers=json_headers(other)))

    def test_logout_all_sessions(self, client, account):
        token = login(client, "morgan", DEFAULT_PASSWORD)
        other = login(client, "morgan", DEFAULT_PASSWORD)

        client.post(f"{BASE}/logout", json={"all_sessions": True}, headers=json_headers(token))
        error_of(client.get(f"{BASE}/validate-token", headers=json_headers(other)), 401)


class TestProfile:
    def test_get_profile_sets_etag(self, client, account):
        token = login(client, "morgan", DEFAULT_PASSWORD)
        resp = client.get(f"{BASE}/profile", headers=json_headers(token))

        assert data_of(resp)["first_name"] == "Morgan"
        assert resp.headers.get("ETag")

        cached = client.get(
            f"{BASE}/profile", headers=json_headers(token, **{"If-None-Match": resp.headers["ETag"]})
        )
        assert cached.status_code == 304

    def test_update_with_matching_if_match(self, client, account):
        token = login(client, "morgan", DEFAULT_PASSWORD)
        etag = client.get(f"{BASE}/profile", headers=json_headers(token)).headers["ETag"]

        resp = client.put(
            f"{BASE}/profile",
            json={"last_name": "Stone", "billing": {"city": "Reno"}},
            headers=json_headers(token, **{"If-Match": etag}),
        )
        data = data_of(resp)
        assert data["last_name"] == "Stone"
        assert data["billing"]["city"] == "Reno"
        assert resp.headers["ETag"] != etag

    def test_stale_if_match_is_rejected(self, client, account):
        token = login(client, "morgan", DEFAULT_PASSWORD)
        resp = client.put(
            f"{BASE}/profile",
            json={"last_name": "Stone"},
            headers=json_headers(token, **{"If-Match": '"stale"'}),
        )
        error_of(resp, 412, "precondition_failed")

    def test_email_conflict(self, client, account, session):
        AccountFactory(email="other@example.com")
        session.commit()
        token = login(client, "morgan", DEFAULT_PASSWORD)

        resp = client.put(
            f"{BASE}/profile", json={"email": "other@example.com"}, headers=json_headers(token)
        )
        error_of(resp, 409, "email_exists")


class TestPasswordReset:
    def test_forgot_and_reset_flow(self, app, client, account):
        events = []
        app.extensions[PASSWORD_RESET_KEY].append(events.append)
        token = login(client, "morgan", DEFAULT_PASSWORD)

        resp = client.post(f"{BASE}/forgot-password", json={"email": "morgan@example.com"})
        assert data_of(resp) is None
        key = events[0].key

        resp = client.post(
            f"{BASE}/reset-password",
            json={"email": "morgan@example.com", "key": key, "password": "brandNew1"},
        )
        data_of(resp)
        error_of(client.get(f"{BASE}/validate-token", headers=json_headers(token)), 401)
        login(client, "morgan", "brandNew1")

    def test_forgot_unknown_email(self, client, session):
        resp = client.post(f"{BASE}/forgot-password", json={"email": "nobody@example.com"})
        error_of(resp, 404, "not_found")

    def test_reset_with_bad_key(self, client, account):
        resp = client.post(
            f"{BASE}/reset-password",
            json={"email": "morgan@example.com", "key": "bad", "password": "brandNew1"},
        )
        error_of(resp, 400, "invalid_reset_key")
