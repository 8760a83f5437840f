"""Unit tests for :class:`app.services.profile.service.ProfileService`."""

from __future__ import annotations

from datetime import timedelta

import pytest
from app.services._shared import cache_keys
from app.services._shared.errors import (
    DuplicateIdentifierError,
    InvalidResetKeyError,
    NotFoundError,
)
from app.services.auth.dto import LoginIn
from app.services.auth.service import Authenticator
from app.services.profile.dto import ProfileUpdateIn, ResetPasswordIn
from app.services.profile.service import ProfileService
from tests.factories.account import AccountFactory, AddressFactory

TTL = timedelta(days=1)


@pytest.fixture()
def captured():
    return []


@pytest.fixture()
def svc(stores, captured):
    return ProfileService(
        token_store=stores.tokens,
        cache=stores.cache,
        on_password_reset_requested=[captured.append],
    )


@pytest.fixture()
def account_id(session):
    account = AccountFactory(username="robin", email="robin@example.com", first_name="Robin")
    AddressFactory(account=account, city="Austin")
    session.commit()
    return account.id


class TestProfile:
    def test_get_profile_includes_saved_addresses(self, svc, account_id):
        out = svc.get_profile(account_id)

        assert out.username == "robin"
        assert out.billing["city"] == "Austin"
        assert out.shipping == {}
        assert out.registered_at.tzinfo is not None

    def test_unknown_account(self, svc, session):
        with pytest.raises(NotFoundError):
            svc.get_profile(999_999)

    def test_partial_update_keeps_untouched_fields(self, svc, stores, account_id):
        stores.cache.set(cache_keys.profile(account_id), {"stale": True})

        out = svc.update_profile(
            account_id,
            ProfileUpdateIn(last_name="Nguyen", shipping={"city": "Denver", "country": "us"}),
        )

        assert out.first_name == "Robin"
        assert out.last_name == "Nguyen"
        assert out.shipping["city"] == "Denver"
        assert out.shipping["country"] == "US"
        assert stores.cache.get(cache_keys.profile(account_id)) is None

    def test_email_update_is_normalized(self, svc, account_id):
        out = svc.update_profile(account_id, ProfileUpdateIn(email="  Robin.New@Example.com"))
        assert out.email == "robin.new@example.com"

    def test_email_taken_by_another_account(self, svc, session, account_id):
        AccountFactory(email="taken@example.com")
        session.commit()

        with pytest.raises(DuplicateIdentifierError) as exc_info:
            svc.update_profile(account_id, ProfileUpdateIn(email="TAKEN@example.com"))
        assert exc_info.value.code == "email_exists"
        assert svc.get_profile(account_id).email == "robin@example.com"


class TestPasswordReset:
    def test_forgot_password_hands_key_to_observers(self, svc, captured, account_id):
        svc.forgot_password("ROBIN@example.com")

        assert len(captured) == 1
        event = captured[0]
        assert event.account_id == account_id
        assert event.email == "robin@example.com"
        assert event.key

    def test_forgot_password_unknown_email(self, svc, captured, session):
        with pytest.raises(NotFoundError, match="No user found"):
            svc.forgot_password("ghost@example.com")
        assert captured == []

    def test_failing_observer_does_not_break_the_request(self, stores, account_id):
        def boom(event):
            raise RuntimeError("mailer down")

        svc = ProfileService(token_store=stores.tokens, on_password_reset_requested=[boom])
        svc.forgot_password("robin@example.com")

    def test_reset_sets_password_and_revokes_every_token(self, svc, stores, captured, account_id):
        auth = Authenticator(token_store=stores.tokens)
        old_token = auth.login(LoginIn(identifier="robin", password="Passw0rd!")).token
        svc.forgot_password("robin@example.com")

        svc.reset_password(
            ResetPasswordIn(email="robin@example.com", key=captured[0].key, new_password="N3wPass!")
        )

        assert stores.tokens.lookup(old_token) is None
        assert auth.login(LoginIn(identifier="robin", password="N3wPass!")).account.id == account_id

    def test_reset_key_is_single_use(self, svc, captured, account_id):
        svc.forgot_password("robin@example.com")
        dto = ResetPasswordIn(email="robin@example.com", key=captured[0].key, new_password="N3wPass!")
        svc.reset_password(dto)

        with pytest.raises(InvalidResetKeyError):
            svc.reset_password(dto)

    def test_wrong_key(self, svc, captured, account_id):
        svc.forgot_password("robin@example.com")
        with pytest.raises(InvalidResetKeyError):
            svc.reset_password(
                ResetPasswordIn(email="robin@example.com", key="nope", new_password="N3wPass!")
            )

    def test_expired_key(self, stores, captured, account_id, freeze_time):
        svc = ProfileService(
            token_store=stores.tokens,
            reset_ttl=timedelta(minutes=30),
            on_password_reset_requested=[captured.append],
        )
        with freeze_time("2024-01-01 00:00:00"):
            svc.forgot_password("robin@example.com")
        with freeze_time("2024-01-01 01:00:00"), pytest.raises(InvalidResetKeyError):
            svc.reset_password(
                ResetPasswordIn(
                    email="robin@example.com", key=captured[0].key, new_password="N3wPass!"
                )
            )
