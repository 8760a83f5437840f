"""Repository tests for account lookups and credential checks."""

from __future__ import annotations

from app.repositories import AccountRepository
from tests.factories.account import DEFAULT_PASSWORD, AccountFactory


def test_identifier_resolves_username_or_email(session):
    account = AccountFactory(username="lee", email="lee@example.com")
    session.flush()
    repo = AccountRepository(session=session)

    assert repo.get_by_identifier("lee") is account
    assert repo.get_by_identifier(" LEE@example.com ") is account
    assert repo.get_by_identifier("   ") is None


def test_username_wins_over_matching_email(session):
    by_email = AccountFactory(username="first", email="taken@example.com")
    by_username = AccountFactory(username="taken@example.com", email="second@example.com")
    session.flush()

    found = AccountRepository(session=session).get_by_identifier("taken@example.com")
    assert found is by_username
    assert found is not by_email


def test_email_taken_excludes_the_caller(session):
    account = AccountFactory(email="me@example.com")
    session.flush()
    repo = AccountRepository(session=session)

    assert repo.email_taken("ME@example.com")
    assert not repo.email_taken("me@example.com", exclude_id=account.id)
    assert repo.username_taken(account.username)


def test_authenticate(session):
    account = AccountFactory()
    session.flush()
    repo = AccountRepository(session=session)

    assert repo.authenticate(account.username, DEFAULT_PASSWORD) is account
    assert repo.authenticate(account.username, "wrong") is None
    assert repo.authenticate("ghost", DEFAULT_PASSWORD) is None
