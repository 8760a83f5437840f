"""Unit tests for :class:`app.services.addresses.service.AddressService`."""

from __future__ import annotations

import pytest
from app.services._shared import cache_keys
from app.services._shared.errors import InvalidInputError, NotFoundError
from app.services.addresses.dto import AddressIn
from app.services.addresses.service import AddressService
from tests.factories.account import AccountFactory

HOME = {
    "first_name": "Sam",
    "last_name": "Park",
    "address_1": "1 Main St",
    "city": "Portland",
    "postcode": "97201",
    "country": "us",
}


@pytest.fixture()
def svc(stores):
    return AddressService(cache=stores.cache)


@pytest.fixture()
def account_id(session):
    account = AccountFactory()
    session.commit()
    return account.id


def test_empty_address_book(svc, account_id):
    book = svc.list(account_id)
    assert book.billing is None
    assert book.shipping is None
    assert book.default_billing is False


def test_add_then_replace_keeps_one_address_per_type(svc, account_id):
    svc.add(account_id, AddressIn(type="billing", fields=HOME, is_default=True))
    book = svc.add(account_id, AddressIn(type="Billing", fields={**HOME, "city": "Salem"}))

    assert book.billing["city"] == "Salem"
    assert book.billing["country"] == "US"
    assert book.billing["company"] == ""
    assert book.default_billing is False


def test_update_requires_existing_address(svc, account_id):
    with pytest.raises(NotFoundError):
        svc.update(account_id, AddressIn(type="shipping", fields=HOME))


def test_update_keeps_default_flag_when_omitted(svc, account_id):
    svc.add(account_id, AddressIn(type="shipping", fields=HOME, is_default=True))
    book = svc.update(account_id, AddressIn(type="shipping", fields={"city": "Bend"}))

    assert book.shipping["city"] == "Bend"
    assert book.shipping["address_1"] == "1 Main St"
    assert book.default_shipping is True


def test_delete_and_set_default(svc, account_id):
    svc.add(account_id, AddressIn(type="billing", fields=HOME))
    svc.add(account_id, AddressIn(type="shipping", fields=HOME))

    book = svc.set_default(account_id, "shipping")
    assert book.default_shipping is True

    book = svc.delete(account_id, "billing")
    assert book.billing is None
    assert book.shipping is not None

    with pytest.raises(NotFoundError):
        svc.delete(account_id, "billing")


def test_invalid_type(svc, account_id):
    with pytest.raises(InvalidInputError):
        svc.add(account_id, AddressIn(type="office", fields=HOME))


def test_writes_invalidate_cached_views(svc, stores, account_id):
    stores.cache.set(cache_keys.addresses(account_id), {"cached": True})
    stores.cache.set(cache_keys.profile(account_id), {"cached": True})

    svc.add(account_id, AddressIn(type="billing", fields=HOME))

    assert stores.cache.get(cache_keys.addresses(account_id)) is None
    assert stores.cache.get(cache_keys.profile(account_id)) is None
