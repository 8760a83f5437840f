"""Factory Boy definitions for accounts and saved addresses."""

from __future__ import annotations

from app.models.account import Account
from app.models.address import Address

import factory
from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Passw0rd!"


class AccountFactory(BaseFactory):
    """
    Build persisted :class:`app.models.account.Account` instances.

    The raw password defaults to :data:`DEFAULT_PASSWORD`; pass
    ``password="..."`` to override it.
    """

    class Meta:
        model = Account

    id = None
    username = factory.Sequence(lambda n: f"shopper{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    display_name = factory.SelfAttribute("username")
    password_hash = factory.LazyFunction(lambda: "")  # set via postgen

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password using model setter (ensures hashing)."""
        obj.password = extracted or DEFAULT_PASSWORD


class AddressFactory(BaseFactory):
    """Complete billing address unless ``type="shipping"`` is passed."""

    class Meta:
        model = Address

    account = factory.SubFactory(AccountFactory)
    type = "billing"
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    address_1 = factory.Faker("street_address")
    city = factory.Faker("city")
    state = "CA"
    postcode = factory.Faker("postcode")
    country = "US"
    email = factory.LazyAttribute(lambda o: o.account.email)
    phone = "+1 555 0100"
    is_default = True
