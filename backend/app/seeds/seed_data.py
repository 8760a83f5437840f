"""Idempotent database seed helpers for local development environments."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, TypeVar, cast

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.account import Account
from app.models.address import Address
from app.models.catalog import SIMPLE, VARIABLE, Coupon, Product, ProductVariation

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

ACCOUNT_FIXTURES: list[dict[str, Any]] = [
    {
        "username": "alexm",
        "email": "alex.martinez@example.com",
        "first_name": "Alex",
        "last_name": "Martinez",
        "password": "devPass123!",
        "billing": {
            "first_name": "Alex",
            "last_name": "Martinez",
            "address_1": "12 Market Street",
            "city": "Springfield",
            "state": "IL",
            "postcode": "62701",
            "country": "US",
            "email": "alex.martinez@example.com",
            "phone": "+1 555 0101",
        },
    },
    {
        "username": "jamielee",
        "email": "jamie.lee@example.com",
        "first_name": "Jamie",
        "last_name": "Lee",
        "password": "strongPass123",
        "billing": None,
    },
]

PRODUCT_FIXTURES: list[dict[str, Any]] = [
    {
        "sku": "TSHIRT-BASIC",
        "name": "Basic T-Shirt",
        "price": "10.00",
        "manage_stock": True,
        "stock_quantity": 50,
    },
    {
        "sku": "MUG-CLASSIC",
        "name": "Classic Mug",
        "price": "8.50",
        "regular_price": "9.50",
        "sale_price": "8.50",
        "manage_stock": True,
        "stock_quantity": 3,
    },
    {
        "sku": "EBOOK-GUIDE",
        "name": "Style Guide (eBook)",
        "price": "4.99",
        "is_virtual": True,
    },
    {
        "sku": "POSTER-RETIRED",
        "name": "Retired Poster",
        "price": "15.00",
        "manage_stock": True,
        "stock_quantity": 0,
    },
    {
        "sku": "HOODIE",
        "name": "Hoodie",
        "type": VARIABLE,
        "price": "35.00",
        "variations": [
            {"sku": "HOODIE-S", "attributes": {"size": "S"}, "price": "35.00", "stock_quantity": 5},
            {"sku": "HOODIE-M", "attributes": {"size": "M"}, "price": "35.00", "stock_quantity": 8},
            {"sku": "HOODIE-XL", "attributes": {"size": "XL"}, "price": "39.00", "stock_quantity": 2},
        ],
    },
]

COUPON_FIXTURES: list[dict[str, Any]] = [
    {"code": "welcome10", "discount_type": "percent", "amount": "10"},
    {"code": "fiveoff", "discount_type": "fixed_cart", "amount": "5.00"},
    {
        "code": "summer2020",
        "discount_type": "percent",
        "amount": "20",
        "expires_at": datetime(2020, 9, 1, tzinfo=UTC),
    },
]


def _session(database: SQLAlchemy) -> Session:
    """Return the current SQLAlchemy session."""
    return cast(Session, database.session)


def _touch(summary: dict[str, dict[str, int]], table: str, created: bool) -> None:
    """Update summary counters for the given table."""
    entry = summary.setdefault(table, {"created": 0, "existing": 0})
    if created:
        entry["created"] += 1
    else:
        entry["existing"] += 1


def _get_or_create(
    session: Session,
    model: type[T],
    *,
    defaults: dict[str, Any] | None = None,
    **filters: Any,
) -> tuple[T, bool]:
    """Fetch ``model`` by ``filters`` or create it using ``defaults``."""
    instance = session.execute(select(model).filter_by(**filters)).scalar_one_or_none()
    if instance is not None:
        return instance, False
    params = dict(defaults or {})
    params.update(filters)
    instance = cast(T, model(**params))
    session.add(instance)
    return instance, True


def _money(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def seed_accounts(database: SQLAlchemy, *, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Create demo accounts and their saved billing addresses."""
    if verbose:
        LOGGER.info("Seeding accounts...")
    session = _session(database)
    summary: dict[str, dict[str, int]] = {}

    with session.begin():
        for fixture in ACCOUNT_FIXTURES:
            account, created = _get_or_create(
                session,
                Account,
                defaults={
                    "email": fixture["email"],
                    "first_name": fixture["first_name"],
                    "last_name": fixture["last_name"],
                    "display_name": fixture["username"],
                },
                username=fixture["username"],
            )
            if created:
                account.password = fixture["password"]
            session.flush()
            _touch(summary, "accounts", created)

            billing = fixture.get("billing")
            if billing:
                address, created = _get_or_create(
                    session, Address, defaults={"is_default": True}, account_id=account.id, type="billing"
                )
                for key, value in billing.items():
                    setattr(address, key, value)
                session.flush()
                _touch(summary, "addresses", created)

    return summary


def seed_catalog(database: SQLAlchemy, *, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Create products, variations and coupons (matched by SKU / code)."""
    if verbose:
        LOGGER.info("Seeding catalog...")
    session = _session(database)
    summary: dict[str, dict[str, int]] = {}

    with session.begin():
        for fixture in PRODUCT_FIXTURES:
            product, created = _get_or_create(session, Product, sku=fixture["sku"])
            product.name = fixture["name"]
            product.type = fixture.get("type", SIMPLE)
            product.status = "publish"
            product.price = _money(fixture["price"])
            product.regular_price = _money(fixture.get("regular_price", fixture["price"]))
            product.sale_price = _money(fixture.get("sale_price"))
            product.is_virtual = bool(fixture.get("is_virtual", False))
            product.manage_stock = bool(fixture.get("manage_stock", False))
            product.stock_quantity = fixture.get("stock_quantity")
            product.backorders_allowed = False
            product.sync_stock_status()
            session.flush()
            _touch(summary, "products", created)

            for entry in fixture.get("variations", ()):
                variation, created = _get_or_create(
                    session, ProductVariation, product_id=product.id, sku=entry["sku"]
                )
                variation.attributes = dict(entry["attributes"])
                variation.price = _money(entry["price"])
                variation.manage_stock = True
                variation.stock_quantity = entry["stock_quantity"]
                variation.sync_stock_status()
                session.flush()
                _touch(summary, "product_variations", created)

        for fixture in COUPON_FIXTURES:
            coupon, created = _get_or_create(session, Coupon, code=fixture["code"])
            coupon.discount_type = fixture["discount_type"]
            coupon.amount = Decimal(fixture["amount"])
            coupon.is_active = True
            coupon.expires_at = fixture.get("expires_at")
            session.flush()
            _touch(summary, "coupons", created)

    return summary


def run_all(database: SQLAlchemy, *, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Run all seeders in the correct foreign-key order."""
    if verbose:
        LOGGER.info("Running full seed pipeline...")
    combined: dict[str, dict[str, int]] = {}
    for func in (seed_accounts, seed_catalog):
        result = func(database, verbose=verbose)
        for table, counters in result.items():
            entry = combined.setdefault(table, {"created": 0, "existing": 0})
            entry["created"] += counters.get("created", 0)
            entry["existing"] += counters.get("existing", 0)
    return combined


__all__ = ["seed_accounts", "seed_catalog", "run_all"]
