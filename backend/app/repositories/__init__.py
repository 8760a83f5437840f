"""Repository package exposing persistence access for the commerce models."""

from __future__ import annotations

from app.repositories.account import AccountRepository
from app.repositories.address import AddressRepository
from app.repositories.base import (
    BaseRepository,
    Page,
    Pagination,
    apply_sorting,
    paginate_select,
)
from app.repositories.cart import CartRepository
from app.repositories.catalog import CouponRepository, ProductRepository
from app.repositories.order import OrderRepository

__all__ = [
    # Base
    "BaseRepository",
    "Page",
    "Pagination",
    "apply_sorting",
    "paginate_select",
    # Domain
    "AccountRepository",
    "AddressRepository",
    "CartRepository",
    "CouponRepository",
    "OrderRepository",
    "ProductRepository",
]
