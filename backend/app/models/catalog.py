"""Catalog tables backing the SQL catalog adapter.

Products, variations and coupons are owned by the catalog collaborator. Cart
and order code never reads these models directly; it goes through the
``Catalog`` port implemented in :mod:`app.infra.sqlalchemy.catalog`.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.extensions import db

from .base import Money, PKMixin, ReprMixin, TimestampMixin, as_utc

SIMPLE = "simple"
VARIABLE = "variable"

IN_STOCK = "instock"
OUT_OF_STOCK = "outofstock"
ON_BACKORDER = "onbackorder"


class StockFieldsMixin:
    """Stock bookkeeping shared by products and variations.

    Attributes
    ----------
    manage_stock:
        When ``False`` quantities are not tracked (variations then fall back
        to the parent product).
    stock_quantity:
        Units on hand when ``manage_stock`` is set.
    stock_status:
        ``instock`` | ``outofstock`` | ``onbackorder``.
    backorders_allowed:
        Permit selling past zero.
    """

    manage_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stock_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stock_status: Mapped[str] = mapped_column(String(20), nullable=False, default=IN_STOCK)
    backorders_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def sync_stock_status(self) -> None:
        """Derive ``stock_status`` from the managed quantity."""
        if not self.manage_stock:
            return
        if (self.stock_quantity or 0) > 0:
            self.stock_status = IN_STOCK
        elif self.backorders_allowed:
            self.stock_status = ON_BACKORDER
        else:
            self.stock_status = OUT_OF_STOCK


class Product(PKMixin, ReprMixin, TimestampMixin, StockFieldsMixin, db.Model):
    """Sellable product (``simple`` or ``variable``)."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=SIMPLE)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="publish")
    price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    regular_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    sale_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    is_virtual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    variations: Mapped[list[ProductVariation]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariation.id",
    )

    __table_args__ = (
        CheckConstraint("type IN ('simple', 'variable')", name="product_type"),
        CheckConstraint("status IN ('publish', 'draft', 'private')", name="product_status"),
    )


class ProductVariation(PKMixin, ReprMixin, TimestampMixin, StockFieldsMixin, db.Model):
    """Concrete option set of a variable product (e.g. size/colour)."""

    __tablename__ = "product_variations"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    product: Mapped[Product] = relationship(back_populates="variations")


class Coupon(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """Cart-level discount code. Codes are stored lowercased."""

    __tablename__ = "coupons"

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False, default="fixed_cart")
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("code", name="uq_coupons_code"),
        CheckConstraint("discount_type IN ('percent', 'fixed_cart')", name="discount_type"),
    )

    @validates("code")
    def _normalize_code(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Coupon code is required.")
        return value.strip().lower()

    def is_valid_at(self, now: datetime) -> bool:
        expires_at = as_utc(self.expires_at)
        return bool(self.is_active) and (expires_at is None or expires_at > now)
