"""Cart aggregate: one active cart per account with merged lines."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.extensions import db

from .base import Money, PKMixin, ReprMixin, TimestampMixin


class Cart(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Active cart of an account, created lazily on first use.

    Totals are never persisted; they are recomputed from ``lines`` and live
    catalog prices on every read.

    Fields
    ------
    account_id : int
        Owner, unique (one active cart per account).
    applied_coupons : list[str]
        Lowercased coupon codes. Reassign the list to persist changes.
    """

    __tablename__ = "carts"

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    applied_coupons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    lines: Mapped[list[CartLine]] = relationship(
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartLine.position",
        lazy="selectin",
    )

    __table_args__ = (UniqueConstraint("account_id", name="uq_carts_account_id"),)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def line(self, line_key: str) -> CartLine | None:
        return next((ln for ln in self.lines if ln.line_key == line_key), None)

    def next_position(self) -> int:
        return max((ln.position for ln in self.lines), default=-1) + 1


class CartLine(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    One merged selection in a cart.

    ``product_id``/``variation_id`` are references into the external catalog,
    so they carry no foreign keys. ``unit_price`` is the price captured at the
    last mutation of the line.
    """

    __tablename__ = "cart_lines"

    cart_id: Mapped[int] = mapped_column(
        ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_key: Mapped[str] = mapped_column(String(32), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    options: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    cart: Mapped[Cart] = relationship(back_populates="lines")

    __table_args__ = (
        UniqueConstraint("cart_id", "line_key", name="uq_cart_lines_cart_id_line_key"),
        CheckConstraint("quantity > 0", name="quantity_positive"),
    )
