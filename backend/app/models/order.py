"""Order aggregate: immutable line snapshots plus status history notes."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy import (
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.extensions import db

from .base import ZERO, Money, PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .account import Account


class OrderStatus(str, Enum):
    """Order lifecycle states. Values are the public slugs."""

    PENDING = "pending"
    PROCESSING = "processing"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    OrderStatus.PENDING: "Pending payment",
    OrderStatus.PROCESSING: "Processing",
    OrderStatus.ON_HOLD: "On hold",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
    OrderStatus.REFUNDED: "Refunded",
    OrderStatus.FAILED: "Failed",
}


class Order(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Placed order.

    ``account_id`` is nullable: guest orders are matched to an account by
    ``email`` when listing. Money columns are snapshots taken at placement.
    """

    __tablename__ = "orders"

    account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [m.value for m in enum],
            validate_strings=True,
        ),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    payment_method: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    payment_method_title: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    billing: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    shipping: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    coupon_codes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    discount_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    tax_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    shipping_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)

    customer_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tracking_provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tracking_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    account: Mapped[Account | None] = relationship()
    lines: Mapped[list[OrderLine]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
        lazy="selectin",
    )
    notes: Mapped[list[OrderNote]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderNote.id",
        lazy="selectin",
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def add_note(self, content: str, *, is_customer_note: bool = False) -> OrderNote:
        note = OrderNote(content=content, is_customer_note=is_customer_note)
        self.notes.append(note)
        return note


class OrderLine(PKMixin, ReprMixin, db.Model):
    """Snapshot of a cart line at placement time. Never updated afterwards."""

    __tablename__ = "order_lines"

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    options: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    order: Mapped[Order] = relationship(back_populates="lines")


class OrderNote(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """Status-change history entry; ``is_customer_note`` marks public notes."""

    __tablename__ = "order_notes"

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_customer_note: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    order: Mapped[Order] = relationship(back_populates="notes")
