"""Billing and shipping address book entries."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .account import Account

BILLING = "billing"
SHIPPING = "shipping"
ADDRESS_TYPES = (BILLING, SHIPPING)

ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "address_1",
    "address_2",
    "city",
    "state",
    "postcode",
    "country",
    "email",
    "phone",
)


class Address(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    One saved address per ``(account, type)``.

    ``type`` is ``billing`` or ``shipping``; ``is_default`` marks the address
    used as fallback during checkout.
    """

    __tablename__ = "addresses"

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)

    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    company: Mapped[str | None] = mapped_column(String(200))
    address_1: Mapped[str | None] = mapped_column(String(255))
    address_2: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100))
    postcode: Mapped[str | None] = mapped_column(String(20))
    country: Mapped[str | None] = mapped_column(String(2))
    email: Mapped[str | None] = mapped_column(String(254))
    phone: Mapped[str | None] = mapped_column(String(40))

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    account: Mapped[Account] = relationship(back_populates="addresses")

    __table_args__ = (
        UniqueConstraint("account_id", "type", name="uq_addresses_account_id_type"),
        CheckConstraint("type IN ('billing', 'shipping')", name="address_type"),
    )

    @validates("country")
    def _upper_country(self, key: str, value: str | None) -> str | None:
        return value.strip().upper() if isinstance(value, str) else value

    def to_dict(self) -> dict[str, str]:
        """Return the address fields with ``None`` rendered as empty strings."""
        return {name: getattr(self, name) or "" for name in ADDRESS_FIELDS}
