"""Customer account model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import check_password_hash, generate_password_hash

from app.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, as_utc

if TYPE_CHECKING:
    from .address import Address


class Account(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Customer identity used for authentication, carts and orders.

    Session tokens are not stored here; they live in the session-token store
    and only reference ``Account.id``.

    Fields
    ------
    username : str
        Login handle, unique.
    email : str
        Login email, unique. Stored lowercased and trimmed.
    password_hash : str
        Werkzeug hash (write-only setter via ``password``).
    first_name, last_name, display_name : str | None
        Profile names.
    password_reset_hash : str | None
        Hash of the pending one-time reset key.
    password_reset_expires_at : datetime | None
        Expiry of the pending reset key.
    """

    __tablename__ = "accounts"

    username: Mapped[str] = mapped_column(String(60), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(250), nullable=True)
    password_reset_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_reset_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    addresses: Mapped[list[Address]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Address.type",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        UniqueConstraint("username", name="uq_accounts_username"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - write-only
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Check a candidate password against the stored hash.

        :param raw: Plain text candidate.
        :type raw: str
        :returns: ``True`` on match.
        :rtype: bool
        """
        if not self.password_hash or not raw:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- Password reset key --------------------
    def set_reset_key(self, raw_key: str, expires_at: datetime) -> None:
        """Store the hash of a one-time reset key and its expiry."""
        self.password_reset_hash = generate_password_hash(raw_key)
        self.password_reset_expires_at = expires_at

    def check_reset_key(self, raw_key: str, now: datetime) -> bool:
        """
        Return ``True`` when ``raw_key`` matches the pending, unexpired key.

        :param raw_key: Key supplied by the client.
        :type raw_key: str
        :param now: Current UTC time.
        :type now: datetime
        :rtype: bool
        """
        expires_at = as_utc(self.password_reset_expires_at)
        if not self.password_reset_hash or expires_at is None or not raw_key:
            return False
        if expires_at <= now:
            return False
        return bool(check_password_hash(self.password_reset_hash, raw_key))

    def clear_reset_key(self) -> None:
        self.password_reset_hash = None
        self.password_reset_expires_at = None

    # -------------------- Helpers --------------------
    @property
    def public_name(self) -> str:
        return self.display_name or self.username

    def address_of(self, address_type: str) -> Address | None:
        return next((a for a in self.addresses if a.type == address_type), None)

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Lowercase and trim the email.

        :raises ValueError: If missing or obviously malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()
