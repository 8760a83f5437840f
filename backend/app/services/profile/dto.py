# app/services/profile/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class ProfileUpdateIn:
    """
    Partial profile update. ``None`` leaves a field untouched.

    :param billing: Billing fields to upsert into the address book.
    :type billing: dict | None
    :param shipping: Shipping fields to upsert into the address book.
    :type shipping: dict | None
    """

    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    email: str | None = None
    billing: dict[str, Any] | None = None
    shipping: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class ProfileOut:
    id: int
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    display_name: str | None
    registered_at: datetime | None
    billing: dict[str, str] = field(default_factory=dict)
    shipping: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PasswordResetRequested:
    """
    Event handed to password-reset observers (e.g. a mailer).

    :param key: Raw one-time key; only its hash is stored.
    :type key: str
    """

    account_id: int
    email: str
    username: str
    key: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class ResetPasswordIn:
    email: str
    key: str
    new_password: str
