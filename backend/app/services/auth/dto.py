# app/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param identifier: Username or email.
    :type identifier: str
    :param password: Raw password to verify.
    :type password: str
    """

    identifier: str
    password: str


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for account registration.

    :param username: Desired login handle.
    :type username: str
    :param email: Email address (normalized by the model).
    :type email: str
    :param password: Raw password.
    :type password: str
    """

    username: str
    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param account_id: Authenticated account.
    :type account_id: int
    :param token: Token presented with the request.
    :type token: str
    :param all_sessions: Also revoke every other token of the account.
    :type all_sessions: bool
    """

    account_id: int
    token: str
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AccountOut:
    id: int
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    display_name: str | None
    registered_at: datetime | None


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    Issued session token plus the account it belongs to.

    :param token: Opaque bearer token.
    :type token: str
    :param expires_at: Absolute expiry (UTC).
    :type expires_at: datetime
    :param account: Public account data.
    :type account: AccountOut
    """

    token: str
    expires_at: datetime
    account: AccountOut


@dataclass(frozen=True, slots=True)
class TokenStatusOut:
    valid: bool
    account_id: int
    expires_at: datetime
    last_used_at: datetime | None = None


# ------------------------ Config DTO --------------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPolicy:
    """
    Session token issuance policy.

    :param ttl: Lifetime of a token from issue (not extended by use).
    :type ttl: timedelta
    :param max_tokens: Live tokens kept per account; older ones are evicted.
    :type max_tokens: int
    """

    ttl: timedelta = timedelta(days=30)
    max_tokens: int = 5
