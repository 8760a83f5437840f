# app/services/auth/service.py
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import IntegrityError

from app.models.account import Account
from app.models.base import as_utc
from app.services._shared.base import BaseService, ServiceContext
from app.services._shared.errors import (
    DuplicateIdentifierError,
    InvalidCredentialsError,
    UnauthenticatedError,
    violates,
)
from app.services._shared.ports.session_token_store import SessionTokenStore, SessionTokenView
from app.services.auth.dto import (
    AccountOut,
    LoginIn,
    LogoutIn,
    RegisterIn,
    SessionOut,
    TokenPolicy,
    TokenStatusOut,
)

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"Bearer\s+(.*)$", re.IGNORECASE)


def account_out(account: Account) -> AccountOut:
    return AccountOut(
        id=account.id,
        username=account.username,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        display_name=account.display_name,
        registered_at=as_utc(account.created_at),
    )


class Authenticator(BaseService):
    """
    Session-token authentication (login / register / validate / logout).

    Credentials are checked against the ``accounts`` table; issued tokens live
    in a :class:`SessionTokenStore`, which owns eviction and expiry. Tokens
    are opaque: nothing about the account can be read from them.
    """

    def __init__(
        self,
        *,
        token_store: SessionTokenStore,
        policy: TokenPolicy | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        :param token_store: Store holding the issued tokens.
        :param policy: TTL and per-account token limit.
        :param ctx: Optional request context.
        """
        super().__init__(ctx=ctx)
        self.tokens = token_store
        self.policy = policy or TokenPolicy()

    # ------------------------------------------------------------------ #
    # Login / registration
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> SessionOut:
        """
        Verify credentials and issue a new session token.

        :param dto: Identifier (username or email) and password.
        :returns: The new token and the account.
        :raises InvalidCredentialsError: Unknown identifier or wrong password.
            No token is issued in that case.
        """
        with self.ro_uow() as uow:
            account = uow.accounts.authenticate(dto.identifier, dto.password)
            if account is None:
                logger.info("auth.login_failed")
                raise InvalidCredentialsError()
            out = account_out(account)

        return self._issue(out)

    def register(self, dto: RegisterIn) -> SessionOut:
        """
        Create an account and log it in.

        :raises DuplicateIdentifierError: Username or email already registered.
        """
        try:
            with self.rw_uow() as uow:
                if uow.accounts.username_taken(dto.username):
                    raise DuplicateIdentifierError("username")
                if uow.accounts.email_taken(dto.email):
                    raise DuplicateIdentifierError("email")
                account = Account(
                    username=dto.username,
                    email=dto.email,
                    first_name=dto.first_name,
                    last_name=dto.last_name,
                    display_name=dto.display_name or dto.username,
                )
                account.password = dto.password
                uow.accounts.add(account)
                out = account_out(account)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration
            if violates(exc, "uq_accounts_username") or violates(exc, "accounts.username"):
                raise DuplicateIdentifierError("username") from exc
            if violates(exc, "uq_accounts_email") or violates(exc, "accounts.email"):
                raise DuplicateIdentifierError("email") from exc
            raise

        logger.info("auth.registered", extra={"account_id": out.id})
        return self._issue(out)

    def _issue(self, account: AccountOut) -> SessionOut:
        view = self.tokens.issue(
            account.id, ttl=self.policy.ttl, max_tokens=self.policy.max_tokens
        )
        logger.info("auth.token_issued", extra={"account_id": account.id})
        return SessionOut(token=view.token, expires_at=view.expires_at, account=account)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate(self, token: str | None) -> SessionTokenView:
        """
        Resolve a presented token to its stored record.

        Refreshes ``last_used_at`` (never ``expires_at``) and prunes the
        account's other expired tokens inline.

        :param token: Raw token from the request.
        :returns: The live token record; ``account_id`` identifies the caller.
        :raises UnauthenticatedError: Missing, unknown or expired token.
        """
        if not token:
            raise UnauthenticatedError("Authentication token required")
        view = self.tokens.lookup(token)
        if view is None:
            raise UnauthenticatedError()
        if view.is_expired():
            self.tokens.revoke(view.account_id, token)
            raise UnauthenticatedError()

        touched = self.tokens.touch(view.account_id, token)
        if touched is None:
            raise UnauthenticatedError()
        try:
            self.tokens.prune_expired(view.account_id)
        except Exception:  # noqa: BLE001 - pruning is housekeeping only
            logger.warning("auth.prune_failed", extra={"account_id": view.account_id}, exc_info=True)
        return touched

    def status(self, token: str | None) -> TokenStatusOut:
        view = self.validate(token)
        return TokenStatusOut(
            valid=True,
            account_id=view.account_id,
            expires_at=view.expires_at,
            last_used_at=view.last_used_at,
        )

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> int:
        """
        Revoke the presented token; with ``all_sessions`` revoke every token.

        Idempotent: revoking an already revoked token is not an error.

        :returns: Number of tokens removed.
        """
        removed = int(self.tokens.revoke(dto.account_id, dto.token))
        if dto.all_sessions:
            removed += self.tokens.revoke_all(dto.account_id)
        logger.info("auth.logout", extra={"account_id": dto.account_id, "evicted": removed})
        return removed

    def revoke_all(self, account_id: int) -> int:
        return self.tokens.revoke_all(account_id)

    # ------------------------------------------------------------------ #
    # Token extraction
    # ------------------------------------------------------------------ #

    @staticmethod
    def extract_token(headers: Mapping[str, str], params: Mapping[str, Any]) -> str | None:
        """
        Pick the session token from a request.

        Precedence: ``Authorization: Bearer <token>``, then ``X-Auth-Token``,
        then a ``token`` parameter. The first non-empty value wins.

        :param headers: Request headers (case-insensitive mapping).
        :param params: Merged body/query parameters.
        :returns: Stripped token or ``None``.
        """
        authorization = headers.get("Authorization") or ""
        match = _BEARER_RE.search(authorization)
        if match and match.group(1).strip():
            return match.group(1).strip()

        header_token = (headers.get("X-Auth-Token") or "").strip()
        if header_token:
            return header_token

        param_token = params.get("token")
        if isinstance(param_token, str) and param_token.strip():
            return param_token.strip()
        return None
