# app/services/profile/service.py
from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

from app.models.account import Account
from app.models.address import BILLING, SHIPPING
from app.models.base import as_utc
from app.services._shared import cache_keys
from app.services._shared.base import BaseService, ServiceContext
from app.services._shared.errors import (
    DuplicateIdentifierError,
    InvalidResetKeyError,
    NotFoundError,
)
from app.services._shared.ports.cache import Cache
from app.services._shared.ports.session_token_store import SessionTokenStore
from app.services.profile.dto import (
    PasswordResetRequested,
    ProfileOut,
    ProfileUpdateIn,
    ResetPasswordIn,
)
from app.uow.sqlalchemy_uow import SQLAlchemyRepositoryContainer

logger = logging.getLogger(__name__)

PasswordResetHandler = Callable[[PasswordResetRequested], None]


class ProfileService(BaseService):
    """
    Account profile facade plus the password-reset flow.

    The raw reset key is never stored: the account keeps its hash and the
    raw value is handed once to the ``on_password_reset_requested``
    observers, which deliver it out of band.
    """

    def __init__(
        self,
        *,
        token_store: SessionTokenStore,
        cache: Cache | None = None,
        reset_ttl: timedelta = timedelta(hours=1),
        on_password_reset_requested: Sequence[PasswordResetHandler] = (),
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx, cache=cache)
        self.tokens = token_store
        self.reset_ttl = reset_ttl
        self.on_password_reset_requested = list(on_password_reset_requested)

    # ------------------------------------------------------------------ #
    # Profile
    # ------------------------------------------------------------------ #

    def get_profile(self, account_id: int) -> ProfileOut:
        with self.ro_uow() as uow:
            return self._profile(uow, self._account(uow, account_id))

    def update_profile(self, account_id: int, dto: ProfileUpdateIn) -> ProfileOut:
        """
        Apply a partial update to names, email and saved addresses.

        :param account_id: Account to update.
        :param dto: Fields to change; ``None`` keeps the current value.
        :raises DuplicateIdentifierError: The new email belongs to another account.
        """
        with self.rw_uow() as uow:
            account = self._account(uow, account_id)
            changes = {
                name: value
                for name, value in (
                    ("first_name", dto.first_name),
                    ("last_name", dto.last_name),
                    ("display_name", dto.display_name),
                    ("email", dto.email),
                )
                if value is not None
            }
            if "email" in changes and uow.accounts.email_taken(changes["email"], exclude_id=account.id):
                raise DuplicateIdentifierError("email")
            uow.accounts.assign_updates(account, changes)

            for address_type, fields in ((BILLING, dto.billing), (SHIPPING, dto.shipping)):
                if fields:
                    uow.addresses.upsert(account.id, address_type, fields)

        self.invalidate(cache_keys.profile(account_id), cache_keys.addresses(account_id))
        logger.info("profile.updated", extra={"account_id": account_id})
        return self.get_profile(account_id)

    # ------------------------------------------------------------------ #
    # Password reset
    # ------------------------------------------------------------------ #

    def forgot_password(self, email: str) -> None:
        """
        Start a password reset for ``email``.

        :raises NotFoundError: No account uses that email.
        """
        raw_key = secrets.token_urlsafe(24)
        expires_at = datetime.now(UTC) + self.reset_ttl
        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(email)
            if account is None:
                raise NotFoundError(
                    "Account", email, detail="No user found with this email address"
                )
            account.set_reset_key(raw_key, expires_at)
            uow.accounts.flush()
            event = PasswordResetRequested(
                account_id=account.id,
                email=account.email,
                username=account.username,
                key=raw_key,
                expires_at=expires_at,
            )

        logger.info("profile.reset_requested", extra={"account_id": event.account_id})
        self.notify(self.on_password_reset_requested, event, name="password_reset_requested")

    def reset_password(self, dto: ResetPasswordIn) -> None:
        """
        Complete a reset: set the new password, burn the key and revoke every
        session token of the account.

        :raises InvalidResetKeyError: Unknown email, wrong key or expired key.
        """
        now = datetime.now(UTC)
        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(dto.email)
            if account is None or not account.check_reset_key(dto.key, now):
                raise InvalidResetKeyError()
            account.clear_reset_key()
            uow.accounts.set_password(account, dto.new_password)
            account_id = account.id

        revoked = self.tokens.revoke_all(account_id)
        self.invalidate(cache_keys.profile(account_id))
        logger.info("profile.password_reset", extra={"account_id": account_id, "evicted": revoked})

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _account(uow: SQLAlchemyRepositoryContainer, account_id: int) -> Account:
        account = uow.accounts.get(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    @staticmethod
    def _profile(uow: SQLAlchemyRepositoryContainer, account: Account) -> ProfileOut:
        saved = {a.type: a.to_dict() for a in uow.addresses.list_for(account.id)}
        return ProfileOut(
            id=account.id,
            username=account.username,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            display_name=account.display_name,
            registered_at=as_utc(account.created_at),
            billing=saved.get(BILLING, {}),
            shipping=saved.get(SHIPPING, {}),
        )
