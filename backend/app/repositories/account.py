"""Account repository: lookups by identifier and credential checks."""

from __future__ import annotations

from typing import cast

from sqlalchemy import func, or_, select

from app.models.account import Account
from app.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Persistence-only repository for :class:`Account`.

    Session tokens are not handled here; see the session-token store.
    """

    model = Account

    def _sortable_fields(self):
        return {
            "id": Account.id,
            "username": Account.username,
            "email": Account.email,
            "created_at": Account.created_at,
        }

    def _updatable_fields(self):
        return {"first_name", "last_name", "display_name", "email"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by email (case-insensitive).

        :param email: Email to normalise and search.
        :type email: str
        :rtype: Account | None
        """
        stmt = select(Account).where(Account.email == email.strip().lower())
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def get_by_username(self, username: str) -> Account | None:
        stmt = select(Account).where(Account.username == username.strip())
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def get_by_identifier(self, identifier: str) -> Account | None:
        """Resolve a login identifier that may be a username or an email.

        Usernames match exactly; emails match case-insensitively.

        :param identifier: Username or email.
        :type identifier: str
        :rtype: Account | None
        """
        value = identifier.strip()
        if not value:
            return None
        stmt = select(Account).where(
            or_(Account.username == value, Account.email == value.lower())
        )
        # A username equal to another account's email resolves to the username
        rows = list(self.session.execute(stmt).scalars().all())
        for row in rows:
            if row.username == value:
                return row
        return rows[0] if rows else None

    def username_taken(self, username: str) -> bool:
        stmt = select(Account.id).where(Account.username == username.strip())
        return self.session.execute(stmt).first() is not None

    def email_taken(self, email: str, *, exclude_id: int | None = None) -> bool:
        """Return ``True`` when another account already uses ``email``.

        :param email: Email to check (normalised).
        :type email: str
        :param exclude_id: Account to ignore (the caller itself on updates).
        :type exclude_id: int | None
        :rtype: bool
        """
        stmt = select(Account.id).where(func.lower(Account.email) == email.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(Account.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    # ---------------------------- Credentials ----------------------------

    def authenticate(self, identifier: str, password: str) -> Account | None:
        """Return the account when ``password`` matches, else ``None``."""
        account = self.get_by_identifier(identifier)
        if account is None or not account.verify_password(password):
            return None
        return account

    def set_password(self, account: Account, new_password: str) -> None:
        account.password = new_password  # setter hashes
        self.flush()
