"""Address book repository."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from sqlalchemy import select

from app.models.address import ADDRESS_FIELDS, Address
from app.repositories.base import BaseRepository


class AddressRepository(BaseRepository[Address]):
    """Persistence for :class:`Address`, keyed by ``(account_id, type)``."""

    model = Address

    def _updatable_fields(self):
        return set(ADDRESS_FIELDS) | {"is_default"}

    def list_for(self, account_id: int) -> list[Address]:
        stmt = select(Address).where(Address.account_id == account_id).order_by(Address.type)
        return list(self.session.execute(stmt).scalars().all())

    def get_for(self, account_id: int, address_type: str) -> Address | None:
        stmt = select(Address).where(
            Address.account_id == account_id, Address.type == address_type
        )
        return cast(Address | None, self.session.execute(stmt).scalars().first())

    def upsert(
        self,
        account_id: int,
        address_type: str,
        fields: Mapping[str, Any],
        *,
        is_default: bool | None = None,
    ) -> tuple[Address, bool]:
        """Create or update the address of ``address_type``.

        :param account_id: Owner id.
        :type account_id: int
        :param address_type: ``billing`` or ``shipping``.
        :type address_type: str
        :param fields: Address fields to assign (unknown keys ignored).
        :type fields: Mapping[str, Any]
        :param is_default: New default flag; ``None`` keeps the current one.
        :type is_default: bool | None
        :returns: ``(address, created)``.
        :rtype: tuple[Address, bool]
        """
        address = self.get_for(account_id, address_type)
        created = address is None
        if address is None:
            address = Address(account_id=account_id, type=address_type)
            self.session.add(address)
        values = {k: v for k, v in fields.items() if k in ADDRESS_FIELDS}
        if is_default is not None:
            values["is_default"] = bool(is_default)
        self.assign_updates(address, values, strict=False, flush=True)
        return address, created
