# app/services/addresses/service.py
from __future__ import annotations

import logging

from app.models.address import ADDRESS_TYPES, BILLING, SHIPPING
from app.services._shared import cache_keys
from app.services._shared.base import BaseService
from app.services._shared.errors import InvalidInputError, NotFoundError
from app.services.addresses.dto import AddressBookOut, AddressIn
from app.uow.sqlalchemy_uow import SQLAlchemyRepositoryContainer

logger = logging.getLogger(__name__)


def _check_type(address_type: str) -> str:
    normalized = (address_type or "").strip().lower()
    if normalized not in ADDRESS_TYPES:
        raise InvalidInputError(
            "Invalid address type", details={"type": ["Must be billing or shipping."]}
        )
    return normalized


class AddressService(BaseService):
    """
    Billing / shipping address book of an account.

    Each account keeps at most one address per type. Writes invalidate the
    cached address book and profile of the account.
    """

    def list(self, account_id: int) -> AddressBookOut:
        with self.ro_uow() as uow:
            return self._book(uow, account_id)

    def add(self, account_id: int, dto: AddressIn) -> AddressBookOut:
        """Create or replace the address of ``dto.type``."""
        address_type = _check_type(dto.type)
        with self.rw_uow() as uow:
            _, created = uow.addresses.upsert(
                account_id, address_type, dto.fields, is_default=bool(dto.is_default)
            )
            book = self._book(uow, account_id)
        self._invalidate(account_id)
        logger.info(
            "address.saved",
            extra={"account_id": account_id, "type": address_type, "created": created},
        )
        return book

    def update(self, account_id: int, dto: AddressIn) -> AddressBookOut:
        """
        Update an existing address.

        :raises NotFoundError: No address of that type is saved.
        """
        address_type = _check_type(dto.type)
        with self.rw_uow() as uow:
            if uow.addresses.get_for(account_id, address_type) is None:
                raise NotFoundError("Address", address_type)
            uow.addresses.upsert(account_id, address_type, dto.fields, is_default=dto.is_default)
            book = self._book(uow, account_id)
        self._invalidate(account_id)
        logger.info("address.updated", extra={"account_id": account_id, "type": address_type})
        return book

    def delete(self, account_id: int, address_type: str) -> AddressBookOut:
        address_type = _check_type(address_type)
        with self.rw_uow() as uow:
            address = uow.addresses.get_for(account_id, address_type)
            if address is None:
                raise NotFoundError("Address", address_type)
            uow.addresses.delete(address)
            book = self._book(uow, account_id)
        self._invalidate(account_id)
        logger.info("address.deleted", extra={"account_id": account_id, "type": address_type})
        return book

    def set_default(self, account_id: int, address_type: str) -> AddressBookOut:
        address_type = _check_type(address_type)
        with self.rw_uow() as uow:
            address = uow.addresses.get_for(account_id, address_type)
            if address is None:
                raise NotFoundError("Address", address_type)
            address.is_default = True
            uow.addresses.flush()
            book = self._book(uow, account_id)
        self._invalidate(account_id)
        return book

    # ----------------------------------------------------------------- #

    def _invalidate(self, account_id: int) -> None:
        self.invalidate(cache_keys.addresses(account_id), cache_keys.profile(account_id))

    @staticmethod
    def _book(uow: SQLAlchemyRepositoryContainer, account_id: int) -> AddressBookOut:
        saved = {a.type: a for a in uow.addresses.list_for(account_id)}
        billing = saved.get(BILLING)
        shipping = saved.get(SHIPPING)
        return AddressBookOut(
            billing=billing.to_dict() if billing else None,
            shipping=shipping.to_dict() if shipping else None,
            default_billing=bool(billing and billing.is_default),
            default_shipping=bool(shipping and shipping.is_default),
        )
