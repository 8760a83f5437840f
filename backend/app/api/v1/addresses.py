"""Address book endpoints."""

from __future__ import annotations

from flask import Blueprint

from app.api.deps import (
    address_service,
    cached_payload,
    current_account_id,
    load,
    require_token,
    success_response,
    timing,
)
from app.models.address import ADDRESS_FIELDS
from app.schemas import AddressBookSchema, AddressTypeSchema, AddressWriteSchema
from app.services._shared import cache_keys

bp = Blueprint("addresses", __name__)

add_schema = AddressWriteSchema()
update_schema = AddressWriteSchema(partial=ADDRESS_FIELDS)
type_schema = AddressTypeSchema()
book_schema = AddressBookSchema()


@bp.get("")
@require_token
@timing
def list_addresses():
    account_id = current_account_id()
    payload = cached_payload(
        cache_keys.addresses(account_id),
        "ADDRESSES_CACHE_TTL",
        lambda: book_schema.dump(address_service().list(account_id)),
    )
    return success_response(payload)


@bp.post("/add")
@require_token
@timing
def add_address():
    book = address_service().add(current_account_id(), load(add_schema))
    return success_response(book_schema.dump(book), "Address added successfully", status=201)


@bp.put("/update")
@require_token
@timing
def update_address():
    book = address_service().update(current_account_id(), load(update_schema))
    return success_response(book_schema.dump(book), "Address updated successfully")


@bp.delete("/delete")
@require_token
@timing
def delete_address():
    data = load(type_schema)
    book = address_service().delete(current_account_id(), data["type"])
    return success_response(book_schema.dump(book), "Address deleted successfully")


@bp.post("/set-default")
@require_token
@timing
def set_default():
    data = load(type_schema)
    book = address_service().set_default(current_account_id(), data["type"])
    return success_response(book_schema.dump(book), "Default address set successfully")
