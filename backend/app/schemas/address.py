"""Address book schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, pre_load, validate

from app.models.address import ADDRESS_FIELDS, ADDRESS_TYPES
from app.services.addresses.dto import AddressIn

from .common import RequestSchema

_COUNTRY = validate.Regexp(r"^[A-Za-z]{2}$", error="Country must be a 2-letter code.")
_NOT_BLANK = validate.Length(min=1, error="This field cannot be blank.")
_OPTIONAL = ("company", "address_2", "email", "phone")


class AddressFieldsSchema(RequestSchema):
    """
    Address fields with the address book validation rules.

    Load with ``partial=True`` for updates: present fields are still checked.
    Blank optional fields are treated as absent.
    """

    first_name = fields.String(required=True, validate=[_NOT_BLANK, validate.Length(max=100)])
    last_name = fields.String(required=True, validate=[_NOT_BLANK, validate.Length(max=100)])
    company = fields.String(load_default=None, validate=validate.Length(max=200))
    address_1 = fields.String(required=True, validate=[_NOT_BLANK, validate.Length(max=255)])
    address_2 = fields.String(load_default=None, validate=validate.Length(max=255))
    city = fields.String(required=True, validate=[_NOT_BLANK, validate.Length(max=100)])
    state = fields.String(required=True, validate=[_NOT_BLANK, validate.Length(max=100)])
    postcode = fields.String(required=True, validate=[_NOT_BLANK, validate.Length(max=20)])
    country = fields.String(required=True, validate=_COUNTRY)
    email = fields.Email(load_default=None, validate=validate.Length(max=254))
    phone = fields.String(load_default=None, validate=validate.Length(max=40))

    @pre_load
    def drop_blank_optionals(self, data: Any, **_: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}
        for name in _OPTIONAL:
            if cleaned.get(name) in ("", None):
                cleaned.pop(name, None)
        return cleaned


class AddressWriteSchema(AddressFieldsSchema):
    """``POST /addresses/add`` and ``PUT /addresses/update`` payload."""

    type = fields.String(required=True, validate=validate.OneOf(ADDRESS_TYPES))
    is_default = fields.Boolean(load_default=None)

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> AddressIn:
        values = {k: v for k, v in data.items() if k in ADDRESS_FIELDS}
        if self.partial:
            # Defaults of absent optional fields must not wipe stored values.
            values = {k: v for k, v in values.items() if v is not None}
        return AddressIn(type=data["type"], fields=values, is_default=data.get("is_default"))


class AddressTypeSchema(RequestSchema):
    type = fields.String(required=True, validate=validate.OneOf(ADDRESS_TYPES))


class AddressBookSchema(Schema):
    """Address book response: one optional dict per type plus default flags."""

    billing = fields.Dict(keys=fields.String(), values=fields.String(), allow_none=True)
    shipping = fields.Dict(keys=fields.String(), values=fields.String(), allow_none=True)
    default_billing = fields.Boolean()
    default_shipping = fields.Boolean()
