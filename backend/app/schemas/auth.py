"""Authentication and profile Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, pre_load, validate

from app.services.auth.dto import LoginIn, RegisterIn
from app.services.profile.dto import ProfileUpdateIn, ResetPasswordIn

from .address import AddressFieldsSchema
from .common import RequestSchema

_PASSWORD = validate.Length(min=6, max=128)


class LoginSchema(RequestSchema):
    """
    Input payload for authenticating an account.

    ``username`` accepts a username or an email; ``email`` and ``identifier``
    are accepted as aliases.
    """

    username = fields.String(required=True, validate=validate.Length(min=1, max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))

    @pre_load
    def alias_identifier(self, data: Any, **_: Any) -> Any:
        if isinstance(data, dict) and not data.get("username"):
            alias = data.get("identifier") or data.get("email")
            if alias:
                data = {**data, "username": alias}
        return data

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> LoginIn:
        return LoginIn(identifier=data["username"], password=data["password"])


class RegisterSchema(RequestSchema):
    """Input payload for account registration."""

    username = fields.String(
        required=True,
        validate=[
            validate.Length(min=3, max=60),
            validate.Regexp(r"^[\w.@+-]+$", error="Username contains invalid characters."),
        ],
    )
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=_PASSWORD)
    first_name = fields.String(load_default=None, validate=validate.Length(max=100))
    last_name = fields.String(load_default=None, validate=validate.Length(max=100))
    display_name = fields.String(load_default=None, validate=validate.Length(max=250))

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> RegisterIn:
        return RegisterIn(**data)


class LogoutSchema(RequestSchema):
    all_sessions = fields.Boolean(load_default=False)


class ForgotPasswordSchema(RequestSchema):
    email = fields.Email(required=True, validate=validate.Length(max=254))


class ResetPasswordSchema(RequestSchema):
    """``key`` is the one-time value delivered by the reset observer."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    key = fields.String(required=True, validate=validate.Length(min=1, max=200))
    password = fields.String(required=True, validate=_PASSWORD)

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> ResetPasswordIn:
        return ResetPasswordIn(email=data["email"], key=data["key"], new_password=data["password"])


class ProfileUpdateSchema(RequestSchema):
    """Partial profile update; nested address dicts are validated as partial."""

    first_name = fields.String(validate=validate.Length(max=100))
    last_name = fields.String(validate=validate.Length(max=100))
    display_name = fields.String(validate=validate.Length(min=1, max=250))
    email = fields.Email(validate=validate.Length(max=254))
    billing = fields.Nested(AddressFieldsSchema(partial=True))
    shipping = fields.Nested(AddressFieldsSchema(partial=True))

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> ProfileUpdateIn:
        def present(block: dict[str, Any] | None) -> dict[str, Any] | None:
            if not block:
                return None
            return {k: v for k, v in block.items() if v is not None} or None

        return ProfileUpdateIn(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            display_name=data.get("display_name"),
            email=data.get("email"),
            billing=present(data.get("billing")),
            shipping=present(data.get("shipping")),
        )


# ------------------------------- Responses -------------------------------- #


class AccountSchema(Schema):
    """Public representation of an account."""

    id = fields.Integer(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    first_name = fields.String(allow_none=True)
    last_name = fields.String(allow_none=True)
    display_name = fields.String(allow_none=True)
    registered_at = fields.DateTime(allow_none=True)


class SessionSchema(Schema):
    token = fields.String(required=True)
    expires_at = fields.DateTime(required=True)
    account = fields.Nested(AccountSchema, required=True)


class TokenStatusSchema(Schema):
    valid = fields.Boolean(required=True)
    account_id = fields.Integer(required=True)
    expires_at = fields.DateTime(required=True)
    last_used_at = fields.DateTime(allow_none=True)


class ProfileSchema(AccountSchema):
    billing = fields.Dict(keys=fields.String(), values=fields.String())
    shipping = fields.Dict(keys=fields.String(), values=fields.String())
