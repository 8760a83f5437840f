"""Authentication and profile endpoints."""

from __future__ import annotations

from flask import Blueprint, current_app
from flask_limiter.util import get_remote_address

from app.api.deps import (
    authenticator,
    cached_payload,
    current_account_id,
    current_auth,
    load,
    profile_service,
    require_token,
    success_response,
    timing,
)
from app.api.etag import set_response_etag, verify_if_match
from app.core.extensions import limiter
from app.schemas import (
    ForgotPasswordSchema,
    LoginSchema,
    LogoutSchema,
    ProfileSchema,
    ProfileUpdateSchema,
    RegisterSchema,
    ResetPasswordSchema,
    SessionSchema,
    TokenStatusSchema,
)
from app.services._shared import cache_keys
from app.services.auth.dto import LogoutIn

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
register_schema = RegisterSchema()
logout_schema = LogoutSchema()
forgot_schema = ForgotPasswordSchema()
reset_schema = ResetPasswordSchema()
profile_update_schema = ProfileUpdateSchema()
session_schema = SessionSchema()
token_status_schema = TokenStatusSchema()
profile_schema = ProfileSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


@bp.post("/login")
@limiter.limit(_login_rate_limit, key_func=get_remote_address)
@timing
def login():
    """Authenticate credentials and issue a session token."""

    session = authenticator().login(load(login_schema))
    return success_response(session_schema.dump(session), "Login successful")


@bp.post("/register")
@timing
def register():
    """Create an account and return its first session token."""

    session = authenticator().register(load(register_schema))
    return success_response(session_schema.dump(session), "Registration successful", status=201)


@bp.post("/logout")
@require_token
@timing
def logout():
    """Revoke the presented token (or every token with ``all_sessions``)."""

    data = load(logout_schema)
    auth = current_auth()
    removed = authenticator().logout(
        LogoutIn(account_id=current_account_id(), token=auth.token or "", all_sessions=data["all_sessions"])
    )
    return success_response({"revoked": removed}, "Logged out successfully")


@bp.get("/validate-token")
@require_token
@timing
def validate_token():
    status = authenticator().status(current_auth().token)
    return success_response(token_status_schema.dump(status), "Token is valid")


# --------------------------------- Profile -----------------------------------


def _profile_payload(account_id: int) -> dict:
    return cached_payload(
        cache_keys.profile(account_id),
        "PROFILE_CACHE_TTL",
        lambda: profile_schema.dump(profile_service().get_profile(account_id)),
    )


@bp.get("/profile")
@require_token
@timing
def get_profile():
    payload = _profile_payload(current_account_id())
    return set_response_etag(success_response(payload), payload)


@bp.put("/profile")
@require_token
@timing
def update_profile():
    """Partial profile update; honours ``If-Match`` against the current profile."""

    account_id = current_account_id()
    dto = load(profile_update_schema)
    verify_if_match(_profile_payload(account_id))
    payload = profile_schema.dump(profile_service().update_profile(account_id, dto))
    return set_response_etag(success_response(payload, "Profile updated successfully"), payload)


# ----------------------------- Password reset --------------------------------


@bp.post("/forgot-password")
@timing
def forgot_password():
    data = load(forgot_schema)
    profile_service().forgot_password(data["email"])
    return success_response(None, "Password reset instructions have been sent")


@bp.post("/reset-password")
@timing
def reset_password():
    profile_service().reset_password(load(reset_schema))
    return success_response(None, "Password has been reset successfully")
