"""Authentication and session endpoints backed by :class:`AuthService`."""

from __future__ import annotations

from flask import Blueprint, g, request

from authcore.api.deps import current_claims, json_response, require_auth, timing
from authcore.core.extensions import get_auth
from authcore.schemas import (
    AuthResponseSchema,
    LoginSchema,
    PrincipalSchema,
    RefreshSchema,
    RegisterSchema,
    VerifyEmailSchema,
)
from authcore.services.auth.dto import LoginIn, LogoutIn, RefreshIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
verify_email_schema = VerifyEmailSchema()
principal_schema = PrincipalSchema()
auth_response_schema = AuthResponseSchema()


@bp.post("/register")
@timing
def register():
    """Create a principal, send the verification email and sign it in."""

    data = register_schema.load(request.get_json(silent=True) or {})
    result = get_auth().service.register(RegisterIn(**data))
    return json_response(auth_response_schema.dump(result), status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access/refresh pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    result = get_auth().service.login(LoginIn(**data))
    return json_response(auth_response_schema.dump(result))


@bp.post("/refresh")
@timing
def refresh():
    """Exchange a refresh token for a brand-new pair (rotation)."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    result = get_auth().service.refresh(RefreshIn(**data))
    return json_response(auth_response_schema.dump(result))


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the bearer access token."""

    get_auth().service.logout(LogoutIn(access_token=g.raw_token))
    return "", 204


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """Revoke every live token of the caller, on every device."""

    revoked = get_auth().service.logout_all_devices(current_claims().subject)
    return json_response({"revoked_sessions": revoked})


@bp.get("/sessions")
@require_auth
@timing
def sessions():
    """Count the caller's live (tracked, non-revoked) tokens."""

    count = get_auth().service.active_session_count(current_claims().subject)
    return json_response({"active_sessions": count})


@bp.post("/verify-email")
@timing
def verify_email():
    """Consume a verification token."""

    data = verify_email_schema.load(request.get_json(silent=True) or {})
    principal = get_auth().service.verify_email(data["token"])
    return json_response(
        {"message": "Email verified", "user": principal_schema.dump(principal)}
    )


@bp.post("/resend-verification")
@require_auth
@timing
def resend_verification():
    """Send a fresh verification email, subject to the resend cooldown."""

    get_auth().service.resend_verification_email(current_claims().subject)
    return json_response({"message": "Verification email sent"})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated principal."""

    principal = get_auth().service.get_principal(current_claims().subject)
    return json_response(principal_schema.dump(principal))
