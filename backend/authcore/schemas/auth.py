"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class RegisterSchema(Schema):
    """Input payload for self-registration."""

    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))


class LoginSchema(Schema):
    """Input payload for authenticating with username and password."""

    username = fields.String(required=True, validate=validate.Length(min=1, max=50))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload for rotating a refresh token."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))
    access_token = fields.String(load_default=None, allow_none=True)


class VerifyEmailSchema(Schema):
    """Input payload carrying an email verification token."""

    token = fields.String(required=True, validate=validate.Length(min=1, max=128))


class PrincipalSchema(Schema):
    """Public representation of an authenticated principal."""

    id = fields.String(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    role = fields.String(required=True)
    is_active = fields.Boolean(required=True)
    is_email_verified = fields.Boolean(required=True)
    created_at = fields.DateTime(allow_none=True)


class AuthResponseSchema(Schema):
    """Token pair returned by register, login and refresh."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(required=True)
    expires_in = fields.Integer(required=True)
    user = fields.Nested(PrincipalSchema, attribute="principal", required=True)
