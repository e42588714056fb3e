"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AuthResponseSchema,
    LoginSchema,
    PrincipalSchema,
    RefreshSchema,
    RegisterSchema,
    VerifyEmailSchema,
)

__all__ = [
    "AuthResponseSchema",
    "LoginSchema",
    "PrincipalSchema",
    "RefreshSchema",
    "RegisterSchema",
    "VerifyEmailSchema",
]
