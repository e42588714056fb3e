"""Service layer public API.

Callers import from :mod:`authcore.services` without knowing the internal
structure.

Re-exports
----------
- Base primitive (from ``authcore.services._shared.base``)
    * :class:`BaseService`

- Auth service (from ``authcore.services.auth``)
    * :class:`AuthService`
    * DTOs: :class:`RegisterIn`, :class:`LoginIn`, :class:`RefreshIn`,
      :class:`LogoutIn`, :class:`AuthResultOut`
"""

from __future__ import annotations

from ._shared.base import BaseService
from .auth.dto import AuthResultOut, LoginIn, LogoutIn, RefreshIn, RegisterIn
from .auth.service import AuthService

__all__ = [
    "BaseService",
    "AuthService",
    "RegisterIn",
    "LoginIn",
    "RefreshIn",
    "LogoutIn",
    "AuthResultOut",
]
