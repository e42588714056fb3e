"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask, HTTP or
redis-py. They are the stable contract between the ledgers, the repositories
and :class:`~authcore.services.auth.service.AuthService`.

The translation to HTTP responses (RFC 7807) is handled by
``authcore/core/errors.py``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g. ``uq_principals_email``).

    Returns
    -------
    bool
        True if the IntegrityError message mentions the constraint or, on
        SQLite, the constrained column.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    # SQLite reports "UNIQUE constraint failed: principals.email"
    column = constraint_name.rsplit("_", 1)[-1].lower()
    return f".{column}" in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from ledgers, repositories or domain logic.
    - The API layer translates them to ``APIError``.
    """

    pass


# --------------------------------------------------------------------------- #
# Generic errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Principal").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Principal").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


@dataclass(slots=True)
class StoreUnavailableError(ServiceError):
    """
    Raised when the shared TTL store cannot be reached or times out.

    :param operation: Ledger operation that failed (e.g. ``"is_blacklisted"``).
    :type operation: str
    """

    operation: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Token store unavailable during {self.operation}"


class EmailDispatchError(ServiceError):
    """Raised by an email dispatcher when a message could not be delivered."""


# --------------------------------------------------------------------------- #
# Authentication errors
# --------------------------------------------------------------------------- #


class InvalidCredentialsError(ServiceError):
    """Wrong username or password. Never says which one."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class UserInactiveError(ServiceError):
    """The principal exists but has been deactivated."""

    def __init__(self, message: str = "User account is inactive") -> None:
        super().__init__(message)


@dataclass(slots=True)
class AccountLockedError(ServiceError):
    """
    Raised while an identifier is locked after too many failed logins.

    :param remaining_seconds: Seconds until the lock expires.
    :type remaining_seconds: int
    """

    remaining_seconds: int

    def __str__(self) -> str:  # pragma: no cover
        return "Account temporarily locked due to too many failed login attempts"


class InvalidTokenError(ServiceError):
    """Bad signature, malformed, expired, wrong kind or reused after rotation."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class MalformedTokenError(InvalidTokenError):
    """The token could not be parsed even with expiry checks disabled."""

    def __init__(self, message: str = "Malformed token") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Email verification errors
# --------------------------------------------------------------------------- #


class InvalidOrExpiredVerificationTokenError(ServiceError):
    """The verification token is unknown, consumed or expired."""

    def __init__(self, message: str = "Invalid or expired verification token") -> None:
        super().__init__(message)


class AlreadyVerifiedError(ServiceError):
    """The principal's email address is already verified."""

    def __init__(self, message: str = "Email already verified") -> None:
        super().__init__(message)


@dataclass(slots=True)
class ResendCooldownError(ServiceError):
    """
    Raised when a verification email was sent too recently.

    :param remaining_seconds: Seconds until another email may be requested.
    :type remaining_seconds: int
    """

    remaining_seconds: int

    def __str__(self) -> str:  # pragma: no cover
        return "Please wait before requesting another verification email"


class VerificationUnavailableError(ServiceError):
    """Email verification is switched off, so no verification email can be sent."""

    def __init__(self, message: str = "Email verification service unavailable") -> None:
        super().__init__(message)


__all__ = [
    "AccountLockedError",
    "AlreadyVerifiedError",
    "ConflictError",
    "EmailDispatchError",
    "InvalidCredentialsError",
    "InvalidOrExpiredVerificationTokenError",
    "InvalidTokenError",
    "MalformedTokenError",
    "NotFoundError",
    "ResendCooldownError",
    "ServiceError",
    "StoreUnavailableError",
    "UserInactiveError",
    "VerificationUnavailableError",
    "violates",
]
