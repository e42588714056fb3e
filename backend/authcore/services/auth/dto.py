# authcore/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

from authcore.services._shared.principal import Principal

TOKEN_TYPE = "Bearer"

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-registration.

    :param username: Desired login handle.
    :type username: str
    :param email: Contact address (normalized by the repository).
    :type email: str
    :param password: Raw password (hashed before persisting).
    :type password: str
    """

    username: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Login handle; also the lockout identifier.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT being exchanged.
    :type refresh_token: str
    :param access_token: Optional access JWT issued with it; revoked too,
        even when already expired.
    :type access_token: str | None
    """

    refresh_token: str
    access_token: str | None = None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param access_token: Encoded access JWT of the current session.
    :type access_token: str
    """

    access_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthResultOut:
    """
    Output DTO returned by register, login and refresh.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    :param principal: Authenticated principal.
    :type principal: Principal
    :param token_type: Always ``"Bearer"``.
    :type token_type: str
    """

    access_token: str
    refresh_token: str
    expires_in: int
    principal: Principal
    token_type: str = TOKEN_TYPE
