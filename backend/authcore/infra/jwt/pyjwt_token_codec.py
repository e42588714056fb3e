# authcore/infra/jwt/pyjwt_token_codec.py
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt
from jwt.exceptions import ExpiredSignatureError, PyJWTError

from authcore.services._shared.errors import InvalidTokenError, MalformedTokenError
from authcore.services._shared.ports import Claims, IssuedToken, TokenCodec, TokenKind

log = logging.getLogger(__name__)

# Claims owned by the codec; extra claims cannot override them
RESERVED_CLAIMS = frozenset({"jti", "sub", "role", "type", "iat", "exp", "iss"})
REQUIRED_CLAIMS = ["jti", "sub", "type", "iat", "exp"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class PyJWTTokenCodec(TokenCodec):
    """
    HMAC-signed JWT codec built on PyJWT.

    The secret is injected at construction; nothing is read from the Flask
    application config at call time.

    :param secret: HMAC signing key.
    :param issuer: ``iss`` written on issue and required on validation.
    :param access_ttl: Access token lifetime (default 15 minutes).
    :param refresh_ttl: Refresh token lifetime (default 2 hours).
    :param algorithm: JWS algorithm, ``HS256`` by default.
    :param leeway: Clock skew tolerated on ``exp``.
    :param clock: Source of the issuance instant.
    """

    secret: str
    issuer: str = "authcore"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(hours=2)
    algorithm: str = "HS256"
    leeway: timedelta = timedelta(0)
    clock: Callable[[], datetime] = field(default=_utcnow)

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("A signing secret is required.")
        if self.access_ttl <= timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise ValueError("Token lifetimes must be positive.")

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue_access(
        self,
        subject: str,
        role: str,
        extra_claims: Mapping[str, Any] | None = None,
    ) -> IssuedToken:
        return self._issue(
            subject=subject,
            kind=TokenKind.ACCESS,
            ttl=self.access_ttl,
            role=role,
            extra=extra_claims,
        )

    def issue_refresh(self, subject: str) -> IssuedToken:
        return self._issue(subject=subject, kind=TokenKind.REFRESH, ttl=self.refresh_ttl)

    def _issue(
        self,
        *,
        subject: str,
        kind: TokenKind,
        ttl: timedelta,
        role: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> IssuedToken:
        # JWT timestamps are whole seconds; truncate so the claims match the token
        issued_at = self.clock().replace(microsecond=0)
        expires_at = issued_at + ttl
        jti = uuid4().hex

        payload: dict[str, Any] = {
            key: value for key, value in (extra or {}).items() if key not in RESERVED_CLAIMS
        }
        payload.update(
            {
                "jti": jti,
                "sub": str(subject),
                "type": kind.value,
                "iat": issued_at,
                "exp": expires_at,
                "iss": self.issuer,
            }
        )
        if role is not None:
            payload["role"] = role

        token = jwt.encode(payload, self.secret, algorithm=self.algorithm)
        claims = Claims(
            jti=jti,
            subject=str(subject),
            kind=kind,
            issued_at=issued_at,
            expires_at=expires_at,
            role=role,
            extra={k: v for k, v in payload.items() if k not in RESERVED_CLAIMS},
        )
        return IssuedToken(token=str(token), claims=claims)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate(self, token: str, kind: TokenKind | None = None) -> Claims:
        try:
            payload = self._decode(token, verify_exp=True)
        except ExpiredSignatureError as exc:
            raise InvalidTokenError("Token has expired") from exc
        except PyJWTError as exc:
            log.debug("auth.token.rejected reason=%s", type(exc).__name__)
            raise InvalidTokenError() from exc

        claims = self._to_claims(payload, error=InvalidTokenError)
        if kind is not None and claims.kind is not kind:
            raise InvalidTokenError(f"Expected a {kind.value} token")
        return claims

    def parse_ignoring_expiry(self, token: str) -> Claims:
        try:
            payload = self._decode(token, verify_exp=False)
        except PyJWTError as exc:
            raise MalformedTokenError() from exc
        return self._to_claims(payload, error=MalformedTokenError)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _decode(self, token: str, *, verify_exp: bool) -> dict[str, Any]:
        if not token:
            raise jwt.DecodeError("Empty token")
        return jwt.decode(
            token,
            self.secret,
            algorithms=[self.algorithm],
            issuer=self.issuer,
            leeway=self.leeway,
            options={"require": REQUIRED_CLAIMS, "verify_exp": verify_exp},
        )

    @staticmethod
    def _to_claims(
        payload: Mapping[str, Any],
        *,
        error: type[InvalidTokenError],
    ) -> Claims:
        try:
            kind = TokenKind(payload["type"])
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=UTC)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        except (KeyError, TypeError, ValueError) as exc:
            raise error() from exc

        role = payload.get("role")
        return Claims(
            jti=str(payload["jti"]),
            subject=str(payload["sub"]),
            kind=kind,
            issued_at=issued_at,
            expires_at=expires_at,
            role=str(role) if role is not None else None,
            extra={k: v for k, v in payload.items() if k not in RESERVED_CLAIMS},
        )
