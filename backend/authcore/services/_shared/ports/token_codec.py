from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, Protocol


class TokenKind(StrEnum):
    """Bearer token flavours; written into the ``type`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class Claims:
    """
    Verified content of a bearer token.

    :ivar jti: Unique token identifier (revocation key).
    :ivar subject: Principal id (``sub``).
    :ivar kind: Access or refresh.
    :ivar issued_at: ``iat`` (UTC).
    :ivar expires_at: ``exp`` (UTC).
    :ivar role: Role claim (access tokens only).
    :ivar extra: Non-reserved claims supplied at issuance.
    """

    jti: str
    subject: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    role: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def remaining(self, now: datetime | None = None) -> timedelta:
        """Lifetime left at ``now``; never negative."""
        current = now or datetime.now(UTC)
        return max(timedelta(0), self.expires_at - current)

    def remaining_seconds(self, now: datetime | None = None) -> int:
        return math.ceil(self.remaining(now).total_seconds())


@dataclass(frozen=True, slots=True)
class IssuedToken:
    """
    A freshly signed token together with the claims it carries.

    :ivar token: Compact encoded token handed to the client.
    :ivar claims: Claims embedded in ``token``.
    """

    token: str
    claims: Claims

    @property
    def jti(self) -> str:
        return self.claims.jti

    @property
    def ttl(self) -> timedelta:
        """Full lifetime granted at issuance."""
        return self.claims.expires_at - self.claims.issued_at


class TokenCodec(Protocol):
    """
    Port for minting and validating signed, expiring bearer tokens.

    Implementations are pure: no I/O, no shared state beyond the signing
    secret they were constructed with.
    """

    def issue_access(
        self,
        subject: str,
        role: str,
        extra_claims: Mapping[str, Any] | None = None,
    ) -> IssuedToken:
        """Mint an access token with a fresh JTI and the access TTL."""
        ...

    def issue_refresh(self, subject: str) -> IssuedToken:
        """Mint a refresh token with a fresh JTI and the refresh TTL."""
        ...

    def validate(self, token: str, kind: TokenKind | None = None) -> Claims:
        """
        Verify signature, structure, issuer and expiry.

        :param kind: When given, tokens of the other kind are rejected.
        :raises InvalidTokenError: On any verification failure.
        """
        ...

    def parse_ignoring_expiry(self, token: str) -> Claims:
        """
        Verify the signature but not ``exp``; used only to revoke old tokens.

        :raises MalformedTokenError: If the token cannot be decoded.
        """
        ...
