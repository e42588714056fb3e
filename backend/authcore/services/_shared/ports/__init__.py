"""
authcore.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts
between the auth service and its infrastructure.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec`, :class:`~.Claims`, :class:`~.IssuedToken`
    and :class:`~.TokenKind`: signing and validation of bearer tokens.

- :mod:`revocation_ledger`:
    Defines :class:`~.RevocationLedger`: blacklisted JTIs and per-user live
    JTI sets.

- :mod:`login_attempt_guard`:
    Defines :class:`~.LoginAttemptGuard`: failure counters and account locks.

- :mod:`email_verification_ledger`:
    Defines :class:`~.EmailVerificationLedger`: verification tokens and
    resend cooldowns.

- :mod:`credential_store`, :mod:`principal_repository`, :mod:`email_dispatcher`:
    External collaborators consumed at their interface boundary.

Design Notes
------------
Each stateful port ships one in-memory double next to its interface.
Store-backed adapters live under ``authcore.infra`` and are selected by
constructor injection in :func:`authcore.core.extensions.init_auth`.
"""

from __future__ import annotations

from .credential_store import CredentialStore
from .email_dispatcher import EmailDispatcher, RecordingEmailDispatcher
from .email_verification_ledger import (
    EmailVerificationLedger,
    InMemoryEmailVerificationLedger,
    new_verification_token,
)
from .login_attempt_guard import InMemoryLoginAttemptGuard, LoginAttemptGuard, identifier_key
from .principal_repository import InMemoryPrincipalRepository, PrincipalRepository
from .revocation_ledger import InMemoryRevocationLedger, RevocationLedger
from .token_codec import Claims, IssuedToken, TokenCodec, TokenKind

__all__ = [
    "Claims",
    "CredentialStore",
    "EmailDispatcher",
    "EmailVerificationLedger",
    "InMemoryEmailVerificationLedger",
    "InMemoryLoginAttemptGuard",
    "InMemoryPrincipalRepository",
    "InMemoryRevocationLedger",
    "IssuedToken",
    "LoginAttemptGuard",
    "PrincipalRepository",
    "RecordingEmailDispatcher",
    "RevocationLedger",
    "TokenCodec",
    "TokenKind",
    "identifier_key",
    "new_verification_token",
]
