from __future__ import annotations

import math
import secrets
import time
from datetime import timedelta
from typing import Protocol

from authcore.services._shared.errors import InvalidOrExpiredVerificationTokenError

from ._support import Clock, ExpiringStore, ttl_seconds

TOKEN_BYTES = 32


def new_verification_token() -> str:
    """Return a high-entropy opaque token (32 random bytes, hex-encoded)."""
    return secrets.token_hex(TOKEN_BYTES)


class EmailVerificationLedger(Protocol):
    """
    Verification tokens (``token -> user_id``, indexed per user) and resend
    cooldown markers.
    """

    def generate_token(self, user_id: str) -> str:
        """
        Create and store a token for ``user_id``.

        :returns: The token, or ``""`` when verification is disabled.
        """

    def validate_token(self, token: str) -> str:
        """
        Resolve a token to its user id.

        :raises InvalidOrExpiredVerificationTokenError: Unknown or expired token.
        """

    def invalidate_token(self, token: str) -> None:
        """Remove one token and its index entry."""

    def invalidate_all_user_tokens(self, user_id: str) -> None:
        """Remove every outstanding token of ``user_id``."""

    def can_resend(self, user_id: str) -> tuple[bool, int]:
        """
        :returns: ``(True, 0)`` when no cooldown is active, otherwise
            ``(False, remaining_seconds)``.
        """

    def set_resend_cooldown(self, user_id: str) -> None:
        """Start the resend cooldown for ``user_id``."""


class InMemoryEmailVerificationLedger(EmailVerificationLedger):
    """
    Single-process verification ledger for tests and local development.

    :param token_ttl: Lifetime of each verification token.
    :param resend_cooldown: Minimum delay between two verification emails.
    :param enabled: When ``False`` tokens are never issued nor accepted.
    :param clock: Monotonic seconds source.
    """

    def __init__(
        self,
        *,
        token_ttl: timedelta = timedelta(hours=24),
        resend_cooldown: timedelta = timedelta(seconds=60),
        enabled: bool = True,
        clock: Clock = time.monotonic,
    ) -> None:
        self.token_ttl = token_ttl
        self.resend_cooldown = resend_cooldown
        self.enabled = enabled
        self._store = ExpiringStore(clock)

    @staticmethod
    def _k(token: str) -> str:
        return f"verify:{token}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"verify:user:{user_id}"

    @staticmethod
    def _kc(user_id: str) -> str:
        return f"verify:cooldown:{user_id}"

    def generate_token(self, user_id: str) -> str:
        if not self.enabled:
            return ""
        token = new_verification_token()
        seconds = ttl_seconds(self.token_ttl)
        with self._store.lock:
            self._store.set(self._k(token), user_id, seconds)
            self._store.add_member(self._ku(user_id), token)
            self._store.expire(self._ku(user_id), seconds)
        return token

    def validate_token(self, token: str) -> str:
        if not self.enabled or not token:
            raise InvalidOrExpiredVerificationTokenError()
        user_id = self._store.get(self._k(token))
        if user_id is None:
            raise InvalidOrExpiredVerificationTokenError()
        return str(user_id)

    def invalidate_token(self, token: str) -> None:
        if not self.enabled:
            return
        with self._store.lock:
            user_id = self._store.get(self._k(token))
            self._store.delete(self._k(token))
            if user_id is not None:
                self._store.remove_member(self._ku(str(user_id)), token)

    def invalidate_all_user_tokens(self, user_id: str) -> None:
        if not self.enabled:
            return
        with self._store.lock:
            tokens = self._store.members(self._ku(user_id))
            self._store.delete(*(self._k(t) for t in tokens), self._ku(user_id))

    def can_resend(self, user_id: str) -> tuple[bool, int]:
        if not self.enabled:
            return True, 0
        remaining = self._store.ttl(self._kc(user_id))
        if remaining is None or remaining <= 0:
            return True, 0
        if remaining == math.inf:
            return False, ttl_seconds(self.resend_cooldown)
        return False, max(1, math.ceil(remaining))

    def set_resend_cooldown(self, user_id: str) -> None:
        if not self.enabled:
            return
        self._store.set(self._kc(user_id), "1", ttl_seconds(self.resend_cooldown))
