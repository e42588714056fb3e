from __future__ import annotations

import hashlib
import math
import time
from datetime import timedelta
from typing import Protocol

from ._support import Clock, ExpiringStore, ttl_seconds


def identifier_key(identifier: str) -> str:
    """
    Map a login identifier to a fixed-size store key fragment.

    Identifiers are attacker-controlled (unknown usernames are counted too),
    so they are hashed: every key has the same length no matter what was
    typed. Only surrounding whitespace is trimmed, matching the
    case-sensitive username lookup, so ``Bob`` and ``bob`` keep separate counters.
    """
    normalised = identifier.strip()
    return hashlib.sha256(normalised.encode("utf-8")).hexdigest()


class LoginAttemptGuard(Protocol):
    """
    Per-identifier brute-force protection: ``Clean -> Accumulating(n) -> Locked``.

    A disabled guard answers every call with zero/``False`` so callers never
    branch on whether lockout is configured.
    """

    def increment_attempts(self, identifier: str) -> int:
        """
        Count one failed login and lock the identifier at ``max_attempts``.

        :returns: Failures recorded within the current window.
        """

    def get_attempts(self, identifier: str) -> int:
        """Failures recorded within the current window."""

    def is_locked(self, identifier: str) -> bool:
        """Return ``True`` while a lock marker exists."""

    def get_remaining_lock_time(self, identifier: str) -> int:
        """Seconds until the lock expires (``0`` when not locked)."""

    def lock(self, identifier: str) -> None:
        """Write a lock marker for the lockout duration."""

    def reset_attempts(self, identifier: str) -> None:
        """Clear the counter and any lock. Called after a successful login."""


class InMemoryLoginAttemptGuard(LoginAttemptGuard):
    """
    Single-process login-attempt guard for tests and local development.

    :param max_attempts: Failures that trigger a lock.
    :param lockout_duration: Lifetime of the lock marker.
    :param attempt_window: Lifetime of the failure counter.
    :param enabled: When ``False`` every operation is a no-op.
    :param clock: Monotonic seconds source.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        lockout_duration: timedelta = timedelta(minutes=15),
        attempt_window: timedelta | None = None,
        enabled: bool = True,
        clock: Clock = time.monotonic,
    ) -> None:
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration
        self.attempt_window = attempt_window or lockout_duration
        self.enabled = enabled
        self._store = ExpiringStore(clock)

    @staticmethod
    def _k(identifier: str) -> str:
        return f"attempts:{identifier_key(identifier)}"

    @staticmethod
    def _kl(identifier: str) -> str:
        return f"locked:{identifier_key(identifier)}"

    def increment_attempts(self, identifier: str) -> int:
        if not self.enabled:
            return 0
        key = self._k(identifier)
        with self._store.lock:
            count = int(self._store.get(key, 0)) + 1
            self._store.set(key, count, ttl_seconds(self.attempt_window))
            if count >= self.max_attempts:
                self.lock(identifier)
        return count

    def get_attempts(self, identifier: str) -> int:
        if not self.enabled:
            return 0
        return int(self._store.get(self._k(identifier), 0))

    def is_locked(self, identifier: str) -> bool:
        if not self.enabled:
            return False
        return self._store.exists(self._kl(identifier))

    def get_remaining_lock_time(self, identifier: str) -> int:
        if not self.enabled:
            return 0
        remaining = self._store.ttl(self._kl(identifier))
        if remaining is None or remaining == math.inf:
            return 0
        return max(0, math.ceil(remaining))

    def lock(self, identifier: str) -> None:
        if not self.enabled:
            return
        self._store.set(self._kl(identifier), "1", ttl_seconds(self.lockout_duration))

    def reset_attempts(self, identifier: str) -> None:
        if not self.enabled:
            return
        self._store.delete(self._k(identifier), self._kl(identifier))
