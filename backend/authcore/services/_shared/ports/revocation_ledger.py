from __future__ import annotations

import math
import time
from datetime import timedelta
from typing import Protocol

from ._support import Clock, ExpiringStore, ttl_seconds


class RevocationLedger(Protocol):
    """
    Shared record of revoked JTIs and of each user's live JTIs.

    Store failures surface as :class:`~authcore.services._shared.errors.StoreUnavailableError`.
    Callers decide the policy: a failed ``is_blacklisted`` must reject the
    request, a failed ``track_user_token`` is logged and ignored.
    """

    def blacklist(self, jti: str, ttl: timedelta) -> None:
        """Insert a revocation marker living ``ttl`` (at least one second)."""

    def is_blacklisted(self, jti: str) -> bool:
        """Return ``True`` when ``jti`` has been revoked and not yet expired."""

    def remove_from_blacklist(self, jti: str) -> None:
        """Drop a revocation marker (administrative un-revoke)."""

    def track_user_token(self, user_id: str, jti: str, ttl: timedelta) -> None:
        """
        Add ``jti`` to the user's live set.

        The set's TTL is only ever raised: it is extended when ``ttl`` is
        strictly greater than the set's remaining TTL, never shortened.
        """

    def untrack_user_token(self, user_id: str, jti: str) -> None:
        """Remove ``jti`` from the user's live set. Idempotent."""

    def revoke(self, jti: str, ttl: timedelta, *, user_id: str | None = None) -> bool:
        """
        Blacklist ``jti`` and untrack it from ``user_id`` as one atomic step.

        :returns: ``True`` when this call wrote the marker, ``False`` when
            ``jti`` was already revoked (a concurrent rotation got there first).
        """

    def revoke_all_user_tokens(self, user_id: str) -> int:
        """
        Blacklist every live JTI of ``user_id`` and clear the set.

        :returns: Number of JTIs revoked.
        """

    def get_active_tokens(self, user_id: str) -> list[str]:
        """Live JTIs of ``user_id`` excluding any already blacklisted."""

    def get_active_token_count(self, user_id: str) -> int:
        """Length of :meth:`get_active_tokens`."""


class InMemoryRevocationLedger(RevocationLedger):
    """
    Single-process revocation ledger for tests and local development.

    :param revoke_all_ttl: TTL applied to every JTI revoked in bulk; must
        outlive any token kind.
    :param enabled: When ``False`` every operation is a no-op.
    :param clock: Monotonic seconds source.
    """

    def __init__(
        self,
        *,
        revoke_all_ttl: timedelta = timedelta(hours=24),
        enabled: bool = True,
        clock: Clock = time.monotonic,
    ) -> None:
        self.revoke_all_ttl = revoke_all_ttl
        self.enabled = enabled
        self._store = ExpiringStore(clock)

    # ------------------------- helpers -------------------------

    @staticmethod
    def _k(jti: str) -> str:
        return f"revoked:{jti}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"live:{user_id}"

    # -------------------------- API ----------------------------

    def blacklist(self, jti: str, ttl: timedelta) -> None:
        if not self.enabled:
            return
        self._store.set(self._k(jti), "1", ttl_seconds(ttl))

    def is_blacklisted(self, jti: str) -> bool:
        if not self.enabled:
            return False
        return self._store.exists(self._k(jti))

    def remove_from_blacklist(self, jti: str) -> None:
        if not self.enabled:
            return
        self._store.delete(self._k(jti))

    def track_user_token(self, user_id: str, jti: str, ttl: timedelta) -> None:
        if not self.enabled:
            return
        key = self._ku(user_id)
        seconds = ttl_seconds(ttl)
        with self._store.lock:
            current = self._store.ttl(key)
            self._store.add_member(key, jti)
            if current is None or current == math.inf or seconds > current:
                self._store.expire(key, seconds)

    def untrack_user_token(self, user_id: str, jti: str) -> None:
        if not self.enabled:
            return
        self._store.remove_member(self._ku(user_id), jti)

    def revoke(self, jti: str, ttl: timedelta, *, user_id: str | None = None) -> bool:
        if not self.enabled:
            return True
        with self._store.lock:
            fresh = not self._store.exists(self._k(jti))
            if fresh:
                self._store.set(self._k(jti), "1", ttl_seconds(ttl))
            if user_id is not None:
                self._store.remove_member(self._ku(user_id), jti)
        return fresh

    def revoke_all_user_tokens(self, user_id: str) -> int:
        if not self.enabled:
            return 0
        key = self._ku(user_id)
        seconds = ttl_seconds(self.revoke_all_ttl)
        with self._store.lock:
            jtis = self._store.members(key)
            for jti in jtis:
                self._store.set(self._k(jti), "1", seconds)
            self._store.delete(key)
        return len(jtis)

    def get_active_tokens(self, user_id: str) -> list[str]:
        if not self.enabled:
            return []
        return sorted(
            jti for jti in self._store.members(self._ku(user_id)) if not self.is_blacklisted(jti)
        )

    def get_active_token_count(self, user_id: str) -> int:
        return len(self.get_active_tokens(user_id))

    def set_ttl(self, user_id: str) -> float | None:
        """Remaining TTL of the user's live set (test introspection)."""
        return self._store.ttl(self._ku(user_id))
