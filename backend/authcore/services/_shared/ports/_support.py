"""Helpers shared by the ports and their in-memory doubles."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any

Clock = Callable[[], float]


def ttl_seconds(ttl: timedelta | int | float, *, minimum: int = 1) -> int:
    """
    Convert a lifetime into whole seconds, rounding up and clamping.

    A zero or negative TTL would make the store drop the key immediately (or
    reject the command), so it is clamped to ``minimum``.

    :param ttl: Lifetime as ``timedelta`` or seconds.
    :type ttl: timedelta | int | float
    :param minimum: Smallest value returned.
    :type minimum: int
    :returns: Seconds suitable for ``SET ... EX`` / ``EXPIRE``.
    :rtype: int
    """
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    return max(minimum, math.ceil(seconds))


class ExpiringStore:
    """
    Process-local key/value map with per-key deadlines.

    Emulates the small subset of Redis semantics the in-memory doubles rely
    on: keys vanish once their TTL has elapsed and ``ttl()`` distinguishes
    missing keys from keys without expiry. ``lock`` must be held by callers
    that need several calls to appear atomic.

    :param clock: Monotonic seconds source; injectable for tests.
    :type clock: Callable[[], float]
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, Any] = {}
        self._deadlines: dict[str, float] = {}
        self.lock = threading.RLock()

    # ------------------------- helpers -------------------------

    def _alive(self, key: str) -> bool:
        deadline = self._deadlines.get(key)
        if deadline is not None and deadline <= self._clock():
            self._values.pop(key, None)
            self._deadlines.pop(key, None)
        return key in self._values

    # -------------------------- API ----------------------------

    def get(self, key: str, default: Any = None) -> Any:
        with self.lock:
            return self._values[key] if self._alive(key) else default

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        with self.lock:
            self._values[key] = value
            if ttl is None:
                self._deadlines.pop(key, None)
            else:
                self._deadlines[key] = self._clock() + ttl

    def delete(self, *keys: str) -> int:
        removed = 0
        with self.lock:
            for key in keys:
                if self._alive(key):
                    removed += 1
                self._values.pop(key, None)
                self._deadlines.pop(key, None)
        return removed

    def exists(self, key: str) -> bool:
        with self.lock:
            return self._alive(key)

    def expire(self, key: str, ttl: int) -> bool:
        with self.lock:
            if not self._alive(key):
                return False
            self._deadlines[key] = self._clock() + ttl
            return True

    def ttl(self, key: str) -> float | None:
        """Remaining seconds, ``math.inf`` without expiry, ``None`` when missing."""
        with self.lock:
            if not self._alive(key):
                return None
            deadline = self._deadlines.get(key)
            if deadline is None:
                return math.inf
            return deadline - self._clock()

    def members(self, key: str) -> set[str]:
        """Return a *copy* of the set stored at ``key`` (empty when missing)."""
        with self.lock:
            value = self._values.get(key) if self._alive(key) else None
            return set(value) if value else set()

    def add_member(self, key: str, member: str) -> None:
        with self.lock:
            if not self._alive(key):
                self._values[key] = set()
            self._values[key].add(member)

    def remove_member(self, key: str, member: str) -> bool:
        with self.lock:
            if not self._alive(key):
                return False
            bucket: set[str] = self._values[key]
            if member not in bucket:
                return False
            bucket.discard(member)
            if not bucket:
                self._values.pop(key, None)
                self._deadlines.pop(key, None)
            return True

