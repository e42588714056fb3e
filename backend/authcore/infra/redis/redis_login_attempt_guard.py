# authcore/infra/redis/redis_login_attempt_guard.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]

from authcore.services._shared.ports import LoginAttemptGuard, identifier_key
from authcore.services._shared.ports._support import ttl_seconds

from ._support import store_errors

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisLoginAttemptGuard(LoginAttemptGuard):
    """
    Redis-backed login-attempt guard.

    Keys
    ----
    - ``auth:attempts:{sha256(identifier)}``: failure counter, TTL = attempt window.
    - ``auth:locked:{sha256(identifier)}``: lock marker, TTL = lockout duration.

    :param r: A Redis client (already connected, with socket timeouts).
    :param max_attempts: Failures that trigger a lock (default 5).
    :param lockout_duration: Lock lifetime (default 15 minutes).
    :param attempt_window: Counter lifetime; defaults to ``lockout_duration``.
    :param enabled: When ``False`` every operation is a no-op.
    """

    r: redis.Redis
    max_attempts: int = 5
    lockout_duration: timedelta = timedelta(minutes=15)
    attempt_window: timedelta | None = field(default=None)
    enabled: bool = True

    # -------------------- helpers --------------------

    @staticmethod
    def _k(identifier: str) -> str:
        return f"auth:attempts:{identifier_key(identifier)}"

    @staticmethod
    def _kl(identifier: str) -> str:
        return f"auth:locked:{identifier_key(identifier)}"

    def _window_seconds(self) -> int:
        return ttl_seconds(self.attempt_window or self.lockout_duration)

    # -------------------- API ------------------------

    def increment_attempts(self, identifier: str) -> int:
        if not self.enabled:
            return 0
        with store_errors("increment_attempts"):
            with self.r.pipeline(transaction=True) as p:
                p.incr(self._k(identifier))
                p.expire(self._k(identifier), self._window_seconds())
                count = int(cast(list[int], p.execute())[0])
            if count >= self.max_attempts:
                self.r.set(self._kl(identifier), "1", ex=ttl_seconds(self.lockout_duration))
                log.warning(
                    "auth.account.locked",
                    extra={"attempts": count, "action": "lock"},
                )
        return count

    def get_attempts(self, identifier: str) -> int:
        if not self.enabled:
            return 0
        with store_errors("get_attempts"):
            raw = self.r.get(self._k(identifier))
        return int(raw) if raw is not None else 0

    def is_locked(self, identifier: str) -> bool:
        if not self.enabled:
            return False
        with store_errors("is_locked"):
            return cast(int, self.r.exists(self._kl(identifier))) == 1

    def get_remaining_lock_time(self, identifier: str) -> int:
        if not self.enabled:
            return 0
        with store_errors("get_remaining_lock_time"):
            remaining = cast(int, self.r.ttl(self._kl(identifier)))
        return max(0, remaining)

    def lock(self, identifier: str) -> None:
        if not self.enabled:
            return
        with store_errors("lock"):
            self.r.set(self._kl(identifier), "1", ex=ttl_seconds(self.lockout_duration))

    def reset_attempts(self, identifier: str) -> None:
        if not self.enabled:
            return
        with store_errors("reset_attempts"):
            self.r.delete(self._k(identifier), self._kl(identifier))
