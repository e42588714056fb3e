# authcore/infra/redis/redis_email_verification_ledger.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]

from authcore.services._shared.errors import InvalidOrExpiredVerificationTokenError
from authcore.services._shared.ports import EmailVerificationLedger, new_verification_token
from authcore.services._shared.ports._support import ttl_seconds

from ._support import decode, decode_all, store_errors


@dataclass(slots=True)
class RedisEmailVerificationLedger(EmailVerificationLedger):
    """
    Redis-backed email verification ledger.

    Keys
    ----
    - ``auth:verify:{token}``: user id, TTL = verification window.
    - ``auth:verify:user:{user_id}``: set of the user's outstanding tokens.
    - ``auth:verify:cooldown:{user_id}``: resend cooldown marker.

    :param r: A Redis client (already connected, with socket timeouts).
    :param token_ttl: Token lifetime (default 24 hours).
    :param resend_cooldown: Delay between two emails (default 60 seconds).
    :param enabled: When ``False`` tokens are never issued nor accepted.
    """

    r: redis.Redis
    token_ttl: timedelta = timedelta(hours=24)
    resend_cooldown: timedelta = timedelta(seconds=60)
    enabled: bool = True

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token: str) -> str:
        return f"auth:verify:{token}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"auth:verify:user:{user_id}"

    @staticmethod
    def _kc(user_id: str) -> str:
        return f"auth:verify:cooldown:{user_id}"

    # -------------------- API ------------------------

    def generate_token(self, user_id: str) -> str:
        if not self.enabled:
            return ""
        token = new_verification_token()
        seconds = ttl_seconds(self.token_ttl)
        with store_errors("generate_token"):
            with self.r.pipeline(transaction=True) as p:
                p.set(self._k(token), user_id, ex=seconds)
                p.sadd(self._ku(user_id), token)
                p.expire(self._ku(user_id), seconds)
                p.execute()
        return token

    def validate_token(self, token: str) -> str:
        if not self.enabled or not token:
            raise InvalidOrExpiredVerificationTokenError()
        with store_errors("validate_token"):
            user_id = self.r.get(self._k(token))
        if user_id is None:
            raise InvalidOrExpiredVerificationTokenError()
        return decode(user_id)

    def invalidate_token(self, token: str) -> None:
        if not self.enabled:
            return
        with store_errors("invalidate_token"):
            user_id = self.r.get(self._k(token))
            with self.r.pipeline(transaction=True) as p:
                p.delete(self._k(token))
                if user_id is not None:
                    p.srem(self._ku(decode(user_id)), token)
                p.execute()

    def invalidate_all_user_tokens(self, user_id: str) -> None:
        if not self.enabled:
            return
        with store_errors("invalidate_all_user_tokens"):
            tokens = decode_all(self.r.smembers(self._ku(user_id)))
            self.r.delete(*(self._k(t) for t in tokens), self._ku(user_id))

    def can_resend(self, user_id: str) -> tuple[bool, int]:
        if not self.enabled:
            return True, 0
        with store_errors("can_resend"):
            remaining = cast(int, self.r.ttl(self._kc(user_id)))
        if remaining == -2:
            return True, 0
        if remaining == -1:
            # Marker without expiry should not exist; report a full cooldown
            return False, ttl_seconds(self.resend_cooldown)
        return (True, 0) if remaining <= 0 else (False, remaining)

    def set_resend_cooldown(self, user_id: str) -> None:
        if not self.enabled:
            return
        with store_errors("set_resend_cooldown"):
            self.r.set(self._kc(user_id), "1", ex=ttl_seconds(self.resend_cooldown))
