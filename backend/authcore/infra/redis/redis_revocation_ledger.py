# authcore/infra/redis/redis_revocation_ledger.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]

from authcore.services._shared.ports import RevocationLedger
from authcore.services._shared.ports._support import ttl_seconds

from ._support import decode_all, store_errors


@dataclass(slots=True)
class RedisRevocationLedger(RevocationLedger):
    """
    Redis-backed revocation ledger.

    Keys
    ----
    - ``auth:revoked:{jti}``: string marker, TTL = remaining token lifetime.
    - ``auth:live:{user_id}``: set of live JTIs, TTL only ever extended.

    :param r: A Redis client (already connected, with socket timeouts).
    :param revoke_all_ttl: TTL for JTIs revoked in bulk; must outlive any token.
    :param enabled: When ``False`` every operation is a no-op.
    """

    r: redis.Redis
    revoke_all_ttl: timedelta = timedelta(hours=24)
    enabled: bool = True

    # -------------------- helpers --------------------

    @staticmethod
    def _k(jti: str) -> str:
        return f"auth:revoked:{jti}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"auth:live:{user_id}"

    # -------------------- API ------------------------

    def blacklist(self, jti: str, ttl: timedelta) -> None:
        if not self.enabled:
            return
        with store_errors("blacklist"):
            self.r.set(self._k(jti), "1", ex=ttl_seconds(ttl))

    def is_blacklisted(self, jti: str) -> bool:
        if not self.enabled:
            return False
        with store_errors("is_blacklisted"):
            return cast(int, self.r.exists(self._k(jti))) == 1

    def remove_from_blacklist(self, jti: str) -> None:
        if not self.enabled:
            return
        with store_errors("remove_from_blacklist"):
            self.r.delete(self._k(jti))

    def track_user_token(self, user_id: str, jti: str, ttl: timedelta) -> None:
        """
        Add ``jti`` to the live set, raising the set TTL when ``ttl`` is longer.

        The TTL read happens before the write batch; two concurrent calls may
        both extend, which is harmless because the larger value wins on the
        next write.
        """
        if not self.enabled:
            return
        key = self._ku(user_id)
        seconds = ttl_seconds(ttl)
        with store_errors("track_user_token"):
            current = cast(int, self.r.ttl(key))  # -2 missing, -1 no expiry
            with self.r.pipeline(transaction=True) as p:
                p.sadd(key, jti)
                if current < 0 or seconds > current:
                    p.expire(key, seconds)
                p.execute()

    def untrack_user_token(self, user_id: str, jti: str) -> None:
        if not self.enabled:
            return
        with store_errors("untrack_user_token"):
            self.r.srem(self._ku(user_id), jti)

    def revoke(self, jti: str, ttl: timedelta, *, user_id: str | None = None) -> bool:
        if not self.enabled:
            return True
        with store_errors("revoke"):
            with self.r.pipeline(transaction=True) as p:
                # NX: an existing marker means another caller revoked it first
                p.set(self._k(jti), "1", ex=ttl_seconds(ttl), nx=True)
                if user_id is not None:
                    p.srem(self._ku(user_id), jti)
                results = p.execute()
        return bool(results[0])

    def revoke_all_user_tokens(self, user_id: str) -> int:
        if not self.enabled:
            return 0
        key = self._ku(user_id)
        seconds = ttl_seconds(self.revoke_all_ttl)
        with store_errors("revoke_all_user_tokens"):
            jtis = decode_all(self.r.smembers(key))
            with self.r.pipeline(transaction=True) as p:
                for jti in jtis:
                    p.set(self._k(jti), "1", ex=seconds)
                p.delete(key)
                p.execute()
        return len(jtis)

    def get_active_tokens(self, user_id: str) -> list[str]:
        if not self.enabled:
            return []
        with store_errors("get_active_tokens"):
            jtis = decode_all(self.r.smembers(self._ku(user_id)))
            if not jtis:
                return []
            with self.r.pipeline(transaction=False) as p:
                for jti in jtis:
                    p.exists(self._k(jti))
                revoked = cast(list[int], p.execute())
        return [jti for jti, flag in zip(jtis, revoked, strict=True) if not flag]

    def get_active_token_count(self, user_id: str) -> int:
        return len(self.get_active_tokens(user_id))
