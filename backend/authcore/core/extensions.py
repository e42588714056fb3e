"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, cast

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

if TYPE_CHECKING:  # pragma: no cover
    from authcore.services._shared.ports import LoginAttemptGuard, RevocationLedger, TokenCodec
    from authcore.services.auth.service import AuthService

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)

AUTH_EXTENSION_KEY = "auth"
REDIS_EXTENSION_KEY = "redis_client"


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy and the shared Redis client.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`authcore.models` package to ensure SQLAlchemy metadata is ready.

    Raises
    ------
    RuntimeError
        If ``REDIS_URL`` is configured but the server does not answer ``PING``.
    """
    db.init_app(app)

    # Ensure models are imported so metadata is complete
    from authcore import models as _models  # noqa: F401

    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        app.extensions.pop(REDIS_EXTENSION_KEY, None)
        return

    timeout = float(app.config.get("REDIS_SOCKET_TIMEOUT_SECONDS", 2.0))
    client = redis.Redis.from_url(
        redis_url,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True,
    )
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions[REDIS_EXTENSION_KEY] = client


def get_redis() -> redis.Redis | None:
    """Return the Redis client of the current app (``None`` when not configured)."""
    return cast("redis.Redis | None", current_app.extensions.get(REDIS_EXTENSION_KEY))


# --------------------------------------------------------------------------- #
# Auth core wiring
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class AuthComponents:
    """
    Auth core collaborators built once per application.

    :ivar service: Orchestrator used by the auth endpoints.
    :ivar codec: Token codec shared with the request gate.
    :ivar revocations: Revocation ledger shared with the request gate.
    :ivar attempts: Login-attempt guard (exposed for the admin CLI).
    """

    service: AuthService
    codec: TokenCodec
    revocations: RevocationLedger
    attempts: LoginAttemptGuard


def _seconds(app: Flask, key: str) -> timedelta:
    return timedelta(seconds=int(app.config[key]))


def init_auth(app: Flask) -> AuthComponents:
    """Build the auth core from ``app.config`` and store it in ``app.extensions``.

    Parameters
    ----------
    app: flask.Flask
        Application whose config provides secrets, TTLs and toggles.

    Returns
    -------
    AuthComponents
        The wired components, also available via :func:`get_auth`.

    Notes
    -----
    Ledgers are Redis-backed when :func:`init_app` created a client and
    in-memory otherwise. The in-memory variant only suits a single process,
    hence the warning.
    """
    from authcore.infra.email.dispatchers import ConsoleEmailDispatcher, SMTPEmailDispatcher
    from authcore.infra.jwt.pyjwt_token_codec import PyJWTTokenCodec
    from authcore.infra.security.werkzeug_credential_store import WerkzeugCredentialStore
    from authcore.repositories.principal import SQLAlchemyPrincipalRepository
    from authcore.services._shared.ports import (
        EmailDispatcher,
        EmailVerificationLedger,
        InMemoryEmailVerificationLedger,
        InMemoryLoginAttemptGuard,
        InMemoryRevocationLedger,
    )
    from authcore.services.auth.service import AuthService

    cfg = app.config
    access_ttl = _seconds(app, "JWT_ACCESS_TTL_SECONDS")
    refresh_ttl = _seconds(app, "JWT_REFRESH_TTL_SECONDS")
    revoke_all_ttl = max(access_ttl, refresh_ttl)
    lockout_duration = _seconds(app, "LOCKOUT_DURATION_SECONDS")
    attempt_window = _seconds(app, "LOCKOUT_WINDOW_SECONDS")
    verification_ttl = _seconds(app, "EMAIL_VERIFICATION_TTL_SECONDS")
    cooldown = _seconds(app, "EMAIL_VERIFICATION_COOLDOWN_SECONDS")

    codec = PyJWTTokenCodec(
        secret=cfg["JWT_SECRET_KEY"],
        issuer=cfg["JWT_ISSUER"],
        access_ttl=access_ttl,
        refresh_ttl=refresh_ttl,
        leeway=_seconds(app, "JWT_LEEWAY_SECONDS"),
    )

    client = app.extensions.get(REDIS_EXTENSION_KEY)
    revocations: RevocationLedger
    attempts: LoginAttemptGuard
    verifications: EmailVerificationLedger
    if client is not None:
        from authcore.infra.redis.redis_email_verification_ledger import (
            RedisEmailVerificationLedger,
        )
        from authcore.infra.redis.redis_login_attempt_guard import RedisLoginAttemptGuard
        from authcore.infra.redis.redis_revocation_ledger import RedisRevocationLedger

        revocations = RedisRevocationLedger(
            r=client,
            revoke_all_ttl=revoke_all_ttl,
            enabled=cfg["TOKEN_BLACKLIST_ENABLED"],
        )
        attempts = RedisLoginAttemptGuard(
            r=client,
            max_attempts=int(cfg["LOCKOUT_MAX_ATTEMPTS"]),
            lockout_duration=lockout_duration,
            attempt_window=attempt_window,
            enabled=cfg["LOCKOUT_ENABLED"],
        )
        verifications = RedisEmailVerificationLedger(
            r=client,
            token_ttl=verification_ttl,
            resend_cooldown=cooldown,
            enabled=cfg["EMAIL_VERIFICATION_ENABLED"],
        )
    else:
        if not cfg.get("ALLOW_IN_MEMORY_STORE", True):
            raise RuntimeError("REDIS_URL is required: in-memory token stores are disabled.")
        log.warning("auth.store.in_memory: REDIS_URL not set, ledgers are process-local")
        revocations = InMemoryRevocationLedger(
            revoke_all_ttl=revoke_all_ttl,
            enabled=cfg["TOKEN_BLACKLIST_ENABLED"],
        )
        attempts = InMemoryLoginAttemptGuard(
            max_attempts=int(cfg["LOCKOUT_MAX_ATTEMPTS"]),
            lockout_duration=lockout_duration,
            attempt_window=attempt_window,
            enabled=cfg["LOCKOUT_ENABLED"],
        )
        verifications = InMemoryEmailVerificationLedger(
            token_ttl=verification_ttl,
            resend_cooldown=cooldown,
            enabled=cfg["EMAIL_VERIFICATION_ENABLED"],
        )

    mailer: EmailDispatcher
    if cfg["EMAIL_ENABLED"]:
        mailer = SMTPEmailDispatcher(
            host=cfg["SMTP_HOST"],
            port=int(cfg["SMTP_PORT"]),
            from_address=cfg["EMAIL_FROM_ADDRESS"],
            base_url=cfg["EMAIL_VERIFICATION_BASE_URL"],
            username=cfg.get("SMTP_USERNAME"),
            password=cfg.get("SMTP_PASSWORD"),
            use_tls=cfg["SMTP_USE_TLS"],
            timeout=float(cfg["SMTP_TIMEOUT_SECONDS"]),
        )
    else:
        mailer = ConsoleEmailDispatcher(base_url=cfg["EMAIL_VERIFICATION_BASE_URL"])

    service = AuthService(
        codec=codec,
        revocations=revocations,
        attempts=attempts,
        verifications=verifications,
        credentials=WerkzeugCredentialStore(method=cfg.get("PASSWORD_HASH_METHOD", "scrypt")),
        principals=SQLAlchemyPrincipalRepository(lambda: db.session),
        mailer=mailer,
    )
    components = AuthComponents(
        service=service,
        codec=codec,
        revocations=revocations,
        attempts=attempts,
    )
    app.extensions[AUTH_EXTENSION_KEY] = components
    return components


def get_auth() -> AuthComponents:
    """Return the auth components of the current app."""
    components = current_app.extensions.get(AUTH_EXTENSION_KEY)
    if components is None:
        raise RuntimeError("Auth core is not initialized. Call init_auth() first.")
    return cast(AuthComponents, components)

