"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_JWT_SECRET: Final[str] = "CHANGE_ME_JWT"


# Load .env during development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: int
        Value returned when the variable is unset or blank.

    Returns
    -------
    int
        Parsed value.

    Raises
    ------
    ValueError
        If the variable is set to something that is not an integer.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got {val!r}") from exc


def env_float(name: str, default: float) -> float:
    """Parse a float from an environment variable (see :func:`env_int`)."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return float(val.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number, got {val!r}") from exc


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Not used for bearer tokens.
    JWT_SECRET_KEY: str
        HMAC secret used by the token codec to sign access and refresh tokens.
    JWT_ISSUER: str
        ``iss`` claim written into and required on every token.
    JWT_ACCESS_TTL_SECONDS: int
        Access token lifetime (15 minutes by default).
    JWT_REFRESH_TTL_SECONDS: int
        Refresh token lifetime. Rotation replaces the refresh token on every
        use, so the default stays short (2 hours).
    JWT_LEEWAY_SECONDS: int
        Clock skew tolerated when checking ``exp``.
    REDIS_URL: str | None
        Shared TTL store. When unset, in-memory ledgers are used (never in
        production).
    REDIS_SOCKET_TIMEOUT_SECONDS: float
        Deadline applied to every Redis round-trip.
    TOKEN_BLACKLIST_ENABLED: bool
        Toggles the revocation ledger.
    LOCKOUT_ENABLED / LOCKOUT_MAX_ATTEMPTS / LOCKOUT_DURATION_SECONDS / LOCKOUT_WINDOW_SECONDS
        Login-attempt guard policy.
    EMAIL_VERIFICATION_ENABLED / EMAIL_VERIFICATION_TTL_SECONDS / EMAIL_VERIFICATION_COOLDOWN_SECONDS
        Email verification ledger policy.
    EMAIL_ENABLED: bool
        Deliver verification emails over SMTP; when ``False`` the link is
        logged instead.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", PLACEHOLDER_JWT_SECRET)
    JWT_ISSUER = os.getenv("JWT_ISSUER", "authcore")
    JWT_ACCESS_TTL_SECONDS = env_int("JWT_ACCESS_TTL_SECONDS", 15 * 60)
    JWT_REFRESH_TTL_SECONDS = env_int("JWT_REFRESH_TTL_SECONDS", 2 * 60 * 60)
    JWT_LEEWAY_SECONDS = env_int("JWT_LEEWAY_SECONDS", 0)

    # Shared TTL store
    REDIS_URL = os.getenv("REDIS_URL")
    REDIS_SOCKET_TIMEOUT_SECONDS = env_float("REDIS_SOCKET_TIMEOUT_SECONDS", 2.0)

    # Revocation
    TOKEN_BLACKLIST_ENABLED = env_bool("TOKEN_BLACKLIST_ENABLED", True)

    # Brute-force lockout
    LOCKOUT_ENABLED = env_bool("LOCKOUT_ENABLED", True)
    LOCKOUT_MAX_ATTEMPTS = env_int("LOCKOUT_MAX_ATTEMPTS", 5)
    LOCKOUT_DURATION_SECONDS = env_int("LOCKOUT_DURATION_SECONDS", 15 * 60)
    LOCKOUT_WINDOW_SECONDS = env_int("LOCKOUT_WINDOW_SECONDS", 15 * 60)

    # Email verification
    EMAIL_VERIFICATION_ENABLED = env_bool("EMAIL_VERIFICATION_ENABLED", True)
    EMAIL_VERIFICATION_TTL_SECONDS = env_int("EMAIL_VERIFICATION_TTL_SECONDS", 24 * 60 * 60)
    EMAIL_VERIFICATION_COOLDOWN_SECONDS = env_int("EMAIL_VERIFICATION_COOLDOWN_SECONDS", 60)
    EMAIL_VERIFICATION_BASE_URL = os.getenv("EMAIL_VERIFICATION_BASE_URL", "http://localhost:8080")

    # Outbound email
    EMAIL_ENABLED = env_bool("EMAIL_ENABLED", False)
    EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "no-reply@localhost")
    SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT = env_int("SMTP_PORT", 587)
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_USE_TLS = env_bool("SMTP_USE_TLS", True)
    SMTP_TIMEOUT_SECONDS = env_float("SMTP_TIMEOUT_SECONDS", 10.0)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Password hashing (werkzeug.security method string)
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False

    # Allows in-memory ledgers when REDIS_URL is missing
    ALLOW_IN_MEMORY_STORE = True


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to a real Redis; ledgers are in-memory.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = None
    JWT_SECRET_KEY = "test-secret-key-with-enough-entropy-for-hs256"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    EMAIL_ENABLED = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled. The factory refuses to boot
    without ``REDIS_URL`` or with the placeholder JWT secret.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    ALLOW_IN_MEMORY_STORE = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_config(config: Mapping[str, object]) -> None:
    """Fail fast on settings that would make the auth core unsafe.

    :param config: Flask ``app.config`` mapping.
    :type config: Mapping[str, object]
    :raises RuntimeError: If a production-only requirement is missing.
    """
    if config.get("ALLOW_IN_MEMORY_STORE", True):
        return
    if not config.get("REDIS_URL"):
        raise RuntimeError("REDIS_URL is required when in-memory stores are not allowed.")
    if config.get("JWT_SECRET_KEY") in (None, "", PLACEHOLDER_JWT_SECRET):
        raise RuntimeError("JWT_SECRET_KEY must be set to a real secret.")
