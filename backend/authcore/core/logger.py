"""Structured JSON logging with request and principal correlation."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Per-request storage; ``g`` can outlive a request when an app context is reused
REQUEST_ID_ENVIRON_KEY = "authcore.request_id"

# Request-scoped attributes the auth gate leaves on ``g``
REQUEST_SCOPED_G_ATTRS = ("claims", "raw_token")

# Client-supplied ids are echoed in logs and headers; anything else is replaced
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Attributes passed through ``extra=`` that end up in the JSON payload.
# Raw tokens, passwords and verification tokens are never listed here.
EXTRA_KEYS = (
    "endpoint",
    "elapsed_ms",
    "user_id",
    "jti",
    "action",
    "operation",
    "attempts",
    "remaining_seconds",
    "revoked",
)


class JSONFormatter(logging.Formatter):
    """
    Render log records as one JSON object per line.

    Only the keys in :data:`EXTRA_KEYS` are copied from ``extra=``, so a stray
    ``extra={"password": ...}`` never reaches the output.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        for key in EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """
    Stamp records with the request id and, once admitted, the caller's id.

    ``user_id`` comes from the claims the request gate stores on ``g``; an
    explicit ``extra={"user_id": ...}`` takes precedence.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            record.request_id = None
            return True
        record.request_id = ensure_request_id()
        claims = g.get("claims")
        if claims is not None and getattr(record, "user_id", None) is None:
            record.user_id = claims.subject
        return True


def ensure_request_id() -> str:
    """
    Return the current request identifier, generating one when necessary.

    An incoming ``X-Request-ID`` / ``X-Correlation-ID`` is reused only when it
    is short and made of safe characters; otherwise a uuid4 is minted.
    """
    if not has_request_context():
        return str(uuid4())
    cached = request.environ.get(REQUEST_ID_ENVIRON_KEY)
    if cached:
        return str(cached)
    request_id = next(
        (
            value
            for value in (request.headers.get(h) for h in CORRELATION_HEADERS)
            if value and _SAFE_REQUEST_ID.match(value)
        ),
        None,
    ) or str(uuid4())
    request.environ[REQUEST_ID_ENVIRON_KEY] = request_id
    return request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Send the root logger to stdout as JSON lines at ``level``."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    level_value: int | str = level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level_value = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level_value)


def init_app(app: Flask) -> None:
    """Seed a request id per request and echo it in ``X-Request-ID``."""

    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        for attr in REQUEST_SCOPED_G_ATTRS:
            g.pop(attr, None)
        ensure_request_id()

    @app.after_request
    def _inject_response_header(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = [
    "EXTRA_KEYS",
    "JSONFormatter",
    "RequestIdFilter",
    "configure_logging",
    "ensure_request_id",
    "init_app",
]
