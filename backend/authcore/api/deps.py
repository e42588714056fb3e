"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from authcore.core.errors import Forbidden, Unauthorized
from authcore.core.extensions import get_auth
from authcore.services._shared.errors import InvalidTokenError
from authcore.services._shared.policies.roles import has_min_role
from authcore.services._shared.ports import Claims, TokenKind

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def bearer_token() -> str:
    """
    Extract the raw token from ``Authorization: Bearer <token>``.

    :raises Unauthorized: If the header is absent or not a bearer credential.
    """
    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX):
        raise Unauthorized("Missing or malformed Authorization header")
    token = header[len(BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthorized("Missing or malformed Authorization header")
    return token


def current_claims() -> Claims:
    """Return the claims admitted by :func:`require_auth` for this request."""
    return cast(Claims, g.claims)


def require_auth(func: F) -> F:
    """
    Admit the request only with a valid, non-revoked access token.

    The blacklist lookup is fail-closed: a
    :class:`~authcore.services._shared.errors.StoreUnavailableError` is left
    to propagate and is rendered as 503 by the error handlers.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = bearer_token()
        auth = get_auth()
        try:
            claims = auth.codec.validate(token, kind=TokenKind.ACCESS)
        except InvalidTokenError as exc:
            raise Unauthorized("Invalid or expired token") from exc
        if auth.revocations.is_blacklisted(claims.jti):
            log.info("auth.gate.revoked", extra={"user_id": claims.subject, "jti": claims.jti})
            raise Unauthorized("Token has been revoked")
        g.claims = claims
        g.raw_token = token
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_min_role(required: str) -> Callable[[F], F]:
    """Ensure the admitted token's role is at least ``required``."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        @require_auth
        def wrapper(*args: Any, **kwargs: Any):
            if not has_min_role(current_claims().role, required):
                raise Forbidden("Insufficient role")
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
