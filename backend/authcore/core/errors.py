"""Centralized JSON (RFC 7807) error handling for the API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from authcore.core.logger import ensure_request_id
from authcore.services._shared.errors import (
    AccountLockedError,
    AlreadyVerifiedError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredVerificationTokenError,
    InvalidTokenError,
    NotFoundError,
    ResendCooldownError,
    ServiceError,
    StoreUnavailableError,
    UserInactiveError,
    VerificationUnavailableError,
)

log = logging.getLogger(__name__)

# (error type, status, code, fixed client message or None to use str(err)).
# First isinstance match wins, so subclasses must precede their bases.
SERVICE_ERROR_MAP: tuple[tuple[type[ServiceError], int, str, str | None], ...] = (
    (InvalidCredentialsError, HTTPStatus.UNAUTHORIZED, "invalid_credentials", None),
    (InvalidTokenError, HTTPStatus.UNAUTHORIZED, "invalid_token", "Invalid or expired token"),
    (UserInactiveError, HTTPStatus.FORBIDDEN, "user_inactive", None),
    (AccountLockedError, HTTPStatus.LOCKED, "account_locked", None),
    (ResendCooldownError, HTTPStatus.TOO_MANY_REQUESTS, "resend_cooldown", None),
    (
        InvalidOrExpiredVerificationTokenError,
        HTTPStatus.BAD_REQUEST,
        "invalid_verification_token",
        None,
    ),
    (AlreadyVerifiedError, HTTPStatus.CONFLICT, "already_verified", None),
    (
        VerificationUnavailableError,
        HTTPStatus.SERVICE_UNAVAILABLE,
        "verification_unavailable",
        None,
    ),
    (ConflictError, HTTPStatus.CONFLICT, "conflict", None),
    (NotFoundError, HTTPStatus.NOT_FOUND, "not_found", "Resource not found"),
    (
        StoreUnavailableError,
        HTTPStatus.SERVICE_UNAVAILABLE,
        "service_unavailable",
        "Service temporarily unavailable",
    ),
)


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        423: "locked",
        429: "too_many_requests",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any]) -> Response:
    """
    Return a Flask response with ``application/problem+json`` media type.

    :param problem: Problem details payload.
    :returns: Flask JSON Response with proper MIME type.
    :rtype: flask.Response
    """
    resp = jsonify(problem)
    resp.mimetype = "application/problem+json"
    return resp


class APIError(Exception):
    """
    Represent a JSON-serializable API error raised from the HTTP layer.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier, typically snake_case. Defaults to
        ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Optional structured payload included in the response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        """
        Serialize error metadata into an RFC 7807 problem.

        :returns: Problem details dictionary.
        :rtype: dict
        """
        return _as_problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


class Unauthorized(APIError):
    """401 when the bearer token is missing, malformed, invalid or revoked."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


class Forbidden(APIError):
    """403 when authorization denies access."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


def service_error_to_api_error(err: ServiceError) -> APIError:
    """
    Translate a service-layer error into an :class:`APIError`.

    Lockout and cooldown errors carry ``remaining_seconds`` in ``details``;
    every other error gets a generic message.

    :param err: Error raised by the service layer.
    :returns: Equivalent API error (500 for unmapped service errors).
    """
    for exc_type, status, code, message in SERVICE_ERROR_MAP:
        if isinstance(err, exc_type):
            details: dict[str, Any] | None = None
            if isinstance(err, AccountLockedError | ResendCooldownError):
                details = {"remaining_seconds": err.remaining_seconds}
            return APIError(message or str(err), status_code=status, code=code, details=details)
    return APIError(
        "Unexpected error",
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        code="internal_server_error",
    )


def _respond(err: APIError) -> tuple[Response, int]:
    problem = err.to_problem()
    level = log.error if err.status_code >= 500 else log.warning
    level(
        "APIError: code=%s status=%s msg=%s request_id=%s",
        err.code,
        err.status_code,
        err.message,
        problem.get("request_id"),
    )
    response = _problem_response(problem)
    remaining = err.details.get("remaining_seconds")
    if remaining is not None:
        response.headers["Retry-After"] = str(remaining)
    return response, err.status_code


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Guarantees RFC 7807 responses for all handled errors.
    - Ensures a correlation ``request_id`` is present on every error.
    - Emits 5xx with ``exc_info`` for traceability; 4xx as warnings.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return _respond(err)

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        if isinstance(err, StoreUnavailableError):
            log.error("Token store unavailable: operation=%s", err.operation, exc_info=err)
        return _respond(service_error_to_api_error(err))

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        # Werkzeug may provide HTML-ish description; normalize for clients
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        problem = _as_problem(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level(
            "HTTPException: code=%s status=%s detail=%s request_id=%s",
            error_code,
            status,
            message,
            problem.get("request_id"),
        )
        return _problem_response(problem), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: request_id=%s", problem.get("request_id"))
        return _problem_response(problem), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        # E.g., transient DB connectivity
        problem = _as_problem(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("OperationalError: request_id=%s", problem.get("request_id"), exc_info=True)
        return _problem_response(problem), HTTPStatus.SERVICE_UNAVAILABLE

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Never leak internal details
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("Unhandled exception: request_id=%s", problem.get("request_id"), exc_info=True)
        return _problem_response(problem), HTTPStatus.INTERNAL_SERVER_ERROR
