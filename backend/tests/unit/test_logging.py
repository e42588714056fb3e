"""Tests for JSON log formatting and request correlation."""

from __future__ import annotations

import json
import logging
import sys

from authcore.core.logger import JSONFormatter, RequestIdFilter, ensure_request_id
from flask import g


def _record(msg: str = "auth.login.failed", **extra) -> logging.LogRecord:
    record = logging.LogRecord("authcore.test", logging.WARNING, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_known_extras_only():
    """Whitelisted ``extra=`` attributes are serialized; others are dropped."""
    record = _record(user_id="u-1", attempts=3, password="hunter2")
    RequestIdFilter().filter(record)

    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "auth.login.failed"
    assert payload["user_id"] == "u-1"
    assert payload["attempts"] == 3
    assert payload["request_id"] is None
    assert "password" not in payload


def test_formatter_includes_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "authcore.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )

    payload = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in payload["exc_info"]


def test_request_id_reuses_incoming_header(app):
    with app.test_request_context("/", headers={"X-Correlation-ID": "corr-42"}):
        assert ensure_request_id() == "corr-42"
        # Cached for the rest of the request
        assert ensure_request_id() == "corr-42"


def test_request_id_generated_when_missing(app):
    with app.test_request_context("/"):
        first = ensure_request_id()
        assert first == ensure_request_id()
    assert ensure_request_id() != first


def test_unsafe_request_id_is_replaced(app):
    """Header values with control characters never reach the logs."""
    with app.test_request_context("/", headers={"X-Request-ID": "not a safe id <x>"}):
        request_id = ensure_request_id()
    assert request_id != "not a safe id <x>"
    assert len(request_id) == 36


def test_filter_stamps_admitted_principal(app, auth):
    claims = auth.codec.validate(auth.codec.issue_access("u-9", "customer").token)
    with app.test_request_context("/"):
        g.claims = claims
        record = _record()
        RequestIdFilter().filter(record)

        explicit = _record(user_id="someone-else")
        RequestIdFilter().filter(explicit)

    assert record.user_id == "u-9"
    assert record.request_id
    assert explicit.user_id == "someone-else"


def test_request_id_is_not_shared_between_requests(app):
    """Requests served under one application context keep distinct ids."""
    with app.test_request_context("/", headers={"X-Request-ID": "first-id"}):
        first = ensure_request_id()
    with app.test_request_context("/", headers={"X-Request-ID": "second-id"}):
        second = ensure_request_id()

    assert (first, second) == ("first-id", "second-id")


def test_new_request_drops_previous_principal(app, auth):
    claims = auth.codec.validate(auth.codec.issue_access("u-9", "customer").token)
    with app.test_request_context("/"):
        g.claims = claims
        g.raw_token = "stale"

    with app.test_request_context("/"):
        app.preprocess_request()
        record = _record()
        RequestIdFilter().filter(record)
        assert "claims" not in g
        assert "raw_token" not in g

    assert getattr(record, "user_id", None) is None
