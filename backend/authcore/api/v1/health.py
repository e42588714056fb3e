"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authcore.api.deps import json_response, timing
from authcore.core.extensions import db, get_redis

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and token store health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    client = get_redis()
    redis_status = "in-memory"
    if client is not None:
        try:
            client.ping()
            redis_status = "ok"
        except RedisError:
            current_app.logger.exception("healthcheck.redis_error")
            redis_status = "fail"

    status = "ok" if "fail" not in (db_status, redis_status) else "degraded"
    payload = {"status": status, "db": db_status, "redis": redis_status}
    return json_response(payload, status=200 if status == "ok" else 503)
