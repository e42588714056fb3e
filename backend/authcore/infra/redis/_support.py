# authcore/infra/redis/_support.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from redis.exceptions import RedisError  # type: ignore[import-untyped]

from authcore.services._shared.errors import StoreUnavailableError

log = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """
    Translate redis-py failures into :class:`StoreUnavailableError`.

    Covers connection errors and ``redis.exceptions.TimeoutError`` raised
    when the client's ``socket_timeout`` elapses. Nothing is retried.

    :param operation: Ledger operation name, used for logs and the error.
    :type operation: str
    """
    try:
        yield
    except RedisError as exc:
        log.error(
            "auth.store.unavailable operation=%s error=%s",
            operation,
            type(exc).__name__,
            extra={"operation": operation},
        )
        raise StoreUnavailableError(operation) from exc


def decode(value: bytes | bytearray | str) -> str:
    """Return ``value`` as ``str`` whatever ``decode_responses`` is set to."""
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


def decode_all(values: Iterable[bytes | bytearray | str]) -> list[str]:
    return sorted(decode(v) for v in values)
