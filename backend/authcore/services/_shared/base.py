# authcore/services/_shared/base.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from authcore.services._shared.errors import EmailDispatchError, StoreUnavailableError

T = TypeVar("T")

# Failures a best-effort step may absorb; anything else still propagates
NON_FATAL_ERRORS: tuple[type[Exception], ...] = (StoreUnavailableError, EmailDispatchError)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide a clock so services do not call ``datetime.now`` ad hoc.
    * Offer :meth:`best_effort` for steps whose failure must not fail the
      operation (tracking writes, cooldown markers, email delivery).

    Notes
    -----
    - Services never touch Flask, HTTP or redis-py directly; they only see
      ports and the errors in :mod:`authcore.services._shared.errors`.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        """
        Initialize the base service.

        :param logger: Logger used for best-effort failures (module logger by default).
        :type logger: logging.Logger | None
        """
        self.log = logger or logging.getLogger(type(self).__module__)

    # ------------------------- Non-fatal steps ------------------------------

    def best_effort(self, action: str, fn: Callable[[], T], **context: Any) -> T | None:
        """
        Run ``fn`` and absorb the failures listed in ``NON_FATAL_ERRORS``.

        The failure is logged as a warning with its traceback and ``None`` is
        returned, so callers can still branch on the outcome.

        :param action: Stable name of the step (appears in the log record).
        :type action: str
        :param fn: Zero-argument callable performing the step.
        :type fn: Callable[[], T]
        :param context: Extra log attributes (e.g. ``user_id``).
        :returns: ``fn()``'s result, or ``None`` when it failed.
        :rtype: T | None
        """
        try:
            return fn()
        except NON_FATAL_ERRORS:
            self.log.warning(
                "service.best_effort_failed action=%s",
                action,
                exc_info=True,
                extra={"action": action, **context},
            )
            return None

    # ------------------------------ Clock -----------------------------------

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)
