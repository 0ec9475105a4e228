"""Observability hook for recovered limiter failures."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from app.core.errors import AppError


@runtime_checkable
class RateLimitObserver(Protocol):
    """Receives every failure the limiter recovers from."""

    def warn(self, event: str, error: BaseException) -> None:
        ...


class LoggingObserver:
    """Report recovered failures as WARNING records."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("app.rate_limit")

    def warn(self, event: str, error: BaseException) -> None:
        extra: dict[str, object] = {
            "error_type": type(error).__name__,
            "error_msg": str(error),
        }
        if isinstance(error, AppError):
            extra["error_code"] = error.code
            if error.details:
                extra["error_details"] = dict(error.details)
        self._logger.warning(event, extra=extra)
