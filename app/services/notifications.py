"""Transient toast notifications.

At most one toast is visible.  Each ``show`` replaces the current toast
and restarts its dismissal countdown from zero; there is never more than
one pending dismissal.  The countdown is a cancellable scheduled callback
(asyncio ``call_later`` by default) so a superseded or torn-down toast
can never fire late and clear a newer one.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from app.core.metrics import TOASTS_SHOWN

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 3000


class ToastKind(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Toast:
    kind: ToastKind
    message: str


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with asyncio's ``call_later`` signature."""

    def call_later(
        self, delay: float, callback: Callable[[], object]
    ) -> TimerHandle: ...


class NotificationController:
    def __init__(
        self,
        duration_ms: int = DEFAULT_DURATION_MS,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.duration_ms = duration_ms
        self._scheduler = scheduler
        self._toast: Toast | None = None
        self._handle: TimerHandle | None = None
        self._closed = False

    @property
    def current(self) -> Toast | None:
        return self._toast

    @property
    def visible(self) -> bool:
        return self._toast is not None

    def show(self, kind: ToastKind, message: str) -> None:
        if self._closed:
            logger.debug("Toast dropped after teardown: %s", message)
            return
        self._cancel_pending()
        self._toast = Toast(kind=kind, message=message)
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._handle = scheduler.call_later(self.duration_ms / 1000, self._expire)
        TOASTS_SHOWN.labels(kind=kind.value).inc()
        logger.info("Toast shown kind=%s message=%s", kind.value, message)

    def hide(self) -> None:
        self._cancel_pending()
        self._toast = None

    def close(self) -> None:
        """Tear down: cancel the pending dismissal and refuse further toasts."""
        self._cancel_pending()
        self._closed = True

    def _expire(self) -> None:
        self._handle = None
        self._toast = None

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
