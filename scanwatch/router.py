"""Exactly-once routing of completion notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .errors import DuplicateRegistrationError
from .models import Delivered, DispatchResult, Notification, Unclaimed

logger = logging.getLogger("scanwatch.router")

NotificationHandler = Callable[[Notification], object]


class NotificationRouter:
    """Delivers each notification to at most one waiter plus every observer.

    One-shot callbacks are keyed by task id and removed before they run, so a
    handler that dispatches again (or re-registers) never sees its own entry.
    Observers are process-wide listeners that receive every notification.
    """

    def __init__(self) -> None:
        self._callbacks: dict[str, NotificationHandler] = {}
        self._observers: dict[NotificationHandler, None] = {}

    def register_once(
        self,
        task_id: str,
        handler: NotificationHandler,
        *,
        replace: bool = False,
    ) -> None:
        if not replace and task_id in self._callbacks:
            raise DuplicateRegistrationError(task_id)
        self._callbacks[task_id] = handler

    def unregister(self, task_id: str, handler: NotificationHandler | None = None) -> bool:
        current = self._callbacks.get(task_id)
        if current is None:
            return False
        if handler is not None and current != handler:
            return False
        del self._callbacks[task_id]
        return True

    def pending(self, task_id: str) -> bool:
        return task_id in self._callbacks

    @property
    def pending_count(self) -> int:
        return len(self._callbacks)

    def add_observer(self, handler: NotificationHandler) -> None:
        self._observers[handler] = None

    def remove_observer(self, handler: NotificationHandler) -> None:
        self._observers.pop(handler, None)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def dispatch(self, notification: Notification) -> DispatchResult:
        result: DispatchResult
        callback = self._callbacks.pop(notification.task_id, None)
        if callback is None:
            result = Unclaimed(notification)
        else:
            result = Delivered(notification)
            self._invoke(callback, notification, kind="callback")

        # Snapshot so observers may add/remove observers while being notified.
        for observer in list(self._observers):
            self._invoke(observer, notification, kind="observer")
        return result

    def clear(self) -> None:
        self._callbacks.clear()

    def _invoke(self, handler: NotificationHandler, notification: Notification, *, kind: str) -> None:
        try:
            handler(notification)
        except Exception:
            logger.exception(
                "notification_handler_failed",
                extra={"task_id": notification.task_id, "handler_kind": kind},
            )


__all__ = ["NotificationHandler", "NotificationRouter"]
