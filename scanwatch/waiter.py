"""Timeout-bounded waiting for a single task's completion."""

from __future__ import annotations

import asyncio

from .errors import AnalysisTimeoutError
from .models import Notification
from .router import NotificationRouter

DEFAULT_WAIT_TIMEOUT_S = 60.0


class CompletionWaiter:
    def __init__(self, router: NotificationRouter) -> None:
        self._router = router

    async def wait_for(
        self,
        task_id: str,
        timeout_s: float,
        *,
        replace: bool = False,
    ) -> Notification:
        """Return the notification for ``task_id`` or raise on timeout.

        Whichever comes first wins: the notification resolves the wait, the
        deadline raises :class:`AnalysisTimeoutError`. In both cases (and on
        cancellation) the registry entry is gone when this returns.
        """

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Notification] = loop.create_future()

        def _resolve(notification: Notification) -> None:
            if not future.done():
                future.set_result(notification)

        self._router.register_once(task_id, _resolve, replace=replace)
        try:
            return await asyncio.wait_for(future, timeout=timeout_s)
        except TimeoutError as exc:
            # The notification can land in the same loop pass as the deadline.
            if future.done() and not future.cancelled():
                return future.result()
            raise AnalysisTimeoutError(task_id, timeout_s) from exc
        finally:
            self._router.unregister(task_id, _resolve)


__all__ = ["CompletionWaiter", "DEFAULT_WAIT_TIMEOUT_S"]
