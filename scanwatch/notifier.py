"""Notifier instance wiring the push path and the polling fallback."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from types import TracebackType

from .config import NotifierConfig
from .connection import ConnectionManager, PushChannel
from .history import AnalysisHistoryClient, HistorySource
from .models import AnalysisRecord, ConnectionState, Notification
from .polling import PollingFallback
from .router import NotificationHandler, NotificationRouter
from .waiter import CompletionWaiter


class AnalysisNotifier:
    """One notifier per process; pass it to whatever needs completions.

    The push channel feeds the router, which resolves per-task waiters and
    broadcasts to observers. Polling is only used when a caller asks for it.
    """

    def __init__(
        self,
        config: NotifierConfig | None = None,
        *,
        channel: PushChannel | None = None,
        history: HistorySource | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or NotifierConfig()
        self.router = NotificationRouter()
        self.connection = ConnectionManager(
            self.config.ws_url,
            self.router,
            channel=channel,
            max_reconnect_attempts=self.config.max_reconnect_attempts,
            base_delay_s=self.config.reconnect_base_delay_s,
            max_delay_s=self.config.reconnect_max_delay_s,
            sleep=sleep,
        )
        self.waiter = CompletionWaiter(self.router)
        self.history = history or AnalysisHistoryClient(
            self.config.api_base_url,
            timeout_s=self.config.http_timeout_s,
        )
        self.polling = PollingFallback(
            self.history,
            interval_s=self.config.poll_interval_s,
            freshness_window_s=self.config.freshness_window_s,
            sleep=sleep,
        )

    async def __aenter__(self) -> AnalysisNotifier:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    async def start(self) -> None:
        await self.connection.open()

    async def close(self) -> None:
        await self.connection.close()
        self.router.clear()

    def on_complete(self, task_id: str, handler: NotificationHandler, *, replace: bool = False) -> None:
        self.router.register_once(task_id, handler, replace=replace)

    def add_observer(self, handler: NotificationHandler) -> None:
        self.router.add_observer(handler)

    def remove_observer(self, handler: NotificationHandler) -> None:
        self.router.remove_observer(handler)

    async def wait_for(self, task_id: str, timeout_s: float | None = None) -> Notification:
        timeout = self.config.default_wait_timeout_s if timeout_s is None else timeout_s
        return await self.waiter.wait_for(task_id, timeout)

    async def poll_until_found(self, task_id: str, max_attempts: int | None = None) -> AnalysisRecord | None:
        attempts = self.config.poll_max_attempts if max_attempts is None else max_attempts
        return await self.polling.poll_until_found(task_id, attempts)


__all__ = ["AnalysisNotifier"]
