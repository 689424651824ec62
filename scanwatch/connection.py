"""Push channel lifecycle with bounded exponential-backoff reconnection."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Protocol

from websockets.asyncio.client import connect as ws_connect

from .models import ConnectionState, DispatchResult, parse_notification
from .router import NotificationRouter

logger = logging.getLogger("scanwatch.connection")

RawMessage = str | bytes
SleepFn = Callable[[float], Awaitable[None]]


class PushConnection(Protocol):
    """An open push stream; iteration ends when the server closes it."""

    def __aiter__(self) -> AsyncIterator[RawMessage]: ...

    async def close(self) -> None: ...


class PushChannel(Protocol):
    async def connect(self, url: str) -> PushConnection: ...


@dataclass(slots=True)
class WebSocketChannel:
    """Push channel backed by the ``websockets`` client."""

    open_timeout_s: float | None = 10.0
    headers: Mapping[str, str] | None = None

    async def connect(self, url: str) -> PushConnection:
        return await ws_connect(
            url,
            open_timeout=self.open_timeout_s,
            additional_headers=dict(self.headers) if self.headers else None,
        )


class ConnectionManager:
    """Owns one push-channel connection and feeds the router.

    Closure is detected by the reader task when the stream ends. Each failure
    schedules a retry after ``min(base_delay_s * 2**attempts, max_delay_s)``
    until ``max_reconnect_attempts`` is reached; after that the manager stays
    disconnected until :meth:`open` is called again.
    """

    def __init__(
        self,
        url: str,
        router: NotificationRouter,
        *,
        channel: PushChannel | None = None,
        max_reconnect_attempts: int = 5,
        base_delay_s: float = 1.0,
        max_delay_s: float = 30.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.url = url
        self._router = router
        self._channel = channel or WebSocketChannel()
        self._max_attempts = max_reconnect_attempts
        self._base_delay_s = base_delay_s
        self._max_delay_s = max_delay_s
        self._sleep = sleep
        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._exhausted = False
        self._closed = False
        self._connection: PushConnection | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._retry_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def reconnect_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def backoff_delay(self, attempt: int) -> float:
        return min(self._base_delay_s * (2**attempt), self._max_delay_s)

    async def open(self) -> None:
        """Connect now, resetting the attempt counter."""

        await self._stop_retry()
        self._closed = False
        self._exhausted = False
        self._attempts = 0
        await self._connect()

    def cancel_reconnect(self) -> bool:
        task = self._retry_task
        self._retry_task = None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def close(self) -> None:
        self._closed = True
        await self._stop_retry()
        reader, self._reader_task = self._reader_task, None
        connection, self._connection = self._connection, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        if connection is not None:
            try:
                await connection.close()
            except Exception as exc:
                logger.debug("push_channel_close_failed", extra={"error": str(exc)})
        self._state = ConnectionState.DISCONNECTED

    def feed(self, raw: RawMessage) -> DispatchResult | None:
        """Route one raw payload; malformed input is dropped."""

        notification = parse_notification(raw)
        if notification is None:
            return None
        return self._router.dispatch(notification)

    async def _stop_retry(self) -> None:
        task = self._retry_task
        if task is None or not self.cancel_reconnect() or task is asyncio.current_task():
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _connect(self) -> None:
        if self._state is not ConnectionState.DISCONNECTED:
            return
        self._state = ConnectionState.CONNECTING
        try:
            connection = await self._channel.connect(self.url)
        except asyncio.CancelledError:
            self._state = ConnectionState.DISCONNECTED
            raise
        except Exception as exc:
            self._state = ConnectionState.DISCONNECTED
            logger.warning(
                "push_channel_connect_failed",
                extra={"url": self.url, "attempt": self._attempts, "error": str(exc)},
            )
            self._schedule_reconnect()
            return

        if self._closed:
            self._state = ConnectionState.DISCONNECTED
            await connection.close()
            return

        self._connection = connection
        self._attempts = 0
        self._state = ConnectionState.CONNECTED
        logger.info("push_channel_connected", extra={"url": self.url})
        self._reader_task = asyncio.create_task(self._read_loop(connection))

    async def _read_loop(self, connection: PushConnection) -> None:
        try:
            async for raw in connection:
                try:
                    self.feed(raw)
                except Exception as exc:
                    logger.warning("push_message_dropped", extra={"url": self.url, "error": str(exc)})
        except Exception as exc:
            logger.warning("push_channel_error", extra={"url": self.url, "error": str(exc)})

        if self._connection is not connection:
            return
        try:
            await connection.close()
        except Exception as exc:
            logger.debug("push_channel_close_failed", extra={"error": str(exc)})
        if self._connection is not connection:
            return
        self._connection = None
        self._reader_task = None
        self._state = ConnectionState.DISCONNECTED
        logger.info("push_channel_disconnected", extra={"url": self.url})
        if not self._closed:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closed:
            return
        if self._attempts >= self._max_attempts:
            self._exhausted = True
            logger.error(
                "reconnect_exhausted",
                extra={"url": self.url, "attempts": self._attempts},
            )
            return
        self._attempts += 1
        delay = self.backoff_delay(self._attempts)
        logger.info(
            "reconnect_scheduled",
            extra={"url": self.url, "attempt": self._attempts, "delay_s": delay},
        )
        self._retry_task = asyncio.create_task(self._retry_after(delay))

    async def _retry_after(self, delay: float) -> None:
        try:
            await self._sleep(delay)
            await self._connect()
        finally:
            # A failed attempt may already have scheduled the next retry.
            if self._retry_task is asyncio.current_task():
                self._retry_task = None


__all__ = [
    "ConnectionManager",
    "PushChannel",
    "PushConnection",
    "WebSocketChannel",
]
