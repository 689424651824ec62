"""History polling used when push delivery cannot be relied on."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from .history import HistorySource
from .models import AnalysisRecord

logger = logging.getLogger("scanwatch.polling")

DEFAULT_POLL_INTERVAL_S = 2.0
DEFAULT_POLL_MAX_ATTEMPTS = 30
DEFAULT_FRESHNESS_WINDOW_S = 300.0


class PollingFallback:
    """Polls the history source for a recent record of a task.

    Records older than ``freshness_window_s`` belong to an earlier run and are
    ignored. Query failures count as a miss for that attempt.
    """

    def __init__(
        self,
        source: HistorySource,
        *,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        freshness_window_s: float = DEFAULT_FRESHNESS_WINDOW_S,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self.interval_s = interval_s
        self.freshness_window_s = freshness_window_s
        self._clock = clock
        self._sleep = sleep

    def is_fresh(self, record: AnalysisRecord) -> bool:
        return record.age_s(self._clock()) < self.freshness_window_s

    def find_fresh(self, task_id: str, records: list[AnalysisRecord]) -> AnalysisRecord | None:
        for record in records:
            if record.project_id != task_id:
                continue
            if self.is_fresh(record):
                return record
            logger.debug("history_record_stale", extra={"task_id": task_id, "record_id": record.id})
        return None

    async def poll_until_found(
        self,
        task_id: str,
        max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
    ) -> AnalysisRecord | None:
        logger.info("polling_started", extra={"task_id": task_id, "max_attempts": max_attempts})
        for attempt in range(1, max_attempts + 1):
            try:
                records = await self._source.fetch_history()
            except Exception as exc:
                logger.warning(
                    "polling_attempt_failed",
                    extra={"task_id": task_id, "attempt": attempt, "error": str(exc)},
                )
            else:
                match = self.find_fresh(task_id, records)
                if match is not None:
                    logger.info("polling_found", extra={"task_id": task_id, "attempt": attempt})
                    return match
            if attempt < max_attempts:
                await self._sleep(self.interval_s)
        logger.info("polling_exhausted", extra={"task_id": task_id, "attempts": max_attempts})
        return None


__all__ = [
    "DEFAULT_FRESHNESS_WINDOW_S",
    "DEFAULT_POLL_INTERVAL_S",
    "DEFAULT_POLL_MAX_ATTEMPTS",
    "PollingFallback",
]
