from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from scanwatch import AnalysisRecord, HistoryQueryError, PollingFallback

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def _record(project_id: str, *, age: timedelta, record_id: str = "a1") -> AnalysisRecord:
    return AnalysisRecord(
        id=record_id,
        project_id=project_id,
        project_name="demo",
        scan_type="full",
        issues_found=3,
        created_at=NOW - age,
    )


class FakeHistory:
    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.calls = 0

    async def fetch_history(self) -> list[AnalysisRecord]:
        self.calls += 1
        response = self.responses.pop(0) if self.responses else []
        if isinstance(response, Exception):
            raise response
        return response


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _poller(history: FakeHistory, sleep: SleepRecorder) -> PollingFallback:
    return PollingFallback(history, clock=NOW.timestamp, sleep=sleep)


@pytest.mark.asyncio
async def test_stale_record_is_not_found() -> None:
    stale = [_record("abc", age=timedelta(minutes=10))]
    history = FakeHistory([stale, stale, stale])
    sleep = SleepRecorder()

    result = await _poller(history, sleep).poll_until_found("abc", 3)

    assert result is None
    assert history.calls == 3
    assert sleep.delays == [2.0, 2.0]


@pytest.mark.asyncio
async def test_fresh_record_is_returned() -> None:
    history = FakeHistory([[_record("abc", age=timedelta(minutes=1))]])
    sleep = SleepRecorder()

    result = await _poller(history, sleep).poll_until_found("abc", 3)

    assert result is not None
    assert result.project_id == "abc"
    assert history.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_skips_stale_and_foreign_records() -> None:
    records = [
        _record("other", age=timedelta(seconds=5), record_id="x"),
        _record("abc", age=timedelta(minutes=6), record_id="old"),
        _record("abc", age=timedelta(seconds=30), record_id="new"),
    ]
    result = await _poller(FakeHistory([records]), SleepRecorder()).poll_until_found("abc", 1)
    assert result is not None
    assert result.id == "new"


@pytest.mark.asyncio
async def test_query_failures_do_not_abort_polling() -> None:
    history = FakeHistory(
        [
            HistoryQueryError("status 502", status_code=502),
            RuntimeError("connection reset"),
            [_record("abc", age=timedelta(seconds=10))],
        ]
    )
    sleep = SleepRecorder()

    result = await _poller(history, sleep).poll_until_found("abc", 5)

    assert result is not None
    assert history.calls == 3
    assert sleep.delays == [2.0, 2.0]


@pytest.mark.asyncio
async def test_record_appears_on_later_attempt() -> None:
    history = FakeHistory([[], [], [_record("abc", age=timedelta(seconds=1))]])
    result = await _poller(history, SleepRecorder()).poll_until_found("abc")
    assert result is not None
    assert history.calls == 3


def test_freshness_window_boundary() -> None:
    poller = _poller(FakeHistory([]), SleepRecorder())
    assert poller.is_fresh(_record("abc", age=timedelta(minutes=4, seconds=59)))
    assert not poller.is_fresh(_record("abc", age=timedelta(minutes=5)))
