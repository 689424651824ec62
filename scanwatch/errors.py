from __future__ import annotations

from typing import Any


class ScanwatchError(Exception):
    def __init__(self, message: str, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class AnalysisTimeoutError(ScanwatchError, TimeoutError):
    def __init__(self, task_id: str, timeout_s: float) -> None:
        super().__init__(
            f"Analysis '{task_id}' did not complete within {timeout_s:g}s.",
            extra={"task_id": task_id, "timeout_s": timeout_s},
        )
        self.task_id = task_id
        self.timeout_s = timeout_s


class DuplicateRegistrationError(ScanwatchError):
    def __init__(self, task_id: str) -> None:
        super().__init__(
            f"A completion callback is already registered for '{task_id}'.",
            extra={"task_id": task_id},
        )
        self.task_id = task_id


class HistoryQueryError(ScanwatchError):
    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        super().__init__(
            f"History query failed: {detail}",
            extra={"status_code": status_code} if status_code is not None else None,
        )
        self.detail = detail
        self.status_code = status_code


__all__ = [
    "AnalysisTimeoutError",
    "DuplicateRegistrationError",
    "HistoryQueryError",
    "ScanwatchError",
]
