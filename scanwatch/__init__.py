"""Public package surface for scanwatch."""

from __future__ import annotations

from .config import NotifierConfig
from .connection import ConnectionManager, PushChannel, PushConnection, WebSocketChannel
from .errors import AnalysisTimeoutError, DuplicateRegistrationError, HistoryQueryError, ScanwatchError
from .history import AnalysisHistoryClient, HistorySource
from .models import (
    AnalysisRecord,
    ConnectionState,
    Delivered,
    DispatchResult,
    Notification,
    Unclaimed,
    parse_notification,
)
from .notifier import AnalysisNotifier
from .polling import PollingFallback
from .router import NotificationHandler, NotificationRouter
from .waiter import DEFAULT_WAIT_TIMEOUT_S, CompletionWaiter

__all__ = [
    "__version__",
    "AnalysisHistoryClient",
    "AnalysisNotifier",
    "AnalysisRecord",
    "AnalysisTimeoutError",
    "CompletionWaiter",
    "ConnectionManager",
    "ConnectionState",
    "DEFAULT_WAIT_TIMEOUT_S",
    "Delivered",
    "DispatchResult",
    "DuplicateRegistrationError",
    "HistoryQueryError",
    "HistorySource",
    "Notification",
    "NotificationHandler",
    "NotificationRouter",
    "NotifierConfig",
    "PollingFallback",
    "PushChannel",
    "PushConnection",
    "ScanwatchError",
    "Unclaimed",
    "WebSocketChannel",
    "parse_notification",
]

__version__ = "0.1.0"
