"""Typed records exchanged by the notifier components."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("scanwatch.models")

ANALYSIS_COMPLETE = "analysis_complete"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Notification(BaseModel):
    """Completion event received from the push channel."""

    type: Literal["analysis_complete"] = ANALYSIS_COMPLETE
    task_id: str = Field(alias="project_id", min_length=1)
    scan_type: str
    issues_found: int
    timestamp: int

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class AnalysisRecord(BaseModel):
    """One row returned by the scan history endpoint."""

    id: str
    project_id: str
    project_name: str | None = None
    scan_type: str | None = None
    scan_result: Any | None = None
    issues_found: int = 0
    created_at: datetime

    model_config = ConfigDict(extra="allow")

    def age_s(self, now: float) -> float:
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        return now - created.timestamp()


@dataclass(frozen=True, slots=True)
class Delivered:
    """A one-shot callback claimed the notification."""

    notification: Notification


@dataclass(frozen=True, slots=True)
class Unclaimed:
    """No caller was waiting on the notification's task."""

    notification: Notification


DispatchResult = Delivered | Unclaimed


def parse_notification(raw: str | bytes | Any) -> Notification | None:
    """Decode a push payload, returning ``None`` for anything unusable."""

    if isinstance(raw, (str, bytes, bytearray)):
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            logger.warning("notification_unparsable", extra={"error": str(exc)})
            return None
    else:
        data = raw
    if not isinstance(data, dict):
        logger.warning("notification_not_an_object", extra={"payload_type": type(data).__name__})
        return None
    event_type = data.get("type")
    if event_type != ANALYSIS_COMPLETE:
        logger.info("notification_type_ignored", extra={"event_type": event_type})
        return None
    try:
        return Notification.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            "notification_invalid",
            extra={"errors": exc.error_count(), "task_id": data.get("project_id")},
        )
        return None


__all__ = [
    "ANALYSIS_COMPLETE",
    "AnalysisRecord",
    "ConnectionState",
    "Delivered",
    "DispatchResult",
    "Notification",
    "Unclaimed",
    "parse_notification",
]
