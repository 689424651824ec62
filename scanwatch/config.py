"""Configuration for the analysis notifier."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, model_validator

DEFAULT_WS_URL = "ws://localhost:8080/ws"
DEFAULT_API_BASE_URL = "http://localhost:8080/api"


class NotifierConfig(BaseModel):
    """Connection, backoff and polling settings."""

    ws_url: str = DEFAULT_WS_URL
    api_base_url: str = DEFAULT_API_BASE_URL

    # Reconnect delay is min(base * 2**attempt, max) seconds.
    max_reconnect_attempts: int = Field(default=5, ge=0)
    reconnect_base_delay_s: float = Field(default=1.0, gt=0)
    reconnect_max_delay_s: float = Field(default=30.0, gt=0)

    poll_interval_s: float = Field(default=2.0, ge=0)
    poll_max_attempts: int = Field(default=30, ge=1)
    freshness_window_s: float = Field(default=300.0, gt=0)

    default_wait_timeout_s: float = Field(default=60.0, gt=0)
    http_timeout_s: float | None = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _check_delays(self) -> NotifierConfig:
        if self.reconnect_max_delay_s < self.reconnect_base_delay_s:
            raise ValueError("reconnect_max_delay_s must be >= reconnect_base_delay_s")
        return self

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, **overrides: object) -> NotifierConfig:
        source = os.environ if env is None else env
        values: dict[str, object] = {}
        if ws_url := source.get("SCANWATCH_WS_URL"):
            values["ws_url"] = ws_url
        if api_base_url := source.get("SCANWATCH_API_BASE_URL"):
            values["api_base_url"] = api_base_url
        values.update(overrides)
        return cls.model_validate(values)


__all__ = ["DEFAULT_API_BASE_URL", "DEFAULT_WS_URL", "NotifierConfig"]
