"""Service settings, read from environment variables or a .env file."""

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings

UTC = ZoneInfo("UTC")


class Settings(BaseSettings):
    """Environment-driven settings.

    Monitor fields are passed through as raw values; MonitorConfig does the
    real validation when the monitor is built.
    """

    # Monitor definition
    monitor_id: str = "default"
    check_type: str = "ping"
    target: str = "example.com"  # Must be configured via TARGET env var
    port: Optional[int] = None
    http_method: str = "GET"
    accept_any_status: bool = True
    timeout_seconds: float = 10
    attempts: Optional[int] = None           # Defaults to 3 for ping, 1 otherwise
    failure_threshold: int = 2               # Consecutive failed cycles before offline
    trigger_mode: str = "statusChange"
    latency_threshold: Optional[float] = None  # Defaults to 100ms for ping, 1000ms otherwise
    include_raw_output: bool = False

    # Scheduling
    poll_interval_seconds: int = 60
    continue_on_fail: bool = True  # Emit an error record instead of failing the job

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: int) -> int:
        if v < 1:
            raise ValueError("poll_interval_seconds must be at least 1")
        return v

    # Storage, web server and logging
    data_dir: Path = Path("/app/data")
    web_host: str = "0.0.0.0"
    web_port: int = 8080
    log_level: str = "INFO"
    log_format: str = "text"  # text | json

    # Timestamps in API responses use this zone; TZ is honoured as fallback
    display_timezone: str = os.getenv("TZ", "UTC")

    @property
    def state_file(self) -> Path:
        """JSON file holding per-monitor state between restarts."""
        return self.data_dir / "state.json"

    @property
    def tz(self) -> ZoneInfo:
        """Display zone, or UTC when the configured name is unknown."""
        try:
            return ZoneInfo(self.display_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return UTC

    def monitor_parameters(self) -> Dict[str, Any]:
        """Monitor definition using the parameter names MonitorConfig accepts."""
        return {
            "checkType": self.check_type,
            "target": self.target,
            "port": self.port,
            "httpMethod": self.http_method,
            "acceptAnyStatus": self.accept_any_status,
            "timeoutSeconds": self.timeout_seconds,
            "attempts": self.attempts,
            "failureThreshold": self.failure_threshold,
            "triggerMode": self.trigger_mode,
            "latencyThreshold": self.latency_threshold,
            "includeRawOutput": self.include_raw_output,
        }

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()


def to_local_iso(dt: Optional[datetime]) -> Optional[str]:
    """Render a timestamp in the display timezone; naive values count as UTC."""
    if dt is None:
        return None
    aware = dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)
    return aware.astimezone(settings.tz).isoformat()
