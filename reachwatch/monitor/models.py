"""Data types shared by probes, aggregation, debouncing and triggers."""

import ipaddress
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from reachwatch.errors import ConfigurationError


class CheckType(str, Enum):
    """Probe strategy selected for a monitor."""

    PING = "ping"
    HTTP = "http"
    TCP = "tcp"
    DNS = "dns"


class TriggerMode(str, Enum):
    """Policy deciding which poll cycles produce an event."""

    STATUS_CHANGE = "statusChange"
    EVERY_POLL = "everyPoll"
    ONLY_OFFLINE = "onlyOffline"
    ONLY_ONLINE = "onlyOnline"
    HIGH_LATENCY = "highLatency"


class HttpMethod(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single probe attempt.

    ``metadata`` holds probe-specific string fields such as ``resolvedIp``,
    ``ipFamily``, ``statusCode`` or ``rawOutput``.
    """

    reachable: bool
    latency_ms: float
    error: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AggregateResult:
    """Statistics for all attempts of one poll cycle.

    Latency statistics only cover successful attempts and are ``None`` when
    no attempt succeeded.
    """

    success_count: int
    attempt_count: int
    min_latency: Optional[float]
    max_latency: Optional[float]
    avg_latency: Optional[float]
    packet_loss_pct: float
    last_result: ProbeResult

    @property
    def reachable(self) -> bool:
        return self.success_count > 0

    @property
    def failure_count(self) -> int:
        return self.attempt_count - self.success_count


@dataclass(frozen=True)
class TargetState:
    """Per-monitor state carried from one poll cycle to the next."""

    previous_status: Optional[bool] = None
    consecutive_failures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "previousStatus": self.previous_status,
            "consecutiveFailures": self.consecutive_failures,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TargetState":
        previous = data.get("previousStatus")
        return cls(
            previous_status=None if previous is None else bool(previous),
            consecutive_failures=max(int(data.get("consecutiveFailures") or 0), 0),
        )


@dataclass(frozen=True)
class TriggerDecision:
    should_fire: bool
    reason: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


# Parameter names a host may use instead of "target"
TARGET_ALIASES = ("url", "host", "domain")

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_FAILURE_THRESHOLD = 2
DEFAULT_ATTEMPTS = {CheckType.PING: 3}
DEFAULT_LATENCY_THRESHOLD = {CheckType.PING: 100.0}
FALLBACK_ATTEMPTS = 1
FALLBACK_LATENCY_THRESHOLD = 1000.0


def validate_host(value: str) -> str:
    """Validate a hostname or IP literal to prevent command injection.

    Validates against RFC 1123 hostname format and rejects shell metacharacters.
    """
    # RFC 1123 hostname pattern (allows digits at start)
    hostname_pattern = r'^[a-zA-Z0-9]([a-zA-Z0-9\-_]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-_]{0,61}[a-zA-Z0-9])?)*\.?$'

    if len(value) > 253:
        raise ValueError('hostname too long (max 253 chars)')

    dangerous_chars = set(';&|`$(){}[]<>\\\'\"!#*?~ ')
    if any(c in value for c in dangerous_chars):
        raise ValueError('hostname contains invalid characters')

    try:
        ipaddress.ip_address(value)
        return value
    except ValueError:
        pass

    if not re.match(hostname_pattern, value):
        raise ValueError('invalid hostname format')
    return value


def validate_url(value: str) -> str:
    """Check an http(s) URL parses the way the HTTP probe will parse it."""
    if not re.match(r"^https?://\S+$", value, re.IGNORECASE):
        raise ValueError("url must start with http:// or https://")
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise ValueError(f"invalid url: {e}") from None
    if not url.host:
        raise ValueError("url must include a host")
    return value


class MonitorConfig(BaseModel):
    """Validated definition of one monitored endpoint.

    Field aliases match the parameter names a host engine passes in
    (``checkType``, ``timeoutSeconds`` and so on).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    check_type: CheckType = Field(alias="checkType")
    target: str
    port: Optional[int] = None
    http_method: HttpMethod = Field(HttpMethod.GET, alias="httpMethod")
    accept_any_status: bool = Field(True, alias="acceptAnyStatus")
    timeout_seconds: float = Field(DEFAULT_TIMEOUT_SECONDS, alias="timeoutSeconds")
    attempts: Optional[int] = None
    failure_threshold: int = Field(DEFAULT_FAILURE_THRESHOLD, alias="failureThreshold")
    trigger_mode: TriggerMode = Field(TriggerMode.STATUS_CHANGE, alias="triggerMode")
    latency_threshold: Optional[float] = Field(None, alias="latencyThreshold")
    include_raw_output: bool = Field(False, alias="includeRawOutput")

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("target cannot be empty")
        return v

    @field_validator("check_type", mode="before")
    @classmethod
    def normalise_check_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("http_method", mode="before")
    @classmethod
    def normalise_method(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeoutSeconds must be greater than 0")
        return v

    @field_validator("attempts")
    @classmethod
    def validate_attempts(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("attempts must be at least 1")
        return v

    @field_validator("failure_threshold")
    @classmethod
    def validate_failure_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("failureThreshold must be at least 1")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def apply_check_type_rules(self) -> "MonitorConfig":
        if self.check_type is CheckType.HTTP:
            validate_url(self.target)
        else:
            validate_host(self.target)

        if self.check_type is CheckType.TCP and self.port is None:
            raise ValueError("port is required for tcp checks")

        if self.attempts is None:
            self.attempts = DEFAULT_ATTEMPTS.get(self.check_type, FALLBACK_ATTEMPTS)
        if self.latency_threshold is None:
            self.latency_threshold = DEFAULT_LATENCY_THRESHOLD.get(
                self.check_type, FALLBACK_LATENCY_THRESHOLD
            )
        return self

    @property
    def timeout_ms(self) -> int:
        return max(int(round(self.timeout_seconds * 1000)), 1)

    @property
    def display_target(self) -> str:
        if self.check_type is CheckType.TCP:
            return f"{self.target}:{self.port}"
        return self.target

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> "MonitorConfig":
        """Build a config from host parameters, raising ConfigurationError.

        ``None`` values count as "not set" so documented defaults apply.
        The target may be given as ``target`` or as the strategy-specific
        ``url``, ``host`` or ``domain`` parameter.
        """
        data = {key: value for key, value in parameters.items() if value is not None}

        if not data.get("target"):
            for alias in TARGET_ALIASES:
                if data.get(alias):
                    data["target"] = data[alias]
                    break
            else:
                raise ConfigurationError("target is required")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(_describe_validation_error(e)) from e


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems)
