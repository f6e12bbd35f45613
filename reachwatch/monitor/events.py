"""Event records handed to downstream consumers.

Field names are part of the output contract and must stay stable.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from reachwatch.monitor.models import (
    AggregateResult,
    CheckType,
    MonitorConfig,
    TargetState,
    TriggerDecision,
)
from reachwatch.monitor.triggers import status_label

NOT_APPLICABLE = "N/A"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def format_ms(value: Optional[float]) -> str:
    """Format a latency for display, "N/A" when there is none."""
    if value is None:
        return NOT_APPLICABLE
    return f"{value:.2f} ms"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def _round_ms(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 3)


def build_details(
    config: MonitorConfig,
    aggregate: AggregateResult,
    state: Optional[TargetState] = None,
) -> Dict[str, Any]:
    """Per-attempt statistics and probe metadata for an event's details."""
    last = aggregate.last_result
    details: Dict[str, Any] = {
        "resolvedIp": last.metadata.get("resolvedIp"),
        "attempts": aggregate.attempt_count,
        "successful": aggregate.success_count,
        "failed": aggregate.failure_count,
        "averageTime": format_ms(aggregate.avg_latency),
        "minTime": format_ms(aggregate.min_latency),
        "maxTime": format_ms(aggregate.max_latency),
        "error": last.error,
    }
    if "statusCode" in last.metadata:
        details["statusCode"] = int(last.metadata["statusCode"])
    if "ipFamily" in last.metadata:
        details["ipFamily"] = last.metadata["ipFamily"]
    if config.port is not None:
        details["port"] = config.port
    if config.check_type is CheckType.HTTP:
        details["httpMethod"] = config.http_method.value
    if state is not None:
        details["consecutiveFailures"] = state.consecutive_failures
        details["failureThreshold"] = config.failure_threshold
    if config.include_raw_output and "rawOutput" in last.metadata:
        details["rawOutput"] = last.metadata["rawOutput"]
    return details


def build_event_record(
    config: MonitorConfig,
    aggregate: AggregateResult,
    state: TargetState,
    status: bool,
    decision: TriggerDecision,
) -> Dict[str, Any]:
    """Record emitted when a poll cycle's trigger fires."""
    record: Dict[str, Any] = {
        "target": config.display_target,
        "checkType": config.check_type.value,
        "reachable": aggregate.reachable,
        "status": status_label(status),
        "responseTime": format_ms(aggregate.avg_latency),
        "responseTimeMs": _round_ms(aggregate.avg_latency),
        "packetLoss": format_percent(aggregate.packet_loss_pct),
        "packetLossPercent": aggregate.packet_loss_pct,
        "timestamp": utc_timestamp(),
        "triggerReason": decision.reason,
        "triggerMode": config.trigger_mode.value,
        "details": build_details(config, aggregate, state),
    }
    record.update(decision.extra)
    return record


def build_check_record(
    config: MonitorConfig,
    aggregate: AggregateResult,
    include_details: bool = True,
) -> Dict[str, Any]:
    """Record for a one-shot check.

    ``reachable`` reflects the last attempt, the way a single manual check
    reads; the statistics still cover every attempt.
    """
    last = aggregate.last_result
    record: Dict[str, Any] = {
        "target": config.display_target,
        "checkType": config.check_type.value,
        "reachable": last.reachable,
        "status": "reachable" if last.reachable else "unreachable",
        "responseTime": format_ms(last.latency_ms if last.reachable else None),
        "responseTimeMs": _round_ms(last.latency_ms) if last.reachable else None,
        "packetLoss": format_percent(aggregate.packet_loss_pct),
        "packetLossPercent": aggregate.packet_loss_pct,
        "timestamp": utc_timestamp(),
    }
    if include_details:
        record["details"] = build_details(config, aggregate)
    return record


def build_error_record(
    target: str,
    error: BaseException,
    check_type: Optional[str] = None,
    error_type: str = "unexpected",
) -> Dict[str, Any]:
    """Best-effort record for a cycle that could not be evaluated.

    ``status`` is "error" rather than "offline" so consumers can tell a
    broken checker from an unreachable target.
    """
    return {
        "target": target,
        "checkType": check_type,
        "reachable": False,
        "status": "error",
        "error": str(error),
        "errorType": error_type,
        "timestamp": utc_timestamp(),
    }
