"""Decide whether a poll cycle emits an event."""

from typing import Optional, Union

from reachwatch.errors import ConfigurationError
from reachwatch.monitor.models import TriggerDecision, TriggerMode


def status_label(status: bool) -> str:
    return "online" if status else "offline"


def _plain_number(value: float) -> str:
    """Render a threshold as written: 100.0 -> "100", 1234567.0 -> "1234567"."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def evaluate(
    mode: Union[TriggerMode, str],
    previous_status: Optional[bool],
    current_status: bool,
    latency_ms: Optional[float],
    latency_threshold: Optional[float] = None,
) -> TriggerDecision:
    """Evaluate the trigger mode for one cycle.

    Args:
        mode: Trigger mode.
        previous_status: Debounced status of the previous cycle, None on the
            first poll.
        current_status: Debounced status of this cycle.
        latency_ms: Average latency of this cycle, None if nothing succeeded.
        latency_threshold: Threshold in milliseconds for ``highLatency``.

    Returns:
        TriggerDecision. When ``should_fire`` is False the cycle produces no
        event at all.
    """
    try:
        mode = TriggerMode(mode)
    except ValueError:
        raise ConfigurationError(f"unknown triggerMode: {mode}") from None

    if mode is TriggerMode.STATUS_CHANGE:
        if previous_status is None:
            return TriggerDecision(True, "Initial status check")
        if previous_status != current_status:
            return TriggerDecision(
                True,
                "Host came online" if current_status else "Host went offline",
                {
                    "previousStatus": status_label(previous_status),
                    "newStatus": status_label(current_status),
                },
            )
        return TriggerDecision(False)

    if mode is TriggerMode.EVERY_POLL:
        return TriggerDecision(True, "Scheduled poll")

    if mode is TriggerMode.ONLY_OFFLINE:
        if not current_status:
            return TriggerDecision(True, "Host is offline")
        return TriggerDecision(False)

    if mode is TriggerMode.ONLY_ONLINE:
        if current_status:
            return TriggerDecision(True, "Host is online")
        return TriggerDecision(False)

    # highLatency
    if latency_threshold is None:
        raise ConfigurationError("latencyThreshold is required for highLatency mode")
    # Latency is meaningless for an unreachable target
    if current_status and latency_ms is not None and latency_ms > latency_threshold:
        return TriggerDecision(
            True,
            f"High latency detected ({latency_ms:.2f}ms > {_plain_number(latency_threshold)}ms threshold)",
            {"latencyThreshold": latency_threshold},
        )
    return TriggerDecision(False)
