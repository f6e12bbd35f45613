"""Consecutive-failure debouncing of target status."""

from typing import Optional, Tuple

from reachwatch.errors import ConfigurationError
from reachwatch.monitor.models import AggregateResult, TargetState


def debounce(
    state: Optional[TargetState],
    aggregate: AggregateResult,
    failure_threshold: int,
) -> Tuple[TargetState, bool]:
    """Turn this cycle's reachability into a debounced online/offline status.

    Going offline takes ``failure_threshold`` failed cycles in a row; a
    single reachable cycle resets the streak and brings the target straight
    back online. Failed cycles below the threshold keep reporting online.

    Args:
        state: State from the previous cycle, or None on the first poll.
        aggregate: This cycle's aggregate result.
        failure_threshold: Consecutive failed cycles before reporting offline.

    Returns:
        Tuple of (new state, debounced status). The new state records the
        status as the next cycle's previous status.
    """
    if failure_threshold is None or failure_threshold < 1:
        raise ConfigurationError(
            f"failureThreshold must be at least 1 (got {failure_threshold})"
        )

    state = state or TargetState()

    if aggregate.reachable:
        consecutive_failures = 0
    else:
        consecutive_failures = state.consecutive_failures + 1

    # A reachable cycle always has zero failures, so this is also online
    status = consecutive_failures < failure_threshold

    return TargetState(previous_status=status, consecutive_failures=consecutive_failures), status
