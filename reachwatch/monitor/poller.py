"""Poll cycle pipeline: probe, aggregate, debounce, evaluate triggers."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from reachwatch.errors import ConfigurationError, UnexpectedProbeError
from reachwatch.metrics import (
    poll_cycles_total,
    target_consecutive_failures,
    target_online_status,
    triggers_fired_total,
)
from reachwatch.monitor import event_log
from reachwatch.monitor.aggregator import aggregate
from reachwatch.monitor.debounce import debounce
from reachwatch.monitor.events import build_check_record, build_error_record, build_event_record
from reachwatch.monitor.models import (
    TARGET_ALIASES,
    AggregateResult,
    MonitorConfig,
    TargetState,
    TriggerDecision,
)
from reachwatch.monitor.probes import ProbeStrategy, build_probe
from reachwatch.monitor.state_store import StateStore
from reachwatch.monitor.triggers import evaluate, status_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollOutcome:
    """Everything one poll cycle produced."""

    state: TargetState
    status: bool
    aggregate: AggregateResult
    decision: TriggerDecision
    event: Optional[Dict[str, Any]]


async def run_poll_cycle(
    config: MonitorConfig,
    state: Optional[TargetState],
    strategy: Optional[ProbeStrategy] = None,
) -> PollOutcome:
    """Run one poll cycle for a monitor.

    Pure with respect to state: the previous ``TargetState`` goes in and the
    new one comes out in the outcome. Saving it is the caller's job.

    Args:
        config: Monitor configuration.
        state: State from the previous cycle, None on the first poll.
        strategy: Probe strategy override, built from config by default.

    Returns:
        PollOutcome; ``event`` is None when the trigger did not fire.
    """
    strategy = strategy or build_probe(config)
    previous_status = state.previous_status if state is not None else None

    result = await aggregate(strategy, config.target, config.attempts, config.timeout_ms)
    new_state, status = debounce(state, result, config.failure_threshold)
    decision = evaluate(
        config.trigger_mode,
        previous_status,
        status,
        result.avg_latency,
        config.latency_threshold,
    )

    event = None
    if decision.should_fire:
        event = build_event_record(config, result, new_state, status, decision)

    return PollOutcome(
        state=new_state,
        status=status,
        aggregate=result,
        decision=decision,
        event=event,
    )


class Monitor:
    """One configured target plus the storage for its state.

    Cycles of one monitor are serialized by a lock held from state load to
    state save, whichever scheduler job starts them. Different monitors
    share nothing and may run in parallel.
    """

    def __init__(
        self,
        config: MonitorConfig,
        store: StateStore,
        key: Optional[str] = None,
        continue_on_fail: bool = False,
        strategy: Optional[ProbeStrategy] = None,
    ):
        self.config = config
        self.store = store
        self.key = key or f"{config.check_type.value}:{config.display_target}"
        self.continue_on_fail = continue_on_fail
        self.strategy = strategy or build_probe(config)
        self.last_outcome: Optional[PollOutcome] = None
        self.last_checked_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._lock = asyncio.Lock()

    def current_state(self) -> Optional[TargetState]:
        return self.store.load(self.key)

    async def poll(self) -> Optional[Dict[str, Any]]:
        """Run one cycle and persist the new state.

        Returns:
            The event record if the trigger fired, an error record if the
            checker broke and ``continue_on_fail`` is set, otherwise None.

        Raises:
            UnexpectedProbeError: the checker broke and ``continue_on_fail``
                is not set. State is left untouched.
        """
        async with self._lock:
            return await self._poll_locked()

    async def _poll_locked(self) -> Optional[Dict[str, Any]]:
        check_type = self.config.check_type.value
        target = self.config.display_target
        # Store I/O may touch disk, keep it off the event loop
        state = await asyncio.to_thread(self.store.load, self.key)

        try:
            outcome = await run_poll_cycle(self.config, state, self.strategy)
        except UnexpectedProbeError as e:
            poll_cycles_total.labels(check_type=check_type, outcome="error").inc()
            self.last_error = str(e)
            self.last_checked_at = datetime.now(timezone.utc)
            if not self.continue_on_fail:
                raise
            logger.error("Poll cycle for %s failed, emitting error record: %s", target, e)
            record = build_error_record(target, e, check_type=check_type)
            event_log.record_event(record)
            return record

        await asyncio.to_thread(self.store.save, self.key, outcome.state)
        self.last_outcome = outcome
        self.last_checked_at = datetime.now(timezone.utc)
        self.last_error = None

        poll_cycles_total.labels(check_type=check_type, outcome="completed").inc()
        target_online_status.labels(target=target).set(1 if outcome.status else 0)
        target_consecutive_failures.labels(target=target).set(outcome.state.consecutive_failures)

        previous = state.previous_status if state is not None else None
        self._log_transition(previous, outcome)

        if outcome.event is not None:
            triggers_fired_total.labels(mode=self.config.trigger_mode.value).inc()
            event_log.record_event(outcome.event)
            logger.info("Trigger fired for %s: %s", target, outcome.decision.reason)
        return outcome.event

    def _log_transition(self, previous: Optional[bool], outcome: PollOutcome) -> None:
        target = self.config.display_target
        failures = outcome.state.consecutive_failures
        threshold = self.config.failure_threshold

        if previous is True and not outcome.status:
            logger.warning("Host %s went OFFLINE (%d consecutive failures)", target, failures)
        elif previous is False and outcome.status:
            logger.info("Host %s came back ONLINE", target)
        elif not outcome.aggregate.reachable and outcome.status:
            logger.info(
                "Host %s check failed (%d/%d), waiting for confirmation",
                target,
                failures,
                threshold,
            )
        else:
            logger.debug(
                "Host %s is %s (failures: %d)",
                target,
                status_label(outcome.status),
                failures,
            )


async def run_check(
    config: MonitorConfig,
    include_details: bool = True,
    strategy: Optional[ProbeStrategy] = None,
) -> Dict[str, Any]:
    """One-shot check without debouncing or triggers."""
    strategy = strategy or build_probe(config)
    result = await aggregate(strategy, config.target, config.attempts, config.timeout_ms)
    return build_check_record(config, result, include_details=include_details)


async def run_checks(
    items: Iterable[Union[MonitorConfig, Mapping[str, Any]]],
    continue_on_fail: bool = False,
    include_details: bool = True,
) -> List[Dict[str, Any]]:
    """Run one-shot checks for a batch of monitor definitions, in order.

    With ``continue_on_fail`` a configuration error or a broken checker
    yields an error record for that item and the batch carries on;
    otherwise the error propagates.
    """
    records = []
    for item in items:
        try:
            config = item if isinstance(item, MonitorConfig) else MonitorConfig.from_parameters(item)
            records.append(await run_check(config, include_details=include_details))
        except (ConfigurationError, UnexpectedProbeError) as e:
            if not continue_on_fail:
                raise
            error_type = "configuration" if isinstance(e, ConfigurationError) else "unexpected"
            logger.warning("Check failed for %s: %s", _item_target(item), e)
            records.append(
                build_error_record(
                    _item_target(item),
                    e,
                    check_type=_item_check_type(item),
                    error_type=error_type,
                )
            )
    return records


def _item_target(item: Union[MonitorConfig, Mapping[str, Any]]) -> str:
    if isinstance(item, MonitorConfig):
        return item.display_target
    for key in ("target",) + TARGET_ALIASES:
        if item.get(key):
            return str(item[key])
    return ""


def _item_check_type(item: Union[MonitorConfig, Mapping[str, Any]]) -> Optional[str]:
    if isinstance(item, MonitorConfig):
        return item.check_type.value
    value = item.get("checkType")
    return str(value) if value else None
