"""Repeat a probe within one poll cycle and reduce the attempts to statistics."""

import logging
from typing import List, Sequence

from reachwatch.errors import ConfigurationError
from reachwatch.monitor.models import AggregateResult, ProbeResult
from reachwatch.monitor.probes import ProbeStrategy

logger = logging.getLogger(__name__)


async def aggregate(
    strategy: ProbeStrategy,
    target: str,
    attempts: int,
    timeout_ms: int,
) -> AggregateResult:
    """Run ``attempts`` probes one after another and summarise them.

    Attempts never overlap so they do not skew each other's latency. The
    timeout bounds each attempt, not the whole cycle. If the caller is
    cancelled part way through, the partial results are simply dropped.

    Args:
        strategy: Probe strategy to run.
        target: URL, host or domain, depending on the strategy.
        attempts: Number of probes per cycle (at least 1).
        timeout_ms: Per-attempt timeout in milliseconds.

    Returns:
        AggregateResult for the cycle.
    """
    if attempts is None or attempts < 1:
        raise ConfigurationError(f"attempts must be at least 1 (got {attempts})")

    results: List[ProbeResult] = []
    for attempt in range(1, attempts + 1):
        result = await strategy.probe(target, timeout_ms)
        results.append(result)
        if not result.reachable:
            logger.debug("Attempt %d/%d for %s failed: %s", attempt, attempts, target, result.error)

    return summarize(results)


def summarize(results: Sequence[ProbeResult]) -> AggregateResult:
    """Reduce probe results to success count, latency stats and packet loss."""
    if not results:
        raise ValueError("cannot summarize an empty list of probe results")

    latencies = [r.latency_ms for r in results if r.reachable]
    attempt_count = len(results)
    success_count = len(latencies)

    if latencies:
        min_latency = min(latencies)
        max_latency = max(latencies)
        avg_latency = sum(latencies) / success_count
    else:
        min_latency = max_latency = avg_latency = None

    return AggregateResult(
        success_count=success_count,
        attempt_count=attempt_count,
        min_latency=min_latency,
        max_latency=max_latency,
        avg_latency=avg_latency,
        packet_loss_pct=(attempt_count - success_count) / attempt_count * 100.0,
        last_result=results[-1],
    )
