"""Tests for attempt aggregation."""

import pytest

from reachwatch.errors import ConfigurationError, UnexpectedProbeError
from reachwatch.monitor.aggregator import aggregate, summarize

from conftest import ScriptedProbe, down, up


class TestAggregate:
    """Tests for running multiple attempts per cycle."""

    @pytest.mark.asyncio
    async def test_all_attempts_succeed(self):
        probe = ScriptedProbe([up(10.0), up(20.0), up(30.0)])

        result = await aggregate(probe, "example.com", 3, 1000)

        assert result.success_count == 3
        assert result.attempt_count == 3
        assert result.min_latency == 10.0
        assert result.max_latency == 30.0
        assert result.avg_latency == 20.0
        assert result.packet_loss_pct == 0.0
        assert result.reachable is True

    @pytest.mark.asyncio
    async def test_latency_stats_ignore_failed_attempts(self):
        probe = ScriptedProbe([up(10.0), down(latency_ms=1000.0), up(30.0)])

        result = await aggregate(probe, "example.com", 3, 1000)

        assert result.success_count == 2
        assert result.min_latency == 10.0
        assert result.max_latency == 30.0
        assert result.avg_latency == 20.0
        assert result.packet_loss_pct == pytest.approx(100 / 3)

    @pytest.mark.asyncio
    async def test_all_attempts_fail(self):
        probe = ScriptedProbe([down(), down("Connection refused")])

        result = await aggregate(probe, "example.com", 2, 1000)

        assert result.reachable is False
        assert result.success_count == 0
        assert result.min_latency is None
        assert result.max_latency is None
        assert result.avg_latency is None
        assert result.packet_loss_pct == 100.0
        assert result.last_result.error == "Connection refused"

    @pytest.mark.asyncio
    async def test_runs_exactly_n_attempts_with_timeout(self):
        probe = ScriptedProbe([up(), up(), up(), up()])

        await aggregate(probe, "example.com", 4, 1500)

        assert probe.calls == [("example.com", 1.5)] * 4

    @pytest.mark.asyncio
    async def test_last_result_is_final_attempt(self):
        probe = ScriptedProbe([down(), up(12.0, resolvedIp="10.0.0.1")])

        result = await aggregate(probe, "example.com", 2, 1000)

        assert result.last_result.reachable is True
        assert result.last_result.metadata["resolvedIp"] == "10.0.0.1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("attempts", [0, -1])
    async def test_invalid_attempts_rejected(self, attempts):
        probe = ScriptedProbe([])
        with pytest.raises(ConfigurationError):
            await aggregate(probe, "example.com", attempts, 1000)
        assert probe.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_failure_aborts_cycle(self):
        probe = ScriptedProbe([up(), RuntimeError("boom"), up()])

        with pytest.raises(UnexpectedProbeError):
            await aggregate(probe, "example.com", 3, 1000)

        assert len(probe.calls) == 2


class TestSummarize:
    def test_empty_results_rejected(self):
        with pytest.raises(ValueError):
            summarize([])

    def test_single_result(self):
        result = summarize([up(42.0)])
        assert result.min_latency == result.max_latency == result.avg_latency == 42.0
        assert result.packet_loss_pct == 0.0
