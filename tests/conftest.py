"""Shared pytest fixtures."""

import os
import tempfile
from typing import List, Union

import pytest

# Set test environment before importing app modules
os.environ.setdefault("CHECK_TYPE", "ping")
os.environ.setdefault("TARGET", "test.example.com")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="reachwatch-test-"))

from reachwatch.monitor.models import CheckType, MonitorConfig, ProbeResult  # noqa: E402
from reachwatch.monitor.probes import ProbeStrategy  # noqa: E402


class ScriptedProbe(ProbeStrategy):
    """Probe returning pre-programmed results (or raising pre-programmed errors)."""

    check_type = CheckType.PING

    def __init__(self, outcomes: List[Union[ProbeResult, Exception]]):
        self.outcomes = list(outcomes)
        self.calls: List[tuple] = []

    async def _probe(self, target: str, timeout: float) -> ProbeResult:
        self.calls.append((target, timeout))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def up(latency_ms: float = 10.0, **metadata) -> ProbeResult:
    return ProbeResult(reachable=True, latency_ms=latency_ms, metadata=metadata)


def down(error: str = "Connection timeout", latency_ms: float = 1000.0) -> ProbeResult:
    return ProbeResult(reachable=False, latency_ms=latency_ms, error=error)


@pytest.fixture
def make_probe():
    """Factory for scripted probes."""
    return ScriptedProbe


@pytest.fixture
def ping_config():
    """Single-attempt ping monitor with the default threshold of 2."""
    return MonitorConfig.from_parameters({
        "checkType": "ping",
        "host": "test.example.com",
        "attempts": 1,
        "timeoutSeconds": 1,
    })


@pytest.fixture(autouse=True)
def clear_event_log():
    from reachwatch.monitor import event_log

    event_log.clear_events()
    yield
    event_log.clear_events()
