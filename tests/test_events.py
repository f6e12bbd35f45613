"""Tests for event record construction."""

import re

from reachwatch.monitor.aggregator import summarize
from reachwatch.monitor.events import (
    build_check_record,
    build_details,
    build_error_record,
    build_event_record,
    format_ms,
    format_percent,
)
from reachwatch.monitor.models import MonitorConfig, ProbeResult, TargetState, TriggerDecision

from conftest import down, up


def _config(**overrides):
    params = {"checkType": "ping", "host": "example.com"}
    params.update(overrides)
    return MonitorConfig.from_parameters(params)


def test_format_helpers():
    assert format_ms(None) == "N/A"
    assert format_ms(12.345) == "12.35 ms"
    assert format_percent(100 / 3) == "33.3%"


class TestEventRecord:
    """Tests for build_event_record."""

    def test_offline_event_fields(self):
        config = _config()
        aggregate = summarize([down(), down(), down()])
        state = TargetState(previous_status=False, consecutive_failures=2)
        decision = TriggerDecision(
            True,
            "Host went offline",
            {"previousStatus": "online", "newStatus": "offline"},
        )

        record = build_event_record(config, aggregate, state, False, decision)

        assert record["target"] == "example.com"
        assert record["checkType"] == "ping"
        assert record["reachable"] is False
        assert record["status"] == "offline"
        assert record["responseTime"] == "N/A"
        assert record["responseTimeMs"] is None
        assert record["packetLoss"] == "100.0%"
        assert record["packetLossPercent"] == 100.0
        assert record["triggerReason"] == "Host went offline"
        assert record["triggerMode"] == "statusChange"
        assert record["previousStatus"] == "online"
        assert record["newStatus"] == "offline"
        assert re.match(r"^\d{4}-\d{2}-\d{2}T.*Z$", record["timestamp"])

        details = record["details"]
        assert details["attempts"] == 3
        assert details["successful"] == 0
        assert details["failed"] == 3
        assert details["averageTime"] == "N/A"
        assert details["error"] == "Connection timeout"
        assert details["consecutiveFailures"] == 2
        assert details["failureThreshold"] == 2

    def test_online_event_latency(self):
        config = _config()
        aggregate = summarize([up(10.0), up(20.0)])
        record = build_event_record(
            config, aggregate, TargetState(True, 0), True, TriggerDecision(True, "Scheduled poll")
        )

        assert record["status"] == "online"
        assert record["responseTime"] == "15.00 ms"
        assert record["responseTimeMs"] == 15.0
        assert record["details"]["minTime"] == "10.00 ms"
        assert record["details"]["maxTime"] == "20.00 ms"
        assert "previousStatus" not in record


class TestDetails:
    def test_http_details(self):
        config = _config(checkType="http", url="https://example.com", host=None, httpMethod="HEAD")
        result = ProbeResult(reachable=True, latency_ms=5.0, metadata={"statusCode": "204"})

        details = build_details(config, summarize([result]))

        assert details["statusCode"] == 204
        assert details["httpMethod"] == "HEAD"
        assert "consecutiveFailures" not in details

    def test_tcp_details_include_port(self):
        config = _config(checkType="tcp", port=443)
        details = build_details(config, summarize([up()]))

        assert details["port"] == 443
        assert "httpMethod" not in details

    def test_dns_details(self):
        config = _config(checkType="dns")
        details = build_details(
            config, summarize([up(3.0, resolvedIp="2001:db8::1", ipFamily="IPv6")])
        )

        assert details["resolvedIp"] == "2001:db8::1"
        assert details["ipFamily"] == "IPv6"

    def test_raw_output_only_when_requested(self):
        aggregate = summarize([up(rawOutput="64 bytes from ...")])

        assert "rawOutput" not in build_details(_config(), aggregate)
        assert build_details(_config(includeRawOutput=True), aggregate)["rawOutput"] == "64 bytes from ..."


class TestCheckRecord:
    def test_reachable_reflects_last_attempt(self):
        aggregate = summarize([up(10.0), down()])

        record = build_check_record(_config(), aggregate)

        assert record["reachable"] is False
        assert record["status"] == "unreachable"
        assert record["responseTime"] == "N/A"
        assert record["packetLoss"] == "50.0%"
        assert record["details"]["successful"] == 1

    def test_details_optional(self):
        record = build_check_record(_config(), summarize([up(8.0)]), include_details=False)

        assert record["status"] == "reachable"
        assert record["responseTimeMs"] == 8.0
        assert "details" not in record


def test_error_record():
    record = build_error_record("example.com", RuntimeError("boom"), check_type="ping")

    assert record["status"] == "error"
    assert record["reachable"] is False
    assert record["error"] == "boom"
    assert record["errorType"] == "unexpected"
    assert record["checkType"] == "ping"
