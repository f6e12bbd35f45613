"""Prometheus metrics for the reachability monitor."""

from prometheus_client import Counter, Gauge, Histogram, Info

from reachwatch.version import __version__

# Application info
app_info = Info("reachwatch", "Application information")
app_info.info({
    "version": __version__,
    "service": "reachwatch",
})

# Probe metrics
probes_total = Counter(
    "reachwatch_probes_total",
    "Total number of probe attempts",
    ["check_type", "result"],
)

probe_latency_seconds = Histogram(
    "reachwatch_probe_latency_seconds",
    "Latency of successful probe attempts in seconds",
    ["check_type"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

# Poll cycle metrics
poll_cycles_total = Counter(
    "reachwatch_poll_cycles_total",
    "Total number of poll cycles executed",
    ["check_type", "outcome"],
)

triggers_fired_total = Counter(
    "reachwatch_triggers_fired_total",
    "Total number of events emitted by the trigger evaluator",
    ["mode"],
)

# Target status
target_online_status = Gauge(
    "reachwatch_target_online",
    "Debounced target status (1=online, 0=offline)",
    ["target"],
)

target_consecutive_failures = Gauge(
    "reachwatch_consecutive_failures",
    "Consecutive failed poll cycles for the target",
    ["target"],
)
