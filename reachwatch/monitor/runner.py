"""Scheduled poll cycle for the monitor configured through settings."""

import json
import logging
from typing import Any, Dict, Optional

from reachwatch.config import settings
from reachwatch.monitor.models import MonitorConfig
from reachwatch.monitor.poller import Monitor
from reachwatch.monitor.state_store import FileStateStore

logger = logging.getLogger(__name__)

# Global monitor instance, built on first use
_monitor: Optional[Monitor] = None


def get_monitor() -> Monitor:
    """Get the configured monitor, building it on first use.

    Raises:
        ConfigurationError: The configured monitor parameters are invalid.
    """
    global _monitor

    if _monitor is None:
        config = MonitorConfig.from_parameters(settings.monitor_parameters())
        _monitor = Monitor(
            config,
            FileStateStore(settings.state_file),
            key=settings.monitor_id,
            continue_on_fail=settings.continue_on_fail,
        )
        logger.info(
            "Monitor %s: %s check of %s (mode %s, %d attempts, threshold %d)",
            settings.monitor_id,
            config.check_type.value,
            config.display_target,
            config.trigger_mode.value,
            config.attempts,
            config.failure_threshold,
        )
    return _monitor


def reset_monitor() -> None:
    """Drop the cached monitor so the next call rebuilds it from settings."""
    global _monitor
    _monitor = None


async def run_monitor_cycle() -> Optional[Dict[str, Any]]:
    """Run one poll cycle for the configured monitor.

    Fired events are written to the log as JSON so downstream tooling can
    pick them up.

    Returns:
        The emitted record, or None if nothing fired.
    """
    monitor = get_monitor()
    event = await monitor.poll()

    if event is not None:
        logger.info("Event: %s", json.dumps(event, sort_keys=True, default=str))
    return event
