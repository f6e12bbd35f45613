"""REST API routes."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from reachwatch.config import settings, to_local_iso
from reachwatch.errors import ConfigurationError, UnexpectedProbeError
from reachwatch.monitor.event_log import get_recent_events
from reachwatch.monitor.events import format_ms
from reachwatch.monitor.poller import run_checks
from reachwatch.monitor.runner import get_monitor
from reachwatch.monitor.triggers import status_label
from reachwatch.scheduler.job_scheduler import get_jobs_info, trigger_manual_poll

logger = logging.getLogger(__name__)

router = APIRouter()


class StatusResponse(BaseModel):
    monitor_id: str
    target: str
    check_type: str
    status: str
    consecutive_failures: int = 0
    failure_threshold: int
    reachable: Optional[bool] = None
    response_time: Optional[str] = None
    packet_loss_percent: Optional[float] = None
    last_check: Optional[str] = None
    last_error: Optional[str] = None


class ConfigResponse(BaseModel):
    monitor_id: str
    check_type: str
    target: str
    port: Optional[int] = None
    http_method: str
    accept_any_status: bool
    timeout_seconds: float
    attempts: int
    failure_threshold: int
    trigger_mode: str
    latency_threshold: Optional[float] = None
    poll_interval_seconds: int
    continue_on_fail: bool


class JobResponse(BaseModel):
    id: str
    name: str
    next_run: Optional[str] = None
    trigger: str


class TriggerResponse(BaseModel):
    message: str
    status: str = "queued"


class CheckRequest(BaseModel):
    """One-shot checks; each monitor uses the host parameter names."""

    monitors: List[Dict[str, Any]] = Field(..., min_length=1, max_length=20)
    continue_on_fail: bool = Field(False, alias="continueOnFail")
    include_details: bool = Field(True, alias="includeDetails")

    model_config = {"populate_by_name": True}


@router.get("/status", response_model=StatusResponse)
async def get_status():
    """Get the debounced status of the configured target."""
    monitor = get_monitor()
    state = monitor.current_state()
    outcome = monitor.last_outcome

    response = StatusResponse(
        monitor_id=monitor.key,
        target=monitor.config.display_target,
        check_type=monitor.config.check_type.value,
        status="unknown",
        failure_threshold=monitor.config.failure_threshold,
        last_check=to_local_iso(monitor.last_checked_at),
        last_error=monitor.last_error,
    )
    if state is not None:
        if state.previous_status is not None:
            response.status = status_label(state.previous_status)
        response.consecutive_failures = state.consecutive_failures
    if outcome is not None:
        response.reachable = outcome.aggregate.reachable
        response.response_time = format_ms(outcome.aggregate.avg_latency)
        response.packet_loss_percent = outcome.aggregate.packet_loss_pct
    return response


@router.get("/events")
async def list_events(limit: int = Query(20, ge=1, le=100)):
    """Get recently emitted events, newest first."""
    return get_recent_events(limit)


@router.get("/config", response_model=ConfigResponse)
async def get_config():
    """Get the active monitor configuration."""
    monitor = get_monitor()
    config = monitor.config
    return ConfigResponse(
        monitor_id=monitor.key,
        check_type=config.check_type.value,
        target=config.target,
        port=config.port,
        http_method=config.http_method.value,
        accept_any_status=config.accept_any_status,
        timeout_seconds=config.timeout_seconds,
        attempts=config.attempts,
        failure_threshold=config.failure_threshold,
        trigger_mode=config.trigger_mode.value,
        latency_threshold=config.latency_threshold,
        poll_interval_seconds=settings.poll_interval_seconds,
        continue_on_fail=monitor.continue_on_fail,
    )


@router.get("/jobs", response_model=List[JobResponse])
async def list_jobs():
    """Get scheduled jobs."""
    return get_jobs_info()


@router.post("/poll", response_model=TriggerResponse)
async def trigger_poll():
    """Run a poll cycle now instead of waiting for the next interval."""
    try:
        status, message = await trigger_manual_poll()
    except UnexpectedProbeError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return TriggerResponse(message=message, status=status)


@router.post("/check")
async def check_targets(request: CheckRequest):
    """Run one-shot checks without touching the monitor's state."""
    try:
        return await run_checks(
            request.monitors,
            continue_on_fail=request.continue_on_fail,
            include_details=request.include_details,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UnexpectedProbeError as e:
        logger.error("One-shot check failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
