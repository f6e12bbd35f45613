"""APScheduler wiring for the poll cycle.

Three job ids are used: ``poll_cycle`` (the interval job), ``initial_poll``
(one run at startup to establish the baseline) and ``manual_poll`` (queued
from the API). All of them run the same coroutine. ``max_instances=1`` only
limits each job id on its own; overlap between the three is prevented by the
lock inside ``Monitor.poll``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from reachwatch.config import settings

logger = logging.getLogger(__name__)

POLL_JOB_ID = "poll_cycle"
INITIAL_POLL_JOB_ID = "initial_poll"
MANUAL_POLL_JOB_ID = "manual_poll"

scheduler: Optional[AsyncIOScheduler] = None


def _job_listener(event: JobExecutionEvent) -> None:
    if event.exception is None:
        logger.debug("Poll job %s finished", event.job_id)
        return
    # An UnexpectedProbeError ends up here when continue_on_fail is off
    logger.error("Poll job %s failed: %s", event.job_id, event.exception)


def create_scheduler() -> AsyncIOScheduler:
    """Build an unstarted scheduler; missed cycles collapse into one run."""
    return AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": settings.poll_interval_seconds,
        },
    )


def _queue_single_run(sched: AsyncIOScheduler, job_id: str, name: str) -> None:
    from reachwatch.monitor.runner import run_monitor_cycle

    sched.add_job(run_monitor_cycle, "date", id=job_id, name=name, replace_existing=True)


def start_scheduler() -> None:
    """Create the scheduler, register the poll jobs and start it."""
    global scheduler

    # Deferred: the runner imports config-dependent modules
    from reachwatch.monitor.runner import run_monitor_cycle

    interval = settings.poll_interval_seconds
    sched = create_scheduler()
    sched.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    sched.add_job(
        run_monitor_cycle,
        IntervalTrigger(seconds=interval),
        id=POLL_JOB_ID,
        name="Reachability Poll",
        replace_existing=True,
    )
    _queue_single_run(sched, INITIAL_POLL_JOB_ID, "Initial Poll on Startup")
    sched.start()
    scheduler = sched

    logger.info("Polling every %d seconds (%d jobs registered)", interval, len(sched.get_jobs()))


def shutdown_scheduler() -> None:
    if scheduler is None or not scheduler.running:
        return
    # Don't block shutdown on an in-flight probe
    scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")


def get_scheduler() -> Optional[AsyncIOScheduler]:
    return scheduler


def get_jobs_info() -> List[Dict[str, Any]]:
    """Describe registered jobs for the /api/jobs endpoint."""
    if scheduler is None:
        return []
    return [
        {
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]


async def trigger_manual_poll() -> Tuple[str, str]:
    """Queue a poll on the scheduler, or run it inline when there is none.

    Returns:
        Tuple of (status, message); status is "queued" or "completed".

    Raises:
        UnexpectedProbeError: Only when running inline and the monitor is
            not configured to continue on failure.
    """
    if scheduler is not None:
        _queue_single_run(scheduler, MANUAL_POLL_JOB_ID, "Manual Poll")
        return "queued", "Manual poll triggered"

    from reachwatch.monitor.runner import run_monitor_cycle

    await run_monitor_cycle()
    return "completed", "Manual poll completed"
