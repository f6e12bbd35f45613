"""Liveness, readiness, version and Prometheus routes.

These report on the checker process itself; the monitored target's status
lives under /api/status.
"""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from reachwatch.scheduler.job_scheduler import get_scheduler
from reachwatch.version import __version__, get_version_info

router = APIRouter()

SCHEDULER_DOWN = "Scheduler not running"


class HealthResponse(BaseModel):
    status: str
    scheduler_running: bool
    version: str
    message: str = "OK"


class VersionResponse(BaseModel):
    version: str
    python_version: str
    build_date: Optional[str] = None
    git_commit: Optional[str] = None


def _polling_active() -> bool:
    sched = get_scheduler()
    return bool(sched and sched.running)


@router.get("/health", response_model=HealthResponse)
async def health():
    if _polling_active():
        return HealthResponse(status="healthy", scheduler_running=True, version=__version__)
    return HealthResponse(
        status="degraded",
        scheduler_running=False,
        version=__version__,
        message=SCHEDULER_DOWN,
    )


@router.get("/ready")
async def ready():
    """Ready once polls are being scheduled."""
    if not _polling_active():
        return {"ready": False, "reason": SCHEDULER_DOWN}
    return {"ready": True}


@router.get("/live")
async def live():
    return {"alive": True}


@router.get("/version", response_model=VersionResponse)
async def version():
    return VersionResponse(**get_version_info())


@router.get("/metrics")
async def metrics():
    """Prometheus exposition of the reachwatch_* metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
