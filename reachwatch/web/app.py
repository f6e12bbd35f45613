"""FastAPI app hosting the monitor API; the scheduler lives for the app lifetime."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from reachwatch.errors import ConfigurationError
from reachwatch.monitor.runner import get_monitor
from reachwatch.scheduler.job_scheduler import start_scheduler, shutdown_scheduler
from reachwatch.version import __version__

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Reachwatch starting")

    # Fail fast on a bad monitor definition instead of failing every cycle
    try:
        get_monitor()
    except ConfigurationError as e:
        logger.error("Invalid monitor configuration: %s", e)
        raise

    start_scheduler()

    yield

    shutdown_scheduler()
    logger.info("Reachwatch stopped")


app = FastAPI(
    title="Reachwatch",
    description="Reachability monitor with debounced status alerts",
    version=__version__,
    lifespan=lifespan,
)

from reachwatch.web.routes import api, health  # noqa: E402

app.include_router(api.router, prefix="/api", tags=["API"])
app.include_router(health.router, tags=["Health"])
