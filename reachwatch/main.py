"""Entry point: set up logging, then serve the API and scheduler with uvicorn."""

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

import uvicorn

from reachwatch.config import settings

LOG_FILE_NAME = "reachwatch.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3
TEXT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def _build_formatter() -> logging.Formatter:
    if settings.log_format != "json":
        return logging.Formatter(TEXT_LOG_FORMAT)

    from pythonjsonlogger import jsonlogger

    class ReachwatchJsonFormatter(jsonlogger.JsonFormatter):
        """Adds service, level and logger fields to every JSON line."""

        def add_fields(self, log_record, record, message_dict):
            super().add_fields(log_record, record, message_dict)
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
            log_record["level"] = record.levelname
            log_record["logger"] = record.name
            log_record["service"] = "reachwatch"

    return ReachwatchJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")


def configure_logging():
    """Send logs to stdout and to a rotating file under DATA_DIR/logs."""
    log_dir = settings.data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = _build_formatter()
    handlers = [
        logging.StreamHandler(sys.stdout),
        RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        ),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(getattr(logging, settings.log_level.upper()))

    for noisy in ("apscheduler", "httpx", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def main():
    configure_logging()

    from reachwatch.version import __version__

    logger.info(
        "Reachwatch v%s: %s check of %s, trigger mode %s, polling every %ds",
        __version__,
        settings.check_type,
        settings.target,
        settings.trigger_mode,
        settings.poll_interval_seconds,
    )

    # The app module builds loggers at import, so import after configuring
    from reachwatch.web.app import app

    uvicorn.run(
        app,
        host=settings.web_host,
        port=settings.web_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
