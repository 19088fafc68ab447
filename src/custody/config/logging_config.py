"""Logging configuration."""

import logging
import sys

from custody.config.settings import get_settings

# Request handlers and the background scheduler log from different threads
LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"

# Loggers written on every watcher or notification tick
WORKER_LOGGERS = (
    "custody.workers.confirmation_watcher",
    "custody.workers.scheduler",
    "custody.services.event_channel",
)


def setup_logging() -> None:
    """Configure application and background worker logging."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    worker_level = getattr(logging, settings.worker_log_level.upper())
    for name in WORKER_LOGGERS:
        logging.getLogger(name).setLevel(worker_level)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
