"""Background workers."""

from custody.workers.confirmation_watcher import ConfirmationWatcher
from custody.workers.scheduler import WorkerRunner

__all__ = ["ConfirmationWatcher", "WorkerRunner"]
