"""Offline Sync - queue mutations while offline and replay them on reconnect."""

__version__ = "1.0.0"

from .config import Config, setup_logging
from .scheduler import SyncScheduler
from .sync import (
    MutationType,
    NetworkStatus,
    QueueItem,
    SyncEngine,
    SyncResult,
    create_item,
)

__all__ = [
    "__version__",
    "Config",
    "setup_logging",
    "SyncEngine",
    "SyncScheduler",
    "QueueItem",
    "SyncResult",
    "NetworkStatus",
    "MutationType",
    "create_item",
]
