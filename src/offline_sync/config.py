"""Configuration management for offline sync."""

import json
import logging
import logging.handlers
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir, user_data_dir, user_log_dir

__all__ = [
    "Config",
    "SyncSettings",
    "StorageSettings",
    "ApiSettings",
    "setup_logging",
    "DEFAULT_API_URL",
    "DEFAULT_MAX_RETRIES",
    "STORAGE_BACKENDS",
    "PACKAGE_LOGGER",
    "LOG_FILE_NAME",
]

logger = logging.getLogger(__name__)

APP_NAME = "Offline Sync"
APP_AUTHOR = "OfflineSync"

DEFAULT_API_URL = "http://127.0.0.1:8000/api"
DEFAULT_TIMEOUT = 30  # seconds

# Sync settings
DEFAULT_SYNC_INTERVAL = 60  # seconds
MIN_SYNC_INTERVAL = 5
DEFAULT_MAX_RETRIES = 3

STORAGE_BACKENDS = ("memory", "json", "sqlite")

PACKAGE_LOGGER = "offline_sync"


def _known_fields(settings_cls, data) -> dict:
    """Keep only the keys the dataclass declares."""
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if k in settings_cls.__dataclass_fields__}


@dataclass
class SyncSettings:
    """Sync configuration."""

    max_retries: int = DEFAULT_MAX_RETRIES
    interval_seconds: int = DEFAULT_SYNC_INTERVAL


@dataclass
class StorageSettings:
    """Where the queue snapshot is persisted."""

    backend: str = "sqlite"
    path: Optional[str] = None  # defaults to a file under the data dir

    def resolve_path(self) -> Path:
        if self.path:
            return Path(self.path).expanduser()
        filename = "sync_queue.json" if self.backend == "json" else "sync_queue.db"
        return Config.get_data_dir() / filename


@dataclass
class ApiSettings:
    """Backend connection settings used by HTTP executors."""

    base_url: str = DEFAULT_API_URL
    timeout: int = DEFAULT_TIMEOUT


@dataclass
class Config:
    """Main configuration object."""

    sync: SyncSettings = field(default_factory=SyncSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    api: ApiSettings = field(default_factory=ApiSettings)
    debug_mode: bool = False

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get the configuration directory path."""
        return Path(user_config_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_data_dir(cls) -> Path:
        """Get the data directory path (for the persisted queue)."""
        return Path(user_data_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_log_dir(cls) -> Path:
        return Path(user_log_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_config_file(cls) -> Path:
        return cls.get_config_dir() / "config.json"

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "Config":
        """Load config from file, or return defaults."""
        config_file = config_file or cls.get_config_file()
        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    data = json.load(f)
                return cls._from_dict(data)
            except Exception as e:
                logger.warning(f"Failed to load config: {e}, using defaults")
        return cls()

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        sync_data = data.pop("sync", {})
        storage_data = data.pop("storage", {})
        api_data = data.pop("api", {})

        config = cls(
            sync=SyncSettings(**_known_fields(SyncSettings, sync_data)),
            storage=StorageSettings(**_known_fields(StorageSettings, storage_data)),
            api=ApiSettings(**_known_fields(ApiSettings, api_data)),
            **_known_fields(cls, data),
        )
        config._clamp()
        return config

    def _clamp(self) -> None:
        """Pull out-of-range values back to something usable."""
        if self.sync.max_retries < 1:
            logger.warning(f"max_retries {self.sync.max_retries} is below 1, using 1")
            self.sync.max_retries = 1
        self.sync.interval_seconds = max(MIN_SYNC_INTERVAL, self.sync.interval_seconds)
        if self.storage.backend not in STORAGE_BACKENDS:
            logger.warning(
                f"Unknown storage backend {self.storage.backend!r}, using sqlite"
            )
            self.storage.backend = "sqlite"

    def save(self, config_file: Optional[Path] = None) -> None:
        """Save config to file."""
        config_file = config_file or self.get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        data = asdict(self)
        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Config saved to {config_file}")


LOG_FILE_NAME = "offline-sync.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_MAX_BYTES = 5_000_000
LOG_BACKUP_COUNT = 3


def setup_logging(
    debug: bool = False,
    log_dir: Optional[Path] = None,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
) -> logging.Logger:
    """Attach console and rotating file handlers to the package logger.

    Only the ``offline_sync`` logger is touched, so the host application's
    root logging stays as it is. Calling this again replaces the handlers
    installed by the previous call.

    Args:
        debug: Log at DEBUG instead of INFO
        log_dir: Directory for the log file; defaults to the platform log dir
        max_bytes: Size at which the log file is rotated
        backup_count: Rotated files to keep

    Returns:
        The configured package logger
    """
    log_dir = log_dir or Config.get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / LOG_FILE_NAME, maxBytes=max_bytes, backupCount=backup_count
    )
    console_handler = logging.StreamHandler()
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.propagate = False

    for noisy in ("urllib3", "requests", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return package_logger
