"""Storage adapters persisting the full queue snapshot."""

import json
import os
import sqlite3
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from ..config import Config, StorageSettings
from .types import QueueItem

__all__ = [
    "MemoryStorage",
    "JsonFileStorage",
    "SqliteStorage",
    "create_storage",
]


class MemoryStorage:
    """Keeps the snapshot in memory. Nothing survives a restart."""

    def __init__(self, items: Optional[list[QueueItem]] = None):
        self._rows: list[dict] = [item.to_dict() for item in items or []]

    def load(self) -> list[QueueItem]:
        return [QueueItem.from_dict(row) for row in self._rows]

    def save(self, items: list[QueueItem]) -> None:
        self._rows = [item.to_dict() for item in items]

    def clear(self) -> None:
        self._rows = []


class JsonFileStorage:
    """Stores the snapshot as a JSON array in a single file."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize the file store.

        Args:
            path: JSON file to use; defaults to the data dir
        """
        if path is None:
            path = Config.get_data_dir() / "sync_queue.json"
        self.path = Path(path)

    def load(self) -> list[QueueItem]:
        """Read the snapshot; a missing file means an empty queue.

        Raises:
            ValueError: If the file is not a JSON array of queue items
        """
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array in {self.path}")
        return [QueueItem.from_dict(row) for row in data]

    def save(self, items: list[QueueItem]) -> None:
        """Write the snapshot atomically (temp file, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([item.to_dict() for item in items], f)
            os.replace(tmp_name, self.path)
        except Exception:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class SqliteStorage:
    """SQLite-based store for the queue snapshot."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        if db_path is None:
            db_path = Config.get_data_dir() / "sync_queue.db"

        self.db_path = Path(db_path)
        self._local = threading.local()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "connection"):
            self._local.connection = sqlite3.connect(str(self.db_path))
        return self._local.connection

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Context manager for database cursor."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._cursor() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS queue_items (
                    position INTEGER PRIMARY KEY,
                    id TEXT NOT NULL UNIQUE,
                    data TEXT NOT NULL
                )
                """
            )

    def load(self) -> list[QueueItem]:
        with self._cursor() as cursor:
            cursor.execute("SELECT data FROM queue_items ORDER BY position ASC")
            return [QueueItem.from_dict(json.loads(row[0])) for row in cursor.fetchall()]

    def save(self, items: list[QueueItem]) -> None:
        """Replace the stored snapshot in a single transaction."""
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM queue_items")
            cursor.executemany(
                """
                INSERT INTO queue_items (position, id, data)
                VALUES (?, ?, ?)
                """,
                [
                    (position, item.id, json.dumps(item.to_dict()))
                    for position, item in enumerate(items)
                ],
            )

    def clear(self) -> None:
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM queue_items")

    def size(self) -> int:
        with self._cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM queue_items")
            return cursor.fetchone()[0]

    def close(self) -> None:
        """Close the database connection."""
        if hasattr(self._local, "connection"):
            self._local.connection.close()
            del self._local.connection


def create_storage(settings: StorageSettings):
    """Build the storage adapter selected by ``settings.backend``.

    Raises:
        ValueError: If the backend name is unknown
    """
    if settings.backend == "memory":
        return MemoryStorage()
    if settings.backend == "json":
        return JsonFileStorage(settings.resolve_path())
    if settings.backend == "sqlite":
        return SqliteStorage(settings.resolve_path())
    raise ValueError(f"Unknown storage backend: {settings.backend!r}")
