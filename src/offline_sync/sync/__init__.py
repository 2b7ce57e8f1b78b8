"""Sync module - offline mutation queue, reconciliation and replay."""

from .errors import (
    MissingExecutorError,
    RegistryError,
    SyncError,
    UnknownMutationTypeError,
)
from .http_client import ApiClient, ApiError, make_http_executor
from .protocols import Executor, StorageAdapter
from .queue import (
    add_to_queue,
    create_item,
    generate_item_id,
    get_mutation_config,
    get_pending_items,
    remove_from_queue,
    update_item_status,
)
from .registry import DEFAULT_REGISTRY, MutationConfig, MutationRegistry
from .retry import RetryPolicy
from .storage import JsonFileStorage, MemoryStorage, SqliteStorage, create_storage
from .sync_engine import SyncEngine
from .types import (
    ItemStatus,
    MutationType,
    NetworkStatus,
    QueueItem,
    ResultStatus,
    Strategy,
    SyncResult,
)

__all__ = [
    "SyncEngine",
    "QueueItem",
    "SyncResult",
    "NetworkStatus",
    "MutationType",
    "ItemStatus",
    "ResultStatus",
    "Strategy",
    "MutationConfig",
    "MutationRegistry",
    "DEFAULT_REGISTRY",
    "RetryPolicy",
    "StorageAdapter",
    "Executor",
    "MemoryStorage",
    "JsonFileStorage",
    "SqliteStorage",
    "create_storage",
    "ApiClient",
    "ApiError",
    "make_http_executor",
    "SyncError",
    "RegistryError",
    "UnknownMutationTypeError",
    "MissingExecutorError",
    "add_to_queue",
    "remove_from_queue",
    "update_item_status",
    "get_pending_items",
    "generate_item_id",
    "create_item",
    "get_mutation_config",
]
