"""Sync engine - replays queued mutations once the backend is reachable.

The engine owns the in-memory queue and its persistence, and runs one
single-flight sync cycle at a time. It never schedules itself: something
external (see ``offline_sync.scheduler``) must call ``sync()`` periodically
or when connectivity returns.
"""

import dataclasses
import logging
import threading
from typing import Optional

from ..config import DEFAULT_MAX_RETRIES, Config
from .errors import (
    MissingExecutorError,
    UnknownMutationTypeError,
    get_conflict_reason,
    is_conflict_error,
)
from .protocols import (
    ExecutorMap,
    ItemProcessedCallback,
    QueueChangeCallback,
    StorageAdapter,
    SyncCompleteCallback,
    SyncStartCallback,
)
from .queue import (
    add_to_queue,
    find_item,
    get_pending_items,
    remove_from_queue,
    update_item,
    update_item_status,
)
from .registry import DEFAULT_REGISTRY, MutationRegistry
from .retry import RetryPolicy
from .types import (
    ItemStatus,
    MutationType,
    NetworkStatus,
    QueueItem,
    ResultStatus,
    SyncResult,
)

logger = logging.getLogger(__name__)


class SyncEngine:
    """Offline mutation queue plus the cycle that replays it."""

    def __init__(
        self,
        storage: StorageAdapter,
        executors: ExecutorMap,
        max_retries: int = DEFAULT_MAX_RETRIES,
        on_queue_change: Optional[QueueChangeCallback] = None,
        on_sync_start: Optional[SyncStartCallback] = None,
        on_sync_complete: Optional[SyncCompleteCallback] = None,
        on_item_processed: Optional[ItemProcessedCallback] = None,
        registry: MutationRegistry = DEFAULT_REGISTRY,
    ):
        """Initialize the sync engine.

        Args:
            storage: Adapter persisting the full queue snapshot
            executors: Callable per mutation type performing it against the
                backend; types without an executor fail per item at sync time
            max_retries: Failed attempts after which an item is evicted
            on_queue_change: Called with a copy of the queue after each change
            on_sync_start: Called when a sync cycle starts
            on_sync_complete: Called with all results when a cycle ends
            on_item_processed: Called with (item, result) after each item
            registry: Reconciliation config per mutation type

        Raises:
            UnknownMutationTypeError: If an executor is keyed by a type the
                registry does not know
            ValueError: If max_retries is below 1
        """
        self.storage = storage
        self.registry = registry
        self.executors = self._normalize_executors(executors, registry)
        self.retry_policy = RetryPolicy(max_retries=max_retries)
        self._on_queue_change = on_queue_change
        self._on_sync_start = on_sync_start
        self._on_sync_complete = on_sync_complete
        self._on_item_processed = on_item_processed

        self._queue: list[QueueItem] = []
        self._lock = threading.RLock()
        self._syncing = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        storage: StorageAdapter,
        executors: ExecutorMap,
        **callbacks,
    ) -> "SyncEngine":
        """Create an engine using the retry budget from ``config.sync``."""
        return cls(
            storage=storage,
            executors=executors,
            max_retries=config.sync.max_retries,
            **callbacks,
        )

    @staticmethod
    def _normalize_executors(
        executors: ExecutorMap, registry: MutationRegistry
    ) -> dict:
        normalized = {}
        for mutation_type, executor in (executors or {}).items():
            if mutation_type not in registry:
                raise UnknownMutationTypeError(mutation_type)
            normalized[MutationType(mutation_type)] = executor
        return normalized

    @property
    def max_retries(self) -> int:
        return self.retry_policy.max_retries

    # Queue lifecycle

    def initialize(self) -> None:
        """Load the persisted queue.

        A failing or corrupt store never blocks startup: the queue simply
        starts empty. Items left as syncing by an interrupted cycle are reset
        to pending.
        """
        try:
            items = list(self.storage.load() or [])
        except Exception as e:
            logger.warning(f"Failed to load sync queue from storage: {e}, starting empty")
            with self._lock:
                self._queue = []
            return

        stale = sum(1 for item in items if item.status == ItemStatus.SYNCING)
        if stale:
            items = [
                dataclasses.replace(item, status=ItemStatus.PENDING)
                if item.status == ItemStatus.SYNCING
                else item
                for item in items
            ]
            logger.info(f"Reset {stale} interrupted items back to pending")

        with self._lock:
            self._queue = items
            snapshot = self._snapshot()
        logger.info(f"Sync queue loaded ({len(items)} items)")
        self._notify_queue_change(snapshot)

    def add_item(self, item: QueueItem) -> None:
        """Reconcile an item into the queue, persist it and notify.

        Raises:
            UnknownMutationTypeError: If the item's type is not registered
            Exception: Whatever ``storage.save`` raises
        """
        with self._lock:
            self._queue = add_to_queue(item, self._queue, self.registry)
            self.storage.save(list(self._queue))
            snapshot = self._snapshot()
        logger.debug(f"Queued {item.type.value} for {item.entity_id} ({len(snapshot)} items)")
        self._notify_queue_change(snapshot)

    def remove_item(self, item_id: str) -> None:
        """Drop an item by id, persist and notify."""
        with self._lock:
            self._queue = remove_from_queue(item_id, self._queue)
            self.storage.save(list(self._queue))
            snapshot = self._snapshot()
        self._notify_queue_change(snapshot)

    def clear_queue(self) -> None:
        """Drop every item and clear the store."""
        with self._lock:
            self._queue = []
            self.storage.clear()
        logger.info("Sync queue cleared")
        self._notify_queue_change([])

    # Queries

    def get_queue(self) -> list[QueueItem]:
        """Get a copy of the current queue."""
        with self._lock:
            return self._snapshot()

    def get_pending_count(self) -> int:
        with self._lock:
            return len(get_pending_items(self._queue))

    def has_pending_operation(self, entity_id: str) -> bool:
        """Check if an entity has an operation waiting to be synced."""
        with self._lock:
            return any(
                item.entity_id == entity_id and item.status == ItemStatus.PENDING
                for item in self._queue
            )

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    def get_status(self) -> dict:
        """Get current engine status."""
        with self._lock:
            return {
                "syncing": self._syncing,
                "queue_size": len(self._queue),
                "pending": len(get_pending_items(self._queue)),
                "max_retries": self.max_retries,
            }

    # Sync cycle

    def sync(self, network_status: NetworkStatus) -> list[SyncResult]:
        """Replay every pending item once.

        Returns ``[]`` without side effects when offline, when nothing is
        pending, or when another cycle is already running. Items added while
        a cycle runs wait for the next call.

        Args:
            network_status: Current connectivity

        Returns:
            One SyncResult per processed item, in queue order

        Raises:
            Exception: Whatever ``storage.save`` raises when persisting the
                outcome; executor failures never propagate
        """
        if not network_status.is_connected:
            return []

        with self._lock:
            if self._syncing:
                logger.debug("Sync already in progress, skipping")
                return []
            pending = get_pending_items(self._queue)
            if not pending:
                return []
            self._syncing = True

        try:
            return self._run_cycle(pending)
        finally:
            with self._lock:
                self._syncing = False

    def _run_cycle(self, pending: list[QueueItem]) -> list[SyncResult]:
        if self._on_sync_start:
            self._on_sync_start()
        logger.info(f"Sync started ({len(pending)} pending items)")

        results: list[SyncResult] = []
        for item in pending:
            result = self._process_item(item)
            results.append(result)
            if self._on_item_processed:
                self._on_item_processed(result.item, result)

        with self._lock:
            self.storage.save(list(self._queue))
            snapshot = self._snapshot()
        self._notify_queue_change(snapshot)

        if self._on_sync_complete:
            self._on_sync_complete(results)

        counts = {status: 0 for status in ResultStatus}
        for result in results:
            counts[result.status] += 1
        logger.info(
            f"Sync complete: {counts[ResultStatus.SUCCESS]} synced, "
            f"{counts[ResultStatus.CONFLICT]} conflicts, "
            f"{counts[ResultStatus.ERROR]} errors, {len(snapshot)} still queued"
        )
        return results

    def _process_item(self, item: QueueItem) -> SyncResult:
        """Run one item through its executor and apply the outcome."""
        with self._lock:
            self._queue = update_item_status(item.id, ItemStatus.SYNCING, self._queue)
            current = find_item(item.id, self._queue) or dataclasses.replace(
                item, status=ItemStatus.SYNCING
            )

        executor = self.executors.get(current.type)
        if executor is None:
            error = MissingExecutorError(current.type)
            logger.warning(f"{error} (item {current.id})")
            return self._handle_failure(current, error)

        try:
            response = executor(current)
        except Exception as e:
            return self._handle_failure(current, e)

        with self._lock:
            self._queue = remove_from_queue(current.id, self._queue)
        logger.debug(f"Synced {current.type.value} for {current.entity_id}")
        return SyncResult(
            item=dataclasses.replace(current, status=ItemStatus.SUCCESS),
            status=ResultStatus.SUCCESS,
            server_response=response,
        )

    def _handle_failure(self, item: QueueItem, error: Exception) -> SyncResult:
        if is_conflict_error(error):
            reason = get_conflict_reason(error)
            with self._lock:
                self._queue = remove_from_queue(item.id, self._queue)
            logger.info(
                f"Conflict syncing {item.type.value} for {item.entity_id}: {reason}"
            )
            return SyncResult(
                item=dataclasses.replace(item, status=ItemStatus.CONFLICT),
                status=ResultStatus.CONFLICT,
                conflict_reason=reason,
                error=error,
            )

        updated, evict = self.retry_policy.record_failure(item)
        with self._lock:
            if evict:
                self._queue = remove_from_queue(item.id, self._queue)
            else:
                self._queue = update_item(
                    item.id,
                    self._queue,
                    status=ItemStatus.PENDING,
                    retry_count=updated.retry_count,
                )

        if evict:
            logger.warning(
                f"Dropping {item.type.value} for {item.entity_id} after "
                f"{updated.retry_count} failed attempts: {error}"
            )
        else:
            logger.info(
                f"Sync of {item.type.value} for {item.entity_id} failed "
                f"(attempt {updated.retry_count}/{self.max_retries}): {error}"
            )
        return SyncResult(item=updated, status=ResultStatus.ERROR, error=error)

    def _snapshot(self) -> list[QueueItem]:
        return [dataclasses.replace(item) for item in self._queue]

    def _notify_queue_change(self, snapshot: list[QueueItem]) -> None:
        if self._on_queue_change:
            self._on_queue_change(snapshot)
