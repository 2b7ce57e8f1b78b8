"""Retry accounting for queue items that failed with a retryable error.

The engine never waits or backs off between attempts; a failed item simply
stays queued until the next ``sync()`` call, up to ``max_retries`` attempts.
"""

import dataclasses
from dataclasses import dataclass

from ..config import DEFAULT_MAX_RETRIES
from .types import ItemStatus, QueueItem


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior."""

    max_retries: int = DEFAULT_MAX_RETRIES

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")

    def record_failure(self, item: QueueItem) -> tuple[QueueItem, bool]:
        """Count one more failed attempt for an item.

        Args:
            item: The item whose executor just failed

        Returns:
            (updated item, evict) where the updated item carries the
            incremented retry_count, and evict is True once the retry budget
            is spent (the item is then marked error instead of pending)
        """
        retry_count = item.retry_count + 1
        evict = retry_count >= self.max_retries
        updated = dataclasses.replace(
            item,
            retry_count=retry_count,
            status=ItemStatus.ERROR if evict else ItemStatus.PENDING,
        )
        return updated, evict
