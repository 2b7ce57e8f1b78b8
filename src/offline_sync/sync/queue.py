"""Pure reconciliation functions for the offline mutation queue.

Nothing in here performs I/O or mutates its arguments: every function takes
the current queue and returns a new list. The SyncEngine owns the live queue
and decides when to persist it.
"""

import dataclasses
import secrets
import string
import time
from typing import Any, Optional

from .registry import DEFAULT_REGISTRY, MutationConfig, MutationRegistry
from .types import ItemStatus, MutationType, QueueItem, Strategy

__all__ = [
    "add_to_queue",
    "remove_from_queue",
    "update_item_status",
    "update_item",
    "get_pending_items",
    "find_item",
    "generate_item_id",
    "create_item",
    "get_mutation_config",
]

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9


def generate_item_id() -> str:
    """Generate a unique, creation-ordered queue item id.

    Format is ``sync_<epoch-ms>_<random base36>``; the millisecond prefix
    keeps ids sortable, the suffix keeps them unique under rapid calls.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"sync_{millis}_{suffix}"


def create_item(
    mutation_type,
    entity_id: str,
    payload: Any = None,
    display_label: str = "",
) -> QueueItem:
    """Build a fresh pending item ready to hand to ``SyncEngine.add_item``.

    Args:
        mutation_type: MutationType (or its wire tag)
        entity_id: Domain object the mutation targets
        payload: Mutation-specific data (JSON-serializable)
        display_label: Human readable label for pending-action lists

    Returns:
        QueueItem with a generated id, status pending and retry_count 0
    """
    return QueueItem(
        id=generate_item_id(),
        type=MutationType(mutation_type),
        entity_id=entity_id,
        payload=payload,
        display_label=display_label,
    )


def get_mutation_config(
    mutation_type, registry: MutationRegistry = DEFAULT_REGISTRY
) -> MutationConfig:
    """Get the reconciliation config for a mutation type."""
    return registry.get(mutation_type)


def _find_index(queue: list[QueueItem], mutation_type, entity_id: str) -> Optional[int]:
    for index, item in enumerate(queue):
        if item.type == mutation_type and item.entity_id == entity_id:
            return index
    return None


def add_to_queue(
    new_item: QueueItem,
    queue: list[QueueItem],
    registry: MutationRegistry = DEFAULT_REGISTRY,
) -> list[QueueItem]:
    """Reconcile a new item into the queue according to its type's config.

    1. An opposing item for the same entity cancels out: it is removed and
       the new item is dropped too.
    2. ``deduplicate``: an existing same-type item for the entity is kept and
       the new item is ignored.
    3. ``replace``: an existing same-type item for the entity is swapped for
       the new item at the same position.
    4. Otherwise the new item is appended.

    Args:
        new_item: Item to add
        queue: Current queue
        registry: Mutation configs to reconcile with

    Returns:
        The reconciled queue (a new list)

    Raises:
        UnknownMutationTypeError: If the item's type is not registered
    """
    config = registry.get(new_item.type)

    if config.opposing_type is not None:
        opposing_index = _find_index(queue, config.opposing_type, new_item.entity_id)
        if opposing_index is not None:
            return queue[:opposing_index] + queue[opposing_index + 1:]

    existing_index = _find_index(queue, new_item.type, new_item.entity_id)
    if existing_index is not None:
        if config.strategy == Strategy.DEDUPLICATE:
            return list(queue)
        if config.strategy == Strategy.REPLACE:
            updated = list(queue)
            updated[existing_index] = new_item
            return updated

    return [*queue, new_item]


def remove_from_queue(item_id: str, queue: list[QueueItem]) -> list[QueueItem]:
    """Remove the item with the given id; no-op if absent."""
    return [item for item in queue if item.id != item_id]


def update_item(item_id: str, queue: list[QueueItem], **changes) -> list[QueueItem]:
    """Return a queue where the matching item has the given fields replaced.

    The matching item is copied, never mutated; no-op if the id is absent.
    """
    return [
        dataclasses.replace(item, **changes) if item.id == item_id else item
        for item in queue
    ]


def update_item_status(
    item_id: str, status: ItemStatus, queue: list[QueueItem]
) -> list[QueueItem]:
    """Replace only the status of the matching item; no-op if absent."""
    return update_item(item_id, queue, status=ItemStatus(status))


def get_pending_items(queue: list[QueueItem]) -> list[QueueItem]:
    """All items still waiting to be synced, in queue order."""
    return [item for item in queue if item.status == ItemStatus.PENDING]


def find_item(item_id: str, queue: list[QueueItem]) -> Optional[QueueItem]:
    for item in queue:
        if item.id == item_id:
            return item
    return None
