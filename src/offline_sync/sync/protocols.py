"""Protocol types for SyncEngine dependencies.

Defines the interfaces that SyncEngine requires from its collaborators,
enabling easier testing and looser coupling.
"""

from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from .types import MutationType, QueueItem, SyncResult

__all__ = [
    "StorageAdapter",
    "Executor",
    "ExecutorMap",
    "QueueChangeCallback",
    "SyncStartCallback",
    "SyncCompleteCallback",
    "ItemProcessedCallback",
]


@runtime_checkable
class StorageAdapter(Protocol):
    """Persistence for the full queue snapshot.

    ``load`` returns ``[]`` when nothing is stored and may raise on corrupt
    data; ``save`` and ``clear`` raise on write failures.
    """

    def load(self) -> list[QueueItem]: ...

    def save(self, items: list[QueueItem]) -> None: ...

    def clear(self) -> None: ...


# Performs one mutation against the backend. Returning means success;
# raising an error with ``status == 409`` means conflict; any other
# exception is retryable.
Executor = Callable[[QueueItem], Any]
ExecutorMap = Mapping[MutationType, Executor]

QueueChangeCallback = Callable[[list[QueueItem]], None]
SyncStartCallback = Callable[[], None]
SyncCompleteCallback = Callable[[list[SyncResult]], None]
ItemProcessedCallback = Callable[[QueueItem, SyncResult], None]
