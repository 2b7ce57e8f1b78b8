"""Data types shared by the queue, the registry and the sync engine."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

__all__ = [
    "MutationType",
    "ItemStatus",
    "ResultStatus",
    "Strategy",
    "QueueItem",
    "SyncResult",
    "NetworkStatus",
]


class MutationType(str, Enum):
    """Kinds of domain operations that can be queued.

    Values are the wire tags stored in persisted snapshots.
    """

    APPLY_FOR_EXCHANGE = "applyForExchange"
    WITHDRAW_FROM_EXCHANGE = "withdrawFromExchange"
    ADD_TO_EXCHANGE = "addToExchange"
    UPDATE_COMPENSATION = "updateCompensation"


class ItemStatus(str, Enum):
    PENDING = "pending"
    SYNCING = "syncing"
    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"


class Strategy(str, Enum):
    """How a new item is reconciled with a queued item for the same entity."""

    DEDUPLICATE = "deduplicate"  # first writer wins
    REPLACE = "replace"  # last writer wins, position kept


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class QueueItem:
    """A user-initiated mutation waiting to be replayed against the backend."""

    id: str
    type: MutationType
    entity_id: str
    payload: Any = None
    timestamp: int = field(default_factory=_now_ms)
    status: ItemStatus = ItemStatus.PENDING
    retry_count: int = 0
    display_label: str = ""

    def __post_init__(self):
        # Accept wire tags as well as enum members
        self.type = MutationType(self.type)
        self.status = ItemStatus(self.status)

    @classmethod
    def from_dict(cls, data: dict) -> "QueueItem":
        """Create from a persisted snapshot row (camelCase wire keys).

        Raises:
            KeyError: If a required key is missing
            ValueError: If type or status is not a known value
        """
        return cls(
            id=str(data["id"]),
            type=MutationType(data["type"]),
            entity_id=str(data["entityId"]),
            payload=data.get("payload"),
            timestamp=int(data.get("timestamp") or 0),
            status=ItemStatus(data.get("status", ItemStatus.PENDING.value)),
            retry_count=int(data.get("retryCount", 0)),
            display_label=data.get("displayLabel", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "entityId": self.entity_id,
            "payload": self.payload,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "retryCount": self.retry_count,
            "displayLabel": self.display_label,
        }


@dataclass
class SyncResult:
    """Outcome of processing one queue item during a sync cycle."""

    item: QueueItem
    status: ResultStatus
    conflict_reason: Optional[str] = None
    error: Optional[BaseException] = None
    server_response: Any = None

    @property
    def success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    def to_dict(self) -> dict:
        result = {
            "itemId": self.item.id,
            "type": self.item.type.value,
            "entityId": self.item.entity_id,
            "status": self.status.value,
        }
        if self.conflict_reason:
            result["conflictReason"] = self.conflict_reason
        if self.error is not None:
            result["error"] = str(self.error)
        return result


@dataclass(frozen=True)
class NetworkStatus:
    """Connectivity snapshot passed to each sync call.

    Only ``is_connected`` gates behavior.
    """

    is_connected: bool
    is_known: bool = True
    type: str = "unknown"

    @classmethod
    def online(cls, type: str = "unknown") -> "NetworkStatus":
        return cls(is_connected=True, is_known=True, type=type)

    @classmethod
    def offline(cls) -> "NetworkStatus":
        return cls(is_connected=False, is_known=True, type="none")
