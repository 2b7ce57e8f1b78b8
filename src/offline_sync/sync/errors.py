"""Error taxonomy and classification of executor failures."""

from typing import Optional

__all__ = [
    "SyncError",
    "RegistryError",
    "UnknownMutationTypeError",
    "MissingExecutorError",
    "CONFLICT_STATUS",
    "DEFAULT_CONFLICT_REASON",
    "get_error_status",
    "is_conflict_error",
    "get_conflict_reason",
]

CONFLICT_STATUS = 409
DEFAULT_CONFLICT_REASON = "already_taken"


class SyncError(Exception):
    """Base class for errors raised by the sync package."""

    pass


class RegistryError(SyncError):
    """The mutation registry is incomplete or inconsistent."""

    pass


class UnknownMutationTypeError(SyncError, KeyError):
    """A mutation type has no registered configuration."""

    def __init__(self, mutation_type):
        self.mutation_type = mutation_type
        super().__init__(f"No mutation config registered for type: {mutation_type!r}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class MissingExecutorError(SyncError):
    """No executor was supplied for a queued item's mutation type."""

    def __init__(self, mutation_type):
        self.mutation_type = mutation_type
        tag = getattr(mutation_type, "value", mutation_type)
        super().__init__(f"No executor for mutation type: {tag}")


def get_error_status(error: BaseException) -> Optional[int]:
    """Extract a numeric HTTP-like status from an executor error.

    Looks at ``error.status`` first, then at ``error.response.status_code``
    (the shape of ``requests.HTTPError``).

    Returns:
        The status code, or None if the error does not expose one
    """
    status = getattr(error, "status", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    return status


def is_conflict_error(error: BaseException) -> bool:
    """Check whether an executor error signals a terminal conflict."""
    return get_error_status(error) == CONFLICT_STATUS


def get_conflict_reason(error: BaseException) -> str:
    """Return the executor-supplied conflict reason, or the default."""
    reason = getattr(error, "conflict_reason", None)
    if isinstance(reason, str) and reason:
        return reason
    return DEFAULT_CONFLICT_REASON
