"""HTTP client and executor factory for replaying mutations over REST."""

import logging
from typing import Optional

import requests

from .errors import CONFLICT_STATUS
from .protocols import Executor
from .types import QueueItem

__all__ = [
    "ApiClient",
    "ApiError",
    "make_http_executor",
]

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A backend call failed.

    ``status`` carries the HTTP status code, or None when the request never
    got a response. A 409 status marks a conflict for the sync engine.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        conflict_reason: Optional[str] = None,
    ):
        self.status = status
        self.conflict_reason = conflict_reason
        super().__init__(message)

    @property
    def is_conflict(self) -> bool:
        return self.status == CONFLICT_STATUS


class ApiClient:
    """Thin requests wrapper for the backend API.

    Handles:
    - Session management
    - Authentication headers
    - Mapping HTTP failures to ApiError with a status code

    Retries are left to the sync engine's retry accounting.
    """

    USER_AGENT = "OfflineSync/1.0.0"

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """Initialize API client.

        Args:
            base_url: Backend API base URL
            token: Bearer token for authentication
            timeout: Request timeout in seconds
            session: Optional requests session (for dependency injection/testing)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()
        self._owns_session = session is None

    def _get_headers(self) -> dict:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, endpoint: str, data=None):
        """Make a request to the backend.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to base_url)
            data: JSON body

        Returns:
            Decoded JSON response, or {} for an empty body

        Raises:
            ApiError: For connection failures, timeouts, non-2xx responses and
                calls made after close()
        """
        if self._session is None:
            raise ApiError("Client is closed")

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs: dict = {"timeout": self.timeout, "headers": self._get_headers()}
        if data is not None:
            kwargs["json"] = data

        try:
            response = self._session.request(method, url, **kwargs)
        except requests.exceptions.ConnectionError as e:
            raise ApiError(f"Cannot connect to {self.base_url}") from e
        except requests.exceptions.Timeout as e:
            raise ApiError("Request timed out") from e

        if not response.ok:
            detail = ""
            reason = None
            try:
                body = response.json()
                detail = body.get("message", "")
                reason = body.get("reason")
            except (ValueError, AttributeError):
                pass
            raise ApiError(
                f"API error ({response.status_code}): {detail or response.reason}",
                status=response.status_code,
                conflict_reason=reason if isinstance(reason, str) else None,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            logger.debug(f"Non-JSON response from {url}")
            return {}

    def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def make_http_executor(client: ApiClient, method: str, endpoint: str) -> Executor:
    """Build an executor that replays an item as one HTTP request.

    ``endpoint`` is formatted with the item's ``entity_id`` and, when the
    payload is a dict, its keys, e.g. ``"exchanges/{entity_id}/apply"``.
    The payload is sent as the JSON body.
    """

    def execute(item: QueueItem):
        fields = dict(item.payload) if isinstance(item.payload, dict) else {}
        fields["entity_id"] = item.entity_id
        return client.request(method, endpoint.format(**fields), data=item.payload)

    return execute
