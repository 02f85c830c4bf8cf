"""Exception hierarchy for the taskboard Airtable client."""

from __future__ import annotations


class TaskboardError(Exception):
    """Base exception for all taskboard client errors."""


class ThrottleError(TaskboardError):
    """Raised by the request throttle itself, never by a queued call."""


class QueueCleared(ThrottleError):
    """The queued call was discarded by ``RequestThrottle.clear()``."""

    def __init__(self, message: str = "Queue cleared") -> None:
        super().__init__(message)


class QueueFull(ThrottleError):
    """The throttle already holds its maximum number of pending calls.

    Attributes:
        capacity: The configured ``max_pending`` limit.
    """

    def __init__(self, message: str = "Queue full", *, capacity: int) -> None:
        super().__init__(message)
        self.capacity = capacity


class AuthenticationError(TaskboardError):
    """Missing or rejected Airtable API key."""


class ApiConnectionError(TaskboardError):
    """API is unreachable (network error, DNS, timeout)."""


class ApiResponseError(TaskboardError):
    """API returned an unexpected error response.

    Attributes:
        status_code: HTTP status code, if available.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ApiResponseError):
    """The requested record or table does not exist."""

    def __init__(self, message: str = "Not found", *, status_code: int = 404) -> None:
        super().__init__(message, status_code=status_code)


class RateLimitError(ApiResponseError):
    """API returned 429 Too Many Requests.

    Airtable asks clients to back off for 30 seconds after a 429.

    Attributes:
        retry_after: Seconds to wait before retrying, if provided by the server.
    """

    def __init__(
        self,
        message: str = "Rate limited",
        *,
        status_code: int = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after
