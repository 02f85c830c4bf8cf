"""Async Python client for the Airtable-backed project/task board."""

from .const import __version__
from ._client import TaskboardApiClient
from ._throttle import RequestThrottle
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    NotFoundError,
    QueueCleared,
    QueueFull,
    RateLimitError,
    TaskboardError,
    ThrottleError,
)
from .models import Project, Responsable, Task, TaskMutation, TaskUpdate

__all__ = [
    "__version__",
    "TaskboardApiClient",
    "RequestThrottle",
    "ApiConnectionError",
    "ApiResponseError",
    "AuthenticationError",
    "NotFoundError",
    "QueueCleared",
    "QueueFull",
    "RateLimitError",
    "TaskboardError",
    "ThrottleError",
    "Project",
    "Responsable",
    "Task",
    "TaskMutation",
    "TaskUpdate",
]
