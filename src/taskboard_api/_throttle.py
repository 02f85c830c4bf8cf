"""Request throttle that serializes API calls with a minimum spacing."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from .const import DEFAULT_THROTTLE_SECONDS
from .exceptions import QueueCleared, QueueFull

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _QueuedCall(Generic[T]):
    call: Callable[[], Awaitable[T]]
    future: asyncio.Future[T]


class RequestThrottle:
    """Single-flight FIFO queue for outbound API calls.

    Calls are dispatched one at a time, in the order they were enqueued,
    with at least ``min_interval`` seconds between consecutive dispatch
    starts. Airtable allows 5 requests per second per base; the default
    adds a small margin on top of that.

    One instance should be shared by every caller that talks to the same
    rate-limited backend::

        throttle = RequestThrottle(min_interval=0.22)
        record = await throttle.enqueue(lambda: session_call(...))

    The throttle is bound to the event loop it is first used on and must
    only be called from that loop's thread.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_THROTTLE_SECONDS,
        *,
        max_pending: int | None = None,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        if max_pending is not None and max_pending < 1:
            raise ValueError("max_pending must be at least 1")
        self._min_interval = min_interval
        self._max_pending = max_pending
        self._queue: deque[_QueuedCall[Any]] = deque()
        self._last_dispatch: float | None = None
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def max_pending(self) -> int | None:
        return self._max_pending

    @property
    def pending_count(self) -> int:
        """Number of calls waiting in the queue (excludes the one in flight)."""
        return len(self._queue)

    @property
    def is_draining(self) -> bool:
        """Whether the drain loop is currently running."""
        return self._drain_task is not None

    def enqueue(self, call: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Queue ``call`` and return a future for its outcome.

        ``call`` is not invoked here; it runs once, when it reaches the head
        of the queue and its dispatch slot opens. The returned future
        resolves with whatever ``call`` returns, or fails with whatever it
        raises.

        Raises:
            QueueFull: If ``max_pending`` calls are already waiting.
            RuntimeError: If there is no running event loop.
        """
        loop = asyncio.get_running_loop()
        if self._max_pending is not None and len(self._queue) >= self._max_pending:
            raise QueueFull(
                f"Throttle queue is full ({self._max_pending} pending)",
                capacity=self._max_pending,
            )

        future: asyncio.Future[T] = loop.create_future()
        self._queue.append(_QueuedCall(call, future))

        if self._drain_task is None:
            task = loop.create_task(self._drain())
            # An eager task factory may already have run the loop to completion
            if not task.done():
                self._drain_task = task
        return future

    def clear(self) -> None:
        """Drop every pending call, failing each with ``QueueCleared``.

        The call currently in flight, if any, is not affected.
        """
        dropped = 0
        while self._queue:
            item = self._queue.popleft()
            if not item.future.done():
                item.future.set_exception(QueueCleared())
                dropped += 1
        if dropped:
            _LOGGER.debug("Cleared %d pending request(s)", dropped)

    async def async_close(self) -> None:
        """Clear the queue and stop the drain loop.

        Unlike ``clear()``, this also cancels the call in flight. Calls
        enqueued while the loop is shutting down fail with ``QueueCleared``.
        """
        self.clear()
        task = self._drain_task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        finally:
            # A task cancelled before its first step never runs its own cleanup
            if self._drain_task is task:
                self._drain_task = None
            self.clear()

    # ------------------------------------------------------------------ #
    #  Drain loop
    # ------------------------------------------------------------------ #

    async def _drain(self) -> None:
        try:
            while self._queue:
                await self._wait_for_slot()
                if not self._queue:
                    # Cleared while we were sleeping
                    break

                item = self._queue.popleft()
                if item.future.done():
                    # Caller cancelled before dispatch; the slot stays free.
                    continue

                self._last_dispatch = time.monotonic()
                _LOGGER.debug(
                    "Dispatching request (%d still pending)", len(self._queue)
                )
                await self._run(item)
        finally:
            if self._drain_task is asyncio.current_task():
                self._drain_task = None

    async def _wait_for_slot(self) -> None:
        if self._last_dispatch is None:
            return
        elapsed = time.monotonic() - self._last_dispatch
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)

    @staticmethod
    async def _run(item: _QueuedCall[Any]) -> None:
        try:
            result = await item.call()
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
        except Exception as err:  # noqa: BLE001
            if not item.future.done():
                item.future.set_exception(err)
        else:
            if not item.future.done():
                item.future.set_result(result)
