"""Per-upstream fetch scheduler.

Every outbound call goes through a FetchScheduler. Each scheduler owns a task
queue drained by ``max_concurrent`` worker coroutines, so the number of
requests in flight never exceeds the worker count. Before a worker dispatches
a task it passes a FIFO admission gate that takes a token from the reservoir
(when one is configured) and enforces the minimum spacing between dispatches.

The scheduler never retries: the executor's exception is delivered to the
submitter as-is.
"""

from __future__ import annotations

import asyncio
import logging
import time
import types
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from typing_extensions import Self

from catalogvault.services.rate_limiter import ReservoirRateLimiter
from catalogvault.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamCredentials:
    """Credentials attached to an upstream request.

    Attributes:
        api_key: Sent as the ``api_key`` query parameter
        bearer_token: Sent as an ``Authorization: Bearer`` header
        headers: Extra headers (API version, client id, ...)
    """

    api_key: str | None = None
    bearer_token: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"UpstreamCredentials(api_key={'****' if self.api_key else None}, "
            f"bearer_token={'****' if self.bearer_token else None}, "
            f"headers={sorted(self.headers)})"
        )


@dataclass
class FetchTask:
    """One outbound request, owned by the scheduler while queued."""

    url: str
    params: dict[str, Any] = field(default_factory=dict)
    method: str = "GET"
    json_body: Any | None = None
    credentials: UpstreamCredentials | None = None


FetchExecutor = Callable[[FetchTask], Awaitable[Any]]

_QueueItem = tuple[FetchTask, "asyncio.Future[Any]"]


def _retrieve_exception(future: asyncio.Future[Any]) -> None:
    """Mark a failure as seen when the submitter stopped waiting for it."""
    if not future.cancelled():
        future.exception()


class FetchScheduler:
    """Bounded-rate task queue for one upstream service.

    Args:
        name: Upstream name used in logs
        executor: Coroutine function performing the actual request
        limiter: Reservoir limiter, or None for no rate cap
        max_concurrent: Maximum number of tasks in flight
        min_time: Minimum seconds between two dispatches
    """

    def __init__(
        self,
        name: str,
        executor: FetchExecutor,
        limiter: ReservoirRateLimiter | None = None,
        max_concurrent: int = 1,
        min_time: float = 0.0,
    ) -> None:
        if max_concurrent <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"max_concurrent must be positive, got: {max_concurrent}",
                context=ErrorContext(
                    operation="fetch_scheduler_init",
                    additional_data={"upstream": name, "max_concurrent": max_concurrent},
                ),
            )

        self.name = name
        self.max_concurrent = max_concurrent
        self.min_time = min_time
        self._executor = executor
        self._limiter = limiter

        self._queue: asyncio.Queue[_QueueItem] | None = None
        self._admission: asyncio.Lock | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._last_dispatch: float | None = None
        self._closed = False

        self._in_flight = 0
        self.peak_in_flight = 0
        self.submitted = 0
        self.completed = 0
        self.failed = 0

    @property
    def in_flight(self) -> int:
        """Number of tasks currently executing."""
        return self._in_flight

    @property
    def pending(self) -> int:
        """Number of tasks waiting in the queue."""
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_started(self) -> asyncio.Queue[_QueueItem]:
        """Create the queue and workers on first use inside a running loop."""
        if self._queue is None:
            self._queue = asyncio.Queue()
            self._admission = asyncio.Lock()
            self._workers = [
                asyncio.create_task(
                    self._worker(self._queue),
                    name=f"{self.name}-worker-{i}",
                )
                for i in range(self.max_concurrent)
            ]
            logger.debug(
                "Started %d workers for upstream '%s'",
                self.max_concurrent,
                self.name,
            )
        return self._queue

    def schedule(self, task: FetchTask) -> asyncio.Future[Any]:
        """Enqueue a task and return the future that receives its result.

        Raises:
            InfrastructureError: If the scheduler has been closed
        """
        if self._closed:
            raise self._closed_error("schedule")

        queue = self._ensure_started()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        queue.put_nowait((task, future))
        self.submitted += 1
        return future

    async def submit(self, task: FetchTask) -> Any:
        """Enqueue a task and wait for its result.

        A caller that is cancelled while waiting leaves the task running to
        completion; the result is simply dropped.
        """
        future = self.schedule(task)
        future.add_done_callback(_retrieve_exception)
        return await asyncio.shield(future)

    async def _admit(self) -> None:
        """Take a reservoir token and honour min_time, one task at a time."""
        assert self._admission is not None
        async with self._admission:
            if self._limiter is not None:
                await self._limiter.acquire()

            if self.min_time > 0 and self._last_dispatch is not None:
                wait = self._last_dispatch + self.min_time - time.monotonic()
                if wait > 0:
                    await asyncio.sleep(wait)

            self._last_dispatch = time.monotonic()

    async def _dispatch(self, task: FetchTask, future: asyncio.Future[Any]) -> None:
        self._in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
        try:
            result = await self._executor(task)
        except Exception as e:  # noqa: BLE001
            self.failed += 1
            logger.debug("Task for upstream '%s' failed: %s", self.name, e)
            if not future.done():
                future.set_exception(e)
        else:
            self.completed += 1
            if not future.done():
                future.set_result(result)
        finally:
            self._in_flight -= 1

    async def _worker(self, queue: asyncio.Queue[_QueueItem]) -> None:
        while True:
            task, future = await queue.get()
            try:
                await self._admit()
                await self._dispatch(task, future)
            except asyncio.CancelledError:
                if not future.done():
                    future.set_exception(self._closed_error("dispatch"))
                raise
            finally:
                queue.task_done()

    def _closed_error(self, operation: str) -> InfrastructureError:
        return InfrastructureError(
            code=ErrorCode.SCHEDULER_CLOSED,
            message=f"Scheduler '{self.name}' is closed",
            context=ErrorContext(
                operation=operation,
                additional_data={"upstream": self.name},
            ),
        )

    async def join(self) -> None:
        """Wait until every queued task has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def aclose(self, *, drain: bool = True) -> None:
        """Stop the workers.

        Args:
            drain: Let queued tasks finish first; otherwise they are cancelled
        """
        if self._closed:
            return
        self._closed = True

        if self._queue is None:
            return

        if drain:
            await self._queue.join()

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.set_exception(self._closed_error("aclose"))
            self._queue.task_done()

        logger.debug(
            "Scheduler '%s' closed (completed=%d, failed=%d)",
            self.name,
            self.completed,
            self.failed,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of the scheduler counters."""
        return {
            "upstream": self.name,
            "max_concurrent": self.max_concurrent,
            "in_flight": self._in_flight,
            "peak_in_flight": self.peak_in_flight,
            "pending": self.pending,
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
            "tokens_available": (
                self._limiter.get_tokens_available() if self._limiter else None
            ),
        }
