"""
Request Serializer

Single-flight FIFO execution queue in front of the bridge. The bridge is a
small embedded device that drops or reorders commands when it receives them
in parallel, so every downstream call from every front end is funnelled
through one instance of this class.

@.architecture
Incoming: core/hue/client.py --- {zero-argument coroutine factories via enqueue()}
Processing: enqueue(), _drain(), close() --- {3 jobs: ordering, error_isolation, shutdown}
Outgoing: core/hue/client.py --- {asyncio.Future per operation carrying its result or exception}

Guarantees:
- Operations run in enqueue() call order, one at a time
- A failing operation fails only its own future
- A caller that stops waiting does not remove its operation from the queue
- No timeout is imposed here; the HTTP layer below carries one
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Optional

from core.hue.errors import SerializerClosedError
from monitoring import counter, gauge, get_logger, histogram

logger = get_logger(__name__)

Operation = Callable[[], Awaitable[Any]]

queue_depth = gauge(
    "hue_serializer_queue_depth",
    "Operations waiting behind the in-flight hub call",
    labels=["queue"],
)
operation_duration = histogram(
    "hue_serializer_operation_duration_seconds",
    "Time an operation held the hub, from start to settle",
    labels=["queue"],
)
operation_failures = counter(
    "hue_serializer_operation_failures_total",
    "Operations that settled with an exception",
    labels=["queue"],
)


@dataclass
class QueuedOperation:
    """One deferred hub call and the slot its outcome is delivered to."""
    operation: Operation
    future: asyncio.Future
    label: str = "operation"
    enqueued_at: float = field(default_factory=time.monotonic)


class RequestSerializer:
    """
    FIFO queue drained by a single worker task.

    enqueue() is synchronous: the append and the worker start happen with no
    suspension point, so two callers racing on the event loop are ordered by
    the order in which they called enqueue().
    """

    def __init__(self, name: str = "hub"):
        self.name = name
        self._pending: Deque[QueuedOperation] = deque()
        self._worker: Optional[asyncio.Task] = None
        self._active: Optional[QueuedOperation] = None
        self._closed = False

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def depth(self) -> int:
        """Number of operations waiting to run, excluding the in-flight one."""
        return len(self._pending)

    @property
    def busy(self) -> bool:
        return self._active is not None

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Queueing
    # =========================================================================

    def enqueue(self, operation: Operation, label: str = "operation") -> asyncio.Future:
        """
        Append an operation to the queue.

        Args:
            operation: Zero-argument callable returning an awaitable
            label: Short description used in logs

        Returns:
            Future resolving to the operation's result or raising its error

        Raises:
            SerializerClosedError: If close() has already been called
        """
        if self._closed:
            raise SerializerClosedError(f"Request serializer '{self.name}' is closed")

        loop = asyncio.get_running_loop()
        item = QueuedOperation(operation=operation, future=loop.create_future(), label=label)
        self._pending.append(item)
        queue_depth.set(len(self._pending), queue=self.name)

        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(), name=f"{self.name}-serializer")

        return item.future

    async def submit(self, operation: Operation, label: str = "operation") -> Any:
        """Enqueue and wait for the outcome."""
        return await self.enqueue(operation, label)

    async def _drain(self) -> None:
        while self._pending:
            item = self._pending.popleft()
            queue_depth.set(len(self._pending), queue=self.name)
            self._active = item
            started = time.monotonic()

            try:
                result = await item.operation()
            except asyncio.CancelledError:
                if self._closed:
                    if not item.future.done():
                        item.future.set_exception(
                            SerializerClosedError(f"Request serializer '{self.name}' closed mid-operation")
                        )
                    raise
                # The operation cancelled itself; the queue keeps draining
                operation_failures.inc(queue=self.name)
                logger.warning(f"{item.label} was cancelled while running")
                item.future.cancel()
            except Exception as exc:
                operation_failures.inc(queue=self.name)
                logger.debug(f"{item.label} failed: {type(exc).__name__}: {exc}")
                if not item.future.done():
                    item.future.set_exception(exc)
            else:
                if not item.future.done():
                    item.future.set_result(result)
            finally:
                self._active = None
                operation_duration.observe(time.monotonic() - started, queue=self.name)

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def close(self) -> None:
        """Stop the worker and fail everything still queued."""
        if self._closed:
            return
        self._closed = True

        worker = self._worker
        if worker is not None and not worker.done():
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)

        abandoned = 0
        while self._pending:
            item = self._pending.popleft()
            if not item.future.done():
                item.future.set_exception(
                    SerializerClosedError(f"Request serializer '{self.name}' closed before {item.label} ran")
                )
            abandoned += 1

        queue_depth.set(0, queue=self.name)
        if abandoned:
            logger.warning(f"Serializer '{self.name}' closed with {abandoned} queued operation(s)")
        else:
            logger.info(f"Serializer '{self.name}' closed")
