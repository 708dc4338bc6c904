"""
Background Write Dispatcher

Runs REST write operations after the 202 response has been sent. The hub call
itself still goes through the shared serializer; this only detaches it from
the request.

@.architecture
Incoming: api/rest/endpoints/*.py (write routes), app.py (lifespan shutdown) --- {description str, hub coroutine}
Processing: dispatch(), _on_done(), drain() --- {3 jobs: task_spawning, failure_logging, shutdown_draining}
Outgoing: core/hue/client.py, monitoring/logging.py --- {awaited hub operations, WARNING/ERROR logs for failed writes}
"""

import asyncio
from typing import Any, Awaitable, Set

from monitoring import counter, get_logger

logger = get_logger(__name__)

background_writes = counter(
    "hue_rest_background_writes_total",
    "Fire-and-forget REST writes by outcome",
    labels=["outcome"],
)


class BackgroundDispatcher:
    """
    Fire-and-forget task runner for REST writes.

    Holds strong references to in-flight tasks so they are not collected
    before completion. Failures are logged with the operation description
    since no caller is waiting for them.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, description: str, operation: Awaitable[Any]) -> asyncio.Task:
        """
        Schedule a write.

        Args:
            description: Human-readable operation, used in failure logs
            operation: Coroutine performing the hub call

        Returns:
            The scheduled task
        """
        if self._closed:
            # Close the coroutine so it is not reported as never awaited
            if asyncio.iscoroutine(operation):
                operation.close()
            raise RuntimeError("Background dispatcher is closed")

        task = asyncio.ensure_future(operation)
        task.set_name(f"rest-write: {description}")
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_done(description, t))
        logger.debug(f"Dispatched background write: {description}")
        return task

    def _on_done(self, description: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            background_writes.inc(outcome="cancelled")
            logger.warning(f"Background write cancelled: {description}")
            return
        error = task.exception()
        if error is not None:
            background_writes.inc(outcome="error")
            logger.error(f"Background write failed: {description}: {type(error).__name__}: {error}")
            return
        background_writes.inc(outcome="ok")

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight writes to settle (shutdown); cancel stragglers."""
        self._closed = True
        if not self._tasks:
            return

        tasks = list(self._tasks)
        logger.info(f"Waiting for {len(tasks)} background write(s)")
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} background write(s) at shutdown")
            await asyncio.gather(*pending, return_exceptions=True)
