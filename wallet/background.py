import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, BaseException], None]


class BackgroundTasks:
    """
    Detached fire-and-forget remote writes.

    The caller never awaits or sees the outcome; failures are only
    reported to the log and to the optional `on_error` callback.
    Tasks are held here until done so the event loop cannot drop them.
    """

    def __init__(self, on_error: Optional[ErrorCallback] = None):
        self.on_error = on_error
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, operation: str, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            coro.close()
            self._report(operation, e)
            return None
        task = loop.create_task(coro, name=operation)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._finish(operation, t))
        return task

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _finish(self, operation: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._report(operation, exc)

    def _report(self, operation: str, exc: BaseException) -> None:
        logger.warning("Background %s failed: %s", operation, exc)
        if self.on_error is None:
            return
        try:
            self.on_error(operation, exc)
        except Exception:
            logger.exception("on_error callback raised for %s", operation)
