"""Background tasks that run on a fixed interval for the app's lifetime."""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Calls *func* every *interval* seconds until stopped.

    *func* may be a plain function or a coroutine function. An exception in
    one run is logged and the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Union[Any, Awaitable[Any]]],
    ) -> None:
        self.name = name
        self.interval = interval
        self._func = func
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name=self.name)
            logger.info("Started periodic task %s (every %ss)", self.name, self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped periodic task %s", self.name)

    async def run_once(self) -> Any:
        result = self._func()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("Periodic task %s failed", self.name)
