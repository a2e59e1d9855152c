import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run an async callable every ``interval`` seconds until stopped.

    A failing tick is logged and the timer keeps going. After ``stop()`` the
    callable is never invoked again.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], Awaitable[object]]) -> None:
        self.name = name
        self.interval = interval
        self._func = func
        self._task: Optional[asyncio.Task[None]] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._task = asyncio.create_task(self._loop(), name=f"periodic-{self.name}")
        logger.info("started %s every %.0fs", self.name, self.interval)

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("stopped %s", self.name)

    async def _loop(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.interval)
            if self._stopped:
                break
            try:
                await self._func()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s tick failed", self.name)
