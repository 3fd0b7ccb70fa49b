import asyncio
from typing import Callable, List, Optional

from core.cycle import CycleManager
from shared.logging.logger import get_logger

log = get_logger("core.scheduler")


class Scheduler:
    """
    Host-side driver for the poll runtime.

    Owns the asyncio tasks: ingestion workers and queue-draining sinks, plus
    the timer task that feeds elapsed loop time into the cycle manager. The
    core never schedules anything itself.
    """

    def __init__(
        self,
        cycle: CycleManager,
        *,
        tick_interval: float = 0.25,
        clock: Optional[Callable[[], float]] = None,
    ):
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")

        self.cycle = cycle
        self.tick_interval = tick_interval
        self._clock = clock
        self._tasks: List[asyncio.Task] = []
        self._workers: List[object] = []

    # ------------------------------------------------------------

    def start_worker(self, worker) -> asyncio.Task:
        name = type(worker).__name__
        log.info(f"Starting worker {name}")
        task = asyncio.create_task(worker.run(), name=f"ingest:{name}")
        self._workers.append(worker)
        self._tasks.append(task)
        return task

    def start_timer(self) -> asyncio.Task:
        log.info(
            f"Starting cycle timer ({self.cycle.duration_seconds:g}s cycles, "
            f"tick={self.tick_interval:g}s)"
        )
        task = asyncio.create_task(self._timer_loop(), name="cycle-timer")
        self._tasks.append(task)
        return task

    # ------------------------------------------------------------

    async def _timer_loop(self) -> None:
        clock = self._clock or asyncio.get_running_loop().time
        last = clock()
        try:
            while not self.cycle.stopped:
                await asyncio.sleep(self.tick_interval)
                now = clock()
                elapsed, last = now - last, now
                try:
                    self.cycle.tick(elapsed)
                except Exception as e:
                    log.exception(f"Cycle tick failed: {e}")
        except asyncio.CancelledError:
            log.debug("Cycle timer cancelled")
            raise

    # ------------------------------------------------------------

    async def shutdown(self) -> None:
        log.info("Scheduler shutdown initiated")

        self.cycle.stop()

        for worker in self._workers:
            stop = getattr(worker, "shutdown", None)
            if stop is None:
                continue
            try:
                await stop()
            except Exception as e:
                log.warning(f"Worker {type(worker).__name__} shutdown error ignored: {e}")

        for task in self._tasks:
            if not task.done():
                task.cancel()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._tasks.clear()
        self._workers.clear()
        log.info("Scheduler shutdown complete")
