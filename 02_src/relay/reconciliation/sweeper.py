"""Background task running the expiry sweep on a fixed interval."""

import asyncio
from typing import Awaitable, Callable

from ..logging_config import get_logger
from ..models import SweepReport
from .store import IReconciliationStore

logger = get_logger(__name__)


SweepHandler = Callable[[SweepReport], Awaitable[None]]
TickHandler = Callable[[], Awaitable[None]]


class ExpirySweeper:
    """Runs ``store.sweep()`` every ``interval`` seconds while started.

    Webhook handling sweeps opportunistically as well; this loop bounds
    memory when no callbacks arrive.
    """

    def __init__(
        self,
        store: IReconciliationStore,
        interval: float = 60.0,
        on_sweep: SweepHandler | None = None,
        on_tick: TickHandler | None = None,
    ):
        self._store = store
        self._interval = interval
        self._on_sweep = on_sweep
        self._on_tick = on_tick
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="expiry-sweeper")
        logger.info("Expiry sweeper started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Expiry sweeper stopped")

    async def sweep_once(self) -> SweepReport:
        report = self._store.sweep()
        if report.changed and self._on_sweep:
            await self._on_sweep(report)
        return report

    async def _run(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._interval)
                await self.sweep_once()
                if self._on_tick:
                    await self._on_tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Expiry sweep error: %s", e, exc_info=True)
