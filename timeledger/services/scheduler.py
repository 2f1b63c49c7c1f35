"""Periodic driver for the reconciliation sweep.

The scheduler is owned by whoever wires the process together (the FastAPI
lifespan in ``timeledger.main``); nothing starts it implicitly.
"""
import asyncio
import logging
from typing import Optional

from timeledger.services.reconciler import ReconciliationService

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """Runs ``ReconciliationService.sweep`` every ``interval_seconds``."""

    def __init__(self, reconciler: ReconciliationService, interval_seconds: float):
        self.reconciler = reconciler
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop. Starting twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="reconciliation-sweep")
        logger.info("Reconciliation scheduler started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reconciliation scheduler stopped")

    async def run_once(self) -> int:
        """Run a single sweep, logging instead of raising on failure."""
        try:
            return await self.reconciler.sweep()
        except Exception:
            logger.exception("Reconciliation sweep failed")
            return 0

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
