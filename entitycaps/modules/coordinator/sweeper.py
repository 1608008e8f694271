"""Background expiry of stalled discovery queries."""

import asyncio
import logging
from typing import Optional

from .coordinator import DiscoveryCoordinator

logger = logging.getLogger("entitycaps.sweeper")


class ExpirySweeper:
    """Periodically asks the coordinator to expire stalled discovery queries."""

    def __init__(self, coordinator: DiscoveryCoordinator, interval: float = 5.0):
        """
        Initialize sweeper.

        Args:
            coordinator: Coordinator whose queries are swept
            interval: Seconds between sweeps
        """
        self.coordinator = coordinator
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sweeping on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Expiry sweeper started (interval: {self.interval}s)")

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")

    def sweep_once(self) -> int:
        """Run a single sweep. Returns the number of stalled queries handled."""
        handled = self.coordinator.expire_stale()
        if handled:
            logger.debug(f"Expired {handled} stalled discovery queries")
        return handled

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep_once()
            except Exception as e:
                logger.error(f"Expiry sweep failed: {e}")
