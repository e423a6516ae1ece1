import asyncio
import logging
from datetime import timezone, tzinfo
from typing import Optional

from src.core.context import DispatchContext
from src.services.scheduled_dispatcher import process_scheduled_notifications

logger = logging.getLogger(__name__)


class ScheduledNotificationPoller:
    """Runs the scheduled dispatcher every `interval_seconds` as a background task."""

    def __init__(
        self,
        ctx: DispatchContext,
        interval_seconds: int = 60,
        tz: tzinfo = timezone.utc,
    ):
        self.ctx = ctx
        self.interval_seconds = interval_seconds
        self.tz = tz
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run_forever())
        logger.info(
            f"Scheduled notification poller started (every {self.interval_seconds}s)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Scheduled notification poller stopped")

    async def run_once(self):
        return await process_scheduled_notifications(self.ctx, tz=self.tz)

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Scheduled notification run failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)
