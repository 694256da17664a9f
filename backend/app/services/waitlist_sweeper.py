"""Background worker that expires waitlist entries once their class has started."""

import asyncio
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.services.scheduling_service import sweep_stale_waitlists

logger = get_logger(__name__)
settings = get_settings()


class WaitlistSweeper:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        interval: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.interval = interval if interval is not None else settings.WAITLIST_SWEEP_INTERVAL_SECONDS
        self._running = False

    async def sweep_once(self) -> int:
        async with self.session_factory() as db:
            return await sweep_stale_waitlists(db)

    async def run_forever(self) -> None:
        self._running = True
        logger.info("waitlist_sweeper_started", interval=self.interval)
        while self._running:
            try:
                await self.sweep_once()
            except Exception:
                # Next tick retries; the sweep is idempotent
                logger.exception("waitlist_sweep_failed")
            await asyncio.sleep(self.interval)

    def stop(self) -> None:
        self._running = False
