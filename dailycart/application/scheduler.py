"""Daily auto-close scheduler.

Runs the branch auto-close sweep once a day at a fixed local time. The
task is started and stopped by the application lifespan and shares its
services with the request handlers.
"""

import asyncio
import contextlib
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import structlog

from dailycart.application.branch_service import BranchOperationalGate, SweepReport
from dailycart.domain.base import utc_now
from dailycart.infrastructure.config import settings

logger = structlog.get_logger()


def next_run_after(now: datetime, hour: int, minute: int, tz: ZoneInfo) -> datetime:
    """Next occurrence of ``hour:minute`` in ``tz`` strictly after ``now``.

    Args:
        now: Aware reference time.
        hour: Local hour of the run.
        minute: Local minute of the run.
        tz: Zone the run time is expressed in.

    Returns:
        Aware datetime in ``tz``.
    """
    local_now = now.astimezone(tz)
    candidate = local_now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= local_now:
        candidate = (candidate + timedelta(days=1)).replace(hour=hour, minute=minute)
    return candidate


class BranchAutoCloseScheduler:
    """Recurring asyncio task around ``BranchOperationalGate.sweep``."""

    def __init__(
        self,
        gate: BranchOperationalGate,
        hour: int | None = None,
        minute: int | None = None,
        timezone_name: str | None = None,
    ) -> None:
        self._gate = gate
        self.hour = settings.auto_close_hour if hour is None else hour
        self.minute = settings.auto_close_minute if minute is None else minute
        self.tz = ZoneInfo(timezone_name or settings.auto_close_timezone)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="branch-auto-close")
        logger.info(
            "Auto-close scheduler started",
            hour=self.hour,
            minute=self.minute,
            timezone=str(self.tz),
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Auto-close scheduler stopped")

    async def run_once(self) -> SweepReport:
        """Run one sweep now."""
        return await self._gate.sweep()

    async def _run(self) -> None:
        while True:
            now = utc_now()
            next_run = next_run_after(now, self.hour, self.minute, self.tz)
            delay = (next_run - now).total_seconds()
            logger.debug("Next auto-close sweep scheduled", next_run=next_run.isoformat(), delay_seconds=round(delay))
            await asyncio.sleep(delay)
            try:
                await self.run_once()
            except Exception:
                logger.exception("Auto-close sweep failed")
