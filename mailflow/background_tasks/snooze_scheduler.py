import asyncio
from typing import Optional

from loguru import logger
from result import is_err

from mailflow.database import MailDB
from mailflow.kanban import KanbanStateMachine
from mailflow.utils import utc_now


class SnoozeScheduler:
    """
    Wakes snoozed emails whose deadline has passed by moving them back to the inbox.

    Ticks never overlap: a tick that comes due while the previous one still runs
    is skipped rather than queued.
    """

    def __init__(self, db: MailDB, kanban: KanbanStateMachine, interval: float = 60.0):
        self.db = db
        self.kanban = kanban
        self.interval = interval
        self._tick_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._current_tick: Optional[asyncio.Task] = None

    async def tick(self) -> int:
        """Run one pass; returns how many emails were woken, 0 when skipped."""
        if self._tick_lock.locked():
            logger.warning("previous snooze tick still running, skipping this one")
            return 0

        async with self._tick_lock:
            now = utc_now()
            due = await asyncio.to_thread(self.db.list_snoozed_due, now)
            if due:
                logger.info(f"waking {len(due)} snoozed emails")

            woken = 0
            for email in due:
                try:
                    result = await self.kanban.wake(email.owner_id, email.id, now)
                except Exception:
                    logger.exception(f"waking {email.owner_id}/{email.id} failed")
                    continue
                if is_err(result):
                    logger.error(
                        f"waking {email.owner_id}/{email.id} failed: {result.err_value}"
                    )
                    continue
                if result.ok_value:
                    woken += 1
            return woken

    async def run(self) -> None:
        logger.info(f"Start snooze scheduler, checking every {self.interval}s")
        while not self._stop_event.is_set():
            if self._current_tick is None or self._current_tick.done():
                self._current_tick = asyncio.create_task(self.tick())
            else:
                logger.warning("previous snooze tick still running, skipping this one")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass

        if self._current_tick is not None:
            await asyncio.gather(self._current_tick, return_exceptions=True)
        logger.info("snooze scheduler stopped")

    def stop(self) -> None:
        self._stop_event.set()
