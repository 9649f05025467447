import asyncio
import os
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from src.db.core import session_local
from src.logging_config import get_logger
from src.models.expense import RecurringRunSummary
from src.services.recurring_expenses import run_recurring_job

logger = get_logger(__name__)


RECURRING_JOB_ENABLED = os.getenv("RECURRING_JOB_ENABLED", "true").lower() == "true"
RECURRING_INTERVAL_HOURS = float(os.getenv("RECURRING_INTERVAL_HOURS", "24"))


class RecurringExpenseScheduler:
    """
    Runs the recurring expense job once on start and then on a fixed interval.

    The job itself is blocking SQLAlchemy work, so each run gets its own
    session in a worker thread. Runs never overlap: a tick that arrives while
    a run is in progress is skipped.
    """

    def __init__(
        self,
        session_factory: sessionmaker = session_local,
        interval_seconds: float = RECURRING_INTERVAL_HOURS * 60 * 60,
        clock: Callable[[], date] = date.today,
    ):
        self._session_factory = session_factory
        self._interval_seconds = interval_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.last_summary: Optional[RecurringRunSummary] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def _run_blocking(self, today: date) -> RecurringRunSummary:
        db: Session = self._session_factory()
        try:
            return run_recurring_job(db, today)
        finally:
            db.close()

    async def run_once(self, today: Optional[date] = None) -> Optional[RecurringRunSummary]:
        """Run the job now. Returns None if a run is already in progress."""
        if self._lock.locked():
            logger.warning("Recurring expense job still running, skipping this tick")
            return None

        async with self._lock:
            run_date = today or self._clock()
            summary = await asyncio.to_thread(self._run_blocking, run_date)
            self.last_summary = summary
            return summary

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Recurring expense job failed")
            await asyncio.sleep(self._interval_seconds)

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        logger.info(f"Starting recurring expense scheduler (every {self._interval_seconds:.0f}s)")
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Recurring expense scheduler stopped")
