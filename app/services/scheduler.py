"""In-process daily job scheduler.

Each job runs once a day at a fixed local time. ``tick()`` is public so tests
can drive the scheduler with an explicit clock; ``start()``/``stop()`` run it
on a daemon thread.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.notification_service import ReminderService, get_notifier
from app.services.payment_lifecycle import PaymentLifecycle
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def next_run_after(now: datetime, at: time) -> datetime:
    candidate = datetime.combine(now.date(), at)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


@dataclass
class DailyJob:
    name: str
    at: time
    fn: Callable[[], object]
    next_run: Optional[datetime] = None


class DailyScheduler:
    def __init__(
            self,
            clock: Optional[Callable[[], datetime]] = None,
            tick_interval_seconds: int = 30,
    ):
        self._clock = clock or datetime.now
        self._tick_interval = tick_interval_seconds
        self._jobs: list[DailyJob] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def jobs(self) -> list[DailyJob]:
        return list(self._jobs)

    def add_job(self, name: str, at: time, fn: Callable[[], object]) -> DailyJob:
        job = DailyJob(name=name, at=at, fn=fn, next_run=next_run_after(self._clock(), at))
        self._jobs.append(job)
        logger.info("Scheduled %s for %s", name, job.next_run)
        return job

    def tick(self, now: Optional[datetime] = None) -> int:
        """Run every job whose time has come. Returns how many were fired."""
        now = now or self._clock()
        fired = 0
        for job in self._jobs:
            if job.next_run is None or job.next_run > now:
                continue
            try:
                job.fn()
            except Exception:
                logger.exception("Scheduled job %s failed", job.name)
            job.next_run = next_run_after(now, job.at)
            fired += 1
        return fired

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="daily-scheduler", daemon=True)
        self._thread.start()
        logger.info("Payment reminder scheduler started")

    def stop(self, timeout: float = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("Payment reminder scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._tick_interval)


def _with_session(session_factory: Callable[[], Session], fn: Callable[[Session], object]):
    def run():
        db = session_factory()
        try:
            return fn(db)
        finally:
            db.close()

    run.__name__ = getattr(fn, "__name__", "job")
    return run


def build_default_scheduler(session_factory: Callable[[], Session], notifier=None) -> DailyScheduler:
    notifier = notifier or get_notifier()
    scheduler = DailyScheduler()

    scheduler.add_job(
        "sweep_overdue",
        time(0, 5),
        _with_session(session_factory, lambda db: PaymentLifecycle(RecordStore(db)).sweep_overdue()),
    )
    scheduler.add_job(
        "today_reminders",
        time(9, 0),
        _with_session(session_factory, lambda db: ReminderService(db, notifier).send_today_reminders()),
    )
    scheduler.add_job(
        "upcoming_reminders",
        time(10, 0),
        _with_session(
            session_factory,
            lambda db: ReminderService(db, notifier).send_upcoming_reminders(settings.UPCOMING_REMINDER_DAYS),
        ),
    )
    scheduler.add_job(
        "overdue_reminders",
        time(11, 0),
        _with_session(session_factory, lambda db: ReminderService(db, notifier).send_overdue_reminders()),
    )
    scheduler.add_job(
        "daily_summary",
        time(20, 0),
        _with_session(session_factory, lambda db: ReminderService(db, notifier).send_daily_summary()),
    )
    return scheduler
