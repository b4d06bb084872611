"""Recurrence calculation and idempotent firing of scheduled reports.

``next_run`` is pure. The timer that triggers a firing lives outside the
engine and calls ``ScheduleRunner.fire``; a duplicate trigger for a schedule
that already advanced is a no-op.
"""

import calendar
import threading
import weakref
from collections.abc import Callable
from datetime import datetime, timedelta

from loguru import logger

from ..exceptions import NotFoundError
from ..models.report import Frequency, ScheduledReport, coerce_enum
from ..stores import ScheduleStore


def add_month(moment: datetime, day: int | None = None) -> datetime:
    """Day ``day`` (default: same day) of next month, clamped to its last day."""
    year = moment.year + moment.month // 12
    month = moment.month % 12 + 1
    day = min(day or moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def next_run(
    frequency: Frequency | str,
    from_: datetime | None = None,
    anchor_day: int | None = None,
) -> datetime:
    """Next execution time after ``from_`` (default: now).

    daily   -> +24h
    weekly  -> +7 x 24h
    monthly -> +1 calendar month on ``anchor_day`` (default: the day of
               ``from_``), clamped to short months. Jan 31 -> Feb 29 -> Mar 31
               when anchored on the 31st.

    Raises:
        ValidationError: Unknown frequency.
    """
    frequency = coerce_enum(Frequency, frequency, "frequency")
    from_ = from_ or datetime.now()

    if frequency == Frequency.DAILY:
        return from_ + timedelta(hours=24)
    if frequency == Frequency.WEEKLY:
        return from_ + timedelta(days=7)
    return add_month(from_, anchor_day)


class ScheduleRunner:
    """Fires scheduled reports at most once per period.

    A per-schedule lock serializes concurrent triggers inside this process;
    the store's compare-and-set on ``next_run`` makes a stale trigger a no-op
    across processes too.
    """

    def __init__(self, store: ScheduleStore):
        self.store = store
        # Entries vanish once no trigger holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def _lock_for(self, schedule_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(schedule_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[schedule_id] = lock
            return lock

    def fire(
        self,
        schedule_id: str,
        expected_next_run: datetime,
        regenerate: Callable[[ScheduledReport], object],
        now: datetime | None = None,
    ) -> bool:
        """Run ``regenerate`` once for the period ending ``expected_next_run``.

        Args:
            schedule_id: Schedule to fire
            expected_next_run: The ``next_run`` value the trigger was armed for
            regenerate: Callback re-running the report pipeline
            now: Firing time (default: now)

        Returns:
            True if this call fired, False if the trigger was a duplicate,
            stale, or the schedule is disabled.

        Raises:
            NotFoundError: Unknown schedule.
        """
        with self._lock_for(schedule_id):
            schedule = self.store.get(schedule_id)
            if schedule is None:
                raise NotFoundError("ScheduledReport", schedule_id)

            if not schedule.enabled:
                logger.info("Schedule {} is disabled, skipping", schedule_id)
                return False

            if schedule.next_run != expected_next_run:
                logger.warning(
                    "Duplicate trigger for schedule {} (expected {}, current {})",
                    schedule_id,
                    expected_next_run,
                    schedule.next_run,
                )
                return False

            fired_at = now or datetime.now()
            following = next_run(schedule.frequency, schedule.next_run, schedule.anchor_day)
            if not self.store.compare_and_set_next_run(
                schedule_id, expected_next_run, following, fired_at
            ):
                logger.warning("Schedule {} advanced concurrently, skipping", schedule_id)
                return False

            logger.info(
                "Firing schedule {} for report {}; next run {}",
                schedule_id,
                schedule.report_id,
                following,
            )
            regenerate(schedule)
            return True
