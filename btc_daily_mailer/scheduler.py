from __future__ import annotations

import logging
import threading
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from .config import SCHEDULE_HOUR, SCHEDULE_JOB_NAME, SCHEDULE_MINUTE

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DailyScheduler:
    """Run a job once a day at a fixed wall-clock time in a timezone.

    Exceptions raised by the job are logged and swallowed so a failed run never
    stops the schedule.
    """

    def __init__(
        self,
        job: Callable[[], None],
        tz_name: str,
        hour: int = SCHEDULE_HOUR,
        minute: int = SCHEDULE_MINUTE,
        name: str = SCHEDULE_JOB_NAME,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._job = job
        self._tz = ZoneInfo(tz_name)
        self._at = time(hour, minute)
        self.name = name
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def next_run_after(self, now: datetime) -> datetime:
        local_now = now.astimezone(self._tz)
        candidate = datetime.combine(local_now.date(), self._at, tzinfo=self._tz)
        if candidate <= local_now:
            candidate = datetime.combine(local_now.date() + timedelta(days=1), self._at, tzinfo=self._tz)
        return candidate

    def fire(self) -> None:
        try:
            self._job()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Scheduled job %s failed: %s", self.name, exc)

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run_forever, name=self.name, daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()

    def run_forever(self) -> None:
        while not self._stop.is_set():
            target = self.next_run_after(self._clock())
            logger.info("Next %s run at %s", self.name, target.isoformat())
            if not self._sleep_until(target):
                return
            self.fire()

    def _sleep_until(self, target: datetime) -> bool:
        while True:
            now = self._clock()
            if now >= target:
                return True
            if self._stop.wait(min(30.0, max(1.0, (target - now).total_seconds()))):
                return False
