"""Timer scheduling for periodic refresh of event differences."""
import logging
import threading
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
REFRESH_OFFSET_MINUTES = 10


class ScheduledTask(Protocol):
    """Handle returned by a scheduler."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Capability that runs a callback after a delay, optionally repeating."""

    def schedule(
        self,
        callback: Callable[[], None],
        delay_seconds: float,
        interval_seconds: Optional[float] = None
    ) -> ScheduledTask:
        ...


def seconds_until_next_refresh(
    now: datetime,
    offset_minutes: int = REFRESH_OFFSET_MINUTES
) -> float:
    """
    Calculate the delay until the next local midnight plus an offset.

    The offset keeps the refresh clear of the day boundary itself. Both
    instants are compared in UTC, so a day with a DST change yields 23 or
    25 hours of real time. Naive datetimes are read as host local time.

    Args:
        now: Current local datetime
        offset_minutes: Minutes past midnight to refresh at

    Returns:
        Delay in seconds
    """
    next_midnight = datetime.combine(
        now.date() + timedelta(days=1), time(), tzinfo=now.tzinfo
    )
    target = next_midnight + timedelta(minutes=offset_minutes)
    return (target.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds()


class _TimerTask:
    """Runs a callback once after a delay, then every interval until cancelled."""

    def __init__(
        self,
        callback: Callable[[], None],
        delay_seconds: float,
        interval_seconds: Optional[float]
    ):
        self._callback = callback
        self._interval = interval_seconds
        self._lock = threading.Lock()
        self._cancelled = False
        self._timer = None
        self._start_timer(delay_seconds)

    def _start_timer(self, delay_seconds: float) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._timer = threading.Timer(delay_seconds, self._run)
            self._timer.daemon = True
            self._timer.start()

    def _run(self) -> None:
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Scheduled callback failed: {e}", exc_info=True)

        if self._interval is not None:
            self._start_timer(self._interval)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class ThreadingScheduler:
    """Scheduler backed by daemon ``threading.Timer`` threads."""

    def schedule(
        self,
        callback: Callable[[], None],
        delay_seconds: float,
        interval_seconds: Optional[float] = None
    ) -> _TimerTask:
        """
        Schedule a callback.

        Args:
            callback: Function to call, takes no arguments
            delay_seconds: Delay before the first call
            interval_seconds: Delay between later calls; None runs once

        Returns:
            Task handle with cancel()
        """
        logger.debug(
            f"Scheduling callback in {delay_seconds:.0f}s "
            f"(interval: {interval_seconds})"
        )
        return _TimerTask(callback, max(delay_seconds, 0), interval_seconds)
