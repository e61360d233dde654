"""Event list host: CRUD, ordering, persistence and periodic refresh."""
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from calculator.date_calculator import DateDifferenceCalculator
from calculator.dates import to_calendar_date
from calculator.models import Event, EventDirection
from scheduler.refresh_scheduler import (
    Scheduler,
    ScheduledTask,
    seconds_until_next_refresh,
)
from storage.event_store import EventStore

logger = logging.getLogger(__name__)


class EventTracker:
    """
    Keeps the ordered event list and the display text for each event.

    Every mutation saves the list and recomputes the differences; a
    scheduler, when given, refreshes them again shortly after each local
    midnight.
    """

    DEFAULT_EVENT_TITLE = 'Started using Event Tracker'

    def __init__(
        self,
        store: EventStore,
        calculator: Optional[DateDifferenceCalculator] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], datetime] = datetime.now,
        on_refresh: Optional[Callable[[Dict[int, str]], None]] = None
    ):
        """
        Initialize the tracker.

        Args:
            store: Persistence capability for the event list
            calculator: Difference calculator (default: DateDifferenceCalculator)
            scheduler: Timer capability used by start(); None disables timers
            clock: Returns the current local datetime
            on_refresh: Called with the new differences after each refresh
        """
        self.store = store
        self.calculator = calculator or DateDifferenceCalculator()
        self.scheduler = scheduler
        self.clock = clock
        self.on_refresh = on_refresh
        self.events: List[Event] = []
        self.event_differences: Dict[int, str] = {}
        self._refresh_task: Optional[ScheduledTask] = None
        self._running = False
        self._schedule_lock = threading.Lock()

    def load(self) -> List[Event]:
        """
        Load events from the store, seeding a default event when empty.

        Returns:
            The loaded event list
        """
        today = to_calendar_date(self.clock())
        self.events = self.store.load(today=today)

        if not self.events:
            logger.info("No events found, adding default event")
            self.events.append(Event(
                title=self.DEFAULT_EVENT_TITLE,
                date=today,
                direction=EventDirection.UP,
                visible=True
            ))
            self.save()

        logger.info(f"Loaded {len(self.events)} events")
        return self.events

    def save(self) -> None:
        """Drop invalid events, then persist the list."""
        valid_events = [event for event in self.events if self._is_valid(event)]
        dropped = len(self.events) - len(valid_events)
        if dropped:
            logger.warning(f"Dropping {dropped} invalid events before saving")

        self.events = valid_events
        self.store.save(self.events)

    def add_event(
        self,
        title: str,
        date: Any,
        direction: Optional[EventDirection] = None,
        visible: bool = True
    ) -> Event:
        """
        Add an event to the end of the list.

        Args:
            title: Event label
            date: Event date in any form accepted by to_calendar_date
            direction: Counting direction; inferred from today when None
            visible: Display flag

        Returns:
            The added Event

        Raises:
            InvalidDateInput: If the date cannot be resolved
            ValueError: If the title is blank
        """
        event_date = to_calendar_date(date)
        if direction is None:
            direction = self.calculator.determine_direction(self.clock(), event_date)

        event = Event(
            title=self._clean_title(title),
            date=event_date,
            direction=EventDirection(direction),
            visible=bool(visible)
        )
        self.events.append(event)
        logger.info(f"Added event '{event.title}' ({event.date.isoformat()})")

        self.save()
        self.refresh()
        return event

    def update_event(
        self,
        index: int,
        title: Optional[str] = None,
        date: Any = None,
        direction: Optional[EventDirection] = None,
        visible: Optional[bool] = None
    ) -> Event:
        """
        Change fields of an existing event; None leaves a field unchanged.

        The stored direction is never re-derived from a new date.

        Raises:
            IndexError: If no event exists at ``index``
            InvalidDateInput: If the date cannot be resolved
            ValueError: If the title is blank
        """
        self._check_index(index)
        event = self.events[index]

        # Validate everything before touching the event
        new_title = self._clean_title(title) if title is not None else event.title
        new_date = to_calendar_date(date) if date is not None else event.date
        new_direction = (
            EventDirection(direction) if direction is not None else event.direction
        )

        event.title = new_title
        event.date = new_date
        event.direction = new_direction
        if visible is not None:
            event.visible = bool(visible)

        logger.info(f"Updated event {index} '{event.title}'")
        self.save()
        self.refresh()
        return event

    def delete_event(self, index: int) -> Event:
        """
        Remove the event at ``index``.

        Raises:
            IndexError: If no event exists at ``index``
        """
        self._check_index(index)
        event = self.events.pop(index)
        logger.info(f"Deleted event '{event.title}'")

        self.save()
        self.refresh()
        return event

    def move_event(self, previous_index: int, current_index: int) -> None:
        """
        Move an event within the list, as a drag-and-drop reorder does.

        Both indices are clamped to the list bounds.
        """
        if not self.events:
            return

        last = len(self.events) - 1
        source = max(0, min(previous_index, last))
        target = max(0, min(current_index, last))
        if source == target:
            return

        event = self.events.pop(source)
        self.events.insert(target, event)
        logger.info(f"Moved event '{event.title}' from {source} to {target}")

        self.save()
        self.refresh()

    def set_visible(self, index: int, visible: bool) -> Event:
        """Show or hide the event at ``index``."""
        return self.update_event(index, visible=visible)

    def toggle_visible(self, index: int) -> Event:
        """Flip the visibility flag of the event at ``index``."""
        self._check_index(index)
        return self.set_visible(index, not self.events[index].visible)

    def visible_events(self) -> List[Tuple[int, Event]]:
        """Return (index, event) pairs for events marked visible."""
        return [
            (index, event) for index, event in enumerate(self.events)
            if event.visible
        ]

    def refresh(self) -> Dict[int, str]:
        """
        Recompute the display text of every event against one "now".

        Returns:
            Dictionary mapping event index to display text
        """
        now = self.clock()
        self.event_differences = self.calculator.format_event_differences(
            now, self.events
        )
        logger.debug(f"Refreshed event differences at {now.isoformat()}")

        if self.on_refresh:
            self.on_refresh(self.event_differences)
        return self.event_differences

    def differences_html(self) -> Dict[int, str]:
        """Return the current differences with numbers wrapped in bold markup."""
        return {
            index: self.calculator.emphasize_numbers(text)
            for index, text in self.event_differences.items()
        }

    def start(self) -> None:
        """
        Refresh now, then shortly after every local midnight.

        Each run schedules the next one from the clock, so the refresh stays
        just after midnight across DST changes.

        Raises:
            RuntimeError: If the tracker was created without a scheduler
        """
        if self.scheduler is None:
            raise RuntimeError("EventTracker.start() requires a scheduler")

        self.stop()
        self.refresh()

        with self._schedule_lock:
            self._running = True
            self._schedule_next_refresh()

    def stop(self) -> None:
        """Cancel any scheduled refresh."""
        with self._schedule_lock:
            self._running = False
            if self._refresh_task is not None:
                self._refresh_task.cancel()
                self._refresh_task = None
                logger.info("Stopped scheduled refresh")

    def _scheduled_refresh(self) -> None:
        try:
            self.refresh()
        finally:
            with self._schedule_lock:
                if self._running:
                    self._schedule_next_refresh()

    def _schedule_next_refresh(self) -> None:
        delay = seconds_until_next_refresh(self.clock())
        self._refresh_task = self.scheduler.schedule(self._scheduled_refresh, delay)
        logger.info(f"Next refresh scheduled in {delay:.0f} seconds")

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.events):
            raise IndexError(f"No event at index {index}")

    @staticmethod
    def _clean_title(title: str) -> str:
        if not isinstance(title, str) or not title.strip():
            raise ValueError("Event title must not be empty")
        return title.strip()

    @staticmethod
    def _is_valid(event: Event) -> bool:
        return (
            isinstance(event.title, str) and bool(event.title.strip()) and
            event.date is not None and
            isinstance(event.visible, bool)
        )
