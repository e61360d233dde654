"""Event list persistence interface."""
import copy
import logging
from datetime import date
from typing import List, Optional, Protocol

from calculator.models import Event

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    """Capability for loading and saving the ordered event list."""

    def load(self, today: Optional[date] = None) -> List[Event]:
        """Return the stored events; today resolves records without a direction."""

    def save(self, events: List[Event]) -> None:
        ...


class InMemoryEventStore:
    """Event store kept in process memory, for tests and local runs."""

    def __init__(self, events: Optional[List[Event]] = None):
        self._events = copy.deepcopy(events) if events else []

    def load(self, today: Optional[date] = None) -> List[Event]:
        logger.debug(f"Loading {len(self._events)} events from memory")
        return copy.deepcopy(self._events)

    def save(self, events: List[Event]) -> None:
        self._events = copy.deepcopy(events)
        logger.debug(f"Saved {len(self._events)} events to memory")
