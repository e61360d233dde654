"""Data models for the event tracker."""
from dataclasses import dataclass
from datetime import date
from enum import Enum


class EventDirection(str, Enum):
    """
    Counting direction of an event.

    UP: date in the past, show how long since (birthdays, anniversaries).
    DOWN: date in the future, show how long until (holidays, retirement).
    """
    UP = 'Up'
    DOWN = 'Down'


@dataclass
class Event:
    """Tracked event, owned by the host."""
    title: str
    date: date
    direction: EventDirection
    visible: bool = True


@dataclass(frozen=True)
class DateDifference:
    """Calendar-exact breakdown between two dates."""
    years: int
    months: int
    days: int

    @property
    def is_zero(self) -> bool:
        return self.years == 0 and self.months == 0 and self.days == 0


@dataclass(frozen=True)
class NextOccurrence:
    """Time remaining until the next anniversary of an event's month/day."""
    months: int
    days: int

    @property
    def is_today(self) -> bool:
        return self.months == 0 and self.days == 0
