"""
Domain models for availability rules and resolved slots.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional

import pendulum
from pendulum import DateTime

# Day key -> ordered "hh:mm AM/PM" strings; days without slots are absent.
ResolvedDaySlots = Dict[str, List[str]]


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def contains(self, instant: DateTime) -> bool:
        """Check if an instant lies inside the range, both ends included."""
        return self.start <= instant <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('YYYY-MM-DD HH:mm')}"


@dataclass(frozen=True)
class MinuteWindow:
    """
    Minutes-since-midnight window with both ends included.

    ``MinuteWindow(0, 0)`` is the store's convention for "not configured".
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    @property
    def is_unset(self) -> bool:
        return self.start == 0 and self.end == 0

    def contains(self, minute: int) -> bool:
        return self.start <= minute <= self.end

    def __str__(self) -> str:
        return f"{_clock(self.start)}-{_clock(self.end)}"


def _clock(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


@dataclass(frozen=True)
class StoreHours:
    """Business-wide opening hours for one weekday."""
    weekday: str
    is_open: bool
    open_minute: int = 0
    close_minute: int = 0

    def accepts(self, minute: int) -> bool:
        """Whether a slot at ``minute`` lies within opening hours."""
        return self.is_open and self.open_minute <= minute <= self.close_minute


@dataclass(frozen=True)
class StaffHours:
    """
    One staff member's working pattern.

    Weekend days win over any window configured for the same weekday.
    """
    staff_id: str
    per_weekday: Mapping[str, MinuteWindow] = field(default_factory=dict)
    weekend_days: FrozenSet[str] = frozenset()
    lunch: Optional[MinuteWindow] = None


def _applies_to(entry_staff_id: Optional[str], staff_id: Optional[str]) -> bool:
    # Entries without a staff id are store-wide
    return entry_staff_id is None or entry_staff_id == staff_id


@dataclass(frozen=True)
class TimeOffEntry:
    """
    Date-ranged unavailability, store-wide when ``staff_id`` is None.

    Covers the half-open day range ``[start_day, end_day)``.
    """
    staff_id: Optional[str]
    start_day: pendulum.Date
    end_day: pendulum.Date
    name: str = ""

    def applies_to(self, staff_id: Optional[str]) -> bool:
        return _applies_to(self.staff_id, staff_id)

    def covers(self, day_key: str) -> bool:
        return self.start_day.to_date_string() <= day_key < self.end_day.to_date_string()


@dataclass(frozen=True)
class TimeBlockEntry:
    """
    Minute-range unavailability, either weekly on ``recurring_weekday`` or on
    one ``specific_day``.
    """
    staff_id: Optional[str]
    window: MinuteWindow
    recurring: bool
    recurring_weekday: Optional[str] = None
    specific_day: Optional[pendulum.Date] = None
    name: str = ""

    def applies_to(self, staff_id: Optional[str]) -> bool:
        return _applies_to(self.staff_id, staff_id)

    def blocks(self, minute: int, weekday: str, day_key: str) -> bool:
        if self.recurring:
            matches_day = self.recurring_weekday == weekday
        else:
            matches_day = (
                self.specific_day is not None
                and self.specific_day.to_date_string() == day_key
            )
        return matches_day and self.window.contains(minute)


@dataclass(frozen=True)
class StaffLeaveEntry:
    """
    A dated staff absence: the whole day, or a window of it for a half day.
    """
    staff_id: str
    day: pendulum.Date
    full_day: bool
    window: Optional[MinuteWindow] = None
    leave_type: str = ""

    def applies_to(self, staff_id: Optional[str]) -> bool:
        return self.staff_id == staff_id

    def blocks(self, minute: int, day_key: str) -> bool:
        if self.day.to_date_string() != day_key:
            return False
        if self.full_day:
            return True
        return self.window is not None and self.window.contains(minute)


@dataclass(frozen=True)
class DateRange:
    """
    Consecutive local calendar days and the absolute window spanning them.
    """
    days: List[str]
    window: TimeRange

    @property
    def first_day(self) -> str:
        return self.days[0]

    @property
    def last_day(self) -> str:
        return self.days[-1]

    def __contains__(self, day_key: object) -> bool:
        return day_key in self.days
