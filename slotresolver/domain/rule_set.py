"""
All availability rule layers for one resolution request.

``AvailabilityRuleSet`` is a read-only holder with weekday- and day-keyed
lookups. ``AvailabilityRuleSet.from_rows`` builds it from raw rule-store rows;
a row that cannot be read is logged and left out, it never fails the build.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, TypeVar

from pendulum import DateTime

from .exceptions import RuleParseWarning
from .models import (
    MinuteWindow,
    StaffHours,
    StaffLeaveEntry,
    StoreHours,
    TimeBlockEntry,
    TimeOffEntry,
)
from .rule_parser import (
    normalize_weekday,
    parse_bool_field,
    parse_flexible_date,
    parse_minute_field,
    parse_weekday_index,
    parse_weekday_set,
)
from .time_arithmetic import WEEKDAY_NAMES

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
T = TypeVar("T")

FULL_DAY_LEAVE = "full day"
HALF_DAY_LEAVE = "half day"


@dataclass(frozen=True)
class AvailabilityRuleSet:
    """Store, staff, time-off, time-block and leave rules for one request."""
    store_hours: Mapping[str, StoreHours] = field(default_factory=dict)
    staff_hours: Optional[StaffHours] = None
    time_off: Tuple[TimeOffEntry, ...] = ()
    time_blocks: Tuple[TimeBlockEntry, ...] = ()
    staff_leaves: Tuple[StaffLeaveEntry, ...] = ()

    def store_hours_for(self, weekday: str) -> Optional[StoreHours]:
        return self.store_hours.get(weekday)

    def is_staff_weekend(self, weekday: str) -> bool:
        return self.staff_hours is not None and weekday in self.staff_hours.weekend_days

    def staff_window_for(self, weekday: str) -> Optional[MinuteWindow]:
        """
        The staff member's working window on ``weekday``.

        None when no staff hours are loaded, the weekday is unconfigured or
        set to the ``{0, 0}`` sentinel, or it is one of the staff's weekend
        days.
        """
        if self.staff_hours is None or self.is_staff_weekend(weekday):
            return None
        window = self.staff_hours.per_weekday.get(weekday)
        if window is None or window.is_unset:
            return None
        return window

    def lunch_blocks(self, minute: int) -> bool:
        lunch = self.staff_hours.lunch if self.staff_hours else None
        return lunch is not None and lunch.contains(minute)

    def time_off_blocking(self, staff_id: Optional[str], day_key: str) -> bool:
        for entry in self.time_off:
            if entry.applies_to(staff_id) and entry.covers(day_key):
                logger.debug("%s blocked by time off %r", day_key, entry.name)
                return True
        return False

    def time_block_blocking(
        self,
        staff_id: Optional[str],
        instant: DateTime,
        minute_of_day: int,
        weekday: str,
        day_key: str,
    ) -> bool:
        for block in self.time_blocks:
            if block.applies_to(staff_id) and block.blocks(minute_of_day, weekday, day_key):
                logger.debug("Slot %s blocked by time block %r", instant, block.name)
                return True
        return False

    def leave_blocking(self, staff_id: Optional[str], minute_of_day: int, day_key: str) -> bool:
        return any(
            leave.applies_to(staff_id) and leave.blocks(minute_of_day, day_key)
            for leave in self.staff_leaves
        )

    @classmethod
    def from_rows(
        cls,
        *,
        timezone: str,
        store_rows: Iterable[Row] = (),
        staff_row: Optional[Row] = None,
        staff_id: Optional[str] = None,
        time_off_rows: Iterable[Row] = (),
        time_block_rows: Iterable[Row] = (),
        leave_rows: Iterable[Row] = (),
    ) -> "AvailabilityRuleSet":
        """
        Build a rule set from rule-store rows.

        Args:
            timezone: Operating timezone used to date instants found in rows
            store_rows: ``business_hours`` rows
            staff_row: The staff member's ``barber_hours`` row, if any
            staff_id: Identifier the staff row was requested under
            time_off_rows: ``time_off`` rows (staff-specific and store-wide)
            time_block_rows: ``time_block`` rows (staff-specific and store-wide)
            leave_rows: ``staff_leaves`` rows

        Returns:
            AvailabilityRuleSet with every readable row
        """
        store_hours = {}
        for hours in _collect(store_rows, _store_hours_from_row, "store hours"):
            if hours.weekday in store_hours:
                logger.warning("Duplicate store hours for %s; keeping the first row", hours.weekday)
                continue
            store_hours[hours.weekday] = hours

        staff_hours = None
        if staff_row is not None:
            staff_hours = _collect_one(
                staff_row,
                lambda row: _staff_hours_from_row(row, staff_id),
                "staff hours",
            )

        return cls(
            store_hours=store_hours,
            staff_hours=staff_hours,
            time_off=tuple(
                _collect(time_off_rows, lambda row: _time_off_from_row(row, timezone), "time off")
            ),
            time_blocks=tuple(
                _collect(time_block_rows, lambda row: _time_block_from_row(row, timezone), "time block")
            ),
            staff_leaves=tuple(
                _collect(leave_rows, lambda row: _leave_from_row(row, timezone), "staff leave")
            ),
        )


def _collect(rows: Iterable[Row], build: Callable[[Row], Optional[T]], kind: str) -> List[T]:
    """Build every readable row; rows that build to None are filtered out."""
    built: List[T] = []
    for row in rows or ():
        item = _collect_one(row, build, kind)
        if item is not None:
            built.append(item)
    return built


def _collect_one(row: Row, build: Callable[[Row], T], kind: str) -> Optional[T]:
    if not isinstance(row, Mapping):
        logger.warning("Skipping %s row of type %s", kind, type(row).__name__)
        return None
    try:
        return build(row)
    except RuleParseWarning as warning:
        logger.warning("Skipping %s row %s: %s", kind, _row_label(row), warning)
        return None


def _row_label(row: Row) -> str:
    for key in ("id", "Block/Name", "Event/Name", "ghl_id", "day_of_week"):
        if row.get(key) not in (None, ""):
            return f"{key}={row[key]!r}"
    return "<unnamed>"


def _staff_id_of(row: Row) -> Optional[str]:
    value = row.get("ghl_id")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _window(start: Any, end: Any, label: str) -> MinuteWindow:
    start_minute = parse_minute_field(start)
    end_minute = parse_minute_field(end)
    if start_minute is None or end_minute is None:
        raise RuleParseWarning(f"{label} window {start!r}-{end!r} is not readable")
    try:
        return MinuteWindow(start_minute, end_minute)
    except ValueError as exc:
        raise RuleParseWarning(f"{label} window: {exc}") from exc


def _store_hours_from_row(row: Row) -> StoreHours:
    weekday = parse_weekday_index(row.get("day_of_week"))
    if weekday is None:
        raise RuleParseWarning(f"unknown day_of_week {row.get('day_of_week')!r}")

    if not parse_bool_field(row.get("is_open")):
        return StoreHours(weekday=weekday, is_open=False)

    window = _window(row.get("open_time"), row.get("close_time"), f"{weekday} store")
    return StoreHours(
        weekday=weekday,
        is_open=True,
        open_minute=window.start,
        close_minute=window.end,
    )


def _first_present(row: Row, *keys: str) -> Any:
    for key in keys:
        if parse_minute_field(row.get(key)) is not None:
            return row[key]
    return None


def _staff_hours_from_row(row: Row, staff_id: Optional[str]) -> StaffHours:
    resolved_id = staff_id or _staff_id_of(row)
    if resolved_id is None:
        raise RuleParseWarning("staff hours row has no staff id")

    per_weekday = {}
    for weekday in WEEKDAY_NAMES:
        start = row.get(f"{weekday}/Start Value")
        end = row.get(f"{weekday}/End Value")
        if start in (None, "") and end in (None, ""):
            continue
        try:
            per_weekday[weekday] = _window(start, end, weekday)
        except RuleParseWarning as warning:
            # One bad weekday leaves the others usable
            logger.warning("Ignoring %s hours for staff %s: %s", weekday, resolved_id, warning)

    lunch = None
    lunch_start = _first_present(row, "Lunch/Start", "Lunch/Start Value")
    lunch_end = _first_present(row, "Lunch/End", "Lunch/End Value")
    if lunch_start is not None or lunch_end is not None:
        try:
            lunch = _window(lunch_start, lunch_end, "lunch")
        except RuleParseWarning as warning:
            logger.warning("Ignoring lunch break for staff %s: %s", resolved_id, warning)
        else:
            if lunch.is_unset:
                lunch = None

    return StaffHours(
        staff_id=resolved_id,
        per_weekday=per_weekday,
        weekend_days=parse_weekday_set(row.get("weekend_days")),
        lunch=lunch,
    )


def _time_off_from_row(row: Row, timezone: str) -> TimeOffEntry:
    start_day = parse_flexible_date(row.get("Event/Start"), timezone)
    if start_day is None:
        raise RuleParseWarning(f"unreadable start {row.get('Event/Start')!r}")

    end_raw = row.get("Event/End")
    end_day = parse_flexible_date(end_raw, timezone)
    if end_day is None:
        if end_raw not in (None, ""):
            raise RuleParseWarning(f"unreadable end {end_raw!r}")
        end_day = start_day.add(days=1)
    elif end_day < start_day:
        raise RuleParseWarning(f"ends {end_day} before it starts {start_day}")
    elif end_day == start_day:
        # A same-day entry blocks that single day rather than nothing;
        # the plain [start, end) reading would make such rows inert
        end_day = start_day.add(days=1)

    return TimeOffEntry(
        staff_id=_staff_id_of(row),
        start_day=start_day,
        end_day=end_day,
        name=str(row.get("Event/Name") or ""),
    )


def _time_block_from_row(row: Row, timezone: str) -> TimeBlockEntry:
    name = str(row.get("Block/Name") or "")
    window = _window(row.get("Block/Start"), row.get("Block/End"), "block")

    if parse_bool_field(row.get("Block/Recurring")):
        weekday = normalize_weekday(row.get("Block/Recurring Day"))
        if weekday is None:
            raise RuleParseWarning(f"unknown recurring day {row.get('Block/Recurring Day')!r}")
        return TimeBlockEntry(
            staff_id=_staff_id_of(row),
            window=window,
            recurring=True,
            recurring_weekday=weekday,
            name=name,
        )

    specific_day = parse_flexible_date(row.get("Block/Date"), timezone)
    if specific_day is None:
        raise RuleParseWarning(f"unreadable block date {row.get('Block/Date')!r}")
    return TimeBlockEntry(
        staff_id=_staff_id_of(row),
        window=window,
        recurring=False,
        specific_day=specific_day,
        name=name,
    )


def _leave_from_row(row: Row, timezone: str) -> Optional[StaffLeaveEntry]:
    status = row.get("event_status")
    if status is not None and str(status).strip().lower() != "upcoming":
        return None

    staff_id = _staff_id_of(row)
    if staff_id is None:
        raise RuleParseWarning("leave row has no staff id")

    day = parse_flexible_date(row.get("unavailable_date"), timezone)
    if day is None:
        raise RuleParseWarning(f"unreadable leave date {row.get('unavailable_date')!r}")

    leave_type = str(row.get("leave_type") or "").strip()
    kind = leave_type.lower()
    if kind == FULL_DAY_LEAVE:
        return StaffLeaveEntry(staff_id=staff_id, day=day, full_day=True, leave_type=leave_type)
    if kind == HALF_DAY_LEAVE:
        window = _window(row.get("start_time"), row.get("end_time"), "half-day leave")
        return StaffLeaveEntry(
            staff_id=staff_id,
            day=day,
            full_day=False,
            window=window,
            leave_type=leave_type,
        )
    raise RuleParseWarning(f"unknown leave type {leave_type!r}")
