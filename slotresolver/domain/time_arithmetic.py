"""
Timezone-aware conversions between absolute instants and the business's
local wall clock.

Every local-day and local-time computation in the package goes through a
single ``TimeArithmetic`` instance so that minute-of-day, day key and weekday
are always derived from the same conversion.
"""

from datetime import datetime
from typing import Any, Tuple

import pendulum
from pendulum import DateTime

# Indexed by ``isoweekday() % 7`` so that 0 is Sunday, as in the rule store.
WEEKDAY_NAMES: Tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

# Epoch values above this are taken to be milliseconds.
_MILLISECOND_THRESHOLD = 100_000_000_000


def parse_instant(raw: Any) -> DateTime:
    """
    Parse a provider slot value into an aware instant.

    Accepts ISO 8601 strings (naive strings are read as UTC), epoch seconds or
    milliseconds, and ``datetime`` objects.

    Raises:
        ValueError: If the value does not describe a point in time
    """
    if isinstance(raw, DateTime):
        return raw

    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return pendulum.instance(raw, tz="UTC")
        return pendulum.instance(raw)

    if isinstance(raw, bool):
        raise ValueError(f"Could not parse instant: {raw!r}")

    if isinstance(raw, (int, float)):
        seconds = raw / 1000 if abs(raw) > _MILLISECOND_THRESHOLD else raw
        try:
            return pendulum.from_timestamp(seconds)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"Could not parse instant: {raw!r}") from exc

    if isinstance(raw, str) and raw.strip():
        parsed = pendulum.parse(raw.strip())
        if isinstance(parsed, DateTime):
            return parsed

    raise ValueError(f"Could not parse instant: {raw!r}")


class TimeArithmetic:
    """
    Converts instants to local minute-of-day, day key, weekday name and
    12-hour display strings in one operating timezone.
    """

    DISPLAY_FORMAT = "hh:mm A"

    def __init__(self, timezone: str = "America/Denver"):
        # Fails early on unknown zone names
        self._zone = pendulum.timezone(timezone)
        self.timezone = timezone

    def localize(self, instant: DateTime) -> DateTime:
        """Return the instant on the operating timezone's wall clock."""
        return instant.in_timezone(self._zone)

    def minutes_of_day(self, instant: DateTime) -> int:
        """Minutes since local midnight, 0-1439."""
        local = self.localize(instant)
        return local.hour * 60 + local.minute

    def day_key(self, instant: DateTime) -> str:
        """Local calendar date as ``YYYY-MM-DD``."""
        return self.localize(instant).to_date_string()

    def weekday_name(self, instant: DateTime) -> str:
        """Local weekday name, e.g. ``"Friday"``."""
        return WEEKDAY_NAMES[self.localize(instant).isoweekday() % 7]

    def display_string(self, instant: DateTime) -> str:
        """Local time as ``hh:mm AM/PM``."""
        return self.localize(instant).format(self.DISPLAY_FORMAT, locale="en")

    def today(self) -> pendulum.Date:
        """Current calendar date in the operating timezone."""
        return pendulum.now(self._zone).date()

    def start_of_day(self, day: pendulum.Date) -> DateTime:
        """Local midnight at the start of ``day``."""
        return pendulum.datetime(day.year, day.month, day.day, tz=self._zone)

    def end_of_day(self, day: pendulum.Date) -> DateTime:
        """Last representable local instant of ``day``."""
        return self.start_of_day(day).end_of("day")
