"""
Day-by-day resolution windows in the operating timezone.
"""

from datetime import date
from typing import Optional, Union

import pendulum

from .exceptions import InvalidRequest
from .models import DateRange, TimeRange
from .time_arithmetic import TimeArithmetic

DEFAULT_TOTAL_DAYS = 30
MAX_TOTAL_DAYS = 366

AnchorDate = Union[str, date, None]


class DateRangeBuilder:
    """Builds the consecutive local days a resolution covers."""

    def __init__(self, time: TimeArithmetic):
        self.time = time

    def build_range(
        self,
        anchor: AnchorDate = None,
        total_days: int = DEFAULT_TOTAL_DAYS,
        today: Optional[pendulum.Date] = None,
    ) -> DateRange:
        """
        Build ``total_days`` consecutive days starting at ``anchor``.

        Args:
            anchor: First day; ``YYYY-MM-DD`` text or a date. Defaults to today
                in the operating timezone.
            total_days: Number of days, 1 to ``MAX_TOTAL_DAYS``
            today: Overrides "today" (used by tests)

        Returns:
            DateRange whose window runs from the first day's local midnight to
            the last day's local end of day

        Raises:
            InvalidRequest: If the anchor is not a calendar date or
                ``total_days`` is outside 1 to ``MAX_TOTAL_DAYS``
        """
        if (
            isinstance(total_days, bool)
            or not isinstance(total_days, int)
            or not 1 <= total_days <= MAX_TOTAL_DAYS
        ):
            raise InvalidRequest(
                f"total_days must be an integer between 1 and {MAX_TOTAL_DAYS}, got {total_days!r}"
            )

        first = self._anchor_day(anchor, today)
        days = [first.add(days=offset) for offset in range(total_days)]

        return DateRange(
            days=[day.to_date_string() for day in days],
            window=TimeRange(
                start=self.time.start_of_day(days[0]),
                end=self.time.end_of_day(days[-1]),
            ),
        )

    def _anchor_day(self, anchor: AnchorDate, today: Optional[pendulum.Date]) -> pendulum.Date:
        if anchor is None or (isinstance(anchor, str) and not anchor.strip()):
            return today or self.time.today()

        if isinstance(anchor, date):
            return pendulum.date(anchor.year, anchor.month, anchor.day)

        if not isinstance(anchor, str):
            raise InvalidRequest(f"Anchor date must be YYYY-MM-DD, got {anchor!r}")

        # Read as a local calendar date, never as UTC midnight
        try:
            parsed = pendulum.from_format(anchor.strip(), "YYYY-MM-DD")
        except ValueError as exc:
            raise InvalidRequest(f"Anchor date must be YYYY-MM-DD, got {anchor!r}") from exc
        return pendulum.date(parsed.year, parsed.month, parsed.day)
