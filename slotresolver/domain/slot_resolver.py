"""
Core business logic for resolving bookable slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional

from pendulum import DateTime

from .models import DateRange, ResolvedDaySlots
from .rule_set import AvailabilityRuleSet
from .time_arithmetic import TimeArithmetic

logger = logging.getLogger(__name__)


class _Candidate(NamedTuple):
    instant: DateTime
    minute: int


class SlotResolver:
    """
    Shrinks raw provider instants to bookable slots, day by day.

    Algorithm, per local day in the requested range:
    1. Re-bucket instants by local day key (provider grouping is ignored)
    2. Drop the day if the store is closed
    3. Keep instants within store hours
    4. Without a staff member, commit what is left
    5. Drop the day on the staff member's weekend days
    6. Keep instants within staff hours, outside lunch; drop the day when
       the staff member has no hours that weekday
    7. Drop instants on time-off days
    8. Drop instants inside time blocks
    9. Drop instants inside staff leave
    10. Commit survivors sorted by instant; days with none are omitted
    """

    def __init__(self, time: TimeArithmetic):
        self.time = time

    def resolve(
        self,
        raw_instants: Mapping[str, Iterable[DateTime]],
        date_range: DateRange,
        rule_set: AvailabilityRuleSet,
        staff_id: Optional[str] = None,
    ) -> ResolvedDaySlots:
        """
        Resolve bookable slots for every day of ``date_range``.

        Args:
            raw_instants: Free instants as grouped by the provider
            date_range: Local days to resolve
            rule_set: Availability rules for this request
            staff_id: Staff member to resolve for; None for store-level slots

        Returns:
            Mapping of day key to formatted slots, only for days with slots
        """
        buckets = self._rebucket(raw_instants, date_range)
        resolved: ResolvedDaySlots = {}

        for day_key in date_range.days:
            candidates = buckets.get(day_key)
            if not candidates:
                continue

            survivors = self._resolve_day(day_key, candidates, rule_set, staff_id)
            if survivors:
                resolved[day_key] = self._format(survivors)

        logger.debug("Resolved %d day(s) with slots", len(resolved))
        return resolved

    def _rebucket(
        self,
        raw_instants: Mapping[str, Iterable[DateTime]],
        date_range: DateRange,
    ) -> Dict[str, List[_Candidate]]:
        """
        Group instants by local day key, dropping duplicates and days outside
        the range.
        """
        seen = set()
        buckets: Dict[str, List[_Candidate]] = {}

        for provider_day, instants in raw_instants.items():
            for instant in instants:
                if instant in seen:
                    continue
                seen.add(instant)

                day_key = self.time.day_key(instant)
                if day_key not in date_range:
                    logger.debug(
                        "Dropping %s (provider day %s): local day %s outside range",
                        instant, provider_day, day_key,
                    )
                    continue

                buckets.setdefault(day_key, []).append(
                    _Candidate(instant=instant, minute=self.time.minutes_of_day(instant))
                )

        return buckets

    def _resolve_day(
        self,
        day_key: str,
        candidates: List[_Candidate],
        rule_set: AvailabilityRuleSet,
        staff_id: Optional[str],
    ) -> List[_Candidate]:
        weekday = self.time.weekday_name(candidates[0].instant)

        store_hours = rule_set.store_hours_for(weekday)
        if store_hours is None or not store_hours.is_open:
            logger.debug("Skipping %s (%s): store closed", day_key, weekday)
            return []

        available = self._keep(
            candidates,
            lambda c: store_hours.accepts(c.minute),
            "store hours", day_key,
        )

        if staff_id is None:
            return available

        if rule_set.is_staff_weekend(weekday):
            logger.debug("Skipping %s (%s): staff %s weekend day", day_key, weekday, staff_id)
            return []

        window = rule_set.staff_window_for(weekday)
        if window is None:
            logger.debug("Skipping %s (%s): staff %s not working", day_key, weekday, staff_id)
            return []

        available = self._keep(available, lambda c: window.contains(c.minute), "staff hours", day_key)
        available = self._keep(available, lambda c: not rule_set.lunch_blocks(c.minute), "lunch", day_key)

        if rule_set.time_off_blocking(staff_id, day_key):
            logger.debug("Time-off filter on %s: %d -> 0 slots", day_key, len(available))
            return []

        available = self._keep(
            available,
            lambda c: not rule_set.time_block_blocking(staff_id, c.instant, c.minute, weekday, day_key),
            "time block", day_key,
        )
        available = self._keep(
            available,
            lambda c: not rule_set.leave_blocking(staff_id, c.minute, day_key),
            "staff leave", day_key,
        )
        return available

    @staticmethod
    def _keep(candidates: List[_Candidate], predicate, layer: str, day_key: str) -> List[_Candidate]:
        kept = [candidate for candidate in candidates if predicate(candidate)]
        if len(kept) != len(candidates):
            logger.debug("%s filter on %s: %d -> %d slots", layer.capitalize(), day_key, len(candidates), len(kept))
        return kept

    def _format(self, candidates: List[_Candidate]) -> List[str]:
        ordered = sorted(candidates, key=lambda c: c.instant)
        return [self.time.display_string(c.instant) for c in ordered]
