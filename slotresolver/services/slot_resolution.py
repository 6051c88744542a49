"""
Application service for resolving bookable slots.

The service coordinates fetching raw free instants from the provider and rule
rows from the rule store, then delegates the filtering to the domain-level
``SlotResolver``. Both collaborators are described by protocols so the real
HTTP adapters and test stubs are interchangeable.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

from pendulum import DateTime

from ..domain.date_range import DEFAULT_TOTAL_DAYS, AnchorDate, DateRangeBuilder
from ..domain.exceptions import InvalidRequest, ResolutionTimeout
from ..domain.models import DateRange, ResolvedDaySlots
from ..domain.rule_parser import staff_id_variants
from ..domain.rule_set import AvailabilityRuleSet
from ..domain.slot_resolver import SlotResolver
from ..domain.time_arithmetic import TimeArithmetic

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_-]+$")

Row = Dict[str, Any]


class ProviderSource(Protocol):
    """Protocol describing the free-slot provider needed by the service."""

    async def fetch_free_instants(
        self,
        calendar_id: str,
        staff_id: Optional[str],
        start: DateTime,
        end: DateTime,
    ) -> Dict[str, List[DateTime]]:
        """Return free instants grouped by the provider's own day keys."""


class RuleRepository(Protocol):
    """Protocol describing read access to the availability rule store."""

    async def fetch_store_hours(self) -> List[Row]:
        """Return every store-hours row."""

    async def fetch_staff_hours(self, staff_id: str) -> Optional[Row]:
        """Return the staff-hours row for ``staff_id``, or None."""

    async def fetch_time_off(self, staff_id: str) -> List[Row]:
        """Return time-off rows for ``staff_id`` and store-wide ones."""

    async def fetch_time_blocks(self, staff_id: str) -> List[Row]:
        """Return time-block rows for ``staff_id`` and store-wide ones."""

    async def fetch_staff_leaves(self, staff_id: str) -> List[Row]:
        """Return leave rows for ``staff_id``."""


class SlotResolutionService:
    """
    Orchestrates collaborator reads and slot resolution.

    Every call reads rules and instants fresh; the service keeps no state
    between calls.
    """

    def __init__(
        self,
        provider: ProviderSource,
        repository: RuleRepository,
        time: TimeArithmetic,
        *,
        total_days: int = DEFAULT_TOTAL_DAYS,
        timeout: Optional[float] = None,
    ) -> None:
        self._provider = provider
        self._repository = repository
        self._time = time
        self._range_builder = DateRangeBuilder(time)
        self._resolver = SlotResolver(time)
        self._total_days = total_days
        self._timeout = timeout

    async def resolve_slots(
        self,
        calendar_id: str,
        staff_id: Optional[str] = None,
        anchor_date: AnchorDate = None,
        *,
        total_days: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ResolvedDaySlots:
        """
        Resolve bookable slots per local day.

        Args:
            calendar_id: Provider calendar to read free slots from
            staff_id: Staff member to resolve for; None for store-level slots
            anchor_date: First day (``YYYY-MM-DD``); defaults to today
            total_days: Days to resolve; defaults to the service setting
            timeout: Deadline in seconds for collaborator reads

        Returns:
            Mapping of day key to ``hh:mm AM/PM`` slots; days without slots
            are absent

        Raises:
            InvalidRequest: If an identifier or the anchor date is malformed
            UpstreamUnavailable: If the provider or the rule store fails
            ResolutionTimeout: If the deadline elapses
        """
        calendar_id = _require_identifier(calendar_id, "calendar_id")
        if staff_id is not None:
            staff_id = _require_identifier(staff_id, "staff_id")

        date_range = self._range_builder.build_range(
            anchor_date,
            total_days if total_days is not None else self._total_days,
        )
        logger.info(
            "Resolving slots for calendar %s, staff %s, %s to %s",
            calendar_id, staff_id or "-", date_range.first_day, date_range.last_day,
        )

        raw_instants, rule_set = await self._with_deadline(
            self._fetch(calendar_id, staff_id, date_range),
            timeout if timeout is not None else self._timeout,
        )

        return self._resolver.resolve(raw_instants, date_range, rule_set, staff_id)

    def resolve_slots_blocking(
        self,
        calendar_id: str,
        staff_id: Optional[str] = None,
        anchor_date: AnchorDate = None,
        **kwargs: Any,
    ) -> ResolvedDaySlots:
        """Run ``resolve_slots`` to completion for callers without an event loop."""
        return asyncio.run(self.resolve_slots(calendar_id, staff_id, anchor_date, **kwargs))

    async def load_rules(self, staff_id: Optional[str] = None) -> AvailabilityRuleSet:
        """
        Read every rule layer that applies to ``staff_id`` concurrently.

        Raises:
            InvalidRequest: If ``staff_id`` is malformed
        """
        if staff_id is not None:
            staff_id = _require_identifier(staff_id, "staff_id")
        if staff_id is None:
            store_rows = await self._repository.fetch_store_hours()
            return AvailabilityRuleSet.from_rows(timezone=self._time.timezone, store_rows=store_rows)

        store_rows, staff_row, time_off_rows, time_block_rows, leave_rows = await asyncio.gather(
            self._repository.fetch_store_hours(),
            self._find_staff_hours(staff_id),
            self._repository.fetch_time_off(staff_id),
            self._repository.fetch_time_blocks(staff_id),
            self._repository.fetch_staff_leaves(staff_id),
        )
        logger.debug(
            "Loaded rules for staff %s: hours=%s, %d time off, %d time block, %d leave row(s)",
            staff_id, "yes" if staff_row else "no",
            len(time_off_rows), len(time_block_rows), len(leave_rows),
        )

        return AvailabilityRuleSet.from_rows(
            timezone=self._time.timezone,
            store_rows=store_rows,
            staff_row=staff_row,
            staff_id=staff_id,
            time_off_rows=time_off_rows,
            time_block_rows=time_block_rows,
            leave_rows=leave_rows,
        )

    async def _fetch(self, calendar_id: str, staff_id: Optional[str], date_range: DateRange):
        return await asyncio.gather(
            self._provider.fetch_free_instants(
                calendar_id,
                staff_id,
                date_range.window.start,
                date_range.window.end,
            ),
            self.load_rules(staff_id),
        )

    async def _find_staff_hours(self, staff_id: str) -> Optional[Row]:
        """
        Look up staff hours, falling back to common misspellings of the id
        (``1``/``I``, ``0``/``O``) when there is no exact match.
        """
        row = await self._repository.fetch_staff_hours(staff_id)
        if row is not None:
            return row

        for variant in staff_id_variants(staff_id):
            row = await self._repository.fetch_staff_hours(variant)
            if row is not None:
                logger.info("Found staff hours for %s under variant %s", staff_id, variant)
                return row

        logger.warning("No staff hours configured for %s", staff_id)
        return None

    @staticmethod
    async def _with_deadline(awaitable, timeout: Optional[float]):
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise ResolutionTimeout(f"Slot resolution exceeded {timeout:g}s deadline") from exc


def _require_identifier(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f"{name} is required")
    text = value.strip()
    if not _IDENTIFIER.match(text):
        raise InvalidRequest(f"{name} is malformed: {value!r}")
    return text
