"""
File-backed provider and rule store for local runs without upstream access.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pendulum import DateTime

from ..domain.time_arithmetic import parse_instant

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def load_sample_data(data_file: Path) -> Dict[str, Any]:
    """
    Load a YAML (or JSON) sample data file.

    Expected layout::

        slots: {"2025-09-15": ["2025-09-15T09:30:00-06:00", ...]}
        staff_slots: {"<staff id>": {"2025-09-15": [...]}}
        store_hours: [rows]
        staff_hours: [rows]
        time_off: [rows]
        time_blocks: [rows]
        staff_leaves: [rows]

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a YAML mapping
    """
    if not data_file.exists():
        raise FileNotFoundError(f"Sample data file not found: {data_file}")

    try:
        with open(data_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {data_file}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("Sample data file must contain a mapping at the root level.")

    return data


class FileProviderSource:
    """
    Provider that serves free instants from sample data.

    Staff-specific slots (``staff_slots``) are used when present for the
    requested staff member; otherwise the calendar-wide ``slots``.
    """

    def __init__(self, data: Dict[str, Any]):
        self.data = data

    async def fetch_free_instants(
        self,
        calendar_id: str,
        staff_id: Optional[str],
        start: DateTime,
        end: DateTime,
    ) -> Dict[str, List[DateTime]]:
        source = self.data.get("slots") or {}
        staff_slots = self.data.get("staff_slots") or {}
        if staff_id and staff_id in staff_slots:
            source = staff_slots[staff_id]

        free_slots: Dict[str, List[DateTime]] = {}
        for day_key, raw_slots in source.items():
            instants = []
            for raw in raw_slots or []:
                try:
                    instant = parse_instant(raw)
                except ValueError as e:
                    logger.warning("Skipping sample slot %r: %s", raw, e)
                    continue
                if start <= instant <= end:
                    instants.append(instant)
            if instants:
                free_slots[str(day_key)] = instants

        return free_slots


class FileRuleRepository:
    """Rule store that serves rows from sample data."""

    def __init__(self, data: Dict[str, Any]):
        self.data = data

    def _rows(self, key: str) -> List[Row]:
        return list(self.data.get(key) or [])

    async def fetch_store_hours(self) -> List[Row]:
        return self._rows("store_hours")

    async def fetch_staff_hours(self, staff_id: str) -> Optional[Row]:
        for row in self._rows("staff_hours"):
            if str(row.get("ghl_id")) == staff_id:
                return row
        return None

    async def fetch_time_off(self, staff_id: str) -> List[Row]:
        return self._staff_or_store("time_off", staff_id)

    async def fetch_time_blocks(self, staff_id: str) -> List[Row]:
        return self._staff_or_store("time_blocks", staff_id)

    async def fetch_staff_leaves(self, staff_id: str) -> List[Row]:
        return [row for row in self._rows("staff_leaves") if str(row.get("ghl_id")) == staff_id]

    def _staff_or_store(self, key: str, staff_id: str) -> List[Row]:
        return [
            row for row in self._rows(key)
            if row.get("ghl_id") in (None, "") or str(row.get("ghl_id")) == staff_id
        ]
