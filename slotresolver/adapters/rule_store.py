"""
Rule store client reading availability rules over a PostgREST endpoint.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from ..domain.exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class RestRuleRepository:
    """
    Reads store hours, staff hours, time off, time blocks and staff leaves
    from ``{url}/rest/v1/<table>``.

    Staff-scoped time off and time blocks include store-wide rows (rows with
    no ``ghl_id``).
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout_seconds: float = 15.0,
        session: Optional[requests.Session] = None,
        store_hours_table: str = "business_hours",
        staff_hours_table: str = "barber_hours",
        time_off_table: str = "time_off",
        time_block_table: str = "time_block",
        staff_leave_table: str = "staff_leaves",
    ):
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }
        self.store_hours_table = store_hours_table
        self.staff_hours_table = staff_hours_table
        self.time_off_table = time_off_table
        self.time_block_table = time_block_table
        self.staff_leave_table = staff_leave_table

    async def fetch_store_hours(self) -> List[Row]:
        return await asyncio.to_thread(self.select, self.store_hours_table)

    async def fetch_staff_hours(self, staff_id: str) -> Optional[Row]:
        rows = await asyncio.to_thread(
            self.select,
            self.staff_hours_table,
            {"ghl_id": f"eq.{staff_id}", "limit": "1"},
        )
        return rows[0] if rows else None

    async def fetch_time_off(self, staff_id: str) -> List[Row]:
        return await asyncio.to_thread(self.select, self.time_off_table, _staff_or_store(staff_id))

    async def fetch_time_blocks(self, staff_id: str) -> List[Row]:
        return await asyncio.to_thread(self.select, self.time_block_table, _staff_or_store(staff_id))

    async def fetch_staff_leaves(self, staff_id: str) -> List[Row]:
        return await asyncio.to_thread(
            self.select,
            self.staff_leave_table,
            {"ghl_id": f"eq.{staff_id}", "event_status": "eq.Upcoming"},
        )

    def select(self, table: str, filters: Optional[Dict[str, str]] = None) -> List[Row]:
        """
        Select all columns of ``table`` matching PostgREST ``filters``.

        Raises:
            UpstreamUnavailable: If the request fails or the body is not a list
        """
        params = {"select": "*"}
        params.update(filters or {})

        try:
            response = self.session.get(
                f"{self.base_url}/{table}",
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailable(f"Failed to read {table}: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"{table} response is not JSON: {e}") from e

        if not isinstance(data, list):
            raise UpstreamUnavailable(f"{table} response is not a list of rows")

        logger.debug("Read %d row(s) from %s", len(data), table)
        return data


def _staff_or_store(staff_id: str) -> Dict[str, str]:
    return {"or": f"(ghl_id.eq.{staff_id},ghl_id.is.null)"}
