"""
Calendar provider client for fetching raw free slots.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests
from pendulum import DateTime

from ..domain.exceptions import RateLimited, UpstreamUnavailable
from ..domain.time_arithmetic import parse_instant

logger = logging.getLogger(__name__)


class FreeSlotClient:
    """
    Client for the provider's calendar free-slots endpoint.

    Uses ``/calendars/{calendarId}/free-slots`` which returns free instants
    grouped by the provider's own day keys.
    """

    DEFAULT_BASE_URL = "https://services.leadconnectorhq.com"
    DEFAULT_API_VERSION = "2021-04-15"

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the provider client.

        Args:
            access_token: Valid provider access token
            base_url: API root, without trailing slash
            api_version: Value of the ``Version`` header
            timeout_seconds: Per-request timeout
            session: Optional requests session (shared connection pool)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Version": api_version,
            "Accept": "application/json",
        }

    async def fetch_free_instants(
        self,
        calendar_id: str,
        staff_id: Optional[str],
        start: DateTime,
        end: DateTime,
    ) -> Dict[str, List[DateTime]]:
        """Async wrapper running the blocking request in a worker thread."""
        return await asyncio.to_thread(self.get_free_slots, calendar_id, staff_id, start, end)

    def get_free_slots(
        self,
        calendar_id: str,
        staff_id: Optional[str],
        start: DateTime,
        end: DateTime,
    ) -> Dict[str, List[DateTime]]:
        """
        Get free instants for a calendar, optionally for one staff member.

        Args:
            calendar_id: Provider calendar id
            staff_id: Provider user id to restrict the slots to
            start: Start of the query window
            end: End of the query window

        Returns:
            Dictionary mapping provider day key -> list of instants

        Raises:
            RateLimited: If the provider answers 429
            UpstreamUnavailable: If the request fails for any other reason
        """
        url = f"{self.base_url}/calendars/{calendar_id}/free-slots"
        params = {
            "startDate": _epoch_millis(start),
            "endDate": _epoch_millis(end),
        }
        if staff_id:
            params["userId"] = staff_id

        try:
            response = self.session.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailable(f"Failed to fetch free slots: {e}") from e

        if response.status_code == 429:
            raise RateLimited(f"Free-slot request for calendar {calendar_id} was rate limited")

        try:
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            raise UpstreamUnavailable(f"Failed to fetch free slots: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Free-slot response is not JSON: {e}") from e

        return self._parse_free_slots_response(data)

    def _parse_free_slots_response(self, response_data: Any) -> Dict[str, List[DateTime]]:
        """
        Parse the free-slots response into instants.

        Response format:
        {
            "2025-09-17": {"slots": ["2025-09-17T09:00:00-06:00", ...]},
            "traceId": "..."
        }
        """
        if not isinstance(response_data, dict):
            raise UpstreamUnavailable("Free-slot response is not an object")

        free_slots: Dict[str, List[DateTime]] = {}

        for day_key, value in response_data.items():
            if day_key == "traceId" or not isinstance(value, dict):
                continue

            instants: List[DateTime] = []
            for raw in value.get("slots") or []:
                try:
                    instants.append(parse_instant(raw))
                except ValueError as e:
                    logger.warning("Could not parse free slot %r on %s: %s", raw, day_key, e)
                    continue

            free_slots[day_key] = instants

        return free_slots


def _epoch_millis(instant: DateTime) -> int:
    return int(instant.timestamp() * 1000)
