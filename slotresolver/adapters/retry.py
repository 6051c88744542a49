"""
Rate-limit retry around a free-slot provider.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from pendulum import DateTime

from ..domain.exceptions import RateLimited

logger = logging.getLogger(__name__)


class RetryingProviderSource:
    """
    Wraps a provider and retries rate-limited fetches with exponential backoff.

    Only ``RateLimited`` is retried; every other error propagates at once.
    After ``max_retries`` retries the last ``RateLimited`` is re-raised.
    """

    def __init__(
        self,
        inner,
        max_retries: int = 3,
        initial_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.inner = inner
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._sleep = sleep

    async def fetch_free_instants(
        self,
        calendar_id: str,
        staff_id: Optional[str],
        start: DateTime,
        end: DateTime,
    ) -> Dict[str, List[DateTime]]:
        delay = self.initial_delay
        attempt = 0
        while True:
            try:
                return await self.inner.fetch_free_instants(calendar_id, staff_id, start, end)
            except RateLimited:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                logger.warning(
                    "Provider rate limited; retry %d/%d in %.2fs",
                    attempt, self.max_retries, delay,
                )
                await self._sleep(delay)
                delay *= 2
