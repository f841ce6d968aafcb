"""Periodic self-ping that keeps a sleeping host awake.

Runs as an independent task; it shares nothing with balance or transfer logic.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class SelfPinger:
    """GETs {base_url}/ping every interval seconds."""

    def __init__(
        self,
        base_url: str,
        interval: float = 300.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = f"{base_url.rstrip('/')}/ping"
        self.interval = interval
        self._client = http_client
        self._task: Optional[asyncio.Task] = None

    async def ping_once(self) -> Optional[int]:
        """Ping once; return the status code or None on failure."""
        try:
            if self._client is not None:
                response = await self._client.get(self.url)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.get(self.url)
        except httpx.HTTPError as e:
            logger.error(f"Self-ping failed: {e}")
            return None

        logger.info(
            f"Self-ping at {datetime.now().strftime('%H:%M:%S')} - Status: {response.status_code}"
        )
        return response.status_code

    async def run(self) -> None:
        """Ping forever; the first ping happens after one interval."""
        while True:
            await asyncio.sleep(self.interval)
            await self.ping_once()

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
            logger.info(f"Self-ping enabled: {self.url} every {self.interval}s")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
