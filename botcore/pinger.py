"""Periodic availability check of the instance's public URL."""

import asyncio
import logging
from typing import Optional

import aiohttp

from botcore.config.store import ConfigStore

logger = logging.getLogger(__name__)

# How long to wait before re-reading the config while the check is disabled
IDLE_RECHECK_SECONDS = 60


class PublicUrlPinger:
    """Requests ``public_url`` every ``public_url_ping_check_frequency`` ms.

    Settings are re-read before every check, so config updates apply
    without a restart.
    """

    def __init__(self, config_store: ConfigStore, timeout: float = 10.0):
        self.config_store = config_store
        self.timeout = timeout
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                config = self.config_store.get()
                frequency = config.public_url_ping_check_frequency
                if not config.public_url or frequency == 0:
                    await asyncio.sleep(IDLE_RECHECK_SECONDS)
                    continue

                await self.ping(config.public_url)
                await asyncio.sleep(frequency / 1000)
            except Exception:
                logger.error("[pinger] Ping check failed, retrying later", exc_info=True)
                await asyncio.sleep(IDLE_RECHECK_SECONDS)

    async def ping(self, url: str) -> bool:
        """GET ``url``; True if it answered with a non-error status."""
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status < 400:
                        logger.debug(f"[pinger] {url} is up (HTTP {response.status})")
                        return True
                    logger.warning(f"[pinger] {url} answered HTTP {response.status}")
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"[pinger] {url} is unreachable: {e}")
            return False
