"""Backend health probe over HTTP using aiohttp."""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from camctl.core.addressing import probe_url
from camctl.core.config_loader import PROBE_PATH, PROBE_TIMEOUT_S

LOGGER = logging.getLogger(__name__)

_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache",
}


class HTTPEndpointProber:
    def __init__(
        self,
        *,
        probe_path: str = PROBE_PATH,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.probe_path = probe_path
        self._session = session

    async def probe(self, base_address: str, *, timeout_s: float = PROBE_TIMEOUT_S) -> bool:
        url = probe_url(base_address, self.probe_path)
        LOGGER.debug("Testing server connectivity: %s", url)
        timeout = aiohttp.ClientTimeout(total=timeout_s)
        try:
            if self._session is not None:
                status = await self._get(self._session, url, timeout)
            else:
                async with aiohttp.ClientSession() as session:
                    status = await self._get(session, url, timeout)
        except asyncio.TimeoutError:
            LOGGER.info("Server %s not accessible: no response in %gs", base_address, timeout_s)
            return False
        except (aiohttp.ClientError, ValueError) as exc:
            LOGGER.info("Server %s not accessible: %s", base_address, exc)
            return False

        if 200 <= status < 300:
            LOGGER.info("Server %s is accessible", base_address)
            return True
        LOGGER.info("Server %s returned status: %s", base_address, status)
        return False

    @staticmethod
    async def _get(session: aiohttp.ClientSession, url: str, timeout: aiohttp.ClientTimeout) -> int:
        async with session.get(url, headers=_HEADERS, timeout=timeout, allow_redirects=True) as response:
            return response.status
