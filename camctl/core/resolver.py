"""Ordered backend endpoint resolution."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from camctl.core.config_loader import PROBE_TIMEOUT_S
from camctl.core.errors import NoEndpointAvailableError
from camctl.core.model import EndpointStatus
from camctl.transports.base import EndpointProber

LOGGER = logging.getLogger(__name__)


class EndpointResolver:
    """Pick the first candidate base address whose probe succeeds.

    Candidates are probed one at a time in list order and the pass stops at
    the first success, so the worst case is ``len(candidates) * probe_timeout_s``.
    Nothing is cached between calls.
    """

    def __init__(self, prober: EndpointProber, *, probe_timeout_s: float = PROBE_TIMEOUT_S) -> None:
        self.prober = prober
        self.probe_timeout_s = probe_timeout_s

    async def resolve(self, candidates: Sequence[str]) -> str | None:
        for candidate in candidates:
            if await self.prober.probe(candidate, timeout_s=self.probe_timeout_s):
                LOGGER.info("Found working server: %s", candidate)
                return candidate
        LOGGER.warning("No working server found among %d candidate(s)", len(candidates))
        return None

    async def require(self, candidates: Sequence[str]) -> str:
        address = await self.resolve(candidates)
        if address is None:
            raise NoEndpointAvailableError(candidates)
        return address

    async def check(self, address: str | None) -> EndpointStatus:
        if not address:
            return EndpointStatus.DISCONNECTED
        if await self.prober.probe(address, timeout_s=self.probe_timeout_s):
            return EndpointStatus.CONNECTED
        return EndpointStatus.DISCONNECTED
