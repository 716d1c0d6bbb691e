"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol

from camctl.core.model import DeviceDescriptor, QueryKind


class EndpointProber(Protocol):
    async def probe(self, base_address: str, *, timeout_s: float = 8.0) -> bool:
        """Return True when the backend at base_address answers its diagnostic path."""


class SessionClient(Protocol):
    async def query(
        self,
        device: DeviceDescriptor,
        kind: QueryKind,
        *,
        timeout_s: float | None = None,
    ) -> str | None:
        """Send one command to a device and return the payload of its matching reply."""
