"""Stable public API for building tooling on top of camctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from camctl.core.errors import (
    CamctlError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceError,
    DeviceProtocolError,
    DeviceSelectionError,
    DeviceTimeoutError,
    DeviceUnreachableError,
    NoEndpointAvailableError,
)
from camctl.core.model import (
    DeviceDescriptor,
    DeviceOutcome,
    DeviceStatus,
    EndpointStatus,
    QueryKind,
    ResolvedEndpoint,
    Settings,
)
from camctl.core.service import CameraService
from camctl.transports.base import EndpointProber, SessionClient
from camctl.transports.http_probe import HTTPEndpointProber
from camctl.transports.websocket import WebSocketSessionClient

__all__ = [
    "CamctlError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceError",
    "DeviceProtocolError",
    "DeviceSelectionError",
    "DeviceTimeoutError",
    "DeviceUnreachableError",
    "NoEndpointAvailableError",
    "DeviceDescriptor",
    "DeviceOutcome",
    "DeviceStatus",
    "EndpointStatus",
    "QueryKind",
    "ResolvedEndpoint",
    "Settings",
    "HTTPEndpointProber",
    "WebSocketSessionClient",
    "Client",
]


class Client:
    """Public client for camera connectivity and preview acquisition.

    A `Client` wraps endpoint resolution, concurrent device status refresh and
    preview loading behind a stable async API intended for UI frontends and
    scripts. Per-device failures never raise; they come back as `Offline`
    statuses or missing previews.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        prober: EndpointProber | None = None,
        session_client: SessionClient | None = None,
    ) -> None:
        self._service = CameraService(settings=settings, prober=prober, session_client=session_client)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def endpoint(self) -> ResolvedEndpoint:
        return self._service.endpoint

    @property
    def devices(self) -> list[DeviceDescriptor]:
        return list(self._service.devices)

    def outcomes(self) -> Mapping[str, DeviceOutcome]:
        return self._service.store.snapshot()

    async def resolve_endpoint(self, candidates: Sequence[str] | None = None) -> str | None:
        return await self._service.resolve_endpoint(candidates)

    async def refresh_statuses(self, devices: Iterable[DeviceDescriptor]) -> dict[str, DeviceStatus]:
        return await self._service.refresh_statuses(devices)

    async def load_previews(
        self,
        devices: Iterable[DeviceDescriptor],
        statuses: Mapping[str, DeviceStatus],
    ) -> dict[str, str]:
        """Fetch previews for the devices ``statuses`` marks Online.

        Frames are recorded in `outcomes()` only for devices it already holds
        as Online.
        """
        frames = await self._service.aggregator.load_previews(devices, statuses)
        self._service.store.apply_frames(frames)
        return frames

    async def check_one_device(self, device: DeviceDescriptor) -> DeviceStatus:
        status = await self._service.aggregator.check_one(device)
        self._service.store.apply_statuses({device.address: status})
        return status

    async def refresh(self) -> Mapping[str, DeviceOutcome]:
        return await self._service.refresh()

    async def add_device(self, device: DeviceDescriptor) -> DeviceOutcome:
        return await self._service.add_device(device)

    def remove_devices(self, addresses: Iterable[str]) -> None:
        self._service.remove_devices(addresses)
