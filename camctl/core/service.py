"""Service layer used by the CLI and by UI frontends."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from camctl.core.aggregator import BatchAggregator
from camctl.core.config_loader import load_settings
from camctl.core.errors import DeviceSelectionError, NoEndpointAvailableError
from camctl.core.model import (
    DeviceDescriptor,
    DeviceOutcome,
    DeviceStatus,
    EndpointStatus,
    ResolvedEndpoint,
    Settings,
)
from camctl.core.resolver import EndpointResolver
from camctl.core.store import OutcomeStore
from camctl.transports.base import EndpointProber, SessionClient
from camctl.transports.http_probe import HTTPEndpointProber
from camctl.transports.websocket import WebSocketSessionClient

LOGGER = logging.getLogger(__name__)


class CameraService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        prober: EndpointProber | None = None,
        session_client: SessionClient | None = None,
    ) -> None:
        if settings is None:
            loaded = load_settings()
            settings = loaded.settings
            self.load_warnings = loaded.warnings
        else:
            self.load_warnings = ()
        self.settings = settings
        self.devices: list[DeviceDescriptor] = list(settings.devices)
        self._adding: set[str] = set()
        self.resolver = EndpointResolver(
            prober or HTTPEndpointProber(probe_path=settings.probe_path),
            probe_timeout_s=settings.probe_timeout_s,
        )
        self.aggregator = BatchAggregator(
            session_client
            or WebSocketSessionClient(
                session_path=settings.session_path,
                status_timeout_s=settings.status_timeout_s,
                frame_timeout_s=settings.frame_timeout_s,
            )
        )
        self.store = OutcomeStore()
        self.endpoint = ResolvedEndpoint(address=None, status=EndpointStatus.CHECKING)

    async def resolve_endpoint(self, candidates: Sequence[str] | None = None) -> str | None:
        candidates = self.settings.candidates if candidates is None else tuple(candidates)
        self.endpoint = ResolvedEndpoint(address=self.endpoint.address, status=EndpointStatus.CHECKING)
        address = await self.resolver.resolve(candidates)
        if address is None:
            self.endpoint = ResolvedEndpoint(address=self.endpoint.address, status=EndpointStatus.DISCONNECTED)
        else:
            self.endpoint = ResolvedEndpoint(address=address, status=EndpointStatus.CONNECTED)
        return address

    async def connect(self, candidates: Sequence[str] | None = None) -> str:
        """Resolve the backend or raise so the caller can offer a retry."""
        address = await self.resolve_endpoint(candidates)
        if address is None:
            raise NoEndpointAvailableError(self.settings.candidates if candidates is None else candidates)
        return address

    async def check_connection(self) -> EndpointStatus:
        status = await self.resolver.check(self.endpoint.address)
        self.endpoint = ResolvedEndpoint(address=self.endpoint.address, status=status)
        return status

    def select_devices(self, addresses: Iterable[str] | None = None) -> list[DeviceDescriptor]:
        if not addresses:
            return list(self.devices)
        known = {d.address: d for d in self.devices}
        selected: list[DeviceDescriptor] = []
        for address in addresses:
            device = known.get(address)
            if device is None:
                raise DeviceSelectionError(f"No device configured with address '{address}'")
            selected.append(device)
        return selected

    async def refresh_statuses(self, devices: Iterable[DeviceDescriptor] | None = None) -> dict[str, DeviceStatus]:
        targets = self.devices if devices is None else list(devices)
        statuses = await self.aggregator.refresh_statuses(targets)
        self.store.apply_statuses(statuses)
        return statuses

    async def load_previews(self, devices: Iterable[DeviceDescriptor] | None = None) -> dict[str, str]:
        targets = self.devices if devices is None else list(devices)
        frames = await self.aggregator.load_previews(targets, self.store.statuses())
        self.store.apply_frames(frames)
        return frames

    async def refresh(self, devices: Iterable[DeviceDescriptor] | None = None) -> Mapping[str, DeviceOutcome]:
        targets = self.devices if devices is None else list(devices)
        await self.refresh_statuses(targets)
        await self.load_previews(targets)
        return self.store.snapshot()

    async def add_device(self, device: DeviceDescriptor) -> DeviceOutcome:
        if device.address in self._adding or any(d.address == device.address for d in self.devices):
            raise DeviceSelectionError(f"Device '{device.address}' is already added")

        self._adding.add(device.address)
        try:
            status = await self.aggregator.check_one(device)
            self.devices.append(device)
        finally:
            self._adding.discard(device.address)
        self.store.apply_statuses({device.address: status})
        LOGGER.info("Added camera %s (%s): %s", device.name, device.address, status.value)
        if status is DeviceStatus.ONLINE:
            frame = await self.aggregator.fetch_one(device)
            if frame is not None:
                self.store.apply_frames({device.address: frame})

        outcome = self.store.get(device.address)
        if outcome is None:
            raise DeviceSelectionError(f"Device '{device.address}' was removed while being added")
        return outcome

    def remove_devices(self, addresses: Iterable[str]) -> None:
        doomed = set(addresses)
        unknown = doomed - {d.address for d in self.devices}
        if unknown:
            raise DeviceSelectionError(f"Unknown device(s): {', '.join(sorted(unknown))}")
        self.devices = [d for d in self.devices if d.address not in doomed]
        self.store.remove(doomed)
