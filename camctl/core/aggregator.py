"""Concurrent per-device status and preview collection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from camctl.core.errors import DeviceError
from camctl.core.model import DeviceDescriptor, DeviceStatus, QueryKind
from camctl.transports.base import SessionClient

LOGGER = logging.getLogger(__name__)


def _unique(devices: Iterable[DeviceDescriptor]) -> list[DeviceDescriptor]:
    seen: set[str] = set()
    unique: list[DeviceDescriptor] = []
    for device in devices:
        if device.address in seen:
            continue
        seen.add(device.address)
        unique.append(device)
    return unique


class BatchAggregator:
    """Fan device queries out concurrently and absorb per-device failures.

    Every query runs in its own task of one ``asyncio.TaskGroup``, so a batch
    takes as long as its slowest device and cancelling the batch cancels (and
    thereby closes) every open session.
    """

    def __init__(self, session_client: SessionClient) -> None:
        self.session_client = session_client

    async def check_one(self, device: DeviceDescriptor) -> DeviceStatus:
        try:
            raw = await self.session_client.query(device, QueryKind.STATUS)
        except DeviceError as exc:
            LOGGER.warning("Failed to refresh status for %s: %s", device.name, exc)
            return DeviceStatus.OFFLINE
        return DeviceStatus.parse(raw)

    async def fetch_one(self, device: DeviceDescriptor) -> str | None:
        try:
            frame = await self.session_client.query(device, QueryKind.FRAME)
        except DeviceError as exc:
            LOGGER.warning("Error loading preview for camera %s: %s", device.name, exc)
            return None
        return frame or None

    async def refresh_statuses(self, devices: Iterable[DeviceDescriptor]) -> dict[str, DeviceStatus]:
        targets = _unique(devices)
        async with asyncio.TaskGroup() as group:
            tasks = {d.address: group.create_task(self.check_one(d)) for d in targets}
        return {address: task.result() for address, task in tasks.items()}

    async def load_previews(
        self,
        devices: Iterable[DeviceDescriptor],
        statuses: Mapping[str, DeviceStatus],
    ) -> dict[str, str]:
        targets = [d for d in _unique(devices) if statuses.get(d.address) is DeviceStatus.ONLINE]
        async with asyncio.TaskGroup() as group:
            tasks = {d.address: group.create_task(self.fetch_one(d)) for d in targets}
        frames: dict[str, str] = {}
        for address, task in tasks.items():
            frame = task.result()
            if frame is not None:
                frames[address] = frame
        return frames
