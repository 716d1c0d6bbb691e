"""Caller-visible per-device outcome state."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from camctl.core.model import DeviceOutcome, DeviceStatus


class OutcomeStore:
    """Last-known outcome per device address.

    Writers hand over a whole batch; readers get an immutable snapshot that
    is either fully before or fully after any batch.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcomes: Mapping[str, DeviceOutcome] = MappingProxyType({})

    def snapshot(self) -> Mapping[str, DeviceOutcome]:
        return self._outcomes

    def get(self, address: str) -> DeviceOutcome | None:
        return self._outcomes.get(address)

    def statuses(self) -> dict[str, DeviceStatus]:
        return {address: outcome.status for address, outcome in self._outcomes.items()}

    def apply_statuses(self, statuses: Mapping[str, DeviceStatus]) -> None:
        """Merge a status batch. Devices going offline lose their preview."""
        with self._lock:
            merged = dict(self._outcomes)
            for address, status in statuses.items():
                previous = merged.get(address)
                frame = previous.frame if previous and status is DeviceStatus.ONLINE else None
                merged[address] = DeviceOutcome(address=address, status=status, frame=frame)
            self._outcomes = MappingProxyType(merged)

    def apply_frames(self, frames: Mapping[str, str]) -> None:
        """Merge a preview batch. Frames for devices not known online are dropped."""
        with self._lock:
            merged = dict(self._outcomes)
            for address, frame in frames.items():
                previous = merged.get(address)
                if previous is None or previous.status is not DeviceStatus.ONLINE:
                    continue
                merged[address] = DeviceOutcome(address=address, status=previous.status, frame=frame)
            self._outcomes = MappingProxyType(merged)

    def remove(self, addresses: Iterable[str]) -> None:
        with self._lock:
            merged = dict(self._outcomes)
            for address in addresses:
                merged.pop(address, None)
            self._outcomes = MappingProxyType(merged)
