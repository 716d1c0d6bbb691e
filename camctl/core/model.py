"""Core data models used across config loader, transports, service, and CLI."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class DeviceDescriptor:
    address: str
    name: str


class DeviceStatus(str, Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"

    @classmethod
    def parse(cls, value: object) -> DeviceStatus:
        """Map the ``status`` field of a device reply; missing means online."""
        if value is None or value == "":
            return cls.ONLINE
        lowered = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        return cls.OFFLINE


class QueryKind(Enum):
    STATUS = ("getStatus", "status", 3.0)
    FRAME = ("getFrame", "video", 5.0)

    def __init__(self, command: str, reply_type: str, timeout_s: float) -> None:
        self.command = command
        self.reply_type = reply_type
        self.timeout_s = timeout_s

    @property
    def payload_field(self) -> str:
        return "status" if self is QueryKind.STATUS else "data"


@dataclass(frozen=True)
class DeviceOutcome:
    address: str
    status: DeviceStatus
    frame: str | None = None

    def __post_init__(self) -> None:
        if self.frame is not None and self.status is not DeviceStatus.ONLINE:
            raise ValueError(f"Outcome for {self.address} carries a frame while {self.status.value}")

    def frame_bytes(self) -> bytes | None:
        if self.frame is None:
            return None
        return base64.b64decode(self.frame)


class EndpointStatus(str, Enum):
    CHECKING = "checking"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ResolvedEndpoint:
    address: str | None
    status: EndpointStatus


@dataclass(frozen=True)
class Settings:
    candidates: tuple[str, ...]
    probe_path: str
    probe_timeout_s: float
    session_path: str
    status_timeout_s: float
    frame_timeout_s: float
    devices: tuple[DeviceDescriptor, ...]
