"""Domain-specific errors for camctl."""

from __future__ import annotations

from collections.abc import Sequence

from camctl.core.model import DeviceDescriptor


class CamctlError(Exception):
    """Base error for camctl."""


class ConfigValidationError(CamctlError):
    """Raised when a config file does not conform to schema or semantics."""


class ConfigLoadError(CamctlError):
    """Raised when reading config sources fails."""


class NoEndpointAvailableError(CamctlError):
    """Raised when every candidate backend address failed probing."""

    def __init__(self, candidates: Sequence[str]) -> None:
        self.candidates = tuple(candidates)
        tried = ", ".join(self.candidates) or "<none configured>"
        super().__init__(f"No reachable backend endpoint. Tried: {tried}")


class DeviceError(CamctlError):
    """Base error for a single device session."""

    def __init__(self, device: DeviceDescriptor, message: str) -> None:
        self.device = device
        super().__init__(message)


class DeviceUnreachableError(DeviceError):
    """Raised on transport failure before any reply was received."""

    def __init__(self, device: DeviceDescriptor, cause: object) -> None:
        self.cause = cause
        super().__init__(device, f"Camera {device.name} ({device.address}) unreachable: {cause}")


class DeviceProtocolError(DeviceUnreachableError):
    """Raised when a device only sent replies that could not be decoded."""


class DeviceTimeoutError(DeviceError):
    """Raised when no matching reply arrived before the deadline."""

    def __init__(self, device: DeviceDescriptor, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(
            device,
            f"Camera {device.name} ({device.address}) timeout: no response in {timeout_s:g} seconds",
        )


class DeviceSelectionError(CamctlError):
    """Raised when a device cannot be added, found, or removed."""
