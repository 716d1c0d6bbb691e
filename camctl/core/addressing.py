"""Address normalization for backend candidates and device sessions."""

from __future__ import annotations

from urllib.parse import urlsplit

_WS_SCHEMES = ("ws://", "wss://")
_HTTP_TO_WS = {"http://": "ws://", "https://": "wss://"}


def is_valid_url(url: str | None) -> bool:
    return bool(url) and url.startswith(("http://", "https://"))


def normalize_base_url(url: str) -> str:
    """Return a backend base address with a scheme and no trailing slash."""
    cleaned = url.strip()
    if not is_valid_url(cleaned):
        cleaned = f"http://{cleaned}"
    return cleaned.rstrip("/")


def probe_url(base_url: str, probe_path: str) -> str:
    return f"{normalize_base_url(base_url)}/{probe_path.lstrip('/')}"


def device_session_url(address: str, session_path: str = "ws") -> str:
    """Build the WebSocket URL for a device address.

    The scheme prefix and the session path end up present exactly once,
    whether or not the caller already supplied them.
    """
    url = address.strip()
    lowered = url.lower()
    for http_scheme, ws_scheme in _HTTP_TO_WS.items():
        if lowered.startswith(http_scheme):
            url = ws_scheme + url[len(http_scheme):]
            break
    else:
        if not lowered.startswith(_WS_SCHEMES):
            url = f"ws://{url}"

    scheme, _, rest = url.partition("://")
    rest = rest.rstrip("/")
    suffix = "/" + session_path.strip("/")
    # The host itself may be called like the session path ("ws://ws").
    if "/" not in rest or not rest.endswith(suffix):
        rest = f"{rest}{suffix}"
    return f"{scheme}://{rest}"


def device_host_port(address: str) -> tuple[str | None, int | None]:
    """Split a device address into host and port; ValueError if malformed."""
    parsed = urlsplit(device_session_url(address))
    return parsed.hostname, parsed.port
