"""One-shot WebSocket sessions with camera devices."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from camctl.core.addressing import device_session_url
from camctl.core.config_loader import SESSION_PATH
from camctl.core.errors import (
    DeviceProtocolError,
    DeviceTimeoutError,
    DeviceUnreachableError,
)
from camctl.core.model import DeviceDescriptor, DeviceStatus, QueryKind

LOGGER = logging.getLogger(__name__)


class WebSocketSessionClient:
    """Open a connection per query, send one command, honor one reply.

    The reply, a transport error and the deadline race inside a single
    ``asyncio.timeout`` scope; whichever happens first decides the result and
    leaving the scope closes the connection.
    """

    def __init__(
        self,
        *,
        session_path: str = SESSION_PATH,
        status_timeout_s: float = QueryKind.STATUS.timeout_s,
        frame_timeout_s: float = QueryKind.FRAME.timeout_s,
        close_timeout_s: float = 1.0,
        connect: Callable[..., Any] = ws_connect,
    ) -> None:
        self.session_path = session_path
        self.timeouts = {
            QueryKind.STATUS: status_timeout_s,
            QueryKind.FRAME: frame_timeout_s,
        }
        self.close_timeout_s = close_timeout_s
        self._connect = connect

    async def query(
        self,
        device: DeviceDescriptor,
        kind: QueryKind,
        *,
        timeout_s: float | None = None,
    ) -> str | None:
        deadline = timeout_s if timeout_s is not None else self.timeouts[kind]
        url = device_session_url(device.address, self.session_path)
        undecodable = 0
        scope = asyncio.timeout(deadline)
        LOGGER.debug("Opening %s session for %s at %s", kind.command, device.name, url)

        try:
            async with scope:
                async with self._connect(
                    url,
                    open_timeout=None,
                    close_timeout=self.close_timeout_s,
                    max_size=None,
                    proxy=None,
                ) as ws:
                    await ws.send(json.dumps({"command": kind.command}))
                    while True:
                        message = _decode(await ws.recv())
                        if message is None or not _well_formed(message, kind):
                            undecodable += 1
                            LOGGER.debug("Ignoring undecodable message from %s", device.name)
                            continue
                        if message.get("type") != kind.reply_type:
                            continue
                        return message.get(kind.payload_field)
        except TimeoutError as exc:
            # A socket-level connect timeout is an OSError, not our deadline.
            if not scope.expired():
                raise DeviceUnreachableError(device, exc) from exc
            raise DeviceTimeoutError(device, deadline) from exc
        except ConnectionClosed as exc:
            if undecodable:
                raise DeviceProtocolError(
                    device,
                    f"connection closed after {undecodable} undecodable message(s)",
                ) from exc
            raise DeviceUnreachableError(device, f"connection closed before reply ({exc})") from exc
        except (OSError, WebSocketException) as exc:
            raise DeviceUnreachableError(device, exc) from exc
        except ValueError as exc:
            # Malformed host or port, rejected while parsing the URL.
            raise DeviceUnreachableError(device, f"invalid address: {exc}") from exc

    async def get_status(self, device: DeviceDescriptor, *, timeout_s: float | None = None) -> DeviceStatus:
        return DeviceStatus.parse(await self.query(device, QueryKind.STATUS, timeout_s=timeout_s))

    async def get_frame(self, device: DeviceDescriptor, *, timeout_s: float | None = None) -> str:
        frame = await self.query(device, QueryKind.FRAME, timeout_s=timeout_s)
        if frame is None:
            raise DeviceProtocolError(device, "video reply without data")
        return frame


def _decode(raw: str | bytes) -> dict[str, Any] | None:
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return message if isinstance(message, dict) else None


def _well_formed(message: dict[str, Any], kind: QueryKind) -> bool:
    if message.get("type") != kind.reply_type or kind is not QueryKind.FRAME:
        return True
    data = message.get("data")
    return isinstance(data, str) and bool(data)
