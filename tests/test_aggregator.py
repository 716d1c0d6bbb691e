from __future__ import annotations

import asyncio
from typing import Any

import pytest

from camctl.core.aggregator import BatchAggregator
from camctl.core.errors import DeviceTimeoutError, DeviceUnreachableError
from camctl.core.model import DeviceDescriptor, DeviceStatus, QueryKind
from camctl.transports.websocket import WebSocketSessionClient

CAM1 = DeviceDescriptor(address="10.0.0.1", name="Cam 1")
CAM2 = DeviceDescriptor(address="10.0.0.2", name="Cam 2")
CAM3 = DeviceDescriptor(address="10.0.0.3", name="Cam 3")


class FakeSessionClient:
    """Replies from per-kind tables; an exception value is raised instead."""

    def __init__(
        self,
        statuses: dict[str, Any] | None = None,
        frames: dict[str, Any] | None = None,
    ) -> None:
        self.tables = {QueryKind.STATUS: statuses or {}, QueryKind.FRAME: frames or {}}
        self.calls: list[tuple[str, QueryKind]] = []

    async def query(
        self,
        device: DeviceDescriptor,
        kind: QueryKind,
        *,
        timeout_s: float | None = None,
    ) -> str | None:
        self.calls.append((device.address, kind))
        await asyncio.sleep(0)
        outcome = self.tables[kind][device.address]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_refresh_statuses_timeout_maps_to_offline() -> None:
    client = FakeSessionClient(
        statuses={
            CAM1.address: "Online",
            CAM2.address: DeviceTimeoutError(CAM2, 3.0),
            CAM3.address: "Offline",
        }
    )

    statuses = await BatchAggregator(client).refresh_statuses([CAM1, CAM2, CAM3])

    assert statuses == {
        CAM1.address: DeviceStatus.ONLINE,
        CAM2.address: DeviceStatus.OFFLINE,
        CAM3.address: DeviceStatus.OFFLINE,
    }


@pytest.mark.asyncio
async def test_refresh_statuses_always_yields_every_device() -> None:
    devices = [DeviceDescriptor(address=f"10.0.1.{i}", name=f"Cam {i}") for i in range(8)]
    failing = {d.address for d in devices[::3]}
    table: dict[str, Any] = {}
    for device in devices:
        if device.address in failing:
            table[device.address] = DeviceUnreachableError(device, "Connection refused")
        else:
            table[device.address] = "Online"

    statuses = await BatchAggregator(FakeSessionClient(statuses=table)).refresh_statuses(devices)

    assert set(statuses) == {d.address for d in devices}
    for address, status in statuses.items():
        expected = DeviceStatus.OFFLINE if address in failing else DeviceStatus.ONLINE
        assert status is expected


@pytest.mark.asyncio
async def test_missing_status_counts_as_online() -> None:
    client = FakeSessionClient(statuses={CAM1.address: None})
    assert await BatchAggregator(client).refresh_statuses([CAM1]) == {CAM1.address: DeviceStatus.ONLINE}


@pytest.mark.asyncio
async def test_duplicate_addresses_queried_once() -> None:
    client = FakeSessionClient(statuses={CAM1.address: "Online"})
    twin = DeviceDescriptor(address=CAM1.address, name="Same camera")

    statuses = await BatchAggregator(client).refresh_statuses([CAM1, twin])

    assert statuses == {CAM1.address: DeviceStatus.ONLINE}
    assert client.calls == [(CAM1.address, QueryKind.STATUS)]


@pytest.mark.asyncio
async def test_device_queries_run_concurrently() -> None:
    started = 0
    all_started = asyncio.Event()

    class BarrierClient:
        async def query(self, device, kind, *, timeout_s=None):
            nonlocal started
            started += 1
            if started == 3:
                all_started.set()
            # Would deadlock if queries ran one after another.
            await all_started.wait()
            return "Online"

    statuses = await asyncio.wait_for(
        BatchAggregator(BarrierClient()).refresh_statuses([CAM1, CAM2, CAM3]),
        timeout=2.0,
    )
    assert len(statuses) == 3


@pytest.mark.asyncio
async def test_batch_bounded_by_slowest_device_not_sum() -> None:
    class SlowClient:
        async def query(self, device, kind, *, timeout_s=None):
            await asyncio.sleep(0.2)
            raise DeviceTimeoutError(device, 0.2)

    loop = asyncio.get_running_loop()
    started = loop.time()
    statuses = await BatchAggregator(SlowClient()).refresh_statuses([CAM1, CAM2, CAM3])
    elapsed = loop.time() - started

    assert set(statuses.values()) == {DeviceStatus.OFFLINE}
    assert elapsed < 0.5


@pytest.mark.asyncio
async def test_load_previews_skips_offline_and_unknown_devices() -> None:
    client = FakeSessionClient(frames={CAM1.address: "frame-1", CAM2.address: "frame-2", CAM3.address: "frame-3"})
    statuses = {CAM1.address: DeviceStatus.ONLINE, CAM2.address: DeviceStatus.OFFLINE}

    frames = await BatchAggregator(client).load_previews([CAM1, CAM2, CAM3], statuses)

    assert frames == {CAM1.address: "frame-1"}
    assert client.calls == [(CAM1.address, QueryKind.FRAME)]


@pytest.mark.asyncio
async def test_load_previews_omits_failed_fetch() -> None:
    client = FakeSessionClient(
        frames={CAM1.address: DeviceTimeoutError(CAM1, 5.0), CAM2.address: "frame-2"}
    )
    statuses = {CAM1.address: DeviceStatus.ONLINE, CAM2.address: DeviceStatus.ONLINE}

    frames = await BatchAggregator(client).load_previews([CAM1, CAM2], statuses)

    assert CAM1.address not in frames
    assert frames == {CAM2.address: "frame-2"}


@pytest.mark.asyncio
async def test_check_one_and_fetch_one_fallbacks() -> None:
    client = FakeSessionClient(
        statuses={CAM1.address: DeviceUnreachableError(CAM1, "refused")},
        frames={CAM1.address: DeviceTimeoutError(CAM1, 5.0)},
    )
    aggregator = BatchAggregator(client)

    assert await aggregator.check_one(CAM1) is DeviceStatus.OFFLINE
    assert await aggregator.fetch_one(CAM1) is None


@pytest.mark.asyncio
async def test_empty_batch() -> None:
    aggregator = BatchAggregator(FakeSessionClient())
    assert await aggregator.refresh_statuses([]) == {}
    assert await aggregator.load_previews([], {}) == {}


class SplitSessionClient:
    """Sends malformed addresses through the real WebSocket client."""

    def __init__(self, fake: FakeSessionClient, malformed: set[str]) -> None:
        self.fake = fake
        self.malformed = malformed
        self.real = WebSocketSessionClient(status_timeout_s=1.0, frame_timeout_s=1.0)

    async def query(
        self,
        device: DeviceDescriptor,
        kind: QueryKind,
        *,
        timeout_s: float | None = None,
    ) -> str | None:
        client = self.real if device.address in self.malformed else self.fake
        return await client.query(device, kind, timeout_s=timeout_s)


@pytest.mark.asyncio
async def test_malformed_addresses_do_not_abort_batch() -> None:
    bad_port = DeviceDescriptor(address="cam.local:99999", name="Bad port")
    bad_number = DeviceDescriptor(address="cam:abc", name="Bad number")
    fake = FakeSessionClient(
        statuses={CAM1.address: "Online", CAM2.address: "Offline"},
        frames={CAM1.address: "frame-1"},
    )
    aggregator = BatchAggregator(SplitSessionClient(fake, {bad_port.address, bad_number.address}))

    statuses = await aggregator.refresh_statuses([CAM1, bad_port, CAM2, bad_number])

    assert statuses == {
        CAM1.address: DeviceStatus.ONLINE,
        bad_port.address: DeviceStatus.OFFLINE,
        CAM2.address: DeviceStatus.OFFLINE,
        bad_number.address: DeviceStatus.OFFLINE,
    }
    everything_online = {address: DeviceStatus.ONLINE for address in statuses}
    frames = await aggregator.load_previews([CAM1, bad_port, bad_number], everything_online)
    assert frames == {CAM1.address: "frame-1"}
