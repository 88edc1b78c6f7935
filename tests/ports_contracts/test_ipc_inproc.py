from __future__ import annotations

import pytest
from adapters.ipc_inproc import (
    InprocCommandServerPort,
    InprocEventBus,
    InprocEventPubPort,
    InprocEventSubPort,
    InprocScannerCommandPort,
)
from ports.ipc import EventPubPort, EventSubPort, ScannerCommandPort

pytestmark = pytest.mark.contract


class _Cmd:
    # Minimal Command Protocol impl for tests
    def __init__(self, t: str) -> None:
        self.type = t


def test_inproc_command_send_contract():
    port: ScannerCommandPort = InprocScannerCommandPort.create()
    resp = port.send("inproc://scanner", _Cmd("PING"))
    assert isinstance(resp, dict)
    assert resp.get("ok") is True


def test_inproc_pub_sub_on_a_shared_bus():
    bus = InprocEventBus()
    pub: EventPubPort = InprocEventPubPort.create(bus)
    sub: EventSubPort = InprocEventSubPort.create(bus)
    sub.subscribe("inproc://events")

    assert sub.recv(timeout_ms=1) is None
    pub.publish("engine", {"engine": "native"})
    assert sub.recv(timeout_ms=10) == {"topic": "engine", "data": {"engine": "native"}}


def test_separate_buses_are_isolated():
    pub = InprocEventPubPort.create()
    sub = InprocEventSubPort.create()
    pub.publish("engine", {"engine": "native"})
    assert sub.recv(timeout_ms=1) is None


def test_bus_without_subscribers_drops_messages():
    bus = InprocEventBus()
    pub = InprocEventPubPort.create(bus)
    for i in range(100):
        pub.publish("detect", {"n": i})
    assert bus.queue.empty()

    sub = InprocEventSubPort.create(bus)
    pub.publish("detect", {"n": 100})
    assert sub.recv(timeout_ms=10) == {"topic": "detect", "data": {"n": 100}}
    assert sub.recv(timeout_ms=1) is None


def test_inproc_command_server_is_idle():
    server = InprocCommandServerPort.create()
    assert server.poll_once(lambda c: {"never": True}) is False
    server.close()
