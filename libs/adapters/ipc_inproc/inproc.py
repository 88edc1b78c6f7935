from __future__ import annotations

from collections.abc import Callable, Mapping
from queue import Empty, SimpleQueue
from typing import Any

from ports.ipc import EventPubPort, EventSubPort, ScannerCommandPort


class InprocScannerCommandPort(ScannerCommandPort):
    """No transport behind it: returns a canned ok-dict."""

    @classmethod
    def create(cls) -> InprocScannerCommandPort:
        return cls()

    def send(self, addr: str, cmd: Any) -> dict[str, Any]:
        return {"ok": True, "data": {"echo": getattr(cmd, "type", "UNKNOWN")}}


class InprocEventBus:
    """Process-local channel shared by one publisher and its subscribers.

    Messages put while no subscriber is attached are dropped.
    """

    def __init__(self) -> None:
        self.queue: SimpleQueue[dict[str, Any]] = SimpleQueue()
        self.subscribers = 0

    def attach(self) -> None:
        self.subscribers += 1

    def put(self, msg: dict[str, Any]) -> bool:
        if not self.subscribers:
            return False
        self.queue.put(msg)
        return True


class InprocEventPubPort(EventPubPort):
    def __init__(self, bus: InprocEventBus) -> None:
        self.bus = bus

    @classmethod
    def create(cls, bus: InprocEventBus | None = None) -> InprocEventPubPort:
        return cls(bus or InprocEventBus())

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        self.bus.put({"topic": topic, "data": dict(payload)})


class InprocEventSubPort(EventSubPort):
    def __init__(self, bus: InprocEventBus) -> None:
        self.bus = bus
        bus.attach()

    @classmethod
    def create(cls, bus: InprocEventBus | None = None) -> InprocEventSubPort:
        return cls(bus or InprocEventBus())

    def subscribe(self, addr: str) -> None:
        pass

    def recv(self, timeout_ms: int = 100) -> dict | None:
        try:
            return self.bus.queue.get(timeout=max(timeout_ms, 0) / 1000.0)
        except Empty:
            return None


class InprocCommandServerPort:
    @classmethod
    def create(cls) -> InprocCommandServerPort:
        return cls()

    def poll_once(self, handler: Callable[[dict], dict], timeout_ms: int = 10) -> bool:
        # No actual queue in the in-proc stub, just say "no work"
        return False

    def close(self) -> None:
        pass
