from __future__ import annotations

from queue import Empty, SimpleQueue
from typing import Any

from ports.ipc import EventSubPort, ScannerCommandPort


class FakeScannerCommandPort(ScannerCommandPort):
    """Records last command per addr and returns a canned ok-dict."""

    def __init__(self) -> None:
        self.sent: dict[str, dict] = {}

    def send(self, addr: str, cmd: Any) -> dict:
        if isinstance(cmd, dict):
            payload: dict[str, Any] = dict(cmd)
        elif hasattr(cmd, "model_dump"):
            payload = dict(cmd.model_dump())
        else:
            payload = {"type": getattr(cmd, "type", "UNKNOWN")}
        self.sent[addr] = payload
        return {"ok": True, "data": {"echo": payload}}


class FakeEventSubPort(EventSubPort):
    """Local queue-based event channel suitable for tests."""

    def __init__(self) -> None:
        self._subs: set[str] = set()
        self._q: SimpleQueue[dict] = SimpleQueue()

    def subscribe(self, addr: str) -> None:
        self._subs.add(addr)

    def recv(self, timeout_ms: int = 100) -> dict | None:
        try:
            return self._q.get(timeout=timeout_ms / 1000.0)
        except Empty:
            return None

    def inject(self, record: dict) -> None:
        self._q.put(record)
