from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Iterable

from ports.detection import DetectedCode, DetectorPort
from ports.vision import Frame

Script = list[DetectedCode] | BaseException


class ScriptedDetector(DetectorPort):
    """Plays back a script of results (or exceptions), then `default` forever."""

    def __init__(
        self,
        name: str = "scripted",
        script: Iterable[Script] = (),
        *,
        default: Script | None = None,
        available: bool = True,
        fail_init: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self._script: deque[Script] = deque(script)
        self.default: Script = default if default is not None else []
        self._available = available
        self.fail_init = fail_init
        self.delay = delay
        self.initialized = 0
        self.disposed = 0
        self.frames: list[Frame] = []

    @property
    def calls(self) -> int:
        return len(self.frames)

    def available(self) -> bool:
        return self._available

    def initialize(self) -> None:
        if self.fail_init:
            raise RuntimeError(f"{self.name} failed to load")
        self.initialized += 1

    async def detect(self, frame: Frame) -> list[DetectedCode]:
        self.frames.append(frame)
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self._script.popleft() if self._script else self.default
        if isinstance(item, BaseException):
            raise item
        return list(item)

    def dispose(self) -> None:
        self.disposed += 1
