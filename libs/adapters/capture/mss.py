from __future__ import annotations

from typing import Any

import mss  # type: ignore
import numpy as np
from domain.scanner.errors import CameraError
from ports.vision import CameraPort, Facing, Frame


class MSSCamera(CameraPort):
    """Screen capture as a frame source: scan codes shown on a monitor.

    There is only one "facing"; switching cameras reopens the same monitor.
    """

    def __init__(self, monitor: int = 1) -> None:
        self._monitor_idx = int(monitor)
        self._sct: Any = None
        self._mon: dict[str, int] | None = None
        self._paused = False
        self._last: Frame | None = None

    @property
    def is_open(self) -> bool:
        return self._sct is not None

    def open(self, facing: Facing = "environment") -> None:  # facing unused
        try:
            sct = mss.mss()
        except Exception as ex:
            raise CameraError(f"screen capture unavailable: {ex}") from ex
        monitors = sct.monitors
        # clamp to a real monitor (monitors[0] is "all")
        idx = self._monitor_idx
        if idx < 1 or idx >= len(monitors):
            idx = 1
        self._sct = sct
        self._mon = dict(monitors[idx])
        self._paused = False

    def size(self) -> tuple[int, int]:
        if self._mon is None:
            return (0, 0)
        return int(self._mon["width"]), int(self._mon["height"])

    def grab(self) -> Frame:
        if self._sct is None or self._mon is None:
            raise CameraError("screen capture is not open")
        if self._paused and self._last is not None:
            return self._last
        shot = self._sct.grab(self._mon)
        # BGRA -> BGR, contiguous for OpenCV
        pixels = np.ascontiguousarray(np.asarray(shot)[:, :, :3])
        self._last = Frame(width=shot.width, height=shot.height, pixels=pixels)
        return self._last

    def play(self) -> None:
        self._paused = False

    def pause(self) -> None:
        self._paused = True

    def release(self) -> None:
        if self._sct:
            try:
                self._sct.close()
            except Exception:
                pass
        self._sct = None
        self._last = None
