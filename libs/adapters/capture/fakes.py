from __future__ import annotations

from typing import Any

from domain.scanner.errors import CameraError
from ports.vision import CameraPort, Facing, Frame


class FakeCamera(CameraPort):
    """Returns blank frames; pixels is None so tests need no numpy."""

    def __init__(
        self,
        width: int = 640,
        height: int = 480,
        *,
        fail_open: bool = False,
        torch: bool = False,
        pixels: Any = None,
    ) -> None:
        self.width = width
        self.height = height
        self.fail_open = fail_open
        self.torch_supported = torch
        self.pixels = pixels
        self.handle: int | None = None
        self.facing: Facing | None = None
        self.opens = 0
        self.releases = 0
        self.plays = 0
        self.pauses = 0
        self.grabs = 0
        self.torch_calls: list[bool] = []
        self.playing = False

    @property
    def is_open(self) -> bool:
        return self.handle is not None

    def open(self, facing: Facing = "environment") -> None:
        if self.fail_open:
            raise CameraError("permission denied")
        self.opens += 1
        self.handle = self.opens
        self.facing = facing

    def resize(self, width: int, height: int) -> None:
        self.width, self.height = width, height

    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def grab(self) -> Frame:
        if self.handle is None:
            raise CameraError("camera is not open")
        self.grabs += 1
        return Frame(width=self.width, height=self.height, pixels=self.pixels)

    def play(self) -> None:
        self.plays += 1
        self.playing = True

    def pause(self) -> None:
        self.pauses += 1
        self.playing = False

    def release(self) -> None:
        if self.handle is not None:
            self.releases += 1
        self.handle = None
        self.playing = False

    def supports_torch(self) -> bool:
        return self.torch_supported

    def apply_torch(self, on: bool) -> None:
        self.torch_calls.append(bool(on))
