# libs/ports/vision.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal

Facing = Literal["environment", "user"]


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def shifted(self, dx: float, dy: float) -> Point:
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, p: Point) -> bool:
        # inclusive on every edge
        return self.x <= p.x <= self.right and self.y <= p.y <= self.bottom

    def as_tuple(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height


@dataclass(frozen=True)
class Frame:
    width: int
    height: int
    # HxWxC uint8 array (BGR or BGRA). Kept as Any so ports don't import numpy.
    pixels: Any

    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def crop(self, rect: Rect) -> Frame:
        x0 = max(0, min(rect.x, self.width))
        y0 = max(0, min(rect.y, self.height))
        x1 = max(x0, min(rect.right, self.width))
        y1 = max(y0, min(rect.bottom, self.height))
        pixels = self.pixels[y0:y1, x0:x1] if self.pixels is not None else None
        return Frame(width=x1 - x0, height=y1 - y0, pixels=pixels)


class FrameSourcePort(ABC):
    """Anything the scheduler can pull frames from."""

    @abstractmethod
    def size(self) -> tuple[int, int]: ...

    @abstractmethod
    def grab(self) -> Frame: ...


class CameraPort(FrameSourcePort):
    """A frame source with a device lifecycle. Owned by the playback controller."""

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def open(self, facing: Facing = "environment") -> None: ...

    @abstractmethod
    def play(self) -> None: ...

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def release(self) -> None: ...

    # optional capabilities: unsupported means no-op, never an error
    def supports_torch(self) -> bool:
        return False

    def apply_torch(self, on: bool) -> None:
        return None
