from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from .vision import Frame, Point


@dataclass(frozen=True)
class DetectedCode:
    raw_value: str
    format: str | None = None
    # closed polygon, >= 3 vertices when present
    corners: tuple[Point, ...] | None = None

    @property
    def polygon(self) -> tuple[Point, ...] | None:
        if self.corners is None or len(self.corners) < 3:
            return None
        return self.corners

    def translated(self, dx: float, dy: float) -> DetectedCode:
        if self.corners is None or (dx == 0 and dy == 0):
            return self
        return DetectedCode(
            raw_value=self.raw_value,
            format=self.format,
            corners=tuple(p.shifted(dx, dy) for p in self.corners),
        )


def corners_from(points: Sequence[tuple[float, float]] | None) -> tuple[Point, ...] | None:
    if not points:
        return None
    pts = tuple(Point(float(x), float(y)) for x, y in points)
    return pts if len(pts) >= 3 else None


class DetectorPort(ABC):
    """Capability interface for one barcode backend."""

    name: str = "detector"

    def available(self) -> bool:
        """Global capability flag: False when the host cannot run this backend at all."""
        return True

    @abstractmethod
    def initialize(self) -> None: ...

    @abstractmethod
    async def detect(self, frame: Frame) -> list[DetectedCode]: ...

    @abstractmethod
    def dispose(self) -> None: ...
