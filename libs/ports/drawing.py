from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .vision import Point

# r, g, b in 0..255, alpha in 0..1
Color = tuple[int, int, int, float]


@dataclass(frozen=True)
class MoveTo:
    p: Point


@dataclass(frozen=True)
class LineTo:
    p: Point


@dataclass(frozen=True)
class ArcTo:
    """Arc around `center`; angles in radians, y axis pointing down."""

    center: Point
    radius: float
    start: float
    end: float

    def point_at(self, angle: float) -> Point:
        return Point(
            self.center.x + self.radius * math.cos(angle),
            self.center.y + self.radius * math.sin(angle),
        )


PathCommand = MoveTo | LineTo | ArcTo


@dataclass(frozen=True)
class Path:
    commands: tuple[PathCommand, ...] = field(default_factory=tuple)
    closed: bool = False

    def flatten(self, arc_step: float = math.pi / 16) -> list[Point]:
        """Polyline approximation for raster back-ends."""
        out: list[Point] = []
        for cmd in self.commands:
            if isinstance(cmd, (MoveTo, LineTo)):
                out.append(cmd.p)
                continue
            sweep = cmd.end - cmd.start
            steps = max(1, int(math.ceil(abs(sweep) / arc_step)))
            if cmd.radius <= 0:
                out.append(cmd.center)
                continue
            for i in range(steps + 1):
                out.append(cmd.point_at(cmd.start + sweep * i / steps))
        return out


class SurfacePort(ABC):
    """Overlay drawing surface. Redrawn from scratch every frame."""

    @abstractmethod
    def clear(self, width: int, height: int) -> None: ...

    @abstractmethod
    def fill_outside(self, hole: Path, color: Color) -> None:
        """Fill the whole surface except the area enclosed by `hole`."""

    @abstractmethod
    def fill_path(self, path: Path, color: Color) -> None: ...

    @abstractmethod
    def stroke_path(self, path: Path, color: Color, width: float) -> None: ...

    @abstractmethod
    def save(self) -> None: ...

    @abstractmethod
    def restore(self) -> None: ...

    @abstractmethod
    def mirror_x(self, width: int) -> None:
        """Flip subsequent drawing about the vertical centerline of `width`."""
