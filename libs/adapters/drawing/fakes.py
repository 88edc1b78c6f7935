from __future__ import annotations

from typing import Any

from domain.scanner.errors import SurfaceUnavailableError
from ports.drawing import Color, Path, SurfacePort


class RecordingSurface(SurfacePort):
    """Records every drawing call as (op, args...) tuples."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.ops: list[tuple[Any, ...]] = []
        self.frames = 0

    def clear(self, width: int, height: int) -> None:
        if not self.available:
            raise SurfaceUnavailableError("surface detached")
        self.frames += 1
        self.ops.append(("clear", width, height))

    def fill_outside(self, hole: Path, color: Color) -> None:
        self.ops.append(("fill_outside", hole, color))

    def fill_path(self, path: Path, color: Color) -> None:
        self.ops.append(("fill", path, color))

    def stroke_path(self, path: Path, color: Color, width: float) -> None:
        self.ops.append(("stroke", path, color, width))

    def save(self) -> None:
        self.ops.append(("save",))

    def restore(self) -> None:
        self.ops.append(("restore",))

    def mirror_x(self, width: int) -> None:
        self.ops.append(("mirror", width))

    # helpers for assertions

    def names(self) -> list[str]:
        return [op[0] for op in self.ops]

    def last_frame(self) -> list[tuple[Any, ...]]:
        for i in range(len(self.ops) - 1, -1, -1):
            if self.ops[i][0] == "clear":
                return self.ops[i:]
        return []
