from __future__ import annotations

import cv2
import numpy as np
from domain.scanner.errors import SurfaceUnavailableError
from ports.drawing import Color, Path, SurfacePort
from ports.vision import Point


def _bgra(color: Color) -> tuple[int, int, int, int]:
    r, g, b, a = color
    return int(b), int(g), int(r), int(round(max(0.0, min(1.0, a)) * 255))


class OpenCVSurface(SurfacePort):
    """Transparent BGRA overlay buffer; composite it over a video frame to show it."""

    def __init__(self) -> None:
        self.image: np.ndarray | None = None
        self._mirror: list[int | None] = [None]

    # --- SurfacePort ------------------------------------------------------------

    def clear(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise SurfaceUnavailableError(f"surface has no area ({width}x{height})")
        if self.image is None or self.image.shape[:2] != (height, width):
            self.image = np.zeros((height, width, 4), dtype=np.uint8)
        else:
            self.image[:] = 0
        self._mirror = [None]

    def fill_outside(self, hole: Path, color: Color) -> None:
        img = self._canvas()
        h, w = img.shape[:2]
        mask = np.full((h, w), 255, dtype=np.uint8)
        cv2.fillPoly(mask, [self._poly(hole)], 0, lineType=cv2.LINE_AA)
        self._blend(mask, color)

    def fill_path(self, path: Path, color: Color) -> None:
        img = self._canvas()
        mask = np.zeros(img.shape[:2], dtype=np.uint8)
        cv2.fillPoly(mask, [self._poly(path)], 255, lineType=cv2.LINE_AA)
        self._blend(mask, color)

    def stroke_path(self, path: Path, color: Color, width: float) -> None:
        img = self._canvas()
        thickness = max(1, int(round(width)))
        cv2.polylines(
            img, [self._poly(path)], path.closed, _bgra(color), thickness, lineType=cv2.LINE_AA
        )

    def save(self) -> None:
        self._mirror.append(self._mirror[-1])

    def restore(self) -> None:
        if len(self._mirror) > 1:
            self._mirror.pop()

    def mirror_x(self, width: int) -> None:
        self._mirror[-1] = None if self._mirror[-1] is not None else int(width)

    # --- display ----------------------------------------------------------------

    def compose_over(self, frame: np.ndarray) -> np.ndarray:
        """Alpha-blend the overlay over a BGR frame of the same size."""
        if self.image is None or self.image.shape[:2] != frame.shape[:2]:
            return frame
        alpha = self.image[:, :, 3:4].astype(np.float32) / 255.0
        base = frame[:, :, :3].astype(np.float32)
        out = base * (1.0 - alpha) + self.image[:, :, :3].astype(np.float32) * alpha
        return out.astype(np.uint8)

    # --- helpers ----------------------------------------------------------------

    def _canvas(self) -> np.ndarray:
        if self.image is None:
            raise SurfaceUnavailableError("surface used before clear()")
        return self.image

    def _poly(self, path: Path) -> np.ndarray:
        pts: list[Point] = path.flatten()
        flip = self._mirror[-1]
        xy = [((flip - p.x) if flip is not None else p.x, p.y) for p in pts]
        return np.round(np.array(xy, dtype=np.float64)).astype(np.int32).reshape(-1, 1, 2)

    def _blend(self, mask: np.ndarray, color: Color) -> None:
        img = self._canvas()
        b, g, r, a = _bgra(color)
        sel = mask > 0
        img[sel] = (b, g, r, a)
