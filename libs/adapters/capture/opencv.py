from __future__ import annotations

import logging
from typing import Final

import cv2
from domain.scanner.errors import CameraError
from ports.vision import CameraPort, Facing, Frame

LOG: Final = logging.getLogger("adapters.capture.opencv")


class OpenCVCamera(CameraPort):
    """cv2.VideoCapture device; front/back map to two device indices."""

    def __init__(
        self,
        back_index: int = 0,
        front_index: int = 1,
        width: int | None = None,
        height: int | None = None,
        target_fps: float | None = None,
    ) -> None:
        self._indices: dict[Facing, int] = {"environment": back_index, "user": front_index}
        self._req_size = (width, height)
        self._req_fps = target_fps
        self._cap: cv2.VideoCapture | None = None
        self._size = (0, 0)
        self._paused = False
        self._last: Frame | None = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self, facing: Facing = "environment") -> None:
        if self._cap is not None:
            self.release()
        index = self._indices[facing]
        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise CameraError(f"camera {index} ({facing}) could not be opened")
        w, h = self._req_size
        if w:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        if h:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        if self._req_fps:
            cap.set(cv2.CAP_PROP_FPS, float(self._req_fps))
        self._cap = cap
        self._size = (
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        self._paused = False
        LOG.info("Opened camera %d (%s) at %dx%d", index, facing, *self._size)

    def size(self) -> tuple[int, int]:
        return self._size

    def grab(self) -> Frame:
        if self._cap is None:
            raise CameraError("camera is not open")
        if self._paused and self._last is not None:
            return self._last
        ok, img = self._cap.read()
        if not ok or img is None:
            raise CameraError("camera returned no frame")
        h, w = img.shape[:2]
        self._size = (w, h)
        self._last = Frame(width=w, height=h, pixels=img)
        return self._last

    def play(self) -> None:
        self._paused = False

    def pause(self) -> None:
        # VideoCapture has no pause; hold the last frame instead
        self._paused = True

    def release(self) -> None:
        if self._cap is not None:
            try:
                self._cap.release()
            except Exception as ex:
                LOG.warning("VideoCapture.release raised %r", ex)
        self._cap = None
        self._last = None
