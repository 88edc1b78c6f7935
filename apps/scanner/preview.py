from __future__ import annotations

import asyncio
import logging
from typing import Final

import cv2
from adapters.drawing.opencv import OpenCVSurface
from domain.scanner import ScannerError
from ports.vision import CameraPort, Facing, Frame

from apps.scanner.compose import ScannerApp

LOG: Final = logging.getLogger("scanner.preview")

WINDOW = "scanline"


class TapCamera(CameraPort):
    """Passes everything through to a camera and keeps the last frame for display."""

    def __init__(self, inner: CameraPort) -> None:
        self.inner = inner
        self.last: Frame | None = None

    @property
    def is_open(self) -> bool:
        return self.inner.is_open

    def open(self, facing: Facing = "environment") -> None:
        self.inner.open(facing)

    def size(self) -> tuple[int, int]:
        return self.inner.size()

    def grab(self) -> Frame:
        self.last = self.inner.grab()
        return self.last

    def play(self) -> None:
        self.inner.play()

    def pause(self) -> None:
        self.inner.pause()

    def release(self) -> None:
        self.inner.release()

    def supports_torch(self) -> bool:
        return self.inner.supports_torch()

    def apply_torch(self, on: bool) -> None:
        self.inner.apply_torch(on)


async def preview_loop(app: ScannerApp, tap: TapCamera, stop: asyncio.Event) -> None:
    """Show frame + overlay in an OpenCV window.

    Keys: q quit, space pause/resume, c switch camera, t torch, r restart.
    """
    surface = app.surface
    period = 1.0 / max(1.0, app.settings.refresh_hz)
    ctl = app.controller
    while not stop.is_set():
        frame = tap.last
        if frame is not None and frame.pixels is not None:
            img = frame.pixels
            # the overlay is already drawn mirrored; only the video is flipped
            if app.scheduler.options.mirror:
                img = cv2.flip(img, 1)
            if isinstance(surface, OpenCVSurface):
                img = surface.compose_over(img)
            cv2.imshow(WINDOW, img)
        key = cv2.waitKey(1) & 0xFF
        try:
            if key == ord("q"):
                stop.set()
            elif key == ord(" "):
                await ctl.set_paused(ctl.snapshot().running)
            elif key == ord("c"):
                await ctl.switch_camera()
            elif key == ord("t"):
                await ctl.set_torch(not ctl.snapshot().torch)
            elif key == ord("r"):
                await ctl.restart()
        except ScannerError as ex:
            # already published as a fatal event; keep the window alive
            LOG.warning("Preview action failed: %s", ex)
        await asyncio.sleep(period)
    cv2.destroyWindow(WINDOW)
