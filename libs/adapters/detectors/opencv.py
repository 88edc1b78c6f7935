"""Native backend: the detectors that ship inside OpenCV."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Final

import cv2
import numpy as np
from ports.detection import DetectedCode, DetectorPort, corners_from
from ports.vision import Frame

from .imaging import normalize_format, to_gray

LOG: Final = logging.getLogger("adapters.detectors.opencv")


class OpenCVDetector(DetectorPort):
    name = "opencv"

    def __init__(self, formats: Iterable[str] = ()) -> None:
        self.formats = {normalize_format(f) for f in formats}
        self._qr: Any = None
        self._bar: Any = None

    def available(self) -> bool:
        return hasattr(cv2, "QRCodeDetector")

    def initialize(self) -> None:
        want_qr = not self.formats or "qr_code" in self.formats
        want_1d = not self.formats or bool(self.formats - {"qr_code"})
        self._qr = cv2.QRCodeDetector() if want_qr else None
        self._bar = None
        if want_1d:
            factory = getattr(cv2, "barcode_BarcodeDetector", None) or getattr(
                getattr(cv2, "barcode", None), "BarcodeDetector", None
            )
            if factory is not None:
                self._bar = factory()
            else:
                LOG.info("cv2 has no 1-D barcode detector; QR only.")
        if self._qr is None and self._bar is None:
            raise RuntimeError(f"no OpenCV detector supports formats {sorted(self.formats)}")

    async def detect(self, frame: Frame) -> list[DetectedCode]:
        if frame.pixels is None or frame.width == 0 or frame.height == 0:
            return []
        return await asyncio.to_thread(self._decode, frame.pixels)

    def dispose(self) -> None:
        self._qr = None
        self._bar = None

    # --- sync work (runs in a worker thread) --------------------------------------

    def _decode(self, pixels: np.ndarray) -> list[DetectedCode]:
        qr, bar = self._qr, self._bar
        gray = to_gray(pixels)
        out: list[DetectedCode] = []
        if qr is not None:
            ok, texts, points, _ = qr.detectAndDecodeMulti(gray)
            if ok and points is not None:
                for text, quad in zip(texts, points):
                    if text:
                        out.append(self._code(text, "qr_code", quad))
        if bar is not None:
            out.extend(self._decode_1d(bar, gray))
        if self.formats:
            out = [c for c in out if c.format in self.formats]
        return out

    def _decode_1d(self, bar: Any, gray: np.ndarray) -> list[DetectedCode]:
        if hasattr(bar, "detectAndDecodeWithType"):
            ok, texts, types, points = bar.detectAndDecodeWithType(gray)
        else:
            ok, texts, types, points = bar.detectAndDecode(gray)
        if not ok or points is None:
            return []
        return [
            self._code(text, normalize_format(str(kind)), quad)
            for text, kind, quad in zip(texts, types, points)
            if text
        ]

    @staticmethod
    def _code(text: str, fmt: str, quad: np.ndarray) -> DetectedCode:
        pts = [(float(x), float(y)) for x, y in np.asarray(quad).reshape(-1, 2)]
        return DetectedCode(raw_value=text, format=fmt, corners=corners_from(pts))
