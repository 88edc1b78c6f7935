"""Fallback backend: the zbar software decoder via pyzbar."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

try:
    from pyzbar import pyzbar  # type: ignore
except Exception:  # pragma: no cover - libzbar missing on the host
    pyzbar = None

from ports.detection import DetectedCode, DetectorPort, corners_from
from ports.vision import Frame

from .imaging import normalize_format, to_gray

_SYMBOLS = {
    "qr_code": "QRCODE",
    "ean_13": "EAN13",
    "ean_8": "EAN8",
    "upc_a": "UPCA",
    "upc_e": "UPCE",
    "code_128": "CODE128",
    "code_39": "CODE39",
    "code_93": "CODE93",
    "itf": "I25",
    "codabar": "CODABAR",
    "pdf417": "PDF417",
    "databar": "DATABAR",
}


class ZBarDetector(DetectorPort):
    name = "zbar"

    def __init__(self, formats: Iterable[str] = ()) -> None:
        self.formats = {normalize_format(f) for f in formats}
        self._symbols: list[Any] | None = None
        self._ready = False

    def available(self) -> bool:
        return pyzbar is not None

    def initialize(self) -> None:
        if pyzbar is None:
            raise RuntimeError("pyzbar / libzbar is not installed")
        symbols = [
            getattr(pyzbar.ZBarSymbol, _SYMBOLS[f])
            for f in sorted(self.formats)
            if f in _SYMBOLS and hasattr(pyzbar.ZBarSymbol, _SYMBOLS[f])
        ]
        self._symbols = symbols or None
        self._ready = True

    async def detect(self, frame: Frame) -> list[DetectedCode]:
        if not self._ready:
            raise RuntimeError("zbar detector used before initialize()")
        if frame.pixels is None or frame.width == 0 or frame.height == 0:
            return []
        return await asyncio.to_thread(self._decode, frame.pixels)

    def dispose(self) -> None:
        self._ready = False

    def _decode(self, pixels: Any) -> list[DetectedCode]:
        assert pyzbar is not None
        found = pyzbar.decode(to_gray(pixels), symbols=self._symbols)
        out = []
        for sym in found:
            text = sym.data.decode("utf-8", errors="replace")
            poly = [(p.x, p.y) for p in (sym.polygon or [])]
            if len(poly) < 3:
                r = sym.rect
                poly = [
                    (r.left, r.top),
                    (r.left + r.width, r.top),
                    (r.left + r.width, r.top + r.height),
                    (r.left, r.top + r.height),
                ]
            out.append(
                DetectedCode(
                    raw_value=text,
                    format=normalize_format(str(sym.type)),
                    corners=corners_from(poly),
                )
            )
        return out
