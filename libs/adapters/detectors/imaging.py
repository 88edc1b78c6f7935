from __future__ import annotations

import cv2
import numpy as np


def to_gray(pixels: np.ndarray) -> np.ndarray:
    if pixels.ndim == 2:
        return pixels
    if pixels.shape[2] == 4:
        return cv2.cvtColor(pixels, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(pixels, cv2.COLOR_BGR2GRAY)


def normalize_format(name: str) -> str:
    """'EAN_13' / 'EAN13' / 'QRCODE' -> BarcodeDetector-style 'ean_13' / 'qr_code'."""
    key = name.strip().upper().replace("-", "_")
    return _ALIASES.get(key, key.lower())


_ALIASES = {
    "QRCODE": "qr_code",
    "QR": "qr_code",
    "EAN13": "ean_13",
    "EAN8": "ean_8",
    "UPCA": "upc_a",
    "UPCE": "upc_e",
    "CODE128": "code_128",
    "CODE39": "code_39",
    "CODE93": "code_93",
    "I25": "itf",
    "CODABAR": "codabar",
    "PDF417": "pdf417",
    "DATABAR": "databar",
}
