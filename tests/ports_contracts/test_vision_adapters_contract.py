# tests/ports_contracts/test_vision_adapters_contract.py
from __future__ import annotations

import asyncio
import importlib.util

import pytest

cv2 = pytest.importorskip("cv2")
np = pytest.importorskip("numpy")

from domain.scanner import ROIConfig, SurfaceUnavailableError, compute_roi  # noqa: E402
from domain.scanner.geometry import render_overlay  # noqa: E402
from domain.scanner.model import OverlayStyle  # noqa: E402
from ports.vision import Frame, Point  # noqa: E402

pytestmark = pytest.mark.contract

mss_available = importlib.util.find_spec("mss") is not None


def _qr_frame(text: str = "scanline-42") -> Frame:
    encoder = cv2.QRCodeEncoder.create()
    modules = encoder.encode(text)
    big = cv2.resize(modules, None, fx=8, fy=8, interpolation=cv2.INTER_NEAREST)
    padded = cv2.copyMakeBorder(big, 60, 60, 60, 60, cv2.BORDER_CONSTANT, value=255)
    bgr = cv2.cvtColor(padded, cv2.COLOR_GRAY2BGR)
    h, w = bgr.shape[:2]
    return Frame(width=w, height=h, pixels=bgr)


def _detect(detector, frame: Frame):
    detector.initialize()
    try:
        return asyncio.run(detector.detect(frame))
    finally:
        detector.dispose()


def test_opencv_detector_decodes_qr():
    from adapters.detectors.opencv import OpenCVDetector

    frame = _qr_frame()
    codes = _detect(OpenCVDetector(["qr_code"]), frame)
    assert [c.raw_value for c in codes] == ["scanline-42"]
    assert codes[0].format == "qr_code"
    assert codes[0].polygon is not None and len(codes[0].polygon) == 4
    for p in codes[0].polygon:
        assert 0 <= p.x <= frame.width and 0 <= p.y <= frame.height


def test_opencv_detector_empty_frame():
    from adapters.detectors.opencv import OpenCVDetector

    blank = np.full((120, 160, 3), 255, dtype=np.uint8)
    assert _detect(OpenCVDetector(), Frame(160, 120, blank)) == []
    assert _detect(OpenCVDetector(), Frame(0, 0, None)) == []


def test_opencv_detector_disposed_mid_decode_returns_nothing():
    from adapters.detectors.opencv import OpenCVDetector

    det = OpenCVDetector(["qr_code"])
    det.initialize()
    det.dispose()
    assert asyncio.run(det.detect(_qr_frame())) == []


def test_zbar_detector_decodes_qr():
    pytest.importorskip("pyzbar.pyzbar")
    from adapters.detectors.zbar import ZBarDetector

    det = ZBarDetector()
    if not det.available():
        pytest.skip("libzbar not available")
    codes = _detect(det, _qr_frame())
    assert [c.raw_value for c in codes] == ["scanline-42"]
    assert codes[0].format == "qr_code"
    assert codes[0].polygon is not None


def test_surface_draws_overlay_and_composes():
    from adapters.drawing.opencv import OpenCVSurface

    surface = OpenCVSurface()
    cfg = ROIConfig(border_style="full", border_width=3)
    style = OverlayStyle()
    roi = compute_roi(320, 240, cfg)
    poly = [Point(150, 110), Point(170, 110), Point(170, 130), Point(150, 130)]
    render_overlay(surface, roi, (320, 240), cfg, style, active=True, polygon=poly)

    img = surface.image
    assert img.shape == (240, 320, 4)
    # masked outside, transparent inside the box
    assert img[5, 5, 3] == round(style.mask_color[3] * 255)
    assert img[120, 160 - 40, 3] == 0

    frame = np.full((240, 320, 3), 200, dtype=np.uint8)
    out = surface.compose_over(frame)
    assert out.shape == (240, 320, 3)
    assert out[5, 5, 0] < 200
    assert out[120, 120, 0] == 200


def test_surface_mirror_flips_outline():
    from adapters.drawing.opencv import OpenCVSurface

    surface = OpenCVSurface()
    cfg = ROIConfig(border_width=0, corner_width=0)
    style = OverlayStyle(show_mask=False)
    roi = compute_roi(200, 100, cfg)
    poly = [Point(10, 10), Point(30, 10), Point(30, 30), Point(10, 30)]
    render_overlay(surface, roi, (200, 100), cfg, style, active=True, polygon=poly, mirror=True)

    alpha = surface.image[:, :, 3]
    assert alpha[10, 10:31].max() == 0
    assert alpha[10, 170:191].max() > 0


def test_surface_without_area_is_unavailable():
    from adapters.drawing.opencv import OpenCVSurface

    with pytest.raises(SurfaceUnavailableError):
        OpenCVSurface().clear(0, 480)


@pytest.mark.skipif(not mss_available, reason="mss not installed")
def test_mss_camera_grab_has_nonzero_dims():
    from adapters.capture.mss import MSSCamera
    from domain.scanner import CameraError

    cam = MSSCamera(monitor=1)
    try:
        cam.open()
    except CameraError as ex:
        pytest.skip(f"no display: {ex}")
    try:
        frame = cam.grab()
        assert frame.width > 0 and frame.height > 0
        assert frame.pixels.shape == (frame.height, frame.width, 3)
        assert cam.size() == (frame.width, frame.height)
        cam.pause()
        assert cam.grab() is frame
    finally:
        cam.release()
    assert not cam.is_open
