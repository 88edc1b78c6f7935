"""ROI geometry and the guide overlay.

Everything here is pure: the ROI is recomputed from the current frame size
on every call and the overlay is redrawn from scratch, never patched.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ports.drawing import ArcTo, LineTo, MoveTo, Path, SurfacePort
from ports.vision import Point, Rect

from .model import OverlayStyle, ROIConfig

_HALF_PI = math.pi / 2


def compute_roi(frame_width: int, frame_height: int, config: ROIConfig) -> Rect:
    """Centered ROI rectangle for a frame of the given size.

    The longer ROI edge is driven by the frame's short side, so the box keeps
    the same footprint whatever the aspect ratio. Invalid settings are clamped.
    """
    cfg = config.clamped()
    fw = max(0, int(frame_width))
    fh = max(0, int(frame_height))

    base = max(0, math.floor(min(fw, fh) * cfg.size_ratio))
    if cfg.shape == "rect":
        if cfg.aspect >= 1:
            w, h = base, math.floor(base / cfg.aspect)
        else:
            w, h = math.floor(base * cfg.aspect), base
    else:
        w = h = base

    x = (fw - w) // 2
    y = (fh - h) // 2

    # shrink symmetrically; the shift never exceeds half the box so it stays inside
    pw = max(0, w - 2 * cfg.padding)
    ph = max(0, h - 2 * cfg.padding)
    return Rect(x + (w - pw) // 2, y + (h - ph) // 2, pw, ph)


def _corner_radius(roi: Rect, radius: float) -> float:
    return max(0.0, min(float(radius), roi.width / 2, roi.height / 2))


def rounded_rect_path(roi: Rect, radius: float) -> Path:
    x, y, w, h = roi.as_tuple()
    r = _corner_radius(roi, radius)
    if r == 0:
        return Path(
            (
                MoveTo(Point(x, y)),
                LineTo(Point(x + w, y)),
                LineTo(Point(x + w, y + h)),
                LineTo(Point(x, y + h)),
            ),
            closed=True,
        )
    return Path(
        (
            MoveTo(Point(x + r, y)),
            LineTo(Point(x + w - r, y)),
            ArcTo(Point(x + w - r, y + r), r, -_HALF_PI, 0.0),
            LineTo(Point(x + w, y + h - r)),
            ArcTo(Point(x + w - r, y + h - r), r, 0.0, _HALF_PI),
            LineTo(Point(x + r, y + h)),
            ArcTo(Point(x + r, y + h - r), r, _HALF_PI, math.pi),
            LineTo(Point(x, y + r)),
            ArcTo(Point(x + r, y + r), r, math.pi, math.pi + _HALF_PI),
        ),
        closed=True,
    )


def corner_bracket_paths(roi: Rect, radius: float, length: float) -> list[Path]:
    """Four L-shaped brackets that run tangentially into the rounded corners.

    `length` is measured from the corner along each edge and never reaches past
    the edge midpoint, so opposite brackets cannot overlap.
    """
    x, y, w, h = roi.as_tuple()
    r = _corner_radius(roi, radius)
    length = max(0.0, float(length))
    sx = max(0.0, min(length, w / 2) - r)
    sy = max(0.0, min(length, h / 2) - r)

    top_left = Path(
        (
            MoveTo(Point(x, y + r + sy)),
            LineTo(Point(x, y + r)),
            ArcTo(Point(x + r, y + r), r, math.pi, math.pi + _HALF_PI),
            LineTo(Point(x + r + sx, y)),
        )
    )
    top_right = Path(
        (
            MoveTo(Point(x + w - r - sx, y)),
            LineTo(Point(x + w - r, y)),
            ArcTo(Point(x + w - r, y + r), r, -_HALF_PI, 0.0),
            LineTo(Point(x + w, y + r + sy)),
        )
    )
    bottom_right = Path(
        (
            MoveTo(Point(x + w, y + h - r - sy)),
            LineTo(Point(x + w, y + h - r)),
            ArcTo(Point(x + w - r, y + h - r), r, 0.0, _HALF_PI),
            LineTo(Point(x + w - r - sx, y + h)),
        )
    )
    bottom_left = Path(
        (
            MoveTo(Point(x + r + sx, y + h)),
            LineTo(Point(x + r, y + h)),
            ArcTo(Point(x + r, y + h - r), r, _HALF_PI, math.pi),
            LineTo(Point(x, y + h - r - sy)),
        )
    )
    return [top_left, top_right, bottom_right, bottom_left]


def polygon_path(points: Sequence[Point]) -> Path:
    first, *rest = points
    return Path((MoveTo(first), *(LineTo(p) for p in rest)), closed=True)


def render_overlay(
    surface: SurfacePort,
    roi: Rect,
    frame_size: tuple[int, int],
    config: ROIConfig,
    style: OverlayStyle,
    *,
    active: bool,
    polygon: Sequence[Point] | None = None,
    mirror: bool = False,
) -> None:
    """Draw mask, fill, border and detection outline, in that order."""
    cfg = config.clamped()
    width, height = frame_size
    surface.clear(width, height)

    box = rounded_rect_path(roi, cfg.radius)
    if style.show_mask:
        surface.fill_outside(box, style.mask_color)

    if cfg.fill_opacity > 0:
        r, g, b, _ = style.active_color if active else style.idle_color
        surface.fill_path(box, (r, g, b, cfg.fill_opacity))

    color = style.active_color if active else style.idle_color
    if cfg.border_style == "corner":
        if cfg.corner_width > 0:
            for bracket in corner_bracket_paths(roi, cfg.radius, cfg.corner_length):
                surface.stroke_path(bracket, color, cfg.corner_width)
    elif cfg.border_width > 0:
        surface.stroke_path(box, color, cfg.border_width)

    if polygon is not None and len(polygon) >= 3:
        surface.save()
        try:
            if mirror:
                surface.mirror_x(width)
            surface.stroke_path(polygon_path(polygon), style.outline_color, style.outline_width)
        finally:
            surface.restore()
