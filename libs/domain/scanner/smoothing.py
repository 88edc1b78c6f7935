from __future__ import annotations

from collections.abc import Sequence

from ports.vision import Point

DEFAULT_ALPHA = 0.35


def smooth(
    previous: Sequence[Point] | None, latest: Sequence[Point], alpha: float = DEFAULT_ALPHA
) -> list[Point]:
    """Exponential moving average over polygon vertices.

    No smoothing across a change of vertex count: the new polygon is returned as is.
    """
    if previous is None or len(previous) != len(latest):
        return list(latest)
    a = min(1.0, max(1e-6, float(alpha)))
    return [
        Point(p.x + a * (n.x - p.x), p.y + a * (n.y - p.y)) for p, n in zip(previous, latest)
    ]


def centroid(points: Sequence[Point]) -> Point:
    if not points:
        raise ValueError("centroid of an empty polygon")
    n = len(points)
    return Point(sum(p.x for p in points) / n, sum(p.y for p in points) / n)


class PolygonSmoother:
    """Smoothing memory for one scanner session."""

    def __init__(self, alpha: float = DEFAULT_ALPHA) -> None:
        self.alpha = alpha
        self._value: list[Point] | None = None

    @property
    def value(self) -> list[Point] | None:
        return list(self._value) if self._value is not None else None

    def update(self, points: Sequence[Point]) -> list[Point]:
        self._value = smooth(self._value, points, self.alpha)
        return list(self._value)

    def reset(self) -> None:
        self._value = None
