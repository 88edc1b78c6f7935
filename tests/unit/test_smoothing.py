from __future__ import annotations

import pytest
from domain.scanner import PolygonSmoother, centroid, smooth
from ports.vision import Point

P = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)]
Q = [Point(4, 2), Point(14, 2), Point(14, 12), Point(4, 12)]


def test_no_history_returns_copy():
    out = smooth(None, P)
    assert out == P
    assert out is not P


def test_moves_strictly_between():
    out = smooth(P, Q, alpha=0.35)
    for p, q, r in zip(P, Q, out):
        assert p.x < r.x < q.x
        assert p.y < r.y < q.y
    assert (out[0].x, out[0].y) == (pytest.approx(1.4), pytest.approx(0.7))


def test_alpha_one_snaps_to_latest():
    assert smooth(P, Q, alpha=1.0) == Q


def test_vertex_count_change_is_a_discontinuity():
    tri = [Point(1, 1), Point(2, 2), Point(3, 1)]
    assert smooth(P, tri) == tri


def test_centroid_is_vertex_mean():
    assert centroid(P) == Point(5, 5)
    with pytest.raises(ValueError):
        centroid([])


def test_smoother_keeps_session_memory():
    s = PolygonSmoother(alpha=0.5)
    assert s.value is None
    assert s.update(P) == P
    second = s.update(Q)
    assert second[0] == Point(2, 1)
    s.reset()
    assert s.value is None
    assert s.update(Q) == Q


def test_independent_smoothers_do_not_share_state():
    a, b = PolygonSmoother(), PolygonSmoother()
    a.update(P)
    assert b.update(Q) == Q
