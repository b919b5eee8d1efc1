"""Tests for segment travel optimization."""

import random
from collections import Counter

import pytest

from depthengrave.core.operation import OptimizationLevel
from depthengrave.core.toolpath.base import MotionPoint, PathSegment
from depthengrave.core.toolpath.optimize import optimize_segments, travel_distance


def _line(x0, y0, x1, y1) -> PathSegment:
    return PathSegment([MotionPoint(x0, y0, -0.1, 10), MotionPoint(x1, y1, -0.1, 10)])


def _loop(points) -> PathSegment:
    pts = [MotionPoint(x, y, -0.1, 10) for x, y in points]
    pts.append(pts[0])
    return PathSegment(pts, closed=True)


def _all_points(segments) -> Counter:
    return Counter((p.x, p.y) for s in segments for p in s.points)


@pytest.fixture
def scattered() -> list[PathSegment]:
    rng = random.Random(7)
    segs = []
    for _ in range(40):
        x, y = rng.uniform(0, 50), rng.uniform(0, 50)
        segs.append(_line(x, y, x + rng.uniform(-3, 3), y + rng.uniform(-3, 3)))
    return segs


class TestNearestNeighbour:
    def test_starts_nearest_origin(self):
        far, near = _line(10, 0, 11, 0), _line(0, 0, 1, 0)
        out = optimize_segments([far, near], OptimizationLevel.SPEED)
        assert out[0].start == (0, 0)

    def test_bidirectional_reverses_open_segments(self):
        segs = [_line(0, 0, 1, 0), _line(5, 0, 3, 0)]
        out = optimize_segments(segs, OptimizationLevel.SPEED, bidirectional=True)
        assert out[1].start == (3, 0)

    def test_unidirectional_keeps_direction(self):
        segs = [_line(0, 0, 1, 0), _line(5, 0, 3, 0)]
        out = optimize_segments(segs, OptimizationLevel.QUALITY, bidirectional=False)
        assert {s.start for s in out} == {(0, 0), (5, 0)}

    def test_closed_loop_rotated_to_nearest_vertex(self):
        loop = _loop([(3, 3), (2, 3), (2, 2), (3, 2)])
        out = optimize_segments([loop, _line(9, 9, 10, 10)], OptimizationLevel.SPEED)
        assert out[0].start == (2, 2)
        assert len(out[0].points) == 5
        assert out[0].points[0] == out[0].points[-1]

    def test_empty_segments_dropped(self):
        out = optimize_segments([PathSegment(), _line(0, 0, 1, 0)])
        assert len(out) == 1


class TestTwoOpt:
    def test_points_preserved(self, scattered):
        out = optimize_segments(scattered, OptimizationLevel.QUALITY)
        assert _all_points(out) == _all_points(scattered)
        assert len(out) == len(scattered)

    def test_quality_never_worse_than_speed(self, scattered):
        fast = optimize_segments(scattered, OptimizationLevel.SPEED)
        best = optimize_segments(scattered, OptimizationLevel.QUALITY)
        assert travel_distance(best) <= travel_distance(fast) + 1e-9

    def test_beats_input_order(self, scattered):
        out = optimize_segments(scattered, OptimizationLevel.BALANCED)
        assert travel_distance(out) < travel_distance(scattered)

    def test_deterministic(self, scattered):
        a = optimize_segments(scattered, OptimizationLevel.QUALITY)
        b = optimize_segments(scattered, OptimizationLevel.QUALITY)
        assert [s.points for s in a] == [s.points for s in b]
