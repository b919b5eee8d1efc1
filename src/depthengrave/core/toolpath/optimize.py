"""Travel optimization for the segments of one pass.

Segments are reordered to cut the beam-off travel between them:

1. Greedy nearest neighbour from *origin*.  Closed loops may be entered at
   any vertex (the loop is rotated to start there); open segments may be
   entered from either end, but only when travel is bidirectional.
2. 2-opt sweeps over the resulting order.  A move reverses a run of
   segments, which also flips each open segment in the run, so it is only
   tried when every segment in the run may be flipped.

The points inside a segment are never changed, only their order or
starting vertex.
"""

from __future__ import annotations

import math

from ..operation import OptimizationLevel
from .base import PathSegment

SWEEPS = {
    OptimizationLevel.SPEED: 0,
    OptimizationLevel.BALANCED: 1,
    OptimizationLevel.QUALITY: 4,
}


def _dist(a: tuple[float, float], b: tuple[float, float]) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def travel_distance(
    segments: list[PathSegment],
    origin: tuple[float, float] = (0.0, 0.0),
) -> float:
    """Total beam-off travel from *origin* through *segments* in order."""
    total = 0.0
    pos = origin
    for seg in segments:
        if seg.is_empty():
            continue
        total += _dist(pos, seg.start)
        pos = seg.end
    return total


def optimize_segments(
    segments: list[PathSegment],
    level: OptimizationLevel = OptimizationLevel.BALANCED,
    bidirectional: bool = True,
    origin: tuple[float, float] = (0.0, 0.0),
) -> list[PathSegment]:
    """Return *segments* reordered for shorter travel."""
    work = [s for s in segments if not s.is_empty()]
    if len(work) <= 1:
        return work
    ordered = _nearest_neighbour(work, bidirectional, origin)
    for _ in range(SWEEPS[level]):
        if not _two_opt_sweep(ordered, bidirectional, origin):
            break
    return ordered


def _entry(seg: PathSegment, pos, bidirectional: bool) -> tuple[float, PathSegment]:
    """Cheapest way to enter *seg* from *pos*: ``(distance, oriented_seg)``."""
    if seg.closed:
        pts = seg.points
        best = min(range(len(pts)), key=lambda i: _dist(pos, (pts[i].x, pts[i].y)))
        oriented = seg.rotated_to(best)
        return _dist(pos, oriented.start), oriented
    forward = _dist(pos, seg.start)
    if bidirectional:
        backward = _dist(pos, seg.end)
        if backward < forward:
            return backward, seg.reversed()
    return forward, seg


def _nearest_neighbour(segments, bidirectional, origin) -> list[PathSegment]:
    remaining = list(segments)
    ordered: list[PathSegment] = []
    pos = origin
    while remaining:
        best_i, best_d, best_seg = 0, math.inf, remaining[0]
        for i, seg in enumerate(remaining):
            d, oriented = _entry(seg, pos, bidirectional)
            if d < best_d:
                best_i, best_d, best_seg = i, d, oriented
        remaining.pop(best_i)
        ordered.append(best_seg)
        pos = best_seg.end
    return ordered


def _two_opt_sweep(order: list[PathSegment], bidirectional: bool, origin) -> bool:
    """One in-place pass of 2-opt moves; returns True if anything improved."""
    n = len(order)
    # fixed[k] counts open segments that may not be flipped in order[:k]
    fixed = [0] * (n + 1)
    improved = False

    def rebuild():
        for k, seg in enumerate(order):
            fixed[k + 1] = fixed[k] + (0 if seg.closed or bidirectional else 1)

    rebuild()
    for i in range(n - 1):
        for j in range(i + 1, n):
            if fixed[j + 1] - fixed[i]:
                continue
            prev_end = order[i - 1].end if i > 0 else origin
            a, b = order[i], order[j]
            before = _dist(prev_end, a.start)
            after = _dist(prev_end, b.end)
            if j + 1 < n:
                nxt = order[j + 1].start
                before += _dist(b.end, nxt)
                after += _dist(a.start, nxt)
            if after < before - 1e-9:
                order[i:j + 1] = [s if s.closed else s.reversed()
                                  for s in reversed(order[i:j + 1])]
                rebuild()
                improved = True
    return improved
