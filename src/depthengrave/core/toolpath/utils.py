"""Geometry helper utilities shared across toolpath strategies."""

from __future__ import annotations

import math

import numpy as np
from shapely.geometry import (
    GeometryCollection,
    LinearRing,
    LineString,
    MultiLineString,
    MultiPolygon,
    Polygon,
)
from shapely.ops import unary_union
from shapely.validation import make_valid

from .base import MotionPoint, PathSegment


def ensure_polygon(geom) -> Polygon | MultiPolygon:
    """Return a valid Polygon or MultiPolygon, or empty Polygon on failure."""
    if geom is None or geom.is_empty:
        return Polygon()
    if not geom.is_valid:
        geom = make_valid(geom)
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    if isinstance(geom, GeometryCollection):
        polys = [g for g in geom.geoms if isinstance(g, (Polygon, MultiPolygon))]
        if polys:
            return unary_union(polys)
    return Polygon()


def iter_polygons(geom: Polygon | MultiPolygon):
    """Yield individual Polygon objects from a possibly Multi geometry."""
    if isinstance(geom, Polygon):
        if not geom.is_empty:
            yield geom
    elif isinstance(geom, MultiPolygon):
        for p in geom.geoms:
            if not p.is_empty:
                yield p


def iter_lines(geom):
    """Yield the LineStrings of a clipping result (which may be mixed)."""
    if geom.is_empty:
        return
    if isinstance(geom, LineString):
        yield geom
    elif isinstance(geom, MultiLineString):
        yield from geom.geoms
    else:
        for g in getattr(geom, "geoms", []):
            if isinstance(g, LineString) and not g.is_empty:
                yield g


def region_rings(region: Polygon | MultiPolygon) -> list[LinearRing]:
    """Exterior and interior rings of every polygon in *region*."""
    rings: list[LinearRing] = []
    for poly in iter_polygons(region):
        rings.append(poly.exterior)
        rings.extend(poly.interiors)
    return rings


def ring_segment(
    ring: LinearRing,
    z: float,
    power: float,
    ccw: bool = True,
    angle_deg: float = 0.0,
    label: str = "",
) -> PathSegment:
    """Closed segment tracing *ring* at constant *z*.

    The loop starts at the vertex furthest along the *angle_deg* direction,
    so the entry point turns with the raster angle.
    """
    coords = list(ring.coords)
    if len(coords) < 4:
        return PathSegment(closed=True, label=label)
    if LinearRing(coords).is_ccw != ccw:
        coords.reverse()

    ring_pts = coords[:-1]
    a = math.radians(angle_deg)
    ca, sa = math.cos(a), math.sin(a)
    start = max(range(len(ring_pts)),
                key=lambda i: ring_pts[i][0] * ca + ring_pts[i][1] * sa)
    ordered = ring_pts[start:] + ring_pts[:start]
    ordered.append(ordered[0])

    return PathSegment(
        points=[MotionPoint(x, y, z, power) for x, y in ordered],
        closed=True,
        label=label,
    )


def inset_rings(region: Polygon | MultiPolygon, stepover: float):
    """Yield successive inward offsets of *region* until nothing is left.

    Each yielded item is ``(depth_index, geometry)``; index 0 is *region*
    itself.
    """
    current = ensure_polygon(region)
    i = 0
    while not current.is_empty:
        yield i, current
        i += 1
        current = ensure_polygon(current.buffer(-stepover))


def mask_runs(mask: np.ndarray, min_length: int = 2) -> list[tuple[int, int]]:
    """``(start, stop)`` index pairs of the True runs in a boolean *mask*."""
    if mask.size == 0:
        return []
    padded = np.concatenate(([False], mask, [False])).astype(np.int8)
    edges = np.flatnonzero(np.diff(padded))
    starts, stops = edges[::2], edges[1::2]
    return [(int(a), int(b)) for a, b in zip(starts, stops) if b - a >= min_length]


def raster_lines_in_bounds(
    xmin: float,
    xmax: float,
    ymin: float,
    ymax: float,
    step_over: float,
    angle_deg: float = 0.0,
) -> list[LineString]:
    """Generate parallel raster lines covering the given bounding box.

    Parameters
    ----------
    angle_deg:
        Rotation of raster direction in degrees (0 = horizontal X lines).

    Returns a list of LineString objects, ordered across the box, that
    fully span it once clipped.
    """
    if angle_deg % 180.0 == 0.0:
        lines = []
        y = ymin
        while y <= ymax + 1e-9:
            lines.append(LineString([(xmin, y), (xmax, y)]))
            y += step_over
        return lines

    # Rotated raster: over-extend the lines and rely on clipping
    diagonal = math.hypot(xmax - xmin, ymax - ymin)
    cx = (xmin + xmax) / 2
    cy = (ymin + ymax) / 2

    angle_rad = math.radians(angle_deg)
    cos_a, sin_a = math.cos(angle_rad), math.sin(angle_rad)

    # Perpendicular direction
    perp_dx, perp_dy = -sin_a, cos_a

    n = int(math.ceil(diagonal / step_over)) + 1
    lines = []
    for i in range(-n, n + 1):
        offset = i * step_over
        lx = cx + offset * perp_dx
        ly = cy + offset * perp_dy
        p1 = (lx - cos_a * diagonal, ly - sin_a * diagonal)
        p2 = (lx + cos_a * diagonal, ly + sin_a * diagonal)
        lines.append(LineString([p1, p2]))

    return lines


def resample_segment(seg: PathSegment, n: int) -> PathSegment:
    """*seg* re-sampled to *n* points evenly spaced along its length.

    Both ends are kept, so a closed loop stays closed. z and power are
    interpolated linearly between the original samples.
    """
    pts = seg.points
    if n == len(pts) or not pts:
        return seg
    if n == 1 or len(pts) == 1:
        return PathSegment([pts[0]] * n, seg.closed, seg.label)

    arr = np.array([p.as_tuple() for p in pts], dtype=float)
    dist = np.concatenate(([0.0], np.cumsum(np.hypot(*np.diff(arr[:, :2], axis=0).T))))
    if dist[-1] <= 0:
        return PathSegment([pts[0]] * n, seg.closed, seg.label)
    s = np.linspace(0.0, dist[-1], n)
    cols = [np.interp(s, dist, arr[:, k]) for k in range(4)]
    return PathSegment(
        points=[MotionPoint(float(x), float(y), float(z), float(pw))
                for x, y, z, pw in zip(*cols)],
        closed=seg.closed,
        label=seg.label,
    )


def resample_segments(segments: list[PathSegment], total: int) -> list[PathSegment]:
    """Redistribute *segments* so they hold exactly *total* points.

    Each kept segment gets at least two points (one if it only ever had
    one); the rest are shared out by length. When *total* is too small
    for every segment the shortest ones are dropped. Order is preserved.
    """
    segs = [s for s in segments if not s.is_empty()]
    if total <= 0 or not segs:
        return []

    floor = [min(2, len(s.points)) for s in segs]
    keep: set[int] = set()
    used = 0
    for i in sorted(range(len(segs)), key=lambda i: (-segs[i].length, i)):
        if used + floor[i] <= total:
            keep.add(i)
            used += floor[i]
    if not keep:
        longest = max(range(len(segs)), key=lambda i: (segs[i].length, -i))
        return [resample_segment(segs[longest], total)]

    kept = sorted(keep)
    counts = {i: floor[i] for i in kept}
    spare = total - used
    lengths = np.array([segs[i].length if floor[i] > 1 else 0.0 for i in kept])
    if spare and lengths.sum() > 0:
        # Largest-remainder share of the spare points by length
        share = spare * lengths / lengths.sum()
        extra = np.floor(share).astype(int)
        order = np.argsort(-(share - extra), kind="stable")
        extra[order[:spare - int(extra.sum())]] += 1
        for i, e in zip(kept, extra):
            counts[i] += int(e)
    elif spare:
        counts[kept[0]] += spare

    return [resample_segment(segs[i], counts[i]) for i in kept]
