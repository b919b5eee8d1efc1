"""Raster zigzag fill.

Algorithm
---------
1. Cover the region's bounding box with parallel raster lines spaced at
   *spacing* and rotated by *angle*.
2. Clip each raster line to its clip polygon (the region, or a sub-region
   for densified lines).
3. Bidirectional fills reverse every other emitted line so consecutive
   lines join end to start; unidirectional fills keep every line in the
   raster direction.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np
from shapely.geometry import LineString, MultiPolygon, Point, Polygon

from .utils import iter_lines, raster_lines_in_bounds


def raster_fill(
    region: Polygon | MultiPolygon,
    spacing: float,
    angle_deg: float = 0.0,
    bidirectional: bool = True,
    clip_for: Optional[Callable[[int], Polygon | MultiPolygon]] = None,
) -> list[list[tuple[float, float]]]:
    """Return clipped raster lines as coordinate lists, in fill order.

    *clip_for* maps a raster line index to the polygon that line is clipped
    to; by default every line is clipped to *region*.
    """
    if region.is_empty:
        return []

    xmin, ymin, xmax, ymax = region.bounds
    rasters = raster_lines_in_bounds(
        xmin, xmax, ymin, ymax,
        step_over=spacing,
        angle_deg=angle_deg,
    )

    lines: list[list[tuple[float, float]]] = []
    emitted = 0
    for i, line in enumerate(rasters):
        clip = clip_for(i) if clip_for is not None else region
        if clip is None or clip.is_empty:
            continue
        pieces = [list(ls.coords) for ls in iter_lines(line.intersection(clip))]
        if not pieces:
            continue
        for coords in pieces:
            if _runs_backwards(line, coords):
                coords.reverse()
        # Order pieces along the raster direction
        pieces.sort(key=lambda c: line.project(Point(c[0])))

        # For zigzag: reverse every other raster line
        if bidirectional and emitted % 2 == 1:
            pieces = [list(reversed(c)) for c in reversed(pieces)]
        lines.extend(pieces)
        emitted += 1
    return lines


def densify(coords: list[tuple[float, float]], step: float) -> list[tuple[float, float]]:
    """Insert points along *coords* so no gap exceeds *step*."""
    if len(coords) < 2:
        return list(coords)
    line = LineString(coords)
    n = max(1, int(np.ceil(line.length / step)))
    return [tuple(line.interpolate(d).coords[0])
            for d in np.linspace(0.0, line.length, n + 1)]


def _runs_backwards(line: LineString, coords) -> bool:
    return line.project(Point(coords[-1])) < line.project(Point(coords[0]))
