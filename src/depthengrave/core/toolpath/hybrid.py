"""Hybrid strategy: contour perimeter plus spiral infill.

The region boundary is traced once as closed loops; the region inset by
*stepover* is then filled with the spiral strategy so the infill does not
re-burn the wall.
"""

from __future__ import annotations

from shapely.geometry import MultiPolygon, Polygon

from .base import LayerParams, PathSegment
from .contour import generate_perimeter_segments
from .spiral import generate_spiral_segments
from .utils import ensure_polygon


def generate_hybrid_segments(
    region: Polygon | MultiPolygon,
    params: LayerParams,
) -> list[PathSegment]:
    segments = generate_perimeter_segments(region, params)
    core = ensure_polygon(region.buffer(-params.stepover))
    if not core.is_empty:
        segments.extend(generate_spiral_segments(core, params))
    return segments
