"""Iso-depth contour strategy.

The active region's boundary is traced as closed loops, then the region is
offset inward by *stepover* and traced again until it vanishes.  Outer and
hole rings are both followed, so islands left standing at this depth keep
crisp walls.
"""

from __future__ import annotations

from shapely.geometry import MultiPolygon, Polygon

from .base import LayerParams, PathSegment
from .utils import inset_rings, region_rings, ring_segment


def generate_contour_segments(
    region: Polygon | MultiPolygon,
    params: LayerParams,
) -> list[PathSegment]:
    """Closed contour loops filling *region* at ``params.z``.

    Bidirectional travel alternates loop orientation between successive
    offsets; unidirectional keeps every loop counter-clockwise.
    """
    segments: list[PathSegment] = []
    for i, geom in inset_rings(region, params.stepover):
        segments.extend(_trace_level(geom, i, params))
    return segments


def generate_perimeter_segments(
    region: Polygon | MultiPolygon,
    params: LayerParams,
) -> list[PathSegment]:
    """Only the outermost loops of *region* (its boundary rings)."""
    return _trace_level(region, 0, params)


def _trace_level(geom, level: int, params: LayerParams) -> list[PathSegment]:
    ccw = True if not params.bidirectional else level % 2 == 0
    segments = []
    for ring in region_rings(geom):
        seg = ring_segment(
            ring, params.z, params.power,
            ccw=ccw, angle_deg=params.angle,
            label=f"{params.label} contour {level}".strip(),
        )
        if not seg.is_empty():
            segments.append(seg)
    return segments
