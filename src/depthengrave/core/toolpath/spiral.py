"""Archimedean spiral strategy.

One spiral ``r = b * theta`` (pitch ``2 * pi * b = line_spacing``) is laid
around the region's centroid, out to the furthest corner of its bounding
box, and sampled every *stepover* of arc length.  Samples inside the region
are kept; the beam is switched off wherever the spiral leaves it, so each
run of inside samples becomes one open segment.
"""

from __future__ import annotations

import math

import numpy as np
import shapely
from shapely.geometry import MultiPolygon, Polygon

from .base import LayerParams, MotionPoint, PathSegment
from .utils import mask_runs


def spiral_points(
    cx: float,
    cy: float,
    radius: float,
    pitch: float,
    step: float,
    phase_deg: float = 0.0,
) -> np.ndarray:
    """Sample an outward Archimedean spiral, shape (n, 2).

    Arc length of ``r = b*theta`` is close to ``b * theta**2 / 2``, so equal
    arc steps map to ``theta = sqrt(2 s / b)``.
    """
    b = pitch / (2.0 * math.pi)
    theta_max = radius / b
    length = b * theta_max ** 2 / 2.0
    s = np.arange(0.0, length + step, step)
    theta = np.sqrt(2.0 * s / b)
    phi = theta + math.radians(phase_deg)
    r = b * theta
    return np.column_stack([cx + r * np.cos(phi), cy + r * np.sin(phi)])


def generate_spiral_segments(
    region: Polygon | MultiPolygon,
    params: LayerParams,
) -> list[PathSegment]:
    """Spiral fill of *region* at ``params.z``.

    The spiral runs outward, or inward when ``params.reverse`` is set.
    """
    if region.is_empty:
        return []

    c = region.centroid
    xmin, ymin, xmax, ymax = region.bounds
    radius = max(
        math.hypot(x - c.x, y - c.y)
        for x, y in ((xmin, ymin), (xmin, ymax), (xmax, ymin), (xmax, ymax))
    )
    radius = max(radius, params.line_spacing)

    pts = spiral_points(c.x, c.y, radius, params.line_spacing,
                        params.stepover, params.angle)
    if params.reverse:
        pts = pts[::-1]

    shapely.prepare(region)
    inside = shapely.contains_xy(region, pts[:, 0], pts[:, 1])

    segments = []
    for start, stop in mask_runs(inside):
        run = pts[start:stop]
        segments.append(PathSegment(
            points=[MotionPoint(float(x), float(y), params.z, params.power)
                    for x, y in run],
            label=f"{params.label} spiral".strip(),
        ))
    return segments
