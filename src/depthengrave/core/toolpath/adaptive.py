"""Adaptive raster strategy.

A zigzag raster at *line_spacing* covers the whole region.  Where the
relief is steep, extra lines are laid between the base lines: one at half
spacing where the normalized slope exceeds ``STEEP_HALF``, and two more at
quarter spacing where it exceeds ``STEEP_QUARTER``.  Every point follows
the height map, ``z = -min(height, target)``, so shallow features are not
over-burned on deep passes.
"""

from __future__ import annotations

import numpy as np
from scipy import ndimage
from shapely.geometry import MultiPolygon, Polygon

from ..slicer import region_above
from .base import LayerParams, MotionPoint, PathSegment
from .raster import densify, raster_fill

STEEP_HALF = 0.25
STEEP_QUARTER = 0.5


def slope_field(height: np.ndarray) -> np.ndarray:
    """Gradient magnitude of *height*, scaled to [0, 1]."""
    if min(height.shape) < 2:
        return np.zeros(height.shape, dtype=np.float64)
    gy, gx = np.gradient(height.astype(np.float64))
    mag = np.hypot(gx, gy)
    peak = mag.max()
    if peak <= 0:
        return np.zeros_like(mag)
    return mag / peak


def sample_height(height: np.ndarray, xy: np.ndarray, pixel_size: float) -> np.ndarray:
    """Bilinear height at mm coordinates *xy* (shape (n, 2))."""
    coords = np.vstack([xy[:, 1] / pixel_size, xy[:, 0] / pixel_size])
    return ndimage.map_coordinates(height, coords, order=1, mode="nearest")


def generate_adaptive_segments(
    region: Polygon | MultiPolygon,
    params: LayerParams,
    height: np.ndarray,
    pixel_size: float,
    target: float,
) -> list[PathSegment]:
    if region.is_empty:
        return []

    slope = slope_field(height)
    half_zone = region.intersection(region_above(slope, STEEP_HALF, pixel_size))
    quarter_zone = region.intersection(region_above(slope, STEEP_QUARTER, pixel_size))

    def clip_for(k: int):
        if k % 4 == 0:
            return region
        if k % 4 == 2:
            return half_zone
        return quarter_zone

    lines = raster_fill(
        region,
        params.line_spacing / 4.0,
        angle_deg=params.angle,
        bidirectional=params.bidirectional,
        clip_for=clip_for,
    )

    label = f"{params.label} adaptive".strip()
    segments = []
    for coords in lines:
        pts = np.asarray(densify(coords, params.stepover), dtype=np.float64)
        if len(pts) < 2:
            continue
        z = -np.minimum(sample_height(height, pts, pixel_size), target)
        segments.append(PathSegment(
            points=[MotionPoint(float(x), float(y), float(zz), params.power)
                    for (x, y), zz in zip(pts, z)],
            label=label,
        ))
    return segments
