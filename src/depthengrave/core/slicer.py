"""Height-map slicer: iso-depth contours -> Shapely polygons.

The slicer is the raster -> vector bridge.  For a given threshold it returns
the region of the height map lying strictly above it, as one or more
Shapely polygons in millimetres.
"""

from __future__ import annotations

import warnings
from functools import reduce

import numpy as np
from shapely import affinity
from shapely.geometry import MultiPolygon, Polygon
from skimage import measure

from .toolpath.utils import ensure_polygon


def compute_target_depths(max_depth: float, pass_count: int) -> list[float]:
    """Cumulative target depth of each pass, shallowest first.

    ``target[p] = (p + 1) * max_depth / pass_count``; the final entry is
    exactly *max_depth*.
    """
    if pass_count < 1:
        raise ValueError("pass_count must be >= 1")
    if max_depth <= 0:
        raise ValueError("max_depth must be positive")
    depths = [(p + 1) * max_depth / pass_count for p in range(pass_count)]
    depths[-1] = max_depth
    return depths


def region_above(
    field: np.ndarray,
    level: float,
    pixel_size: float,
) -> Polygon | MultiPolygon:
    """Polygon(s) covering the pixels of *field* strictly above *level*.

    Pixel (row r, column c) maps to ``(c * pixel_size, r * pixel_size)``.
    Contours are traced with marching squares on a copy of *field* padded
    by one pixel below *level*, so every contour closes.  Nested contours
    are combined even-odd, which turns islands inside holes into islands
    again.
    """
    if not np.any(field > level):
        return Polygon()

    padded = np.pad(field.astype(np.float64), 1, mode="constant",
                    constant_values=level - 1.0)
    rings = []
    for contour in measure.find_contours(padded, level):
        if len(contour) < 4:
            continue
        # (row, col) -> (x, y), undoing the padding offset
        xy = contour[:, ::-1] - 1.0
        poly = Polygon(xy)
        if poly.is_empty or poly.area <= 0:
            continue
        rings.append(ensure_polygon(poly))

    if not rings:
        return Polygon()

    try:
        region = reduce(lambda a, b: a.symmetric_difference(b), rings)
    except Exception as exc:
        warnings.warn(f"Region assembly failed at level {level:.4f}: {exc}",
                      stacklevel=2)
        return Polygon()

    region = ensure_polygon(region)
    if pixel_size != 1.0:
        region = affinity.scale(region, xfact=pixel_size, yfact=pixel_size,
                                origin=(0.0, 0.0))
    return region
