"""Tone and depth-curve transforms shared by the depth map and power mapper.

All functions accept scalars or numpy arrays and are vectorized.
"""

from __future__ import annotations

import math
import numbers
from enum import Enum
from typing import Sequence

import numpy as np

from ..errors import InvalidInput


class DepthCurve(Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    LOGARITHMIC = "logarithmic"
    CUSTOM = "custom"


def apply_gamma(value, gamma: float):
    """``value ** (1/gamma)``."""
    return np.power(value, 1.0 / gamma)


def apply_contrast(value, contrast: float):
    """S-curve contrast about 0.5; *contrast* is a percentage in [-100, 100]."""
    return 0.5 + (value - 0.5) * (1.0 + contrast / 100.0)


def apply_tone(value, contrast: float, brightness: float):
    """Contrast, then brightness, clamped to [0, 1]."""
    value = apply_contrast(value, contrast) + brightness / 100.0
    return np.clip(value, 0.0, 1.0)


def normalize_curve(points: Sequence | None) -> tuple[np.ndarray, np.ndarray]:
    """Validate a custom curve and return its ``(xs, ys)`` arrays.

    *points* is either a sequence of ``(x, y)`` pairs with strictly
    increasing x, or a flat sequence of y values spread evenly over
    x in [0, 1].

    Raises InvalidInput if the curve is missing, has fewer than two points,
    or is not sorted by x.
    """
    if points is None:
        raise InvalidInput("custom depth curve selected but no curve given")
    pts = list(points)
    if len(pts) < 2:
        raise InvalidInput(
            f"custom curve needs at least 2 control points, got {len(pts)}"
        )

    if all(isinstance(p, numbers.Real) for p in pts):
        ys = np.asarray(pts, dtype=np.float64)
        xs = np.linspace(0.0, 1.0, len(ys))
    else:
        try:
            arr = np.asarray(pts, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InvalidInput(f"malformed custom curve: {exc}") from exc
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise InvalidInput("custom curve points must be (x, y) pairs")
        xs, ys = arr[:, 0], arr[:, 1]

    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise InvalidInput("custom curve contains non-finite values")
    if np.any(np.diff(xs) <= 0):
        raise InvalidInput("custom curve x values must be strictly increasing")
    return xs, ys


def interpolate_curve(value, xs: np.ndarray, ys: np.ndarray):
    """Piecewise-linear lookup; values outside the curve clamp to its ends."""
    return np.interp(value, xs, ys)


def apply_depth_curve(value, curve: DepthCurve,
                      custom: tuple[np.ndarray, np.ndarray] | None = None):
    if curve is DepthCurve.EXPONENTIAL:
        return np.power(value, 2)
    if curve is DepthCurve.LOGARITHMIC:
        return np.log(value * (math.e - 1.0) + 1.0)
    if curve is DepthCurve.CUSTOM:
        if custom is None:
            raise InvalidInput("custom depth curve selected but no curve given")
        return interpolate_curve(value, *custom)
    return value
