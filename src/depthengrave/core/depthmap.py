"""Depth-map synthesis: RGBA image -> depth, normal and height maps.

Pipeline
--------
1. Luminance, gamma, contrast and brightness on the full-resolution image.
2. Multi-scale pyramid at factors 1, 2, 4 and 8.  Each level is a box
   average of ``scale x scale`` blocks, passed through the depth curve and a
   local S-curve contrast boost.
3. Unsharp masking per level (Gaussian blur, add back the high-pass detail
   scaled by ``detail_boost``).
4. Levels are upsampled and blended with weights ``(layer_blending/100)**i``.
   With ``preserve_edges`` the blend leans back to the finest level at
   high-gradient pixels.  Final sharpening, smoothing, quantization and
   inversion follow.
5. Normals from finite-difference gradients; height = depth * max_depth.
"""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
from scipy import ndimage

from ..errors import InvalidInput, InvalidSettings
from .cancel import CancelToken, check
from .curves import (
    DepthCurve,
    apply_contrast,
    apply_depth_curve,
    apply_gamma,
    apply_tone,
    normalize_curve,
)
from .image import RasterImage
from .keys import known_fields

logger = logging.getLogger(__name__)

PYRAMID_SCALES = (1, 2, 4, 8)


@dataclass
class DepthMapSettings:
    """Image-to-depth parameters.  Percentages are 0-100 unless noted."""

    contrast: float = 0.0          # -100 .. 100
    brightness: float = 0.0        # -100 .. 100
    gamma: float = 1.0             # 0.1 .. 5.0
    sharpness: float = 0.0

    # Depth range (mm)
    base_depth: float = 0.0
    max_depth: float = 2.0
    min_depth: float = 0.0
    depth_curve: DepthCurve = DepthCurve.LINEAR
    custom_curve: Optional[Sequence] = None

    # Multi-layer processing
    layers: int = 1                # quantization levels (1 = continuous)
    layer_blending: float = 50.0

    # Detail
    detail_boost: float = 25.0
    edge_enhancement: float = 0.0

    # Smoothing
    smoothing: float = 0.0
    adaptive_smoothing: bool = False
    preserve_edges: bool = True

    normal_strength: float = 1.0
    invert: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.depth_curve, DepthCurve):
            try:
                self.depth_curve = DepthCurve(self.depth_curve)
            except ValueError as exc:
                raise InvalidInput(
                    f"unknown depth curve {self.depth_curve!r}") from exc

    def validate(self) -> None:
        """Raise InvalidInput / InvalidSettings for a malformed bundle."""
        if self.depth_curve is DepthCurve.CUSTOM:
            normalize_curve(self.custom_curve)

        if self.max_depth <= 0:
            raise InvalidSettings(f"max_depth must be positive, got {self.max_depth}")
        if not (0 <= self.min_depth <= self.base_depth <= self.max_depth):
            raise InvalidSettings(
                "depths must satisfy 0 <= min_depth <= base_depth <= max_depth "
                f"(got {self.min_depth}, {self.base_depth}, {self.max_depth})"
            )
        if not 0.1 <= self.gamma <= 5.0:
            raise InvalidSettings(f"gamma must be in [0.1, 5.0], got {self.gamma}")
        for name in ("contrast", "brightness"):
            v = getattr(self, name)
            if not -100 <= v <= 100:
                raise InvalidSettings(f"{name} must be in [-100, 100], got {v}")
        for name in ("sharpness", "layer_blending", "detail_boost",
                     "edge_enhancement", "smoothing"):
            v = getattr(self, name)
            if not 0 <= v <= 100:
                raise InvalidSettings(f"{name} must be in [0, 100], got {v}")
        if self.layers < 1:
            raise InvalidSettings(f"layers must be >= 1, got {self.layers}")
        if self.normal_strength < 0:
            raise InvalidSettings("normal_strength must be >= 0")

    @classmethod
    def from_dict(cls, data: dict) -> "DepthMapSettings":
        """Build and validate settings from a UI form dict (camelCase ok)."""
        kwargs = known_fields(cls, data)
        if "curve" in data and "depth_curve" not in kwargs:
            kwargs["depth_curve"] = data["curve"]
        settings = cls(**kwargs)
        settings.validate()
        return settings


@dataclass(frozen=True)
class DepthMap:
    """Read-only result of :meth:`DepthMapGenerator.generate`."""

    depth: np.ndarray      # (h, w) in [0, 1]
    normals: np.ndarray    # (h, w, 3) unit vectors
    height: np.ndarray     # (h, w) in [0, max_depth]
    max_depth: float
    meta: dict = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        for name in ("depth", "normals", "height"):
            arr = np.array(getattr(self, name))
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, columns) in pixels."""
        return (int(self.depth.shape[0]), int(self.depth.shape[1]))


class DepthMapGenerator:
    """Stateless depth-map builder; one instance can serve many requests."""

    def __init__(self, max_workers: int = len(PYRAMID_SCALES)):
        self._max_workers = max_workers

    def generate(
        self,
        image: RasterImage,
        settings: DepthMapSettings,
        cancel_token: CancelToken | None = None,
    ) -> DepthMap:
        if image.width <= 0 or image.height <= 0:
            raise InvalidInput(
                f"image must have positive dimensions, got "
                f"{image.width}x{image.height}"
            )
        settings.validate()
        custom = (normalize_curve(settings.custom_curve)
                  if settings.depth_curve is DepthCurve.CUSTOM else None)

        t0 = time.perf_counter()
        check(cancel_token)
        gray = self._tone(image, settings)

        scales = [s for s in PYRAMID_SCALES
                  if image.width // s > 0 and image.height // s > 0]
        if len(scales) < len(PYRAMID_SCALES):
            logger.debug("image %dx%d too small for scales %s",
                         image.width, image.height,
                         sorted(set(PYRAMID_SCALES) - set(scales)))

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = [
                pool.submit(self._process_scale, gray, s, settings, custom,
                            cancel_token)
                for s in scales
            ]
            levels = [f.result() for f in futures]

        check(cancel_token)
        depth = self._blend(levels, scales, gray.shape, settings)
        depth = self._finish(depth, settings)
        check(cancel_token)

        normals = compute_normals(depth, settings.normal_strength)
        height = depth * settings.max_depth

        logger.debug("depth map %dx%d built in %.3fs",
                     image.width, image.height, time.perf_counter() - t0)
        return DepthMap(
            depth=depth,
            normals=normals,
            height=height,
            max_depth=settings.max_depth,
            meta={"scales": tuple(scales)},
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    @staticmethod
    def _tone(image: RasterImage, settings: DepthMapSettings) -> np.ndarray:
        lum = apply_gamma(image.luminance(), settings.gamma)
        return apply_tone(lum, settings.contrast, settings.brightness)

    @staticmethod
    def _process_scale(
        gray: np.ndarray,
        scale: int,
        settings: DepthMapSettings,
        custom,
        cancel_token: CancelToken | None,
    ) -> np.ndarray:
        check(cancel_token)
        h, w = gray.shape
        sh, sw = h // scale, w // scale
        # Box average over full blocks; trailing partial blocks are dropped
        blocks = gray[:sh * scale, :sw * scale].reshape(sh, scale, sw, scale)
        level = blocks.mean(axis=(1, 3))

        level = apply_depth_curve(level, settings.depth_curve, custom)
        level = np.clip(apply_contrast(level, settings.contrast), 0.0, 1.0)

        sigma = max(1, math.floor(sw * 0.02)) / 3.0
        level = unsharp_mask(level, sigma, settings.detail_boost / 100.0)
        return np.clip(level, 0.0, 1.0)

    @staticmethod
    def _blend(
        levels: list[np.ndarray],
        scales: list[int],
        shape: tuple[int, int],
        settings: DepthMapSettings,
    ) -> np.ndarray:
        b = settings.layer_blending / 100.0
        acc = np.zeros(shape)
        total = 0.0
        for i, (level, scale) in enumerate(zip(levels, scales)):
            weight = b ** i
            if weight == 0.0:
                continue
            acc += weight * upsample(level, scale, shape)
            total += weight
        blended = acc / total

        if settings.preserve_edges:
            finest = upsample(levels[0], scales[0], shape)
            edges = edge_strength(finest, settings.edge_enhancement)
            blended = (1.0 - edges) * blended + edges * finest
        return blended

    @staticmethod
    def _finish(depth: np.ndarray, settings: DepthMapSettings) -> np.ndarray:
        if settings.sharpness > 0:
            depth = unsharp_mask(depth, 1.0, settings.sharpness / 100.0)
            depth = np.clip(depth, 0.0, 1.0)

        if settings.smoothing > 0:
            smoothed = ndimage.gaussian_filter(
                depth, sigma=settings.smoothing / 50.0, mode="nearest")
            if settings.adaptive_smoothing:
                keep = edge_strength(depth, settings.edge_enhancement)
                depth = keep * depth + (1.0 - keep) * smoothed
            else:
                depth = smoothed

        if settings.layers > 1:
            n = settings.layers - 1
            depth = np.round(depth * n) / n

        if settings.invert:
            depth = 1.0 - depth

        return np.clip(depth, 0.0, 1.0)


# ----------------------------------------------------------------------
# Filters
# ----------------------------------------------------------------------


def unsharp_mask(data: np.ndarray, sigma: float, amount: float) -> np.ndarray:
    """``data + (data - gaussian(data)) * amount``."""
    if amount == 0:
        return data
    blurred = ndimage.gaussian_filter(data, sigma=sigma, mode="nearest")
    return data + (data - blurred) * amount


def upsample(level: np.ndarray, scale: int, shape: tuple[int, int]) -> np.ndarray:
    """Nearest-block upsample of *level* to *shape*, edge-padding the remainder."""
    if scale == 1 and level.shape == shape:
        return level
    up = np.repeat(np.repeat(level, scale, axis=0), scale, axis=1)
    pad_y = shape[0] - up.shape[0]
    pad_x = shape[1] - up.shape[1]
    if pad_y or pad_x:
        up = np.pad(up, ((0, pad_y), (0, pad_x)), mode="edge")
    return up


def edge_strength(data: np.ndarray, enhancement: float = 0.0) -> np.ndarray:
    """Per-pixel gradient magnitude normalized to [0, 1].

    *enhancement* (percent) scales the response before clamping.
    """
    if min(data.shape) < 2:
        return np.zeros_like(data)
    gy, gx = np.gradient(data)
    mag = np.hypot(gx, gy)
    peak = mag.max()
    if peak <= 0:
        return np.zeros_like(data)
    return np.clip(mag / peak * (1.0 + enhancement / 100.0), 0.0, 1.0)


def compute_normals(depth: np.ndarray, strength: float) -> np.ndarray:
    """Unit normals ``normalize(-dz/dx * s, -dz/dy * s, 1)``; shape (h, w, 3)."""
    if min(depth.shape) < 2:
        gx = np.zeros_like(depth)
        gy = np.zeros_like(depth)
    else:
        gy, gx = np.gradient(depth)
    n = np.stack([-gx * strength, -gy * strength, np.ones_like(depth)], axis=-1)
    return n / np.linalg.norm(n, axis=-1, keepdims=True)
