"""Power, speed and focus mapping from laser profiles.

Two families of mapping live here:

* per-sample lookups (:func:`power_for`, :func:`speed_for`,
  :func:`power_map`) that push a grayscale/depth value through the tone
  adjustments and the profile's 256-entry device curve;
* per-layer ramps (:func:`layer_power`, :func:`layer_speed`,
  :func:`focus_offset_for`) consumed by the toolpath planner, and
  :func:`pass_power_map`, the per-pixel power for one pass.

Registry lookups are the caller's responsibility; these functions take a
resolved :class:`LaserProfile`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from ..errors import InvalidMaterial, InvalidSettings
from .curves import apply_gamma, apply_tone
from .profiles import CURVE_LENGTH, LaserProfile


@dataclass(frozen=True)
class ToneOptions:
    """Image adjustments and output range for grayscale power mapping."""

    contrast: float = 0.0      # -100 .. 100
    brightness: float = 0.0    # -100 .. 100
    gamma: float = 1.0
    min_power: float = 0.0
    max_power: float = 100.0


@dataclass(frozen=True)
class MaterialOptics:
    refractive_index: float
    thickness: float = 0.0  # mm


@dataclass(frozen=True)
class PowerRamp:
    """Per-pass power schedule in percent."""
    initial: float = 40.0
    increment: float = 3.0
    max: float = 95.0


@dataclass(frozen=True)
class SpeedProfile:
    """Per-pass speed schedule: geometric decay floored at *min* (mm/s)."""
    initial: float = 100.0
    reduction: float = 0.9
    min: float = 20.0


@dataclass(frozen=True)
class BeamProfile:
    focus_offset: float = 0.05  # mm of focus shift per mm of depth


def _curve_index(adjusted):
    return np.floor(adjusted * (CURVE_LENGTH - 1)).astype(int)


def _adjust(value, opts: ToneOptions):
    value = apply_gamma(np.clip(value, 0.0, 1.0), opts.gamma)
    return apply_tone(value, opts.contrast, opts.brightness)


def power_for(profile: LaserProfile, value: float, opts: ToneOptions) -> float:
    """Map a grayscale/depth *value* in [0, 1] to a power in
    ``[opts.min_power, opts.max_power]`` through the profile's power curve."""
    idx = int(_curve_index(_adjust(float(value), opts)))
    pct = profile.power_curve[idx]
    return opts.min_power + (opts.max_power - opts.min_power) * pct


def power_map(profile: LaserProfile, values: np.ndarray, opts: ToneOptions) -> np.ndarray:
    """Vectorized :func:`power_for` over an array of samples."""
    curve = np.asarray(profile.power_curve)
    pct = curve[_curve_index(_adjust(np.asarray(values, dtype=np.float64), opts))]
    return opts.min_power + (opts.max_power - opts.min_power) * pct


def pass_power_map(height: np.ndarray, laser: LaserProfile, target: float,
                   depth_per_pass: float, adjustment: float = 1.0) -> np.ndarray:
    """Per-pixel power for the pass that cuts down to *target* mm.

    Pixels whose required depth *height* (mm) does not reach past the
    previous layer, ``target - depth_per_pass``, get 0. The rest get a
    share of ``laser.max_power * adjustment`` proportional to how much of
    this layer they still need, saturating at 1 once the full layer is
    required. The pass itself cuts at z = ``-target``.
    """
    if depth_per_pass <= 0:
        raise InvalidSettings(f"depth_per_pass must be positive, got {depth_per_pass}")
    floor = target - depth_per_pass
    h = np.asarray(height, dtype=np.float64)
    frac = np.clip((h - floor) / depth_per_pass, 0.0, 1.0)
    return np.where(h > floor, frac, 0.0) * laser.max_power * adjustment


def speed_for(profile: LaserProfile, value: float,
              min_speed: float, max_speed: float) -> float:
    """Look *value* up in the profile's speed curve and scale to the range."""
    idx = int(_curve_index(min(1.0, max(0.0, float(value)))))
    return min_speed + (max_speed - min_speed) * profile.speed_curve[idx]


def focus_offset_for(depth: float, optics: MaterialOptics) -> float:
    """Focal shift needed to keep focus *depth* mm inside a refractive stock."""
    if optics.refractive_index <= 0:
        raise InvalidMaterial(
            f"refractive index must be positive, got {optics.refractive_index}"
        )
    return depth * (1.0 - 1.0 / optics.refractive_index)


def layer_power(ramp: PowerRamp, laser: LaserProfile, p: int) -> float:
    """Commanded power for 0-based pass *p*.

    Non-decreasing in *p*, capped at ``ramp.max`` and kept inside the
    profile's ``[min_power, max_power]``.
    """
    power = min(ramp.initial + ramp.increment * p, ramp.max)
    return min(max(power, laser.min_power), laser.max_power)


def layer_speed(profile: SpeedProfile, p: int) -> float:
    """Traverse speed for 0-based pass *p*; non-increasing, floored at min."""
    return max(profile.initial * math.pow(profile.reduction, p), profile.min)
