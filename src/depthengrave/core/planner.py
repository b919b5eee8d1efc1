"""Progressive multi-layer pass planning.

For pass ``p`` (0-based) of ``N = settings.pass_count``:

* target depth ``(p + 1) * max_depth / N``, the last pass exactly at
  ``max_depth``;
* power and speed from the settings' ramps, focus offset growing with
  depth;
* the active region is every pixel whose height lies above
  ``target - depth_per_pass``, sliced into polygons and filled by the
  chosen strategy, optionally crosshatched, then travel-optimized.

Passes are independent and run on a thread pool; the result is sorted by
pass index and is identical for identical inputs.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Optional

from ..errors import Cancelled, InvalidMaterial, InvalidSettings, PlanningError
from .cancel import CancelToken, check
from .depthmap import DepthMap, DepthMapSettings
from .operation import Strategy, ToolpathSettings
from .power import MaterialOptics, focus_offset_for, layer_power, layer_speed
from .profiles import LaserProfile
from .slicer import compute_target_depths, region_above
from .toolpath.adaptive import generate_adaptive_segments
from .toolpath.base import LayerParams, Pass, PathSegment
from .toolpath.contour import generate_contour_segments
from .toolpath.hybrid import generate_hybrid_segments
from .toolpath.optimize import optimize_segments
from .toolpath.spiral import generate_spiral_segments
from .toolpath.utils import ensure_polygon, resample_segments

logger = logging.getLogger(__name__)

_GENERATORS = {
    Strategy.CONTOUR: generate_contour_segments,
    Strategy.SPIRAL: generate_spiral_segments,
    Strategy.HYBRID: generate_hybrid_segments,
}


class ToolpathPlanner:
    """Turns a depth map into an ordered list of engraving passes."""

    def __init__(self, max_workers: Optional[int] = None):
        self._max_workers = max_workers or os.cpu_count() or 1

    def plan(
        self,
        depth_map: DepthMap,
        laser: LaserProfile,
        depth_settings: DepthMapSettings,
        toolpath_settings: ToolpathSettings,
        *,
        cancel_token: CancelToken | None = None,
        optics: MaterialOptics | None = None,
    ) -> list[Pass]:
        """Plan every pass for *depth_map*.

        Raises
        ------
        InvalidSettings:
            Bad depth or toolpath settings, or a power ramp that never
            reaches the laser's minimum power.
        InvalidMaterial:
            *optics* with a non-positive refractive index.
        PlanningError:
            A pass worker failed; the original error is chained.
        Cancelled:
            *cancel_token* was set before planning finished.
        """
        if depth_settings.max_depth <= 0:
            raise InvalidSettings(
                f"max_depth must be positive, got {depth_settings.max_depth}")
        depth_settings.validate()
        toolpath_settings.validate()
        if toolpath_settings.power_ramp.max < laser.min_power:
            raise InvalidSettings(
                f"power ramp max ({toolpath_settings.power_ramp.max}) is below "
                f"{laser.name} minimum power ({laser.min_power})"
            )
        if optics is not None and optics.refractive_index <= 0:
            raise InvalidMaterial(
                f"refractive index must be positive, got {optics.refractive_index}")
        check(cancel_token)

        t0 = time.perf_counter()
        targets = compute_target_depths(depth_settings.max_depth,
                                        toolpath_settings.pass_count)

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = [
                pool.submit(self._plan_pass, p, target, depth_map, laser,
                            toolpath_settings, optics, cancel_token)
                for p, target in enumerate(targets)
            ]
            passes = self._collect(futures)

        check(cancel_token)
        passes.sort(key=lambda ps: ps.index)
        logger.info("planned %d %s passes (%d points) in %.3fs",
                    len(passes), toolpath_settings.strategy.value,
                    sum(ps.total_points for ps in passes),
                    time.perf_counter() - t0)
        return passes

    @staticmethod
    def _collect(futures: list[Future]) -> list[Pass]:
        passes = []
        for i, fut in enumerate(futures):
            try:
                passes.append(fut.result())
            except Cancelled:
                for other in futures[i + 1:]:
                    other.cancel()
                raise
            except Exception as exc:
                for other in futures[i + 1:]:
                    other.cancel()
                raise PlanningError(f"pass {i + 1} failed: {exc}") from exc
        return passes

    # ------------------------------------------------------------------
    # Per-pass work
    # ------------------------------------------------------------------

    def _plan_pass(
        self,
        p: int,
        target: float,
        depth_map: DepthMap,
        laser: LaserProfile,
        settings: ToolpathSettings,
        optics: MaterialOptics | None,
        cancel_token: CancelToken | None,
    ) -> Pass:
        check(cancel_token)
        power = layer_power(settings.power_ramp, laser, p)
        speed = layer_speed(settings.speed_profile, p)
        focus = target * settings.beam_profile.focus_offset
        if optics is not None:
            focus += focus_offset_for(target, optics)

        region = region_above(depth_map.height, target - settings.depth_per_pass,
                              settings.pixel_size)
        if settings.tool_compensation > 0:
            region = ensure_polygon(region.buffer(-settings.tool_compensation))
        if settings.smoothing_factor > 0 and not region.is_empty:
            region = ensure_polygon(region.simplify(
                settings.smoothing_factor * settings.pixel_size))
        check(cancel_token)

        params = LayerParams(
            z=-target,
            power=power,
            line_spacing=settings.line_spacing,
            stepover=settings.stepover,
            angle=settings.angle,
            bidirectional=settings.bidirectional,
            reverse=settings.bidirectional and p % 2 == 1,
            label=f"pass {p + 1}",
        )
        segments = self._fill(region, params, depth_map, settings, target)
        check(cancel_token)

        if self._crosshatch(settings, p):
            check(cancel_token)
            segments += self._hatch(region, params, segments, depth_map, settings, target)

        logger.debug("pass %d: depth %.3f power %.1f speed %.1f, %d segments",
                     p + 1, target, power, speed, len(segments))
        return Pass(
            index=p + 1,
            depth=target,
            power=power,
            speed=speed,
            focus_offset=focus,
            segments=tuple(segments),
        )

    @staticmethod
    def _crosshatch(settings: ToolpathSettings, p: int) -> bool:
        if settings.crosshatch:
            return True
        return settings.legacy_deep_crosshatch and p > settings.pass_layers / 2

    def _hatch(self, region, params: LayerParams, primary: list[PathSegment],
               depth_map: DepthMap, settings: ToolpathSettings,
               target: float) -> list[PathSegment]:
        """Second sweep at the crosshatch angle, as many points as *primary*."""
        total = sum(len(s.points) for s in primary)
        hatch_params = replace(
            params,
            angle=(settings.angle + settings.crosshatch_angle) % 360.0,
            label=f"{params.label} crosshatch",
        )
        hatch = self._fill(region, hatch_params, depth_map, settings, target)
        if not any(s.points for s in hatch):
            # Region too thin to cross: retrace the primary path
            hatch = [PathSegment(list(s.points), s.closed, hatch_params.label)
                     for s in primary]
        if sum(len(s.points) for s in hatch) != total:
            hatch = resample_segments(hatch, total)
        return hatch

    @staticmethod
    def _fill(region, params: LayerParams, depth_map: DepthMap,
              settings: ToolpathSettings, target: float) -> list[PathSegment]:
        if settings.strategy is Strategy.ADAPTIVE:
            raw = generate_adaptive_segments(region, params, depth_map.height,
                                             settings.pixel_size, target)
        else:
            raw = _GENERATORS[settings.strategy](region, params)
        return optimize_segments(raw, settings.optimization_level,
                                 bidirectional=settings.bidirectional)


def estimate_duration(passes: list[Pass]) -> float:
    """Beam-on time in seconds: cut length over speed, summed over passes."""
    return sum(ps.cut_length / ps.speed for ps in passes if ps.speed > 0)
