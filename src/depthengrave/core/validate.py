"""Pass validation and sanity checks.

Checks planned passes against the laser's power range and the speed
schedule before they are handed to a controller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .operation import ToolpathSettings
from .profiles import LaserProfile
from .toolpath.base import MotionPoint, Pass

_EPS = 1e-9


@dataclass
class ValidationIssue:
    """A single validation problem found in the passes."""

    severity: str  # "error" or "warning"
    message: str
    pass_index: Optional[int] = None
    point: Optional[MotionPoint] = None


@dataclass
class ValidationResult:
    """Result of validating a pass list."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(i.severity == "error" for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == "warning" for i in self.issues)

    @property
    def is_ok(self) -> bool:
        return len(self.issues) == 0


def validate_passes(
    passes: list[Pass],
    laser: LaserProfile,
    settings: ToolpathSettings,
    max_depth: Optional[float] = None,
) -> ValidationResult:
    """Check *passes* against *laser* and *settings*.

    Checks performed:
    - Pass and point powers within the laser's [min_power, max_power]
    - Pass speeds within [speed_profile.min, speed_profile.initial]
    - Depths non-decreasing; the last one equal to *max_depth* if given
    - Point z between the surface and the pass depth
    - At least one non-empty pass
    """
    result = ValidationResult()
    if not passes:
        result.issues.append(ValidationIssue("error", "No passes planned"))
        return result

    speed = settings.speed_profile
    prev_depth = 0.0
    for ps in passes:
        if not laser.min_power - _EPS <= ps.power <= laser.max_power + _EPS:
            result.issues.append(ValidationIssue(
                "error",
                f"Pass {ps.index}: power {ps.power:.2f} outside "
                f"[{laser.min_power}, {laser.max_power}]",
                ps.index,
            ))
        if not speed.min - _EPS <= ps.speed <= speed.initial + _EPS:
            result.issues.append(ValidationIssue(
                "error",
                f"Pass {ps.index}: speed {ps.speed:.2f} outside "
                f"[{speed.min}, {speed.initial}]",
                ps.index,
            ))
        if ps.depth < prev_depth - _EPS:
            result.issues.append(ValidationIssue(
                "error",
                f"Pass {ps.index}: depth {ps.depth:.4f} shallower than "
                f"previous pass ({prev_depth:.4f})",
                ps.index,
            ))
        prev_depth = max(prev_depth, ps.depth)

        for pt in ps.points:
            if pt.z > _EPS or pt.z < -ps.depth - _EPS:
                result.issues.append(ValidationIssue(
                    "error",
                    f"Pass {ps.index}: Z={pt.z:.4f} outside [{-ps.depth:.4f}, 0]",
                    ps.index,
                    pt,
                ))
            if not laser.min_power - _EPS <= pt.power <= laser.max_power + _EPS:
                result.issues.append(ValidationIssue(
                    "error",
                    f"Pass {ps.index}: point power {pt.power:.2f} out of range",
                    ps.index,
                    pt,
                ))

    if max_depth is not None and abs(passes[-1].depth - max_depth) > 1e-6:
        result.issues.append(ValidationIssue(
            "error",
            f"Final depth {passes[-1].depth:.4f} does not reach {max_depth:.4f}",
            passes[-1].index,
        ))

    if all(ps.is_empty for ps in passes):
        result.issues.append(ValidationIssue(
            "warning",
            "All passes are empty, nothing will be engraved",
        ))

    return result
