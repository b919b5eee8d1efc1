"""Toolpath planning parameter container.

A ToolpathSettings bundle binds a path strategy to raster geometry and to
the deep-engraving ramps (power, speed, focus).  The planner validates it
before dispatching any work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..errors import InvalidInput, InvalidSettings
from .keys import known_fields
from .power import BeamProfile, PowerRamp, SpeedProfile


class Strategy(Enum):
    CONTOUR = "contour"
    SPIRAL = "spiral"
    HYBRID = "hybrid"
    ADAPTIVE = "adaptive"


class Direction(Enum):
    BIDIRECTIONAL = "bidirectional"
    UNIDIRECTIONAL = "unidirectional"


class OptimizationLevel(Enum):
    SPEED = "speed"
    BALANCED = "balanced"
    QUALITY = "quality"


@dataclass
class ToolpathSettings:
    """Parameters for progressive multi-pass planning.  Lengths in mm."""

    strategy: Strategy = Strategy.CONTOUR
    direction: Direction = Direction.BIDIRECTIONAL

    # Raster geometry
    line_spacing: float = 0.1
    angle: float = 0.0              # degrees; 0 = lines along X
    stepover: float = 0.1
    tool_compensation: float = 0.0  # inset of the active region
    smoothing_factor: float = 0.0   # region simplification, in pixels
    pixel_size: float = 0.1         # mm per depth-map pixel

    optimization_level: OptimizationLevel = OptimizationLevel.BALANCED

    crosshatch: bool = False
    crosshatch_angle: float = 45.0
    legacy_deep_crosshatch: bool = False  # also crosshatch once p > pass_layers/2

    # Layering
    depth_per_pass: float = 0.1
    max_passes: int = 20
    pass_layers: int = 20

    # Ramps
    power_ramp: PowerRamp = field(default_factory=PowerRamp)
    speed_profile: SpeedProfile = field(default_factory=SpeedProfile)
    beam_profile: BeamProfile = field(default_factory=BeamProfile)

    @property
    def pass_count(self) -> int:
        """Number of passes: ``pass_layers`` capped by ``max_passes``."""
        return min(self.pass_layers, self.max_passes)

    @property
    def bidirectional(self) -> bool:
        return self.direction is Direction.BIDIRECTIONAL

    def validate(self) -> None:
        """Raise InvalidSettings for out-of-range or contradictory values."""
        if self.pass_layers < 1:
            raise InvalidSettings(f"pass_layers must be >= 1, got {self.pass_layers}")
        if self.max_passes < 1:
            raise InvalidSettings(f"max_passes must be >= 1, got {self.max_passes}")
        if self.depth_per_pass <= 0:
            raise InvalidSettings(
                f"depth_per_pass must be positive, got {self.depth_per_pass}")
        for name in ("line_spacing", "stepover", "pixel_size"):
            if getattr(self, name) <= 0:
                raise InvalidSettings(f"{name} must be positive")
        if self.tool_compensation < 0 or self.smoothing_factor < 0:
            raise InvalidSettings("tool_compensation and smoothing_factor must be >= 0")

        ramp = self.power_ramp
        if ramp.initial > ramp.max:
            raise InvalidSettings(
                f"power ramp initial ({ramp.initial}) exceeds max ({ramp.max})")
        if ramp.increment < 0:
            raise InvalidSettings("power ramp increment must be >= 0")

        speed = self.speed_profile
        if not 0 < speed.reduction <= 1:
            raise InvalidSettings(
                f"speed reduction must be in (0, 1], got {speed.reduction}")
        if not 0 < speed.min <= speed.initial:
            raise InvalidSettings(
                f"speed profile needs 0 < min <= initial "
                f"(got {speed.min}, {speed.initial})")

    @classmethod
    def from_dict(cls, data: dict) -> "ToolpathSettings":
        """Build and validate settings from a UI form dict (camelCase ok)."""
        kwargs = known_fields(cls, data)
        enums = {
            "strategy": Strategy,
            "direction": Direction,
            "optimization_level": OptimizationLevel,
        }
        try:
            for key, enum_cls in enums.items():
                if key in kwargs:
                    kwargs[key] = enum_cls(kwargs[key])
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc

        nested = {
            "power_ramp": PowerRamp,
            "speed_profile": SpeedProfile,
            "beam_profile": BeamProfile,
        }
        for key, sub_cls in nested.items():
            if isinstance(kwargs.get(key), dict):
                kwargs[key] = sub_cls(**known_fields(sub_cls, kwargs[key]))

        # beamProfile.crosshatchAngle in the deep-engraving form
        beam = data.get("beamProfile") or data.get("beam_profile")
        if isinstance(beam, dict) and "crosshatch_angle" not in kwargs:
            angle = beam.get("crosshatchAngle", beam.get("crosshatch_angle"))
            if angle is not None:
                kwargs["crosshatch_angle"] = angle

        settings = cls(**kwargs)
        settings.validate()
        return settings
