"""Core pass data structures."""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass(frozen=True)
class MotionPoint:
    """A single point the beam passes through while firing."""
    x: float
    y: float
    z: float       # negative = below the stock surface
    power: float   # % of profile max

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.z, self.power)


@dataclass
class PathSegment:
    """A connected run of motion points; the beam is off between segments."""
    points: list[MotionPoint] = field(default_factory=list)
    closed: bool = False
    label: str = ""

    def append(self, pt: MotionPoint) -> None:
        self.points.append(pt)

    def is_empty(self) -> bool:
        return len(self.points) == 0

    @property
    def start(self) -> tuple[float, float]:
        p = self.points[0]
        return (p.x, p.y)

    @property
    def end(self) -> tuple[float, float]:
        p = self.points[-1]
        return (p.x, p.y)

    @property
    def length(self) -> float:
        """Cutting length in the XY plane."""
        pts = self.points
        return sum(
            math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(pts, pts[1:])
        )

    def reversed(self) -> "PathSegment":
        return PathSegment(list(reversed(self.points)), self.closed, self.label)

    def rotated_to(self, index: int) -> "PathSegment":
        """Closed loops only: restart the loop at point *index*.

        The closing point (a repeat of the first) is rebuilt so the
        point count is unchanged.
        """
        pts = self.points
        if not self.closed or index == 0 or len(pts) < 3:
            return self
        ring = pts[:-1] if pts[0] == pts[-1] else pts
        index %= len(ring)
        new = ring[index:] + ring[:index]
        if pts[0] == pts[-1]:
            new.append(new[0])
        return PathSegment(new, True, self.label)


@dataclass(frozen=True)
class LayerParams:
    """What a strategy needs to know about the layer it is filling."""
    z: float                # cutting plane (negative depth)
    power: float
    line_spacing: float
    stepover: float
    angle: float = 0.0      # degrees
    bidirectional: bool = True
    reverse: bool = False   # run the path backwards (odd passes)
    label: str = ""


@dataclass(frozen=True)
class Pass:
    """One complete engraving sweep at a fixed target depth, power and speed."""
    index: int            # 1-based
    depth: float          # target cumulative depth (mm)
    power: float          # % of profile max
    speed: float          # mm/s
    focus_offset: float   # mm
    segments: tuple[PathSegment, ...] = ()

    @property
    def points(self) -> list[MotionPoint]:
        """Ordered motion points across all segments."""
        return [pt for seg in self.segments for pt in seg.points]

    @property
    def total_points(self) -> int:
        return sum(len(s.points) for s in self.segments)

    @property
    def is_empty(self) -> bool:
        return all(s.is_empty() for s in self.segments)

    @property
    def cut_length(self) -> float:
        return sum(s.length for s in self.segments)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "depth": self.depth,
            "power": self.power,
            "speed": self.speed,
            "focusOffset": self.focus_offset,
            "segments": [
                [list(p.as_tuple()) for p in seg.points] for seg in self.segments
            ],
        }
