"""Toolpath generation package."""

from .base import LayerParams, MotionPoint, Pass, PathSegment

__all__ = ["LayerParams", "MotionPoint", "Pass", "PathSegment"]
