"""Tests for tone and depth-curve transforms."""

import math

import numpy as np
import pytest

from depthengrave.core.curves import (
    DepthCurve,
    apply_contrast,
    apply_depth_curve,
    apply_gamma,
    apply_tone,
    interpolate_curve,
    normalize_curve,
)
from depthengrave.errors import InvalidInput


class TestTone:
    def test_gamma_identity(self):
        assert apply_gamma(0.25, 1.0) == pytest.approx(0.25)

    def test_gamma_brightens(self):
        assert apply_gamma(0.25, 2.0) == pytest.approx(0.5)

    def test_contrast_pivots_on_half(self):
        assert apply_contrast(0.5, 80) == pytest.approx(0.5)
        assert apply_contrast(0.75, 100) == pytest.approx(1.0)

    def test_tone_clamps(self):
        out = apply_tone(np.array([0.0, 0.5, 1.0]), 100, 50)
        assert out.min() >= 0.0
        assert out.max() <= 1.0


class TestNormalizeCurve:
    def test_pairs(self):
        xs, ys = normalize_curve([(0, 0), (0.5, 0.8), (1, 1)])
        assert list(xs) == [0, 0.5, 1]
        assert list(ys) == [0, 0.8, 1]

    def test_flat_values_spread_over_unit_range(self):
        xs, ys = normalize_curve([0.0, 0.2, 1.0])
        assert list(xs) == pytest.approx([0, 0.5, 1])
        assert list(ys) == pytest.approx([0, 0.2, 1])

    def test_missing(self):
        with pytest.raises(InvalidInput, match="no curve"):
            normalize_curve(None)

    def test_too_short(self):
        with pytest.raises(InvalidInput, match="at least 2"):
            normalize_curve([(0, 0)])

    def test_unsorted(self):
        with pytest.raises(InvalidInput, match="increasing"):
            normalize_curve([(0, 0), (0.8, 0.5), (0.4, 1)])

    def test_malformed_pairs(self):
        with pytest.raises(InvalidInput):
            normalize_curve([(0, 0, 0), (1, 1, 1)])


class TestDepthCurves:
    def test_linear(self):
        assert apply_depth_curve(0.3, DepthCurve.LINEAR) == pytest.approx(0.3)

    def test_exponential(self):
        assert apply_depth_curve(0.5, DepthCurve.EXPONENTIAL) == pytest.approx(0.25)

    def test_logarithmic_endpoints(self):
        assert apply_depth_curve(0.0, DepthCurve.LOGARITHMIC) == pytest.approx(0.0)
        assert apply_depth_curve(1.0, DepthCurve.LOGARITHMIC) == pytest.approx(1.0)
        assert apply_depth_curve(0.5, DepthCurve.LOGARITHMIC) == pytest.approx(
            math.log(0.5 * (math.e - 1) + 1))

    def test_custom_hits_control_points(self):
        pts = [(0.0, 0.1), (0.3, 0.7), (0.6, 0.4), (1.0, 0.9)]
        curve = normalize_curve(pts)
        for x, y in pts:
            assert apply_depth_curve(x, DepthCurve.CUSTOM, curve) == pytest.approx(y)

    def test_custom_interpolates_between_points(self):
        xs, ys = normalize_curve([(0, 0), (1, 1)])
        assert interpolate_curve(0.25, xs, ys) == pytest.approx(0.25)

    def test_custom_without_curve(self):
        with pytest.raises(InvalidInput):
            apply_depth_curve(0.5, DepthCurve.CUSTOM, None)
