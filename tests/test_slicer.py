"""Tests for slicer.py.

Verifies that slicing known height fields produces the expected 2D polygons.
"""

import numpy as np
import pytest
from shapely.geometry import Point

from depthengrave.core.slicer import compute_target_depths, region_above


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def block_field() -> np.ndarray:
    """10x10 field with a 4-row x 5-column block of ones."""
    field = np.zeros((10, 10))
    field[2:6, 3:8] = 1.0
    return field


@pytest.fixture
def ring_field() -> np.ndarray:
    """9x9 field: a 7x7 block of ones with a 3x3 hole in the middle."""
    field = np.zeros((9, 9))
    field[1:8, 1:8] = 1.0
    field[3:6, 3:6] = 0.0
    return field


# ---------------------------------------------------------------------------
# compute_target_depths
# ---------------------------------------------------------------------------


class TestComputeTargetDepths:
    def test_even_split(self):
        assert compute_target_depths(2.0, 4) == pytest.approx([0.5, 1.0, 1.5, 2.0])

    def test_last_is_exact(self):
        depths = compute_target_depths(1.0, 3)
        assert depths[-1] == 1.0

    def test_single_pass(self):
        assert compute_target_depths(0.7, 1) == [0.7]

    def test_non_decreasing(self):
        depths = compute_target_depths(3.3, 17)
        assert all(b >= a for a, b in zip(depths, depths[1:]))

    def test_invalid(self):
        with pytest.raises(ValueError):
            compute_target_depths(1.0, 0)
        with pytest.raises(ValueError):
            compute_target_depths(0.0, 3)


# ---------------------------------------------------------------------------
# region_above
# ---------------------------------------------------------------------------


class TestRegionAbove:
    def test_block_bounds(self, block_field):
        region = region_above(block_field, 0.5, 1.0)
        xmin, ymin, xmax, ymax = region.bounds
        assert xmin == pytest.approx(2.5)
        assert xmax == pytest.approx(7.5)
        assert ymin == pytest.approx(1.5)
        assert ymax == pytest.approx(5.5)

    def test_block_area(self, block_field):
        region = region_above(block_field, 0.5, 1.0)
        # Marching squares cuts the four corners
        assert region.area == pytest.approx(20.0, rel=0.05)

    def test_pixel_size_scales(self, block_field):
        full = region_above(block_field, 0.5, 1.0)
        scaled = region_above(block_field, 0.5, 0.1)
        assert scaled.area == pytest.approx(full.area * 0.01)
        assert scaled.bounds[0] == pytest.approx(0.25)

    def test_hole(self, ring_field):
        region = region_above(ring_field, 0.5, 1.0)
        assert region.contains(Point(1.5, 1.5))
        assert not region.contains(Point(4.0, 4.0))

    def test_nothing_above(self, block_field):
        assert region_above(block_field, 1.5, 1.0).is_empty

    def test_everything_above(self):
        region = region_above(np.ones((4, 4)), 0.5, 1.0)
        assert region.contains(Point(0.0, 0.0))
        assert region.contains(Point(3.0, 3.0))

    def test_two_islands(self):
        field = np.zeros((6, 12))
        field[1:5, 1:4] = 1.0
        field[1:5, 7:11] = 1.0
        region = region_above(field, 0.5, 1.0)
        assert region.geom_type == "MultiPolygon"
        assert len(region.geoms) == 2
