"""
Tests for grid placement and the voxel grid container.
"""

import numpy as np
import pytest

from space_carving.common.errors import InvalidInput
from space_carving.common.voxel import (
    UNCARVED,
    BoundingBox3D,
    GridParameters,
    VoxelGrid,
    compute_grid_parameters,
)


# ============== Bounding Box Tests ==============

class TestBoundingBox3D:
    """Test bounding box parsing and validation."""

    def test_from_sequence(self):
        bbox = BoundingBox3D.from_sequence([-1, 1, -2, 2, 0, 3])
        assert bbox.extents == (2.0, 4.0, 3.0)

    def test_from_sequence_wrong_length(self):
        with pytest.raises(InvalidInput):
            BoundingBox3D.from_sequence([0, 1, 0, 1])

    @pytest.mark.parametrize("values", [
        (0, 0, 0, 1, 0, 1),
        (0, 1, 1, 0, 0, 1),
        (0, 1, 0, 1, 2, 2),
        (0, float("nan"), 0, 1, 0, 1),
    ])
    def test_degenerate_box_rejected(self, values):
        with pytest.raises(InvalidInput):
            BoundingBox3D(*values).validate()


# ============== Grid Placement Tests ==============

class TestComputeGridParameters:
    """Test the margin formulas used to place the grid."""

    def test_closed_form(self, unit_bbox):
        """6% X margin, 20% Y margin, no Z margin, Z origin at 0."""
        params = compute_grid_parameters(unit_bbox, 10)

        assert params.voxel_width == pytest.approx(2.0 * 1.12 / 10)
        assert params.voxel_height == pytest.approx(2.0 * 1.40 / 10)
        assert params.voxel_depth == pytest.approx(2.0 / 10)
        assert params.origin_x == pytest.approx(-1.12)
        assert params.origin_y == pytest.approx(-1.40)
        assert params.origin_z == 0.0

    def test_expanded_box_is_centred(self):
        bbox = BoundingBox3D(2.0, 6.0, -3.0, 1.0, 1.0, 5.0)
        params = compute_grid_parameters(bbox, 8)

        centre_x = params.origin_x + 8 * params.voxel_width / 2
        centre_y = params.origin_y + 8 * params.voxel_height / 2
        assert centre_x == pytest.approx(4.0)
        assert centre_y == pytest.approx(-1.0)

    def test_z_origin_ignores_zmin(self):
        bbox = BoundingBox3D(0.0, 1.0, 0.0, 1.0, 5.0, 9.0)
        params = compute_grid_parameters(bbox, 4)
        assert params.origin_z == 0.0
        assert params.voxel_depth == pytest.approx(1.0)

    def test_deterministic(self, unit_bbox):
        assert compute_grid_parameters(unit_bbox, 32) == compute_grid_parameters(unit_bbox, 32)

    def test_custom_margins(self, unit_bbox):
        params = compute_grid_parameters(unit_bbox, 4, margin_x=0.0, margin_y=0.5)
        assert params.origin_x == pytest.approx(-1.0)
        assert params.origin_y == pytest.approx(-2.0)
        assert params.voxel_height == pytest.approx(1.0)

    @pytest.mark.parametrize("resolution", [0, -3, 2.5, True])
    def test_invalid_resolution(self, unit_bbox, resolution):
        with pytest.raises(InvalidInput):
            compute_grid_parameters(unit_bbox, resolution)

    def test_degenerate_box(self):
        with pytest.raises(InvalidInput):
            compute_grid_parameters(BoundingBox3D(0, 1, 0, 1, 0, 0), 4)

    def test_to_dict(self):
        params = GridParameters(1.0, 2.0, 0.0, 0.1, 0.2, 0.3)
        assert params.to_dict()["voxel_depth"] == 0.3


# ============== Voxel Grid Tests ==============

class TestVoxelGrid:
    """Test storage, addressing and fusion."""

    def test_cell_count_and_initial_value(self):
        grid = VoxelGrid(5)
        assert grid.size == 125
        assert grid.shape == (5, 5, 5)
        assert grid.values.dtype == np.float32
        assert np.all(grid.values == np.finfo(np.float32).max)
        assert UNCARVED == np.finfo(np.float32).max

    def test_linear_index(self):
        grid = VoxelGrid(4)
        assert grid.linear_index(0, 0, 0) == 0
        assert grid.linear_index(0, 0, 3) == 3
        assert grid.linear_index(0, 2, 1) == 1 + 2 * 4
        assert grid.linear_index(3, 2, 1) == 1 + 2 * 4 + 3 * 16
        assert grid.linear_index(3, 3, 3) == 63

    def test_linear_index_matches_flat_storage(self):
        grid = VoxelGrid(3)
        grid.set(2, 1, 0, -7.0)
        assert grid.flat[grid.linear_index(2, 1, 0)] == -7.0
        assert grid.values[2, 1, 0] == -7.0
        assert grid.get(2, 1, 0) == -7.0

    @pytest.mark.parametrize("index", [(-1, 0, 0), (0, 3, 0), (0, 0, 3)])
    def test_out_of_bounds(self, index):
        grid = VoxelGrid(3)
        with pytest.raises(IndexError):
            grid.linear_index(*index)

    def test_views_are_read_only(self):
        grid = VoxelGrid(2)
        with pytest.raises(ValueError):
            grid.values[0, 0, 0] = 1.0
        with pytest.raises(ValueError):
            grid.flat[0] = 1.0

    @pytest.mark.parametrize("resolution", [0, -1])
    def test_invalid_resolution(self, resolution):
        with pytest.raises(InvalidInput):
            VoxelGrid(resolution)

    def test_fuse_keeps_minimum(self):
        grid = VoxelGrid(2)
        grid.fuse(0, np.array([3.0, -1.0, 5.0, 0.0, 1.0, 2.0, 3.0, 4.0]))
        grid.fuse(0, np.array([1.0, 2.0, 6.0, 0.5, 1.0, -2.0, 3.0, 4.0]))
        np.testing.assert_allclose(grid.flat, [1.0, -1.0, 5.0, 0.0, 1.0, -2.0, 3.0, 4.0])

    def test_fuse_partial_range(self):
        grid = VoxelGrid(2)
        grid.fuse(6, np.array([-4.0, -5.0]))
        assert grid.flat[5] == UNCARVED
        np.testing.assert_allclose(grid.flat[6:], [-4.0, -5.0])

    def test_fuse_out_of_range(self):
        grid = VoxelGrid(2)
        with pytest.raises(IndexError):
            grid.fuse(7, np.array([0.0, 0.0]))

    def test_world_positions(self, unit_bbox):
        grid = VoxelGrid(10)
        params = compute_grid_parameters(unit_bbox, 10)
        positions = grid.world_positions(params, 0, grid.size)

        idx = grid.linear_index(3, 5, 7)
        np.testing.assert_allclose(positions[idx], [
            params.origin_x + 7 * params.voxel_width,
            params.origin_y + 5 * params.voxel_height,
            params.origin_z + 3 * params.voxel_depth,
        ])
