import pytest
import numpy as np
from terrafit.mesh.alignment import AlignmentTransform


def _box_cloud():
    x, z = np.meshgrid(np.linspace(0.0, 2.0, 5), np.linspace(-1.0, 1.0, 5))
    low = np.column_stack((x.ravel(), np.full(x.size, 1.0), z.ravel()))
    high = np.column_stack((x.ravel(), np.full(x.size, 3.0), z.ravel()))
    return np.vstack((low, high, [[1.0, 3.0, 0.0]]))


def test_from_point_cloud_scale_and_center():
    """
    The grid spans 1.4 times the bounding box, centered on the box in plan and
    on the mean height vertically.
    """
    points = _box_cloud()
    alignment = AlignmentTransform.from_point_cloud(points, 5, scaling_factor=1.4)
    assert np.allclose(alignment.scale, [0.7, 1.0, 0.7])
    assert np.allclose(alignment.translation[[0, 2]], [1.0, 0.0])
    assert np.isclose(alignment.reference_height, points[:, 1].mean())


def test_plan_positions_cover_scaled_box():
    alignment = AlignmentTransform.from_point_cloud(_box_cloud(), 5, scaling_factor=1.4)
    xz = alignment.plan_positions(5)
    assert xz.shape == (25, 2)
    assert np.allclose(xz[0], [-0.4, -1.4])
    assert np.allclose(xz[-1], [2.4, 1.4])
    # Index order is x fastest
    assert np.allclose(xz[1], [0.3, -1.4])
    assert np.allclose(xz[5], [-0.4, -0.7])
    assert np.allclose(alignment.extent(5), (-0.4, 2.4, -1.4, 1.4))


def test_unit_scaling_factor_matches_bounding_box():
    alignment = AlignmentTransform.from_point_cloud(_box_cloud(), 3, scaling_factor=1.0)
    x_min, x_max, z_min, z_max = alignment.extent(3)
    assert np.allclose([x_min, x_max, z_min, z_max], [0.0, 2.0, -1.0, 1.0])


def test_matrix_maps_centered_grid_coordinates():
    resolution = 4
    alignment = AlignmentTransform.from_point_cloud(_box_cloud(), resolution)
    xz = alignment.plan_positions(resolution)
    half = (resolution - 1) / 2.0
    for i in (0, 6, 15):
        grid = np.array([i % resolution - half, 0.0, i // resolution - half, 1.0])
        world = alignment.matrix @ grid
        assert np.allclose(world[[0, 2]], xz[i])
        assert np.isclose(world[1], alignment.reference_height)


def test_empty_cloud_rejected():
    with pytest.raises(ValueError, match="empty"):
        AlignmentTransform.from_point_cloud(np.empty((0, 3)), 5)


def test_bad_shape_rejected():
    with pytest.raises(ValueError, match="point cloud"):
        AlignmentTransform.from_point_cloud(np.ones((4, 2)), 5)


def test_degenerate_footprint_warns():
    points = np.array([[0.0, 1.0, 0.0], [0.0, 2.0, 1.0]])
    with pytest.warns(UserWarning, match="degenerate"):
        alignment = AlignmentTransform.from_point_cloud(points, 3)
    assert alignment.scale[0] == 0.0


def test_single_point_warns_for_both_axes():
    points = np.array([[0.5, 1.0, -0.5]])
    with pytest.warns(UserWarning, match="along x and z"):
        alignment = AlignmentTransform.from_point_cloud(points, 3)
    assert alignment.scale[0] == 0.0
    assert alignment.scale[2] == 0.0


def test_equality():
    a = AlignmentTransform([1.0, 1.0, 2.0], [0.0, 0.5, 0.0])
    b = AlignmentTransform([1.0, 1.0, 2.0], [0.0, 0.5, 0.0])
    c = AlignmentTransform([1.0, 1.0, 2.0], [0.0, 0.6, 0.0])
    assert a == b
    assert a != c
