import pytest
import numpy as np
from scipy.spatial.transform import Rotation
from terrafit.dataset.camera import CameraIntrinsics, transform_points


def test_back_project_drops_missing_depth():
    camera = CameraIntrinsics(fx=1.0, fy=1.0, cx=0.0, cy=0.0, depth_scale=1.0)
    depth = np.array([[1, 0, 2],
                      [0, 3, 0]], dtype=np.uint16)
    points = camera.back_project(depth)
    assert points.shape == (3, 3)
    assert np.allclose(points, [[0.0, 0.0, 1.0],
                                [4.0, 0.0, 2.0],
                                [3.0, 3.0, 3.0]])
    assert np.all(points[:, 2] > 0.0)


def test_back_project_stride():
    camera = CameraIntrinsics(fx=2.0, fy=2.0, cx=1.0, cy=1.0, depth_scale=1000.0)
    depth = np.full((4, 6), 2000, dtype=np.uint16)
    points = camera.back_project(depth, stride=2)
    assert points.shape == (6, 3)
    assert np.allclose(points[:, 2], 2.0)
    assert np.allclose(points[0], [-1.0, -1.0, 2.0])


def test_back_project_default_calibration():
    camera = CameraIntrinsics()
    depth = np.zeros((480, 640), dtype=np.uint16)
    depth[255, 318] = 5000
    points = camera.back_project(depth)
    assert points.shape == (1, 3)
    assert np.isclose(points[0, 2], 1.0)
    assert abs(points[0, 0]) < 2e-3 and abs(points[0, 1]) < 2e-3


def test_back_project_rejects_color_images():
    with pytest.raises(ValueError):
        CameraIntrinsics().back_project(np.zeros((4, 4, 3)))


def test_transform_points():
    pose = np.eye(4)
    pose[:3, :3] = Rotation.from_euler("y", 90, degrees=True).as_matrix()
    pose[:3, 3] = [1.0, 2.0, 3.0]
    points = transform_points(np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]), pose)
    assert np.allclose(points, [[1.0, 2.0, 2.0], [1.0, 3.0, 3.0]])
    with pytest.raises(ValueError):
        transform_points(points, np.eye(3))
