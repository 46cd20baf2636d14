import numpy as np
from terrafit.mesh.core.topology import grid_faces
from terrafit.mesh.routines.raycast import NO_HIT, RayCaster

DIRECTION = np.array([0.0001, 1.0, 0.0])


def _unit_square():
    vertices = np.array([[0.0, 0.0, 0.0],
                         [1.0, 0.0, 0.0],
                         [0.0, 0.0, 1.0],
                         [1.0, 0.0, 1.0]])
    return vertices, grid_faces(2)


def test_point_above_surface():
    vertices, faces = _unit_square()
    bc = RayCaster().intersect(np.array([[0.2, 5.0, 0.3]]), DIRECTION, vertices, faces)
    assert bc.shape == (1, 3)
    assert bc[0, 0] == 0
    assert np.allclose(bc[0, 1:], [0.2, 0.3], atol=1e-3)


def test_point_below_surface_projects_onto_same_face():
    vertices, faces = _unit_square()
    above = RayCaster().intersect(np.array([[0.2, 2.0, 0.3]]), DIRECTION, vertices, faces)
    below = RayCaster().intersect(np.array([[0.2, -2.0, 0.3]]), DIRECTION, vertices, faces)
    assert below[0, 0] == above[0, 0] == 0
    assert np.allclose(below[0, 1:], above[0, 1:], atol=1e-3)


def test_second_face_barycentrics():
    """
    Face 1 is (3, 2, 1), so b1 weights the corner at x=0 and b2 the corner at z=0.
    """
    vertices, faces = _unit_square()
    bc = RayCaster().intersect(np.array([[0.8, 1.0, 0.7]]), DIRECTION, vertices, faces)
    assert bc[0, 0] == 1
    assert np.allclose(bc[0, 1:], [0.2, 0.3], atol=1e-3)


def test_miss_outside_footprint():
    vertices, faces = _unit_square()
    points = np.array([[3.0, 1.0, 0.5], [0.5, 1.0, 0.5]])
    bc = RayCaster().intersect(points, DIRECTION, vertices, faces)
    assert bc[0, 0] == NO_HIT
    assert bc[1, 0] != NO_HIT


def test_empty_points():
    vertices, faces = _unit_square()
    bc = RayCaster().intersect(np.empty((0, 3)), DIRECTION, vertices, faces)
    assert bc.shape == (0, 3)


def test_tilted_surface_keeps_nearest_hit():
    vertices, faces = _unit_square()
    vertices[:, 1] = [0.0, 1.0, 0.0, 1.0]
    bc = RayCaster().intersect(np.array([[0.5, 10.0, 0.25]]), DIRECTION, vertices, faces)
    assert bc[0, 0] == 0
    assert np.allclose(bc[0, 1:], [0.5, 0.25], atol=1e-2)
