import numpy as np
import trimesh
from trimesh.ray.ray_triangle import RayMeshIntersector
from trimesh.triangles import points_to_barycentric

NO_HIT = -1


def _as_points(points):
    points = np.asarray(points, dtype=float)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError("Expected an (n, 3) array of points, got shape {}.".format(points.shape))
    return points


class RayCaster(object):
    """
    Line/mesh intersection on top of trimesh's ray-triangle intersector.

    Every point defines a full line through itself along its direction. The
    line is cast both ways and the hit closest to the point is kept, so a
    point above or below the surface projects onto the same face.
    """

    def intersect(self, points, directions, vertices, faces):
        """
        Locate the face each line crosses and the barycentric coordinates of the crossing.

        Parameters
        ----------
        points : ndarray of shape (n, 3)
            Line origins.
        directions : ndarray of shape (n, 3) or (3,)
            Line directions, broadcast against ``points``.
        vertices : ndarray of shape (m, 3)
            Mesh vertex positions.
        faces : ndarray of shape (f, 3)
            Mesh face table.

        Returns
        -------
        bc : ndarray of shape (n, 3)
            Per point ``(face, b1, b2)`` where ``face`` is ``-1`` when the
            line misses the mesh. ``b1`` and ``b2`` are the weights of the
            second and third corner of the face.
        """
        points = _as_points(points)
        n = points.shape[0]
        bc = np.zeros((n, 3))
        bc[:, 0] = NO_HIT
        if n == 0:
            return bc
        directions = np.array(np.broadcast_to(np.asarray(directions, dtype=float), points.shape))
        mesh = trimesh.Trimesh(vertices=np.array(vertices, dtype=float),
                               faces=np.array(faces, dtype=np.int64),
                               process=False)
        intersector = RayMeshIntersector(mesh)
        best_face = np.full(n, NO_HIT, dtype=np.int64)
        best_distance = np.full(n, np.inf)
        best_location = np.zeros((n, 3))
        for sign in (1.0, -1.0):
            index_tri, index_ray, locations = intersector.intersects_id(points, sign * directions,
                                                                        multiple_hits=False,
                                                                        return_locations=True)
            if len(index_ray) == 0:
                continue
            index_tri = np.asarray(index_tri, dtype=np.int64)
            index_ray = np.asarray(index_ray, dtype=np.int64)
            locations = np.asarray(locations, dtype=float)
            distance = np.linalg.norm(locations - points[index_ray], axis=1)
            closer = distance < best_distance[index_ray]
            index_ray = index_ray[closer]
            best_face[index_ray] = index_tri[closer]
            best_distance[index_ray] = distance[closer]
            best_location[index_ray] = locations[closer]
        hit = best_face != NO_HIT
        if np.any(hit):
            barycentric = points_to_barycentric(mesh.triangles[best_face[hit]],
                                               best_location[hit])
            bc[hit, 0] = best_face[hit]
            bc[hit, 1] = barycentric[:, 1]
            bc[hit, 2] = barycentric[:, 2]
        return bc
