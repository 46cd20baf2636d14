import numpy as np

from .jtj_grid import barycentric_weights
from .topology import check_resolution, grid_faces, number_of_vertices


class RhsVector:
    """
    Right-hand side accumulator Jᵗz matching :class:`NormalEquationsGrid`.

    Each sample with barycentric weights ``w`` on face ``(v0, v1, v2)`` and
    target height ``z`` adds ``w[k] * z`` to row ``v_k``.
    """
    def __init__(self, resolution, faces=None):
        self.resolution = check_resolution(resolution)
        if faces is None:
            faces = grid_faces(self.resolution)
        self.faces = np.asarray(faces, dtype=int)
        self.values = np.zeros(number_of_vertices(self.resolution))

    def update_triangle(self, triangles, b1, b2, target):
        """
        Add the Jᵗz contribution of one or more barycentric samples.

        Parameters
        ----------
        triangles : int or array_like of int
            Face index of every sample.
        b1, b2 : float or array_like
            Barycentric weights of the second and third corners.
        target : float or array_like
            Height every sample should be fitted to.
        """
        triangles = np.atleast_1d(np.asarray(triangles, dtype=int))
        if triangles.size == 0:
            return None
        w = barycentric_weights(b1, b2)
        target = np.atleast_1d(np.asarray(target, dtype=float))
        w, target = np.broadcast_arrays(w, target[:, np.newaxis])
        if w.shape[0] == 1 and triangles.shape[0] > 1:
            w = np.repeat(w, triangles.shape[0], axis=0)
            target = np.repeat(target, triangles.shape[0], axis=0)
        np.add.at(self.values, self.faces[triangles].ravel(), (w * target).ravel())
        return None

    def get_vec(self):
        return self.values

    def copy(self):
        other = RhsVector.__new__(RhsVector)
        other.resolution = self.resolution
        other.faces = self.faces
        other.values = self.values.copy()
        return other

    def empty_like(self):
        other = self.copy()
        other.values[:] = 0.0
        return other

    def __iadd__(self, other):
        if not isinstance(other, RhsVector):
            return NotImplemented
        if other.resolution != self.resolution:
            raise ValueError("Cannot merge right-hand sides of resolution {} and {}.".format(
                self.resolution, other.resolution))
        self.values += other.values
        return self

    def __len__(self):
        return self.values.shape[0]

    def __repr__(self):
        return "RhsVector(resolution={})".format(self.resolution)
