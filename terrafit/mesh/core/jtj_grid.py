import numpy as np
from scipy import sparse

from .topology import (ABSENT, STENCIL_SIZE, check_resolution, face_slots, grid_faces,
                       neighbor_ids, number_of_vertices)


def barycentric_weights(b1, b2):
    """
    Stack full barycentric weight vectors ``(1 - b1 - b2, b1, b2)``.

    Parameters
    ----------
    b1, b2 : float or array_like
        Barycentric weights of the second and third face corners.

    Returns
    -------
    w : ndarray of shape (n, 3)
    """
    b1 = np.atleast_1d(np.asarray(b1, dtype=float))
    b2 = np.atleast_1d(np.asarray(b2, dtype=float))
    b1, b2 = np.broadcast_arrays(b1, b2)
    return np.column_stack((1.0 - b1 - b2, b1, b2))


class NormalEquationsGrid:
    """
    Triangle-stencil accumulator for the normal equations matrix JᵗJ.

    A height field over the triangulated grid produced by
    :func:`~terrafit.mesh.core.topology.grid_faces` couples each vertex only
    to the (at most six) vertices it shares a triangle with. The matrix is
    therefore stored as one diagonal value and six neighbor coefficients per
    vertex instead of as a general sparse matrix. The slot ``s`` of vertex
    ``i`` refers to the neighbor at grid offset
    :data:`~terrafit.mesh.core.topology.NEIGHBOR_OFFSETS` ``[s]``.

    Values are only ever added. A point with barycentric weights ``w`` on
    face ``(v0, v1, v2)`` adds the outer product ``w wᵀ`` into the rows and
    columns ``{v0, v1, v2}``; the order in which points are added does not
    matter, which lets partial grids built on separate workers be summed.

    Parameters
    ----------
    resolution : int
        Number of vertices along one side of the grid.
    faces : ndarray of shape (2*(resolution-1)**2, 3), optional
        Face table. Defaults to :func:`grid_faces` ``(resolution)``.
    """
    def __init__(self, resolution, faces=None):
        self.resolution = check_resolution(resolution)
        if faces is None:
            faces = grid_faces(self.resolution)
        self.faces = np.asarray(faces, dtype=int)
        self.slots = face_slots(self.faces, self.resolution)
        self.neighbors = neighbor_ids(self.resolution)
        self.diagonal = np.zeros(number_of_vertices(self.resolution))
        self.coefficients = np.zeros((number_of_vertices(self.resolution), STENCIL_SIZE))

    @property
    def n_vertices(self):
        return self.diagonal.shape[0]

    def update_triangle(self, triangles, b1, b2):
        """
        Add the JᵗJ contribution of one or more barycentric samples.

        Parameters
        ----------
        triangles : int or array_like of int
            Face index of every sample.
        b1, b2 : float or array_like
            Barycentric weights of the second and third corners; the weight
            of the first corner is ``1 - b1 - b2``.
        """
        triangles = np.atleast_1d(np.asarray(triangles, dtype=int))
        if triangles.size == 0:
            return None
        w = barycentric_weights(b1, b2)
        if w.shape[0] == 1 and triangles.shape[0] > 1:
            w = np.repeat(w, triangles.shape[0], axis=0)
        vertices = self.faces[triangles]
        np.add.at(self.diagonal, vertices.ravel(), (w * w).ravel())
        for k in range(3):
            for l in range(3):
                if k == l:
                    continue
                np.add.at(self.coefficients,
                          (vertices[:, k], self.slots[triangles, k, l]),
                          w[:, k] * w[:, l])
        return None

    def get_matrix_values_for_vertex(self, i):
        """
        Return the stencil of row ``i``.

        Returns
        -------
        values : ndarray of shape (6,)
            Off-diagonal coefficients, zero for absent slots.
        ids : ndarray of shape (6,)
            Neighbor vertex ids, ``-1`` for slots outside the grid.
        diagonal : float
            Diagonal coefficient of row ``i``.
        """
        ids = self.neighbors[i].copy()
        values = np.where(ids == ABSENT, 0.0, self.coefficients[i])
        return values, ids, float(self.diagonal[i])

    def dot(self, h):
        """Matrix-vector product JᵗJ h."""
        h = np.asarray(h, dtype=float)
        present = self.neighbors != ABSENT
        gathered = np.where(present, h[np.where(present, self.neighbors, 0)], 0.0)
        return self.diagonal * h + np.sum(self.coefficients * gathered, axis=1)

    def to_sparse(self):
        """
        Expand the stencil into a ``scipy.sparse.csr_matrix``.

        Intended for diagnostics and for checking the relaxation solver
        against a direct sparse solve.
        """
        n = self.n_vertices
        rows, slots = np.nonzero(self.neighbors != ABSENT)
        cols = self.neighbors[rows, slots]
        data = self.coefficients[rows, slots]
        diag = np.arange(n)
        matrix = sparse.coo_matrix((np.concatenate((self.diagonal, data)),
                                    (np.concatenate((diag, rows)), np.concatenate((diag, cols)))),
                                   shape=(n, n))
        return matrix.tocsr()

    def copy(self):
        other = NormalEquationsGrid.__new__(NormalEquationsGrid)
        other.resolution = self.resolution
        other.faces = self.faces
        other.slots = self.slots
        other.neighbors = self.neighbors
        other.diagonal = self.diagonal.copy()
        other.coefficients = self.coefficients.copy()
        return other

    def empty_like(self):
        """A zeroed grid sharing this grid's topology tables."""
        other = self.copy()
        other.diagonal[:] = 0.0
        other.coefficients[:] = 0.0
        return other

    def __iadd__(self, other):
        if not isinstance(other, NormalEquationsGrid):
            return NotImplemented
        if other.resolution != self.resolution:
            raise ValueError("Cannot merge grids of resolution {} and {}.".format(
                self.resolution, other.resolution))
        self.diagonal += other.diagonal
        self.coefficients += other.coefficients
        return self

    def __repr__(self):
        return "NormalEquationsGrid(resolution={})".format(self.resolution)
