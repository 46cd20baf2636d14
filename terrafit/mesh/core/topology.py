import numpy as np

# Grid offsets (dx, dz) of the six stencil slots, counter-clockwise from +x.
# JtJ slot indexing depends on the face split in grid_faces(); if you change
# the split you need to change these offsets as well.
NEIGHBOR_OFFSETS = np.array([[1, 0],
                             [0, 1],
                             [-1, 1],
                             [-1, 0],
                             [0, -1],
                             [1, -1]], dtype=int)

STENCIL_SIZE = NEIGHBOR_OFFSETS.shape[0]

ABSENT = -1

_SLOT_LOOKUP = {(int(dx), int(dz)): slot for slot, (dx, dz) in enumerate(NEIGHBOR_OFFSETS)}


def check_resolution(resolution):
    resolution = int(resolution)
    if resolution < 2:
        raise ValueError("Grid resolution must be at least 2, got {}.".format(resolution))
    return resolution


def number_of_vertices(resolution):
    return resolution * resolution


def number_of_faces(resolution):
    return 2 * (resolution - 1) * (resolution - 1)


def grid_coordinates(resolution):
    """
    Integer grid coordinates of every vertex.

    Parameters
    ----------
    resolution : int
        Number of vertices along one side of the grid.

    Returns
    -------
    coords : ndarray of shape (resolution**2, 2)
        Column 0 holds the x step and column 1 the z step of vertex
        ``i = x + z*resolution``.
    """
    resolution = check_resolution(resolution)
    z_step, x_step = np.divmod(np.arange(number_of_vertices(resolution)), resolution)
    return np.column_stack((x_step, z_step))


def grid_faces(resolution):
    """
    Build the fixed face table of the triangulated grid.

    Every grid cell ``(x, z)`` is split into two triangles along the diagonal
    joining ``(x+1, z)`` and ``(x, z+1)``:

    - face ``2*x + 2*(resolution-1)*z``: ``(x, z), (x+1, z), (x, z+1)``
    - face ``2*x + 2*(resolution-1)*z + 1``: ``(x+1, z+1), (x, z+1), (x+1, z)``

    Parameters
    ----------
    resolution : int
        Number of vertices along one side of the grid.

    Returns
    -------
    faces : ndarray of shape (2*(resolution-1)**2, 3)
        Vertex indices of every triangle.
    """
    resolution = check_resolution(resolution)
    cells = resolution - 1
    z_step, x_step = np.divmod(np.arange(cells * cells), cells)
    base = x_step + z_step * resolution
    faces = np.empty((number_of_faces(resolution), 3), dtype=int)
    faces[0::2, 0] = base
    faces[0::2, 1] = base + 1
    faces[0::2, 2] = base + resolution
    faces[1::2, 0] = base + 1 + resolution
    faces[1::2, 1] = base + resolution
    faces[1::2, 2] = base + 1
    return faces


def neighbor_ids(resolution):
    """
    Vertex ids reachable through each stencil slot.

    Returns
    -------
    ids : ndarray of shape (resolution**2, 6)
        Neighbor vertex index per slot, or ``ABSENT`` (-1) where the
        neighbor would fall outside the grid.
    """
    resolution = check_resolution(resolution)
    coords = grid_coordinates(resolution)
    neighbors = coords[:, np.newaxis, :] + NEIGHBOR_OFFSETS[np.newaxis, :, :]
    inside = np.all((neighbors >= 0) & (neighbors < resolution), axis=2)
    ids = neighbors[:, :, 0] + neighbors[:, :, 1] * resolution
    ids[~inside] = ABSENT
    return ids


def face_slots(faces, resolution):
    """
    For every face, the stencil slot each corner uses to reach the others.

    Parameters
    ----------
    faces : ndarray of shape (n_faces, 3)
        Face table produced by :func:`grid_faces`.
    resolution : int
        Number of vertices along one side of the grid.

    Returns
    -------
    slots : ndarray of shape (n_faces, 3, 3)
        ``slots[t, k, l]`` is the slot of vertex ``faces[t, l]`` in the
        stencil of ``faces[t, k]``. Diagonal entries are ``ABSENT``.

    Raises
    ------
    ValueError
        If two corners of a face are not stencil neighbors, i.e. the face
        table does not follow the split the stencil was designed for.
    """
    faces = np.asarray(faces, dtype=int)
    x_step = faces % resolution
    z_step = faces // resolution
    slots = np.full(faces.shape + (3,), ABSENT, dtype=int)
    for k in range(3):
        for l in range(3):
            if k == l:
                continue
            dx = x_step[:, l] - x_step[:, k]
            dz = z_step[:, l] - z_step[:, k]
            for t in range(faces.shape[0]):
                key = (int(dx[t]), int(dz[t]))
                if key not in _SLOT_LOOKUP:
                    raise ValueError("Face {} joins vertices {} and {} which are not "
                                     "stencil neighbors.".format(t, faces[t, k], faces[t, l]))
                slots[t, k, l] = _SLOT_LOOKUP[key]
    return slots
