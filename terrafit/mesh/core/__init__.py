"""
The `core` module provides the grid-structured least-squares system used to fit a height field mesh
to point cloud samples.

- **topology**: Fixed triangulation of the regular grid and the six-slot stencil it induces.
- **jtj_grid**: :class:`NormalEquationsGrid`, the stencil-indexed accumulator for the normal equations matrix.
- **jtz_vector**: :class:`RhsVector`, the matching right-hand side accumulator.

Overview
--------

Each sample point projected onto a mesh face with barycentric weights :math:`w = (b_0, b_1, b_2)` yields one
linear equation in the heights of the face corners

.. math::

    b_0 h_{v_0} + b_1 h_{v_1} + b_2 h_{v_2} = z

Summing the squared residuals of all samples gives the normal equations :math:`J^T J h = J^T z`. Because the
triangulation is fixed, row :math:`i` of :math:`J^T J` is non-zero only on the diagonal and on the (at most six)
vertices that share a face with :math:`i`, so the matrix is stored as a dense ``(n, 6)`` coefficient table plus a
diagonal instead of a general sparse matrix.

Example
-------

.. code-block:: python

    from terrafit.mesh.core import NormalEquationsGrid, RhsVector

    jtj = NormalEquationsGrid(4)
    jtz = RhsVector(4)
    jtj.update_triangle([0, 3], [0.2, 0.5], [0.3, 0.1])
    jtz.update_triangle([0, 3], [0.2, 0.5], [0.3, 0.1], [1.0, 1.2])
    values, ids, diagonal = jtj.get_matrix_values_for_vertex(1)
"""
from .topology import (ABSENT, NEIGHBOR_OFFSETS, STENCIL_SIZE, grid_coordinates, grid_faces,
                       neighbor_ids, face_slots)
from .jtj_grid import NormalEquationsGrid, barycentric_weights
from .jtz_vector import RhsVector
