"""
Height field mesh fitting.

The :class:`HeightFieldMesh` keeps a fixed triangulated grid on the footprint
of a point cloud and refines its vertex heights from successive clouds by
accumulating least-squares normal equations and relaxing them with
Gauss-Seidel sweeps.
"""
from .alignment import AlignmentTransform
from .parameters import MeshParameters
from .mesh import HeightFieldMesh, MeshNotAlignedError
from .solver.solver import SingularSystemError
