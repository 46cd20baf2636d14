import numpy as np

from terrafit.mesh.alignment import AlignmentTransform
from terrafit.mesh.core.topology import grid_faces, number_of_faces, number_of_vertices
from terrafit.mesh.core.jtj_grid import NormalEquationsGrid
from terrafit.mesh.core.jtz_vector import RhsVector
from terrafit.mesh.parameters import MeshParameters
from terrafit.mesh.routines.accumulate import accumulate
from terrafit.mesh.routines.raycast import RayCaster
from terrafit.mesh.solver.solver import Solver


class MeshNotAlignedError(RuntimeError):
    """Raised when a mesh is fitted, relaxed or exported before ``align`` was called."""


class _FitState(object):
    """Everything ``align`` rebuilds; swapped in as a whole."""
    def __init__(self, alignment, vertices, heights, jtj, jtz):
        self.alignment = alignment
        self.vertices = vertices
        self.heights = heights
        self.jtj = jtj
        self.jtz = jtz
        self.solver = Solver(jtj, jtz)


class HeightFieldMesh(object):
    def __init__(self, parameters=None, ray_caster=None, **kwargs):
        """
        A regular-grid height field mesh fitted to point clouds.

        The mesh is a ``resolution x resolution`` grid of vertices whose plan
        positions follow an :class:`AlignmentTransform` and whose heights are
        found by least squares: every sample point is projected along a nearly
        vertical line onto a face, and the linear interpolation of the face's
        corner heights at the projection is fitted to the point's height.

        Typical use::

            mesh = HeightFieldMesh(resolution=30)
            mesh.align(first_cloud)
            for cloud in clouds:
                mesh.fit(cloud)
                mesh.relax(5)
            V, F = mesh.vertices(), mesh.faces()

        Parameters
        ----------
        parameters : MeshParameters, optional
            Mesh settings. Keyword arguments are forwarded to
            :class:`MeshParameters` when omitted.
        ray_caster : object, optional
            Provides ``intersect(points, directions, vertices, faces)``.
            Defaults to :class:`RayCaster`.
        kwargs : dict
            ``resolution``, ``scaling_factor``, ``prior_weights``,
            ``ray_direction``, ``workers``, ``chunk_size``.
        """
        if parameters is None:
            parameters = MeshParameters(**kwargs)
        elif len(kwargs) > 0:
            raise ValueError("Pass either a MeshParameters object or keyword arguments, not both.")
        self.parameters = parameters
        self.ray_caster = ray_caster if ray_caster is not None else RayCaster()
        self.resolution = parameters.resolution
        self._faces = grid_faces(self.resolution)
        self._faces.setflags(write=False)
        self._state = None

    # ---------------------------
    # Alignment
    # ---------------------------
    def align(self, points):
        """
        Reset the mesh onto the footprint of a point cloud.

        Recomputes the alignment, regenerates the vertex plan positions,
        zeroes every height and replaces the accumulated normal equations by
        the regularization prior: every face receives one synthetic sample
        with barycentric weights ``parameters.prior_weights`` and the
        reference height as target. Nothing accumulated before survives.

        Parameters
        ----------
        points : ndarray of shape (n, 3)
            Non-empty world-frame point cloud.
        """
        alignment = AlignmentTransform.from_point_cloud(points, self.resolution,
                                                        scaling_factor=self.parameters.scaling_factor)
        vertices = np.empty((number_of_vertices(self.resolution), 3))
        xz = alignment.plan_positions(self.resolution)
        vertices[:, 0] = xz[:, 0]
        vertices[:, 1] = alignment.reference_height
        vertices[:, 2] = xz[:, 1]
        heights = np.zeros(number_of_vertices(self.resolution))
        jtj = NormalEquationsGrid(self.resolution, faces=self._faces)
        jtz = RhsVector(self.resolution, faces=self._faces)
        b1, b2 = self.parameters.prior_weights
        all_faces = np.arange(number_of_faces(self.resolution))
        jtj.update_triangle(all_faces, b1, b2)
        jtz.update_triangle(all_faces, b1, b2, alignment.reference_height)
        self._state = _FitState(alignment, vertices, heights, jtj, jtz)
        return None

    @property
    def is_aligned(self):
        return self._state is not None

    def _require_alignment(self, action):
        if self._state is None:
            raise MeshNotAlignedError("Cannot {} before the mesh is aligned. "
                                      "Call align(points) first.".format(action))
        return self._state

    @property
    def alignment(self):
        return self._require_alignment("read the alignment").alignment

    # ---------------------------
    # Fitting
    # ---------------------------
    def fit(self, points, show_progress=False):
        """
        Add the evidence of a point cloud to the normal equations.

        Each point is projected along ``parameters.ray_direction`` (both
        ways) onto the current mesh. Points whose line misses the mesh are
        ignored. Heights are not changed; call :meth:`relax` afterwards.

        Parameters
        ----------
        points : ndarray of shape (n, 3)
            World-frame points. An empty cloud is accepted and adds nothing.
        show_progress : bool, optional
            Display a progress bar over point chunks.

        Returns
        -------
        hits : int
            Number of points that contributed.
        """
        state = self._require_alignment("fit a point cloud")
        points = np.asarray(points, dtype=float)
        if points.size == 0:
            return 0
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError("Expected an (n, 3) point cloud, got shape {}.".format(points.shape))
        return accumulate(points, self.parameters.ray_direction, self.vertices(), self._faces,
                          state.jtj, state.jtz, self.ray_caster,
                          workers=self.parameters.workers,
                          chunk_size=self.parameters.chunk_size,
                          show_progress=show_progress)

    # ---------------------------
    # Relaxation
    # ---------------------------
    def relax(self, iterations, tolerance=None):
        """
        Run Gauss-Seidel sweeps on the accumulated system and update heights.

        Parameters
        ----------
        iterations : int
            Number of sweeps. Zero leaves the heights untouched.
        tolerance : float, optional
            Stop early once a sweep changes no height by more than this.

        Returns
        -------
        sweeps : int
            Number of sweeps actually run.
        """
        state = self._require_alignment("relax")
        if int(iterations) == 0:
            return 0
        h = state.vertices[:, 1].copy()
        sweeps = state.solver.relax(h, iterations, tolerance=tolerance)
        self._write_heights(state, h)
        return sweeps

    def iterate(self):
        """Run exactly one relaxation sweep."""
        state = self._require_alignment("iterate")
        h = state.solver.iterate(state.vertices[:, 1].copy())
        self._write_heights(state, h)
        return 1

    @staticmethod
    def _write_heights(state, h):
        state.heights = h - state.alignment.reference_height
        state.vertices[:, 1] = h

    @property
    def sweeps(self):
        """Gauss-Seidel sweeps run since the last ``align``."""
        return self._require_alignment("count sweeps").solver.sweeps

    def residual(self):
        """Root mean square residual of the normal equations at the current heights."""
        state = self._require_alignment("compute a residual")
        return state.solver.residual(state.vertices[:, 1])

    # ---------------------------
    # Accessors
    # ---------------------------
    def vertices(self):
        """
        Current vertex positions.

        Returns
        -------
        V : ndarray of shape (resolution**2, 3)
            Read-only world positions; column 1 is the fitted height.
        """
        state = self._require_alignment("read vertices")
        view = state.vertices.view()
        view.setflags(write=False)
        return view

    def faces(self):
        """
        Fixed face table.

        Returns
        -------
        F : ndarray of shape (2*(resolution-1)**2, 3)
            Read-only vertex indices of every triangle.
        """
        return self._faces

    @property
    def heights(self):
        """Vertex heights relative to the alignment's reference height."""
        state = self._require_alignment("read heights")
        view = state.heights.view()
        view.setflags(write=False)
        return view

    @property
    def normal_equations(self):
        return self._require_alignment("read the normal equations").jtj

    @property
    def rhs(self):
        return self._require_alignment("read the right-hand side").jtz

    # ---------------------------
    # Persistence / export
    # ---------------------------
    def to_pyvista(self):
        """Return the mesh surface as ``pyvista.PolyData`` with a ``height`` point array."""
        from terrafit.mesh.io.export import to_polydata
        return to_polydata(self)

    def save(self, path):
        """
        Save the complete fitting state to a ``.hfm`` archive.

        The archive stores parameters, alignment, heights and both
        accumulators, so a loaded mesh continues fitting exactly where this
        one stopped.
        """
        from terrafit.mesh.io.hfm import write_hfm
        return write_hfm(self, path)

    @classmethod
    def load(cls, path, ray_caster=None):
        """Load a mesh written by :meth:`save`."""
        from terrafit.mesh.io.hfm import read_hfm
        return read_hfm(path, ray_caster=ray_caster)

    def __repr__(self):
        return "HeightFieldMesh(resolution={}, aligned={})".format(self.resolution, self.is_aligned)
