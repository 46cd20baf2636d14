import warnings

import numpy as np


class AlignmentTransform:
    """
    Plan-view placement of the height field grid.

    The transform scales integer grid coordinates centered on the middle of
    the grid and translates them onto the footprint of a point cloud. The
    vertical scale is fixed at one since heights are solved for, and the
    vertical translation is the reference height the flat mesh starts at.

    Parameters
    ----------
    scale : array_like of shape (3,)
        Per-axis scale ``(sx, 1, sz)``.
    translation : array_like of shape (3,)
        Translation ``(cx, reference_height, cz)``.
    """
    def __init__(self, scale, translation):
        self.scale = np.asarray(scale, dtype=float).reshape(3)
        self.translation = np.asarray(translation, dtype=float).reshape(3)

    @classmethod
    def from_point_cloud(cls, points, resolution, scaling_factor=1.4):
        """
        Fit the transform to a point cloud.

        The horizontal scale makes the grid ``scaling_factor`` times as large
        as the bounding box of ``points``; the horizontal center is the middle
        of the bounding box. The reference height is the mean height of the
        points rather than the middle of the box, so the flat mesh starts near
        the typical surface instead of between its extremes.

        Parameters
        ----------
        points : ndarray of shape (n, 3)
            World-frame point cloud. Column 1 is the height axis.
        resolution : int
            Number of vertices along one side of the grid.
        scaling_factor : float, optional
            Ratio of mesh extent to bounding box extent. Default 1.4.

        Returns
        -------
        AlignmentTransform
        """
        points = np.asarray(points, dtype=float)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError("Expected an (n, 3) point cloud, got shape {}.".format(points.shape))
        if points.shape[0] == 0:
            raise ValueError("Cannot align to an empty point cloud.")
        bb_min = points.min(axis=0)
        bb_max = points.max(axis=0)
        bb_d = np.abs(bb_max - bb_min)
        flat_axes = [name for name, extent in (('x', bb_d[0]), ('z', bb_d[2])) if extent == 0.0]
        if flat_axes:
            warnings.warn("Point cloud footprint is degenerate along {}; the aligned mesh "
                          "has zero extent there.".format(" and ".join(flat_axes)))
        scale = np.array([scaling_factor * bb_d[0] / (resolution - 1),
                          1.0,
                          scaling_factor * bb_d[2] / (resolution - 1)])
        center = bb_min + 0.5 * (bb_max - bb_min)
        center[1] = points[:, 1].mean()
        return cls(scale, center)

    @property
    def reference_height(self):
        return float(self.translation[1])

    @property
    def matrix(self):
        """4x4 homogeneous matrix applying the scale, then the translation."""
        m = np.diag(np.append(self.scale, 1.0))
        m[:3, 3] = self.translation
        return m

    def plan_positions(self, resolution):
        """
        World ``(x, z)`` position of every grid vertex.

        Returns
        -------
        xz : ndarray of shape (resolution**2, 2)
            Row ``i = x_step + z_step*resolution``.
        """
        z_step, x_step = np.divmod(np.arange(resolution * resolution), resolution)
        half = (resolution - 1) / 2.0
        x = (x_step - half) * self.scale[0] + self.translation[0]
        z = (z_step - half) * self.scale[2] + self.translation[2]
        return np.column_stack((x, z))

    def extent(self, resolution):
        """Horizontal ``(x_min, x_max, z_min, z_max)`` covered by the grid."""
        half = (resolution - 1) / 2.0
        return (self.translation[0] - half * self.scale[0],
                self.translation[0] + half * self.scale[0],
                self.translation[2] - half * self.scale[2],
                self.translation[2] + half * self.scale[2])

    def __eq__(self, other):
        if not isinstance(other, AlignmentTransform):
            return NotImplemented
        return np.array_equal(self.scale, other.scale) and np.array_equal(self.translation, other.translation)

    def __repr__(self):
        return "AlignmentTransform(scale={}, translation={})".format(
            self.scale.tolist(), self.translation.tolist())
