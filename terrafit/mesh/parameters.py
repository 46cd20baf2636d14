import os

import numpy as np

MAX_THREADS = min(4, max(1, (os.cpu_count() or 1) - 1))


class MeshParameters(object):
    """Settings that steer alignment and fitting of a :class:`HeightFieldMesh`.

    Attributes
    ----------
    resolution : int
        Number of vertices along one side of the grid.
    scaling_factor : float
        Mesh extent relative to the bounding box of the cloud given to
        ``align``. 1 makes the mesh the same size as the bounding box.
    prior_weights : tuple of float
        Barycentric ``(b1, b2)`` of the synthetic sample every face receives
        when the mesh is aligned.
    ray_direction : ndarray of shape (3,)
        Direction of the line cast through every point. Slightly tilted off
        the height axis; exactly axis-aligned rays produce unreliable hit
        distances in the intersector.
    workers : int
        Number of threads used to ray cast and accumulate in ``fit``.
    chunk_size : int
        Points handled per worker task.
    """
    def __init__(self, resolution=30, scaling_factor=1.4, prior_weights=(0.34, 0.33),
                 ray_direction=(0.0001, 1.0, 0.0), workers=None, chunk_size=50000):
        self.resolution = int(resolution)
        self.scaling_factor = float(scaling_factor)
        self.prior_weights = tuple(float(w) for w in prior_weights)
        self.ray_direction = np.asarray(ray_direction, dtype=float).reshape(3)
        self.workers = MAX_THREADS if workers is None else max(1, int(workers))
        self.chunk_size = max(1, int(chunk_size))
        self.validate()

    def validate(self):
        if self.resolution < 2:
            raise ValueError("resolution must be at least 2, got {}.".format(self.resolution))
        if not self.scaling_factor > 0.0:
            raise ValueError("scaling_factor must be positive, got {}.".format(self.scaling_factor))
        if len(self.prior_weights) != 2:
            raise ValueError("prior_weights must hold exactly (b1, b2).")
        b1, b2 = self.prior_weights
        if b1 <= 0.0 or b2 <= 0.0 or b1 + b2 >= 1.0:
            raise ValueError("prior_weights must put positive weight on all three corners, "
                             "got b1={}, b2={}.".format(b1, b2))
        if not np.any(self.ray_direction):
            raise ValueError("ray_direction must be non-zero.")
        return None

    def to_dict(self):
        return {"resolution": self.resolution,
                "scaling_factor": self.scaling_factor,
                "prior_weights": list(self.prior_weights),
                "ray_direction": self.ray_direction.tolist(),
                "workers": self.workers,
                "chunk_size": self.chunk_size}

    @classmethod
    def from_dict(cls, values):
        return cls(**values)

    def __repr__(self):
        return "MeshParameters({})".format(
            ", ".join("{}={!r}".format(k, v) for k, v in self.to_dict().items()))
