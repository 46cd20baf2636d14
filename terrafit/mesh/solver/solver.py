import numpy as np

from ..core.topology import ABSENT


class SingularSystemError(ArithmeticError):
    """Raised when the accumulated system cannot be relaxed without producing inf/NaN heights."""


def check_diagonal(jtj):
    """
    Verify every diagonal coefficient is finite and strictly positive.

    The regularization prior seeded by ``HeightFieldMesh.align`` guarantees
    this; a failure means the grid was used without being aligned.
    """
    diagonal = jtj.diagonal
    bad = np.flatnonzero(~np.isfinite(diagonal) | (diagonal <= 0.0))
    if bad.size > 0:
        raise SingularSystemError("Non-positive diagonal coefficients at vertices {}. "
                                  "Was the mesh aligned before relaxing?".format(bad[:10].tolist()))
    return None


def _stencils(jtj):
    present = jtj.neighbors != ABSENT
    ids = [jtj.neighbors[i][present[i]] for i in range(jtj.n_vertices)]
    values = [jtj.coefficients[i][present[i]] for i in range(jtj.n_vertices)]
    return ids, values


def gauss_seidel(jtj, jtz, h, iterations, tolerance=None):
    """
    Relax ``JᵗJ h = Jᵗz`` in place with Gauss-Seidel sweeps.

    Vertices are visited in index order and every update reads the values of
    neighbors already updated within the same sweep.

    Parameters
    ----------
    jtj : NormalEquationsGrid
        Accumulated matrix.
    jtz : RhsVector
        Accumulated right-hand side.
    h : ndarray of shape (n,)
        Initial guess, overwritten with the relaxed heights.
    iterations : int
        Maximum number of sweeps.
    tolerance : float, optional
        Stop after the first sweep whose largest height change is below this
        value. By default exactly ``iterations`` sweeps are run.

    Returns
    -------
    sweeps : int
        Number of sweeps performed.
    """
    iterations = int(iterations)
    if iterations < 0:
        raise ValueError("iterations must be non-negative, got {}.".format(iterations))
    if iterations == 0:
        return 0
    check_diagonal(jtj)
    rhs = jtz.get_vec()
    diagonal = jtj.diagonal
    ids, values = _stencils(jtj)
    sweeps = 0
    for _ in range(iterations):
        change = 0.0
        for i in range(h.shape[0]):
            xn = (rhs[i] - np.dot(values[i], h[ids[i]])) / diagonal[i]
            change = max(change, abs(xn - h[i]))
            h[i] = xn
        sweeps += 1
        if not np.all(np.isfinite(h)):
            raise SingularSystemError("Relaxation produced non-finite heights after {} sweeps.".format(sweeps))
        if tolerance is not None and change < tolerance:
            break
    return sweeps


def residual(jtj, jtz, h):
    """Root mean square of ``JᵗJ h - Jᵗz``."""
    r = jtj.dot(h) - jtz.get_vec()
    return float(np.sqrt(np.mean(r * r)))


class Solver:
    """
    This class defines the relaxation solver for the height field system.
    """

    def __init__(self, jtj, jtz):
        self.jtj = jtj
        self.jtz = jtz
        self.sweeps = 0

    def iterate(self, h):
        """Run exactly one sweep on ``h`` in place."""
        self.sweeps += gauss_seidel(self.jtj, self.jtz, h, 1)
        return h

    def relax(self, h, iterations, tolerance=None):
        done = gauss_seidel(self.jtj, self.jtz, h, iterations, tolerance=tolerance)
        self.sweeps += done
        return done

    def residual(self, h):
        return residual(self.jtj, self.jtz, h)
