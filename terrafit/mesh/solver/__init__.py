from .solver import Solver, SingularSystemError, gauss_seidel, residual
