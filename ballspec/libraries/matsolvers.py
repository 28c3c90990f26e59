"""Matrix solver wrappers."""

import numpy as np
import scipy.linalg as sla
import scipy.sparse as sp
import scipy.sparse.linalg as spla


matsolvers = {}
def add_solver(solver):
    matsolvers[solver.__name__.lower()] = solver
    return solver


def get_solver(name):
    """Look up a registered solver class by (case-insensitive) name."""
    try:
        return matsolvers[name.lower()]
    except KeyError:
        raise ValueError("Unknown matrix solver: %s. Options: %s" % (name, sorted(matsolvers))) from None


class SolverBase:
    """Abstract base class for all solvers."""

    def __init__(self, matrix):
        pass

    def solve(self, vector):
        pass

    def solve_H(self, vector):
        raise NotImplementedError("%s has not implemented 'solve_H' method" % type(self))

    def rcond(self, matrix):
        """Estimate the 1-norm reciprocal condition number of the factorized matrix."""
        n = matrix.shape[0]
        if sp.issparse(matrix):
            matrix_norm = spla.norm(matrix, 1)
        else:
            matrix_norm = np.linalg.norm(matrix, 1)
        if matrix_norm == 0:
            return 0.0
        inverse = spla.LinearOperator((n, n), matvec=self.solve, rmatvec=self.solve_H, dtype=matrix.dtype)
        inverse_norm = spla.onenormest(inverse)
        if not np.isfinite(inverse_norm) or inverse_norm == 0:
            return 0.0
        return 1 / (matrix_norm * inverse_norm)


class SparseSolver(SolverBase):
    """Base class for sparse solvers."""


class BandedSolver(SolverBase):
    """Base class for banded solvers."""

    @staticmethod
    def sparse_to_banded(matrix, u=None, l=None):
        """Convert sparse matrix to banded format."""
        matrix = sp.dia_matrix(matrix)
        if u is None:
            u = max(0, max(matrix.offsets))
        if l is None:
            l = max(0, max(-matrix.offsets))
        ab = np.zeros((u+l+1, matrix.shape[1]), dtype=matrix.dtype)
        ab[u-matrix.offsets] = matrix.data
        lu = (l, u)
        return lu, ab


class DenseSolver(SolverBase):
    """Base class for dense solvers."""


class _SuperluFactorizedBase(SparseSolver):
    """SuperLU factorized solver base class."""

    permc_spec = None
    diag_pivot_thresh = None
    relax = None
    panel_size = None
    options = {}

    def __init__(self, matrix):
        # Raises RuntimeError for exactly singular matrices
        self.LU = spla.splu(matrix.tocsc(),
                            permc_spec=self.permc_spec,
                            diag_pivot_thresh=self.diag_pivot_thresh,
                            relax=self.relax,
                            panel_size=self.panel_size,
                            options=self.options)

    def solve(self, vector):
        return self.LU.solve(vector)

    def solve_H(self, vector):
        return self.LU.solve(vector, trans="H")


@add_solver
class SuperluNaturalFactorized(_SuperluFactorizedBase):
    """SuperLU factorized solve with 'NATURAL' column permutation."""
    permc_spec = "NATURAL"


@add_solver
class SuperluColamdFactorized(_SuperluFactorizedBase):
    """SuperLU factorized solve with 'COLAMD' column permutation."""
    permc_spec = "COLAMD"


@add_solver
class ScipyBanded(BandedSolver):
    """Scipy banded solve."""

    def __init__(self, matrix):
        matrix = sp.csr_matrix(matrix)
        self.lu, self.ab = self.sparse_to_banded(matrix)
        self.lu_H, self.ab_H = self.sparse_to_banded(matrix.conj().T)

    def solve(self, vector):
        return sla.solve_banded(self.lu, self.ab, vector, check_finite=False)

    def solve_H(self, vector):
        return sla.solve_banded(self.lu_H, self.ab_H, vector, check_finite=False)


@add_solver
class ScipyDenseLU(DenseSolver):
    """Scipy dense LU factorized solve."""

    def __init__(self, matrix):
        if sp.issparse(matrix):
            matrix = matrix.toarray()
        self.LU = sla.lu_factor(matrix, check_finite=False)

    def solve(self, vector):
        return sla.lu_solve(self.LU, vector, check_finite=False)

    def solve_H(self, vector):
        return sla.lu_solve(self.LU, vector, trans=2, check_finite=False)


@add_solver
class DenseInverse(DenseSolver):
    """Dense inversion solve."""

    def __init__(self, matrix):
        if sp.issparse(matrix):
            matrix = matrix.toarray()
        self.matrix_inverse = sla.inv(matrix)

    def solve(self, vector):
        return self.matrix_inverse @ vector

    def solve_H(self, vector):
        return self.matrix_inverse.conj().T @ vector

