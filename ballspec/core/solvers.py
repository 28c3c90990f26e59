"""
Helmholtz solver for the unit ball.

Each spherical-harmonic degree ell decouples into a radial problem for the
Chebyshev coefficients of F(r), discretized with the ultraspherical method on
the r**2-multiplied equation

    r**2 F'' + 2 r F' + (K**2 r**2 - ell (ell+1)) F = r**2 f,

which is banded in the T -> C(2) representation. Unknowns are restricted to
the parity of ell, the two highest parity rows are replaced by one boundary
row at r = 1, and the per-degree factorization is shared by every m.

"""

import numbers
import numpy as np
from scipy import sparse

from .field import ScalarField
from .problems import BoundaryType, HelmholtzProblem
from ..libraries.matsolvers import get_solver
from ..tools import chebyshev
from ..tools.cache import CachedFunction, CachedAttribute
from ..tools.config import config
from ..tools.exceptions import SingularSystemError
from ..tools.parallel import map_modes, resolve_workers

import logging
logger = logging.getLogger(__name__.split('.')[-1])

# Public interface
__all__ = ['SolverConfig',
           'HelmholtzSolver',
           'helmholtz']


class SolverConfig:
    """
    Options for Helmholtz solves. Unspecified options take their defaults from
    the [helmholtz], [linear algebra] and [parallelism] config sections.

    Parameters
    ----------
    order : int, optional
        Solve resolution (default: resolution of the rhs).
    boundary_type : str, optional
        'dirichlet' or 'neumann'.
    tolerance : float, optional
        Reciprocal condition number below which a degree is reported singular.
    strict : bool, optional
        Raise SingularSystemError on singular degrees (True), or zero and flag
        the affected modes (False).
    workers : int, optional
        Worker threads for per-degree factorizations and solves.
    matsolver : str, optional
        Name of a registered matrix solver.
    equilibrate : bool, optional
        Scale rows and columns before factorizing.

    """

    def __init__(self, order=None, boundary_type=None, tolerance=None, strict=None,
                 workers=None, matsolver=None, equilibrate=None):
        section = config['helmholtz']
        if boundary_type is None:
            boundary_type = section.get('BOUNDARY_TYPE')
        if tolerance is None:
            tolerance = section.getfloat('TOLERANCE')
        if strict is None:
            strict = section.getboolean('STRICT')
        if matsolver is None:
            matsolver = config['linear algebra'].get('MATRIX_FACTORIZER')
        if equilibrate is None:
            equilibrate = config['linear algebra'].getboolean('EQUILIBRATE')
        if tolerance < 0:
            raise ValueError("Tolerance must be non-negative.")
        # Validate eagerly
        get_solver(matsolver)
        self.order = order
        self.boundary_type = BoundaryType.parse(boundary_type)
        self.tolerance = float(tolerance)
        self.strict = bool(strict)
        self.workers = resolve_workers(workers)
        self.matsolver = matsolver
        self.equilibrate = bool(equilibrate)

    def __repr__(self):
        return ("SolverConfig(order=%r, boundary_type=%r, tolerance=%g, strict=%r, workers=%i, matsolver=%r)"
                % (self.order, self.boundary_type.value, self.tolerance, self.strict, self.workers, self.matsolver))

    def replace(self, **kw):
        """Copy with some options replaced."""
        options = dict(order=self.order, boundary_type=self.boundary_type, tolerance=self.tolerance,
                       strict=self.strict, workers=self.workers, matsolver=self.matsolver,
                       equilibrate=self.equilibrate)
        options.update(kw)
        return SolverConfig(**options)


@CachedFunction
def _ultraspherical_matrices(N):
    """
    Operator pieces on padded size P = N + 2 so that multiplication by r**2
    is exact for inputs of size N: (r**2 d2, r d1, r**2, 1), all mapping T to C(2).
    """
    P = N + 2
    S0 = chebyshev.conversion_T_to_U(P)
    S1 = chebyshev.conversion_U_to_C2(P)
    D1 = chebyshev.differentiation_T_to_U(P)
    D2 = chebyshev.differentiation_T_to_C2(P)
    X2 = chebyshev.multiplication_C2(P)
    identity = (S1 @ S0).tocsr()
    r2 = (X2 @ X2 @ identity).tocsr()
    r2_d2 = (X2 @ X2 @ D2).tocsr()
    r_d1 = (X2 @ S1 @ D1).tocsr()
    return r2_d2, r_d1, r2, identity


class RadialSystem:
    """
    Factorized radial Helmholtz system for one degree ell.

    Parameters
    ----------
    N : int
        Number of Chebyshev coefficients.
    ell : int
        Spherical-harmonic degree.
    K2 : number
        Squared wavenumber.
    boundary_type : BoundaryType
    matsolver : str
        Name of a registered matrix solver.
    equilibrate : bool
        Scale rows and columns before factorizing.

    """

    def __init__(self, N, ell, K2, boundary_type, matsolver, equilibrate=True):
        self.N = N
        self.ell = ell
        self.columns = np.arange(ell % 2, N, 2)
        n_unknowns = self.columns.size
        # Lowest parity rows, leaving room for the boundary row
        self.rows = np.arange(ell % 2, N + 2, 2)[:n_unknowns - 1]
        r2_d2, r_d1, r2, identity = _ultraspherical_matrices(N)
        operator = r2_d2 + 2*r_d1 + K2*r2 - ell*(ell+1)*identity
        operator = sparse.csr_matrix(operator, dtype=np.complex128)
        interior = operator[self.rows][:, self.columns]
        if boundary_type is BoundaryType.DIRICHLET:
            boundary_row = chebyshev.dirichlet_row(N)[self.columns]
        else:
            boundary_row = chebyshev.neumann_row(N)[self.columns]
        matrix = sparse.vstack([interior, sparse.csr_matrix(boundary_row[None, :])], format='csr')
        matrix = matrix.astype(np.complex128)
        self.rhs_matrix = r2[self.rows][:, :N].tocsr()
        # Equilibrate rows then columns
        if equilibrate:
            row_scale = 1 / _max_abs(matrix, axis=1)
            matrix = sparse.diags(row_scale) @ matrix
            col_scale = 1 / _max_abs(matrix, axis=0)
            matrix = (matrix @ sparse.diags(col_scale)).tocsr()
        else:
            row_scale = np.ones(matrix.shape[0])
            col_scale = np.ones(matrix.shape[1])
        self.row_scale = row_scale
        self.col_scale = col_scale
        self.matrix = matrix
        self.rcond = None
        self.solver = None
        try:
            self.solver = get_solver(matsolver)(matrix)
            self.rcond = self.solver.rcond(matrix)
        except (RuntimeError, np.linalg.LinAlgError) as error:
            logger.debug("Factorization failed for ell=%i: %s", ell, error)
            self.solver = None
            self.rcond = 0.0

    def singular(self, tolerance):
        return (self.solver is None) or (not np.isfinite(self.rcond)) or (self.rcond < tolerance)

    def solve(self, rhs_coeffs, boundary_coeffs):
        """
        Solve for all m at once.

        Parameters
        ----------
        rhs_coeffs : array
            Chebyshev coefficients of the forcing, shape (N, M).
        boundary_coeffs : array
            Boundary data per m, shape (M,).

        Returns the Chebyshev coefficients of the solution, shape (N, M).
        """
        rhs = self.rhs_matrix @ rhs_coeffs
        rhs = np.vstack([rhs, boundary_coeffs[None, :]])
        rhs = self.row_scale[:, None] * rhs
        solution = self.solver.solve(np.ascontiguousarray(rhs, dtype=np.complex128))
        solution = np.asarray(solution).reshape(rhs.shape)
        out = np.zeros((self.N, rhs_coeffs.shape[1]), dtype=np.complex128)
        out[self.columns] = self.col_scale[:, None] * solution
        return out


def _max_abs(matrix, axis):
    scale = np.asarray(abs(matrix).max(axis=axis).todense()).ravel()
    scale[scale == 0] = 1
    return scale


class HelmholtzSolver:
    """
    Helmholtz solver for one grid, wavenumber and boundary type.

    Factorizes one radial system per degree ell on construction (optionally
    across a thread pool) and solves for all m of a degree at once.

    Parameters
    ----------
    grid : Grid
        Ball grid.
    K : number
        Wavenumber.
    boundary_type : str or BoundaryType, optional
        'dirichlet' or 'neumann' (default: from config).
    config : SolverConfig, optional
        Solver options (default: SolverConfig()).

    """

    def __init__(self, grid, K, boundary_type=None, config=None):
        if config is None:
            config = SolverConfig()
        if boundary_type is None:
            boundary_type = config.boundary_type
        if not isinstance(K, numbers.Number) or not np.isfinite(K):
            raise ValueError("K must be a finite number, not %r." % (K,))
        self.grid = grid
        self.K = K
        self.boundary_type = BoundaryType.parse(boundary_type)
        self.config = config
        logger.debug("Building Helmholtz solver: %r, K=%s, %s", grid, K, self.boundary_type.value)
        def build(ell):
            return RadialSystem(grid.radial_size, ell, K**2, self.boundary_type, config.matsolver, config.equilibrate)
        self.systems = map_modes(build, range(grid.Lmax+1), config.workers)

    @CachedAttribute
    def singular_degrees(self):
        """Degrees whose radial systems are singular or ill-conditioned."""
        return tuple(s.ell for s in self.systems if s.singular(self.config.tolerance))

    def singular_modes(self):
        """All (ell, m) modes of the singular degrees."""
        return [(ell, m) for ell in self.singular_degrees for m in range(-ell, ell+1)]

    def solve(self, problem, strict=None):
        """
        Solve a HelmholtzProblem.

        Strict solves (default: config.strict) raise SingularSystemError
        listing every affected (ell, m). Otherwise the affected coefficients
        are set to zero and listed in the result's invalid_modes.
        """
        if problem.grid is not self.grid:
            raise ValueError("Problem grid %r does not match solver grid %r." % (problem.grid, self.grid))
        if problem.boundary_type is not self.boundary_type:
            raise ValueError("Problem boundary type does not match solver.")
        grid = self.grid
        singular = set(self.singular_degrees)
        modes = self.singular_modes()
        if strict is None:
            strict = self.config.strict
        if singular and strict:
            rcond = {s.ell: s.rcond for s in self.systems if s.ell in singular}
            raise SingularSystemError(modes, rcond)
        rhs_coeffs = problem.rhs['c']
        boundary_coeffs = problem.boundary_coeffs
        def solve_degree(system):
            if system.ell in singular:
                return np.zeros((grid.radial_size, 2*grid.Lmax+1), dtype=np.complex128)
            return system.solve(rhs_coeffs[:, system.ell, :], boundary_coeffs[system.ell])
        solutions = map_modes(solve_degree, self.systems, self.config.workers)
        # Assemble after every degree has finished
        coeffs = np.stack(solutions, axis=1)
        coeffs[~grid.valid_modes] = 0
        if not np.all(np.isfinite(coeffs)):
            bad = sorted(set(int(ell) for ell in np.nonzero(~np.isfinite(coeffs))[1]))
            raise SingularSystemError([(ell, m) for ell in bad for m in range(-ell, ell+1)])
        if modes:
            logger.warning("Helmholtz solve skipped singular degrees ell = %s (%i modes set to zero)", sorted(singular), len(modes))
        return ScalarField(grid, coeffs, dtype=problem.dtype, invalid_modes=modes)


@CachedFunction(max_size=64)
def _cached_solver(grid, K, boundary_type, tolerance, matsolver, equilibrate, workers):
    config = SolverConfig(boundary_type=boundary_type, tolerance=tolerance, matsolver=matsolver,
                          equilibrate=equilibrate, workers=workers)
    return HelmholtzSolver(grid, K, boundary_type, config)


def build_solver(grid, K, boundary_type, config):
    """Cached HelmholtzSolver for (grid, K, boundary_type) and the factorization options."""
    return _cached_solver(grid, K, BoundaryType.parse(boundary_type), config.tolerance,
                          config.matsolver.lower(), config.equilibrate, config.workers)


def helmholtz(rhs, K, boundary=0, order=None, boundary_type=None, config=None):
    """
    Solve lap(u) + K**2 u = rhs in the unit ball.

    Parameters
    ----------
    rhs : ScalarField
        Forcing.
    K : number
        Wavenumber (real or complex).
    boundary : number, callable g(phi, theta), array or SphereScalarField, optional
        Boundary data on r = 1 (default: 0).
    order : int, optional
        Solve resolution (default: config.order, then the rhs resolution).
    boundary_type : str, optional
        'dirichlet' or 'neumann' (default: config.boundary_type).
    config : SolverConfig, optional
        Solver options.

    Returns
    -------
    u : ScalarField

    """
    if config is None:
        config = SolverConfig()
    if order is None:
        order = config.order
    if boundary_type is None:
        boundary_type = config.boundary_type
    problem = HelmholtzProblem(rhs, K, boundary, boundary_type, order)
    solver = build_solver(problem.grid, K, problem.boundary_type, config)
    return solver.solve(problem, strict=config.strict)

