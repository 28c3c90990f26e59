"""Test the Helmholtz solver."""

import pytest
import numpy as np
from ballspec.core.grid import build_grid
from ballspec.core.field import ScalarField, SphereScalarField
from ballspec.core.problems import BoundaryType, HelmholtzProblem
from ballspec.core.solvers import SolverConfig, HelmholtzSolver, RadialSystem, build_solver, helmholtz
from ballspec.libraries.matsolvers import matsolvers
from ballspec.tools.exceptions import SingularSystemError, InvalidBoundaryConditionError


order_range = [16, 32]


def spherical_bessel_j0(z):
    return np.sin(z) / z


@pytest.mark.parametrize('order', order_range)
def test_poisson_r2(order):
    grid = build_grid(order)
    rhs = ScalarField.constant(grid, 6.0)
    u = helmholtz(rhs, 0, boundary=1)
    r = grid.radius[:, None, None]
    assert u.is_real
    assert u.grid is grid
    assert np.allclose(u['g'], r**2 * np.ones(grid.grid_shape))
    assert u.invalid_modes == ()


@pytest.mark.parametrize('order', order_range)
@pytest.mark.parametrize('K', [0.5, 2, 5])
def test_bessel_dirichlet(order, K):
    grid = build_grid(order)
    rhs = ScalarField.zeros(grid)
    u = helmholtz(rhs, K, boundary=spherical_bessel_j0(K))
    r = grid.radius[:, None, None]
    assert np.allclose(u['g'], spherical_bessel_j0(K*r) * np.ones(grid.grid_shape))


@pytest.mark.parametrize('K', [1 + 1j, 3j])
def test_complex_wavenumber(K):
    grid = build_grid(32)
    rhs = ScalarField.zeros(grid)
    u = helmholtz(rhs, K, boundary=spherical_bessel_j0(K))
    r = grid.radius[:, None, None]
    assert u.is_complex or np.imag(K**2) == 0
    assert np.allclose(u['g'], spherical_bessel_j0(K*r) * np.ones(grid.grid_shape))


@pytest.mark.parametrize('K', [0.7, 2.5, 4j])
def test_zero_data_gives_zero(K):
    grid = build_grid(16)
    u = helmholtz(ScalarField.zeros(grid), K)
    assert u.norm() < 1e-14


def test_forced_solution():
    # u = z (1 - r**2): lap(u) = -10 z, u = 0 on r = 1
    grid = build_grid(16)
    K = 1.5
    u_true = lambda x, y, z: z * (1 - x**2 - y**2 - z**2)
    rhs = ScalarField.from_function(grid, lambda x, y, z: -10*z + K**2 * u_true(x, y, z))
    u = helmholtz(rhs, K)
    x, y, z = grid.cartesian_grids()
    assert np.allclose(u['g'], u_true(x, y, z))


def test_boundary_function():
    # Harmonic u = x y has boundary data sin(theta)**2 cos(phi) sin(phi)
    grid = build_grid(16)
    g = lambda phi, theta: np.sin(theta)**2 * np.cos(phi) * np.sin(phi)
    u = helmholtz(ScalarField.zeros(grid), 0, boundary=g)
    x, y, z = grid.cartesian_grids()
    assert np.allclose(u['g'], x*y)


def test_boundary_array_and_sphere_field():
    grid = build_grid(16)
    theta, phi = grid.sphere_grids()
    values = np.cos(theta) * np.ones_like(phi)
    u_array = helmholtz(ScalarField.zeros(grid), 0, boundary=values)
    sphere_field = SphereScalarField.from_grid_data(grid, values)
    u_field = helmholtz(ScalarField.zeros(grid), 0, boundary=sphere_field)
    x, y, z = grid.cartesian_grids()
    assert np.allclose(u_array['g'], z)
    assert np.allclose(u_field['c'], u_array['c'])


def test_neumann():
    # u = z with K = 1: lap(u) + u = z, du/dr = cos(theta) on r = 1
    grid = build_grid(16)
    rhs = ScalarField.from_function(grid, lambda x, y, z: z)
    u = helmholtz(rhs, 1, boundary=lambda phi, theta: np.cos(theta), boundary_type='neumann')
    x, y, z = grid.cartesian_grids()
    assert np.allclose(u['g'], z)


def test_neumann_singular_strict():
    grid = build_grid(16)
    rhs = ScalarField.from_function(grid, lambda x, y, z: z)
    with pytest.raises(SingularSystemError) as excinfo:
        helmholtz(rhs, 0, boundary=lambda phi, theta: np.cos(theta), boundary_type='neumann')
    assert excinfo.value.modes == ((0, 0),)
    assert excinfo.value.rcond[0] == 0


def test_neumann_singular_permissive():
    # lap(u) = z, du/dr = cos(theta): u = z (r**2 + 7) / 10 up to a constant
    grid = build_grid(16)
    rhs = ScalarField.from_function(grid, lambda x, y, z: z)
    config = SolverConfig(boundary_type='neumann', strict=False)
    u = helmholtz(rhs, 0, boundary=lambda phi, theta: np.cos(theta), config=config)
    assert u.invalid_modes == ((0, 0),)
    assert np.all(u['c'][:, 0, :] == 0)
    x, y, z = grid.cartesian_grids()
    assert np.allclose(u['g'], z * (x**2 + y**2 + z**2 + 7) / 10)


def test_dirichlet_resonance():
    # j0(pi r) vanishes on r = 1, so K = pi is an ell = 0 eigenvalue
    grid = build_grid(32)
    rhs = ScalarField.constant(grid, 1.0)
    config = SolverConfig(tolerance=1e-8)
    with pytest.raises(SingularSystemError) as excinfo:
        helmholtz(rhs, np.pi, config=config)
    assert (0, 0) in excinfo.value.modes
    permissive = config.replace(strict=False)
    u = helmholtz(rhs, np.pi, config=permissive)
    assert (0, 0) in u.invalid_modes
    assert np.all(np.isfinite(u['c']))


def test_singular_modes_listing():
    grid = build_grid(8)
    solver = HelmholtzSolver(grid, 0, 'neumann', SolverConfig(strict=False))
    assert solver.singular_degrees == (0,)
    assert solver.singular_modes() == [(0, 0)]


@pytest.mark.parametrize('workers', [1, 2, 4])
def test_workers_agree(workers):
    grid = build_grid(16)
    rhs = ScalarField.from_function(grid, lambda x, y, z: x*y - z + 1)
    serial = helmholtz(rhs, 1.3, boundary=0.5, config=SolverConfig(workers=1))
    parallel = helmholtz(rhs, 1.3, boundary=0.5, config=SolverConfig(workers=workers))
    assert np.allclose(parallel['c'], serial['c'])


@pytest.mark.parametrize('matsolver', list(matsolvers))
@pytest.mark.parametrize('equilibrate', [True, False])
def test_matsolvers_agree(matsolver, equilibrate):
    grid = build_grid(16)
    rhs = ScalarField.constant(grid, 6.0)
    config = SolverConfig(matsolver=matsolver, equilibrate=equilibrate)
    u = helmholtz(rhs, 0, boundary=1, config=config)
    r = grid.radius[:, None, None]
    assert np.allclose(u['g'], r**2 * np.ones(grid.grid_shape))


def test_order_resampling():
    coarse = build_grid(8)
    rhs = ScalarField.constant(coarse, 6.0)
    u = helmholtz(rhs, 0, boundary=1, order=24)
    assert u.grid is build_grid(24)
    config = SolverConfig(order=12)
    v = helmholtz(rhs, 0, boundary=1, config=config)
    assert v.grid is build_grid(12)
    assert np.allclose(v.evaluate([0.3, 0.4, 0.5]), 0.5)


@pytest.mark.parametrize('boundary', ['zero', np.inf, np.ones((3, 3)), lambda x: x, np.array(['a'])])
def test_invalid_boundary(boundary):
    grid = build_grid(8)
    with pytest.raises(InvalidBoundaryConditionError):
        helmholtz(ScalarField.zeros(grid), 1, boundary=boundary)


def test_invalid_boundary_field_radius():
    grid = build_grid(8)
    boundary = SphereScalarField.zeros(grid, radius=0.5)
    with pytest.raises(InvalidBoundaryConditionError):
        helmholtz(ScalarField.zeros(grid), 1, boundary=boundary)


def test_invalid_boundary_type():
    grid = build_grid(8)
    with pytest.raises(InvalidBoundaryConditionError):
        helmholtz(ScalarField.zeros(grid), 1, boundary_type='robin')
    with pytest.raises(InvalidBoundaryConditionError):
        SolverConfig(boundary_type='robin')


@pytest.mark.parametrize('K', [np.nan, np.inf, 'one', None])
def test_invalid_wavenumber(K):
    grid = build_grid(8)
    with pytest.raises(ValueError):
        helmholtz(ScalarField.zeros(grid), K)


def test_invalid_rhs():
    with pytest.raises(TypeError):
        helmholtz(1.0, 1)


def test_solver_config():
    config = SolverConfig(tolerance=1e-10, strict=False, workers=2)
    assert config.boundary_type is BoundaryType.DIRICHLET
    assert config.tolerance == 1e-10
    other = config.replace(boundary_type='neumann')
    assert other.boundary_type is BoundaryType.NEUMANN
    assert other.workers == 2 and other.strict is False
    assert 'neumann' in repr(other)
    with pytest.raises(ValueError):
        SolverConfig(tolerance=-1)
    with pytest.raises(ValueError):
        SolverConfig(matsolver='magic')
    with pytest.raises(ValueError):
        SolverConfig(workers=0)


def test_boundary_type_parse():
    assert BoundaryType.parse('Dirichlet') is BoundaryType.DIRICHLET
    assert BoundaryType.parse(BoundaryType.NEUMANN) is BoundaryType.NEUMANN


def test_solver_cache():
    grid = build_grid(8)
    config = SolverConfig()
    solver = build_solver(grid, 2.0, 'dirichlet', config)
    assert build_solver(grid, 2.0, BoundaryType.DIRICHLET, config) is solver
    assert build_solver(grid, 2.0, 'neumann', config) is not solver


def test_problem_dtype():
    grid = build_grid(8)
    real = ScalarField.zeros(grid)
    assert HelmholtzProblem(real, 2).dtype == np.float64
    assert HelmholtzProblem(real, 2j).dtype == np.float64
    assert HelmholtzProblem(real, 1 + 1j).dtype == np.complex128
    assert HelmholtzProblem(real, 2, boundary=1j).dtype == np.complex128


def test_solver_problem_mismatch():
    grid = build_grid(8)
    solver = HelmholtzSolver(grid, 1.0, 'dirichlet')
    problem = HelmholtzProblem(ScalarField.zeros(grid), 1.0, boundary_type='neumann')
    with pytest.raises(ValueError):
        solver.solve(problem)
    problem = HelmholtzProblem(ScalarField.zeros(build_grid(12)), 1.0)
    with pytest.raises(ValueError):
        solver.solve(problem)


@pytest.mark.parametrize('ell', [0, 1, 4])
def test_radial_system_shapes(ell):
    system = RadialSystem(16, ell, 1.0, BoundaryType.DIRICHLET, 'SuperluColamdFactorized')
    n = system.columns.size
    assert system.matrix.shape == (n, n)
    assert np.all(system.columns % 2 == ell % 2)
    assert not system.singular(1e-12)
    rhs = np.zeros((16, 3), dtype=complex)
    out = system.solve(rhs, np.ones(3))
    assert out.shape == (16, 3)
    assert np.all(out[(ell + 1) % 2::2] == 0)
