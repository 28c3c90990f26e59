"""Test ball and sphere fields."""

import pytest
import numpy as np
from ballspec.core.grid import Grid, build_grid
from ballspec.core.field import (ScalarField, VectorField, SphereScalarField, SphereVectorField,
                                 unit_normal, check_resolution)
from ballspec.core.arithmetic import dot, cross
from ballspec.tools.exceptions import BasisConsistencyError, BasisResolutionError


order_range = [8, 16]
points = np.array([[0.1, 0.2, 0.3],
                   [0.0, 0.0, 0.0],
                   [0.5, -0.5, 0.5],
                   [-0.2, 0.9, -0.1],
                   [0.0, 0.0, 1.0]])


def poly(x, y, z):
    return x*y + z**2 - 0.5*x


@pytest.mark.parametrize('order', order_range)
def test_from_function_grid_values(order):
    grid = build_grid(order)
    f = ScalarField.from_function(grid, poly)
    x, y, z = grid.cartesian_grids()
    assert f.is_real
    assert f['c'].shape == grid.coeff_shape
    assert np.allclose(f['g'], poly(x, y, z))


@pytest.mark.parametrize('order', order_range)
def test_evaluate_cartesian(order):
    grid = build_grid(order)
    f = ScalarField.from_function(grid, poly)
    expected = poly(*points.T)
    assert np.allclose(f.evaluate(points), expected)
    assert np.allclose(f(points[0]), expected[0])


def test_evaluate_spherical():
    grid = build_grid(8)
    f = ScalarField.from_function(grid, lambda x, y, z: x + 2*z)
    r, theta, phi = 0.7, 0.4, 1.3
    value = f.evaluate([r, theta, phi], coords='spherical')
    expected = r*np.sin(theta)*np.cos(phi) + 2*r*np.cos(theta)
    assert np.allclose(value, expected)


def test_evaluate_chunks_match():
    grid = build_grid(8)
    f = ScalarField.from_function(grid, poly)
    rand = np.random.RandomState(3)
    pts = rand.uniform(-0.5, 0.5, size=(600, 3))
    assert np.allclose(f.evaluate(pts), poly(*pts.T))


@pytest.mark.parametrize('pts', [[1.0, 1.0, 0.0], [[0, 0, 0], [2, 0, 0]], [0, 0, np.nan], [[0, 0]]])
def test_evaluate_invalid_points(pts):
    grid = build_grid(8)
    f = ScalarField.constant(grid, 1.0)
    with pytest.raises(ValueError):
        f.evaluate(pts)


def test_from_coeffs_consistency():
    grid = Grid(8, 4)
    coeffs = np.zeros(grid.coeff_shape, dtype=complex)
    # n = 1 has the wrong parity for ell = 0
    coeffs[1, 0, grid.Lmax] = 1
    with pytest.raises(BasisConsistencyError):
        ScalarField.from_coeffs(grid, coeffs)
    coeffs = np.zeros(grid.coeff_shape, dtype=complex)
    # |m| > ell
    coeffs[1, 1, grid.Lmax + 2] = 1
    with pytest.raises(BasisConsistencyError):
        ScalarField.from_coeffs(grid, coeffs)


def test_from_coeffs_validation():
    grid = Grid(8, 4)
    with pytest.raises(ValueError):
        ScalarField.from_coeffs(grid, np.zeros((8, 4, 9)))
    coeffs = np.zeros(grid.coeff_shape)
    coeffs[0, 0, grid.Lmax] = np.inf
    with pytest.raises(ValueError):
        ScalarField.from_coeffs(grid, coeffs)
    with pytest.raises(ValueError):
        ScalarField.from_coeffs(grid, np.zeros(grid.coeff_shape), dtype=np.float32)


def test_fields_immutable():
    grid = Grid(8, 4)
    f = ScalarField.from_function(grid, poly)
    with pytest.raises(ValueError):
        f['c'][0, 0, 0] = 1
    with pytest.raises(ValueError):
        f['g'][0, 0, 0] = 1
    with pytest.raises(KeyError):
        f['x']


def test_resolution_check():
    grid = build_grid(8)
    f = lambda x, y, z: np.exp(8*x)
    with pytest.raises(BasisResolutionError):
        ScalarField.from_function(grid, f, check='raise')
    field = ScalarField.from_function(grid, f, check='none')
    assert not check_resolution(field['c'], mode='warn')
    with pytest.raises(ValueError):
        check_resolution(field['c'], mode='sometimes')


def test_resolution_check_passes():
    grid = build_grid(16)
    field = ScalarField.from_function(grid, poly, check='raise')
    assert check_resolution(field['c'], mode='raise')


@pytest.mark.parametrize('order', order_range)
def test_norms(order):
    grid = build_grid(order)
    one = ScalarField.constant(grid, 1.0)
    assert np.allclose(one.norm(), np.sqrt(4*np.pi/3))
    x = ScalarField.from_function(grid, lambda x, y, z: x)
    assert np.allclose(x.norm(), np.sqrt(4*np.pi/15))
    r2 = ScalarField.from_function(grid, lambda x, y, z: x**2 + y**2 + z**2)
    assert np.allclose(r2.norm(), np.sqrt(4*np.pi/7))


def test_inner():
    grid = build_grid(8)
    x = ScalarField.from_function(grid, lambda x, y, z: x)
    y = ScalarField.from_function(grid, lambda x, y, z: y)
    z2 = ScalarField.from_function(grid, lambda x, y, z: z**2)
    one = ScalarField.constant(grid, 1.0)
    assert np.allclose(x.inner(y), 0)
    assert np.allclose(x.inner(x), 4*np.pi/15)
    assert np.allclose(one.inner(z2), 4*np.pi/15)
    i = ScalarField.constant(grid, 1j)
    assert np.allclose(i.inner(one), -1j * 4*np.pi/3)


def test_constructors():
    grid = Grid(8, 4)
    zero = ScalarField.zeros(grid, name='zero')
    assert zero.name == 'zero'
    assert zero.norm() == 0
    assert zero.is_real
    c = ScalarField.constant(grid, 2.5)
    assert np.allclose(c['g'], 2.5)
    assert c.copy(name='c').name == 'c'
    data = np.random.RandomState(0).randn(*grid.grid_shape)
    with pytest.raises(ValueError):
        ScalarField.from_grid_data(grid, data[:-1])
    assert ScalarField.from_coeffs(grid, c['c']).is_complex


@pytest.mark.parametrize('order', order_range)
def test_real_imag_conjugate(order):
    grid = build_grid(order)
    f = ScalarField.from_function(grid, lambda x, y, z: x + 1j*y*z)
    assert f.is_complex
    assert np.allclose(f.real['g'], grid.cartesian_grids()[0])
    x, y, z = grid.cartesian_grids()
    assert np.allclose(f.imag['g'], y*z)
    assert np.allclose(f.conjugate()['g'], x - 1j*y*z)
    assert f.real.is_real


def test_resample():
    coarse = build_grid(8)
    fine = build_grid(16)
    f = ScalarField.from_function(coarse, poly)
    g = f.resample(fine)
    assert g.grid is fine
    assert np.allclose(g.evaluate(points), poly(*points.T))
    h = g.resample(coarse)
    assert np.allclose(h['c'], f['c'])
    assert f.resample(coarse) is f


def test_restrict():
    grid = build_grid(8)
    f = ScalarField.from_function(grid, lambda x, y, z: z + x*y)
    s = f.restrict(1.0)
    theta, phi = grid.sphere_grids()
    expected = np.cos(theta) + np.sin(theta)**2 * np.cos(phi) * np.sin(phi)
    assert isinstance(s, SphereScalarField)
    assert np.allclose(s['g'], expected)
    half = f.restrict(0.5)
    assert np.allclose(half['g'], 0.5*np.cos(theta) + 0.25*np.sin(theta)**2 * np.cos(phi) * np.sin(phi))
    with pytest.raises(ValueError):
        f.restrict(1.5)


def test_arithmetic():
    grid = build_grid(8)
    x, y, z = grid.cartesian_grids()
    f = ScalarField.from_function(grid, lambda x, y, z: x)
    g = ScalarField.from_function(grid, lambda x, y, z: y*z)
    assert np.allclose((f + g)['g'], x + y*z)
    assert np.allclose((f - g)['g'], x - y*z)
    assert np.allclose((2*f)['g'], 2*x)
    assert np.allclose((f*3)['g'], 3*x)
    assert np.allclose((f + 1)['g'], x + 1)
    assert np.allclose((1 - f)['g'], 1 - x)
    assert np.allclose((-f)['g'], -x)
    assert np.allclose((f / 4)['g'], x / 4)
    assert np.allclose((f * g)['g'], x*y*z)
    assert (2j * f).is_complex
    with pytest.raises(ZeroDivisionError):
        f / 0
    with pytest.raises(ValueError):
        f + ScalarField.from_function(build_grid(16), lambda x, y, z: x)


def test_vector_field_basics():
    grid = build_grid(8)
    v = VectorField.from_functions(grid, lambda x, y, z: x, lambda x, y, z: y, lambda x, y, z: z)
    x, y, z = grid.cartesian_grids()
    assert v['g'].shape == (3,) + grid.grid_shape
    assert v['c'].shape == (3,) + grid.coeff_shape
    assert np.allclose(v.x['g'], x)
    assert np.allclose(v[2]['g'], z)
    assert np.allclose(v.norm(), np.sqrt(4*np.pi/5))
    w = VectorField.from_function(grid, lambda x, y, z: (x, y, z))
    assert np.allclose(w['c'], v['c'])
    assert np.allclose(v.evaluate(points), points)
    assert np.allclose((v + w)['g'], 2*v['g'])
    assert np.allclose((2*v)['g'], 2*v['g'])
    with pytest.raises(ValueError):
        VectorField([v.x, v.y])


def test_dot_cross():
    grid = build_grid(8)
    x, y, z = grid.cartesian_grids()
    v = VectorField.from_function(grid, lambda x, y, z: (x, y, z))
    e_z = VectorField.from_function(grid, lambda x, y, z: (0, 0, 1))
    assert np.allclose(dot(v, v)['g'], x**2 + y**2 + z**2)
    assert np.allclose((v @ e_z)['g'], z)
    c = cross(e_z, v)
    assert np.allclose(c['g'][0], -y)
    assert np.allclose(c['g'][1], x)
    assert np.allclose(c['g'][2], 0)


def test_vector_restrict_frames():
    grid = build_grid(8)
    v = VectorField.from_function(grid, lambda x, y, z: (x, y, z))
    spherical = v.restrict(1.0, frame='spherical')
    assert isinstance(spherical, SphereVectorField)
    assert np.allclose(spherical['g'][0], 1)
    assert np.allclose(spherical['g'][1:], 0)
    cartesian = spherical.to_frame('cartesian')
    assert np.allclose(cartesian['g'], v.restrict(1.0)['g'])
    with pytest.raises(ValueError):
        v.restrict(1.0, frame='cylindrical')


def test_unit_normal():
    grid = build_grid(8)
    n = unit_normal(grid)
    assert np.allclose(np.sum(n['g']**2, axis=0), 1)
    assert np.allclose(n.norm(), np.sqrt(4*np.pi))
    assert np.allclose(n.to_frame('spherical')['g'][0], 1)
    v = VectorField.from_function(grid, lambda x, y, z: (x, y, z))
    assert np.allclose(dot(v.restrict(0.5), unit_normal(grid, radius=0.5))['g'], 0.5)


def test_sphere_scalar_field():
    grid = build_grid(8)
    s = SphereScalarField.from_function(grid, lambda phi, theta: np.cos(theta))
    assert np.allclose(s.norm(), np.sqrt(4*np.pi/3))
    assert np.allclose(s.evaluate(np.array([0.3]), np.array([1.0])), np.cos(0.3))
    t = SphereScalarField.from_function(grid, lambda phi, theta: np.sin(theta)*np.cos(phi))
    assert np.allclose(s.inner(t), 0)
    assert np.allclose((s * t)['g'], s['g'] * t['g'])
    assert np.allclose((s + s)['g'], 2*s['g'])
    zero = SphereScalarField.zeros(grid)
    assert zero.norm() == 0
    bad = np.zeros(grid.coeff_shape[1:])
    bad[0, 0] = 1
    with pytest.raises(BasisConsistencyError):
        SphereScalarField(grid, bad)
