"""Test Chebyshev and ultraspherical tools."""

import pytest
import numpy as np
import numpy.polynomial.chebyshev as npc
from scipy.special import eval_gegenbauer
from ballspec.tools import chebyshev


N_range = [4, 9, 16, 33]
x = np.linspace(-1, 1, 17)


def random_coeffs(N, seed=0):
    rand = np.random.RandomState(seed)
    return rand.randn(N)


@pytest.mark.parametrize('N', N_range)
def test_build_grid(N):
    grid = chebyshev.build_grid(N)
    assert np.all(np.diff(grid) < 0)
    assert np.allclose(np.cos(N * np.arccos(grid)), 0)


@pytest.mark.parametrize('N', N_range)
def test_polynomials(N):
    T = chebyshev.polynomials(N, x)
    n = np.arange(N)[:, None]
    assert T.shape == (N,) + x.shape
    assert np.allclose(T, np.cos(n * np.arccos(x)))


@pytest.mark.parametrize('N', N_range)
def test_polynomial_derivatives(N):
    c = random_coeffs(N)
    dT = chebyshev.polynomial_derivatives(N, x)
    assert np.allclose(c @ dT, npc.chebval(x, npc.chebder(c)))


@pytest.mark.parametrize('N', N_range)
def test_clenshaw(N):
    c = random_coeffs(N)
    for xi in [-1, -0.3, 0, 0.5, 1]:
        assert np.allclose(chebyshev.clenshaw(c, xi), npc.chebval(xi, c))


def test_clenshaw_trailing_axes():
    c = np.random.RandomState(1).randn(8, 3, 5)
    out = chebyshev.clenshaw(c, 0.7)
    assert out.shape == (3, 5)
    assert np.allclose(out, npc.chebval(0.7, c))


@pytest.mark.parametrize('N', N_range)
def test_derivative_matrix(N):
    c = random_coeffs(N)
    expected = np.zeros(N)
    expected[:N-1] = npc.chebder(c)
    assert np.allclose(chebyshev.derivative_matrix(N) @ c, expected)


@pytest.mark.parametrize('N', N_range)
def test_division_matrix(N):
    # F = r p(r) vanishes at the origin, so F / r = p exactly
    p = random_coeffs(N-1)
    F = npc.chebmulx(p)
    expected = np.zeros(N)
    expected[:N-1] = p
    assert np.allclose(chebyshev.division_matrix(N) @ F, expected)


def test_integrals():
    n = np.arange(12)
    xq, wq = np.polynomial.legendre.leggauss(16)
    T = chebyshev.polynomials(12, xq)
    assert np.allclose(chebyshev.integrals(n), T @ wq)


@pytest.mark.parametrize('N', N_range)
def test_gram_matrix(N):
    xq, wq = np.polynomial.legendre.leggauss(N + 4)
    T = chebyshev.polynomials(N, xq)
    expected = (T * wq * xq**2) @ T.T
    assert np.allclose(chebyshev.gram_matrix(N), expected)


@pytest.mark.parametrize('N', N_range)
def test_boundary_rows(N):
    c = random_coeffs(N)
    assert np.allclose(chebyshev.dirichlet_row(N) @ c, npc.chebval(1, c))
    assert np.allclose(chebyshev.neumann_row(N) @ c, npc.chebval(1, npc.chebder(c)))


def U_polynomials(N, x):
    return np.array([eval_gegenbauer(n, 1, x) for n in range(N)])


def C2_polynomials(N, x):
    return np.array([eval_gegenbauer(n, 2, x) for n in range(N)])


@pytest.mark.parametrize('N', N_range)
def test_conversion_T_to_U(N):
    c = random_coeffs(N)
    u = chebyshev.conversion_T_to_U(N) @ c
    assert np.allclose(u @ U_polynomials(N, x), npc.chebval(x, c))


@pytest.mark.parametrize('N', N_range)
def test_conversion_U_to_C2(N):
    u = random_coeffs(N)
    c2 = chebyshev.conversion_U_to_C2(N) @ u
    assert np.allclose(c2 @ C2_polynomials(N, x), u @ U_polynomials(N, x))


@pytest.mark.parametrize('N', N_range)
def test_differentiation_T_to_U(N):
    c = random_coeffs(N)
    u = chebyshev.differentiation_T_to_U(N) @ c
    assert np.allclose(u @ U_polynomials(N, x), npc.chebval(x, npc.chebder(c)))


@pytest.mark.parametrize('N', N_range)
def test_differentiation_T_to_C2(N):
    c = random_coeffs(N)
    c2 = chebyshev.differentiation_T_to_C2(N) @ c
    assert np.allclose(c2 @ C2_polynomials(N, x), npc.chebval(x, npc.chebder(c, 2)))


@pytest.mark.parametrize('N', N_range)
def test_multiplication_C2(N):
    c2 = random_coeffs(N)
    # Leave room for the raised top mode
    c2[-1] = 0
    out = chebyshev.multiplication_C2(N) @ c2
    assert np.allclose(out @ C2_polynomials(N, x), x * (c2 @ C2_polynomials(N, x)))
